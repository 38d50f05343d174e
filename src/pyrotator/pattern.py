"""Compiler and renderer for rotated file name patterns.

A pattern is plain text with embedded date-time directives::

    /var/log/app-%d{yyyyMMdd-HHmmss.SSS}.log

``%%`` stands for a literal ``%`` and ``%d{...}`` wraps an LDML date-time
pattern (the symbol set used by Babel and CLDR). A pattern must contain at
least one date-time directive, otherwise every instant would render to the
same path.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Union

from babel import Locale, UnknownLocaleError, default_locale
from babel.dates import PATTERN_CHARS, DateTimeFormat, DateTimePattern, parse_pattern

from .errors import PatternCompileError

ESCAPE_CHAR = "%"
DATE_TIME_DIRECTIVE_CHAR = "d"
DATE_TIME_BLOCK_START_CHAR = "{"
DATE_TIME_BLOCK_END_CHAR = "}"

FALLBACK_LOCALE = "en_US"

LocaleLike = Union[Locale, str, None]


@dataclass(frozen=True)
class TextField:
    """Literal text copied verbatim into the rendered path."""

    text: str

    def render(self, instant: datetime) -> str:
        return self.text


@dataclass(frozen=True)
class DateTimeField:
    """An ``instant`` formatted with a compiled LDML date-time pattern."""

    spec: str
    locale: Locale
    formatter: DateTimePattern = field(compare=False, repr=False)

    def render(self, instant: datetime) -> str:
        return self.formatter % _TruncatingDateTimeFormat(instant, self.locale)


class _TruncatingDateTimeFormat(DateTimeFormat):
    """Babel formatter that truncates fractional seconds instead of rounding.

    Rounding would render .9997 s as ``1000`` for ``SSS`` without carrying
    into the seconds field.
    """

    def format_frac_seconds(self, num: int) -> str:
        digits = "%06d" % self.value.microsecond
        return digits[:num].ljust(num, "0")


def resolve_locale(locale: LocaleLike) -> Locale:
    """Turn a locale identifier (or ``None`` for the default) into a Locale."""
    if isinstance(locale, Locale):
        return locale
    identifier = locale or default_locale("LC_TIME") or FALLBACK_LOCALE
    return Locale.parse(identifier)


def _validate_date_time_pattern(spec: str) -> DateTimePattern:
    """Compile ``spec`` into a Babel date-time pattern.

    Babel silently treats unknown letters and unterminated quotes as literal
    text, so both are rejected here before the field widths are checked.
    """
    if not spec:
        raise ValueError("empty date time pattern")
    quoted = False
    index = 0
    while index < len(spec):
        char = spec[index]
        if char == "'":
            if index + 1 < len(spec) and spec[index + 1] == "'":
                index += 2
                continue
            quoted = not quoted
        elif not quoted and char.isascii() and char.isalpha():
            if char not in PATTERN_CHARS:
                raise ValueError(f"unknown pattern letter: {char!r}")
        index += 1
    if quoted:
        raise ValueError("unterminated quote")
    return parse_pattern(spec)


def _compile(pattern: str, locale: Locale) -> tuple:
    fields = []
    text = []
    found_date_time_directive = False
    total_char_count = len(pattern)
    char_index = 0
    while char_index < total_char_count:
        c0 = pattern[char_index]
        if c0 != ESCAPE_CHAR:
            text.append(c0)
            char_index += 1
            continue

        # Escaped escape character.
        if pattern.startswith(ESCAPE_CHAR, char_index + 1):
            text.append(ESCAPE_CHAR)
            char_index += 2
            continue

        if text:
            fields.append(TextField("".join(text)))
            text = []

        directive = DATE_TIME_DIRECTIVE_CHAR + DATE_TIME_BLOCK_START_CHAR
        if pattern.startswith(directive, char_index + 1):
            block_start_index = char_index + 2
            block_end_index = pattern.find(
                DATE_TIME_BLOCK_END_CHAR, block_start_index + 1
            )
            if block_end_index < 0:
                raise PatternCompileError(
                    f"unterminated date time directive "
                    f"(position={char_index}, pattern={pattern})",
                    pattern,
                    position=char_index,
                )
            spec = pattern[block_start_index + 1 : block_end_index]
            try:
                formatter = _validate_date_time_pattern(spec)
            except ValueError as error:
                raise PatternCompileError(
                    f"invalid date time pattern (position={char_index}, "
                    f"pattern={pattern}, dateTimePattern={spec}): {error}",
                    pattern,
                    position=char_index,
                    date_time_pattern=spec,
                ) from error
            fields.append(DateTimeField(spec, locale, formatter))
            found_date_time_directive = True
            char_index = block_end_index + 1
            continue

        raise PatternCompileError(
            f"invalid escape character (position={char_index}, pattern={pattern})",
            pattern,
            position=char_index,
        )

    if text:
        fields.append(TextField("".join(text)))

    if not found_date_time_directive:
        raise PatternCompileError(
            f"missing date time directive (pattern={pattern})", pattern
        )

    return tuple(fields)


class RotatingFilePattern:
    """Compiled file name pattern that renders a path for any instant.

    Compilation happens in the constructor and raises
    :class:`~pyrotator.errors.PatternCompileError` on malformed input.
    Instances are read-only and safe to share between threads.

    Example:
    -------
        pattern = RotatingFilePattern("/tmp/app-%d{yyyyMMdd}.log")
        pattern.render(datetime(2020, 1, 2, tzinfo=timezone.utc))
        # '/tmp/app-20200102.log'

    """

    def __init__(self, pattern: str, locale: LocaleLike = None):
        """Compile ``pattern``.

        Args:
        ----
            pattern: Pattern text containing at least one ``%d{...}`` directive.
            locale: Locale used for locale-sensitive symbols (month and day
                names). Defaults to the process ``LC_TIME`` locale.

        """
        try:
            resolved = resolve_locale(locale)
        except (UnknownLocaleError, ValueError, TypeError) as error:
            raise PatternCompileError(
                f"invalid locale (pattern={pattern}, locale={locale}): {error}",
                pattern,
            ) from error
        self._pattern = pattern
        self._locale = resolved
        self._fields = _compile(pattern, resolved)

    @property
    def pattern(self) -> str:
        return self._pattern

    @property
    def locale(self) -> Locale:
        return self._locale

    @property
    def fields(self) -> tuple:
        return self._fields

    def render(self, instant: datetime) -> str:
        """Render the path for ``instant``.

        Naive instants are taken to be UTC; aware ones are formatted in
        their own time zone.
        """
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        return "".join(part.render(instant) for part in self._fields)

    def create(self, instant: datetime) -> Path:
        """Render the path for ``instant`` as a :class:`pathlib.Path`."""
        return Path(self.render(instant))

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, RotatingFilePattern):
            return NotImplemented
        return self._pattern == other._pattern and str(self._locale) == str(
            other._locale
        )

    def __hash__(self) -> int:
        return hash((self._pattern, str(self._locale)))

    def __repr__(self) -> str:
        return f"RotatingFilePattern(pattern={self._pattern!r}, locale={self._locale})"


def compile_pattern(pattern: str, locale: LocaleLike = None) -> RotatingFilePattern:
    """Compile ``pattern``; shorthand for :class:`RotatingFilePattern`."""
    return RotatingFilePattern(pattern, locale)
