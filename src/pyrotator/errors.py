"""Exception types raised by pyrotator."""

from typing import Optional


class RotatorError(Exception):
    """Base class for all pyrotator errors."""


class PatternCompileError(RotatorError, ValueError):
    """Raised when a rotated file name pattern cannot be compiled.

    Attributes
    ----------
        pattern: The full pattern text.
        position: Index of the offending character, if known.
        date_time_pattern: The extracted date-time sub-pattern, if the
            failure is inside a ``%d{...}`` directive.

    """

    def __init__(
        self,
        message: str,
        pattern: str,
        position: Optional[int] = None,
        date_time_pattern: Optional[str] = None,
    ):
        super().__init__(message)
        self.pattern = pattern
        self.position = position
        self.date_time_pattern = date_time_pattern


class ConfigurationError(RotatorError, ValueError):
    """Raised for invalid policy parameters or incomplete configuration."""


class PolicyStateError(RotatorError, RuntimeError):
    """Raised when a policy is used before ``start()`` or started twice."""


class ProbeError(RotatorError, OSError):
    """Raised (and reported) when the target file size cannot be read."""
