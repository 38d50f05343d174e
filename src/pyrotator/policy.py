"""Rotation policies deciding when the target file gets rotated."""

import logging
import os
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, Optional, Protocol

from .clock import next_midnight, next_sunday_midnight
from .errors import ConfigurationError, PolicyStateError, ProbeError

if TYPE_CHECKING:
    from .clock import Clock
    from .config import RotationConfig
    from .scheduler import ScheduledTask

logger = logging.getLogger(__name__)


class Rotatable(Protocol):
    """Something that can rotate its output file on a policy's request."""

    @property
    def config(self) -> "RotationConfig":
        ...

    def rotate(self, policy: "RotationPolicy", instant: datetime) -> None:
        ...


class RotationPolicy(ABC):
    """Abstract base class for rotation policies.

    A policy is bound to exactly one :class:`Rotatable` by :meth:`start`.
    When its condition holds it notifies ``config.callback.on_trigger`` and
    then asks the rotatable to rotate.
    """

    def __init__(self):
        self._rotatable: Optional[Rotatable] = None
        self._task: Optional["ScheduledTask"] = None

    @property
    def rotatable(self) -> Rotatable:
        """Return the bound rotatable, failing if :meth:`start` was not called."""
        if self._rotatable is None:
            raise PolicyStateError(f"policy is not started: {self}")
        return self._rotatable

    @property
    def started(self) -> bool:
        return self._rotatable is not None

    @property
    def _logger(self) -> logging.Logger:
        if self._rotatable is not None and self._rotatable.config.logger is not None:
            return self._rotatable.config.logger
        return logger

    @abstractmethod
    def is_write_sensitive(self) -> bool:
        """Return True if the policy must see every write via :meth:`accept_write`."""

    @abstractmethod
    def accept_write(self, byte_count: int) -> None:
        """Inspect the file size right after a write.

        Args:
        ----
            byte_count: Size of the target file in bytes after the write

        """

    def start(self, rotatable: Rotatable) -> None:
        """Bind the policy to ``rotatable`` and arm its scheduled checks."""
        if self._rotatable is not None:
            raise PolicyStateError(f"policy is already started: {self}")
        self._rotatable = rotatable
        self._task = self._schedule(rotatable)

    def stop(self) -> None:
        """Cancel the scheduled check of this policy, if any."""
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def _schedule(self, rotatable: Rotatable) -> Optional["ScheduledTask"]:
        return None

    def _trigger(self, rotatable: Rotatable, instant: datetime) -> None:
        rotatable.config.callback.on_trigger(self, instant)
        rotatable.rotate(self, instant)


class SizeBasedRotationPolicy(RotationPolicy):
    """Rotate once the target file grows past ``max_byte_count`` bytes.

    With ``check_interval_millis == 0`` the policy is write-sensitive and
    only reacts to :meth:`accept_write`; otherwise the file size is probed
    on the scheduler every ``check_interval_millis`` milliseconds.
    """

    def __init__(self, check_interval_millis: int, max_byte_count: int):
        """Initialize size-based rotation.

        Args:
        ----
            check_interval_millis: Probe period in milliseconds, 0 to check
                on every write instead
            max_byte_count: Size in bytes the file has to exceed to rotate

        """
        super().__init__()
        if not _is_int(check_interval_millis) or check_interval_millis < 0:
            raise ConfigurationError(
                f"invalid interval (check_interval_millis={check_interval_millis})"
            )
        if not _is_int(max_byte_count) or max_byte_count < 1:
            raise ConfigurationError(f"invalid size (max_byte_count={max_byte_count})")
        self.check_interval_millis = check_interval_millis
        self.max_byte_count = max_byte_count

    def is_write_sensitive(self) -> bool:
        return self.check_interval_millis == 0

    def accept_write(self, byte_count: int) -> None:
        rotatable = self.rotatable
        if byte_count > self.max_byte_count:
            now = rotatable.config.clock.now()
            self._rotate(rotatable, now, byte_count)

    def _schedule(self, rotatable: Rotatable) -> Optional["ScheduledTask"]:
        if self.check_interval_millis == 0:
            return None
        return rotatable.config.scheduler.schedule_periodic(
            self._check,
            0,
            self.check_interval_millis / 1000.0,
            name=f"size-check:{rotatable.config.file}",
        )

    def _check(self) -> None:
        rotatable = self.rotatable
        config = rotatable.config
        now = config.clock.now()
        try:
            byte_count = probe_file_size(config.file)
        except ProbeError as error:
            self._logger.warning("%s", error)
            config.callback.on_failure(self, now, config.file, error)
            return
        if byte_count > self.max_byte_count:
            self._rotate(rotatable, now, byte_count)

    def _rotate(self, rotatable: Rotatable, now: datetime, byte_count: int) -> None:
        self._logger.debug("triggering (byte_count=%d)", byte_count)
        self._trigger(rotatable, now)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SizeBasedRotationPolicy):
            return NotImplemented
        return (
            self.check_interval_millis == other.check_interval_millis
            and self.max_byte_count == other.max_byte_count
        )

    def __hash__(self) -> int:
        return hash((type(self), self.check_interval_millis, self.max_byte_count))

    def __repr__(self) -> str:
        return (
            f"SizeBasedRotationPolicy(check_interval_millis={self.check_interval_millis}, "
            f"max_byte_count={self.max_byte_count})"
        )


class Boundary(Enum):
    """Calendar boundaries a time-based policy can rotate at."""

    DAILY = "daily"
    WEEKLY = "weekly"


BOUNDARY_FUNCTIONS: Dict[Boundary, Callable[["Clock"], datetime]] = {
    Boundary.DAILY: lambda clock: clock.midnight(),
    Boundary.WEEKLY: lambda clock: clock.sunday_midnight(),
}

# Boundary following an already fired one, whatever the live clock says.
FOLLOWING_BOUNDARY_FUNCTIONS: Dict[Boundary, Callable[[datetime], datetime]] = {
    Boundary.DAILY: next_midnight,
    Boundary.WEEKLY: next_sunday_midnight,
}


class TimeBasedRotationPolicy(RotationPolicy):
    """Rotate at every occurrence of a calendar boundary.

    The delay to the next boundary is recomputed from the live clock before
    each arming, so clock adjustments never accumulate into drift.
    """

    def __init__(self, boundary: Boundary):
        super().__init__()
        if not isinstance(boundary, Boundary):
            raise ConfigurationError(f"invalid boundary (boundary={boundary!r})")
        self.boundary = boundary
        self._trigger_instant: Optional[datetime] = None

    @classmethod
    def daily(cls) -> "TimeBasedRotationPolicy":
        return cls(Boundary.DAILY)

    @classmethod
    def weekly(cls) -> "TimeBasedRotationPolicy":
        return cls(Boundary.WEEKLY)

    @property
    def description(self) -> str:
        return self.boundary.value

    def get_trigger_date_time(self, clock: "Clock") -> datetime:
        return BOUNDARY_FUNCTIONS[self.boundary](clock)

    def is_write_sensitive(self) -> bool:
        return False

    def accept_write(self, byte_count: int) -> None:
        pass

    def _schedule(self, rotatable: Rotatable) -> Optional["ScheduledTask"]:
        return rotatable.config.scheduler.schedule_with_dynamic_delay(
            self._fire,
            self._next_delay,
            name=f"{self.description}:{rotatable.config.file}",
        )

    def _next_delay(self) -> float:
        clock = self.rotatable.config.clock
        now = clock.now()
        trigger_instant = self.get_trigger_date_time(clock)
        previous = self._trigger_instant
        if previous is not None:
            # A clock still reading before the fired boundary must not fire it again.
            trigger_instant = max(
                trigger_instant, FOLLOWING_BOUNDARY_FUNCTIONS[self.boundary](previous)
            )
        self._trigger_instant = trigger_instant
        delay = max(0.0, _seconds_between(now, trigger_instant))
        self._logger.debug(
            "scheduling %s rotation (trigger_instant=%s, delay=%.3fs)",
            self.description,
            trigger_instant,
            delay,
        )
        return delay

    def _fire(self) -> None:
        trigger_instant = self._trigger_instant
        self._logger.debug("triggering (trigger_instant=%s)", trigger_instant)
        self._trigger(self.rotatable, trigger_instant)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TimeBasedRotationPolicy):
            return NotImplemented
        return self.boundary is other.boundary

    def __hash__(self) -> int:
        return hash((type(self), self.boundary))

    def __repr__(self) -> str:
        return f"TimeBasedRotationPolicy({self.description})"


def probe_file_size(file) -> int:
    """Return the size of ``file`` in bytes, 0 if it does not exist.

    Raises
    ------
        ProbeError: If the size cannot be read for any other reason.

    """
    try:
        return os.path.getsize(file)
    except FileNotFoundError:
        return 0
    except OSError as error:
        raise ProbeError(f"failed accessing file size (file={file}): {error}") from error


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _seconds_between(start: datetime, end: datetime) -> float:
    # Subtracting datetimes sharing a tzinfo ignores DST offset changes.
    return (end.astimezone(timezone.utc) - start.astimezone(timezone.utc)).total_seconds()
