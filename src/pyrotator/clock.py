"""Clock abstractions for computing rotation boundaries."""

from datetime import datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Protocol

SUNDAY = 6


class Clock(Protocol):
    """Source of the current instant and of the calendar boundaries."""

    def now(self) -> datetime:
        """Return the current instant."""
        ...

    def midnight(self) -> datetime:
        """Return the next midnight strictly after ``now()``."""
        ...

    def sunday_midnight(self) -> datetime:
        """Return the midnight closing the next Sunday after ``now()``."""
        ...


def next_midnight(instant: datetime) -> datetime:
    """Return the first midnight strictly after ``instant``.

    An instant that is exactly midnight yields the following midnight, never
    the instant itself.
    """
    next_day = instant.date() + timedelta(days=1)
    return datetime.combine(next_day, time(), tzinfo=instant.tzinfo)


def next_sunday_midnight(instant: datetime) -> datetime:
    """Return the midnight that ends the next Sunday after ``instant``.

    Starts from :func:`next_midnight` and moves forward one day at a time
    until the day that just ended is a Sunday, so the result is always a
    Monday 00:00.
    """
    boundary = next_midnight(instant)
    while (boundary - timedelta(days=1)).weekday() != SUNDAY:
        boundary = datetime.combine(
            boundary.date() + timedelta(days=1), time(), tzinfo=boundary.tzinfo
        )
    return boundary


class SystemClock:
    """Wall clock in a given time zone, or the system local zone by default.

    Without ``tz`` the boundaries are local midnights, re-resolved on every
    call so daylight saving changes of the host zone are honoured.
    Subclasses may override :meth:`_current_date_time` to pin the time.
    """

    def __init__(self, tz: Optional[tzinfo] = None):
        self.tz = tz

    def _current_date_time(self) -> datetime:
        if self.tz is None:
            return datetime.now().astimezone()
        return datetime.now(self.tz)

    def now(self) -> datetime:
        return self._current_date_time()

    def midnight(self) -> datetime:
        return self._boundary(next_midnight)

    def sunday_midnight(self) -> datetime:
        return self._boundary(next_sunday_midnight)

    def _boundary(self, boundary_function) -> datetime:
        now = self.now()
        if self.tz is not None:
            return boundary_function(now)
        # Naive local wall time; astimezone() attaches the offset in effect then.
        local_now = now.astimezone().replace(tzinfo=None)
        return boundary_function(local_now).astimezone()

    def __repr__(self) -> str:
        return f"SystemClock(tz={self.tz})"


class FixedClock(SystemClock):
    """Clock that returns a fixed instant until explicitly advanced."""

    def __init__(self, instant: datetime):
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        super().__init__(instant.tzinfo)
        self.instant = instant

    def _current_date_time(self) -> datetime:
        return self.instant

    def advance(self, delta: timedelta) -> datetime:
        """Move the clock forward by ``delta`` and return the new instant."""
        self.instant = self.instant + delta
        return self.instant

    def __repr__(self) -> str:
        return f"FixedClock({self.instant.isoformat()})"
