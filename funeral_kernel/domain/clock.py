"""
Clock -- injectable time source.

Responsibility:
    Gives entities, repositories and use-case services a single way to ask
    for "now", so validity intervals, refund windows, appointment rules and
    audit timestamps are reproducible in tests.

Architecture position:
    Kernel > Domain.  ``SystemClock`` is the only place that reads the wall
    clock; everything else receives a ``Clock`` through its constructor.

Invariants enforced:
    - Every returned ``datetime`` is timezone-aware UTC.  SCD2 validity
      comparisons rely on this.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone


class Clock(ABC):
    """
    Abstract clock interface.

    Contract:
        Services that need the current time receive a Clock via constructor
        injection and never call ``datetime.now()`` themselves.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get the current UTC time."""
        ...

    def today(self) -> date:
        """Get the current UTC calendar date."""
        return self.now().date()


class SystemClock(Clock):
    """Production clock backed by the system time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    ``now()`` returns the same value on repeated calls until ``advance()``,
    ``advance_days()`` or ``set_time()`` is called.  ``tick()`` advances by
    exactly one second so consecutive SCD2 versions get distinct
    ``valid_from`` values when a test needs them.
    """

    DEFAULT_TIME = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)

    def __init__(self, fixed_time: datetime | None = None):
        self._fixed_time = _as_utc(fixed_time or self.DEFAULT_TIME)
        self._offset = timedelta(0)

    def now(self) -> datetime:
        return self._fixed_time + self._offset

    def set_time(self, time: datetime) -> None:
        """Set the clock to a specific time."""
        self._fixed_time = _as_utc(time)
        self._offset = timedelta(0)

    def advance(self, seconds: int = 1) -> None:
        """Advance the clock by the specified seconds."""
        self._offset += timedelta(seconds=seconds)

    def advance_days(self, days: int) -> None:
        self._offset += timedelta(days=days)

    def tick(self) -> datetime:
        """Advance by 1 second and return new time."""
        self.advance(1)
        return self.now()


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
