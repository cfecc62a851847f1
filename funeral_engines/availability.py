"""
funeral_engines.availability -- Director availability for pre-planning appointments.

Responsibility:
    Enumerate bookable appointment slots for one director over a date range
    and mark each as available or not, with the reason.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The pre-planning service
    loads the director's appointments and hands the non-cancelled ones in
    as ``BookedInterval`` values.

Slot rules (defaults in ``BusinessHours``):
    - Only business days (Monday to Friday) produce slots.
    - Slots start on the hour from opening (08:00); a slot whose end would
      fall after closing (17:00) is not offered.
    - Slots overlapping the lunch break (12:00-13:00) are not offered.
    - A slot overlapping a booked interval is unavailable,
      reason "Conflicting appointment".
    - A day on which the director already has ``max_appointments_per_day``
      bookings has every slot unavailable, reason "Director at capacity".

Invariants enforced:
    - Identical inputs produce identical outputs; no clock access.
    - Wall-clock rules are evaluated in the supplied business time zone;
      returned datetimes are timezone-aware in that zone.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo

from funeral_kernel.logging_config import get_logger

logger = get_logger("engines.availability")

REASON_AT_CAPACITY = "Director at capacity"
REASON_CONFLICT = "Conflicting appointment"


@dataclass(frozen=True)
class BusinessHours:
    """Scheduling rules for pre-planning consultations."""

    open_hour: int = 8
    close_hour: int = 17
    lunch_start_hour: int = 12
    lunch_end_hour: int = 13
    business_weekdays: tuple[int, ...] = (0, 1, 2, 3, 4)
    max_appointments_per_day: int = 4
    min_duration_minutes: int = 60
    slot_interval_minutes: int = 60

    def __post_init__(self) -> None:
        if not 0 <= self.open_hour < self.close_hour <= 24:
            raise ValueError("open_hour must precede close_hour within a day")
        if self.lunch_start_hour > self.lunch_end_hour:
            raise ValueError("lunch_start_hour must not be after lunch_end_hour")
        if self.max_appointments_per_day < 1:
            raise ValueError("max_appointments_per_day must be at least 1")
        if self.min_duration_minutes < 1 or self.slot_interval_minutes < 1:
            raise ValueError("durations must be positive")

    def is_business_day(self, day: date) -> bool:
        return day.weekday() in self.business_weekdays

    def opening(self, day: date, tz: tzinfo) -> datetime:
        return datetime.combine(day, time(self.open_hour), tzinfo=tz)

    def closing(self, day: date, tz: tzinfo) -> datetime:
        return datetime.combine(day, time(0), tzinfo=tz) + timedelta(hours=self.close_hour)

    def lunch(self, day: date, tz: tzinfo) -> tuple[datetime, datetime]:
        return (
            datetime.combine(day, time(self.lunch_start_hour), tzinfo=tz),
            datetime.combine(day, time(self.lunch_end_hour), tzinfo=tz),
        )


@dataclass(frozen=True)
class BookedInterval:
    """An existing non-cancelled appointment of the director."""

    appointment_id: str
    start: datetime
    end: datetime


@dataclass(frozen=True)
class AvailabilitySlot:
    start: datetime
    end: datetime
    available: bool
    reason: str | None = None


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open overlap: touching intervals do not overlap."""
    return a_start < b_end and b_start < a_end


class AvailabilityEngine:
    """
    Slot enumeration for one director.

    Contract:
        Pure.  ``booked`` must already exclude cancelled appointments.
    """

    def slots(
        self,
        from_date: date,
        to_date: date,
        booked: Sequence[BookedInterval],
        duration_minutes: int = 60,
        hours: BusinessHours | None = None,
        tz: tzinfo = timezone.utc,
    ) -> list[AvailabilitySlot]:
        """
        All candidate slots between ``from_date`` and ``to_date`` inclusive.

        Raises:
            ValueError: If the range is inverted or the duration is shorter
                than the minimum appointment length.
        """
        hours = hours or BusinessHours()
        if to_date < from_date:
            raise ValueError("to_date must not be before from_date")
        if duration_minutes < hours.min_duration_minutes:
            raise ValueError(
                f"duration_minutes must be at least {hours.min_duration_minutes}"
            )

        per_day = Counter(b.start.astimezone(tz).date() for b in booked)
        duration = timedelta(minutes=duration_minutes)
        step = timedelta(minutes=hours.slot_interval_minutes)

        result: list[AvailabilitySlot] = []
        day = from_date
        while day <= to_date:
            if hours.is_business_day(day):
                at_capacity = per_day[day] >= hours.max_appointments_per_day
                lunch_start, lunch_end = hours.lunch(day, tz)
                closing = hours.closing(day, tz)
                start = hours.opening(day, tz)
                while start + duration <= closing:
                    end = start + duration
                    if not intervals_overlap(start, end, lunch_start, lunch_end):
                        result.append(self._slot(start, end, booked, at_capacity))
                    start += step
            day += timedelta(days=1)

        logger.debug("availability_slots_computed", extra={
            "from_date": from_date.isoformat(),
            "to_date": to_date.isoformat(),
            "booked_count": len(booked),
            "slot_count": len(result),
            "available_count": sum(1 for s in result if s.available),
        })
        return result

    def next_available(
        self,
        after: datetime,
        booked: Sequence[BookedInterval],
        duration_minutes: int = 60,
        search_days: int = 30,
        hours: BusinessHours | None = None,
        tz: tzinfo = timezone.utc,
    ) -> AvailabilitySlot | None:
        """First available slot starting at or after ``after`` within ``search_days``."""
        first_day = after.astimezone(tz).date()
        candidates = self.slots(
            first_day,
            first_day + timedelta(days=search_days),
            booked,
            duration_minutes=duration_minutes,
            hours=hours,
            tz=tz,
        )
        for slot in candidates:
            if slot.available and slot.start >= after:
                return slot
        return None

    @staticmethod
    def _slot(
        start: datetime,
        end: datetime,
        booked: Sequence[BookedInterval],
        at_capacity: bool,
    ) -> AvailabilitySlot:
        if at_capacity:
            return AvailabilitySlot(start, end, available=False, reason=REASON_AT_CAPACITY)
        for b in booked:
            if intervals_overlap(start, end, b.start, b.end):
                return AvailabilitySlot(start, end, available=False, reason=REASON_CONFLICT)
        return AvailabilitySlot(start, end, available=True)
