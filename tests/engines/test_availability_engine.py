"""
Tests for director availability (``funeral_engines.availability``).

2025-01-15 is a Wednesday; 2025-01-18/19 are a weekend.
"""

from datetime import date, datetime, timedelta, timezone

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from funeral_engines.availability import (
    REASON_AT_CAPACITY,
    REASON_CONFLICT,
    AvailabilityEngine,
    BookedInterval,
    BusinessHours,
    intervals_overlap,
)

WEDNESDAY = date(2025, 1, 15)
FRIDAY = date(2025, 1, 17)
SATURDAY = date(2025, 1, 18)
EASTERN = timezone(timedelta(hours=-5))


def _at(day: date, hour: int, minute: int = 0, tz=timezone.utc) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=tz)


def _booking(appointment_id: str, day: date, hour: int, tz=timezone.utc) -> BookedInterval:
    start = _at(day, hour, tz=tz)
    return BookedInterval(appointment_id, start, start + timedelta(hours=1))


@pytest.fixture
def engine():
    return AvailabilityEngine()


class TestSlotEnumeration:

    def test_business_day_has_eight_hourly_slots(self, engine):
        slots = engine.slots(WEDNESDAY, WEDNESDAY, [])

        assert [s.start.hour for s in slots] == [8, 9, 10, 11, 13, 14, 15, 16]
        assert all(s.available for s in slots)
        assert all(s.end - s.start == timedelta(hours=1) for s in slots)

    def test_weekend_has_no_slots(self, engine):
        assert engine.slots(SATURDAY, SATURDAY + timedelta(days=1), []) == []

    def test_range_is_inclusive(self, engine):
        slots = engine.slots(WEDNESDAY, FRIDAY, [])
        assert len(slots) == 24

    def test_longer_duration_skips_lunch_overlaps_and_closing(self, engine):
        slots = engine.slots(WEDNESDAY, WEDNESDAY, [], duration_minutes=90)

        assert [s.start.hour for s in slots] == [8, 9, 10, 13, 14, 15]

    def test_slots_in_business_time_zone(self, engine):
        slots = engine.slots(WEDNESDAY, WEDNESDAY, [], tz=EASTERN)

        assert slots[0].start == _at(WEDNESDAY, 8, tz=EASTERN)
        assert slots[0].start.utcoffset() == timedelta(hours=-5)

    def test_inverted_range_rejected(self, engine):
        with pytest.raises(ValueError, match="to_date"):
            engine.slots(FRIDAY, WEDNESDAY, [])

    def test_duration_below_minimum_rejected(self, engine):
        with pytest.raises(ValueError, match="at least 60"):
            engine.slots(WEDNESDAY, WEDNESDAY, [], duration_minutes=30)


class TestBookedSlots:

    def test_conflicting_slot_marked_unavailable(self, engine):
        slots = engine.slots(WEDNESDAY, WEDNESDAY, [_booking("a1", WEDNESDAY, 10)])

        by_hour = {s.start.hour: s for s in slots}
        assert not by_hour[10].available
        assert by_hour[10].reason == REASON_CONFLICT
        assert by_hour[9].available
        assert by_hour[11].available

    def test_director_at_capacity_blocks_whole_day(self, engine):
        booked = [_booking(f"a{h}", WEDNESDAY, h) for h in (8, 9, 10, 11)]

        slots = engine.slots(WEDNESDAY, FRIDAY, booked)

        wednesday = [s for s in slots if s.start.date() == WEDNESDAY]
        thursday = [s for s in slots if s.start.date() == WEDNESDAY + timedelta(days=1)]
        assert all(not s.available for s in wednesday)
        assert all(s.reason == REASON_AT_CAPACITY for s in wednesday)
        assert all(s.available for s in thursday)

    def test_three_bookings_leave_free_slots(self, engine):
        booked = [_booking(f"a{h}", WEDNESDAY, h) for h in (8, 9, 10)]

        slots = engine.slots(WEDNESDAY, WEDNESDAY, booked)

        assert [s.start.hour for s in slots if s.available] == [11, 13, 14, 15, 16]

    def test_custom_capacity(self, engine):
        hours = BusinessHours(max_appointments_per_day=1)
        slots = engine.slots(WEDNESDAY, WEDNESDAY, [_booking("a", WEDNESDAY, 8)], hours=hours)
        assert not any(s.available for s in slots)


class TestNextAvailable:

    def test_skips_conflicts_and_past_slots(self, engine):
        after = _at(WEDNESDAY, 12)
        booked = [_booking("a1", WEDNESDAY, 13)]

        slot = engine.next_available(after, booked)

        assert slot.start == _at(WEDNESDAY, 14)

    def test_rolls_over_weekend(self, engine):
        slot = engine.next_available(_at(FRIDAY, 17), [])
        assert slot.start == _at(date(2025, 1, 20), 8)

    def test_none_when_search_window_exhausted(self, engine):
        hours = BusinessHours(max_appointments_per_day=1)
        booked = [_booking("a", WEDNESDAY, 8)]

        assert engine.next_available(_at(WEDNESDAY, 9), booked, search_days=0, hours=hours) is None


class TestBusinessHours:

    def test_rejects_open_after_close(self):
        with pytest.raises(ValueError):
            BusinessHours(open_hour=18, close_hour=9)

    def test_rejects_zero_capacity(self):
        with pytest.raises(ValueError):
            BusinessHours(max_appointments_per_day=0)

    def test_rejects_inverted_lunch(self):
        with pytest.raises(ValueError):
            BusinessHours(lunch_start_hour=13, lunch_end_hour=12)


class TestIntervalsOverlap:

    def test_touching_intervals_do_not_overlap(self):
        assert not intervals_overlap(
            _at(WEDNESDAY, 9), _at(WEDNESDAY, 10), _at(WEDNESDAY, 10), _at(WEDNESDAY, 11),
        )

    def test_nested_interval_overlaps(self):
        assert intervals_overlap(
            _at(WEDNESDAY, 9), _at(WEDNESDAY, 12), _at(WEDNESDAY, 10), _at(WEDNESDAY, 11),
        )


class TestAvailabilityProperties:

    @settings(max_examples=50, deadline=None)
    @given(
        hours=st.lists(st.sampled_from([8, 9, 10, 11, 13, 14, 15, 16]), max_size=6, unique=True),
        day_offset=st.integers(min_value=0, max_value=6),
    )
    def test_available_slots_never_overlap_bookings(self, hours, day_offset):
        day = WEDNESDAY + timedelta(days=day_offset)
        booked = [_booking(f"a{h}", day, h) for h in hours]

        slots = AvailabilityEngine().slots(day, day, booked)

        for slot in slots:
            if slot.available:
                assert not any(
                    intervals_overlap(slot.start, slot.end, b.start, b.end) for b in booked
                )
            assert 8 <= slot.start.hour and slot.end.hour <= 17
        if len(hours) >= 4:
            assert not any(s.available for s in slots)
