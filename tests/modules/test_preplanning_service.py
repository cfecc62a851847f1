"""
Tests for pre-planning appointments (``funeral_modules.preplanning``).

The deterministic clock starts Wednesday 2025-01-15 12:00 UTC; business
hours are 08:00-17:00 UTC with lunch 12:00-13:00.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from funeral_engines.availability import REASON_CONFLICT
from funeral_kernel.exceptions import (
    AppointmentCancellationError,
    AppointmentCapacityError,
    AppointmentConflictError,
    BusinessHoursError,
    InvalidStateTransitionError,
    ValidationError,
)
from funeral_modules.preplanning.models import AppointmentStatus, PrePlanningAppointment
from funeral_modules.preplanning.service import PrePlanningService

FRIDAY = date(2025, 1, 17)
THURSDAY = date(2025, 1, 16)


def at(day, hour, minute=0):
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def preplanning_service(session, email_port, deterministic_clock):
    return PrePlanningService(session, email=email_port, clock=deterministic_clock)


@pytest.fixture
def book(preplanning_service, funeral_home_id, test_actor_id):
    def _book(start, end, director_id="dir-1", director_email=None, family_name="Garcia"):
        return preplanning_service.schedule_appointment(
            funeral_home_id, director_id, "Dana Whitfield", family_name,
            "family@example.com", "616-555-0142", start, end, test_actor_id,
            director_email=director_email,
        )
    return _book


class TestAppointmentModel:

    def test_naive_times_rejected(self):
        with pytest.raises(ValidationError):
            PrePlanningAppointment.create(
                "fh-001", "dir-1", "Dana", "Garcia", "f@example.com", "1",
                datetime(2025, 1, 17, 10), datetime(2025, 1, 17, 11), "s",
            )

    def test_end_after_start(self):
        with pytest.raises(ValidationError) as exc_info:
            PrePlanningAppointment.create(
                "fh-001", "dir-1", "Dana", "Garcia", "f@example.com", "1",
                at(FRIDAY, 11), at(FRIDAY, 10), "s",
            )
        assert exc_info.value.field == "end_time"

    @pytest.mark.parametrize(
        "family_email", ["not-an-email", "", "smith@example.com\nBcc: x@y.z", "smith@example.com\r"],
    )
    def test_family_email_required(self, family_email):
        with pytest.raises(ValidationError):
            PrePlanningAppointment.create(
                "fh-001", "dir-1", "Dana", "Garcia", family_email, "1",
                at(FRIDAY, 10), at(FRIDAY, 11), "s",
            )

    def test_reminder_window(self):
        appointment = PrePlanningAppointment.create(
            "fh-001", "dir-1", "Dana", "Garcia", "f@example.com", "1",
            at(FRIDAY, 10), at(FRIDAY, 11), "s",
        )
        assert appointment.needs_email_reminder(at(FRIDAY, 10) - timedelta(hours=36))
        assert not appointment.needs_email_reminder(at(FRIDAY, 10) - timedelta(hours=37))
        assert not appointment.needs_email_reminder(at(FRIDAY, 9, 30))
        assert not appointment.record_email_reminder_sent().needs_email_reminder(at(THURSDAY, 12))


class TestScheduleAppointment:

    def test_books_and_notifies(self, book, email_port, captured_logs):
        result = book(at(FRIDAY, 10), at(FRIDAY, 11), director_email="dana@example.com")

        assert result.appointment.status is AppointmentStatus.SCHEDULED
        assert result.appointment.duration_minutes == 60
        assert result.confirmation_email_sent
        assert result.director_notification_sent
        assert email_port.kinds() == ["confirmation", "director_notification"]
        assert email_port.sent[0][1].recipient_email == "family@example.com"
        assert email_port.sent[1][1].recipient_email == "dana@example.com"
        assert any(r["message"] == "appointment_scheduled" for r in captured_logs())

    def test_director_not_emailed_without_address(self, book, email_port):
        result = book(at(FRIDAY, 10), at(FRIDAY, 11))

        assert not result.director_notification_sent
        assert email_port.kinds() == ["confirmation"]

    @pytest.mark.parametrize(
        "start,end,match",
        [
            (at(date(2025, 1, 18), 10), at(date(2025, 1, 18), 11), "weekdays"),
            (at(FRIDAY, 7), at(FRIDAY, 8), "business hours"),
            (at(FRIDAY, 16, 30), at(FRIDAY, 17, 30), "business hours"),
            (at(FRIDAY, 10), at(FRIDAY, 10, 30), "at least 60 minutes"),
            (at(FRIDAY, 11, 30), at(FRIDAY, 12, 30), "lunch"),
        ],
    )
    def test_business_hours_rules(self, book, start, end, match):
        with pytest.raises(BusinessHoursError, match=match):
            book(start, end)

    def test_local_timezone_rules(self, session, deterministic_clock, funeral_home_id):
        eastern = timezone(timedelta(hours=-5))
        service = PrePlanningService(session, clock=deterministic_clock, tz=eastern)

        # 14:00-15:00 UTC is 09:00-10:00 in UTC-5
        result = service.schedule_appointment(
            funeral_home_id, "dir-1", "Dana", "Garcia", "f@example.com", "1",
            at(FRIDAY, 14), at(FRIDAY, 15), "staff-001",
        )
        assert not result.confirmation_email_sent

        with pytest.raises(BusinessHoursError):
            service.schedule_appointment(
                funeral_home_id, "dir-1", "Dana", "Garcia", "f@example.com", "1",
                at(FRIDAY, 8), at(FRIDAY, 9), "staff-001",
            )

    def test_overlap_rejected(self, book):
        first = book(at(FRIDAY, 10), at(FRIDAY, 11)).appointment

        with pytest.raises(AppointmentConflictError) as exc_info:
            book(at(FRIDAY, 10, 30), at(FRIDAY, 11, 30))
        assert exc_info.value.conflicting_appointment_id == first.business_key

    def test_touching_appointments_allowed(self, book):
        book(at(FRIDAY, 10), at(FRIDAY, 11))
        assert book(at(FRIDAY, 11), at(FRIDAY, 12)).appointment.start_time == at(FRIDAY, 11)

    def test_daily_capacity(self, book):
        for hour in (8, 9, 10, 13):
            book(at(FRIDAY, hour), at(FRIDAY, hour + 1))

        with pytest.raises(AppointmentCapacityError) as exc_info:
            book(at(FRIDAY, 14), at(FRIDAY, 15))
        assert exc_info.value.limit == 4
        assert book(at(FRIDAY, 14), at(FRIDAY, 15), director_id="dir-2").appointment

    def test_email_failure_keeps_booking(
        self, session, failing_email_port, deterministic_clock, funeral_home_id, captured_logs,
    ):
        service = PrePlanningService(session, email=failing_email_port, clock=deterministic_clock)

        result = service.schedule_appointment(
            funeral_home_id, "dir-1", "Dana", "Garcia", "f@example.com", "1",
            at(FRIDAY, 10), at(FRIDAY, 11), "staff-001", director_email="dana@example.com",
        )

        assert not result.confirmation_email_sent
        assert not result.director_notification_sent
        assert service.get_appointment(result.appointment.business_key).version == 1
        failures = [r for r in captured_logs() if r["message"] == "appointment_email_failed"]
        assert len(failures) == 2

    def test_unexpected_email_error_keeps_booking(
        self, book, preplanning_service, email_port, monkeypatch, captured_logs,
    ):
        def broken(kind, message):
            raise ValueError("Header values may not contain linefeed")

        monkeypatch.setattr(email_port, "_send", broken)

        result = book(at(FRIDAY, 10), at(FRIDAY, 11), director_email="dana@example.com")

        assert not result.confirmation_email_sent
        assert not result.director_notification_sent
        assert len(preplanning_service.list_director_appointments("dir-1", FRIDAY, FRIDAY)) == 1
        failures = [r for r in captured_logs() if r["message"] == "appointment_email_failed"]
        assert {r["error_type"] for r in failures} == {"ValueError"}

    def test_header_injection_rejected_before_booking(
        self, preplanning_service, email_port, funeral_home_id, test_actor_id,
    ):
        with pytest.raises(ValidationError) as exc_info:
            preplanning_service.schedule_appointment(
                funeral_home_id, "dir-1", "Dana", "Smith", "smith@example.com\nBcc: x@y.z",
                "1", at(FRIDAY, 10), at(FRIDAY, 11), test_actor_id,
            )
        assert exc_info.value.field == "family_email"

        with pytest.raises(ValidationError) as exc_info:
            preplanning_service.schedule_appointment(
                funeral_home_id, "dir-1", "Dana", "Smith", "smith@example.com",
                "1", at(FRIDAY, 10), at(FRIDAY, 11), test_actor_id,
                director_email="dana@example.com\r\nBcc: x@y.z",
            )
        assert exc_info.value.field == "director_email"

        assert preplanning_service.list_director_appointments("dir-1", FRIDAY, FRIDAY) == []
        assert email_port.sent == []


class TestAvailability:

    def test_day_slots_skip_lunch(self, preplanning_service):
        slots = preplanning_service.get_director_availability("dir-1", FRIDAY, FRIDAY)

        assert [s.start.hour for s in slots] == [8, 9, 10, 11, 13, 14, 15, 16]
        assert all(s.available for s in slots)

    def test_booked_slot_unavailable(self, preplanning_service, book):
        book(at(FRIDAY, 10), at(FRIDAY, 11))

        slots = preplanning_service.get_director_availability("dir-1", FRIDAY, FRIDAY)
        blocked = [s for s in slots if not s.available]

        assert [(s.start.hour, s.reason) for s in blocked] == [(10, REASON_CONFLICT)]

    def test_next_available_slot_after_now(self, preplanning_service, book):
        book(at(date(2025, 1, 15), 13), at(date(2025, 1, 15), 14))

        slot = preplanning_service.next_available_slot("dir-1")

        assert slot.start == at(date(2025, 1, 15), 14)

    def test_list_director_appointments(self, preplanning_service, book, test_actor_id):
        kept = book(at(FRIDAY, 10), at(FRIDAY, 11)).appointment
        dropped = book(at(FRIDAY, 13), at(FRIDAY, 14)).appointment
        preplanning_service.cancel_appointment(dropped.business_key, "Family travelling", test_actor_id)

        listed = preplanning_service.list_director_appointments("dir-1", FRIDAY, FRIDAY)
        everything = preplanning_service.list_director_appointments(
            "dir-1", FRIDAY, FRIDAY, include_cancelled=True,
        )

        assert [a.business_key for a in listed] == [kept.business_key]
        assert len(everything) == 2


class TestLifecycle:

    def test_confirm_and_complete(self, preplanning_service, book, test_actor_id, deterministic_clock):
        key = book(at(FRIDAY, 10), at(FRIDAY, 11)).appointment.business_key
        preplanning_service.confirm_appointment(key, test_actor_id)
        deterministic_clock.set_time(at(FRIDAY, 11, 15))

        completed = preplanning_service.complete_appointment(
            key, test_actor_id, actual_end_time=at(FRIDAY, 11, 15), notes="Selected cremation",
        )

        assert completed.status is AppointmentStatus.COMPLETED
        assert completed.completed_at == at(FRIDAY, 11, 15)
        assert completed.duration_minutes == 75
        assert completed.notes == "Selected cremation"

    def test_cancel_with_notice(self, preplanning_service, book, test_actor_id, deterministic_clock):
        key = book(at(FRIDAY, 10), at(FRIDAY, 11)).appointment.business_key
        deterministic_clock.set_time(at(THURSDAY, 10))

        cancelled = preplanning_service.cancel_appointment(key, "Rescheduling", test_actor_id)

        assert cancelled.is_cancelled
        assert cancelled.cancel_reason == "Rescheduling"
        assert cancelled.cancelled_at == at(THURSDAY, 10)

    def test_cancel_inside_window_rejected(
        self, preplanning_service, book, test_actor_id, deterministic_clock,
    ):
        key = book(at(FRIDAY, 10), at(FRIDAY, 11)).appointment.business_key
        deterministic_clock.set_time(at(THURSDAY, 12))

        with pytest.raises(AppointmentCancellationError, match="24 hours"):
            preplanning_service.cancel_appointment(key, "Too late", test_actor_id)
        assert preplanning_service.get_appointment(key).status is AppointmentStatus.SCHEDULED

    def test_cancelled_slot_can_be_rebooked(self, preplanning_service, book, test_actor_id):
        key = book(at(FRIDAY, 10), at(FRIDAY, 11)).appointment.business_key
        preplanning_service.cancel_appointment(key, "Rescheduling", test_actor_id)

        assert book(at(FRIDAY, 10), at(FRIDAY, 11), family_name="Nguyen").appointment

    def test_no_show_is_terminal(self, preplanning_service, book, test_actor_id):
        key = book(at(FRIDAY, 10), at(FRIDAY, 11)).appointment.business_key
        preplanning_service.mark_no_show(key, test_actor_id)

        with pytest.raises(InvalidStateTransitionError):
            preplanning_service.confirm_appointment(key, test_actor_id)


class TestReminders:

    def test_sends_once_inside_window(self, preplanning_service, book, email_port):
        soon = book(at(THURSDAY, 10), at(THURSDAY, 11)).appointment
        book(at(FRIDAY, 10), at(FRIDAY, 11))
        email_port.sent.clear()

        result = preplanning_service.send_appointment_reminders()
        again = preplanning_service.send_appointment_reminders()

        assert result.sent_appointment_ids == (soon.business_key,)
        assert result.sent_count == 1
        assert email_port.kinds() == ["reminder"]
        assert again.sent_count == 0
        stored = preplanning_service.get_appointment(soon.business_key)
        assert stored.reminder_email_sent
        assert stored.version == 2

    def test_failed_reminder_retried_next_run(
        self, session, deterministic_clock, funeral_home_id, failing_email_port,
    ):
        service = PrePlanningService(session, email=failing_email_port, clock=deterministic_clock)
        appointment = service.schedule_appointment(
            funeral_home_id, "dir-1", "Dana", "Garcia", "f@example.com", "1",
            at(THURSDAY, 10), at(THURSDAY, 11), "staff-001",
        ).appointment

        result = service.send_appointment_reminders()

        assert result.failed_appointment_ids == (appointment.business_key,)
        assert not service.get_appointment(appointment.business_key).reminder_email_sent

        failing_email_port.fail = False
        assert service.send_appointment_reminders().sent_count == 1

    def test_undelivered_status_counts_as_failure(
        self, session, deterministic_clock, funeral_home_id, bouncing_email_port,
    ):
        service = PrePlanningService(session, email=bouncing_email_port, clock=deterministic_clock)
        service.schedule_appointment(
            funeral_home_id, "dir-1", "Dana", "Garcia", "f@example.com", "1",
            at(THURSDAY, 10), at(THURSDAY, 11), "staff-001",
        )

        assert service.send_appointment_reminders().sent_count == 0
