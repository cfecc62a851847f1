"""
Pre-Planning Service (``funeral_modules.preplanning.service``).

Responsibility
--------------
Book, transition and remind pre-need consultations, and answer director
availability questions through ``AvailabilityEngine``.

Scheduling order
----------------
1. Build the appointment (field validation).
2. Business day, business hours, minimum duration and lunch break.
3. Director capacity for the day (non-cancelled appointments).
4. Overlap with the director's non-cancelled appointments.
5. Save, then email the family confirmation and the director notification.

Email delivery failures are logged and reported in the result; they never
undo or fail a booking.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime, timedelta, timezone, tzinfo

from sqlalchemy.orm import Session

from funeral_engines.availability import (
    AvailabilityEngine,
    AvailabilitySlot,
    BookedInterval,
    BusinessHours,
)
from funeral_kernel.domain.clock import Clock, SystemClock
from funeral_kernel.exceptions import (
    AppointmentCapacityError,
    AppointmentConflictError,
    ValidationError,
)
from funeral_kernel.logging_config import get_logger
from funeral_modules._unit_of_work import unit_of_work
from funeral_modules.preplanning.models import (
    REMINDER_WINDOW_HOURS,
    PrePlanningAppointment,
    ReminderRunResult,
    ScheduleAppointmentResult,
    check_business_hours,
    is_plausible_email,
)
from funeral_modules.preplanning.repository import PrePlanningAppointmentRepository
from funeral_services.ports import AppointmentEmail, EmailPort, EmailResult

logger = get_logger("modules.preplanning.service")

NEXT_SLOT_SEARCH_DAYS = 30


class PrePlanningService:
    """Pre-need appointment scheduling for funeral directors."""

    def __init__(
        self,
        session: Session,
        email: EmailPort | None = None,
        clock: Clock | None = None,
        hours: BusinessHours | None = None,
        tz: tzinfo = timezone.utc,
        engine: AvailabilityEngine | None = None,
    ):
        self._session = session
        self._email = email
        self._clock = clock or SystemClock()
        self._hours = hours or BusinessHours()
        self._tz = tz
        self._engine = engine or AvailabilityEngine()
        self._appointments = PrePlanningAppointmentRepository(session, self._clock)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_appointment(self, business_key: str) -> PrePlanningAppointment:
        return self._appointments.get_current(business_key)

    def get_appointment_history(self, business_key: str) -> list[PrePlanningAppointment]:
        return self._appointments.find_history(business_key)

    def list_director_appointments(
        self,
        director_id: str,
        from_date: date,
        to_date: date,
        include_cancelled: bool = False,
    ) -> list[PrePlanningAppointment]:
        start, end = self._day_range(from_date, to_date)
        return self._appointments.find_by_director(director_id, start, end, include_cancelled)

    def get_director_availability(
        self,
        director_id: str,
        from_date: date,
        to_date: date,
        duration_minutes: int = 60,
    ) -> list[AvailabilitySlot]:
        booked = self._booked(director_id, from_date, to_date)
        return self._engine.slots(
            from_date, to_date, booked,
            duration_minutes=duration_minutes, hours=self._hours, tz=self._tz,
        )

    def next_available_slot(
        self,
        director_id: str,
        after: datetime | None = None,
        duration_minutes: int = 60,
    ) -> AvailabilitySlot | None:
        after = after or self._clock.now()
        first_day = after.astimezone(self._tz).date()
        booked = self._booked(
            director_id, first_day, first_day + timedelta(days=NEXT_SLOT_SEARCH_DAYS),
        )
        return self._engine.next_available(
            after, booked,
            duration_minutes=duration_minutes,
            search_days=NEXT_SLOT_SEARCH_DAYS,
            hours=self._hours,
            tz=self._tz,
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def schedule_appointment(
        self,
        funeral_home_id: str,
        director_id: str,
        director_name: str,
        family_name: str,
        family_email: str,
        family_phone: str,
        start_time: datetime,
        end_time: datetime,
        actor_id: str,
        notes: str | None = None,
        director_email: str | None = None,
    ) -> ScheduleAppointmentResult:
        appointment = PrePlanningAppointment.create(
            funeral_home_id=funeral_home_id,
            director_id=director_id,
            director_name=director_name,
            family_name=family_name,
            family_email=family_email,
            family_phone=family_phone,
            start_time=start_time,
            end_time=end_time,
            created_by=actor_id,
            notes=notes,
        )
        if director_email is not None and not is_plausible_email(director_email):
            raise ValidationError("Director email is not a valid address", field="director_email")
        check_business_hours(start_time, end_time, self._hours, self._tz)

        day = start_time.astimezone(self._tz).date()
        same_day = self._appointments.find_by_director(director_id, *self._day_range(day, day))
        if len(same_day) >= self._hours.max_appointments_per_day:
            raise AppointmentCapacityError(
                director_id, day.isoformat(), self._hours.max_appointments_per_day,
            )
        conflict = next((a for a in same_day if a.overlaps(appointment)), None)
        if conflict is not None:
            raise AppointmentConflictError(director_id, conflict.business_key)

        with unit_of_work(self._session, "schedule_appointment"):
            saved = self._appointments.save(appointment, actor_id)
        logger.info("appointment_scheduled", extra={
            "appointment_id": saved.business_key,
            "director_id": director_id,
            "funeral_home_id": funeral_home_id,
            "start_time": saved.start_time.isoformat(),
            "duration_minutes": saved.duration_minutes,
        })

        confirmation_sent = self._notify(
            saved, "confirmation",
            lambda port: port.send_appointment_confirmation(
                self._message(saved, saved.family_email, saved.family_name),
            ),
        )
        director_sent = False
        if director_email:
            director_sent = self._notify(
                saved, "director_notification",
                lambda port: port.send_director_notification(
                    self._message(saved, director_email, director_name, notification_type="new"),
                ),
            )
        return ScheduleAppointmentResult(
            appointment=saved,
            confirmation_email_sent=confirmation_sent,
            director_notification_sent=director_sent,
        )

    def confirm_appointment(self, business_key: str, actor_id: str) -> PrePlanningAppointment:
        return self._apply(
            business_key, actor_id, "appointment_confirmed", PrePlanningAppointment.confirm,
        )

    def cancel_appointment(
        self,
        business_key: str,
        reason: str,
        actor_id: str,
    ) -> PrePlanningAppointment:
        now = self._clock.now()
        return self._apply(
            business_key, actor_id, "appointment_cancelled",
            lambda a: a.cancel(reason, now),
        )

    def complete_appointment(
        self,
        business_key: str,
        actor_id: str,
        actual_end_time: datetime | None = None,
        notes: str | None = None,
    ) -> PrePlanningAppointment:
        now = self._clock.now()
        return self._apply(
            business_key, actor_id, "appointment_completed",
            lambda a: a.complete(now, actual_end_time, notes),
        )

    def mark_no_show(self, business_key: str, actor_id: str) -> PrePlanningAppointment:
        return self._apply(
            business_key, actor_id, "appointment_no_show", PrePlanningAppointment.mark_no_show,
        )

    def send_appointment_reminders(
        self,
        within_hours: int = REMINDER_WINDOW_HOURS,
        actor_id: str = "system",
    ) -> ReminderRunResult:
        """Email every open appointment starting within ``within_hours`` not yet reminded."""
        now = self._clock.now()
        candidates = self._appointments.find_open_starting_between(
            now, now + timedelta(hours=within_hours),
        )
        sent: list[str] = []
        failed: list[str] = []
        for appointment in candidates:
            if not appointment.needs_email_reminder(now, within_hours):
                continue
            delivered = self._notify(
                appointment, "reminder",
                lambda port, a=appointment: port.send_appointment_reminder(
                    self._message(a, a.family_email, a.family_name, notification_type="reminder"),
                ),
            )
            if not delivered:
                failed.append(appointment.business_key)
                continue
            with unit_of_work(self._session, "record_appointment_reminder"):
                self._appointments.save(appointment.record_email_reminder_sent(), actor_id)
            sent.append(appointment.business_key)

        logger.info("appointment_reminders_sent", extra={
            "checked_count": len(candidates),
            "sent_count": len(sent),
            "failed_count": len(failed),
            "within_hours": within_hours,
        })
        return ReminderRunResult(
            checked_count=len(candidates),
            sent_appointment_ids=tuple(sent),
            failed_appointment_ids=tuple(failed),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _apply(
        self,
        business_key: str,
        actor_id: str,
        event: str,
        change: Callable[[PrePlanningAppointment], PrePlanningAppointment],
    ) -> PrePlanningAppointment:
        with unit_of_work(self._session, event):
            updated = change(self._appointments.get_current(business_key))
            saved = self._appointments.save(updated, actor_id)
        logger.info(event, extra={
            "appointment_id": business_key,
            "version": saved.version,
            "status": saved.status.value,
        })
        return saved

    def _booked(self, director_id: str, from_date: date, to_date: date) -> list[BookedInterval]:
        start, end = self._day_range(from_date, to_date)
        return [
            BookedInterval(a.business_key, a.start_time, a.end_time)
            for a in self._appointments.find_by_director(director_id, start, end)
        ]

    def _day_range(self, from_date: date, to_date: date) -> tuple[datetime, datetime]:
        start = datetime.combine(from_date, datetime.min.time(), tzinfo=self._tz)
        end = datetime.combine(to_date + timedelta(days=1), datetime.min.time(), tzinfo=self._tz)
        return start, end

    @staticmethod
    def _message(
        appointment: PrePlanningAppointment,
        recipient_email: str,
        recipient_name: str,
        notification_type: str = "new",
    ) -> AppointmentEmail:
        return AppointmentEmail(
            recipient_email=recipient_email,
            recipient_name=recipient_name,
            director_name=appointment.director_name,
            family_name=appointment.family_name,
            start_time=appointment.start_time,
            end_time=appointment.end_time,
            notification_type=notification_type,
            family_phone=appointment.family_phone,
            notes=appointment.notes,
        )

    def _notify(
        self,
        appointment: PrePlanningAppointment,
        kind: str,
        send: Callable[[EmailPort], EmailResult],
    ) -> bool:
        if self._email is None:
            logger.warning("appointment_email_skipped", extra={
                "appointment_id": appointment.business_key,
                "kind": kind,
                "reason": "no email port configured",
            })
            return False
        try:
            result = send(self._email)
        except Exception as exc:
            logger.warning("appointment_email_failed", extra={
                "appointment_id": appointment.business_key,
                "kind": kind,
                "error_type": type(exc).__name__,
                "error": str(exc),
            })
            return False
        if not result.delivered:
            logger.warning("appointment_email_not_delivered", extra={
                "appointment_id": appointment.business_key,
                "kind": kind,
                "status": result.status,
            })
        return result.delivered
