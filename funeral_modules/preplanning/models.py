"""
Pre-Planning Appointment Domain Model (``funeral_modules.preplanning.models``).

Responsibility
--------------
Pre-need consultations between a family and a funeral director, with the
scheduling rules every booking must satisfy.

Invariants enforced
-------------------
* Start and end are timezone-aware and start precedes end.
* A booking lies on a business day within business hours, lasts at least
  the minimum duration and does not touch the lunch break
  (``check_business_hours``).
* Cancellation requires at least 24 hours notice.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from enum import Enum
from uuid import UUID

from funeral_engines.availability import BusinessHours, intervals_overlap
from funeral_kernel.domain.temporal import new_business_key, next_version
from funeral_kernel.exceptions import (
    AppointmentCancellationError,
    BusinessHoursError,
    ValidationError,
)
from funeral_modules.preplanning.workflows import APPOINTMENT_WORKFLOW

CANCELLATION_NOTICE_HOURS = 24
REMINDER_WINDOW_HOURS = 36
REMINDER_MIN_LEAD_HOURS = 1


def is_plausible_email(address: str | None) -> bool:
    """One address with an @ and no line breaks, so it is safe in a mail header."""
    if not address or "@" not in address:
        return False
    return not any(c in address for c in "\r\n")


class AppointmentStatus(str, Enum):
    """Must align with ``workflows.APPOINTMENT_WORKFLOW.states``."""
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


def check_business_hours(
    start: datetime,
    end: datetime,
    hours: BusinessHours,
    tz: tzinfo,
) -> None:
    """
    Raise ``BusinessHoursError`` unless [start, end) is bookable.

    Wall-clock rules are evaluated in ``tz``.
    """
    local_start, local_end = start.astimezone(tz), end.astimezone(tz)
    day = local_start.date()
    if not hours.is_business_day(day) or local_end.date() != day:
        raise BusinessHoursError(
            "Appointments can only be scheduled on weekdays (Monday-Friday)"
        )
    if (
        local_start < hours.opening(day, tz)
        or local_end > hours.closing(day, tz)
        or local_end - local_start < timedelta(minutes=hours.min_duration_minutes)
    ):
        raise BusinessHoursError(
            f"Appointments must be within business hours "
            f"({hours.open_hour}:00-{hours.close_hour}:00) and at least "
            f"{hours.min_duration_minutes} minutes long"
        )
    lunch_start, lunch_end = hours.lunch(day, tz)
    if intervals_overlap(local_start, local_end, lunch_start, lunch_end):
        raise BusinessHoursError(
            f"Appointments cannot overlap with the lunch break "
            f"({hours.lunch_start_hour}:00-{hours.lunch_end_hour}:00)"
        )


@dataclass(frozen=True)
class PrePlanningAppointment:
    business_key: str
    funeral_home_id: str
    director_id: str
    director_name: str
    family_name: str
    family_email: str
    family_phone: str
    start_time: datetime
    end_time: datetime
    status: AppointmentStatus
    created_by: str
    notes: str | None = None
    reminder_email_sent: bool = False
    reminder_sms_sent: bool = False
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancel_reason: str | None = None
    version: int = 1
    created_at: datetime | None = None
    id: UUID | None = None

    @classmethod
    def create(
        cls,
        funeral_home_id: str,
        director_id: str,
        director_name: str,
        family_name: str,
        family_email: str,
        family_phone: str,
        start_time: datetime,
        end_time: datetime,
        created_by: str,
        notes: str | None = None,
        business_key: str | None = None,
    ) -> PrePlanningAppointment:
        if not director_id:
            raise ValidationError("Director is required", field="director_id")
        if not family_name or not family_name.strip():
            raise ValidationError("Family name is required", field="family_name")
        if not is_plausible_email(family_email):
            raise ValidationError("A valid family email is required", field="family_email")
        if start_time.tzinfo is None or end_time.tzinfo is None:
            raise ValidationError("Appointment times must be timezone-aware", field="start_time")
        if end_time <= start_time:
            raise ValidationError("Appointment must end after it starts", field="end_time")
        return cls(
            business_key=business_key or new_business_key(),
            funeral_home_id=funeral_home_id,
            director_id=director_id,
            director_name=director_name,
            family_name=family_name.strip(),
            family_email=family_email.strip(),
            family_phone=family_phone,
            start_time=start_time,
            end_time=end_time,
            status=AppointmentStatus(APPOINTMENT_WORKFLOW.initial_state),
            created_by=created_by,
            notes=notes,
        )

    # -- transitions ------------------------------------------------------

    def transition_status(self, new_status: AppointmentStatus, **changes) -> PrePlanningAppointment:
        APPOINTMENT_WORKFLOW.require_transition(
            "PrePlanningAppointment", self.status.value, AppointmentStatus(new_status).value,
        )
        return next_version(self, status=AppointmentStatus(new_status), **changes)

    def confirm(self) -> PrePlanningAppointment:
        return self.transition_status(AppointmentStatus.CONFIRMED)

    def complete(
        self,
        completed_at: datetime,
        actual_end_time: datetime | None = None,
        notes: str | None = None,
    ) -> PrePlanningAppointment:
        return self.transition_status(
            AppointmentStatus.COMPLETED,
            completed_at=completed_at,
            end_time=actual_end_time or self.end_time,
            notes=notes or self.notes,
        )

    def cancel(self, reason: str, now: datetime) -> PrePlanningAppointment:
        if self.is_open and not self.can_be_cancelled(now):
            raise AppointmentCancellationError(
                self.business_key,
                f"Appointments must be cancelled at least {CANCELLATION_NOTICE_HOURS} hours "
                f"in advance ({self.hours_until(now):.1f} hours remaining)",
            )
        return self.transition_status(
            AppointmentStatus.CANCELLED, cancelled_at=now, cancel_reason=reason,
        )

    def mark_no_show(self) -> PrePlanningAppointment:
        return self.transition_status(AppointmentStatus.NO_SHOW)

    def record_email_reminder_sent(self) -> PrePlanningAppointment:
        return next_version(self, reminder_email_sent=True)

    def record_sms_reminder_sent(self) -> PrePlanningAppointment:
        return next_version(self, reminder_sms_sent=True)

    # -- derived ----------------------------------------------------------

    @property
    def duration_minutes(self) -> int:
        return int((self.end_time - self.start_time).total_seconds() // 60)

    @property
    def is_open(self) -> bool:
        return self.status in (AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED)

    @property
    def is_cancelled(self) -> bool:
        return self.status is AppointmentStatus.CANCELLED

    def hours_until(self, now: datetime) -> float:
        return (self.start_time - now).total_seconds() / 3600

    def is_in_the_past(self, now: datetime) -> bool:
        return self.start_time < now

    def can_be_cancelled(self, now: datetime) -> bool:
        return self.hours_until(now) >= CANCELLATION_NOTICE_HOURS

    def needs_email_reminder(self, now: datetime, window_hours: int = REMINDER_WINDOW_HOURS) -> bool:
        if not self.is_open or self.reminder_email_sent:
            return False
        return REMINDER_MIN_LEAD_HOURS <= self.hours_until(now) <= window_hours

    def overlaps(self, other: PrePlanningAppointment) -> bool:
        return intervals_overlap(self.start_time, self.end_time, other.start_time, other.end_time)


@dataclass(frozen=True)
class ScheduleAppointmentResult:
    appointment: PrePlanningAppointment
    confirmation_email_sent: bool
    director_notification_sent: bool


@dataclass(frozen=True)
class ReminderRunResult:
    checked_count: int
    sent_appointment_ids: tuple[str, ...]
    failed_appointment_ids: tuple[str, ...]

    @property
    def sent_count(self) -> int:
        return len(self.sent_appointment_ids)
