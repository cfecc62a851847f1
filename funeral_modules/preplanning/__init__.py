"""
Pre-Planning Module (``funeral_modules.preplanning``).

Pre-need consultations with funeral directors: scheduling rules, director
availability, reminders and family/director notifications.
"""

from funeral_modules.preplanning.models import (
    AppointmentStatus,
    PrePlanningAppointment,
    ReminderRunResult,
    ScheduleAppointmentResult,
    check_business_hours,
)
from funeral_modules.preplanning.repository import PrePlanningAppointmentRepository
from funeral_modules.preplanning.service import PrePlanningService
from funeral_modules.preplanning.workflows import APPOINTMENT_WORKFLOW

__all__ = [
    "APPOINTMENT_WORKFLOW",
    "AppointmentStatus",
    "PrePlanningAppointment",
    "PrePlanningAppointmentRepository",
    "PrePlanningService",
    "ReminderRunResult",
    "ScheduleAppointmentResult",
    "check_business_hours",
]
