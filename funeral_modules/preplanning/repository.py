"""Pre-planning appointment repository."""

from datetime import datetime

from funeral_kernel.db.scd2 import SCD2Repository
from funeral_modules.preplanning.models import AppointmentStatus, PrePlanningAppointment
from funeral_modules.preplanning.orm import PrePlanningAppointmentModel

_OPEN_STATUSES = (AppointmentStatus.SCHEDULED.value, AppointmentStatus.CONFIRMED.value)


class PrePlanningAppointmentRepository(
    SCD2Repository[PrePlanningAppointmentModel, PrePlanningAppointment]
):
    model = PrePlanningAppointmentModel
    entity_type = "PrePlanningAppointment"

    def find_by_director(
        self,
        director_id: str,
        start: datetime,
        end: datetime,
        include_cancelled: bool = False,
    ) -> list[PrePlanningAppointment]:
        """Current appointments of the director overlapping [start, end), by start time."""
        m = PrePlanningAppointmentModel
        criteria = [m.director_id == director_id, m.start_time < end, m.end_time > start]
        if not include_cancelled:
            criteria.append(m.status != AppointmentStatus.CANCELLED.value)
        return self.find_current(*criteria, order_by=m.start_time)

    def find_open_starting_between(
        self,
        start: datetime,
        end: datetime,
    ) -> list[PrePlanningAppointment]:
        m = PrePlanningAppointmentModel
        return self.find_current(
            m.status.in_(_OPEN_STATUSES),
            m.start_time >= start,
            m.start_time <= end,
            order_by=m.start_time,
        )
