"""Pre-planning appointment ORM model (``funeral_modules.preplanning.orm``)."""

from datetime import datetime

from sqlalchemy import Boolean, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from funeral_kernel.db.base import TemporalBase, temporal_table_args


class PrePlanningAppointmentModel(TemporalBase):
    """ORM model for pre-planning appointment versions."""

    __tablename__ = "preplanning_appointments"

    __table_args__ = temporal_table_args(
        "preplanning_appointments",
        Index("idx_appointments_director_start", "director_id", "start_time"),
        Index("idx_appointments_status_current", "status", "is_current"),
    )

    funeral_home_id: Mapped[str] = mapped_column(String(100), nullable=False)
    director_id: Mapped[str] = mapped_column(String(100), nullable=False)
    director_name: Mapped[str] = mapped_column(String(255), nullable=False)
    family_name: Mapped[str] = mapped_column(String(255), nullable=False)
    family_email: Mapped[str] = mapped_column(String(255), nullable=False)
    family_phone: Mapped[str] = mapped_column(String(50), nullable=False)
    start_time: Mapped[datetime] = mapped_column(nullable=False)
    end_time: Mapped[datetime] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    reminder_email_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reminder_sms_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(nullable=True)
    cancel_reason: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    def to_dto(self):
        from funeral_modules.preplanning.models import AppointmentStatus, PrePlanningAppointment

        return PrePlanningAppointment(
            id=self.id,
            business_key=self.business_key,
            version=self.version,
            created_at=self.created_at,
            created_by=self.created_by,
            funeral_home_id=self.funeral_home_id,
            director_id=self.director_id,
            director_name=self.director_name,
            family_name=self.family_name,
            family_email=self.family_email,
            family_phone=self.family_phone,
            start_time=self.start_time,
            end_time=self.end_time,
            status=AppointmentStatus(self.status),
            notes=self.notes,
            reminder_email_sent=self.reminder_email_sent,
            reminder_sms_sent=self.reminder_sms_sent,
            completed_at=self.completed_at,
            cancelled_at=self.cancelled_at,
            cancel_reason=self.cancel_reason,
        )

    @classmethod
    def from_dto(cls, dto) -> "PrePlanningAppointmentModel":
        return cls(
            funeral_home_id=dto.funeral_home_id,
            director_id=dto.director_id,
            director_name=dto.director_name,
            family_name=dto.family_name,
            family_email=dto.family_email,
            family_phone=dto.family_phone,
            start_time=dto.start_time,
            end_time=dto.end_time,
            status=dto.status.value,
            notes=dto.notes,
            reminder_email_sent=dto.reminder_email_sent,
            reminder_sms_sent=dto.reminder_sms_sent,
            completed_at=dto.completed_at,
            cancelled_at=dto.cancelled_at,
            cancel_reason=dto.cancel_reason,
        )

    def __repr__(self) -> str:
        return (
            f"<PrePlanningAppointmentModel {self.business_key} v{self.version} "
            f"{self.director_id} {self.start_time}>"
        )
