"""
Case ORM Model (``funeral_modules.case.orm``).

SQLAlchemy persistence for the ``Case`` entity.  One row per version;
SCD2 columns come from ``TemporalBase``.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Date, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from funeral_kernel.db.base import TemporalBase, temporal_table_args


class CaseModel(TemporalBase):
    """
    ORM model for case versions.

    Guarantees:
        - Enum fields stored as their string values.
        - arrangements stored as JSON.
    """

    __tablename__ = "cases"

    __table_args__ = temporal_table_args(
        "cases",
        Index("idx_cases_funeral_home_current", "funeral_home_id", "is_current"),
        Index("idx_cases_go_contract_id", "go_contract_id"),
    )

    funeral_home_id: Mapped[str] = mapped_column(String(100), nullable=False)
    decedent_name: Mapped[str] = mapped_column(String(255), nullable=False)
    case_type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    decedent_date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    decedent_date_of_death: Mapped[date | None] = mapped_column(Date, nullable=True)
    service_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    service_date: Mapped[datetime | None] = mapped_column(nullable=True)
    arrangements: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    go_contract_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    revenue_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    finalized_at: Mapped[datetime | None] = mapped_column(nullable=True)
    gl_journal_entry_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    cogs_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    cogs_journal_entry_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    merchandise_delivered_at: Mapped[datetime | None] = mapped_column(nullable=True)
    merchandise_delivered_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def to_dto(self):
        from funeral_modules.case.models import Case, CaseStatus, CaseType, ServiceType

        return Case(
            id=self.id,
            business_key=self.business_key,
            version=self.version,
            created_at=self.created_at,
            created_by=self.created_by,
            funeral_home_id=self.funeral_home_id,
            decedent_name=self.decedent_name,
            case_type=CaseType(self.case_type),
            status=CaseStatus(self.status),
            decedent_date_of_birth=self.decedent_date_of_birth,
            decedent_date_of_death=self.decedent_date_of_death,
            service_type=ServiceType(self.service_type) if self.service_type else None,
            service_date=self.service_date,
            arrangements=dict(self.arrangements or {}),
            go_contract_id=self.go_contract_id,
            revenue_amount=self.revenue_amount,
            finalized_at=self.finalized_at,
            gl_journal_entry_id=self.gl_journal_entry_id,
            cogs_amount=self.cogs_amount,
            cogs_journal_entry_id=self.cogs_journal_entry_id,
            merchandise_delivered_at=self.merchandise_delivered_at,
            merchandise_delivered_by=self.merchandise_delivered_by,
        )

    @classmethod
    def from_dto(cls, dto) -> "CaseModel":
        return cls(
            funeral_home_id=dto.funeral_home_id,
            decedent_name=dto.decedent_name,
            case_type=dto.case_type.value,
            status=dto.status.value,
            decedent_date_of_birth=dto.decedent_date_of_birth,
            decedent_date_of_death=dto.decedent_date_of_death,
            service_type=dto.service_type.value if dto.service_type else None,
            service_date=dto.service_date,
            arrangements=dict(dto.arrangements),
            go_contract_id=dto.go_contract_id,
            revenue_amount=dto.revenue_amount,
            finalized_at=dto.finalized_at,
            gl_journal_entry_id=dto.gl_journal_entry_id,
            cogs_amount=dto.cogs_amount,
            cogs_journal_entry_id=dto.cogs_journal_entry_id,
            merchandise_delivered_at=dto.merchandise_delivered_at,
            merchandise_delivered_by=dto.merchandise_delivered_by,
        )

    def __repr__(self) -> str:
        return (
            f"<CaseModel {self.business_key} v{self.version} "
            f"status={self.status} current={self.is_current}>"
        )
