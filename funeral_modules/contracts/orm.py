"""
Contract ORM Model (``funeral_modules.contracts.orm``).

Line items and signatures are stored as JSON arrays on each version row.
"""

from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from funeral_kernel.db.base import TemporalBase, temporal_table_args


class ContractModel(TemporalBase):
    """ORM model for contract versions."""

    __tablename__ = "contracts"

    __table_args__ = temporal_table_args(
        "contracts",
        Index("idx_contracts_case_current", "case_id", "is_current"),
    )

    case_id: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False)
    terms_and_conditions: Mapped[str] = mapped_column(Text, nullable=False)
    services: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    products: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    subtotal: Mapped[Decimal] = mapped_column(nullable=False)
    tax: Mapped[Decimal] = mapped_column(nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)
    signed_by: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    def to_dto(self):
        from funeral_modules.contracts.models import Contract, ContractItem, ContractStatus

        return Contract(
            id=self.id,
            business_key=self.business_key,
            version=self.version,
            created_at=self.created_at,
            created_by=self.created_by,
            case_id=self.case_id,
            status=ContractStatus(self.status),
            terms_and_conditions=self.terms_and_conditions,
            services=tuple(ContractItem.from_dict(i) for i in self.services or ()),
            products=tuple(ContractItem.from_dict(i) for i in self.products or ()),
            subtotal=self.subtotal,
            tax=self.tax,
            total_amount=self.total_amount,
            signed_by=tuple(self.signed_by or ()),
        )

    @classmethod
    def from_dto(cls, dto) -> "ContractModel":
        return cls(
            case_id=dto.case_id,
            status=dto.status.value,
            terms_and_conditions=dto.terms_and_conditions,
            services=[i.to_dict() for i in dto.services],
            products=[i.to_dict() for i in dto.products],
            subtotal=dto.subtotal,
            tax=dto.tax,
            total_amount=dto.total_amount,
            signed_by=list(dto.signed_by),
        )

    def __repr__(self) -> str:
        return f"<ContractModel {self.business_key} v{self.version} status={self.status}>"
