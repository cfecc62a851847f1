"""
Contract Domain Models (``funeral_modules.contracts.models``).

Responsibility
--------------
The locally versioned ``Contract`` (the document the family reviews and
signs) and the value objects returned by contract renewal.

Invariants enforced
-------------------
* Terms and conditions are required.
* subtotal = sum of line totals; tax = 6% of subtotal rounded to cents;
  total = subtotal + tax.
* Only draft contracts with at least one line can be submitted for review.
* Signatures are collected only while pending signatures; a signer signs
  once.
* A fully signed contract never changes again.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from funeral_kernel.db.types import ZERO, parse_decimal, round_money, to_decimal
from funeral_kernel.domain.temporal import new_business_key, next_version
from funeral_kernel.exceptions import BusinessRuleViolationError, ValidationError
from funeral_modules.contracts.workflows import CONTRACT_WORKFLOW
from funeral_services.ports import GoContract

TAX_RATE = Decimal("0.06")


class ContractStatus(str, Enum):
    """Must align with ``workflows.CONTRACT_WORKFLOW.states``."""
    DRAFT = "draft"
    PENDING_REVIEW = "pending_review"
    PENDING_SIGNATURES = "pending_signatures"
    FULLY_SIGNED = "fully_signed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ContractItem:
    description: str
    quantity: Decimal
    unit_price: Decimal
    gl_account_id: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "quantity", parse_decimal(self.quantity, "quantity"))
        object.__setattr__(self, "unit_price", parse_decimal(self.unit_price, "unit_price"))
        if not self.description or not self.description.strip():
            raise ValidationError("Line description is required", field="description")
        if self.quantity <= 0:
            raise ValidationError(
                f"Quantity must be positive: {self.description}", field="quantity",
            )
        if self.unit_price < 0:
            raise ValidationError(
                f"Unit price cannot be negative: {self.description}", field="unit_price",
            )

    @property
    def total_price(self) -> Decimal:
        return round_money(self.quantity * self.unit_price)

    def to_dict(self) -> dict[str, Any]:
        return {
            "description": self.description,
            "quantity": str(self.quantity),
            "unit_price": str(self.unit_price),
            "gl_account_id": self.gl_account_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContractItem:
        return cls(
            description=data["description"],
            quantity=to_decimal(data["quantity"], "quantity"),
            unit_price=to_decimal(data["unit_price"], "unit_price"),
            gl_account_id=data.get("gl_account_id", ""),
        )


def calculate_totals(
    services: tuple[ContractItem, ...],
    products: tuple[ContractItem, ...],
) -> tuple[Decimal, Decimal, Decimal]:
    """(subtotal, tax, total) for the given lines."""
    subtotal = round_money(sum((i.total_price for i in services + products), ZERO))
    tax = round_money(subtotal * TAX_RATE)
    return subtotal, tax, subtotal + tax


@dataclass(frozen=True)
class Contract:
    business_key: str
    case_id: str
    status: ContractStatus
    terms_and_conditions: str
    created_by: str
    services: tuple[ContractItem, ...] = ()
    products: tuple[ContractItem, ...] = ()
    subtotal: Decimal = ZERO
    tax: Decimal = ZERO
    total_amount: Decimal = ZERO
    signed_by: tuple[str, ...] = ()
    version: int = 1
    created_at: datetime | None = None
    id: UUID | None = None

    @classmethod
    def create(
        cls,
        case_id: str,
        terms_and_conditions: str,
        created_by: str,
        services: tuple[ContractItem, ...] = (),
        products: tuple[ContractItem, ...] = (),
        business_key: str | None = None,
    ) -> Contract:
        if not terms_and_conditions or not terms_and_conditions.strip():
            raise ValidationError(
                "Terms and conditions are required", field="terms_and_conditions",
            )
        if not case_id:
            raise ValidationError("Case id is required", field="case_id")
        services, products = tuple(services), tuple(products)
        subtotal, tax, total = calculate_totals(services, products)
        return cls(
            business_key=business_key or new_business_key(),
            case_id=case_id,
            status=ContractStatus(CONTRACT_WORKFLOW.initial_state),
            terms_and_conditions=terms_and_conditions,
            created_by=created_by,
            services=services,
            products=products,
            subtotal=subtotal,
            tax=tax,
            total_amount=total,
        )

    def transition_status(self, new_status: ContractStatus, **changes) -> Contract:
        if self.is_signed:
            raise BusinessRuleViolationError(
                "Cannot modify a fully signed contract",
                rule="signed_contract_immutable",
            )
        CONTRACT_WORKFLOW.require_transition(
            "Contract", self.status.value, ContractStatus(new_status).value,
        )
        return next_version(self, status=ContractStatus(new_status), **changes)

    def submit_for_review(self) -> Contract:
        if self.status is not ContractStatus.DRAFT:
            raise BusinessRuleViolationError(
                "Only draft contracts can be submitted for review",
                rule="draft_only_review",
            )
        if not self.services and not self.products:
            raise BusinessRuleViolationError(
                "Contract must include at least one service or product",
                rule="contract_not_empty",
            )
        return self.transition_status(ContractStatus.PENDING_REVIEW)

    def approve_for_signature(self) -> Contract:
        return self.transition_status(ContractStatus.PENDING_SIGNATURES)

    def return_to_draft(self) -> Contract:
        return self.transition_status(ContractStatus.DRAFT)

    def add_signature(self, signer_id: str) -> Contract:
        if not signer_id:
            raise ValidationError("Signer is required", field="signer_id")
        if not self.is_pending_signatures:
            raise BusinessRuleViolationError(
                f"Cannot sign a contract in {self.status.value} status",
                rule="signatures_pending_only",
            )
        if signer_id in self.signed_by:
            raise BusinessRuleViolationError(
                f"{signer_id} has already signed this contract",
                rule="single_signature_per_signer",
            )
        return next_version(self, signed_by=self.signed_by + (signer_id,))

    def mark_fully_signed(self) -> Contract:
        if not self.signed_by:
            raise BusinessRuleViolationError(
                "Contract has no signatures", rule="signature_required",
            )
        return self.transition_status(ContractStatus.FULLY_SIGNED)

    def cancel(self) -> Contract:
        return self.transition_status(ContractStatus.CANCELLED)

    @property
    def can_be_modified(self) -> bool:
        return self.status in (ContractStatus.DRAFT, ContractStatus.PENDING_REVIEW)

    @property
    def is_signed(self) -> bool:
        return self.status is ContractStatus.FULLY_SIGNED

    @property
    def is_pending_signatures(self) -> bool:
        return self.status is ContractStatus.PENDING_SIGNATURES


@dataclass(frozen=True)
class PriceComparison:
    original_total: Decimal
    new_total: Decimal
    difference: Decimal
    percent_change: Decimal


@dataclass(frozen=True)
class RenewalMetadata:
    renewal_reason: str
    renewed_by: str
    renewed_at: datetime
    original_contract_id: str
    price_adjustment_factor: Decimal
    notes: str | None = None


@dataclass(frozen=True)
class RenewContractResult:
    new_contract: GoContract
    original_contract: GoContract
    case_id: str
    price_comparison: PriceComparison
    renewal_metadata: RenewalMetadata
