"""
Payment Domain Models (``funeral_modules.payments.models``).

Responsibility
--------------
The ``Payment`` entity (a customer payment against a case) and the result
objects returned by the payment use cases.

Invariants enforced
-------------------
* 0 < amount <= 1,000,000, rounded to cents at creation.
* Amount, method and case are fixed after creation; only status and the
  processing details change between versions.
* Status changes follow ``PAYMENT_WORKFLOW``; in particular a pending
  payment cannot succeed without passing through processing.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from funeral_kernel.db.types import parse_decimal, round_money
from funeral_kernel.domain.temporal import new_business_key, next_version
from funeral_kernel.exceptions import BusinessRuleViolationError, ValidationError
from funeral_modules.payments.workflows import PAYMENT_WORKFLOW

MAX_PAYMENT_AMOUNT = Decimal("1000000")


class PaymentMethod(str, Enum):
    CASH = "cash"
    CHECK = "check"
    ACH = "ach"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    INSURANCE_ASSIGNMENT = "insurance_assignment"
    PAYMENT_PLAN = "payment_plan"


class PaymentStatus(str, Enum):
    """Must align with ``workflows.PAYMENT_WORKFLOW.states``."""
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


@dataclass(frozen=True)
class Payment:
    business_key: str
    case_id: str
    amount: Decimal
    method: PaymentMethod
    status: PaymentStatus
    created_by: str
    version: int = 1
    created_at: datetime | None = None
    id: UUID | None = None
    stripe_payment_intent_id: str | None = None
    stripe_payment_method_id: str | None = None
    receipt_url: str | None = None
    failure_reason: str | None = None
    check_number: str | None = None
    check_date: date | None = None
    notes: str | None = None

    @classmethod
    def create(
        cls,
        case_id: str,
        amount: Decimal | int | str,
        method: PaymentMethod,
        created_by: str,
        notes: str | None = None,
        check_number: str | None = None,
        check_date: date | None = None,
        stripe_payment_intent_id: str | None = None,
        business_key: str | None = None,
    ) -> Payment:
        value = parse_decimal(amount, "amount")
        if value <= 0:
            raise ValidationError("Payment amount must be positive", field="amount")
        if value > MAX_PAYMENT_AMOUNT:
            raise ValidationError("Payment amount exceeds maximum allowed", field="amount")
        if not case_id:
            raise ValidationError("Case id is required", field="case_id")
        return cls(
            business_key=business_key or new_business_key(),
            case_id=case_id,
            amount=round_money(value),
            method=PaymentMethod(method),
            status=PaymentStatus(PAYMENT_WORKFLOW.initial_state),
            created_by=created_by,
            notes=notes,
            check_number=check_number,
            check_date=check_date,
            stripe_payment_intent_id=stripe_payment_intent_id,
        )

    def transition_status(self, new_status: PaymentStatus, **changes) -> Payment:
        PAYMENT_WORKFLOW.require_transition(
            "Payment", self.status.value, PaymentStatus(new_status).value,
        )
        return next_version(self, status=PaymentStatus(new_status), **changes)

    def mark_processing(self, stripe_payment_method_id: str | None = None) -> Payment:
        return self.transition_status(
            PaymentStatus.PROCESSING,
            stripe_payment_method_id=stripe_payment_method_id or self.stripe_payment_method_id,
        )

    def mark_succeeded(self, receipt_url: str | None = None) -> Payment:
        return self.transition_status(
            PaymentStatus.SUCCEEDED, receipt_url=receipt_url or self.receipt_url,
        )

    def mark_failed(self, reason: str) -> Payment:
        return self.transition_status(PaymentStatus.FAILED, failure_reason=reason)

    def cancel(self) -> Payment:
        return self.transition_status(PaymentStatus.CANCELLED)

    def refund(self) -> Payment:
        if not self.can_be_refunded:
            raise BusinessRuleViolationError(
                f"Cannot refund payment with status: {self.status.value}",
                rule="refund_succeeded_only",
            )
        return self.transition_status(PaymentStatus.REFUNDED)

    @property
    def is_pending(self) -> bool:
        return self.status is PaymentStatus.PENDING

    @property
    def is_successful(self) -> bool:
        return self.status is PaymentStatus.SUCCEEDED

    @property
    def can_be_refunded(self) -> bool:
        return self.status is PaymentStatus.SUCCEEDED

    @property
    def is_final(self) -> bool:
        return PAYMENT_WORKFLOW.is_terminal(self.status.value)


@dataclass(frozen=True)
class ManualPaymentResult:
    payment: Payment
    requires_approval: bool


@dataclass(frozen=True)
class RefundResult:
    original_payment: Payment
    refund_payment: Payment
    requires_approval: bool


@dataclass(frozen=True)
class PaymentStats:
    """Counts and totals of a case's current payment versions."""

    case_id: str
    payment_count: int
    succeeded_count: int
    pending_count: int
    failed_count: int
    refunded_count: int
    total_succeeded: Decimal
    total_pending: Decimal
    total_refunded: Decimal
