"""
Payment Management Policy (``funeral_modules.payments.policy``).

Responsibility
--------------
Per-funeral-home rules for accepting, approving and refunding payments.
Stored as an SCD2 entity whose business key is the funeral home id, so a
refund decided last month can be audited against the policy in force then.

Invariants enforced
-------------------
* Monetary thresholds are non-negative.
* ``allowed_payment_methods`` only names known payment methods.
* ``aging_buckets`` is strictly increasing and positive.
* ``interest_rate`` lies in [0, 1].
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from funeral_kernel.domain.temporal import next_version
from funeral_kernel.exceptions import ValidationError
from funeral_modules.payments.models import PaymentMethod

STATS_CALCULATION_METHODS = ("sum", "count", "average")
SORT_ORDERS = ("asc", "desc")


class PaymentPolicyPreset(str, Enum):
    STANDARD = "standard"
    STRICT = "strict"
    PERMISSIVE = "permissive"


@dataclass(frozen=True)
class PaymentManagementPolicy:
    business_key: str
    created_by: str
    version: int = 1
    created_at: datetime | None = None
    id: UUID | None = None

    # Approval
    require_approval_above_amount: Decimal = Decimal("500")
    auto_approve_up_to_amount: Decimal = Decimal("5000")
    require_approval_for_all_checks: bool = False
    require_approval_for_all_ach: bool = False

    # Methods
    allowed_payment_methods: tuple[str, ...] = ("cash", "check", "ach", "credit_card")
    enable_cash_payments: bool = True
    enable_check_payments: bool = True
    enable_ach_payments: bool = True
    enable_credit_card: bool = False

    # Checks
    require_check_number: bool = True
    require_check_date: bool = True
    allow_post_dated_checks: bool = False
    max_check_age_days: int = 180

    # Refunds
    allow_refunds: bool = True
    max_refund_days: int = 30
    require_original_payment_proof: bool = True
    require_refund_approval: bool = True
    refund_approval_threshold: Decimal = Decimal("500")

    # ACH
    require_ach_verification: bool = True
    max_ach_retries: int = 3
    ach_retry_delay_hours: int = 24

    # Retention
    retention_days: int = 2555
    archive_payments_after_days: int = 365
    enable_payment_history: bool = True

    # Accounts receivable
    aging_buckets: tuple[int, ...] = (30, 60, 90, 120)
    mark_overdue_after_days: int = 30
    calculate_interest_on_overdue: bool = False
    interest_rate: Decimal = Decimal("0.01")

    # Listing
    stats_calculation_method: str = "sum"
    default_page_size: int = 25
    list_default_sort_order: str = "desc"

    # Notifications
    enable_payment_notifications: bool = True
    send_receipt_for_amount_over: Decimal = Decimal("0")
    payment_reminder_days_before: int = 7

    reason: str | None = None

    def __post_init__(self) -> None:
        for name in (
            "require_approval_above_amount",
            "auto_approve_up_to_amount",
            "refund_approval_threshold",
            "send_receipt_for_amount_over",
        ):
            if getattr(self, name) < 0:
                raise ValidationError(f"{name} cannot be negative", field=name)
        for name in (
            "max_check_age_days",
            "max_refund_days",
            "max_ach_retries",
            "ach_retry_delay_hours",
            "retention_days",
            "archive_payments_after_days",
            "mark_overdue_after_days",
            "payment_reminder_days_before",
        ):
            if getattr(self, name) < 0:
                raise ValidationError(f"{name} cannot be negative", field=name)

        known = {m.value for m in PaymentMethod}
        unknown = [m for m in self.allowed_payment_methods if m not in known]
        if unknown:
            raise ValidationError(
                f"Unknown payment methods: {', '.join(unknown)}",
                field="allowed_payment_methods",
            )
        if not self.allowed_payment_methods:
            raise ValidationError(
                "At least one payment method must be allowed",
                field="allowed_payment_methods",
            )

        buckets = self.aging_buckets
        if not buckets or buckets[0] <= 0 or any(a >= b for a, b in zip(buckets, buckets[1:])):
            raise ValidationError(
                "Aging buckets must be positive and strictly increasing",
                field="aging_buckets",
            )
        if not Decimal("0") <= self.interest_rate <= Decimal("1"):
            raise ValidationError("Interest rate must be between 0 and 1", field="interest_rate")
        if self.stats_calculation_method not in STATS_CALCULATION_METHODS:
            raise ValidationError(
                f"Unknown stats calculation method: {self.stats_calculation_method}",
                field="stats_calculation_method",
            )
        if not 1 <= self.default_page_size <= 100:
            raise ValidationError(
                "Default page size must be between 1 and 100", field="default_page_size",
            )
        if self.list_default_sort_order not in SORT_ORDERS:
            raise ValidationError(
                f"Unknown sort order: {self.list_default_sort_order}",
                field="list_default_sort_order",
            )

    @classmethod
    def from_preset(
        cls,
        funeral_home_id: str,
        created_by: str,
        preset: PaymentPolicyPreset = PaymentPolicyPreset.STANDARD,
        reason: str | None = None,
    ) -> PaymentManagementPolicy:
        return cls(
            business_key=funeral_home_id,
            created_by=created_by,
            reason=reason,
            **PRESET_OVERRIDES[PaymentPolicyPreset(preset)],
        )

    @property
    def funeral_home_id(self) -> str:
        return self.business_key

    def with_changes(self, reason: str | None = None, **changes: Any) -> PaymentManagementPolicy:
        """Next version with ``changes`` applied; unknown setting names are rejected."""
        settable = set(SETTING_NAMES)
        unknown = sorted(set(changes) - settable)
        if unknown:
            raise ValidationError(
                f"Unknown payment policy settings: {', '.join(unknown)}", field=unknown[0],
            )
        for name in ("allowed_payment_methods", "aging_buckets"):
            if name in changes:
                changes[name] = tuple(changes[name])
        return next_version(self, reason=reason, **changes)

    def is_method_enabled(self, method: PaymentMethod) -> bool:
        method = PaymentMethod(method)
        if method.value not in self.allowed_payment_methods:
            return False
        if method is PaymentMethod.CASH:
            return self.enable_cash_payments
        if method is PaymentMethod.CHECK:
            return self.enable_check_payments
        if method is PaymentMethod.ACH:
            return self.enable_ach_payments
        if method in (PaymentMethod.CREDIT_CARD, PaymentMethod.DEBIT_CARD):
            return self.enable_credit_card
        return True

    def requires_payment_approval(self, method: PaymentMethod, amount: Decimal) -> bool:
        if amount > self.require_approval_above_amount:
            return True
        if method is PaymentMethod.CHECK and self.require_approval_for_all_checks:
            return True
        return method is PaymentMethod.ACH and self.require_approval_for_all_ach

    def requires_refund_approval(self, amount: Decimal) -> bool:
        return self.require_refund_approval and amount > self.refund_approval_threshold


SETTING_NAMES = tuple(
    f.name
    for f in fields(PaymentManagementPolicy)
    if f.name not in ("business_key", "created_by", "version", "created_at", "id", "reason")
)

PRESET_OVERRIDES: dict[PaymentPolicyPreset, dict[str, Any]] = {
    PaymentPolicyPreset.STANDARD: {},
    PaymentPolicyPreset.STRICT: {
        "require_approval_above_amount": Decimal("100"),
        "auto_approve_up_to_amount": Decimal("500"),
        "require_approval_for_all_checks": True,
        "require_approval_for_all_ach": True,
        "allowed_payment_methods": ("check", "ach"),
        "enable_cash_payments": False,
        "max_check_age_days": 90,
        "max_refund_days": 14,
        "refund_approval_threshold": Decimal("100"),
        "max_ach_retries": 1,
        "ach_retry_delay_hours": 48,
        "retention_days": 3650,
        "archive_payments_after_days": 180,
        "aging_buckets": (7, 14, 30, 60, 90, 120),
        "mark_overdue_after_days": 0,
        "calculate_interest_on_overdue": True,
        "interest_rate": Decimal("0.02"),
        "payment_reminder_days_before": 14,
    },
    PaymentPolicyPreset.PERMISSIVE: {
        "require_approval_above_amount": Decimal("2000"),
        "auto_approve_up_to_amount": Decimal("10000"),
        "enable_credit_card": True,
        "require_check_number": False,
        "require_check_date": False,
        "allow_post_dated_checks": True,
        "max_check_age_days": 365,
        "max_refund_days": 90,
        "require_original_payment_proof": False,
        "require_refund_approval": False,
        "refund_approval_threshold": Decimal("10000"),
        "require_ach_verification": False,
        "max_ach_retries": 5,
        "ach_retry_delay_hours": 12,
        "retention_days": 730,
        "archive_payments_after_days": 90,
        "enable_payment_history": False,
        "aging_buckets": (30, 60, 90),
        "mark_overdue_after_days": 60,
        "interest_rate": Decimal("0"),
        "enable_payment_notifications": False,
        "send_receipt_for_amount_over": Decimal("1000"),
        "payment_reminder_days_before": 3,
    },
}
