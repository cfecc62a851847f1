"""
Payment ORM Models (``funeral_modules.payments.orm``).

Persistence for ``Payment`` versions and ``PaymentManagementPolicy``
versions.  Policy rows are keyed by funeral home id.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import JSON, Boolean, Date, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from funeral_kernel.db.base import TemporalBase, temporal_table_args


class PaymentModel(TemporalBase):
    """ORM model for payment versions."""

    __tablename__ = "payments"

    __table_args__ = temporal_table_args(
        "payments",
        Index("idx_payments_case_current", "case_id", "is_current"),
        Index("idx_payments_status", "status"),
    )

    case_id: Mapped[str] = mapped_column(String(100), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    method: Mapped[str] = mapped_column(String(30), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    stripe_payment_intent_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    stripe_payment_method_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    receipt_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    failure_reason: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    check_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    check_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self):
        from funeral_modules.payments.models import Payment, PaymentMethod, PaymentStatus

        return Payment(
            id=self.id,
            business_key=self.business_key,
            version=self.version,
            created_at=self.created_at,
            created_by=self.created_by,
            case_id=self.case_id,
            amount=self.amount,
            method=PaymentMethod(self.method),
            status=PaymentStatus(self.status),
            stripe_payment_intent_id=self.stripe_payment_intent_id,
            stripe_payment_method_id=self.stripe_payment_method_id,
            receipt_url=self.receipt_url,
            failure_reason=self.failure_reason,
            check_number=self.check_number,
            check_date=self.check_date,
            notes=self.notes,
        )

    @classmethod
    def from_dto(cls, dto) -> "PaymentModel":
        return cls(
            case_id=dto.case_id,
            amount=dto.amount,
            method=dto.method.value,
            status=dto.status.value,
            stripe_payment_intent_id=dto.stripe_payment_intent_id,
            stripe_payment_method_id=dto.stripe_payment_method_id,
            receipt_url=dto.receipt_url,
            failure_reason=dto.failure_reason,
            check_number=dto.check_number,
            check_date=dto.check_date,
            notes=dto.notes,
        )

    def __repr__(self) -> str:
        return (
            f"<PaymentModel {self.business_key} v{self.version} "
            f"{self.amount} {self.status}>"
        )


class PaymentPolicyModel(TemporalBase):
    """
    ORM model for payment policy versions.

    Guarantees:
        - allowed_payment_methods and aging_buckets stored as JSON lists.
    """

    __tablename__ = "payment_policies"

    __table_args__ = temporal_table_args("payment_policies")

    require_approval_above_amount: Mapped[Decimal] = mapped_column(nullable=False)
    auto_approve_up_to_amount: Mapped[Decimal] = mapped_column(nullable=False)
    require_approval_for_all_checks: Mapped[bool] = mapped_column(Boolean, nullable=False)
    require_approval_for_all_ach: Mapped[bool] = mapped_column(Boolean, nullable=False)

    allowed_payment_methods: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    enable_cash_payments: Mapped[bool] = mapped_column(Boolean, nullable=False)
    enable_check_payments: Mapped[bool] = mapped_column(Boolean, nullable=False)
    enable_ach_payments: Mapped[bool] = mapped_column(Boolean, nullable=False)
    enable_credit_card: Mapped[bool] = mapped_column(Boolean, nullable=False)

    require_check_number: Mapped[bool] = mapped_column(Boolean, nullable=False)
    require_check_date: Mapped[bool] = mapped_column(Boolean, nullable=False)
    allow_post_dated_checks: Mapped[bool] = mapped_column(Boolean, nullable=False)
    max_check_age_days: Mapped[int] = mapped_column(Integer, nullable=False)

    allow_refunds: Mapped[bool] = mapped_column(Boolean, nullable=False)
    max_refund_days: Mapped[int] = mapped_column(Integer, nullable=False)
    require_original_payment_proof: Mapped[bool] = mapped_column(Boolean, nullable=False)
    require_refund_approval: Mapped[bool] = mapped_column(Boolean, nullable=False)
    refund_approval_threshold: Mapped[Decimal] = mapped_column(nullable=False)

    require_ach_verification: Mapped[bool] = mapped_column(Boolean, nullable=False)
    max_ach_retries: Mapped[int] = mapped_column(Integer, nullable=False)
    ach_retry_delay_hours: Mapped[int] = mapped_column(Integer, nullable=False)

    retention_days: Mapped[int] = mapped_column(Integer, nullable=False)
    archive_payments_after_days: Mapped[int] = mapped_column(Integer, nullable=False)
    enable_payment_history: Mapped[bool] = mapped_column(Boolean, nullable=False)

    aging_buckets: Mapped[list[int]] = mapped_column(JSON, nullable=False)
    mark_overdue_after_days: Mapped[int] = mapped_column(Integer, nullable=False)
    calculate_interest_on_overdue: Mapped[bool] = mapped_column(Boolean, nullable=False)
    interest_rate: Mapped[Decimal] = mapped_column(nullable=False)

    stats_calculation_method: Mapped[str] = mapped_column(String(20), nullable=False)
    default_page_size: Mapped[int] = mapped_column(Integer, nullable=False)
    list_default_sort_order: Mapped[str] = mapped_column(String(4), nullable=False)

    enable_payment_notifications: Mapped[bool] = mapped_column(Boolean, nullable=False)
    send_receipt_for_amount_over: Mapped[Decimal] = mapped_column(nullable=False)
    payment_reminder_days_before: Mapped[int] = mapped_column(Integer, nullable=False)

    reason: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    def to_dto(self):
        from funeral_modules.payments.policy import SETTING_NAMES, PaymentManagementPolicy

        settings = {name: getattr(self, name) for name in SETTING_NAMES}
        settings["allowed_payment_methods"] = tuple(self.allowed_payment_methods)
        settings["aging_buckets"] = tuple(self.aging_buckets)
        return PaymentManagementPolicy(
            id=self.id,
            business_key=self.business_key,
            version=self.version,
            created_at=self.created_at,
            created_by=self.created_by,
            reason=self.reason,
            **settings,
        )

    @classmethod
    def from_dto(cls, dto) -> "PaymentPolicyModel":
        from funeral_modules.payments.policy import SETTING_NAMES

        settings = {name: getattr(dto, name) for name in SETTING_NAMES}
        settings["allowed_payment_methods"] = list(dto.allowed_payment_methods)
        settings["aging_buckets"] = list(dto.aging_buckets)
        return cls(reason=dto.reason, **settings)
