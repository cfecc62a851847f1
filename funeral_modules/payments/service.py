"""
Payment Services (``funeral_modules.payments.service``).

Responsibility
--------------
``PaymentService`` records, settles and refunds customer payments;
``PaymentPolicyService`` maintains the per-funeral-home payment policy the
payment use cases validate against.

Architecture position
---------------------
Module service layer.  Owns the transaction of each public write
(``unit_of_work``); depends on the payment repositories and the clock.

Invariants enforced
-------------------
* A refund and the refunded original are saved in one transaction.
* Refund age is measured in whole days from the payment's creation.
* A refund never exceeds the original amount.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from funeral_kernel.db.types import ZERO, parse_decimal, round_money
from funeral_kernel.domain.clock import Clock, SystemClock
from funeral_kernel.exceptions import ValidationError
from funeral_kernel.logging_config import get_logger
from funeral_modules._unit_of_work import unit_of_work
from funeral_modules.payments.models import (
    ManualPaymentResult,
    Payment,
    PaymentMethod,
    PaymentStats,
    PaymentStatus,
    RefundResult,
)
from funeral_modules.payments.policy import PaymentManagementPolicy, PaymentPolicyPreset
from funeral_modules.payments.repository import PaymentPolicyRepository, PaymentRepository

logger = get_logger("modules.payments.service")


class PaymentPolicyService:
    """Read and version the payment policy of a funeral home."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._policies = PaymentPolicyRepository(session, self._clock)

    def get_current_policy(self, funeral_home_id: str) -> PaymentManagementPolicy:
        return self._policies.get_current(funeral_home_id)

    def get_policy_history(self, funeral_home_id: str) -> list[PaymentManagementPolicy]:
        return self._policies.find_history(funeral_home_id)

    def get_policy_at_time(self, funeral_home_id: str, as_of: datetime) -> PaymentManagementPolicy:
        return self._policies.find_at_time(funeral_home_id, as_of)

    def create_policy(
        self,
        funeral_home_id: str,
        actor_id: str,
        preset: PaymentPolicyPreset = PaymentPolicyPreset.STANDARD,
        reason: str | None = None,
    ) -> PaymentManagementPolicy:
        if self._policies.find_by_business_key(funeral_home_id) is not None:
            raise ValidationError(
                f"Funeral home {funeral_home_id} already has a payment policy",
                field="funeral_home_id",
            )
        policy = PaymentManagementPolicy.from_preset(funeral_home_id, actor_id, preset, reason)
        with unit_of_work(self._session, "create_payment_policy"):
            saved = self._policies.save(policy, actor_id)
        logger.info("payment_policy_created", extra={
            "funeral_home_id": funeral_home_id,
            "preset": PaymentPolicyPreset(preset).value,
        })
        return saved

    def update_policy(
        self,
        funeral_home_id: str,
        actor_id: str,
        reason: str | None = None,
        **changes: Any,
    ) -> PaymentManagementPolicy:
        """Save the current policy with ``changes`` applied as a new version."""
        with unit_of_work(self._session, "update_payment_policy"):
            current = self._policies.get_current(funeral_home_id)
            saved = self._policies.save(current.with_changes(reason=reason, **changes), actor_id)
        logger.info("payment_policy_updated", extra={
            "funeral_home_id": funeral_home_id,
            "version": saved.version,
            "changed_settings": sorted(changes),
        })
        return saved


class PaymentService:
    """Payment recording, settlement, refunds and per-case reporting."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._payments = PaymentRepository(session, self._clock)
        self._policies = PaymentPolicyRepository(session, self._clock)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_payment(self, business_key: str) -> Payment:
        return self._payments.get_current(business_key)

    def get_payment_history(self, business_key: str) -> list[Payment]:
        return self._payments.find_history(business_key)

    def list_payments_for_case(
        self,
        case_id: str,
        status: PaymentStatus | None = None,
    ) -> list[Payment]:
        return self._payments.find_by_case(case_id, status)

    def get_payment_stats(self, case_id: str) -> PaymentStats:
        payments = self._payments.find_by_case(case_id)

        def total(status: PaymentStatus) -> Decimal:
            return round_money(sum((p.amount for p in payments if p.status is status), ZERO))

        def count(status: PaymentStatus) -> int:
            return sum(1 for p in payments if p.status is status)

        return PaymentStats(
            case_id=case_id,
            payment_count=len(payments),
            succeeded_count=count(PaymentStatus.SUCCEEDED),
            pending_count=count(PaymentStatus.PENDING),
            failed_count=count(PaymentStatus.FAILED),
            refunded_count=count(PaymentStatus.REFUNDED),
            total_succeeded=total(PaymentStatus.SUCCEEDED),
            total_pending=total(PaymentStatus.PENDING),
            total_refunded=total(PaymentStatus.REFUNDED),
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def record_manual_payment(
        self,
        funeral_home_id: str,
        case_id: str,
        amount: Decimal | int | str,
        method: PaymentMethod,
        actor_id: str,
        check_number: str | None = None,
        check_date: date | None = None,
        notes: str | None = None,
    ) -> ManualPaymentResult:
        """
        Record a cash, check or ACH payment taken at the funeral home.

        The payment settles immediately unless the policy routes it to
        approval, in which case it stays pending.
        """
        method = PaymentMethod(method)
        policy = self._require_policy(funeral_home_id)

        if not policy.is_method_enabled(method):
            raise ValidationError(
                f"Payment method {method.value} is not enabled for this funeral home",
                field="method",
            )
        if method is PaymentMethod.CHECK:
            self._validate_check(policy, check_number, check_date)

        payment = Payment.create(
            case_id=case_id,
            amount=amount,
            method=method,
            created_by=actor_id,
            notes=notes,
            check_number=check_number,
            check_date=check_date,
        )
        requires_approval = policy.requires_payment_approval(method, payment.amount)
        if not requires_approval:
            payment = payment.mark_processing().mark_succeeded()

        with unit_of_work(self._session, "record_manual_payment"):
            saved = self._payments.save(payment, actor_id)

        logger.info("manual_payment_recorded", extra={
            "payment_id": saved.business_key,
            "case_id": case_id,
            "method": method.value,
            "amount": str(saved.amount),
            "requires_approval": requires_approval,
        })
        return ManualPaymentResult(payment=saved, requires_approval=requires_approval)

    def process_refund(
        self,
        funeral_home_id: str,
        payment_business_key: str,
        reason: str,
        processed_by: str,
        refund_amount: Decimal | int | str | None = None,
        notes: str | None = None,
    ) -> RefundResult:
        """
        Refund all or part of a succeeded payment.

        Steps, each failing with the first typed error it hits:
            1. Current policy exists and allows refunds.
            2. Payment exists and is refundable.
            3. Payment age in whole days is within ``max_refund_days``.
            4. Proof notes are present when the policy requires them.
            5. Refund amount (default: full) is positive and within the original.
            6. Approval is required above ``refund_approval_threshold``.
            7-9. Original marked refunded and the refund payment created,
               both saved in one transaction.
        """
        logger.info("payment_refund_started", extra={
            "payment_id": payment_business_key,
            "funeral_home_id": funeral_home_id,
        })

        policy = self._require_policy(funeral_home_id)
        if not policy.allow_refunds:
            raise ValidationError("Refunds are not allowed by payment policy", field="refunds")

        original = self._payments.get_current(payment_business_key)
        refunded_original = original.refund()

        age_days = (self._clock.now() - original.created_at).days
        if age_days > policy.max_refund_days:
            raise ValidationError(
                f"Payment is {age_days} days old; refunds are allowed within "
                f"{policy.max_refund_days} days",
                field="payment_date",
            )

        if policy.require_original_payment_proof and not notes:
            raise ValidationError(
                "Proof of the original payment is required in the refund notes",
                field="notes",
            )

        amount = original.amount if refund_amount is None else _money(refund_amount, "refund_amount")
        if amount <= 0:
            raise ValidationError("Refund amount must be positive", field="refund_amount")
        if amount > original.amount:
            raise ValidationError(
                f"Refund amount {amount} exceeds original payment amount {original.amount}",
                field="refund_amount",
            )

        requires_approval = policy.requires_refund_approval(amount)

        refund_notes = f"Refund for payment {original.business_key} | Reason: {reason}"
        if notes:
            refund_notes += f" | Notes: {notes}"
        refund = Payment.create(
            case_id=original.case_id,
            amount=amount,
            method=original.method,
            created_by=processed_by,
            notes=refund_notes,
        )
        if not requires_approval:
            refund = refund.mark_processing().mark_succeeded()

        with unit_of_work(self._session, "process_refund"):
            saved_original = self._payments.save(refunded_original, processed_by)
            saved_refund = self._payments.save(refund, processed_by)

        logger.info("payment_refund_processed", extra={
            "payment_id": original.business_key,
            "refund_id": saved_refund.business_key,
            "amount": str(amount),
            "requires_approval": requires_approval,
            "refund_status": saved_refund.status.value,
        })
        return RefundResult(
            original_payment=saved_original,
            refund_payment=saved_refund,
            requires_approval=requires_approval,
        )

    def mark_payment_processing(
        self,
        business_key: str,
        actor_id: str,
        stripe_payment_method_id: str | None = None,
    ) -> Payment:
        return self._apply(
            business_key, actor_id, "payment_processing",
            lambda p: p.mark_processing(stripe_payment_method_id),
        )

    def mark_payment_succeeded(
        self,
        business_key: str,
        actor_id: str,
        receipt_url: str | None = None,
    ) -> Payment:
        return self._apply(
            business_key, actor_id, "payment_succeeded",
            lambda p: p.mark_succeeded(receipt_url),
        )

    def mark_payment_failed(self, business_key: str, reason: str, actor_id: str) -> Payment:
        return self._apply(
            business_key, actor_id, "payment_failed", lambda p: p.mark_failed(reason),
        )

    def cancel_payment(self, business_key: str, actor_id: str) -> Payment:
        return self._apply(business_key, actor_id, "payment_cancelled", Payment.cancel)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_policy(self, funeral_home_id: str) -> PaymentManagementPolicy:
        policy = self._policies.find_by_business_key(funeral_home_id)
        if policy is None:
            raise ValidationError(
                f"No payment policy configured for funeral home {funeral_home_id}",
                field="funeral_home_id",
            )
        return policy

    def _validate_check(
        self,
        policy: PaymentManagementPolicy,
        check_number: str | None,
        check_date: date | None,
    ) -> None:
        if policy.require_check_number and not check_number:
            raise ValidationError("Check number is required", field="check_number")
        if check_date is None:
            if policy.require_check_date:
                raise ValidationError("Check date is required", field="check_date")
            return
        today = self._clock.today()
        if check_date > today and not policy.allow_post_dated_checks:
            raise ValidationError("Post-dated checks are not accepted", field="check_date")
        age_days = (today - check_date).days
        if age_days > policy.max_check_age_days:
            raise ValidationError(
                f"Check is {age_days} days old; maximum is {policy.max_check_age_days}",
                field="check_date",
            )

    def _apply(
        self,
        business_key: str,
        actor_id: str,
        event: str,
        change: Callable[[Payment], Payment],
    ) -> Payment:
        with unit_of_work(self._session, event):
            saved = self._payments.save(change(self._payments.get_current(business_key)), actor_id)
        logger.info(event, extra={
            "payment_id": business_key,
            "version": saved.version,
            "status": saved.status.value,
        })
        return saved


def _money(value: Any, field: str) -> Decimal:
    return round_money(parse_decimal(value, field))
