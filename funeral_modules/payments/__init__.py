"""
Payments Module (``funeral_modules.payments``).

Customer payments against cases, refunds, and the per-funeral-home payment
management policy those operations are validated against.
"""

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
from funeral_modules.payments.service import PaymentPolicyService, PaymentService
from funeral_modules.payments.workflows import PAYMENT_WORKFLOW

__all__ = [
    "PAYMENT_WORKFLOW",
    "ManualPaymentResult",
    "Payment",
    "PaymentManagementPolicy",
    "PaymentMethod",
    "PaymentPolicyPreset",
    "PaymentPolicyRepository",
    "PaymentPolicyService",
    "PaymentRepository",
    "PaymentService",
    "PaymentStats",
    "PaymentStatus",
    "RefundResult",
]
