"""Payment and payment policy repositories."""

from funeral_kernel.db.scd2 import SCD2Repository
from funeral_modules.payments.models import Payment, PaymentStatus
from funeral_modules.payments.orm import PaymentModel, PaymentPolicyModel
from funeral_modules.payments.policy import PaymentManagementPolicy


class PaymentRepository(SCD2Repository[PaymentModel, Payment]):
    model = PaymentModel
    entity_type = "Payment"

    def find_by_case(self, case_id: str, status: PaymentStatus | None = None) -> list[Payment]:
        criteria = [PaymentModel.case_id == case_id]
        if status is not None:
            criteria.append(PaymentModel.status == PaymentStatus(status).value)
        return self.find_current(*criteria)


class PaymentPolicyRepository(SCD2Repository[PaymentPolicyModel, PaymentManagementPolicy]):
    model = PaymentPolicyModel
    entity_type = "PaymentManagementPolicy"
