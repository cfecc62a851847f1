"""Case repository: SCD2 persistence plus case-specific finders."""

from funeral_kernel.db.scd2 import SCD2Repository
from funeral_modules.case.models import Case, CaseStatus
from funeral_modules.case.orm import CaseModel


class CaseRepository(SCD2Repository[CaseModel, Case]):
    model = CaseModel
    entity_type = "Case"

    def find_by_funeral_home(
        self,
        funeral_home_id: str,
        status: CaseStatus | None = None,
    ) -> list[Case]:
        criteria = [CaseModel.funeral_home_id == funeral_home_id]
        if status is not None:
            criteria.append(CaseModel.status == CaseStatus(status).value)
        return self.find_current(*criteria)

    def find_by_go_contract(self, go_contract_id: str) -> Case | None:
        cases = self.find_current(CaseModel.go_contract_id == go_contract_id)
        return cases[0] if cases else None
