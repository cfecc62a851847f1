"""Contract repository: SCD2 persistence plus lookup by case."""

from funeral_kernel.db.scd2 import SCD2Repository
from funeral_modules.contracts.models import Contract
from funeral_modules.contracts.orm import ContractModel


class ContractRepository(SCD2Repository[ContractModel, Contract]):
    model = ContractModel
    entity_type = "Contract"

    def find_by_case(self, case_id: str) -> list[Contract]:
        return self.find_current(ContractModel.case_id == case_id)
