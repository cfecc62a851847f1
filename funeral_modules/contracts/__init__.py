"""
Contracts Module (``funeral_modules.contracts``).

The contract document a family reviews and signs, and renewal of executed
contracts held in the Go backend.
"""

from funeral_modules.contracts.models import (
    TAX_RATE,
    Contract,
    ContractItem,
    ContractStatus,
    PriceComparison,
    RenewalMetadata,
    RenewContractResult,
)
from funeral_modules.contracts.repository import ContractRepository
from funeral_modules.contracts.service import ContractService
from funeral_modules.contracts.workflows import CONTRACT_WORKFLOW

__all__ = [
    "CONTRACT_WORKFLOW",
    "TAX_RATE",
    "Contract",
    "ContractItem",
    "ContractRepository",
    "ContractService",
    "ContractStatus",
    "PriceComparison",
    "RenewContractResult",
    "RenewalMetadata",
]
