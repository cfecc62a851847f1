"""
Case Module (``funeral_modules.case``).

The funeral case from first inquiry to archive: decedent and service
details, arrangements, the linked Go contract and the financial close
fields written by the financial and inventory use cases.
"""

from funeral_modules.case.models import Case, CaseStatus, CaseType, ServiceType
from funeral_modules.case.repository import CaseRepository
from funeral_modules.case.service import CaseService
from funeral_modules.case.workflows import CASE_WORKFLOW

__all__ = [
    "CASE_WORKFLOW",
    "Case",
    "CaseRepository",
    "CaseService",
    "CaseStatus",
    "CaseType",
    "ServiceType",
]
