"""HR Module (``funeral_modules.hr``): onboarding and offboarding via the Go HCM port."""

from funeral_modules.hr.models import ChecklistStatus, OffboardingResult, OnboardingResult
from funeral_modules.hr.service import HRService

__all__ = [
    "ChecklistStatus",
    "HRService",
    "OffboardingResult",
    "OnboardingResult",
]
