"""
Contacts Module (``funeral_modules.contacts``).

CRM contacts with consent, grief support tracking and policy-driven
duplicate detection and merge.
"""

from funeral_modules.contacts.models import (
    Contact,
    ContactType,
    DuplicateMatch,
    GriefStage,
    LanguagePreference,
    MilitaryBranch,
    RelationshipType,
)
from funeral_modules.contacts.policy import (
    ContactManagementPolicy,
    ContactPolicyPreset,
    MergeFieldPrecedence,
)
from funeral_modules.contacts.repository import ContactPolicyRepository, ContactRepository
from funeral_modules.contacts.service import ContactPolicyService, ContactService

__all__ = [
    "Contact",
    "ContactManagementPolicy",
    "ContactPolicyPreset",
    "ContactPolicyRepository",
    "ContactPolicyService",
    "ContactRepository",
    "ContactService",
    "ContactType",
    "DuplicateMatch",
    "GriefStage",
    "LanguagePreference",
    "MergeFieldPrecedence",
    "MilitaryBranch",
    "RelationshipType",
]
