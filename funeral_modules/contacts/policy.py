"""
Contact Management Policy (``funeral_modules.contacts.policy``).

How a funeral home detects and merges duplicate contacts.  Versioned per
funeral home (business key = funeral home id).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from funeral_kernel.domain.temporal import next_version
from funeral_kernel.exceptions import ValidationError


class MergeFieldPrecedence(str, Enum):
    """
    Which contact's value survives a merge, field by field.

    MOST_RECENT      value of the most recently updated contact, falling
                     back to the other when it is empty.
    NEWEST           every field from the most recently created contact.
    PREFER_NON_NULL  target's value unless empty, then the source's.
    """
    MOST_RECENT = "most_recent"
    NEWEST = "newest"
    PREFER_NON_NULL = "prefer_non_null"


class ContactPolicyPreset(str, Enum):
    STANDARD = "standard"
    STRICT = "strict"
    PERMISSIVE = "permissive"


@dataclass(frozen=True)
class ContactManagementPolicy:
    business_key: str
    created_by: str
    version: int = 1
    created_at: datetime | None = None
    id: UUID | None = None

    min_duplicate_similarity_threshold: int = 75
    max_duplicates_per_search: int = 50
    ignore_duplicates_older_than_days: int = 730

    merge_field_precedence: MergeFieldPrecedence = MergeFieldPrecedence.MOST_RECENT
    is_merge_approval_required: bool = False
    merge_retention_days: int = 365
    merge_family_relationships_automatic: bool = True

    reason: str | None = None

    def __post_init__(self) -> None:
        if not 0 <= self.min_duplicate_similarity_threshold <= 100:
            raise ValidationError(
                "Similarity threshold must be between 0 and 100",
                field="min_duplicate_similarity_threshold",
            )
        if self.max_duplicates_per_search < 1:
            raise ValidationError(
                "At least one duplicate must be returned per search",
                field="max_duplicates_per_search",
            )
        if self.ignore_duplicates_older_than_days < 1:
            raise ValidationError(
                "Duplicate age window must be positive",
                field="ignore_duplicates_older_than_days",
            )
        if self.merge_retention_days < 1:
            raise ValidationError(
                "Merge retention days must be positive", field="merge_retention_days",
            )
        object.__setattr__(
            self, "merge_field_precedence", MergeFieldPrecedence(self.merge_field_precedence),
        )

    @classmethod
    def from_preset(
        cls,
        funeral_home_id: str,
        created_by: str,
        preset: ContactPolicyPreset = ContactPolicyPreset.STANDARD,
        reason: str | None = None,
    ) -> ContactManagementPolicy:
        return cls(
            business_key=funeral_home_id,
            created_by=created_by,
            reason=reason,
            **CONTACT_PRESET_OVERRIDES[ContactPolicyPreset(preset)],
        )

    @property
    def funeral_home_id(self) -> str:
        return self.business_key

    def with_changes(self, reason: str | None = None, **changes: Any) -> ContactManagementPolicy:
        unknown = sorted(set(changes) - set(CONTACT_SETTING_NAMES))
        if unknown:
            raise ValidationError(
                f"Unknown contact policy settings: {', '.join(unknown)}", field=unknown[0],
            )
        return next_version(self, reason=reason, **changes)


CONTACT_SETTING_NAMES = (
    "min_duplicate_similarity_threshold",
    "max_duplicates_per_search",
    "ignore_duplicates_older_than_days",
    "merge_field_precedence",
    "is_merge_approval_required",
    "merge_retention_days",
    "merge_family_relationships_automatic",
)

CONTACT_PRESET_OVERRIDES: dict[ContactPolicyPreset, dict[str, Any]] = {
    ContactPolicyPreset.STANDARD: {},
    ContactPolicyPreset.STRICT: {
        "min_duplicate_similarity_threshold": 85,
        "max_duplicates_per_search": 10,
        "ignore_duplicates_older_than_days": 365,
        "merge_field_precedence": MergeFieldPrecedence.NEWEST,
        "is_merge_approval_required": True,
        "merge_retention_days": 2555,
        "merge_family_relationships_automatic": False,
    },
    ContactPolicyPreset.PERMISSIVE: {
        "min_duplicate_similarity_threshold": 60,
        "max_duplicates_per_search": 100,
        "ignore_duplicates_older_than_days": 1825,
        "merge_field_precedence": MergeFieldPrecedence.PREFER_NON_NULL,
        "is_merge_approval_required": False,
        "merge_retention_days": 90,
        "merge_family_relationships_automatic": True,
    },
}
