"""
Contact ORM Models (``funeral_modules.contacts.orm``).

Persistence for ``Contact`` versions and ``ContactManagementPolicy``
versions.  Tag and preference lists are JSON arrays.
"""

from datetime import date, datetime

from sqlalchemy import JSON, Boolean, Date, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from funeral_kernel.db.base import TemporalBase, temporal_table_args


class ContactModel(TemporalBase):
    """ORM model for contact versions."""

    __tablename__ = "contacts"

    __table_args__ = temporal_table_args(
        "contacts",
        Index("idx_contacts_funeral_home_current", "funeral_home_id", "is_current"),
        Index("idx_contacts_email", "email"),
    )

    funeral_home_id: Mapped[str] = mapped_column(String(100), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    contact_type: Mapped[str] = mapped_column(String(20), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    alternate_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(50), nullable=True)
    zip_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    relationship_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    birth_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    do_not_contact: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    email_opt_in: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sms_opt_in: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    merged_into_contact_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_veteran: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    military_branch: Mapped[str | None] = mapped_column(String(20), nullable=True)
    religious_affiliation: Mapped[str | None] = mapped_column(String(100), nullable=True)
    cultural_preferences: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    dietary_restrictions: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    language_preference: Mapped[str] = mapped_column(String(10), nullable=False, default="en")
    grief_stage: Mapped[str | None] = mapped_column(String(20), nullable=True)
    grief_journey_started_at: Mapped[datetime | None] = mapped_column(nullable=True)
    decedent_relationship_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    service_anniversary_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    last_grief_check_in: Mapped[datetime | None] = mapped_column(nullable=True)

    def to_dto(self):
        from funeral_modules.contacts.models import (
            Contact,
            ContactType,
            GriefStage,
            LanguagePreference,
            MilitaryBranch,
            RelationshipType,
        )

        return Contact(
            id=self.id,
            business_key=self.business_key,
            version=self.version,
            created_at=self.created_at,
            created_by=self.created_by,
            funeral_home_id=self.funeral_home_id,
            first_name=self.first_name,
            last_name=self.last_name,
            contact_type=ContactType(self.contact_type),
            email=self.email,
            phone=self.phone,
            alternate_phone=self.alternate_phone,
            address=self.address,
            city=self.city,
            state=self.state,
            zip_code=self.zip_code,
            relationship_type=(
                RelationshipType(self.relationship_type) if self.relationship_type else None
            ),
            birth_date=self.birth_date,
            notes=self.notes,
            do_not_contact=self.do_not_contact,
            email_opt_in=self.email_opt_in,
            sms_opt_in=self.sms_opt_in,
            tags=tuple(self.tags or ()),
            merged_into_contact_id=self.merged_into_contact_id,
            is_veteran=self.is_veteran,
            military_branch=MilitaryBranch(self.military_branch) if self.military_branch else None,
            religious_affiliation=self.religious_affiliation,
            cultural_preferences=tuple(self.cultural_preferences or ()),
            dietary_restrictions=tuple(self.dietary_restrictions or ()),
            language_preference=LanguagePreference(self.language_preference),
            grief_stage=GriefStage(self.grief_stage) if self.grief_stage else None,
            grief_journey_started_at=self.grief_journey_started_at,
            decedent_relationship_id=self.decedent_relationship_id,
            service_anniversary_date=self.service_anniversary_date,
            last_grief_check_in=self.last_grief_check_in,
        )

    @classmethod
    def from_dto(cls, dto) -> "ContactModel":
        return cls(
            funeral_home_id=dto.funeral_home_id,
            first_name=dto.first_name,
            last_name=dto.last_name,
            contact_type=dto.contact_type.value,
            email=dto.email,
            phone=dto.phone,
            alternate_phone=dto.alternate_phone,
            address=dto.address,
            city=dto.city,
            state=dto.state,
            zip_code=dto.zip_code,
            relationship_type=dto.relationship_type.value if dto.relationship_type else None,
            birth_date=dto.birth_date,
            notes=dto.notes,
            do_not_contact=dto.do_not_contact,
            email_opt_in=dto.email_opt_in,
            sms_opt_in=dto.sms_opt_in,
            tags=list(dto.tags),
            merged_into_contact_id=dto.merged_into_contact_id,
            is_veteran=dto.is_veteran,
            military_branch=dto.military_branch.value if dto.military_branch else None,
            religious_affiliation=dto.religious_affiliation,
            cultural_preferences=list(dto.cultural_preferences),
            dietary_restrictions=list(dto.dietary_restrictions),
            language_preference=dto.language_preference.value,
            grief_stage=dto.grief_stage.value if dto.grief_stage else None,
            grief_journey_started_at=dto.grief_journey_started_at,
            decedent_relationship_id=dto.decedent_relationship_id,
            service_anniversary_date=dto.service_anniversary_date,
            last_grief_check_in=dto.last_grief_check_in,
        )

    def __repr__(self) -> str:
        return f"<ContactModel {self.business_key} v{self.version} {self.first_name} {self.last_name}>"


class ContactPolicyModel(TemporalBase):
    """ORM model for contact management policy versions."""

    __tablename__ = "contact_policies"

    __table_args__ = temporal_table_args("contact_policies")

    min_duplicate_similarity_threshold: Mapped[int] = mapped_column(Integer, nullable=False)
    max_duplicates_per_search: Mapped[int] = mapped_column(Integer, nullable=False)
    ignore_duplicates_older_than_days: Mapped[int] = mapped_column(Integer, nullable=False)
    merge_field_precedence: Mapped[str] = mapped_column(String(20), nullable=False)
    is_merge_approval_required: Mapped[bool] = mapped_column(Boolean, nullable=False)
    merge_retention_days: Mapped[int] = mapped_column(Integer, nullable=False)
    merge_family_relationships_automatic: Mapped[bool] = mapped_column(Boolean, nullable=False)
    reason: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    def to_dto(self):
        from funeral_modules.contacts.policy import ContactManagementPolicy, MergeFieldPrecedence

        return ContactManagementPolicy(
            id=self.id,
            business_key=self.business_key,
            version=self.version,
            created_at=self.created_at,
            created_by=self.created_by,
            min_duplicate_similarity_threshold=self.min_duplicate_similarity_threshold,
            max_duplicates_per_search=self.max_duplicates_per_search,
            ignore_duplicates_older_than_days=self.ignore_duplicates_older_than_days,
            merge_field_precedence=MergeFieldPrecedence(self.merge_field_precedence),
            is_merge_approval_required=self.is_merge_approval_required,
            merge_retention_days=self.merge_retention_days,
            merge_family_relationships_automatic=self.merge_family_relationships_automatic,
            reason=self.reason,
        )

    @classmethod
    def from_dto(cls, dto) -> "ContactPolicyModel":
        return cls(
            min_duplicate_similarity_threshold=dto.min_duplicate_similarity_threshold,
            max_duplicates_per_search=dto.max_duplicates_per_search,
            ignore_duplicates_older_than_days=dto.ignore_duplicates_older_than_days,
            merge_field_precedence=dto.merge_field_precedence.value,
            is_merge_approval_required=dto.is_merge_approval_required,
            merge_retention_days=dto.merge_retention_days,
            merge_family_relationships_automatic=dto.merge_family_relationships_automatic,
            reason=dto.reason,
        )
