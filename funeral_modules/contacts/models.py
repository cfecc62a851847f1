"""
Contact Domain Model (``funeral_modules.contacts.models``).

Responsibility
--------------
A person in the funeral home's CRM: family members, clergy, referral
sources.  Carries communication consent, segmentation tags and the grief
support journey that aftercare staff follow after a service.

Invariants enforced
-------------------
* First and last name are required, trimmed and at most 100 characters.
* Tags are trimmed, lower-cased and unique.
* Marking do-not-contact also withdraws email and SMS consent.
* Notes are at most 5000 characters.
* A grief journey starts once.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from uuid import UUID

from funeral_kernel.domain.temporal import new_business_key, next_version
from funeral_kernel.exceptions import BusinessRuleViolationError, ValidationError

MAX_NAME_LENGTH = 100
MAX_NOTES_LENGTH = 5000
GRIEF_CHECK_IN_INTERVAL_DAYS = 30


class ContactType(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    PROFESSIONAL = "professional"
    REFERRAL = "referral"


class RelationshipType(str, Enum):
    SPOUSE = "spouse"
    CHILD = "child"
    PARENT = "parent"
    SIBLING = "sibling"
    FRIEND = "friend"
    CLERGY = "clergy"
    ATTORNEY = "attorney"
    OTHER = "other"


class GriefStage(str, Enum):
    SHOCK = "shock"
    DENIAL = "denial"
    ANGER = "anger"
    BARGAINING = "bargaining"
    DEPRESSION = "depression"
    ACCEPTANCE = "acceptance"


class MilitaryBranch(str, Enum):
    ARMY = "army"
    NAVY = "navy"
    AIR_FORCE = "air_force"
    MARINES = "marines"
    COAST_GUARD = "coast_guard"
    SPACE_FORCE = "space_force"


class LanguagePreference(str, Enum):
    EN = "en"
    ES = "es"
    FR = "fr"
    DE = "de"
    PL = "pl"
    IT = "it"
    ZH = "zh"
    OTHER = "other"


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


def _normalize_tag(tag: str) -> str:
    return tag.strip().lower()


@dataclass(frozen=True)
class Contact:
    business_key: str
    funeral_home_id: str
    first_name: str
    last_name: str
    contact_type: ContactType
    created_by: str
    version: int = 1
    created_at: datetime | None = None
    id: UUID | None = None
    email: str | None = None
    phone: str | None = None
    alternate_phone: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    relationship_type: RelationshipType | None = None
    birth_date: date | None = None
    notes: str | None = None
    do_not_contact: bool = False
    email_opt_in: bool = False
    sms_opt_in: bool = False
    tags: tuple[str, ...] = ()
    merged_into_contact_id: str | None = None
    is_veteran: bool = False
    military_branch: MilitaryBranch | None = None
    religious_affiliation: str | None = None
    cultural_preferences: tuple[str, ...] = ()
    dietary_restrictions: tuple[str, ...] = ()
    language_preference: LanguagePreference = LanguagePreference.EN
    grief_stage: GriefStage | None = None
    grief_journey_started_at: datetime | None = None
    decedent_relationship_id: str | None = None
    service_anniversary_date: date | None = None
    last_grief_check_in: datetime | None = None

    @classmethod
    def create(
        cls,
        funeral_home_id: str,
        first_name: str,
        last_name: str,
        contact_type: ContactType,
        created_by: str,
        email: str | None = None,
        phone: str | None = None,
        business_key: str | None = None,
    ) -> Contact:
        first, last = (first_name or "").strip(), (last_name or "").strip()
        if not first or not last:
            raise ValidationError("Name is required", field="name")
        if len(first) > MAX_NAME_LENGTH or len(last) > MAX_NAME_LENGTH:
            raise ValidationError(
                f"Name too long (max {MAX_NAME_LENGTH} characters each)", field="name",
            )
        return cls(
            business_key=business_key or new_business_key(),
            funeral_home_id=funeral_home_id,
            first_name=first,
            last_name=last,
            contact_type=ContactType(contact_type),
            created_by=created_by,
            email=_clean(email),
            phone=_clean(phone),
        )

    # -- contact details --------------------------------------------------

    def update_contact_info(self, **changes: str | None) -> Contact:
        """Replace any of email, phone, alternate_phone, address, city, state, zip_code."""
        allowed = {"email", "phone", "alternate_phone", "address", "city", "state", "zip_code"}
        unknown = sorted(set(changes) - allowed)
        if unknown:
            raise ValidationError(
                f"Unknown contact fields: {', '.join(unknown)}", field=unknown[0],
            )
        return next_version(self, **{k: _clean(v) for k, v in changes.items()})

    def update_relationship(self, relationship_type: RelationshipType) -> Contact:
        return next_version(self, relationship_type=RelationshipType(relationship_type))

    def update_birth_date(self, birth_date: date, today: date) -> Contact:
        if birth_date > today:
            raise ValidationError("Birth date cannot be in the future", field="birth_date")
        return next_version(self, birth_date=birth_date)

    def update_notes(self, notes: str) -> Contact:
        if len(notes) > MAX_NOTES_LENGTH:
            raise ValidationError(
                f"Notes too long (max {MAX_NOTES_LENGTH} characters)", field="notes",
            )
        return next_version(self, notes=_clean(notes))

    # -- segmentation -----------------------------------------------------

    def add_tag(self, tag: str) -> Contact:
        normalized = _normalize_tag(tag)
        if not normalized or normalized in self.tags:
            return self
        return next_version(self, tags=self.tags + (normalized,))

    def remove_tag(self, tag: str) -> Contact:
        normalized = _normalize_tag(tag)
        if normalized not in self.tags:
            return self
        return next_version(self, tags=tuple(t for t in self.tags if t != normalized))

    def has_tag(self, tag: str) -> bool:
        return _normalize_tag(tag) in self.tags

    # -- consent ----------------------------------------------------------

    def opt_in_email(self) -> Contact:
        return next_version(self, email_opt_in=True)

    def opt_out_email(self) -> Contact:
        return next_version(self, email_opt_in=False)

    def opt_in_sms(self) -> Contact:
        return next_version(self, sms_opt_in=True)

    def opt_out_sms(self) -> Contact:
        return next_version(self, sms_opt_in=False)

    def mark_do_not_contact(self) -> Contact:
        return next_version(self, do_not_contact=True, email_opt_in=False, sms_opt_in=False)

    def remove_do_not_contact(self) -> Contact:
        return next_version(self, do_not_contact=False)

    # -- funeral-specific -------------------------------------------------

    def start_grief_journey(
        self,
        decedent_relationship_id: str,
        service_anniversary_date: date,
        now: datetime,
    ) -> Contact:
        if self.grief_journey_started_at is not None:
            raise ValidationError(
                "Grief journey already started for this contact",
                field="grief_journey_started_at",
            )
        if service_anniversary_date > now.date():
            raise ValidationError(
                "Service anniversary date cannot be in the future",
                field="service_anniversary_date",
            )
        return next_version(
            self,
            grief_stage=GriefStage.SHOCK,
            grief_journey_started_at=now,
            decedent_relationship_id=decedent_relationship_id,
            service_anniversary_date=service_anniversary_date,
            last_grief_check_in=now,
        )

    def update_grief_stage(self, stage: GriefStage) -> Contact:
        if self.grief_journey_started_at is None:
            raise BusinessRuleViolationError(
                "Grief journey has not been started", rule="grief_journey_required",
            )
        return next_version(self, grief_stage=GriefStage(stage))

    def record_grief_check_in(self, now: datetime) -> Contact:
        return next_version(self, last_grief_check_in=now)

    def update_veteran_info(
        self,
        is_veteran: bool,
        military_branch: MilitaryBranch | None = None,
    ) -> Contact:
        return next_version(
            self,
            is_veteran=is_veteran,
            military_branch=MilitaryBranch(military_branch) if military_branch else self.military_branch,
        )

    def update_cultural_preferences(
        self,
        religious_affiliation: str | None = None,
        cultural_preferences: tuple[str, ...] | None = None,
        dietary_restrictions: tuple[str, ...] | None = None,
    ) -> Contact:
        return next_version(
            self,
            religious_affiliation=(
                _clean(religious_affiliation) if religious_affiliation is not None
                else self.religious_affiliation
            ),
            cultural_preferences=(
                tuple(cultural_preferences) if cultural_preferences is not None
                else self.cultural_preferences
            ),
            dietary_restrictions=(
                tuple(dietary_restrictions) if dietary_restrictions is not None
                else self.dietary_restrictions
            ),
        )

    def update_language_preference(self, language: LanguagePreference) -> Contact:
        return next_version(self, language_preference=LanguagePreference(language))

    def apply_merge(self, **changes) -> Contact:
        """Next version carrying the field values combined from a merged duplicate."""
        return next_version(self, **changes)

    def merge_into(self, target_contact_id: str) -> Contact:
        if target_contact_id == self.business_key:
            raise BusinessRuleViolationError(
                "Cannot merge a contact into itself", rule="merge_distinct_contacts",
            )
        return next_version(self, merged_into_contact_id=target_contact_id)

    # -- derived ----------------------------------------------------------

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def full_address(self) -> str | None:
        if not self.address:
            return None
        region = f"{self.state} {self.zip_code or ''}".strip() if self.state else self.zip_code
        return ", ".join(part for part in (self.address, self.city, region) if part)

    @property
    def can_email(self) -> bool:
        return bool(self.email) and not self.do_not_contact and self.email_opt_in

    @property
    def can_sms(self) -> bool:
        return bool(self.phone) and not self.do_not_contact and self.sms_opt_in

    @property
    def is_merged(self) -> bool:
        return self.merged_into_contact_id is not None

    @property
    def is_in_grief_journey(self) -> bool:
        return (
            self.grief_journey_started_at is not None
            and self.grief_stage is not GriefStage.ACCEPTANCE
        )

    def needs_grief_check_in(self, now: datetime) -> bool:
        if not self.is_in_grief_journey or self.last_grief_check_in is None:
            return False
        return (now - self.last_grief_check_in).days > GRIEF_CHECK_IN_INTERVAL_DAYS


@dataclass(frozen=True)
class DuplicateMatch:
    """``contact`` is a likely duplicate of the contact keyed ``source_contact_id``."""

    source_contact_id: str
    contact: Contact
    similarity_score: int
    match_reasons: tuple[str, ...]
