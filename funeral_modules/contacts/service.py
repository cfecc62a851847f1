"""
Contact Services (``funeral_modules.contacts.service``).

Responsibility
--------------
``ContactService`` maintains CRM contacts and finds and merges duplicates;
``ContactPolicyService`` versions the per-funeral-home contact policy.

Architecture position
---------------------
Module service layer.  Duplicate scoring is delegated to
``funeral_engines.similarity``; this module maps contacts to fingerprints
and applies the funeral home's merge policy.

Invariants enforced
-------------------
* Merged contacts never appear in duplicate searches.
* A merge touches two contacts of the same funeral home, neither already
  merged; both versions are saved in one transaction.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import date, datetime, timedelta
from typing import Any

from sqlalchemy.orm import Session

from funeral_engines.similarity import ContactFingerprint, DuplicatePair, SimilarityEngine
from funeral_kernel.domain.clock import Clock, SystemClock
from funeral_kernel.exceptions import BusinessRuleViolationError, ValidationError
from funeral_kernel.logging_config import get_logger
from funeral_modules._unit_of_work import unit_of_work
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

logger = get_logger("modules.contacts.service")

DEFAULT_MIN_SIMILARITY = 75
DEFAULT_CLUSTER_SIMILARITY = 85

MERGED_SCALAR_FIELDS = (
    "email",
    "phone",
    "alternate_phone",
    "address",
    "city",
    "state",
    "zip_code",
    "relationship_type",
    "birth_date",
    "notes",
    "military_branch",
    "religious_affiliation",
    "decedent_relationship_id",
    "service_anniversary_date",
)
MERGED_LIST_FIELDS = ("tags", "cultural_preferences", "dietary_restrictions")


class ContactPolicyService:
    """Read and version the contact management policy of a funeral home."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._policies = ContactPolicyRepository(session, self._clock)

    def get_current_policy(self, funeral_home_id: str) -> ContactManagementPolicy:
        return self._policies.get_current(funeral_home_id)

    def get_policy_history(self, funeral_home_id: str) -> list[ContactManagementPolicy]:
        return self._policies.find_history(funeral_home_id)

    def get_policy_at_time(self, funeral_home_id: str, as_of: datetime) -> ContactManagementPolicy:
        return self._policies.find_at_time(funeral_home_id, as_of)

    def create_policy(
        self,
        funeral_home_id: str,
        actor_id: str,
        preset: ContactPolicyPreset = ContactPolicyPreset.STANDARD,
        reason: str | None = None,
    ) -> ContactManagementPolicy:
        if self._policies.find_by_business_key(funeral_home_id) is not None:
            raise ValidationError(
                f"Funeral home {funeral_home_id} already has a contact policy",
                field="funeral_home_id",
            )
        policy = ContactManagementPolicy.from_preset(funeral_home_id, actor_id, preset, reason)
        with unit_of_work(self._session, "create_contact_policy"):
            saved = self._policies.save(policy, actor_id)
        logger.info("contact_policy_created", extra={
            "funeral_home_id": funeral_home_id,
            "preset": ContactPolicyPreset(preset).value,
        })
        return saved

    def update_policy(
        self,
        funeral_home_id: str,
        actor_id: str,
        reason: str | None = None,
        **changes: Any,
    ) -> ContactManagementPolicy:
        with unit_of_work(self._session, "update_contact_policy"):
            current = self._policies.get_current(funeral_home_id)
            saved = self._policies.save(current.with_changes(reason=reason, **changes), actor_id)
        logger.info("contact_policy_updated", extra={
            "funeral_home_id": funeral_home_id,
            "version": saved.version,
            "changed_settings": sorted(changes),
        })
        return saved


class ContactService:
    """CRM contacts, duplicate detection and merge."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        similarity_engine: SimilarityEngine | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._contacts = ContactRepository(session, self._clock)
        self._policies = ContactPolicyRepository(session, self._clock)
        self._similarity = similarity_engine or SimilarityEngine()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_contact(self, business_key: str) -> Contact:
        return self._contacts.get_current(business_key)

    def get_contact_history(self, business_key: str) -> list[Contact]:
        return self._contacts.find_history(business_key)

    def list_contacts(self, funeral_home_id: str, include_merged: bool = False) -> list[Contact]:
        return self._contacts.find_by_funeral_home(funeral_home_id, include_merged)

    def list_contacts_needing_grief_check_in(self, funeral_home_id: str) -> list[Contact]:
        now = self._clock.now()
        return [
            c for c in self._contacts.find_by_funeral_home(funeral_home_id)
            if c.needs_grief_check_in(now)
        ]

    # ------------------------------------------------------------------
    # Contact maintenance
    # ------------------------------------------------------------------

    def create_contact(
        self,
        funeral_home_id: str,
        first_name: str,
        last_name: str,
        contact_type: ContactType,
        actor_id: str,
        email: str | None = None,
        phone: str | None = None,
    ) -> Contact:
        contact = Contact.create(
            funeral_home_id=funeral_home_id,
            first_name=first_name,
            last_name=last_name,
            contact_type=contact_type,
            created_by=actor_id,
            email=email,
            phone=phone,
        )
        with unit_of_work(self._session, "create_contact"):
            saved = self._contacts.save(contact, actor_id)
        logger.info("contact_created", extra={
            "contact_id": saved.business_key,
            "funeral_home_id": funeral_home_id,
            "contact_type": saved.contact_type.value,
        })
        return saved

    def update_contact_info(self, business_key: str, actor_id: str, **changes: str | None) -> Contact:
        return self._apply(
            business_key, actor_id, "contact_info_updated",
            lambda c: c.update_contact_info(**changes),
        )

    def update_relationship(
        self, business_key: str, relationship_type: RelationshipType, actor_id: str,
    ) -> Contact:
        return self._apply(
            business_key, actor_id, "contact_relationship_updated",
            lambda c: c.update_relationship(relationship_type),
        )

    def update_birth_date(self, business_key: str, birth_date: date, actor_id: str) -> Contact:
        today = self._clock.today()
        return self._apply(
            business_key, actor_id, "contact_birth_date_updated",
            lambda c: c.update_birth_date(birth_date, today),
        )

    def update_notes(self, business_key: str, notes: str, actor_id: str) -> Contact:
        return self._apply(
            business_key, actor_id, "contact_notes_updated", lambda c: c.update_notes(notes),
        )

    def add_tag(self, business_key: str, tag: str, actor_id: str) -> Contact:
        return self._apply(business_key, actor_id, "contact_tag_added", lambda c: c.add_tag(tag))

    def remove_tag(self, business_key: str, tag: str, actor_id: str) -> Contact:
        return self._apply(
            business_key, actor_id, "contact_tag_removed", lambda c: c.remove_tag(tag),
        )

    def opt_in_email(self, business_key: str, actor_id: str) -> Contact:
        return self._apply(business_key, actor_id, "contact_email_opt_in", Contact.opt_in_email)

    def opt_out_email(self, business_key: str, actor_id: str) -> Contact:
        return self._apply(business_key, actor_id, "contact_email_opt_out", Contact.opt_out_email)

    def opt_in_sms(self, business_key: str, actor_id: str) -> Contact:
        return self._apply(business_key, actor_id, "contact_sms_opt_in", Contact.opt_in_sms)

    def opt_out_sms(self, business_key: str, actor_id: str) -> Contact:
        return self._apply(business_key, actor_id, "contact_sms_opt_out", Contact.opt_out_sms)

    def mark_do_not_contact(self, business_key: str, actor_id: str) -> Contact:
        return self._apply(
            business_key, actor_id, "contact_marked_do_not_contact", Contact.mark_do_not_contact,
        )

    def remove_do_not_contact(self, business_key: str, actor_id: str) -> Contact:
        return self._apply(
            business_key, actor_id, "contact_do_not_contact_removed",
            Contact.remove_do_not_contact,
        )

    def start_grief_journey(
        self,
        business_key: str,
        decedent_relationship_id: str,
        service_anniversary_date: date,
        actor_id: str,
    ) -> Contact:
        now = self._clock.now()
        return self._apply(
            business_key, actor_id, "contact_grief_journey_started",
            lambda c: c.start_grief_journey(decedent_relationship_id, service_anniversary_date, now),
        )

    def update_grief_stage(self, business_key: str, stage: GriefStage, actor_id: str) -> Contact:
        return self._apply(
            business_key, actor_id, "contact_grief_stage_updated",
            lambda c: c.update_grief_stage(stage),
        )

    def record_grief_check_in(self, business_key: str, actor_id: str) -> Contact:
        now = self._clock.now()
        return self._apply(
            business_key, actor_id, "contact_grief_check_in_recorded",
            lambda c: c.record_grief_check_in(now),
        )

    def update_veteran_info(
        self,
        business_key: str,
        is_veteran: bool,
        actor_id: str,
        military_branch: MilitaryBranch | None = None,
    ) -> Contact:
        return self._apply(
            business_key, actor_id, "contact_veteran_info_updated",
            lambda c: c.update_veteran_info(is_veteran, military_branch),
        )

    def update_cultural_preferences(
        self,
        business_key: str,
        actor_id: str,
        religious_affiliation: str | None = None,
        cultural_preferences: Sequence[str] | None = None,
        dietary_restrictions: Sequence[str] | None = None,
    ) -> Contact:
        return self._apply(
            business_key, actor_id, "contact_cultural_preferences_updated",
            lambda c: c.update_cultural_preferences(
                religious_affiliation,
                tuple(cultural_preferences) if cultural_preferences is not None else None,
                tuple(dietary_restrictions) if dietary_restrictions is not None else None,
            ),
        )

    def update_language_preference(
        self, business_key: str, language: LanguagePreference, actor_id: str,
    ) -> Contact:
        return self._apply(
            business_key, actor_id, "contact_language_updated",
            lambda c: c.update_language_preference(language),
        )

    # ------------------------------------------------------------------
    # Duplicates
    # ------------------------------------------------------------------

    def find_duplicates(
        self,
        funeral_home_id: str,
        target_contact_id: str | None = None,
        min_score: int | None = None,
    ) -> list[DuplicateMatch]:
        """
        Likely duplicates among the funeral home's unmerged contacts.

        With ``target_contact_id`` only that contact is compared against the
        others; otherwise every pair is scored and reported in both
        directions.  Results are ordered by score, best first.  When the
        funeral home has a contact policy its threshold, age window and
        result cap apply.
        """
        policy = self._policies.find_by_business_key(funeral_home_id)
        if min_score is None:
            min_score = (
                policy.min_duplicate_similarity_threshold if policy is not None
                else DEFAULT_MIN_SIMILARITY
            )

        contacts = self._contacts.find_by_funeral_home(funeral_home_id)
        if policy is not None:
            cutoff = self._clock.now() - timedelta(days=policy.ignore_duplicates_older_than_days)
            contacts = [
                c for c in contacts
                if c.business_key == target_contact_id
                or c.created_at is None or c.created_at >= cutoff
            ]
        by_key = {c.business_key: c for c in contacts}

        if target_contact_id is not None:
            target = by_key.get(target_contact_id)
            if target is None:
                return []
            pairs = self._similarity.matches_for(
                _fingerprint(target), [_fingerprint(c) for c in contacts], min_score,
            )
        else:
            pairs = self._similarity.all_pairs([_fingerprint(c) for c in contacts], min_score)

        matches = [_to_match(pair, by_key) for pair in pairs]
        if policy is not None:
            matches = matches[:policy.max_duplicates_per_search]

        logger.info("contact_duplicates_found", extra={
            "funeral_home_id": funeral_home_id,
            "target_contact_id": target_contact_id,
            "min_score": min_score,
            "match_count": len(matches),
        })
        return matches

    def find_duplicate_clusters(
        self,
        funeral_home_id: str,
        min_score: int = DEFAULT_CLUSTER_SIMILARITY,
    ) -> list[list[Contact]]:
        """Groups of two or more contacts linked by similarity >= ``min_score``."""
        contacts = self._contacts.find_by_funeral_home(funeral_home_id)
        by_key = {c.business_key: c for c in contacts}
        pairs = self._similarity.all_pairs([_fingerprint(c) for c in contacts], min_score)
        return [
            [by_key[key] for key in cluster]
            for cluster in self._similarity.clusters(pairs)
        ]

    def merge_contacts(
        self,
        source_contact_id: str,
        target_contact_id: str,
        actor_id: str,
        approved_by: str | None = None,
    ) -> Contact:
        """
        Fold ``source`` into ``target`` following the funeral home's merge policy.

        Returns the merged target.  The source keeps a version pointing at
        the target and drops out of searches and listings.
        """
        if source_contact_id == target_contact_id:
            raise BusinessRuleViolationError(
                "Cannot merge a contact into itself", rule="merge_distinct_contacts",
            )
        source = self._contacts.get_current(source_contact_id)
        target = self._contacts.get_current(target_contact_id)
        if source.funeral_home_id != target.funeral_home_id:
            raise BusinessRuleViolationError(
                "Contacts belong to different funeral homes", rule="merge_same_funeral_home",
            )
        for contact in (source, target):
            if contact.is_merged:
                raise BusinessRuleViolationError(
                    f"Contact {contact.business_key} has already been merged",
                    rule="merge_unmerged_only",
                )

        policy = self._policies.get_current(target.funeral_home_id)
        if policy.is_merge_approval_required and not approved_by:
            raise BusinessRuleViolationError(
                "Contact merge requires approval", rule="merge_approval_required",
            )

        changes = self._combine(source, target, policy.merge_field_precedence)

        with unit_of_work(self._session, "merge_contacts"):
            merged = self._contacts.save(target.apply_merge(**changes), actor_id)
            self._contacts.save(source.merge_into(target.business_key), actor_id)

        logger.info("contacts_merged", extra={
            "source_contact_id": source_contact_id,
            "target_contact_id": target_contact_id,
            "precedence": policy.merge_field_precedence.value,
            "approved_by": approved_by,
        })
        return merged

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _combine(
        self,
        source: Contact,
        target: Contact,
        precedence: MergeFieldPrecedence,
    ) -> dict[str, Any]:
        if precedence is MergeFieldPrecedence.PREFER_NON_NULL:
            primary, secondary, fallback = target, source, True
        elif precedence is MergeFieldPrecedence.NEWEST:
            newer_source = (
                source.created_at is not None and target.created_at is not None
                and source.created_at > target.created_at
            )
            primary, secondary = (source, target) if newer_source else (target, source)
            fallback = False
        else:
            source_changed = self._contacts.last_changed_at(source.business_key)
            target_changed = self._contacts.last_changed_at(target.business_key)
            newer_source = (
                source_changed is not None and target_changed is not None
                and source_changed > target_changed
            )
            primary, secondary = (source, target) if newer_source else (target, source)
            fallback = True

        changes: dict[str, Any] = {}
        for name in MERGED_SCALAR_FIELDS:
            value = getattr(primary, name)
            if value is None and fallback:
                value = getattr(secondary, name)
            changes[name] = value
        for name in MERGED_LIST_FIELDS:
            combined = list(getattr(target, name))
            combined.extend(v for v in getattr(source, name) if v not in combined)
            changes[name] = tuple(combined)

        do_not_contact = source.do_not_contact or target.do_not_contact
        changes["do_not_contact"] = do_not_contact
        changes["email_opt_in"] = target.email_opt_in and not do_not_contact
        changes["sms_opt_in"] = target.sms_opt_in and not do_not_contact
        changes["is_veteran"] = source.is_veteran or target.is_veteran
        return changes

    def _apply(
        self,
        business_key: str,
        actor_id: str,
        event: str,
        change: Callable[[Contact], Contact],
    ) -> Contact:
        with unit_of_work(self._session, event):
            current = self._contacts.get_current(business_key)
            updated = change(current)
            if updated is current:
                return current
            saved = self._contacts.save(updated, actor_id)
        logger.info(event, extra={"contact_id": business_key, "version": saved.version})
        return saved


def _fingerprint(contact: Contact) -> ContactFingerprint:
    return ContactFingerprint(
        key=contact.business_key,
        first_name=contact.first_name,
        last_name=contact.last_name,
        email=contact.email,
        phone=contact.phone,
        alternate_phone=contact.alternate_phone,
    )


def _to_match(pair: DuplicatePair, by_key: dict[str, Contact]) -> DuplicateMatch:
    return DuplicateMatch(
        source_contact_id=pair.source_key,
        contact=by_key[pair.match_key],
        similarity_score=pair.score,
        match_reasons=pair.reasons,
    )
