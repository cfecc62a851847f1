"""
Case Domain Models (``funeral_modules.case.models``).

Responsibility
--------------
The ``Case`` entity: one funeral arrangement from first inquiry to archive,
including decedent details, service details, arrangements, the link to the
Go contract and the financial close (revenue and COGS journal entries).

Architecture position
---------------------
**Modules layer** -- pure data and rules.  No I/O.  Every mutating method
returns a new ``Case`` with ``version + 1``; persistence is the
repository's job.

Invariants enforced
-------------------
* Decedent name is trimmed, non-empty and at most 255 characters.
* Date of birth precedes date of death; date of death is not in the future.
* Status changes follow ``CASE_WORKFLOW``.
* Archived cases accept no service detail changes; archived and completed
  cases accept no arrangement changes.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from funeral_kernel.domain.temporal import new_business_key, next_version
from funeral_kernel.exceptions import BusinessRuleViolationError, ValidationError
from funeral_modules.case.workflows import CASE_WORKFLOW

MAX_DECEDENT_NAME_LENGTH = 255


class CaseType(str, Enum):
    AT_NEED = "at_need"
    PRE_NEED = "pre_need"
    INQUIRY = "inquiry"


class CaseStatus(str, Enum):
    """Must align with ``workflows.CASE_WORKFLOW.states``."""
    INQUIRY = "inquiry"
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class ServiceType(str, Enum):
    TRADITIONAL_BURIAL = "traditional_burial"
    TRADITIONAL_CREMATION = "traditional_cremation"
    MEMORIAL_SERVICE = "memorial_service"
    DIRECT_BURIAL = "direct_burial"
    DIRECT_CREMATION = "direct_cremation"
    CELEBRATION_OF_LIFE = "celebration_of_life"


@dataclass(frozen=True)
class Case:
    business_key: str
    funeral_home_id: str
    decedent_name: str
    case_type: CaseType
    status: CaseStatus
    created_by: str
    version: int = 1
    created_at: datetime | None = None
    id: UUID | None = None
    decedent_date_of_birth: date | None = None
    decedent_date_of_death: date | None = None
    service_type: ServiceType | None = None
    service_date: datetime | None = None
    arrangements: Mapping[str, Any] = field(default_factory=dict)
    go_contract_id: str | None = None
    # Financial close
    revenue_amount: Decimal | None = None
    finalized_at: datetime | None = None
    gl_journal_entry_id: str | None = None
    cogs_amount: Decimal | None = None
    cogs_journal_entry_id: str | None = None
    merchandise_delivered_at: datetime | None = None
    merchandise_delivered_by: str | None = None

    @classmethod
    def create(
        cls,
        funeral_home_id: str,
        decedent_name: str,
        case_type: CaseType,
        created_by: str,
        business_key: str | None = None,
    ) -> Case:
        name = decedent_name.strip()
        if not name:
            raise ValidationError("Decedent name is required", field="decedent_name")
        if len(name) > MAX_DECEDENT_NAME_LENGTH:
            raise ValidationError(
                f"Decedent name too long (max {MAX_DECEDENT_NAME_LENGTH} characters)",
                field="decedent_name",
            )
        return cls(
            business_key=business_key or new_business_key(),
            funeral_home_id=funeral_home_id,
            decedent_name=name,
            case_type=CaseType(case_type),
            status=CaseStatus(CASE_WORKFLOW.initial_state),
            created_by=created_by,
        )

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def transition_status(self, new_status: CaseStatus) -> Case:
        CASE_WORKFLOW.require_transition("Case", self.status.value, CaseStatus(new_status).value)
        return next_version(self, status=CaseStatus(new_status))

    def activate(self) -> Case:
        return self.transition_status(CaseStatus.ACTIVE)

    def complete(self) -> Case:
        if self.service_type is None:
            raise BusinessRuleViolationError(
                "Cannot complete case without service type",
                rule="service_type_required",
            )
        return self.transition_status(CaseStatus.COMPLETED)

    def archive(self) -> Case:
        return self.transition_status(CaseStatus.ARCHIVED)

    # ------------------------------------------------------------------
    # Details
    # ------------------------------------------------------------------

    def update_decedent_info(
        self,
        today: date,
        date_of_birth: date | None = None,
        date_of_death: date | None = None,
    ) -> Case:
        """Set decedent dates; ``None`` leaves the stored value unchanged."""
        dob = date_of_birth if date_of_birth is not None else self.decedent_date_of_birth
        dod = date_of_death if date_of_death is not None else self.decedent_date_of_death
        if dob is not None and dod is not None and dob >= dod:
            raise ValidationError(
                "Date of birth must be before date of death", field="date_of_death",
            )
        if date_of_death is not None and date_of_death > today:
            raise ValidationError(
                "Date of death cannot be in the future", field="date_of_death",
            )
        return next_version(
            self, decedent_date_of_birth=dob, decedent_date_of_death=dod,
        )

    def set_service_details(
        self,
        service_type: ServiceType,
        now: datetime,
        service_date: datetime | None = None,
    ) -> Case:
        if self.status is CaseStatus.ARCHIVED:
            raise BusinessRuleViolationError(
                "Cannot modify service details on archived case",
                rule="no_modification_archived",
            )
        if self.case_type is CaseType.PRE_NEED and service_date is not None and service_date < now:
            raise ValidationError(
                "Service date must be in the future for pre-need cases",
                field="service_date",
            )
        return next_version(
            self,
            service_type=ServiceType(service_type),
            service_date=service_date if service_date is not None else self.service_date,
        )

    def update_arrangements(self, arrangements: Mapping[str, Any]) -> Case:
        if not self.can_be_modified:
            raise BusinessRuleViolationError(
                f"Cannot modify arrangements on {self.status.value} case",
                rule="no_modification_after_completion",
            )
        return next_version(self, arrangements=dict(arrangements))

    def link_contract(self, go_contract_id: str) -> Case:
        if not go_contract_id:
            raise ValidationError("Contract id is required", field="go_contract_id")
        if self.status is CaseStatus.ARCHIVED:
            raise BusinessRuleViolationError(
                "Cannot link a contract to an archived case",
                rule="no_modification_archived",
            )
        return next_version(self, go_contract_id=go_contract_id)

    # ------------------------------------------------------------------
    # Financial close
    # ------------------------------------------------------------------

    def finalize(self, journal_entry_id: str, revenue_amount: Decimal, finalized_at: datetime) -> Case:
        if self.finalized_at is not None:
            raise BusinessRuleViolationError(
                f"Case {self.business_key} is already finalized",
                rule="case_already_finalized",
            )
        return next_version(
            self,
            gl_journal_entry_id=journal_entry_id,
            revenue_amount=revenue_amount,
            finalized_at=finalized_at,
        )

    def update_cogs(
        self,
        journal_entry_id: str,
        cogs_amount: Decimal,
        delivered_at: datetime,
        delivered_by: str,
    ) -> Case:
        return next_version(
            self,
            cogs_journal_entry_id=journal_entry_id,
            cogs_amount=cogs_amount,
            merchandise_delivered_at=delivered_at,
            merchandise_delivered_by=delivered_by,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def can_be_modified(self) -> bool:
        return self.status not in (CaseStatus.ARCHIVED, CaseStatus.COMPLETED)

    @property
    def is_inquiry(self) -> bool:
        return self.status is CaseStatus.INQUIRY

    @property
    def is_active(self) -> bool:
        return self.status is CaseStatus.ACTIVE

    @property
    def is_finalized(self) -> bool:
        return self.finalized_at is not None
