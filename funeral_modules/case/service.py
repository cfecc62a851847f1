"""
Case Service (``funeral_modules.case.service``).

Responsibility
--------------
Use-case entry points for the case lifecycle.  Each write loads the current
version, applies one entity operation and saves the result as the next
SCD2 version.

Transaction boundary
--------------------
Every writing method commits on success and rolls back on failure.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import date, datetime
from typing import Any

from sqlalchemy.orm import Session

from funeral_kernel.domain.clock import Clock, SystemClock
from funeral_kernel.logging_config import get_logger
from funeral_modules._unit_of_work import unit_of_work
from funeral_modules.case.models import Case, CaseStatus, CaseType, ServiceType
from funeral_modules.case.repository import CaseRepository

logger = get_logger("modules.case.service")


class CaseService:
    """Create, query and transition funeral cases."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._cases = CaseRepository(session, self._clock)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_case(self, business_key: str) -> Case:
        return self._cases.get_current(business_key)

    def get_case_history(self, business_key: str) -> list[Case]:
        return self._cases.find_history(business_key)

    def get_case_at_time(self, business_key: str, as_of: datetime) -> Case:
        return self._cases.find_at_time(business_key, as_of)

    def list_cases(self, funeral_home_id: str, status: CaseStatus | None = None) -> list[Case]:
        return self._cases.find_by_funeral_home(funeral_home_id, status)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_case(
        self,
        funeral_home_id: str,
        decedent_name: str,
        case_type: CaseType,
        actor_id: str,
    ) -> Case:
        case = Case.create(
            funeral_home_id=funeral_home_id,
            decedent_name=decedent_name,
            case_type=case_type,
            created_by=actor_id,
        )
        with unit_of_work(self._session, "create_case"):
            saved = self._cases.save(case, actor_id)
        logger.info("case_created", extra={
            "case_id": saved.business_key,
            "funeral_home_id": funeral_home_id,
            "case_type": saved.case_type.value,
        })
        return saved

    def update_decedent_info(
        self,
        business_key: str,
        actor_id: str,
        date_of_birth: date | None = None,
        date_of_death: date | None = None,
    ) -> Case:
        today = self._clock.today()
        return self._apply(
            business_key, actor_id, "case_decedent_info_updated",
            lambda c: c.update_decedent_info(today, date_of_birth, date_of_death),
        )

    def set_service_details(
        self,
        business_key: str,
        service_type: ServiceType,
        actor_id: str,
        service_date: datetime | None = None,
    ) -> Case:
        now = self._clock.now()
        return self._apply(
            business_key, actor_id, "case_service_details_set",
            lambda c: c.set_service_details(service_type, now, service_date),
        )

    def activate_case(self, business_key: str, actor_id: str) -> Case:
        return self._apply(business_key, actor_id, "case_activated", Case.activate)

    def complete_case(self, business_key: str, actor_id: str) -> Case:
        return self._apply(business_key, actor_id, "case_completed", Case.complete)

    def archive_case(self, business_key: str, actor_id: str) -> Case:
        return self._apply(business_key, actor_id, "case_archived", Case.archive)

    def update_arrangements(
        self,
        business_key: str,
        arrangements: Mapping[str, Any],
        actor_id: str,
    ) -> Case:
        return self._apply(
            business_key, actor_id, "case_arrangements_updated",
            lambda c: c.update_arrangements(arrangements),
        )

    def link_contract(self, business_key: str, go_contract_id: str, actor_id: str) -> Case:
        return self._apply(
            business_key, actor_id, "case_contract_linked",
            lambda c: c.link_contract(go_contract_id),
        )

    def delete_case(self, business_key: str, actor_id: str) -> None:
        with unit_of_work(self._session, "delete_case"):
            self._cases.delete(business_key, actor_id)
        logger.info("case_deleted", extra={"case_id": business_key})

    def _apply(
        self,
        business_key: str,
        actor_id: str,
        event: str,
        change: Callable[[Case], Case],
    ) -> Case:
        with unit_of_work(self._session, event):
            updated = change(self._cases.get_current(business_key))
            saved = self._cases.save(updated, actor_id)
        logger.info(event, extra={
            "case_id": business_key,
            "version": saved.version,
            "status": saved.status.value,
        })
        return saved
