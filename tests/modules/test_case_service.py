"""
Tests for the case lifecycle (``funeral_modules.case``).

Covers entity rules on ``Case`` and the SCD2-backed ``CaseService``:
- decedent name and date validation
- status workflow inquiry -> active -> completed -> archived
- service details and arrangements restrictions
- history and point-in-time reads
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from funeral_kernel.exceptions import (
    BusinessRuleViolationError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from funeral_modules.case.models import Case, CaseStatus, CaseType, ServiceType
from funeral_modules.case.workflows import CASE_WORKFLOW

NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def inquiry():
    return Case.create("fh-001", "  Mary Ellen Walsh  ", CaseType.AT_NEED, "staff-001")


class TestCaseCreation:

    def test_name_trimmed_and_status_inquiry(self, inquiry):
        assert inquiry.decedent_name == "Mary Ellen Walsh"
        assert inquiry.status is CaseStatus.INQUIRY
        assert inquiry.version == 1

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            Case.create("fh-001", "   ", CaseType.AT_NEED, "staff-001")
        assert exc_info.value.field == "decedent_name"

    def test_name_length_limit(self):
        Case.create("fh-001", "x" * 255, CaseType.AT_NEED, "staff-001")
        with pytest.raises(ValidationError, match="too long"):
            Case.create("fh-001", "x" * 256, CaseType.AT_NEED, "staff-001")

    def test_case_type_accepts_string_value(self):
        case = Case.create("fh-001", "A B", "pre_need", "staff-001")
        assert case.case_type is CaseType.PRE_NEED


class TestCaseStatus:

    def test_full_lifecycle(self, inquiry):
        active = inquiry.activate()
        with_service = active.set_service_details(ServiceType.TRADITIONAL_BURIAL, NOW)
        completed = with_service.complete()
        archived = completed.archive()

        assert [c.status for c in (active, completed, archived)] == [
            CaseStatus.ACTIVE, CaseStatus.COMPLETED, CaseStatus.ARCHIVED,
        ]
        assert archived.version == 5

    def test_complete_requires_service_type(self, inquiry):
        with pytest.raises(BusinessRuleViolationError) as exc_info:
            inquiry.activate().complete()
        assert exc_info.value.rule == "service_type_required"

    def test_inquiry_cannot_complete(self, inquiry):
        case = inquiry.set_service_details(ServiceType.DIRECT_CREMATION, NOW)
        with pytest.raises(InvalidStateTransitionError):
            case.complete()

    def test_archived_is_terminal(self, inquiry):
        archived = inquiry.archive()
        assert CASE_WORKFLOW.is_terminal(archived.status.value)
        with pytest.raises(InvalidStateTransitionError):
            archived.activate()


class TestCaseDetails:

    def test_birth_must_precede_death(self, inquiry):
        with pytest.raises(ValidationError, match="before date of death"):
            inquiry.update_decedent_info(
                date(2025, 1, 15), date_of_birth=date(1950, 1, 1), date_of_death=date(1950, 1, 1),
            )

    def test_death_cannot_be_in_future(self, inquiry):
        with pytest.raises(ValidationError, match="future"):
            inquiry.update_decedent_info(date(2025, 1, 15), date_of_death=date(2025, 1, 16))

    def test_partial_update_keeps_existing_date(self, inquiry):
        case = inquiry.update_decedent_info(date(2025, 1, 15), date_of_birth=date(1940, 3, 2))
        case = case.update_decedent_info(date(2025, 1, 15), date_of_death=date(2025, 1, 10))

        assert case.decedent_date_of_birth == date(1940, 3, 2)
        assert case.decedent_date_of_death == date(2025, 1, 10)

    def test_pre_need_service_date_must_be_future(self):
        case = Case.create("fh-001", "A B", CaseType.PRE_NEED, "staff-001")
        with pytest.raises(ValidationError) as exc_info:
            case.set_service_details(
                ServiceType.MEMORIAL_SERVICE, NOW, service_date=NOW - timedelta(days=1),
            )
        assert exc_info.value.field == "service_date"

    def test_at_need_service_date_may_be_past(self, inquiry):
        case = inquiry.set_service_details(
            ServiceType.MEMORIAL_SERVICE, NOW, service_date=NOW - timedelta(days=1),
        )
        assert case.service_date == NOW - timedelta(days=1)

    def test_archived_case_rejects_service_details(self, inquiry):
        with pytest.raises(BusinessRuleViolationError):
            inquiry.archive().set_service_details(ServiceType.DIRECT_BURIAL, NOW)

    def test_completed_case_rejects_arrangements(self, inquiry):
        completed = (
            inquiry.activate()
            .set_service_details(ServiceType.DIRECT_BURIAL, NOW)
            .complete()
        )
        assert not completed.can_be_modified
        with pytest.raises(BusinessRuleViolationError):
            completed.update_arrangements({"music": "Amazing Grace"})

    def test_link_contract_requires_id(self, inquiry):
        with pytest.raises(ValidationError):
            inquiry.link_contract("")

    def test_finalize_only_once(self, inquiry):
        finalized = inquiry.finalize("je-1", Decimal("8500.00"), NOW)
        assert finalized.is_finalized
        with pytest.raises(BusinessRuleViolationError) as exc_info:
            finalized.finalize("je-2", Decimal("1"), NOW)
        assert exc_info.value.rule == "case_already_finalized"


class TestCaseService:

    def test_create_and_get(self, case_service, funeral_home_id, test_actor_id, captured_logs):
        created = case_service.create_case(
            funeral_home_id, "Robert Hale", CaseType.AT_NEED, test_actor_id,
        )

        fetched = case_service.get_case(created.business_key)
        assert fetched.decedent_name == "Robert Hale"
        assert fetched.status is CaseStatus.INQUIRY
        assert any(r["message"] == "case_created" for r in captured_logs())

    def test_each_change_adds_a_version(
        self, case_service, active_case, test_actor_id, deterministic_clock,
    ):
        deterministic_clock.advance(60)
        case_service.set_service_details(
            active_case.business_key, ServiceType.TRADITIONAL_CREMATION, test_actor_id,
        )
        deterministic_clock.advance(60)
        case_service.update_arrangements(
            active_case.business_key, {"officiant": "Rev. Adams", "hymns": ["Abide With Me"]},
            test_actor_id,
        )

        history = case_service.get_case_history(active_case.business_key)

        assert [c.version for c in history] == [1, 2, 3, 4]
        assert history[-1].arrangements["officiant"] == "Rev. Adams"
        assert history[-1].service_type is ServiceType.TRADITIONAL_CREMATION

    def test_point_in_time_read(
        self, case_service, funeral_home_id, test_actor_id, deterministic_clock,
    ):
        created = case_service.create_case(
            funeral_home_id, "Ann Lee", CaseType.AT_NEED, test_actor_id,
        )
        created_at = deterministic_clock.now()
        deterministic_clock.advance(3600)
        case_service.activate_case(created.business_key, test_actor_id)

        then = case_service.get_case_at_time(created.business_key, created_at)

        assert then.status is CaseStatus.INQUIRY

    def test_complete_and_archive(self, case_service, active_case, test_actor_id):
        case_service.set_service_details(
            active_case.business_key, ServiceType.DIRECT_BURIAL, test_actor_id,
        )
        case_service.complete_case(active_case.business_key, test_actor_id)
        archived = case_service.archive_case(active_case.business_key, test_actor_id)

        assert archived.status is CaseStatus.ARCHIVED

    def test_decedent_death_date_in_future_rejected(self, case_service, active_case, test_actor_id):
        with pytest.raises(ValidationError):
            case_service.update_decedent_info(
                active_case.business_key, test_actor_id, date_of_death=date(2025, 1, 16),
            )
        assert case_service.get_case(active_case.business_key).version == 2

    def test_list_cases_filters_by_status(
        self, case_service, active_case, funeral_home_id, test_actor_id,
    ):
        case_service.create_case(funeral_home_id, "Other Person", CaseType.INQUIRY, test_actor_id)
        case_service.create_case("fh-other", "Elsewhere", CaseType.AT_NEED, test_actor_id)

        all_cases = case_service.list_cases(funeral_home_id)
        active = case_service.list_cases(funeral_home_id, CaseStatus.ACTIVE)

        assert len(all_cases) == 2
        assert [c.business_key for c in active] == [active_case.business_key]

    def test_link_contract(self, case_service, active_case, test_actor_id):
        linked = case_service.link_contract(active_case.business_key, "go-contract-1", test_actor_id)
        assert linked.go_contract_id == "go-contract-1"

    def test_delete_case(self, case_service, active_case, test_actor_id):
        case_service.delete_case(active_case.business_key, test_actor_id)

        with pytest.raises(NotFoundError):
            case_service.get_case(active_case.business_key)
        assert len(case_service.get_case_history(active_case.business_key)) == 2

    def test_unknown_case(self, case_service, test_actor_id):
        with pytest.raises(NotFoundError):
            case_service.activate_case("nope", test_actor_id)
