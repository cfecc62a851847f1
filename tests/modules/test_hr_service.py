"""Tests for employee onboarding and offboarding (``funeral_modules.hr``)."""

from datetime import date

import pytest

from funeral_kernel.exceptions import ValidationError
from funeral_modules.hr.models import ChecklistStatus
from funeral_modules.hr.service import HRService
from funeral_services.ports import GoChecklistTask


@pytest.fixture
def hr_service(hr_port, deterministic_clock):
    return HRService(hr_port, clock=deterministic_clock)


def _tasks(*completed):
    return [GoChecklistTask(f"task-{i}", f"Task {i}", done) for i, done in enumerate(completed, 1)]


class TestOnboarding:

    def test_hire_reports_checklist(self, hr_service, hr_port):
        hr_port.onboarding_tasks = _tasks(True, False, False)

        result = hr_service.start_employee_onboarding(
            "Maria", "Lopez", "maria@example.com", date(2025, 2, 1),
            "pos-embalmer", "Embalmer", "Preparation",
        )

        assert result.employee_id == "emp-001"
        assert result.employee_number == "EMP-2025-001"
        assert result.full_name == "Maria Lopez"
        assert (result.tasks_total, result.tasks_completed, result.tasks_remaining) == (3, 1, 2)
        assert result.status is ChecklistStatus.IN_PROGRESS
        assert hr_port.hired[0].position_title == "Embalmer"

    @pytest.mark.parametrize(
        "first,last,email,field",
        [
            (" ", "Lopez", "m@example.com", "first_name"),
            ("Maria", "", "m@example.com", "last_name"),
            ("Maria", "Lopez", "maria.example.com", "email"),
        ],
    )
    def test_validation(self, hr_service, hr_port, first, last, email, field):
        with pytest.raises(ValidationError) as exc_info:
            hr_service.start_employee_onboarding(
                first, last, email, date(2025, 2, 1), "pos-1", "Director", "Operations",
            )
        assert exc_info.value.field == field
        assert hr_port.hired == []


class TestOffboarding:

    def test_final_pay_when_checklist_complete(self, hr_service, hr_port):
        hr_port.exit_checklist = _tasks(True, True)

        result = hr_service.process_employee_offboarding(
            "emp-007", date(2025, 1, 31), "Relocation", process_final_paycheck=True,
        )

        assert result.status is ChecklistStatus.COMPLETED
        assert result.final_pay_processed
        assert hr_port.final_paychecks == ["emp-007"]
        assert hr_port.terminated == [("emp-007", date(2025, 1, 31), "Relocation")]

    def test_final_pay_deferred_with_open_items(self, hr_service, hr_port, captured_logs):
        hr_port.exit_checklist = _tasks(True, False)

        result = hr_service.process_employee_offboarding(
            "emp-007", date(2025, 1, 31), "Relocation", process_final_paycheck=True,
        )

        assert not result.final_pay_processed
        assert result.tasks_remaining == 1
        assert hr_port.final_paychecks == []
        deferred = [r for r in captured_logs() if r["message"] == "final_paycheck_deferred"]
        assert deferred[0]["tasks_remaining"] == 1

    def test_empty_checklist_counts_as_complete(self, hr_service, hr_port):
        result = hr_service.process_employee_offboarding(
            "emp-007", date(2025, 1, 31), "Retirement", process_final_paycheck=True,
        )
        assert result.status is ChecklistStatus.COMPLETED
        assert result.final_pay_processed

    def test_final_pay_only_on_request(self, hr_service, hr_port):
        hr_port.exit_checklist = _tasks(True)

        result = hr_service.process_employee_offboarding("emp-007", date(2025, 1, 31), "Retirement")

        assert not result.final_pay_processed
        assert hr_port.final_paychecks == []

    def test_reason_required(self, hr_service, hr_port):
        with pytest.raises(ValidationError) as exc_info:
            hr_service.process_employee_offboarding("emp-007", date(2025, 1, 31), "  ")
        assert exc_info.value.field == "reason"
        assert hr_port.terminated == []
