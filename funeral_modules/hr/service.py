"""
HR Service (``funeral_modules.hr.service``).

Employee onboarding and offboarding against the Go HCM module.  Nothing is
stored locally; the result reports checklist progress as the backend sees it.
"""

from __future__ import annotations

from datetime import date

from funeral_kernel.domain.clock import Clock, SystemClock
from funeral_kernel.exceptions import ValidationError
from funeral_kernel.logging_config import get_logger
from funeral_modules.hr.models import ChecklistStatus, OffboardingResult, OnboardingResult
from funeral_services.ports import GoHRPort, HireEmployeeCommand

logger = get_logger("modules.hr.service")


class HRService:
    def __init__(self, hr_port: GoHRPort, clock: Clock | None = None):
        self._hr = hr_port
        self._clock = clock or SystemClock()

    def start_employee_onboarding(
        self,
        first_name: str,
        last_name: str,
        email: str,
        hire_date: date,
        position_id: str,
        position_title: str,
        department: str,
    ) -> OnboardingResult:
        """Hire the employee and report the generated onboarding checklist."""
        if not first_name or not first_name.strip():
            raise ValidationError("First name is required", field="first_name")
        if not last_name or not last_name.strip():
            raise ValidationError("Last name is required", field="last_name")
        if not email or "@" not in email:
            raise ValidationError("A valid email address is required", field="email")

        employee = self._hr.hire_employee(HireEmployeeCommand(
            first_name=first_name,
            last_name=last_name,
            email=email,
            hire_date=hire_date,
            position_id=position_id,
            position_title=position_title,
            department=department,
        ))
        tasks = tuple(self._hr.get_onboarding_tasks(employee.id))
        result = OnboardingResult(
            tasks=tasks,
            employee_id=employee.id,
            employee_number=employee.employee_number,
            full_name=f"{employee.first_name} {employee.last_name}",
            position_title=employee.position_title,
            department=employee.department,
            hire_date=employee.hire_date,
        )
        logger.info("employee_onboarding_started", extra={
            "employee_id": employee.id,
            "tasks_total": result.tasks_total,
            "tasks_completed": result.tasks_completed,
            "status": result.status.value,
        })
        return result

    def process_employee_offboarding(
        self,
        employee_id: str,
        termination_date: date,
        reason: str,
        process_final_paycheck: bool = False,
    ) -> OffboardingResult:
        if not employee_id:
            raise ValidationError("Employee ID is required", field="employee_id")
        if not reason or not reason.strip():
            raise ValidationError("Termination reason is required", field="reason")

        self._hr.terminate_employee(employee_id, termination_date, reason)
        tasks = tuple(self._hr.get_exit_checklist(employee_id))
        result = OffboardingResult(
            tasks=tasks,
            employee_id=employee_id,
            termination_date=termination_date,
            reason=reason,
        )

        final_pay = False
        if process_final_paycheck:
            if result.status is ChecklistStatus.COMPLETED:
                self._hr.process_final_paycheck(employee_id)
                final_pay = True
            else:
                logger.warning("final_paycheck_deferred", extra={
                    "employee_id": employee_id,
                    "tasks_remaining": result.tasks_remaining,
                })

        logger.info("employee_offboarding_processed", extra={
            "employee_id": employee_id,
            "tasks_total": result.tasks_total,
            "tasks_completed": result.tasks_completed,
            "final_pay_processed": final_pay,
        })
        return OffboardingResult(
            tasks=tasks,
            employee_id=employee_id,
            termination_date=termination_date,
            reason=reason,
            final_pay_processed=final_pay,
        )
