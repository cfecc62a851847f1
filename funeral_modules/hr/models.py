"""HR use-case results (``funeral_modules.hr.models``)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum

from funeral_services.ports import GoChecklistTask


class ChecklistStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


def checklist_status(tasks) -> ChecklistStatus:
    if all(task.completed for task in tasks):
        return ChecklistStatus.COMPLETED
    return ChecklistStatus.IN_PROGRESS


@dataclass(frozen=True)
class _ChecklistProgress:
    tasks: tuple[GoChecklistTask, ...]

    @property
    def tasks_total(self) -> int:
        return len(self.tasks)

    @property
    def tasks_completed(self) -> int:
        return sum(1 for task in self.tasks if task.completed)

    @property
    def tasks_remaining(self) -> int:
        return self.tasks_total - self.tasks_completed

    @property
    def status(self) -> ChecklistStatus:
        return checklist_status(self.tasks)


@dataclass(frozen=True)
class OnboardingResult(_ChecklistProgress):
    employee_id: str = ""
    employee_number: str = ""
    full_name: str = ""
    position_title: str = ""
    department: str = ""
    hire_date: date | None = None


@dataclass(frozen=True)
class OffboardingResult(_ChecklistProgress):
    """Exit checklist progress; ``final_pay_processed`` only once every item is done."""

    employee_id: str = ""
    termination_date: date | None = None
    reason: str = ""
    final_pay_processed: bool = False
