"""
Case Workflow (``funeral_modules.case.workflows``).

inquiry -> active | archived; active -> completed | archived;
completed -> archived; archived is terminal.
"""

from funeral_kernel.domain.workflow import Transition, Workflow
from funeral_kernel.logging_config import get_logger

logger = get_logger("modules.case.workflows")

CASE_WORKFLOW = Workflow(
    name="case",
    description="Funeral case lifecycle from first inquiry to archive",
    initial_state="inquiry",
    states=("inquiry", "active", "completed", "archived"),
    transitions=(
        Transition("inquiry", "active", action="activate"),
        Transition("inquiry", "archived", action="archive"),
        Transition("active", "completed", action="complete"),
        Transition("active", "archived", action="archive"),
        Transition("completed", "archived", action="archive"),
    ),
    terminal_states=("archived",),
)

logger.info(
    "case_workflow_registered",
    extra={
        "workflow": CASE_WORKFLOW.name,
        "state_count": len(CASE_WORKFLOW.states),
        "transition_count": len(CASE_WORKFLOW.transitions),
    },
)
