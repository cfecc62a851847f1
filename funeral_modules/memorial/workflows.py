"""
Memorial Template Workflow (``funeral_modules.memorial.workflows``).

draft -> active | deprecated; active -> deprecated.  Deprecated templates
stay in history but are no longer offered or rendered.
"""

from funeral_kernel.domain.workflow import Transition, Workflow
from funeral_kernel.logging_config import get_logger

logger = get_logger("modules.memorial.workflows")

MEMORIAL_TEMPLATE_WORKFLOW = Workflow(
    name="memorial_template",
    description="Memorial print template from draft to retirement",
    initial_state="draft",
    states=("draft", "active", "deprecated"),
    transitions=(
        Transition("draft", "active", action="activate"),
        Transition("draft", "deprecated", action="deprecate"),
        Transition("active", "deprecated", action="deprecate"),
    ),
    terminal_states=("deprecated",),
)

logger.info(
    "memorial_template_workflow_registered",
    extra={
        "workflow": MEMORIAL_TEMPLATE_WORKFLOW.name,
        "state_count": len(MEMORIAL_TEMPLATE_WORKFLOW.states),
        "transition_count": len(MEMORIAL_TEMPLATE_WORKFLOW.transitions),
    },
)
