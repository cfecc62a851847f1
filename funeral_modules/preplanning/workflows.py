"""
Pre-Planning Appointment Workflow (``funeral_modules.preplanning.workflows``).

scheduled -> confirmed -> completed, with cancellation and no-show exits
from both open states.
"""

from funeral_kernel.domain.workflow import Transition, Workflow
from funeral_kernel.logging_config import get_logger

logger = get_logger("modules.preplanning.workflows")

APPOINTMENT_WORKFLOW = Workflow(
    name="preplanning_appointment",
    description="Pre-need consultation with a funeral director",
    initial_state="scheduled",
    states=("scheduled", "confirmed", "completed", "cancelled", "no_show"),
    transitions=(
        Transition("scheduled", "confirmed", action="confirm"),
        Transition("scheduled", "completed", action="complete"),
        Transition("scheduled", "cancelled", action="cancel"),
        Transition("scheduled", "no_show", action="mark_no_show"),
        Transition("confirmed", "completed", action="complete"),
        Transition("confirmed", "cancelled", action="cancel"),
        Transition("confirmed", "no_show", action="mark_no_show"),
    ),
    terminal_states=("completed", "cancelled", "no_show"),
)

logger.info(
    "appointment_workflow_registered",
    extra={
        "workflow": APPOINTMENT_WORKFLOW.name,
        "state_count": len(APPOINTMENT_WORKFLOW.states),
        "transition_count": len(APPOINTMENT_WORKFLOW.transitions),
    },
)
