"""
Contract Workflow (``funeral_modules.contracts.workflows``).

draft -> pending_review | cancelled; pending_review -> pending_signatures |
draft | cancelled; pending_signatures -> fully_signed | cancelled.  A fully
signed contract is immutable.
"""

from funeral_kernel.domain.workflow import Transition, Workflow
from funeral_kernel.logging_config import get_logger

logger = get_logger("modules.contracts.workflows")

CONTRACT_WORKFLOW = Workflow(
    name="contract",
    description="Funeral service contract from draft to signature",
    initial_state="draft",
    states=("draft", "pending_review", "pending_signatures", "fully_signed", "cancelled"),
    transitions=(
        Transition("draft", "pending_review", action="submit_for_review"),
        Transition("draft", "cancelled", action="cancel"),
        Transition("pending_review", "pending_signatures", action="approve_for_signature"),
        Transition("pending_review", "draft", action="return_to_draft"),
        Transition("pending_review", "cancelled", action="cancel"),
        Transition("pending_signatures", "fully_signed", action="mark_fully_signed"),
        Transition("pending_signatures", "cancelled", action="cancel"),
    ),
    terminal_states=("fully_signed", "cancelled"),
)

logger.info(
    "contract_workflow_registered",
    extra={
        "workflow": CONTRACT_WORKFLOW.name,
        "state_count": len(CONTRACT_WORKFLOW.states),
        "transition_count": len(CONTRACT_WORKFLOW.transitions),
    },
)
