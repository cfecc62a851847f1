"""
Payment Workflow (``funeral_modules.payments.workflows``).

pending -> processing | cancelled; processing -> succeeded | failed;
succeeded -> refunded.  failed, cancelled and refunded are terminal.
"""

from funeral_kernel.domain.workflow import Transition, Workflow
from funeral_kernel.logging_config import get_logger

logger = get_logger("modules.payments.workflows")

PAYMENT_WORKFLOW = Workflow(
    name="payment",
    description="Customer payment from capture to settlement or refund",
    initial_state="pending",
    states=("pending", "processing", "succeeded", "failed", "cancelled", "refunded"),
    transitions=(
        Transition("pending", "processing", action="process"),
        Transition("pending", "cancelled", action="cancel"),
        Transition("processing", "succeeded", action="succeed"),
        Transition("processing", "failed", action="fail"),
        Transition("succeeded", "refunded", action="refund"),
    ),
    terminal_states=("failed", "cancelled", "refunded"),
)

logger.info(
    "payment_workflow_registered",
    extra={
        "workflow": PAYMENT_WORKFLOW.name,
        "state_count": len(PAYMENT_WORKFLOW.states),
        "transition_count": len(PAYMENT_WORKFLOW.transitions),
    },
)
