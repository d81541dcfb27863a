"""
Fulfillment Workflows.

State machines for purchase order receiving and sales order shipping.  Both
order kinds share one lifecycle; only the workflow names differ so errors
and logs say which document was involved.
"""

from stock_kernel.domain.workflow import Guard, Transition, Workflow
from stock_kernel.logging_config import get_logger

logger = get_logger("modules.fulfillment.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

ALL_LINES_FULFILLED = Guard(
    name="all_lines_fulfilled",
    description="Every line's fulfilled quantity equals its ordered quantity",
)

LINES_OUTSTANDING = Guard(
    name="lines_outstanding",
    description="At least one line still has remaining quantity",
)

logger.info(
    "fulfillment_workflow_guards_defined",
    extra={"guards": [ALL_LINES_FULFILLED.name, LINES_OUTSTANDING.name]},
)


def evaluate_guards(lines) -> dict[str, bool]:
    """Truth of each fulfillment guard for an order's lines."""
    complete = all(line.is_fulfilled for line in lines)
    return {
        ALL_LINES_FULFILLED.name: complete,
        LINES_OUTSTANDING.name: not complete,
    }


ORDER_STATES = (
    "draft",
    "approved",
    "partially_fulfilled",
    "fulfilled",
    "closed",
    "cancelled",
)

ORDER_TRANSITIONS = (
    Transition("draft", "approved", action="approve"),
    Transition("draft", "cancelled", action="cancel"),
    Transition(
        "approved", "partially_fulfilled", action="fulfill_partial",
        guard=LINES_OUTSTANDING,
    ),
    Transition(
        "approved", "fulfilled", action="fulfill_complete",
        guard=ALL_LINES_FULFILLED,
    ),
    Transition(
        "partially_fulfilled", "partially_fulfilled", action="fulfill_partial",
        guard=LINES_OUTSTANDING,
    ),
    Transition(
        "partially_fulfilled", "fulfilled", action="fulfill_complete",
        guard=ALL_LINES_FULFILLED,
    ),
    Transition("fulfilled", "closed", action="close"),
)


# -----------------------------------------------------------------------------
# Purchase Order Workflow
# -----------------------------------------------------------------------------

PURCHASE_ORDER_WORKFLOW = Workflow(
    name="purchase_order",
    description="Purchase order approval and receiving",
    initial_state="draft",
    states=ORDER_STATES,
    transitions=ORDER_TRANSITIONS,
    terminal_states=("closed", "cancelled"),
)

logger.info(
    "purchase_order_workflow_registered",
    extra={
        "workflow_name": PURCHASE_ORDER_WORKFLOW.name,
        "state_count": len(PURCHASE_ORDER_WORKFLOW.states),
        "transition_count": len(PURCHASE_ORDER_WORKFLOW.transitions),
        "initial_state": PURCHASE_ORDER_WORKFLOW.initial_state,
    },
)


# -----------------------------------------------------------------------------
# Sales Order Workflow
# -----------------------------------------------------------------------------

SALES_ORDER_WORKFLOW = Workflow(
    name="sales_order",
    description="Sales order confirmation and shipping",
    initial_state="draft",
    states=ORDER_STATES,
    transitions=ORDER_TRANSITIONS,
    terminal_states=("closed", "cancelled"),
)

logger.info(
    "sales_order_workflow_registered",
    extra={
        "workflow_name": SALES_ORDER_WORKFLOW.name,
        "state_count": len(SALES_ORDER_WORKFLOW.states),
        "transition_count": len(SALES_ORDER_WORKFLOW.transitions),
        "initial_state": SALES_ORDER_WORKFLOW.initial_state,
    },
)
