"""
Fulfillment Module (``stock_modules.fulfillment``).

Responsibility
--------------
Purchase order receiving and sales order shipping.  Orders move through an
explicit workflow (draft, approved, partially fulfilled, fulfilled, closed,
cancelled); each receive/ship action converts the line quantity to the
item's base unit, applies it to the stock ledger, and appends a movement.

Architecture
------------
Layer: **Modules** -- DTOs, workflows, config schema, ORM, and a thin
orchestration service.  Imports from ``stock_engines`` and ``stock_kernel``
but never the reverse.

Invariants
----------
- Each service method owns its transaction boundary (commit / rollback).
- A line's progress is the sum of its movements; the cached counter on the
  line is advisory.
- An order reaches ``fulfilled`` only when every line is fully fulfilled.

Failure Modes
-------------
- Conversion and ledger errors abort the single line action.
- Batch actions report per-line results and never abort on the first error.
"""

from stock_modules.fulfillment.config import FulfillmentConfig
from stock_modules.fulfillment.models import (
    BatchFulfillmentResult,
    LineFulfillmentResult,
    OrderInfo,
    OrderKind,
    OrderLineInfo,
    OrderLineInput,
    OrderStatus,
    OutstandingLine,
)
from stock_modules.fulfillment.service import FulfillmentService
from stock_modules.fulfillment.workflows import (
    PURCHASE_ORDER_WORKFLOW,
    SALES_ORDER_WORKFLOW,
)

__all__ = [
    "BatchFulfillmentResult",
    "FulfillmentConfig",
    "FulfillmentService",
    "LineFulfillmentResult",
    "OrderInfo",
    "OrderKind",
    "OrderLineInfo",
    "OrderLineInput",
    "OrderStatus",
    "OutstandingLine",
    "PURCHASE_ORDER_WORKFLOW",
    "SALES_ORDER_WORKFLOW",
]
