"""
Fulfillment Domain Models (``stock_modules.fulfillment.models``).

Responsibility
--------------
Frozen value objects for purchase and sales orders, their lines, and the
results of receive/ship actions.

Architecture
------------
Layer: **Modules** -- pure domain data structures.  These models carry NO
database identity and NO I/O; they are used as DTOs between the service
layer and callers.

Invariants
----------
- All quantities and money fields use ``Decimal`` -- never ``float``.
- ``OutstandingLine.remaining_qty`` is never negative.
- A ``LineFulfillmentResult`` carries a movement on success and an error
  code on failure, never both.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from stock_kernel.domain.dtos import MovementInfo


class OrderKind(str, Enum):
    """Which side of the business an order is on."""
    PURCHASE = "purchase"
    SALES = "sales"


class OrderStatus(str, Enum):
    """Order lifecycle states."""
    DRAFT = "draft"
    APPROVED = "approved"
    PARTIALLY_FULFILLED = "partially_fulfilled"
    FULFILLED = "fulfilled"
    CLOSED = "closed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class OrderLineInput:
    """One line requested when creating an order."""
    item_id: UUID
    uom_id: UUID
    ordered_qty: Decimal
    unit_price: Decimal = Decimal("0")
    discount_pct: Decimal = Decimal("0")


@dataclass(frozen=True)
class OrderLineInfo:
    """A persisted order line."""
    id: UUID
    order_id: UUID
    line_no: int
    item_id: UUID
    uom_id: UUID
    ordered_qty: Decimal
    unit_price: Decimal
    discount_pct: Decimal
    fulfilled_qty: Decimal
    is_fulfilled: bool
    fulfilled_at: datetime | None = None


@dataclass(frozen=True)
class OrderInfo:
    """A persisted purchase or sales order with its lines."""
    id: UUID
    kind: OrderKind
    order_no: str
    party_id: UUID
    status: OrderStatus
    currency: str
    fx_to_base: Decimal
    scope_id: UUID | None = None
    notes: str | None = None
    lines: tuple[OrderLineInfo, ...] = field(default_factory=tuple)

    @property
    def is_fully_fulfilled(self) -> bool:
        return bool(self.lines) and all(line.is_fulfilled for line in self.lines)


@dataclass(frozen=True)
class OutstandingLine:
    """Remaining quantity on one line, recomputed from the movement log."""
    line_id: UUID
    line_no: int
    item_id: UUID
    uom_id: UUID
    ordered_qty: Decimal
    fulfilled_qty: Decimal
    remaining_qty: Decimal


@dataclass(frozen=True)
class LineFulfillmentResult:
    """Outcome of one line inside a batch receive/ship."""
    line_id: UUID
    success: bool
    movement: MovementInfo | None = None
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def ok(cls, line_id: UUID, movement: MovementInfo) -> LineFulfillmentResult:
        return cls(line_id=line_id, success=True, movement=movement)

    @classmethod
    def failed(cls, line_id: UUID, code: str, message: str) -> LineFulfillmentResult:
        return cls(line_id=line_id, success=False, error_code=code, error_message=message)


@dataclass(frozen=True)
class BatchFulfillmentResult:
    """Per-line outcomes of ``receive_all`` / ``ship_all``."""
    order_id: UUID
    kind: OrderKind
    results: tuple[LineFulfillmentResult, ...] = field(default_factory=tuple)

    @property
    def succeeded(self) -> tuple[LineFulfillmentResult, ...]:
        return tuple(r for r in self.results if r.success)

    @property
    def failed(self) -> tuple[LineFulfillmentResult, ...]:
        return tuple(r for r in self.results if not r.success)

    @property
    def all_succeeded(self) -> bool:
        return all(r.success for r in self.results)
