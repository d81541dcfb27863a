"""
DTOs -- pure data transfer objects for the stock kernel.

Services and selectors hand these out instead of ORM instances.  Zero I/O;
from_model() converters are invoked only from the service layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

_ZERO = Decimal("0")


class MovementType(str, Enum):
    """Kind of stock event."""

    RECEIVE = "receive"
    ISSUE = "issue"
    TRANSFER = "transfer"
    ADJUST = "adjust"


class MovementRefType(str, Enum):
    """What originated a movement."""

    PURCHASE_ORDER = "PO"
    SALES_ORDER = "SO"
    TRANSFER = "TRANSFER"
    ADJUST = "ADJUST"


@dataclass(frozen=True)
class OnHand:
    """Quantity (base unit) and average unit cost at one location."""
    qty: Decimal = _ZERO
    avg_cost: Decimal = _ZERO


@dataclass(frozen=True)
class StockLevelInfo:
    """A stock row as read by selectors."""
    warehouse_id: UUID
    bin_id: UUID | None
    item_id: UUID
    on_hand_qty: Decimal
    avg_unit_cost: Decimal
    version: int

    @classmethod
    def from_model(cls, row) -> StockLevelInfo:
        return cls(
            warehouse_id=row.warehouse_id,
            bin_id=row.bin_id,
            item_id=row.item_id,
            on_hand_qty=row.on_hand_qty,
            avg_unit_cost=row.avg_unit_cost,
            version=row.version,
        )

    @property
    def value(self) -> Decimal:
        return self.on_hand_qty * self.avg_unit_cost


@dataclass(frozen=True)
class StockLevelSnapshot:
    """State of a stock row after a delta was applied."""
    warehouse_id: UUID
    bin_id: UUID | None
    item_id: UUID
    on_hand_qty: Decimal
    avg_unit_cost: Decimal
    previous_qty: Decimal
    previous_avg_cost: Decimal
    version: int

    @property
    def delta(self) -> Decimal:
        return self.on_hand_qty - self.previous_qty


@dataclass(frozen=True)
class MovementDraft:
    """Everything needed to append a movement; validated by MovementLog."""
    movement_type: MovementType
    item_id: UUID
    uom_id: UUID
    qty: Decimal
    qty_base: Decimal
    unit_cost_base: Decimal
    ref_type: MovementRefType
    ref_id: UUID
    actor_id: UUID
    ref_line_id: UUID | None = None
    from_warehouse_id: UUID | None = None
    from_bin_id: UUID | None = None
    to_warehouse_id: UUID | None = None
    to_bin_id: UUID | None = None
    idempotency_key: str | None = None
    source_unit_price: Decimal | None = None
    notes: str | None = None


@dataclass(frozen=True)
class MovementInfo:
    """A persisted movement."""
    id: UUID
    movement_type: MovementType
    item_id: UUID
    uom_id: UUID
    qty: Decimal
    qty_base: Decimal
    unit_cost_base: Decimal
    total_value_base: Decimal
    ref_type: MovementRefType
    ref_id: UUID
    ref_line_id: UUID | None
    from_warehouse_id: UUID | None
    from_bin_id: UUID | None
    to_warehouse_id: UUID | None
    to_bin_id: UUID | None
    idempotency_key: str | None
    actor_id: UUID
    created_at: datetime | None
    replayed: bool = False

    @classmethod
    def from_model(cls, row, *, replayed: bool = False) -> MovementInfo:
        return cls(
            id=row.id,
            movement_type=MovementType(row.movement_type),
            item_id=row.item_id,
            uom_id=row.uom_id,
            qty=row.qty,
            qty_base=row.qty_base,
            unit_cost_base=row.unit_cost_base,
            total_value_base=row.total_value_base,
            ref_type=MovementRefType(row.ref_type),
            ref_id=row.ref_id,
            ref_line_id=row.ref_line_id,
            from_warehouse_id=row.from_warehouse_id,
            from_bin_id=row.from_bin_id,
            to_warehouse_id=row.to_warehouse_id,
            to_bin_id=row.to_bin_id,
            idempotency_key=row.idempotency_key,
            actor_id=row.actor_id,
            created_at=row.created_at,
            replayed=replayed,
        )
