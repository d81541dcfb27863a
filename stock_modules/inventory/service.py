"""
Inventory Module Service (``stock_modules.inventory.service``).

Responsibility
--------------
Manual stock operations outside the order flow: ad-hoc receipts and issues,
bin-to-bin transfers, and count adjustments.  Each operation converts the
quantity to the item's base unit, applies it through ``StockLedger`` and
records one movement.

Architecture
------------
Layer: **Modules** -- thin orchestration wrapper over ``ConversionService``,
``StockLedger`` and ``MovementLog``.

Invariants
----------
- Each public method owns its transaction boundary.
- Transfers and issues carry the source location's weighted-average cost;
  the receiving side blends that cost into its own average.
- Every operation writes exactly one movement (a transfer is one
  ``transfer`` movement, not an issue plus a receipt).

Failure Modes
-------------
- ``InvalidTransferError`` when source and destination are the same.
- ``NoAdjustmentNeededError`` when the target equals on-hand.
- ``InsufficientStockError`` when an issue, transfer or write-down exceeds
  the location's on-hand quantity.
- ``IdempotencyKeyConflictError`` when a key already recorded a different
  operation or item.

Rejections are logged once here as ``<action>_rejected`` with the item,
quantity and location.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from stock_kernel.db.types import round_quantity, to_decimal
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.dtos import (
    MovementDraft,
    MovementInfo,
    MovementRefType,
    MovementType,
)
from stock_kernel.exceptions import (
    IdempotencyKeyConflictError,
    InvalidQuantityError,
    InvalidTransferError,
    ItemNotFoundError,
    NoAdjustmentNeededError,
    StockKernelError,
)
from stock_kernel.logging_config import get_logger
from stock_kernel.models.item import Item
from stock_kernel.selectors.location_selector import LocationSelector
from stock_kernel.services.conversion_service import ConversionService
from stock_kernel.services.movement_log import MovementLog
from stock_kernel.services.stock_ledger import StockLedger

logger = get_logger("modules.inventory.service")


class InventoryService:
    """
    Manual inventory operations.

    Contract
    --------
    Every public method commits on success and rolls back on failure.  When
    an ``idempotency_key`` was already used, the stored movement is returned
    (``replayed=True``) and stock is not touched, provided the stored
    movement is the same kind of operation on the same item.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._conversions = ConversionService(session)
        self._ledger = StockLedger(session, self._clock)
        self._movements = MovementLog(session, self._clock)
        self._locations = LocationSelector(session)

    # =========================================================================
    # Receipts and issues
    # =========================================================================

    def receive_stock(
        self,
        item_id: UUID,
        qty: Decimal,
        uom_id: UUID,
        unit_cost: Decimal,
        warehouse_id: UUID,
        bin_id: UUID | None = None,
        *,
        actor_id: UUID,
        idempotency_key: str | None = None,
        notes: str | None = None,
    ) -> MovementInfo:
        """
        Receive stock without an order.

        ``unit_cost`` is per ``uom_id`` in base currency; the ledger cost is
        ``unit_cost * qty / qty_base`` per base unit.
        """
        def operation() -> MovementDraft:
            amount = self._positive(qty, "qty")
            cost = to_decimal(unit_cost, "unit_cost")
            if cost < 0:
                raise InvalidQuantityError("unit_cost", cost, "must be >= 0")
            self._locations.require_location(warehouse_id, bin_id)
            qty_base = self._to_base(item_id, amount, uom_id)
            cost_base = round_quantity(cost * amount / qty_base)
            self._ledger.apply_delta(warehouse_id, bin_id, item_id, qty_base, cost_base)
            return MovementDraft(
                movement_type=MovementType.RECEIVE,
                item_id=item_id,
                uom_id=uom_id,
                qty=amount,
                qty_base=qty_base,
                unit_cost_base=cost_base,
                ref_type=MovementRefType.ADJUST,
                ref_id=uuid4(),
                actor_id=actor_id,
                to_warehouse_id=warehouse_id,
                to_bin_id=bin_id,
                idempotency_key=idempotency_key,
                notes=notes,
            )

        return self._run(
            "receive_stock", operation, idempotency_key,
            MovementType.RECEIVE, item_id, qty, warehouse_id, bin_id,
        )

    def issue_stock(
        self,
        item_id: UUID,
        qty: Decimal,
        uom_id: UUID,
        warehouse_id: UUID,
        bin_id: UUID | None = None,
        *,
        actor_id: UUID,
        idempotency_key: str | None = None,
        notes: str | None = None,
    ) -> MovementInfo:
        """Issue stock without an order, at the location's average cost."""
        def operation() -> MovementDraft:
            amount = self._positive(qty, "qty")
            self._locations.require_location(warehouse_id, bin_id)
            qty_base = self._to_base(item_id, amount, uom_id)
            snapshot = self._ledger.apply_delta(warehouse_id, bin_id, item_id, -qty_base)
            return MovementDraft(
                movement_type=MovementType.ISSUE,
                item_id=item_id,
                uom_id=uom_id,
                qty=amount,
                qty_base=qty_base,
                unit_cost_base=snapshot.previous_avg_cost,
                ref_type=MovementRefType.ADJUST,
                ref_id=uuid4(),
                actor_id=actor_id,
                from_warehouse_id=warehouse_id,
                from_bin_id=bin_id,
                idempotency_key=idempotency_key,
                notes=notes,
            )

        return self._run(
            "issue_stock", operation, idempotency_key,
            MovementType.ISSUE, item_id, qty, warehouse_id, bin_id,
        )

    # =========================================================================
    # Transfers
    # =========================================================================

    def transfer_stock(
        self,
        item_id: UUID,
        qty: Decimal,
        uom_id: UUID,
        from_warehouse_id: UUID,
        from_bin_id: UUID | None,
        to_warehouse_id: UUID,
        to_bin_id: UUID | None,
        *,
        actor_id: UUID,
        idempotency_key: str | None = None,
        notes: str | None = None,
    ) -> MovementInfo:
        """
        Move stock between two locations at the source's average cost.

        Raises:
            InvalidTransferError: source and destination are the same.
            InsufficientStockError: the source does not hold qty.
        """
        def operation() -> MovementDraft:
            if from_warehouse_id == to_warehouse_id and from_bin_id == to_bin_id:
                raise InvalidTransferError(str(from_warehouse_id), from_bin_id)
            amount = self._positive(qty, "qty")
            self._locations.require_location(from_warehouse_id, from_bin_id)
            self._locations.require_location(to_warehouse_id, to_bin_id)
            qty_base = self._to_base(item_id, amount, uom_id)

            source = self._ledger.apply_delta(
                from_warehouse_id, from_bin_id, item_id, -qty_base,
            )
            cost_base = source.previous_avg_cost
            self._ledger.apply_delta(to_warehouse_id, to_bin_id, item_id, qty_base, cost_base)
            return MovementDraft(
                movement_type=MovementType.TRANSFER,
                item_id=item_id,
                uom_id=uom_id,
                qty=amount,
                qty_base=qty_base,
                unit_cost_base=cost_base,
                ref_type=MovementRefType.TRANSFER,
                ref_id=uuid4(),
                actor_id=actor_id,
                from_warehouse_id=from_warehouse_id,
                from_bin_id=from_bin_id,
                to_warehouse_id=to_warehouse_id,
                to_bin_id=to_bin_id,
                idempotency_key=idempotency_key,
                notes=notes,
            )

        return self._run(
            "transfer_stock", operation, idempotency_key,
            MovementType.TRANSFER, item_id, qty, from_warehouse_id, from_bin_id,
        )

    # =========================================================================
    # Adjustments
    # =========================================================================

    def adjust_stock(
        self,
        item_id: UUID,
        target_qty: Decimal,
        uom_id: UUID,
        warehouse_id: UUID,
        bin_id: UUID | None = None,
        unit_cost: Decimal | None = None,
        *,
        actor_id: UUID,
        idempotency_key: str | None = None,
        notes: str | None = None,
    ) -> MovementInfo:
        """
        Set on-hand at one location to ``target_qty`` (a physical count).

        The movement records the signed difference in the item's base unit.
        Increases need ``unit_cost`` (per ``uom_id``, base currency);
        decreases leave the average unchanged.

        Raises:
            NoAdjustmentNeededError: target equals current on-hand.
            InvalidQuantityError: negative target, or an increase without
                unit_cost.
        """
        def operation() -> MovementDraft:
            target = to_decimal(target_qty, "target_qty")
            if target < 0:
                raise InvalidQuantityError("target_qty", target, "must be >= 0")
            self._locations.require_location(warehouse_id, bin_id)
            item = self._require_item(item_id)
            target_base = round_quantity(
                self._conversions.to_base_qty(item_id, target, uom_id)
            )
            current = self._ledger.get_on_hand(warehouse_id, bin_id, item_id)
            delta = target_base - current.qty
            if delta == 0:
                raise NoAdjustmentNeededError(str(item_id), target)

            if delta > 0:
                if unit_cost is None:
                    raise InvalidQuantityError(
                        "unit_cost", None, "required when an adjustment adds stock",
                    )
                cost = to_decimal(unit_cost, "unit_cost")
                if cost < 0:
                    raise InvalidQuantityError("unit_cost", cost, "must be >= 0")
                cost_base = round_quantity(cost * target / target_base)
                self._ledger.apply_delta(warehouse_id, bin_id, item_id, delta, cost_base)
            else:
                snapshot = self._ledger.apply_delta(warehouse_id, bin_id, item_id, delta)
                cost_base = snapshot.previous_avg_cost

            return MovementDraft(
                movement_type=MovementType.ADJUST,
                item_id=item_id,
                uom_id=item.base_uom_id,
                qty=delta,
                qty_base=delta,
                unit_cost_base=cost_base,
                ref_type=MovementRefType.ADJUST,
                ref_id=uuid4(),
                actor_id=actor_id,
                to_warehouse_id=warehouse_id,
                to_bin_id=bin_id,
                idempotency_key=idempotency_key,
                notes=notes,
            )

        return self._run(
            "adjust_stock", operation, idempotency_key,
            MovementType.ADJUST, item_id, target_qty, warehouse_id, bin_id,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _run(
        self,
        action: str,
        operation,
        idempotency_key: str | None,
        movement_type: MovementType,
        item_id: UUID,
        qty: Decimal,
        warehouse_id: UUID,
        bin_id: UUID | None,
    ) -> MovementInfo:
        """Run one operation in a transaction and append its movement."""
        try:
            if idempotency_key:
                existing = self._movements.find_by_idempotency_key(idempotency_key)
                if existing is not None:
                    return self._replayed(action, existing, movement_type, item_id)
            movement = self._movements.append(operation())
            if movement.replayed:
                self._session.rollback()
                return self._replayed(action, movement, movement_type, item_id)
            self._session.commit()
        except StockKernelError as exc:
            self._session.rollback()
            logger.warning(
                f"{action}_rejected",
                exc_info=exc,
                extra={
                    "item_id": str(item_id),
                    "requested_qty": str(qty),
                    "warehouse_id": str(warehouse_id),
                    "bin_id": str(bin_id) if bin_id else None,
                },
            )
            raise
        except Exception:
            self._session.rollback()
            raise
        logger.info(
            "inventory_operation_completed",
            extra={
                "action": action,
                "movement_id": str(movement.id),
                "item_id": str(movement.item_id),
                "qty_base": str(movement.qty_base),
                "unit_cost_base": str(movement.unit_cost_base),
            },
        )
        return movement

    @staticmethod
    def _replayed(
        action: str,
        movement: MovementInfo,
        movement_type: MovementType,
        item_id: UUID,
    ) -> MovementInfo:
        ref_type = (
            MovementRefType.TRANSFER if movement_type is MovementType.TRANSFER
            else MovementRefType.ADJUST
        )
        if (
            movement.movement_type != movement_type
            or movement.ref_type != ref_type
            or movement.item_id != item_id
        ):
            raise IdempotencyKeyConflictError(
                movement.idempotency_key,
                str(movement.id),
                f"recorded a {movement.movement_type.value} of item {movement.item_id}",
            )
        logger.info(
            "inventory_operation_replayed",
            extra={"action": action, "movement_id": str(movement.id)},
        )
        return movement

    def _require_item(self, item_id: UUID) -> Item:
        item = self._session.get(Item, item_id)
        if item is None:
            raise ItemNotFoundError(str(item_id))
        return item

    @staticmethod
    def _positive(value: Decimal, field: str) -> Decimal:
        amount = to_decimal(value, field)
        if amount <= 0:
            raise InvalidQuantityError(field, amount, "must be positive")
        return amount

    def _to_base(self, item_id: UUID, qty: Decimal, uom_id: UUID) -> Decimal:
        qty_base = round_quantity(self._conversions.to_base_qty(item_id, qty, uom_id))
        if qty_base <= 0:
            raise InvalidQuantityError(
                "qty_base", qty_base, "rounds to zero in the item's base unit",
            )
        return qty_base
