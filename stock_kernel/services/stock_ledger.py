"""
StockLedger -- on-hand quantity and weighted-average cost per location.

Responsibility:
    The only writer of ``stock_levels``.  Applies signed quantity deltas
    to a (warehouse, bin, item) position and maintains its weighted-average
    unit cost.

Architecture position:
    Kernel > Services -- imperative shell around ``stock_engines.costing``.

Invariants enforced:
    - Non-negative stock: a delta that would leave on-hand below zero raises
      InsufficientStockError and changes nothing.
    - Serialized read-modify-write: the row is read with
      ``SELECT ... FOR UPDATE`` and held for the rest of the transaction, so
      concurrent deltas on one location apply one after the other.
    - Lost-update guard: the row's version column is checked on UPDATE; a
      stale write becomes OptimisticLockError.
    - Lazy creation: the first positive delta inserts the row inside a
      savepoint.  A concurrent insert of the same key rolls back only the
      savepoint and the delta is re-applied under the lock.

Failure modes:
    - InvalidQuantityError: zero/non-finite delta, missing or negative cost
      on a receipt.
    - InsufficientStockError: delta would make on-hand negative.
    - OptimisticLockError: row changed between read and write.

Audit relevance:
    Every delta is logged as ``stock_delta_applied`` with before/after
    quantity and cost.  The movement log, not this table, is the history.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from stock_engines.costing import CostPosition, apply_delta as compute_delta
from stock_kernel.db.types import round_quantity, to_decimal
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.dtos import OnHand, StockLevelSnapshot
from stock_kernel.exceptions import (
    InsufficientStockError,
    InvalidQuantityError,
    OptimisticLockError,
)
from stock_kernel.logging_config import get_logger
from stock_kernel.models.stock_level import StockLevel, bin_key_for
from stock_kernel.selectors.stock_selector import StockSelector
from stock_kernel.services.base import BaseService

logger = get_logger("services.stock_ledger")

_MAX_CREATE_ATTEMPTS = 3


class StockLedger(BaseService[StockLevel]):
    """
    Row-locked stock position maintenance.

    Contract:
        ``apply_delta`` changes exactly one stock row (creating it if needed)
        within the caller's transaction and returns a snapshot of the result.
        Quantities are in the item's base unit; costs are base currency per
        base unit.

    Guarantees:
        - Receipts blend the average; issues keep it.
        - Stored values are quantized to 9 decimal places.
        - Flush only; the caller commits.

    Non-goals:
        - Unit conversion.  Callers convert to the base unit first.
        - Recording movements.  See MovementLog.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._selector = StockSelector(session)

    def get_on_hand(
        self,
        warehouse_id: UUID,
        bin_id: UUID | None,
        item_id: UUID,
    ) -> OnHand:
        """Current quantity and average cost at one location (zeros when absent)."""
        return self._selector.on_hand(warehouse_id, bin_id, item_id)

    def _lock_row(
        self,
        warehouse_id: UUID,
        bin_id: UUID | None,
        item_id: UUID,
    ) -> StockLevel | None:
        return self.session.execute(
            select(StockLevel)
            .where(
                StockLevel.warehouse_id == warehouse_id,
                StockLevel.bin_key == bin_key_for(bin_id),
                StockLevel.item_id == item_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _try_create(
        self,
        warehouse_id: UUID,
        bin_id: UUID | None,
        item_id: UUID,
        position: CostPosition,
    ) -> StockLevel | None:
        """Insert a new row in a savepoint; None if another writer won the race."""
        savepoint = self.session.begin_nested()
        try:
            row = StockLevel(
                warehouse_id=warehouse_id,
                bin_id=bin_id,
                bin_key=bin_key_for(bin_id),
                item_id=item_id,
                on_hand_qty=position.qty,
                avg_unit_cost=position.avg_cost,
                updated_at=self._clock.now(),
            )
            self.session.add(row)
            self.session.flush()
            savepoint.commit()
            return row
        except IntegrityError:
            logger.debug(
                "stock_level_create_race_retry",
                extra={
                    "warehouse_id": str(warehouse_id),
                    "bin_id": str(bin_id) if bin_id else None,
                    "item_id": str(item_id),
                },
            )
            savepoint.rollback()
            return None

    def apply_delta(
        self,
        warehouse_id: UUID,
        bin_id: UUID | None,
        item_id: UUID,
        delta_qty_base: Decimal,
        unit_cost_base: Decimal | None = None,
    ) -> StockLevelSnapshot:
        """
        Apply a signed quantity change to one location.

        Preconditions:
            - delta_qty_base is finite and non-zero.
            - unit_cost_base is finite and >= 0 when delta_qty_base > 0.

        Postconditions:
            - On success the row holds the new quantity and average and is
              locked until the caller's transaction ends.
            - On failure nothing was written.

        Raises:
            InvalidQuantityError, InsufficientStockError, OptimisticLockError.
        """
        delta = to_decimal(delta_qty_base, "delta_qty_base")
        if delta == 0:
            raise InvalidQuantityError("delta_qty_base", delta, "must be non-zero")
        cost = None
        if delta > 0:
            if unit_cost_base is None:
                raise InvalidQuantityError(
                    "unit_cost_base", None, "required when receiving stock",
                )
            cost = to_decimal(unit_cost_base, "unit_cost_base")
        delta = round_quantity(delta)

        for _ in range(_MAX_CREATE_ATTEMPTS):
            row = self._lock_row(warehouse_id, bin_id, item_id)
            before = (
                CostPosition(row.on_hand_qty, row.avg_unit_cost)
                if row is not None else CostPosition()
            )
            after = compute_delta(before, delta, cost)

            if after is None:
                logger.warning(
                    "stock_delta_rejected",
                    extra={
                        "warehouse_id": str(warehouse_id),
                        "bin_id": str(bin_id) if bin_id else None,
                        "item_id": str(item_id),
                        "delta_qty_base": str(delta),
                        "on_hand_qty": str(before.qty),
                    },
                )
                raise InsufficientStockError(
                    item_id, warehouse_id, bin_id, -delta, before.qty,
                )

            if row is None:
                row = self._try_create(warehouse_id, bin_id, item_id, after)
                if row is None:
                    continue
            else:
                row.on_hand_qty = after.qty
                row.avg_unit_cost = after.avg_cost
                row.updated_at = self._clock.now()
                try:
                    self.session.flush()
                except StaleDataError as exc:
                    raise OptimisticLockError("StockLevel", str(row.id)) from exc

            logger.info(
                "stock_delta_applied",
                extra={
                    "warehouse_id": str(warehouse_id),
                    "bin_id": str(bin_id) if bin_id else None,
                    "item_id": str(item_id),
                    "delta_qty_base": str(delta),
                    "unit_cost_base": str(cost) if cost is not None else None,
                    "qty_before": str(before.qty),
                    "qty_after": str(after.qty),
                    "avg_cost_before": str(before.avg_cost),
                    "avg_cost_after": str(after.avg_cost),
                },
            )
            return StockLevelSnapshot(
                warehouse_id=warehouse_id,
                bin_id=bin_id,
                item_id=item_id,
                on_hand_qty=after.qty,
                avg_unit_cost=after.avg_cost,
                previous_qty=before.qty,
                previous_avg_cost=before.avg_cost,
                version=row.version,
            )

        raise OptimisticLockError(
            "StockLevel", f"{warehouse_id}/{bin_key_for(bin_id)}/{item_id}",
        )
