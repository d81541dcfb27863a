"""
Module: stock_kernel.selectors.stock_selector
Responsibility: Read-only queries over stock_levels.
Architecture position: Kernel > Selectors.

Reads here take no locks.  A value read through this selector may be stale
by the time a write happens; StockLedger re-reads under FOR UPDATE before
any mutation.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from stock_kernel.domain.dtos import OnHand, StockLevelInfo
from stock_kernel.models.stock_level import StockLevel, bin_key_for
from stock_kernel.selectors.base import BaseSelector


class StockSelector(BaseSelector[StockLevel]):
    """Queries for on-hand quantities and average costs."""

    def get_level(
        self,
        warehouse_id: UUID,
        bin_id: UUID | None,
        item_id: UUID,
    ) -> StockLevelInfo | None:
        row = self.session.execute(
            select(StockLevel).where(
                StockLevel.warehouse_id == warehouse_id,
                StockLevel.bin_key == bin_key_for(bin_id),
                StockLevel.item_id == item_id,
            )
        ).scalar_one_or_none()
        return StockLevelInfo.from_model(row) if row is not None else None

    def on_hand(
        self,
        warehouse_id: UUID,
        bin_id: UUID | None,
        item_id: UUID,
    ) -> OnHand:
        """On-hand at exactly this location; zeros when no row exists."""
        level = self.get_level(warehouse_id, bin_id, item_id)
        if level is None:
            return OnHand()
        return OnHand(level.on_hand_qty, level.avg_unit_cost)

    def levels_for_item(
        self,
        item_id: UUID,
        warehouse_id: UUID | None = None,
    ) -> list[StockLevelInfo]:
        stmt = select(StockLevel).where(StockLevel.item_id == item_id)
        if warehouse_id is not None:
            stmt = stmt.where(StockLevel.warehouse_id == warehouse_id)
        stmt = stmt.order_by(StockLevel.warehouse_id, StockLevel.bin_key)
        return [
            StockLevelInfo.from_model(row)
            for row in self.session.execute(stmt).scalars()
        ]

    def total_on_hand(
        self,
        item_id: UUID,
        warehouse_id: UUID | None = None,
    ) -> Decimal:
        """Sum across bins (and warehouses unless one is given)."""
        return sum(
            (level.on_hand_qty for level in self.levels_for_item(item_id, warehouse_id)),
            Decimal("0"),
        )
