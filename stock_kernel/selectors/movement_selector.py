"""
Module: stock_kernel.selectors.movement_selector
Responsibility: Read-only queries over the stock movement log.
Architecture position: Kernel > Selectors.

Sums are computed in Python over Decimal values so results are exact on
every backend.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from stock_kernel.domain.dtos import MovementInfo, MovementRefType, MovementType
from stock_kernel.models.movement import StockMovement
from stock_kernel.selectors.base import BaseSelector


class MovementSelector(BaseSelector[StockMovement]):
    """Queries for movement history and derived fulfillment figures."""

    def fulfilled_qty(
        self,
        ref_type: MovementRefType,
        ref_id: UUID,
        ref_line_id: UUID,
        movement_type: MovementType,
    ) -> Decimal:
        """
        Sum of qty (line unit) already moved for one order line.

        This is the authoritative "already fulfilled" figure.
        """
        quantities = self.session.execute(
            select(StockMovement.qty).where(
                StockMovement.ref_type == ref_type.value,
                StockMovement.ref_id == ref_id,
                StockMovement.ref_line_id == ref_line_id,
                StockMovement.movement_type == movement_type.value,
            )
        ).scalars()
        return sum(quantities, Decimal("0"))

    def by_idempotency_key(self, key: str) -> MovementInfo | None:
        row = self.session.execute(
            select(StockMovement).where(StockMovement.idempotency_key == key)
        ).scalar_one_or_none()
        return MovementInfo.from_model(row, replayed=True) if row is not None else None

    def for_ref(
        self,
        ref_type: MovementRefType,
        ref_id: UUID,
    ) -> list[MovementInfo]:
        rows = self.session.execute(
            select(StockMovement)
            .where(
                StockMovement.ref_type == ref_type.value,
                StockMovement.ref_id == ref_id,
            )
            .order_by(StockMovement.created_at, StockMovement.id)
        ).scalars()
        return [MovementInfo.from_model(row) for row in rows]
