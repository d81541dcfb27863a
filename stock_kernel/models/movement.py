"""
Module: stock_kernel.models.movement
Responsibility: ORM persistence for the append-only stock movement log.
Architecture position: Kernel > Models.  May import from db/ and domain/ only.

Invariants enforced:
    - Immutability.  Rows are never updated or deleted; ORM listeners in
      db/immutability.py raise ImmutabilityViolationError.
    - Provenance.  Every row carries (ref_type, ref_id) back to the order,
      transfer or adjustment that caused it; order movements also carry
      ref_line_id.
    - Idempotency.  idempotency_key is unique when present.

Audit relevance:
    The sum of qty over (ref_type, ref_id, ref_line_id, movement_type) is the
    authoritative fulfilled quantity of an order line.  The cached counter on
    the line is advisory.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import Base, PortableDecimal, UUIDString
from stock_kernel.domain.dtos import MovementRefType, MovementType


class StockMovement(Base):
    """
    One ledger-affecting event.

    Contract:
        qty is in the originating unit (uom_id); qty_base is the same quantity
        in the item's base unit.  unit_cost_base is per base unit in base
        currency and total_value_base = qty_base * unit_cost_base.

        Location fields by type:
            receive  -> to_warehouse_id / to_bin_id
            issue    -> from_warehouse_id / from_bin_id
            transfer -> both
            adjust   -> to_warehouse_id / to_bin_id (the adjusted location);
                        qty_base is signed (negative for a write-down)

    Non-goals:
        - Compensation/reversal records.  Corrections are modeled as new
          movements by the caller.
    """

    __tablename__ = "stock_movements"

    __table_args__ = (
        UniqueConstraint("idempotency_key", name="uq_stock_movement_idempotency_key"),
        Index("idx_stock_movement_ref", "ref_type", "ref_id", "ref_line_id"),
        Index("idx_stock_movement_item", "item_id"),
        Index("idx_stock_movement_created_at", "created_at"),
    )

    movement_type: Mapped[MovementType] = mapped_column(String(20), nullable=False)

    item_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("items.id"), nullable=False,
    )

    uom_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("uoms.id"), nullable=False,
    )

    qty: Mapped[Decimal] = mapped_column(nullable=False)

    qty_base: Mapped[Decimal] = mapped_column(nullable=False)

    unit_cost_base: Mapped[Decimal] = mapped_column(nullable=False)

    total_value_base: Mapped[Decimal] = mapped_column(nullable=False)

    from_warehouse_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("warehouses.id"), nullable=True,
    )

    from_bin_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("bins.id"), nullable=True,
    )

    to_warehouse_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("warehouses.id"), nullable=True,
    )

    to_bin_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("bins.id"), nullable=True,
    )

    ref_type: Mapped[MovementRefType] = mapped_column(String(20), nullable=False)

    ref_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    ref_line_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    idempotency_key: Mapped[str | None] = mapped_column(String(200), nullable=True)

    # Document-currency unit price for order movements, informational
    source_unit_price: Mapped[Decimal | None] = mapped_column(
        PortableDecimal(38, 9), nullable=True,
    )

    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<StockMovement {self.movement_type} item={self.item_id} "
            f"qty_base={self.qty_base} ref={self.ref_type}:{self.ref_id}>"
        )
