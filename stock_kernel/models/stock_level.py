"""
Module: stock_kernel.models.stock_level
Responsibility: ORM persistence for on-hand quantity and weighted-average cost
    per (warehouse, bin, item).
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - One row per (warehouse_id, bin_key, item_id).  bin_key is the bin id as
      text, or "" for stock held at warehouse level, so the unique constraint
      holds even when bin_id is NULL.
    - on_hand_qty >= 0 and avg_unit_cost >= 0.  Enforced by StockLedger, the
      only writer of this table.
    - version is bumped on every UPDATE (SQLAlchemy version_id_col); a write
      based on a stale read fails with StaleDataError.

Failure modes:
    - IntegrityError on concurrent first insert of the same key; StockLedger
      retries under a row lock.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import Base, UUIDString

WAREHOUSE_LEVEL_BIN_KEY = ""


def bin_key_for(bin_id: UUID | None) -> str:
    return WAREHOUSE_LEVEL_BIN_KEY if bin_id is None else str(bin_id)


class StockLevel(Base):
    """
    Current on-hand quantity and average unit cost at one location.

    Contract:
        Rows are created lazily on the first positive delta and are never
        deleted; a location that empties keeps its row at quantity zero.
        Quantities are in the item's base unit; costs are in base currency
        per base unit.

    Non-goals:
        - Reconstructing history.  That is the movement log's job.
    """

    __tablename__ = "stock_levels"

    __table_args__ = (
        UniqueConstraint(
            "warehouse_id", "bin_key", "item_id",
            name="uq_stock_level_location_item",
        ),
        Index("idx_stock_level_item", "item_id"),
    )

    warehouse_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("warehouses.id"), nullable=False,
    )

    bin_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("bins.id"), nullable=True,
    )

    bin_key: Mapped[str] = mapped_column(String(36), nullable=False)

    item_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("items.id"), nullable=False,
    )

    on_hand_qty: Mapped[Decimal] = mapped_column(nullable=False)

    avg_unit_cost: Mapped[Decimal] = mapped_column(nullable=False)

    version: Mapped[int] = mapped_column(BigInteger, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return (
            f"<StockLevel item={self.item_id} wh={self.warehouse_id} "
            f"bin={self.bin_id} qty={self.on_hand_qty} @ {self.avg_unit_cost}>"
        )
