"""
Module: stock_kernel.models.item
Responsibility: ORM persistence for stocked items.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - sku is unique within a scope (case-normalized by MasterDataService).
    - base_uom_id is required; every ledger quantity for the item is in it.
"""

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import TrackedBase, UUIDString


class Item(TrackedBase):
    """
    A stocked product.

    Contract:
        All on-hand quantities and movement qty_base values for the item are
        expressed in base_uom_id.

    Non-goals:
        - Changing base_uom_id once stock exists.  Nothing here prevents it,
          and doing so would silently reinterpret every ledger row.
    """

    __tablename__ = "items"

    __table_args__ = (
        UniqueConstraint("scope_key", "sku", name="uq_item_scope_sku"),
        Index("idx_item_scope", "scope_id"),
    )

    scope_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    scope_key: Mapped[str] = mapped_column(String(36), nullable=False, default="")

    sku: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    base_uom_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("uoms.id"), nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Item {self.sku}: {self.name}>"
