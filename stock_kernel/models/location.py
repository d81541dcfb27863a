"""
Module: stock_kernel.models.location
Responsibility: ORM persistence for warehouses and the storage bins inside them.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Warehouse code unique within scope.
    - Bin code unique within its warehouse.
"""

from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stock_kernel.db.base import TrackedBase, UUIDString


class Warehouse(TrackedBase):
    """A physical stock-holding site."""

    __tablename__ = "warehouses"

    __table_args__ = (
        UniqueConstraint("scope_key", "code", name="uq_warehouse_scope_code"),
        Index("idx_warehouse_scope", "scope_id"),
    )

    scope_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    scope_key: Mapped[str] = mapped_column(String(36), nullable=False, default="")

    code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    bins: Mapped[list["Bin"]] = relationship(
        back_populates="warehouse",
        order_by="Bin.code",
    )

    def __repr__(self) -> str:
        return f"<Warehouse {self.code}>"


class Bin(TrackedBase):
    """
    A storage position inside a warehouse.

    Stock held directly against a warehouse (no bin) is tracked under a null
    bin; see StockLevel.bin_key.
    """

    __tablename__ = "bins"

    __table_args__ = (
        UniqueConstraint("warehouse_id", "code", name="uq_bin_warehouse_code"),
    )

    warehouse_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("warehouses.id"), nullable=False,
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    warehouse: Mapped[Warehouse] = relationship(back_populates="bins")

    def __repr__(self) -> str:
        return f"<Bin {self.code} in {self.warehouse_id}>"
