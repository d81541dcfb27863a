"""
Module: stock_kernel.models.uom
Responsibility: ORM persistence for units of measure and the conversion edges
    between them.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - UOM codes are globally unique and stored upper-cased.
    - One conversion edge per (scope, unordered unit pair).  The pair is stored
      in the direction it was defined; the inverse is implied.
    - factor > 0 is checked by MasterDataService before insert.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import PortableDecimal, TrackedBase, UUIDString


class UnitOfMeasure(TrackedBase):
    """
    A unit quantities can be expressed in (KG, TON, EA, BOX...).

    Guarantees:
        - code is unique and upper-case.
        - family is advisory; conversions across families are not blocked.
    """

    __tablename__ = "uoms"

    __table_args__ = (
        UniqueConstraint("code", name="uq_uom_code"),
    )

    code: Mapped[str] = mapped_column(String(20), nullable=False)

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    family: Mapped[str | None] = mapped_column(String(30), nullable=True)

    def __repr__(self) -> str:
        return f"<UnitOfMeasure {self.code}>"


class UomConversion(TrackedBase):
    """
    Directed conversion edge: qty_to = qty_from * factor.

    Contract:
        scope_id None means the edge applies to every scope.  A scoped edge
        for the same unordered unit pair overrides the global one.
        Rows are append-only; an edge is never edited or removed once
        defined.

    Non-goals:
        - Storing the inverse edge.  UnitGraph derives it.
    """

    __tablename__ = "uom_conversions"

    __table_args__ = (
        UniqueConstraint(
            "scope_key", "pair_key",
            name="uq_uom_conversion_scope_pair",
        ),
        CheckConstraint("from_uom_id <> to_uom_id", name="ck_uom_conversion_distinct"),
        Index("idx_uom_conversion_scope", "scope_id"),
    )

    scope_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    scope_key: Mapped[str] = mapped_column(String(36), nullable=False, default="")

    # Sorted "a|b" of the two uom ids; enforces one edge per unordered pair
    pair_key: Mapped[str] = mapped_column(String(80), nullable=False)

    from_uom_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("uoms.id"), nullable=False,
    )

    to_uom_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("uoms.id"), nullable=False,
    )

    factor: Mapped[Decimal] = mapped_column(PortableDecimal(38, 18), nullable=False)

    @staticmethod
    def make_pair_key(a: UUID, b: UUID) -> str:
        first, second = sorted((str(a), str(b)))
        return f"{first}|{second}"

    def __repr__(self) -> str:
        return (
            f"<UomConversion {self.from_uom_id} -> {self.to_uom_id} "
            f"x {self.factor} scope={self.scope_id}>"
        )
