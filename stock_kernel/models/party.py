"""
Module: stock_kernel.models.party
Responsibility: ORM persistence for suppliers and customers, the counterparties
    of purchase and sales orders.
Architecture position: Kernel > Models.  May import from db/ only.
"""

from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import TrackedBase, UUIDString


class PartyKind(str, Enum):
    """Which side of the order a party sits on."""

    SUPPLIER = "supplier"
    CUSTOMER = "customer"


class Party(TrackedBase):
    """
    A supplier or customer.

    Guarantees:
        - code is unique within (scope, kind); the same code may name both a
          supplier and a customer.
    """

    __tablename__ = "parties"

    __table_args__ = (
        UniqueConstraint("scope_key", "kind", "code", name="uq_party_scope_kind_code"),
        Index("idx_party_kind", "kind"),
    )

    scope_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    scope_key: Mapped[str] = mapped_column(String(36), nullable=False, default="")

    kind: Mapped[PartyKind] = mapped_column(String(20), nullable=False)

    code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Party {self.kind} {self.code}: {self.name}>"
