"""
Module: stock_modules.fulfillment.orm
Responsibility: SQLAlchemy ORM persistence models for the Fulfillment module.
    Maps purchase orders, sales orders, their lines, and sales shipment
    revenue records to relational tables.

Architecture position: Modules > Fulfillment > ORM.  Inherits from
    TrackedBase (stock_kernel.db.base).  References kernel master data
    (parties, items, uoms) and stock_movements by foreign key.

Invariants enforced:
    - All quantity and money fields use Decimal -- NEVER float.
    - Status fields stored as String(30) holding OrderStatus values.
    - order_no is unique within a scope per order kind (scope_key stands in
      for a null scope_id in the constraint).
    - (order_id, line_no) is unique.
    - SalesShipmentModel rows are append-only (ORM listener via
      stock_kernel.db.immutability.protect_model).

Failure modes:
    - IntegrityError on duplicate order_no or line_no.
    - ImmutabilityViolationError on update/delete of a shipment row.

Audit relevance:
    - fulfilled_qty on a line is a cache.  The authoritative progress of a
      line is the sum of its stock_movements rows.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stock_kernel.db.base import PortableDecimal, TrackedBase, UUIDString
from stock_kernel.db.immutability import protect_model
from stock_modules.fulfillment.models import (
    OrderInfo,
    OrderKind,
    OrderLineInfo,
    OrderStatus,
)


class _OrderColumns:
    """Header columns shared by purchase and sales orders."""

    scope_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    scope_key: Mapped[str] = mapped_column(String(36), nullable=False, default="")

    order_no: Mapped[str] = mapped_column(String(50), nullable=False)

    party_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("parties.id"), nullable=False,
    )

    status: Mapped[str] = mapped_column(String(30), nullable=False, default="draft")

    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    fx_to_base: Mapped[Decimal] = mapped_column(PortableDecimal(38, 18), nullable=False)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self):
        """Convert ORM model to frozen OrderInfo DTO."""
        return OrderInfo(
            id=self.id,
            kind=self.kind,
            order_no=self.order_no,
            party_id=self.party_id,
            status=OrderStatus(self.status),
            currency=self.currency,
            fx_to_base=self.fx_to_base,
            scope_id=self.scope_id,
            notes=self.notes,
            lines=tuple(line.to_dto() for line in self.lines),
        )


class _OrderLineColumns:
    """Line columns shared by purchase and sales order lines."""

    line_no: Mapped[int] = mapped_column(Integer, nullable=False)

    item_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("items.id"), nullable=False,
    )

    uom_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("uoms.id"), nullable=False,
    )

    ordered_qty: Mapped[Decimal] = mapped_column(nullable=False)

    unit_price: Mapped[Decimal] = mapped_column(nullable=False)

    discount_pct: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    fulfilled_qty: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    is_fulfilled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    fulfilled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    def to_dto(self):
        """Convert ORM model to frozen OrderLineInfo DTO."""
        return OrderLineInfo(
            id=self.id,
            order_id=self.order_id,
            line_no=self.line_no,
            item_id=self.item_id,
            uom_id=self.uom_id,
            ordered_qty=self.ordered_qty,
            unit_price=self.unit_price,
            discount_pct=self.discount_pct,
            fulfilled_qty=self.fulfilled_qty,
            is_fulfilled=self.is_fulfilled,
            fulfilled_at=self.fulfilled_at,
        )


# =============================================================================
# Purchase orders
# =============================================================================

class PurchaseOrderModel(_OrderColumns, TrackedBase):
    """
    ORM model for purchase orders (goods coming in from a supplier).

    Maps to: stock_modules.fulfillment.models.OrderInfo (kind=PURCHASE).
    """

    __tablename__ = "purchase_orders"

    __table_args__ = (
        UniqueConstraint("scope_key", "order_no", name="uq_purchase_order_scope_no"),
        Index("idx_purchase_order_party", "party_id"),
        Index("idx_purchase_order_status", "status"),
    )

    lines: Mapped[list["PurchaseOrderLineModel"]] = relationship(
        back_populates="order",
        order_by="PurchaseOrderLineModel.line_no",
        cascade="all, delete-orphan",
    )

    kind: ClassVar[OrderKind] = OrderKind.PURCHASE

    def __repr__(self) -> str:
        return f"<PurchaseOrderModel {self.order_no} status={self.status}>"


class PurchaseOrderLineModel(_OrderLineColumns, TrackedBase):
    """ORM model for one purchase order line."""

    __tablename__ = "purchase_order_lines"

    __table_args__ = (
        UniqueConstraint("order_id", "line_no", name="uq_purchase_order_line_no"),
        Index("idx_purchase_order_line_item", "item_id"),
    )

    order_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("purchase_orders.id"), nullable=False,
    )

    order: Mapped[PurchaseOrderModel] = relationship(back_populates="lines")

    def __repr__(self) -> str:
        return (
            f"<PurchaseOrderLineModel #{self.line_no} "
            f"ordered={self.ordered_qty} fulfilled={self.fulfilled_qty}>"
        )


# =============================================================================
# Sales orders
# =============================================================================

class SalesOrderModel(_OrderColumns, TrackedBase):
    """
    ORM model for sales orders (goods going out to a customer).

    Maps to: stock_modules.fulfillment.models.OrderInfo (kind=SALES).
    """

    __tablename__ = "sales_orders"

    __table_args__ = (
        UniqueConstraint("scope_key", "order_no", name="uq_sales_order_scope_no"),
        Index("idx_sales_order_party", "party_id"),
        Index("idx_sales_order_status", "status"),
    )

    lines: Mapped[list["SalesOrderLineModel"]] = relationship(
        back_populates="order",
        order_by="SalesOrderLineModel.line_no",
        cascade="all, delete-orphan",
    )

    kind: ClassVar[OrderKind] = OrderKind.SALES

    def __repr__(self) -> str:
        return f"<SalesOrderModel {self.order_no} status={self.status}>"


class SalesOrderLineModel(_OrderLineColumns, TrackedBase):
    """ORM model for one sales order line."""

    __tablename__ = "sales_order_lines"

    __table_args__ = (
        UniqueConstraint("order_id", "line_no", name="uq_sales_order_line_no"),
        Index("idx_sales_order_line_item", "item_id"),
    )

    order_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("sales_orders.id"), nullable=False,
    )

    order: Mapped[SalesOrderModel] = relationship(back_populates="lines")

    def __repr__(self) -> str:
        return (
            f"<SalesOrderLineModel #{self.line_no} "
            f"ordered={self.ordered_qty} fulfilled={self.fulfilled_qty}>"
        )


# =============================================================================
# SalesShipmentModel
# =============================================================================

class SalesShipmentModel(TrackedBase):
    """
    Revenue record for one sales order ship action.

    Guarantees:
        - Exactly one row per ship movement (movement_id unique).
        - revenue_amount is in the order currency; revenue_base_amount is
          revenue_amount * fx_to_base.
        - cost_base_amount equals the movement's total_value_base (COGS at
          weighted average).
    """

    __tablename__ = "sales_shipments"

    __table_args__ = (
        UniqueConstraint("movement_id", name="uq_sales_shipment_movement"),
        Index("idx_sales_shipment_order", "order_id"),
    )

    movement_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("stock_movements.id"), nullable=False,
    )

    order_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("sales_orders.id"), nullable=False,
    )

    line_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("sales_order_lines.id"), nullable=False,
    )

    item_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("items.id"), nullable=False,
    )

    qty: Mapped[Decimal] = mapped_column(nullable=False)

    qty_base: Mapped[Decimal] = mapped_column(nullable=False)

    unit_price: Mapped[Decimal] = mapped_column(nullable=False)

    discount_pct: Mapped[Decimal] = mapped_column(nullable=False)

    revenue_amount: Mapped[Decimal] = mapped_column(nullable=False)

    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    fx_to_base: Mapped[Decimal] = mapped_column(PortableDecimal(38, 18), nullable=False)

    revenue_base_amount: Mapped[Decimal] = mapped_column(nullable=False)

    cost_base_amount: Mapped[Decimal] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return (
            f"<SalesShipmentModel {self.id} line={self.line_id} "
            f"revenue={self.revenue_amount} {self.currency}>"
        )


protect_model(SalesShipmentModel, "SalesShipment")
