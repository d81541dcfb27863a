"""
Fulfillment Module Service (``stock_modules.fulfillment.service``).

Responsibility
--------------
Orchestrates purchase order receiving and sales order shipping by composing
the kernel services (``ConversionService``, ``StockLedger``, ``MovementLog``)
with the order workflows.  This is a **thin glue layer**: conversion,
costing and stock arithmetic live in the kernel and engines.

Architecture
------------
Layer: **Modules** -- stateful orchestration wrapper.

For one line action:

1. Lock the order header row; reject draft and cancelled orders.
2. Recompute the line's fulfilled quantity from ``MovementLog``.
3. Reject requests above the remaining quantity.
4. Convert the line quantity to the item's base unit.
5. Apply the stock delta through ``StockLedger.apply_delta``.
6. Append the movement (and, for shipments, a revenue row).
7. Update the line cache and drive the order workflow.

Invariants
----------
- Each public method owns its transaction boundary: ``session.commit()`` on
  success, ``session.rollback()`` on any failure, then re-raise.
- A line's fulfilled quantity never exceeds its ordered quantity.  The
  order header row lock serializes line actions on the same order.
- Shipping never draws from a bin other than the one requested.
- Order status changes only through ``transition()`` on the workflow.

Failure Modes
-------------
- ``OrderNotApprovedError`` / ``OrderNotOpenError`` before any write.
- ``OverFulfillError``, ``InvalidQuantityError`` before any write.
- ``NoConversionPathError`` from the conversion graph.
- ``InsufficientStockError`` / ``InsufficientStockAtBinError`` from the ledger.
- ``IdempotencyKeyConflictError`` when the key already recorded a movement
  for another order, line or direction.

Audit Relevance
---------------
Every stock change is an immutable ``StockMovement`` referencing the order
and line; shipments additionally record revenue in ``sales_shipments``.

Usage::

    service = FulfillmentService(session, config=build_fulfillment_config(cfg))
    movement = service.receive_line(
        po.id, po.lines[0].id, Decimal("2"), warehouse.id, bin.id,
        actor_id=actor_id,
    )
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from stock_engines.costing import landed_unit_cost, line_amount
from stock_kernel.db.types import round_quantity, to_decimal, validate_currency
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.dtos import (
    MovementDraft,
    MovementInfo,
    MovementRefType,
    MovementType,
)
from stock_kernel.domain.workflow import Workflow, transition
from stock_kernel.exceptions import (
    DuplicateCodeError,
    IdempotencyKeyConflictError,
    InsufficientStockAtBinError,
    InsufficientStockError,
    InvalidQuantityError,
    ItemNotFoundError,
    OrderLineNotFoundError,
    OrderNotApprovedError,
    OrderNotFoundError,
    OrderNotOpenError,
    OverFulfillError,
    PartyNotFoundError,
    StockKernelError,
    UomNotFoundError,
)
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.models.item import Item
from stock_kernel.models.party import Party, PartyKind
from stock_kernel.models.scope import scope_key_for
from stock_kernel.models.uom import UnitOfMeasure
from stock_kernel.selectors.location_selector import LocationSelector
from stock_kernel.services.conversion_service import ConversionService
from stock_kernel.services.master_data_service import normalize_code
from stock_kernel.services.movement_log import MovementLog
from stock_kernel.services.stock_ledger import StockLedger
from stock_modules.fulfillment.config import FulfillmentConfig
from stock_modules.fulfillment.models import (
    BatchFulfillmentResult,
    LineFulfillmentResult,
    OrderInfo,
    OrderKind,
    OrderLineInput,
    OrderStatus,
    OutstandingLine,
)
from stock_modules.fulfillment.orm import (
    PurchaseOrderLineModel,
    PurchaseOrderModel,
    SalesOrderLineModel,
    SalesOrderModel,
    SalesShipmentModel,
)
from stock_modules.fulfillment.workflows import (
    PURCHASE_ORDER_WORKFLOW,
    SALES_ORDER_WORKFLOW,
    evaluate_guards,
)

logger = get_logger("modules.fulfillment.service")

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class _KindSpec:
    """Everything that differs between purchase and sales fulfillment."""
    order_model: type
    line_model: type
    workflow: Workflow
    party_kind: PartyKind
    ref_type: MovementRefType
    movement_type: MovementType
    verb: str


_KINDS: dict[OrderKind, _KindSpec] = {
    OrderKind.PURCHASE: _KindSpec(
        order_model=PurchaseOrderModel,
        line_model=PurchaseOrderLineModel,
        workflow=PURCHASE_ORDER_WORKFLOW,
        party_kind=PartyKind.SUPPLIER,
        ref_type=MovementRefType.PURCHASE_ORDER,
        movement_type=MovementType.RECEIVE,
        verb="receive",
    ),
    OrderKind.SALES: _KindSpec(
        order_model=SalesOrderModel,
        line_model=SalesOrderLineModel,
        workflow=SALES_ORDER_WORKFLOW,
        party_kind=PartyKind.CUSTOMER,
        ref_type=MovementRefType.SALES_ORDER,
        movement_type=MovementType.ISSUE,
        verb="ship",
    ),
}


class FulfillmentService:
    """
    Orchestrates order creation, approval, receiving and shipping.

    Contract
    --------
    Every public mutating method runs in one database transaction: commit on
    success, rollback on failure.  Read methods never write.

    Guarantees
    ----------
    - Idempotency: a ``receive_line``/``ship_line`` call with an
      ``idempotency_key`` that was already used returns the stored movement
      (``replayed=True``) without touching stock.  A key that belongs to a
      different order line is refused, never replayed.
    - Resumption: progress is recomputed from the movement log on every
      action, so a retry after a partial failure never double-counts.

    Non-goals
    ---------
    - Currency conversion policy.  ``fx_to_base`` is supplied on the order.
    - Returns, reversals and compensating movements.
    """

    def __init__(
        self,
        session: Session,
        config: FulfillmentConfig | None = None,
        clock: Clock | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or FulfillmentConfig.with_defaults()

        # Kernel services share the session; this service owns the boundary
        self._conversions = ConversionService(session)
        self._ledger = StockLedger(session, self._clock)
        self._movements = MovementLog(session, self._clock)
        self._locations = LocationSelector(session)

    # =========================================================================
    # Order creation
    # =========================================================================

    def create_purchase_order(
        self,
        party_id: UUID,
        lines: Sequence[OrderLineInput],
        *,
        order_no: str,
        actor_id: UUID,
        currency: str = "USD",
        fx_to_base: Decimal = Decimal("1"),
        scope_id: UUID | None = None,
        notes: str | None = None,
    ) -> OrderInfo:
        """Create a draft purchase order from a supplier."""
        return self._create_order(
            OrderKind.PURCHASE, party_id, lines, order_no=order_no,
            actor_id=actor_id, currency=currency, fx_to_base=fx_to_base,
            scope_id=scope_id, notes=notes,
        )

    def create_sales_order(
        self,
        party_id: UUID,
        lines: Sequence[OrderLineInput],
        *,
        order_no: str,
        actor_id: UUID,
        currency: str = "USD",
        fx_to_base: Decimal = Decimal("1"),
        scope_id: UUID | None = None,
        notes: str | None = None,
    ) -> OrderInfo:
        """Create a draft sales order for a customer."""
        return self._create_order(
            OrderKind.SALES, party_id, lines, order_no=order_no,
            actor_id=actor_id, currency=currency, fx_to_base=fx_to_base,
            scope_id=scope_id, notes=notes,
        )

    def _create_order(
        self,
        kind: OrderKind,
        party_id: UUID,
        lines: Sequence[OrderLineInput],
        *,
        order_no: str,
        actor_id: UUID,
        currency: str,
        fx_to_base: Decimal,
        scope_id: UUID | None,
        notes: str | None,
    ) -> OrderInfo:
        spec = _KINDS[kind]
        try:
            order_no = normalize_code(order_no)
            currency = validate_currency(currency)
            fx = to_decimal(fx_to_base, "fx_to_base")
            if fx <= 0:
                raise InvalidQuantityError("fx_to_base", fx, "must be positive")

            party = self._session.get(Party, party_id)
            if party is None or party.kind != spec.party_kind.value:
                raise PartyNotFoundError(str(party_id))
            if not lines:
                raise InvalidQuantityError("lines", 0, "an order needs at least one line")

            key = scope_key_for(scope_id)
            exists = self._session.execute(
                select(func.count())
                .select_from(spec.order_model)
                .where(
                    spec.order_model.scope_key == key,
                    spec.order_model.order_no == order_no,
                )
            ).scalar_one()
            if exists:
                raise DuplicateCodeError(spec.order_model.__name__, order_no, key or None)

            order = spec.order_model(
                scope_id=scope_id,
                scope_key=key,
                order_no=order_no,
                party_id=party_id,
                status=spec.workflow.initial_state,
                currency=currency,
                fx_to_base=fx,
                notes=notes,
                created_by_id=actor_id,
            )
            for line_no, line in enumerate(lines, start=1):
                order.lines.append(self._build_line(spec, line_no, line, actor_id))

            self._session.add(order)
            self._session.flush()
            result = order.to_dto()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "order_created",
            extra={
                "order_kind": kind.value,
                "order_id": str(result.id),
                "order_no": result.order_no,
                "party_id": str(party_id),
                "line_count": len(result.lines),
                "currency": result.currency,
            },
        )
        return result

    def _build_line(self, spec: _KindSpec, line_no: int, line: OrderLineInput, actor_id: UUID):
        qty = to_decimal(line.ordered_qty, "ordered_qty")
        price = to_decimal(line.unit_price, "unit_price")
        discount = to_decimal(line.discount_pct, "discount_pct")
        if qty <= 0:
            raise InvalidQuantityError("ordered_qty", qty, "must be positive")
        if price < 0:
            raise InvalidQuantityError("unit_price", price, "must be >= 0")
        if not _ZERO <= discount <= _HUNDRED:
            raise InvalidQuantityError("discount_pct", discount, "must be between 0 and 100")
        if self._session.get(Item, line.item_id) is None:
            raise ItemNotFoundError(str(line.item_id))
        if self._session.get(UnitOfMeasure, line.uom_id) is None:
            raise UomNotFoundError(str(line.uom_id))
        return spec.line_model(
            line_no=line_no,
            item_id=line.item_id,
            uom_id=line.uom_id,
            ordered_qty=round_quantity(qty),
            unit_price=price,
            discount_pct=discount,
            fulfilled_qty=_ZERO,
            is_fulfilled=False,
            created_by_id=actor_id,
        )

    # =========================================================================
    # Status actions
    # =========================================================================

    def approve_order(self, kind: OrderKind, order_id: UUID, *, actor_id: UUID) -> OrderInfo:
        """draft -> approved.  Fulfillment is only possible after this."""
        return self._apply_action(OrderKind(kind), order_id, "approve", actor_id)

    def cancel_order(self, kind: OrderKind, order_id: UUID, *, actor_id: UUID) -> OrderInfo:
        """draft -> cancelled.  Approved orders cannot be cancelled."""
        return self._apply_action(OrderKind(kind), order_id, "cancel", actor_id)

    def close_order(self, kind: OrderKind, order_id: UUID, *, actor_id: UUID) -> OrderInfo:
        """fulfilled -> closed, for order kinds that do not auto-close."""
        return self._apply_action(OrderKind(kind), order_id, "close", actor_id)

    def _apply_action(
        self,
        kind: OrderKind,
        order_id: UUID,
        action: str,
        actor_id: UUID,
    ) -> OrderInfo:
        spec = _KINDS[kind]
        try:
            order = self._lock_order(spec, kind, order_id)
            self._transition(spec, order, action, actor_id)
            self._session.flush()
            result = order.to_dto()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        return result

    def _transition(self, spec: _KindSpec, order, action: str, actor_id: UUID) -> None:
        previous = order.status
        order.status = transition(
            spec.workflow, previous, action, evaluate_guards(order.lines),
        )
        order.updated_by_id = actor_id
        logger.info(
            "order_status_changed",
            extra={
                "workflow": spec.workflow.name,
                "order_id": str(order.id),
                "action": action,
                "from_status": previous,
                "to_status": order.status,
            },
        )

    # =========================================================================
    # Receiving and shipping
    # =========================================================================

    def receive_line(
        self,
        order_id: UUID,
        line_id: UUID,
        qty: Decimal,
        warehouse_id: UUID,
        bin_id: UUID | None = None,
        *,
        actor_id: UUID,
        idempotency_key: str | None = None,
    ) -> MovementInfo:
        """
        Receive ``qty`` (line unit) of a purchase order line into a location.

        Preconditions:
            - The order is approved or partially fulfilled.
            - 0 < qty <= remaining quantity of the line.

        Postconditions:
            - Stock at (warehouse_id, bin_id) increased by the base quantity,
              average cost blended with the landed cost of the line.
            - One ``receive`` movement referencing the order and line.
            - Line and order status updated; session committed.

        Raises:
            OrderNotApprovedError, OrderNotOpenError, OverFulfillError,
            InvalidQuantityError, NoConversionPathError, InsufficientStockError.
        """
        return self._fulfill_line(
            OrderKind.PURCHASE, order_id, line_id, qty, warehouse_id, bin_id,
            actor_id=actor_id, idempotency_key=idempotency_key,
        )

    def ship_line(
        self,
        order_id: UUID,
        line_id: UUID,
        qty: Decimal,
        warehouse_id: UUID,
        bin_id: UUID | None = None,
        *,
        actor_id: UUID,
        idempotency_key: str | None = None,
    ) -> MovementInfo:
        """
        Ship ``qty`` (line unit) of a sales order line from one location.

        The selected bin must hold the whole base quantity; stock is never
        drawn from another bin.  Cost is the bin's weighted average at the
        moment of issue.

        Raises:
            OrderNotApprovedError, OrderNotOpenError, OverFulfillError,
            InvalidQuantityError, NoConversionPathError,
            InsufficientStockAtBinError.
        """
        return self._fulfill_line(
            OrderKind.SALES, order_id, line_id, qty, warehouse_id, bin_id,
            actor_id=actor_id, idempotency_key=idempotency_key,
        )

    def _fulfill_line(
        self,
        kind: OrderKind,
        order_id: UUID,
        line_id: UUID,
        qty: Decimal,
        warehouse_id: UUID,
        bin_id: UUID | None,
        *,
        actor_id: UUID,
        idempotency_key: str | None,
    ) -> MovementInfo:
        spec = _KINDS[kind]
        with LogContext.bind(order_id=order_id, line_id=line_id, actor_id=actor_id):
            try:
                if idempotency_key:
                    existing = self._movements.find_by_idempotency_key(idempotency_key)
                    if existing is not None:
                        return self._replayed(spec, existing, order_id, line_id)

                movement = self._fulfill_line_in_tx(
                    spec, kind, order_id, line_id, qty, warehouse_id, bin_id,
                    actor_id=actor_id, idempotency_key=idempotency_key,
                )
                if movement.replayed:
                    # Another writer used the key first; drop our ledger write
                    self._session.rollback()
                    return self._replayed(spec, movement, order_id, line_id)
                self._session.commit()
            except StockKernelError as exc:
                self._session.rollback()
                logger.warning(
                    f"{spec.verb}_line_rejected",
                    exc_info=exc,
                    extra={
                        "order_id": str(order_id),
                        "line_id": str(line_id),
                        "requested_qty": str(qty),
                        "warehouse_id": str(warehouse_id),
                        "bin_id": str(bin_id) if bin_id else None,
                    },
                )
                raise
            except Exception:
                self._session.rollback()
                raise
        return movement

    def _replayed(
        self,
        spec: _KindSpec,
        movement: MovementInfo,
        order_id: UUID,
        line_id: UUID,
    ) -> MovementInfo:
        """Return a stored movement, or refuse when it belongs to another request."""
        if (
            movement.movement_type != spec.movement_type
            or movement.ref_id != order_id
            or movement.ref_line_id != line_id
        ):
            raise IdempotencyKeyConflictError(
                movement.idempotency_key,
                str(movement.id),
                f"recorded for {movement.ref_type.value} {movement.ref_id} "
                f"line {movement.ref_line_id}",
            )
        logger.info(
            "fulfillment_replayed",
            extra={
                "movement_id": str(movement.id),
                "idempotency_key": movement.idempotency_key,
            },
        )
        return movement

    def _fulfill_line_in_tx(
        self,
        spec: _KindSpec,
        kind: OrderKind,
        order_id: UUID,
        line_id: UUID,
        qty: Decimal,
        warehouse_id: UUID,
        bin_id: UUID | None,
        *,
        actor_id: UUID,
        idempotency_key: str | None,
    ) -> MovementInfo:
        order = self._lock_order(spec, kind, order_id)
        if order.status == OrderStatus.DRAFT.value:
            raise OrderNotApprovedError(str(order_id), order.status)
        if order.status == OrderStatus.CANCELLED.value:
            raise OrderNotOpenError(str(order_id), order.status)

        line = self._find_line(order, line_id)
        qty = to_decimal(qty, "qty")
        if qty <= 0:
            raise InvalidQuantityError("qty", qty, "must be positive")

        already = self._already_fulfilled(spec, order_id, line)
        remaining = max(_ZERO, line.ordered_qty - already)
        if qty > remaining:
            raise OverFulfillError(str(line.id), qty, remaining)

        self._locations.require_location(warehouse_id, bin_id)
        qty_base = round_quantity(
            self._conversions.to_base_qty(line.item_id, qty, line.uom_id)
        )
        if qty_base <= 0:
            raise InvalidQuantityError(
                "qty_base", qty_base, "rounds to zero in the item's base unit",
            )

        if kind is OrderKind.PURCHASE:
            unit_cost = round_quantity(landed_unit_cost(
                line.unit_price, qty, qty_base,
                discount_pct=line.discount_pct, fx_to_base=order.fx_to_base,
            ))
            self._ledger.apply_delta(warehouse_id, bin_id, line.item_id, qty_base, unit_cost)
            locations = {"to_warehouse_id": warehouse_id, "to_bin_id": bin_id}
        else:
            unit_cost = self._issue_from_bin(warehouse_id, bin_id, line.item_id, qty_base)
            locations = {"from_warehouse_id": warehouse_id, "from_bin_id": bin_id}

        movement = self._movements.append(MovementDraft(
            movement_type=spec.movement_type,
            item_id=line.item_id,
            uom_id=line.uom_id,
            qty=qty,
            qty_base=qty_base,
            unit_cost_base=unit_cost,
            ref_type=spec.ref_type,
            ref_id=order_id,
            ref_line_id=line.id,
            actor_id=actor_id,
            idempotency_key=idempotency_key,
            source_unit_price=line.unit_price,
            **locations,
        ))
        if movement.replayed:
            return movement

        if kind is OrderKind.SALES:
            self._record_shipment(order, line, movement, actor_id)

        fulfilled = round_quantity(already + qty)
        line.fulfilled_qty = fulfilled
        line.updated_by_id = actor_id
        if fulfilled >= line.ordered_qty:
            line.is_fulfilled = True
            line.fulfilled_at = self._clock.now()

        if all(candidate.is_fulfilled for candidate in order.lines):
            self._transition(spec, order, "fulfill_complete", actor_id)
            if self._auto_close(kind):
                self._transition(spec, order, "close", actor_id)
        else:
            self._transition(spec, order, "fulfill_partial", actor_id)

        self._session.flush()
        logger.info(
            f"line_{spec.verb}d",
            extra={
                "order_id": str(order_id),
                "line_id": str(line.id),
                "movement_id": str(movement.id),
                "qty": str(qty),
                "qty_base": str(qty_base),
                "unit_cost_base": str(movement.unit_cost_base),
                "fulfilled_qty": str(fulfilled),
                "ordered_qty": str(line.ordered_qty),
                "order_status": order.status,
            },
        )
        return movement

    def _issue_from_bin(
        self,
        warehouse_id: UUID,
        bin_id: UUID | None,
        item_id: UUID,
        qty_base: Decimal,
    ) -> Decimal:
        """Take qty_base out of exactly this bin; returns the cost per base unit."""
        on_hand = self._ledger.get_on_hand(warehouse_id, bin_id, item_id)
        if on_hand.qty < qty_base:
            raise InsufficientStockAtBinError(
                item_id, warehouse_id, bin_id, qty_base, on_hand.qty,
            )
        try:
            snapshot = self._ledger.apply_delta(warehouse_id, bin_id, item_id, -qty_base)
        except InsufficientStockError as exc:
            # Stock left the bin between the check and the lock
            raise InsufficientStockAtBinError(
                item_id, warehouse_id, bin_id, qty_base, exc.on_hand_qty,
            ) from exc
        return snapshot.previous_avg_cost

    def _record_shipment(self, order, line, movement: MovementInfo, actor_id: UUID) -> None:
        revenue = round_quantity(line_amount(line.unit_price, movement.qty, line.discount_pct))
        self._session.add(SalesShipmentModel(
            movement_id=movement.id,
            order_id=order.id,
            line_id=line.id,
            item_id=line.item_id,
            qty=movement.qty,
            qty_base=movement.qty_base,
            unit_price=line.unit_price,
            discount_pct=line.discount_pct,
            revenue_amount=revenue,
            currency=order.currency,
            fx_to_base=order.fx_to_base,
            revenue_base_amount=round_quantity(revenue * order.fx_to_base),
            cost_base_amount=movement.total_value_base,
            created_by_id=actor_id,
        ))

    def _auto_close(self, kind: OrderKind) -> bool:
        if kind is OrderKind.PURCHASE:
            return self._config.auto_close_purchase_orders
        return self._config.auto_close_sales_orders

    # =========================================================================
    # Batch actions
    # =========================================================================

    def receive_all(
        self,
        order_id: UUID,
        warehouse_id: UUID,
        bin_id: UUID | None = None,
        *,
        actor_id: UUID,
        idempotency_prefix: str | None = None,
    ) -> BatchFulfillmentResult:
        """Receive every outstanding purchase order line into one location."""
        return self._fulfill_all(
            OrderKind.PURCHASE, order_id, warehouse_id, bin_id,
            actor_id=actor_id, idempotency_prefix=idempotency_prefix,
        )

    def ship_all(
        self,
        order_id: UUID,
        warehouse_id: UUID,
        bin_id: UUID | None = None,
        *,
        actor_id: UUID,
        idempotency_prefix: str | None = None,
    ) -> BatchFulfillmentResult:
        """Ship every outstanding sales order line from one location."""
        return self._fulfill_all(
            OrderKind.SALES, order_id, warehouse_id, bin_id,
            actor_id=actor_id, idempotency_prefix=idempotency_prefix,
        )

    def _fulfill_all(
        self,
        kind: OrderKind,
        order_id: UUID,
        warehouse_id: UUID,
        bin_id: UUID | None,
        *,
        actor_id: UUID,
        idempotency_prefix: str | None,
    ) -> BatchFulfillmentResult:
        """
        Process each outstanding line in its own transaction.

        A failing line is reported and the batch moves on; committed lines
        stay committed.
        """
        results: list[LineFulfillmentResult] = []
        for line in self.outstanding_lines(kind, order_id):
            if line.remaining_qty <= 0:
                continue
            key = f"{idempotency_prefix}:{line.line_id}" if idempotency_prefix else None
            try:
                movement = self._fulfill_line(
                    kind, order_id, line.line_id, line.remaining_qty,
                    warehouse_id, bin_id, actor_id=actor_id, idempotency_key=key,
                )
            except StockKernelError as exc:
                results.append(LineFulfillmentResult.failed(line.line_id, exc.code, str(exc)))
            else:
                results.append(LineFulfillmentResult.ok(line.line_id, movement))

        batch = BatchFulfillmentResult(order_id=order_id, kind=kind, results=tuple(results))
        logger.info(
            "batch_fulfillment_completed",
            extra={
                "order_kind": kind.value,
                "order_id": str(order_id),
                "line_count": len(batch.results),
                "succeeded": len(batch.succeeded),
                "failed": len(batch.failed),
            },
        )
        return batch

    # =========================================================================
    # Queries
    # =========================================================================

    def get_order(self, kind: OrderKind, order_id: UUID) -> OrderInfo:
        spec = _KINDS[OrderKind(kind)]
        order = self._session.get(spec.order_model, order_id)
        if order is None:
            raise OrderNotFoundError(OrderKind(kind).value, str(order_id))
        return order.to_dto()

    def outstanding_lines(self, kind: OrderKind, order_id: UUID) -> list[OutstandingLine]:
        """Remaining quantity per line, recomputed from the movement log."""
        kind = OrderKind(kind)
        spec = _KINDS[kind]
        order = self._session.get(spec.order_model, order_id)
        if order is None:
            raise OrderNotFoundError(kind.value, str(order_id))
        outstanding = []
        for line in order.lines:
            already = self._movements.fulfilled_qty(
                spec.ref_type, order_id, line.id, spec.movement_type,
            )
            outstanding.append(OutstandingLine(
                line_id=line.id,
                line_no=line.line_no,
                item_id=line.item_id,
                uom_id=line.uom_id,
                ordered_qty=line.ordered_qty,
                fulfilled_qty=already,
                remaining_qty=max(_ZERO, line.ordered_qty - already),
            ))
        return outstanding

    # =========================================================================
    # Helpers
    # =========================================================================

    def _lock_order(self, spec: _KindSpec, kind: OrderKind, order_id: UUID):
        order = self._session.execute(
            select(spec.order_model)
            .where(spec.order_model.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if order is None:
            raise OrderNotFoundError(kind.value, str(order_id))
        return order

    def _find_line(self, order, line_id: UUID):
        for line in order.lines:
            if line.id == line_id:
                return line
        raise OrderLineNotFoundError(str(order.id), str(line_id))

    def _already_fulfilled(self, spec: _KindSpec, order_id: UUID, line) -> Decimal:
        already = self._movements.fulfilled_qty(
            spec.ref_type, order_id, line.id, spec.movement_type,
        )
        if already != line.fulfilled_qty and self._config.warn_on_counter_drift:
            logger.warning(
                "fulfilled_qty_drift",
                extra={
                    "line_id": str(line.id),
                    "cached_qty": str(line.fulfilled_qty),
                    "log_qty": str(already),
                },
            )
        return already

