"""
MovementLog -- append-only record of ledger-affecting events.

Responsibility:
    Persist one ``StockMovement`` per fulfillment, transfer or adjustment
    action and answer "how much of this order line has already moved?"
    from the log itself.

Architecture position:
    Kernel > Services.  Writes ``stock_movements``; reads through
    ``MovementSelector``.

Invariants enforced:
    - Append-only: this service only inserts.  ORM listeners block updates
      and deletes.
    - Required fields per movement type are present before insert.
    - Idempotency: a draft carrying an ``idempotency_key`` that already
      exists returns the stored movement (``replayed=True``) and writes
      nothing.  The unique constraint settles concurrent duplicates.

Failure modes:
    - MissingMovementFieldError: location or line reference absent.
    - InvalidQuantityError: qty/qty_base/cost not finite, or qty not positive.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stock_kernel.db.types import round_quantity, to_decimal
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.dtos import (
    MovementDraft,
    MovementInfo,
    MovementRefType,
    MovementType,
)
from stock_kernel.exceptions import InvalidQuantityError, MissingMovementFieldError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.movement import StockMovement
from stock_kernel.selectors.movement_selector import MovementSelector
from stock_kernel.services.base import BaseService

logger = get_logger("services.movement_log")

_REQUIRED_LOCATIONS: dict[MovementType, tuple[str, ...]] = {
    MovementType.RECEIVE: ("to_warehouse_id",),
    MovementType.ISSUE: ("from_warehouse_id",),
    MovementType.TRANSFER: ("from_warehouse_id", "to_warehouse_id"),
    MovementType.ADJUST: ("to_warehouse_id",),
}

_LINE_REFS = frozenset({MovementRefType.PURCHASE_ORDER, MovementRefType.SALES_ORDER})


class MovementLog(BaseService[StockMovement]):
    """
    Append-only movement persistence.

    Guarantees:
        - ``append`` flushes exactly one new row or returns an existing one.
        - ``fulfilled_qty`` is derived from rows, never from cached counters.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._selector = MovementSelector(session)

    def _validate(self, draft: MovementDraft) -> None:
        movement_type = MovementType(draft.movement_type)
        for field in _REQUIRED_LOCATIONS[movement_type]:
            if getattr(draft, field) is None:
                raise MissingMovementFieldError(field, movement_type.value)
        if MovementRefType(draft.ref_type) in _LINE_REFS and draft.ref_line_id is None:
            raise MissingMovementFieldError("ref_line_id", movement_type.value)
        for field in ("item_id", "uom_id", "ref_id", "actor_id"):
            if getattr(draft, field) is None:
                raise MissingMovementFieldError(field, movement_type.value)

        qty = to_decimal(draft.qty, "qty")
        qty_base = to_decimal(draft.qty_base, "qty_base")
        cost = to_decimal(draft.unit_cost_base, "unit_cost_base")
        if movement_type is MovementType.ADJUST:
            if qty_base == 0:
                raise InvalidQuantityError("qty_base", qty_base, "must be non-zero")
        elif qty <= 0 or qty_base <= 0:
            raise InvalidQuantityError("qty", qty, "must be positive")
        if cost < 0:
            raise InvalidQuantityError("unit_cost_base", cost, "must be >= 0")

    def find_by_idempotency_key(self, key: str) -> MovementInfo | None:
        return self._selector.by_idempotency_key(key)

    def append(self, draft: MovementDraft) -> MovementInfo:
        """
        Persist a movement.

        Returns:
            The new movement, or the stored one (``replayed=True``) when the
            idempotency key was already used.

        Raises:
            MissingMovementFieldError, InvalidQuantityError.
        """
        self._validate(draft)

        if draft.idempotency_key:
            existing = self._selector.by_idempotency_key(draft.idempotency_key)
            if existing is not None:
                logger.info(
                    "movement_replayed",
                    extra={
                        "movement_id": str(existing.id),
                        "idempotency_key": draft.idempotency_key,
                    },
                )
                return existing

        qty_base = round_quantity(Decimal(draft.qty_base))
        unit_cost = round_quantity(Decimal(draft.unit_cost_base))
        row = StockMovement(
            movement_type=MovementType(draft.movement_type).value,
            item_id=draft.item_id,
            uom_id=draft.uom_id,
            qty=round_quantity(Decimal(draft.qty)),
            qty_base=qty_base,
            unit_cost_base=unit_cost,
            total_value_base=round_quantity(qty_base * unit_cost),
            from_warehouse_id=draft.from_warehouse_id,
            from_bin_id=draft.from_bin_id,
            to_warehouse_id=draft.to_warehouse_id,
            to_bin_id=draft.to_bin_id,
            ref_type=MovementRefType(draft.ref_type).value,
            ref_id=draft.ref_id,
            ref_line_id=draft.ref_line_id,
            idempotency_key=draft.idempotency_key,
            source_unit_price=draft.source_unit_price,
            notes=draft.notes,
            actor_id=draft.actor_id,
            created_at=self._clock.now(),
        )

        savepoint = self.session.begin_nested()
        try:
            self.session.add(row)
            self.session.flush()
            savepoint.commit()
        except IntegrityError:
            savepoint.rollback()
            if not draft.idempotency_key:
                raise
            existing = self._selector.by_idempotency_key(draft.idempotency_key)
            if existing is None:
                raise
            logger.info(
                "movement_replayed",
                extra={
                    "movement_id": str(existing.id),
                    "idempotency_key": draft.idempotency_key,
                },
            )
            return existing

        logger.info(
            "movement_appended",
            extra={
                "movement_id": str(row.id),
                "movement_type": row.movement_type,
                "item_id": str(row.item_id),
                "qty": str(row.qty),
                "qty_base": str(row.qty_base),
                "unit_cost_base": str(row.unit_cost_base),
                "ref_type": row.ref_type,
                "ref_id": str(row.ref_id),
                "ref_line_id": str(row.ref_line_id) if row.ref_line_id else None,
            },
        )
        return MovementInfo.from_model(row)

    def fulfilled_qty(
        self,
        ref_type: MovementRefType,
        ref_id: UUID,
        ref_line_id: UUID,
        movement_type: MovementType,
    ) -> Decimal:
        """Authoritative quantity (line unit) already moved for an order line."""
        return self._selector.fulfilled_qty(ref_type, ref_id, ref_line_id, movement_type)

    def movements_for_ref(
        self,
        ref_type: MovementRefType,
        ref_id: UUID,
    ) -> list[MovementInfo]:
        return self._selector.for_ref(ref_type, ref_id)
