"""
MovementLog: append-only persistence and line progress derived from rows.
"""

from dataclasses import replace
from decimal import Decimal
from uuid import uuid4

import pytest

from stock_kernel.domain.dtos import MovementDraft, MovementRefType, MovementType
from stock_kernel.exceptions import (
    ImmutabilityViolationError,
    InvalidQuantityError,
    MissingMovementFieldError,
)
from stock_kernel.models.movement import StockMovement


def _receipt(world, actor_id, *, qty="10", order_id=None, line_id=None, key=None):
    return MovementDraft(
        movement_type=MovementType.RECEIVE,
        item_id=world.steel,
        uom_id=world.kg,
        qty=Decimal(qty),
        qty_base=Decimal(qty),
        unit_cost_base=Decimal("0.5"),
        ref_type=MovementRefType.PURCHASE_ORDER,
        ref_id=order_id or uuid4(),
        ref_line_id=line_id or uuid4(),
        actor_id=actor_id,
        to_warehouse_id=world.warehouse,
        to_bin_id=world.bin_a,
        idempotency_key=key,
    )


class TestAppend:

    def test_append_persists_row(self, movement_log, world, test_actor_id):
        movement = movement_log.append(_receipt(world, test_actor_id))
        assert movement.replayed is False
        assert movement.total_value_base == Decimal("5")
        assert movement.movement_type == MovementType.RECEIVE
        assert movement_log.session.get(StockMovement, movement.id) is not None

    def test_receive_needs_destination(self, movement_log, world, test_actor_id):
        draft = _receipt(world, test_actor_id)
        draft = replace(draft, to_warehouse_id=None)
        with pytest.raises(MissingMovementFieldError) as exc_info:
            movement_log.append(draft)
        assert exc_info.value.field == "to_warehouse_id"

    def test_order_movement_needs_line(self, movement_log, world, test_actor_id):
        draft = _receipt(world, test_actor_id)
        draft = replace(draft, ref_line_id=None)
        with pytest.raises(MissingMovementFieldError):
            movement_log.append(draft)

    def test_non_positive_qty_rejected(self, movement_log, world, test_actor_id):
        with pytest.raises(InvalidQuantityError):
            movement_log.append(_receipt(world, test_actor_id, qty="0"))

    def test_adjust_allows_negative(self, movement_log, world, test_actor_id):
        movement = movement_log.append(MovementDraft(
            movement_type=MovementType.ADJUST,
            item_id=world.steel,
            uom_id=world.kg,
            qty=Decimal("-2"),
            qty_base=Decimal("-2"),
            unit_cost_base=Decimal("1"),
            ref_type=MovementRefType.ADJUST,
            ref_id=uuid4(),
            actor_id=test_actor_id,
            to_warehouse_id=world.warehouse,
        ))
        assert movement.qty_base == Decimal("-2")


class TestIdempotency:

    def test_same_key_returns_stored_movement(self, movement_log, world, test_actor_id):
        first = movement_log.append(_receipt(world, test_actor_id, key="rcv-1"))
        second = movement_log.append(_receipt(world, test_actor_id, qty="99", key="rcv-1"))
        assert second.replayed is True
        assert second.id == first.id
        assert second.qty == Decimal("10")

    def test_lookup_by_key(self, movement_log, world, test_actor_id):
        first = movement_log.append(_receipt(world, test_actor_id, key="rcv-2"))
        assert movement_log.find_by_idempotency_key("rcv-2").id == first.id
        assert movement_log.find_by_idempotency_key("missing") is None


class TestFulfilledQty:

    def test_sum_comes_from_rows(self, movement_log, world, test_actor_id):
        """60 then 40 against one line adds up to 100."""
        order_id, line_id = uuid4(), uuid4()
        movement_log.append(_receipt(world, test_actor_id, qty="60", order_id=order_id, line_id=line_id))
        movement_log.append(_receipt(world, test_actor_id, qty="40", order_id=order_id, line_id=line_id))
        movement_log.append(_receipt(world, test_actor_id, qty="7", order_id=order_id))

        total = movement_log.fulfilled_qty(
            MovementRefType.PURCHASE_ORDER, order_id, line_id, MovementType.RECEIVE,
        )
        assert total == Decimal("100")
        assert len(movement_log.movements_for_ref(MovementRefType.PURCHASE_ORDER, order_id)) == 3

    def test_unknown_line_is_zero(self, movement_log):
        assert movement_log.fulfilled_qty(
            MovementRefType.SALES_ORDER, uuid4(), uuid4(), MovementType.ISSUE,
        ) == 0


class TestImmutability:

    def test_update_blocked(self, session, movement_log, world, test_actor_id):
        movement = movement_log.append(_receipt(world, test_actor_id))
        row = session.get(StockMovement, movement.id)
        row.notes = "edited"
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "StockMovement"
        session.rollback()

    def test_delete_blocked(self, session, movement_log, world, test_actor_id):
        movement = movement_log.append(_receipt(world, test_actor_id))
        session.delete(session.get(StockMovement, movement.id))
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()
