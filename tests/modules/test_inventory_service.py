"""
InventoryService: receipts, issues, transfers and count adjustments outside
the order flow.
"""

from decimal import Decimal

import pytest

from stock_kernel.domain.dtos import MovementRefType, MovementType
from stock_kernel.exceptions import (
    BinNotFoundError,
    IdempotencyKeyConflictError,
    InsufficientStockError,
    InvalidQuantityError,
    InvalidTransferError,
    NoAdjustmentNeededError,
)


@pytest.fixture
def seeded(inventory, world, test_actor_id):
    """1 TON of steel at 400/TON in bin A (1000 KG @ 0.4)."""
    return inventory.receive_stock(
        world.steel, Decimal("1"), world.ton, Decimal("400"), world.warehouse, world.bin_a,
        actor_id=test_actor_id,
    )


class TestReceiveIssue:

    def test_receive_converts_cost_to_base_unit(self, inventory, ledger, world, seeded):
        assert seeded.movement_type == MovementType.RECEIVE
        assert seeded.ref_type == MovementRefType.ADJUST
        assert seeded.qty_base == Decimal("1000")
        assert seeded.unit_cost_base == Decimal("0.4")
        on_hand = ledger.get_on_hand(world.warehouse, world.bin_a, world.steel)
        assert (on_hand.qty, on_hand.avg_cost) == (Decimal("1000"), Decimal("0.4"))

    def test_issue_at_average(self, inventory, ledger, world, seeded, test_actor_id):
        movement = inventory.issue_stock(
            world.steel, Decimal("250"), world.kg, world.warehouse, world.bin_a,
            actor_id=test_actor_id,
        )
        assert movement.unit_cost_base == Decimal("0.4")
        assert movement.total_value_base == Decimal("100")
        assert ledger.get_on_hand(world.warehouse, world.bin_a, world.steel).qty == Decimal("750")

    def test_issue_more_than_on_hand(self, inventory, ledger, world, seeded, test_actor_id):
        with pytest.raises(InsufficientStockError):
            inventory.issue_stock(
                world.steel, Decimal("2"), world.ton, world.warehouse, world.bin_a,
                actor_id=test_actor_id,
            )
        assert ledger.get_on_hand(world.warehouse, world.bin_a, world.steel).qty == Decimal("1000")

    def test_bin_must_belong_to_warehouse(self, inventory, world, test_actor_id):
        with pytest.raises(BinNotFoundError):
            inventory.receive_stock(
                world.steel, Decimal("1"), world.kg, Decimal("1"),
                world.other_warehouse, world.bin_a, actor_id=test_actor_id,
            )

    def test_negative_cost_rejected(self, inventory, world, test_actor_id):
        with pytest.raises(InvalidQuantityError):
            inventory.receive_stock(
                world.steel, Decimal("1"), world.kg, Decimal("-1"), world.warehouse,
                actor_id=test_actor_id,
            )

    def test_idempotent_receipt(self, inventory, ledger, world, test_actor_id):
        first = inventory.receive_stock(
            world.widget, Decimal("5"), world.ea, Decimal("2"), world.warehouse,
            actor_id=test_actor_id, idempotency_key="manual-1",
        )
        again = inventory.receive_stock(
            world.widget, Decimal("5"), world.ea, Decimal("2"), world.warehouse,
            actor_id=test_actor_id, idempotency_key="manual-1",
        )
        assert again.replayed
        assert again.id == first.id
        assert ledger.get_on_hand(world.warehouse, None, world.widget).qty == Decimal("5")

    def test_key_reused_for_other_operation_refused(self, inventory, ledger, world, seeded, test_actor_id):
        inventory.receive_stock(
            world.widget, Decimal("5"), world.ea, Decimal("2"), world.warehouse,
            actor_id=test_actor_id, idempotency_key="manual-2",
        )
        with pytest.raises(IdempotencyKeyConflictError):
            inventory.issue_stock(
                world.steel, Decimal("100"), world.kg, world.warehouse, world.bin_a,
                actor_id=test_actor_id, idempotency_key="manual-2",
            )
        assert ledger.get_on_hand(world.warehouse, world.bin_a, world.steel).qty == Decimal("1000")

    def test_key_reused_for_other_item_refused(self, inventory, world, test_actor_id):
        inventory.receive_stock(
            world.widget, Decimal("5"), world.ea, Decimal("2"), world.warehouse,
            actor_id=test_actor_id, idempotency_key="manual-3",
        )
        with pytest.raises(IdempotencyKeyConflictError):
            inventory.receive_stock(
                world.steel, Decimal("5"), world.kg, Decimal("2"), world.warehouse,
                actor_id=test_actor_id, idempotency_key="manual-3",
            )

    def test_rejection_is_logged(self, inventory, world, seeded, test_actor_id, captured_logs):
        with pytest.raises(InsufficientStockError):
            inventory.issue_stock(
                world.steel, Decimal("2"), world.ton, world.warehouse, world.bin_a,
                actor_id=test_actor_id,
            )
        rejected = [r for r in captured_logs() if r["message"] == "issue_stock_rejected"]
        assert len(rejected) == 1
        assert rejected[0]["exc_code"] == "INSUFFICIENT_STOCK"
        assert rejected[0]["item_id"] == str(world.steel)
        assert rejected[0]["requested_qty"] == "2"
        assert rejected[0]["bin_id"] == str(world.bin_a)


class TestTransfer:

    def test_transfer_carries_source_cost(self, inventory, ledger, world, seeded, test_actor_id):
        ledger.apply_delta(world.other_warehouse, None, world.steel, Decimal("1000"), Decimal("0.6"))
        movement = inventory.transfer_stock(
            world.steel, Decimal("500"), world.kg,
            world.warehouse, world.bin_a, world.other_warehouse, None,
            actor_id=test_actor_id,
        )
        assert movement.movement_type == MovementType.TRANSFER
        assert movement.unit_cost_base == Decimal("0.4")
        assert movement.from_bin_id == world.bin_a
        assert movement.to_warehouse_id == world.other_warehouse

        source = ledger.get_on_hand(world.warehouse, world.bin_a, world.steel)
        target = ledger.get_on_hand(world.other_warehouse, None, world.steel)
        assert source.qty == Decimal("500")
        assert target.qty == Decimal("1500")
        # (1000 * 0.6 + 500 * 0.4) / 1500
        assert target.avg_cost == Decimal("0.533333333")

    def test_same_location_rejected(self, inventory, world, seeded, test_actor_id):
        with pytest.raises(InvalidTransferError):
            inventory.transfer_stock(
                world.steel, Decimal("1"), world.kg,
                world.warehouse, world.bin_a, world.warehouse, world.bin_a,
                actor_id=test_actor_id,
            )

    def test_bin_to_bin_in_one_warehouse(self, inventory, ledger, world, seeded, test_actor_id):
        inventory.transfer_stock(
            world.steel, Decimal("0.25"), world.ton,
            world.warehouse, world.bin_a, world.warehouse, world.bin_b,
            actor_id=test_actor_id,
        )
        assert ledger.get_on_hand(world.warehouse, world.bin_b, world.steel).qty == Decimal("250")

    def test_source_shortfall_moves_nothing(self, inventory, ledger, world, seeded, test_actor_id):
        with pytest.raises(InsufficientStockError):
            inventory.transfer_stock(
                world.steel, Decimal("5000"), world.kg,
                world.warehouse, world.bin_a, world.warehouse, world.bin_b,
                actor_id=test_actor_id,
            )
        assert ledger.get_on_hand(world.warehouse, world.bin_b, world.steel).qty == 0


class TestAdjust:

    def test_count_down(self, inventory, ledger, world, seeded, test_actor_id):
        movement = inventory.adjust_stock(
            world.steel, Decimal("0.9"), world.ton, world.warehouse, world.bin_a,
            actor_id=test_actor_id,
        )
        assert movement.movement_type == MovementType.ADJUST
        assert movement.uom_id == world.kg
        assert movement.qty_base == Decimal("-100")
        assert movement.unit_cost_base == Decimal("0.4")
        on_hand = ledger.get_on_hand(world.warehouse, world.bin_a, world.steel)
        assert (on_hand.qty, on_hand.avg_cost) == (Decimal("900"), Decimal("0.4"))

    def test_count_up_needs_cost(self, inventory, world, seeded, test_actor_id):
        with pytest.raises(InvalidQuantityError):
            inventory.adjust_stock(
                world.steel, Decimal("1100"), world.kg, world.warehouse, world.bin_a,
                actor_id=test_actor_id,
            )

    def test_count_up_blends(self, inventory, ledger, world, seeded, test_actor_id):
        inventory.adjust_stock(
            world.steel, Decimal("2000"), world.kg, world.warehouse, world.bin_a,
            unit_cost=Decimal("0.6"), actor_id=test_actor_id,
        )
        on_hand = ledger.get_on_hand(world.warehouse, world.bin_a, world.steel)
        assert on_hand.qty == Decimal("2000")
        assert on_hand.avg_cost == Decimal("0.5")

    def test_no_change(self, inventory, world, seeded, test_actor_id):
        with pytest.raises(NoAdjustmentNeededError):
            inventory.adjust_stock(
                world.steel, Decimal("1"), world.ton, world.warehouse, world.bin_a,
                actor_id=test_actor_id,
            )

    def test_negative_target(self, inventory, world, test_actor_id):
        with pytest.raises(InvalidQuantityError):
            inventory.adjust_stock(
                world.steel, Decimal("-1"), world.kg, world.warehouse,
                actor_id=test_actor_id,
            )
