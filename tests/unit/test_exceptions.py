"""Error codes and structured attributes of the kernel exception hierarchy."""

from decimal import Decimal

import pytest

from stock_kernel import exceptions as exc


@pytest.mark.parametrize(
    "error, code",
    [
        (exc.InvalidQuantityError("qty", Decimal("-1"), "must be positive"), "INVALID_QUANTITY"),
        (exc.NoConversionPathError("KG", "EA"), "NO_CONVERSION_PATH"),
        (exc.InsufficientStockError("item", "wh", None, Decimal("5"), Decimal("2")), "INSUFFICIENT_STOCK"),
        (exc.InsufficientStockAtBinError("item", "wh", "bin", Decimal("5"), Decimal("2")), "INSUFFICIENT_STOCK_AT_BIN"),
        (exc.InvalidTransferError("wh", None), "INVALID_TRANSFER"),
        (exc.NoAdjustmentNeededError("item", Decimal("3")), "NO_ADJUSTMENT_NEEDED"),
        (exc.OrderNotApprovedError("po", "draft"), "ORDER_NOT_APPROVED"),
        (exc.OrderNotOpenError("po", "cancelled"), "ORDER_NOT_OPEN"),
        (exc.OverFulfillError("line", Decimal("2"), Decimal("1")), "OVER_FULFILL"),
        (exc.InvalidTransitionError("purchase_order", "closed", "approve"), "INVALID_TRANSITION"),
        (exc.IdempotencyKeyConflictError("k-1", "m", "recorded elsewhere"), "IDEMPOTENCY_KEY_CONFLICT"),
        (exc.DuplicateCodeError("Uom", "KG"), "DUPLICATE_CODE"),
        (exc.ItemNotFoundError("x"), "ITEM_NOT_FOUND"),
        (exc.OptimisticLockError("StockLevel", "x"), "OPTIMISTIC_LOCK_CONFLICT"),
        (exc.ImmutabilityViolationError("StockMovement", "x", "append-only"), "IMMUTABILITY_VIOLATION"),
    ],
)
def test_error_codes(error, code):
    assert error.code == code
    assert isinstance(error, exc.StockKernelError)


class TestHierarchy:

    def test_at_bin_is_insufficient_stock(self):
        """Callers catching InsufficientStockError also see the bin variant."""
        error = exc.InsufficientStockAtBinError("i", "w", "b", Decimal("5"), Decimal("2"))
        assert isinstance(error, exc.InsufficientStockError)
        assert error.bin_id == "b"
        assert error.on_hand_qty == "2"

    def test_null_bin_stays_none(self):
        error = exc.InsufficientStockError("i", "w", None, Decimal("5"), Decimal("2"))
        assert error.bin_id is None

    def test_transition_error_fields(self):
        error = exc.InvalidTransitionError("sales_order", "draft", "close")
        assert isinstance(error, exc.FulfillmentError)
        assert (error.workflow, error.from_state, error.action) == (
            "sales_order", "draft", "close",
        )
        assert error.guard is None

    def test_guard_named_in_message(self):
        error = exc.InvalidTransitionError(
            "sales_order", "approved", "fulfill_complete", guard="all_lines_fulfilled",
        )
        assert error.guard == "all_lines_fulfilled"
        assert "all_lines_fulfilled" in str(error)

    def test_not_found_message_names_entity(self):
        assert "not found" in str(exc.WarehouseNotFoundError("abc"))
