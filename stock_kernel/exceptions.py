"""
Typed Exception Hierarchy for the Stock Kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from StockKernelError:

    StockKernelError (base)
    |
    +-- ValidationError
    |   +-- InvalidQuantityError
    |   +-- MissingMovementFieldError
    |   +-- InvalidCurrencyError
    |   +-- InvalidCodeError
    |   +-- IdempotencyKeyConflictError
    |
    +-- ConversionError
    |   +-- NoConversionPathError
    |   +-- InvalidConversionFactorError
    |   +-- ConflictingConversionError
    |
    +-- StockError
    |   +-- InsufficientStockError
    |   |   +-- InsufficientStockAtBinError
    |   +-- InvalidTransferError
    |   +-- NoAdjustmentNeededError
    |
    +-- FulfillmentError
    |   +-- OrderNotFoundError
    |   +-- OrderLineNotFoundError
    |   +-- OrderNotApprovedError
    |   +-- OrderNotOpenError
    |   +-- OverFulfillError
    |   +-- InvalidTransitionError
    |
    +-- MasterDataError
    |   +-- DuplicateCodeError
    |   +-- UomNotFoundError
    |   +-- ItemNotFoundError
    |   +-- WarehouseNotFoundError
    |   +-- BinNotFoundError
    |   +-- PartyNotFoundError
    |
    +-- ConcurrencyError
    |   +-- OptimisticLockError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                       | When Raised
-------------|----------------------------|------------------------------------------
Validation   | INVALID_QUANTITY           | Non-finite, zero or negative quantity/cost
             | MISSING_MOVEMENT_FIELD     | Movement record lacks a required field
             | IDEMPOTENCY_KEY_CONFLICT   | Key already used for another request
-------------|----------------------------|------------------------------------------
Conversion   | NO_CONVERSION_PATH         | Units not connected in the graph
             | INVALID_CONVERSION_FACTOR  | Factor non-finite or <= 0
             | CONFLICTING_CONVERSION     | New factor disagrees with existing path
-------------|----------------------------|------------------------------------------
Stock        | INSUFFICIENT_STOCK         | Delta would make on-hand negative
             | INSUFFICIENT_STOCK_AT_BIN  | Selected bin cannot cover a shipment
             | INVALID_TRANSFER           | Transfer source equals destination
             | NO_ADJUSTMENT_NEEDED       | Adjustment target equals on-hand
-------------|----------------------------|------------------------------------------
Fulfillment  | ORDER_NOT_APPROVED         | Fulfilling a draft order
             | ORDER_NOT_OPEN             | Fulfilling a cancelled order
             | OVER_FULFILL               | Requested qty exceeds remaining qty
             | INVALID_TRANSITION         | Action not allowed from current status
-------------|----------------------------|------------------------------------------
Master data  | DUPLICATE_CODE             | Code already used within its scope
-------------|----------------------------|------------------------------------------
Concurrency  | OPTIMISTIC_LOCK_CONFLICT   | Stock row version changed underneath
Immutability | IMMUTABILITY_VIOLATION     | Update/delete of a movement record

Callers catch by type and read structured attributes; messages are for
humans only.
"""

from decimal import Decimal
from typing import Any


class StockKernelError(Exception):
    """
    Base exception for all stock kernel errors.

    All subclasses carry a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "STOCK_KERNEL_ERROR"


# Validation exceptions


class ValidationError(StockKernelError):
    """Base exception for input validation errors."""

    code: str = "VALIDATION_ERROR"


class InvalidQuantityError(ValidationError):
    """A quantity, price or cost is not a usable number."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = str(value)
        self.reason = reason
        super().__init__(f"Invalid {field} {value!s}: {reason}")


class MissingMovementFieldError(ValidationError):
    """A movement record is missing a required field."""

    code: str = "MISSING_MOVEMENT_FIELD"

    def __init__(self, field: str, movement_type: str):
        self.field = field
        self.movement_type = movement_type
        super().__init__(
            f"Movement of type '{movement_type}' requires field '{field}'"
        )


class InvalidCodeError(ValidationError):
    """A business code is empty or blank."""

    code: str = "INVALID_CODE"

    def __init__(self, entity_code: str):
        self.entity_code = str(entity_code)
        super().__init__(f"Invalid code: '{entity_code}' (must be non-blank)")


class InvalidCurrencyError(ValidationError):
    """Currency is not a recognized ISO 4217 code."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, currency: str):
        self.currency = str(currency)
        super().__init__(f"Invalid ISO 4217 currency code: '{currency}'")


class IdempotencyKeyConflictError(ValidationError):
    """An idempotency key already recorded a different movement."""

    code: str = "IDEMPOTENCY_KEY_CONFLICT"

    def __init__(self, idempotency_key: str, movement_id: str, reason: str):
        self.idempotency_key = idempotency_key
        self.movement_id = movement_id
        self.reason = reason
        super().__init__(
            f"Idempotency key '{idempotency_key}' already recorded movement "
            f"{movement_id}: {reason}"
        )


# Conversion exceptions


class ConversionError(StockKernelError):
    """Base exception for unit-of-measure conversion errors."""

    code: str = "CONVERSION_ERROR"


class NoConversionPathError(ConversionError):
    """No chain of conversion edges connects the two units."""

    code: str = "NO_CONVERSION_PATH"

    def __init__(self, from_unit: str, to_unit: str):
        self.from_unit = str(from_unit)
        self.to_unit = str(to_unit)
        super().__init__(
            f"No conversion path from {from_unit} to {to_unit}"
        )


class InvalidConversionFactorError(ConversionError):
    """A conversion edge has a non-finite or non-positive factor."""

    code: str = "INVALID_CONVERSION_FACTOR"

    def __init__(
        self,
        from_unit: str,
        to_unit: str,
        factor: Any,
        reason: str = "must be finite and greater than zero",
    ):
        self.from_unit = str(from_unit)
        self.to_unit = str(to_unit)
        self.factor = str(factor)
        self.reason = reason
        super().__init__(
            f"Conversion factor {factor!s} for {from_unit} -> {to_unit}: {reason}"
        )


class ConflictingConversionError(ConversionError):
    """
    A new conversion factor disagrees with the factor already implied by
    existing edges between the same two units.
    """

    code: str = "CONFLICTING_CONVERSION"

    def __init__(
        self,
        from_unit: str,
        to_unit: str,
        factor: Decimal,
        implied_factor: Decimal,
        scope_id: str | None = None,
    ):
        self.from_unit = str(from_unit)
        self.to_unit = str(to_unit)
        self.factor = str(factor)
        self.implied_factor = str(implied_factor)
        self.scope_id = scope_id
        super().__init__(
            f"Conversion {from_unit} -> {to_unit} = {factor} conflicts with "
            f"existing path factor {implied_factor}"
            + (f" in scope {scope_id}" if scope_id else "")
        )


# Stock exceptions


class StockError(StockKernelError):
    """Base exception for stock ledger errors."""

    code: str = "STOCK_ERROR"


class InsufficientStockError(StockError):
    """Applying a delta would leave on-hand quantity negative."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        item_id: str,
        warehouse_id: str,
        bin_id: str | None,
        requested_qty: Decimal,
        on_hand_qty: Decimal,
    ):
        self.item_id = str(item_id)
        self.warehouse_id = str(warehouse_id)
        self.bin_id = str(bin_id) if bin_id is not None else None
        self.requested_qty = str(requested_qty)
        self.on_hand_qty = str(on_hand_qty)
        location = f"warehouse {warehouse_id}"
        if bin_id is not None:
            location += f" bin {bin_id}"
        super().__init__(
            f"Insufficient stock for item {item_id} at {location}: "
            f"requested {requested_qty}, on hand {on_hand_qty}"
        )


class InsufficientStockAtBinError(InsufficientStockError):
    """
    The specific bin selected for a shipment does not hold enough stock.

    Raised before any ledger write; stock in other bins is never drawn.
    """

    code: str = "INSUFFICIENT_STOCK_AT_BIN"


class InvalidTransferError(StockError):
    """Transfer source and destination are the same location."""

    code: str = "INVALID_TRANSFER"

    def __init__(self, warehouse_id: str, bin_id: str | None):
        self.warehouse_id = str(warehouse_id)
        self.bin_id = str(bin_id) if bin_id is not None else None
        super().__init__(
            f"Transfer source and destination are identical "
            f"(warehouse {warehouse_id}, bin {bin_id})"
        )


class NoAdjustmentNeededError(StockError):
    """Adjustment target quantity equals current on-hand."""

    code: str = "NO_ADJUSTMENT_NEEDED"

    def __init__(self, item_id: str, target_qty: Decimal):
        self.item_id = str(item_id)
        self.target_qty = str(target_qty)
        super().__init__(
            f"On-hand for item {item_id} already equals {target_qty}"
        )


# Fulfillment exceptions


class FulfillmentError(StockKernelError):
    """Base exception for order fulfillment errors."""

    code: str = "FULFILLMENT_ERROR"


class OrderNotFoundError(FulfillmentError):
    """Order with given ID was not found."""

    code: str = "ORDER_NOT_FOUND"

    def __init__(self, order_kind: str, order_id: str):
        self.order_kind = order_kind
        self.order_id = str(order_id)
        super().__init__(f"{order_kind} not found: {order_id}")


class OrderLineNotFoundError(FulfillmentError):
    """Line does not exist or does not belong to the given order."""

    code: str = "ORDER_LINE_NOT_FOUND"

    def __init__(self, order_id: str, line_id: str):
        self.order_id = str(order_id)
        self.line_id = str(line_id)
        super().__init__(f"Line {line_id} not found on order {order_id}")


class OrderNotApprovedError(FulfillmentError):
    """Fulfillment attempted on an order that is still a draft."""

    code: str = "ORDER_NOT_APPROVED"

    def __init__(self, order_id: str, status: str):
        self.order_id = str(order_id)
        self.status = status
        super().__init__(
            f"Order {order_id} must be approved before fulfillment "
            f"(status: {status})"
        )


class OrderNotOpenError(FulfillmentError):
    """Fulfillment attempted on a cancelled order."""

    code: str = "ORDER_NOT_OPEN"

    def __init__(self, order_id: str, status: str):
        self.order_id = str(order_id)
        self.status = status
        super().__init__(f"Order {order_id} is not open (status: {status})")


class OverFulfillError(FulfillmentError):
    """Requested quantity exceeds the line's remaining quantity."""

    code: str = "OVER_FULFILL"

    def __init__(
        self,
        line_id: str,
        requested_qty: Decimal,
        remaining_qty: Decimal,
    ):
        self.line_id = str(line_id)
        self.requested_qty = str(requested_qty)
        self.remaining_qty = str(remaining_qty)
        super().__init__(
            f"Line {line_id}: requested {requested_qty} exceeds "
            f"remaining {remaining_qty}"
        )


class InvalidTransitionError(FulfillmentError):
    """Action is not permitted from the order's current status."""

    code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        workflow: str,
        from_state: str,
        action: str,
        guard: str | None = None,
    ):
        self.workflow = workflow
        self.from_state = from_state
        self.action = action
        self.guard = guard
        message = f"{workflow}: action '{action}' is not allowed from '{from_state}'"
        if guard:
            message += f" (guard '{guard}' not satisfied)"
        super().__init__(message)


# Master data exceptions


class MasterDataError(StockKernelError):
    """Base exception for reference data errors."""

    code: str = "MASTER_DATA_ERROR"


class DuplicateCodeError(MasterDataError):
    """Code is already in use within its scope."""

    code: str = "DUPLICATE_CODE"

    def __init__(self, entity_type: str, entity_code: str, scope: str | None = None):
        self.entity_type = entity_type
        self.entity_code = entity_code
        self.scope = scope
        where = f" in scope {scope}" if scope else ""
        super().__init__(f"{entity_type} code '{entity_code}' already exists{where}")


class _NotFoundError(MasterDataError):
    entity_type: str = "entity"

    def __init__(self, entity_id: str):
        self.entity_id = str(entity_id)
        super().__init__(f"{self.entity_type} not found: {entity_id}")


class UomNotFoundError(_NotFoundError):
    """Unit of measure with given ID or code was not found."""

    code: str = "UOM_NOT_FOUND"
    entity_type = "Unit of measure"


class ItemNotFoundError(_NotFoundError):
    """Item with given ID was not found."""

    code: str = "ITEM_NOT_FOUND"
    entity_type = "Item"


class WarehouseNotFoundError(_NotFoundError):
    """Warehouse with given ID was not found."""

    code: str = "WAREHOUSE_NOT_FOUND"
    entity_type = "Warehouse"


class BinNotFoundError(_NotFoundError):
    """Bin with given ID was not found, or belongs to another warehouse."""

    code: str = "BIN_NOT_FOUND"
    entity_type = "Bin"


class PartyNotFoundError(_NotFoundError):
    """Supplier or customer with given ID was not found."""

    code: str = "PARTY_NOT_FOUND"
    entity_type = "Party"


# Concurrency exceptions


class ConcurrencyError(StockKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            "entity was modified by another transaction"
        )


# Immutability exceptions


class ImmutabilityError(StockKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    Movement records and sales shipments are immutable after creation.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
