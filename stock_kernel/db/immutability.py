"""
ORM-Level Immutability Enforcement.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity             | When Immutable          | Why
-------------------|-------------------------|-----------------------------------
StockMovement      | ALWAYS (from creation)  | The log is the source of truth for
                   |                         | how much of each line is fulfilled
SalesShipment      | ALWAYS (from creation)  | Revenue record tied to a movement
                   |                         | (protected by stock_modules)
UomConversion      | ALWAYS (from creation)  | Conversion caches are keyed on the
                   |                         | edge count of a scope

Corrections are new compensating records, never edits.

SQLAlchemy fires before_update/before_delete before SQL reaches the database.
The listeners below raise ImmutabilityViolationError there, which aborts the
flush and leaves the database untouched.

Module ORM classes opt in with ``protect_model(cls, "EntityName")`` at import
time; the kernel never imports module code.

Usage:
    from stock_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup (create_tables does it)

    # Tests that need to bypass the guard:
    unregister_immutability_listeners()
    ...
    register_immutability_listeners()
"""

from sqlalchemy import event

from stock_kernel.exceptions import ImmutabilityViolationError
from stock_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

# ORM class -> entity name used in errors and logs
_protected: dict[type, str] = {}

_registered = False


def _block(target, operation: str) -> None:
    entity_type = _protected.get(type(target), type(target).__name__)
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
        },
    )
    verb = "modified" if operation == "UPDATE" else "deleted"
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=f"{entity_type} rows are append-only and cannot be {verb}",
    )


def _check_update(mapper, connection, target):
    _block(target, "UPDATE")


def _check_delete(mapper, connection, target):
    _block(target, "DELETE")


def _attach(model: type) -> None:
    if not event.contains(model, "before_update", _check_update):
        event.listen(model, "before_update", _check_update)
    if not event.contains(model, "before_delete", _check_delete):
        event.listen(model, "before_delete", _check_delete)


def _detach(model: type) -> None:
    if event.contains(model, "before_update", _check_update):
        event.remove(model, "before_update", _check_update)
    if event.contains(model, "before_delete", _check_delete):
        event.remove(model, "before_delete", _check_delete)


def protect_model(model: type, entity_type: str) -> None:
    """Declare an ORM class append-only."""
    _protected[model] = entity_type
    if _registered:
        _attach(model)


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Safe to call more than once.
    """
    global _registered
    from stock_kernel.models.movement import StockMovement
    from stock_kernel.models.uom import UomConversion

    _protected.setdefault(StockMovement, "StockMovement")
    _protected.setdefault(UomConversion, "UomConversion")
    for model in _protected:
        _attach(model)
    _registered = True


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests that intentionally violate the rules.
    """
    global _registered
    for model in _protected:
        _detach(model)
    _registered = False
