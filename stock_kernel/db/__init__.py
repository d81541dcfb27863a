"""Database layer - engine, base classes, types."""

from stock_kernel.db.base import UUID, Base, PortableDecimal, TrackedBase, UUIDString
from stock_kernel.db.engine import create_tables, get_engine, get_session, session_scope
from stock_kernel.db.types import Currency, Money, Quantity, Rate

__all__ = [
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "PortableDecimal",
    "UUID",
    "Quantity",
    "Money",
    "Rate",
    "Currency",
]
