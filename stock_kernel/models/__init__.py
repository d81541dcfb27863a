"""ORM models for the stock kernel."""

from stock_kernel.models.item import Item
from stock_kernel.models.location import Bin, Warehouse
from stock_kernel.models.movement import MovementRefType, MovementType, StockMovement
from stock_kernel.models.party import Party, PartyKind
from stock_kernel.models.scope import scope_key_for
from stock_kernel.models.stock_level import StockLevel, bin_key_for
from stock_kernel.models.uom import UnitOfMeasure, UomConversion

__all__ = [
    "Item",
    "Bin",
    "Warehouse",
    "MovementRefType",
    "MovementType",
    "StockMovement",
    "Party",
    "PartyKind",
    "StockLevel",
    "UnitOfMeasure",
    "UomConversion",
    "bin_key_for",
    "scope_key_for",
]
