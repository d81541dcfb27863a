"""Read-only query selectors."""

from stock_kernel.selectors.conversion_selector import ConversionSelector
from stock_kernel.selectors.location_selector import LocationSelector
from stock_kernel.selectors.movement_selector import MovementSelector
from stock_kernel.selectors.stock_selector import StockSelector

__all__ = [
    "ConversionSelector",
    "LocationSelector",
    "MovementSelector",
    "StockSelector",
]
