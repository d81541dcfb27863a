"""
Module: stock_engines
Responsibility:
    Package entrypoint re-exporting the pure calculation engines used by the
    kernel services and the fulfillment module.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  May import
    stock_kernel.exceptions, stock_kernel.logging_config and
    stock_kernel.db.types helpers only.  MUST NOT import stock_modules.

Invariants enforced:
    - Decimal-only arithmetic; floats are refused.
    - Determinism: identical inputs always produce identical outputs.
"""

from stock_engines.conversion import (
    ConversionConflict,
    ConversionEdge,
    UnitGraph,
    convert_qty,
    relative_difference,
)
from stock_engines.costing import (
    CostPosition,
    apply_delta,
    landed_unit_cost,
    line_amount,
)

__all__ = [
    "ConversionConflict",
    "ConversionEdge",
    "UnitGraph",
    "convert_qty",
    "relative_difference",
    "CostPosition",
    "apply_delta",
    "landed_unit_cost",
    "line_amount",
]
