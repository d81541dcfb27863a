"""
stock_engines.costing -- Weighted-average cost arithmetic.

Responsibility:
    Compute the next (quantity, average unit cost) of a stock position when
    a signed delta is applied, and derive per-base-unit landed cost for
    order receipts.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  StockLedger persists what
    this module computes.

Invariants enforced:
    - Receipts blend: new_avg = (q * avg + d * c) / (q + d).
    - Receipts into an empty position take the receipt cost.
    - Issues never change the average.
    - A position never goes negative; apply_delta returns None instead so
      the caller can raise with full location context.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from stock_kernel.db.types import round_quantity
from stock_kernel.exceptions import InvalidQuantityError

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


@dataclass(frozen=True, slots=True)
class CostPosition:
    """Quantity and weighted-average unit cost of one stock position."""

    qty: Decimal = _ZERO
    avg_cost: Decimal = _ZERO

    @property
    def value(self) -> Decimal:
        return self.qty * self.avg_cost


def apply_delta(
    position: CostPosition,
    delta_qty: Decimal,
    unit_cost: Decimal | None = None,
) -> CostPosition | None:
    """
    Return the position after applying ``delta_qty``.

    Args:
        position: Current position (zeros for a new location).
        delta_qty: Signed, non-zero quantity change.
        unit_cost: Cost per unit of the incoming quantity; required for
            positive deltas, ignored for negative ones.

    Returns:
        The new position, or None when the delta would make quantity negative.

    Raises:
        InvalidQuantityError: zero delta, or missing/negative cost on receipt.
    """
    if delta_qty == 0:
        raise InvalidQuantityError("delta_qty", delta_qty, "must be non-zero")

    new_qty = round_quantity(position.qty + delta_qty)

    if delta_qty < 0:
        if new_qty < 0:
            return None
        return CostPosition(new_qty, position.avg_cost)

    if unit_cost is None:
        raise InvalidQuantityError("unit_cost", unit_cost, "required for a receipt")
    if not unit_cost.is_finite() or unit_cost < 0:
        raise InvalidQuantityError("unit_cost", unit_cost, "must be finite and >= 0")

    if position.qty <= 0:
        return CostPosition(new_qty, round_quantity(unit_cost))

    blended = (position.qty * position.avg_cost + delta_qty * unit_cost) / new_qty
    return CostPosition(new_qty, round_quantity(blended))


def landed_unit_cost(
    unit_price: Decimal,
    qty: Decimal,
    qty_base: Decimal,
    *,
    discount_pct: Decimal = _ZERO,
    fx_to_base: Decimal = Decimal("1"),
) -> Decimal:
    """
    Base-currency cost per base unit for an order receipt.

    total_base = unit_price * (1 - discount_pct / 100) * fx_to_base * qty
    unit_cost  = total_base / qty_base

    Raises:
        InvalidQuantityError: qty_base is not positive.
    """
    if qty_base <= 0:
        raise InvalidQuantityError("qty_base", qty_base, "must be positive")
    total_base = line_amount(unit_price, qty, discount_pct) * fx_to_base
    return total_base / qty_base


def line_amount(
    unit_price: Decimal,
    qty: Decimal,
    discount_pct: Decimal = _ZERO,
) -> Decimal:
    """Document-currency amount: price * qty * (1 - discount/100)."""
    return unit_price * qty * (1 - discount_pct / _HUNDRED)
