"""
Tests for the weighted-average costing engine.

Covers:
- Blending of receipts into the running average
- Issues leave the average unchanged
- Negative results are refused, not clamped
- Landed cost of an order receipt
"""

from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from stock_engines.costing import (
    CostPosition,
    apply_delta,
    landed_unit_cost,
    line_amount,
)
from stock_kernel.exceptions import InvalidQuantityError


class TestApplyDelta:

    def test_weighted_average_is_exact(self):
        """(10 @ 5) + (10 @ 7) -> 20 @ 6."""
        result = apply_delta(CostPosition(Decimal("10"), Decimal("5")), Decimal("10"), Decimal("7"))
        assert result == CostPosition(Decimal("20"), Decimal("6"))

    def test_first_receipt_sets_cost(self):
        result = apply_delta(CostPosition(), Decimal("4"), Decimal("2.5"))
        assert result.qty == Decimal("4")
        assert result.avg_cost == Decimal("2.5")

    def test_issue_keeps_average(self):
        result = apply_delta(CostPosition(Decimal("20"), Decimal("6")), Decimal("-5"))
        assert result == CostPosition(Decimal("15"), Decimal("6"))

    def test_issue_to_zero_keeps_last_average(self):
        result = apply_delta(CostPosition(Decimal("5"), Decimal("3")), Decimal("-5"))
        assert result.qty == 0
        assert result.avg_cost == Decimal("3")

    def test_overdraw_returns_none(self):
        assert apply_delta(CostPosition(Decimal("5"), Decimal("3")), Decimal("-6")) is None

    def test_zero_delta_rejected(self):
        with pytest.raises(InvalidQuantityError):
            apply_delta(CostPosition(), Decimal("0"), Decimal("1"))

    def test_receipt_without_cost_rejected(self):
        with pytest.raises(InvalidQuantityError):
            apply_delta(CostPosition(), Decimal("1"))

    def test_negative_cost_rejected(self):
        with pytest.raises(InvalidQuantityError):
            apply_delta(CostPosition(), Decimal("1"), Decimal("-1"))

    def test_value(self):
        assert CostPosition(Decimal("4"), Decimal("2.5")).value == Decimal("10.0")

    @settings(max_examples=200, deadline=None)
    @given(
        deltas=st.lists(
            st.decimals(min_value=-100, max_value=100, places=3, allow_nan=False)
            .filter(lambda d: d != 0),
            max_size=30,
        ),
    )
    def test_quantity_never_negative(self, deltas):
        position = CostPosition()
        for delta in deltas:
            result = apply_delta(position, delta, Decimal("1.25"))
            if result is None:
                assert position.qty + delta < 0
                continue
            assert result.qty >= 0
            assert result.avg_cost >= 0
            position = result


class TestLandedCost:

    def test_ton_to_kg_receipt(self):
        """2 TON at 500/TON into KG: 1000 total over 2000 KG."""
        cost = landed_unit_cost(Decimal("500"), Decimal("2"), Decimal("2000"))
        assert cost == Decimal("0.5")

    def test_discount_and_fx(self):
        cost = landed_unit_cost(
            Decimal("100"), Decimal("10"), Decimal("10"),
            discount_pct=Decimal("10"), fx_to_base=Decimal("1.2"),
        )
        assert cost == Decimal("108")

    def test_zero_base_quantity_rejected(self):
        with pytest.raises(InvalidQuantityError):
            landed_unit_cost(Decimal("1"), Decimal("1"), Decimal("0"))

    def test_line_amount(self):
        assert line_amount(Decimal("20"), Decimal("3"), Decimal("25")) == Decimal("45")
