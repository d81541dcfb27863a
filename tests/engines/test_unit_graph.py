"""
Tests for the unit-of-measure conversion graph.

Covers:
- Direct, inverse and multi-hop conversion
- Identity conversion without traversal
- Fail-closed behaviour when no path exists
- Strict vs lenient builds
- Conflict detection
"""

from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from stock_engines.conversion import (
    ConversionEdge,
    UnitGraph,
    convert_qty,
    relative_difference,
)
from stock_kernel.exceptions import (
    InvalidConversionFactorError,
    InvalidQuantityError,
    NoConversionPathError,
)

MASS = [
    ConversionEdge("TON", "KG", Decimal("1000")),
    ConversionEdge("KG", "G", Decimal("1000")),
    ConversionEdge("LB", "G", Decimal("453.59237")),
]


class TestConvert:
    """Conversions over a small mass graph."""

    def setup_method(self):
        self.graph = UnitGraph.build(MASS)

    def test_direct_edge(self):
        assert self.graph.convert(Decimal("2"), "TON", "KG") == Decimal("2000")

    def test_inverse_edge(self):
        assert self.graph.convert(Decimal("500"), "KG", "TON") == Decimal("0.5")

    def test_multi_hop(self):
        assert self.graph.convert(Decimal("1"), "TON", "G") == Decimal("1000000")

    def test_multi_hop_through_inverse(self):
        result = self.graph.convert(Decimal("1"), "LB", "KG")
        assert result == Decimal("0.45359237")

    def test_identity_without_graph_membership(self):
        """Identity never traverses, so unknown units still convert to themselves."""
        assert self.graph.convert(Decimal("7"), "BOX", "BOX") == Decimal("7")

    def test_no_path_raises(self):
        with pytest.raises(NoConversionPathError) as exc_info:
            self.graph.convert(Decimal("1"), "KG", "EA")
        assert exc_info.value.from_unit == "KG"
        assert exc_info.value.to_unit == "EA"
        assert exc_info.value.code == "NO_CONVERSION_PATH"

    def test_float_quantity_rejected(self):
        with pytest.raises(InvalidQuantityError):
            self.graph.convert(1.5, "TON", "KG")

    def test_nan_quantity_rejected(self):
        with pytest.raises(InvalidQuantityError):
            self.graph.convert(Decimal("NaN"), "TON", "KG")

    def test_can_convert(self):
        assert self.graph.can_convert("TON", "LB")
        assert not self.graph.can_convert("TON", "EA")

    def test_direct_edge_wins_over_longer_path(self):
        """A direct edge is one hop; BFS never prefers a longer chain."""
        graph = UnitGraph.build([
            ConversionEdge("A", "B", Decimal("2")),
            ConversionEdge("B", "C", Decimal("3")),
            ConversionEdge("A", "C", Decimal("7")),
        ])
        assert graph.implied_factor("A", "C") == Decimal("7")

    def test_one_shot_helper(self):
        assert convert_qty(Decimal("3"), "TON", "KG", MASS) == Decimal("3000")


class TestBuild:
    """Graph construction."""

    def test_edges_and_units(self):
        graph = UnitGraph.build(MASS)
        assert len(graph) == 3
        assert graph.units == frozenset({"TON", "KG", "G", "LB"})

    def test_neighbours_keep_insertion_order(self):
        graph = UnitGraph.build(MASS)
        assert [unit for unit, _ in graph.neighbours("KG")] == ["TON", "G"]

    @pytest.mark.parametrize("factor", [Decimal("0"), Decimal("-1"), Decimal("Infinity")])
    def test_strict_build_rejects_bad_factor(self, factor):
        with pytest.raises(InvalidConversionFactorError):
            UnitGraph.build([ConversionEdge("A", "B", factor)])

    def test_lenient_build_drops_bad_factor(self, captured_logs):
        graph = UnitGraph.build(
            [ConversionEdge("A", "B", Decimal("0")), ConversionEdge("B", "C", Decimal("2"))],
            strict=False,
        )
        assert len(graph) == 1
        assert not graph.can_convert("A", "B")
        assert any(r["message"] == "conversion_edge_dropped" for r in captured_logs())

    def test_empty_graph(self):
        graph = UnitGraph.build([])
        assert len(graph) == 0
        assert graph.implied_factor("A", "B") is None


class TestConflicts:
    """find_conflicts replays edges in order."""

    def test_consistent_cycle_has_no_conflicts(self):
        graph = UnitGraph.build(MASS + [ConversionEdge("TON", "G", Decimal("1000000"))])
        assert graph.find_conflicts() == []

    def test_inconsistent_cycle_reported(self):
        bad = ConversionEdge("TON", "G", Decimal("999000"))
        graph = UnitGraph.build(MASS + [bad])
        conflicts = graph.find_conflicts()
        assert len(conflicts) == 1
        assert conflicts[0].edge == bad
        assert conflicts[0].implied_factor == Decimal("1000000")
        assert conflicts[0].relative_difference == Decimal("0.001")

    def test_tolerance_accepts_small_drift(self):
        near = ConversionEdge("TON", "G", Decimal("1000000.0000001"))
        graph = UnitGraph.build(MASS + [near])
        assert graph.find_conflicts(tolerance=Decimal("1e-9")) == []

    def test_relative_difference_zero(self):
        assert relative_difference(Decimal("0"), Decimal("0")) == Decimal("0")


factors = st.decimals(
    min_value=Decimal("0.001"), max_value=Decimal("100000"),
    allow_nan=False, allow_infinity=False, places=3,
)
quantities = st.decimals(
    min_value=Decimal("0"), max_value=Decimal("1000000"),
    allow_nan=False, allow_infinity=False, places=6,
)


class TestConversionProperties:
    """Round trips hold within tolerance for any positive factors."""

    @settings(max_examples=200, deadline=None)
    @given(qty=quantities, f1=factors, f2=factors)
    def test_round_trip_through_chain(self, qty, f1, f2):
        graph = UnitGraph.build([
            ConversionEdge("A", "B", f1),
            ConversionEdge("B", "C", f2),
        ])
        there = graph.convert(qty, "A", "C")
        back = graph.convert(there, "C", "A")
        assert relative_difference(back, qty) <= Decimal("1e-20")

    @settings(max_examples=200, deadline=None)
    @given(qty=quantities, factor=factors)
    def test_inverse_matches_division(self, qty, factor):
        graph = UnitGraph.build([ConversionEdge("A", "B", factor)])
        assert relative_difference(graph.convert(qty, "B", "A"), qty / factor) <= Decimal("1e-20")
