"""
stock_engines.conversion -- Unit-of-measure conversion graph.

Responsibility:
    Build an immutable, bidirectional graph of unit conversion factors and
    answer shortest-path conversions over it.  A defined edge
    ``(from, to, f)`` means ``qty_to = qty_from * f``; its inverse
    ``(to, from, 1/f)`` is always implied.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Units are opaque hashable
    keys (UOM ids or codes); the graph never touches the database.  The
    stateful ConversionService in the kernel builds and caches graphs.

Invariants enforced:
    - Factor validity: strict builds reject factors that are non-finite or
      <= 0 with InvalidConversionFactorError.  Lenient builds (legacy data)
      drop such edges with a warning.
    - Shortest path: convert() is a breadth-first search whose neighbours are
      visited in insertion order, so a direct edge always wins over any
      multi-hop path and results are deterministic.
    - Identity: convert(q, u, u) returns q unchanged without traversal, even
      for units absent from the graph.
    - Fail closed: unreachable targets raise NoConversionPathError; no
      conversion is ever guessed.

Failure modes:
    - InvalidQuantityError if qty is not a finite Decimal.
    - NoConversionPathError if no chain of edges connects the units.

Usage:
    graph = UnitGraph.build([ConversionEdge("TON", "KG", Decimal("1000"))])
    graph.convert(Decimal("2"), "TON", "KG")   # Decimal("2000")
    graph.convert(Decimal("500"), "KG", "TON")  # Decimal("0.5")
"""

from __future__ import annotations

from collections import deque
from collections.abc import Hashable, Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from types import MappingProxyType

from stock_kernel.exceptions import (
    InvalidConversionFactorError,
    InvalidQuantityError,
    NoConversionPathError,
)
from stock_kernel.logging_config import get_logger

logger = get_logger("engines.conversion")

Unit = Hashable

_ONE = Decimal("1")


@dataclass(frozen=True, slots=True)
class ConversionEdge:
    """One defined conversion: qty_to = qty_from * factor."""

    from_unit: Unit
    to_unit: Unit
    factor: Decimal


@dataclass(frozen=True, slots=True)
class ConversionConflict:
    """An edge whose factor disagrees with a path formed by earlier edges."""

    edge: ConversionEdge
    implied_factor: Decimal

    @property
    def relative_difference(self) -> Decimal:
        return relative_difference(self.edge.factor, self.implied_factor)


def is_valid_factor(factor) -> bool:
    return isinstance(factor, Decimal) and factor.is_finite() and factor > 0


def relative_difference(a: Decimal, b: Decimal) -> Decimal:
    """|a - b| relative to the larger magnitude; 0 when both are 0."""
    scale = max(abs(a), abs(b))
    if scale == 0:
        return Decimal("0")
    return abs(a - b) / scale


class UnitGraph:
    """
    Immutable adjacency view of conversion edges.

    Contract:
        Built once from a sequence of edges and never mutated afterwards;
        safe to share between threads and to cache.

    Guarantees:
        - Every accepted edge appears in both directions.
        - Neighbour order equals edge insertion order.

    Non-goals:
        - Detecting inconsistent cycles at build time.  Use
          ``find_conflicts()``; writers reject conflicts before persisting.
    """

    __slots__ = ("_adjacency", "_edges")

    def __init__(
        self,
        adjacency: Mapping[Unit, tuple[tuple[Unit, Decimal], ...]],
        edges: tuple[ConversionEdge, ...],
    ):
        self._adjacency = MappingProxyType(dict(adjacency))
        self._edges = edges

    @classmethod
    def build(
        cls,
        edges: Iterable[ConversionEdge],
        *,
        strict: bool = True,
    ) -> UnitGraph:
        """
        Build a graph from edges.

        Args:
            edges: Conversion edges in priority order.
            strict: Reject invalid factors (default).  When False, invalid
                edges are dropped and logged.

        Raises:
            InvalidConversionFactorError: strict build saw a bad factor.
        """
        adjacency: dict[Unit, list[tuple[Unit, Decimal]]] = {}
        accepted: list[ConversionEdge] = []
        for edge in edges:
            if not is_valid_factor(edge.factor):
                if strict:
                    raise InvalidConversionFactorError(
                        edge.from_unit, edge.to_unit, edge.factor,
                    )
                logger.warning(
                    "conversion_edge_dropped",
                    extra={
                        "from_unit": str(edge.from_unit),
                        "to_unit": str(edge.to_unit),
                        "factor": str(edge.factor),
                    },
                )
                continue
            adjacency.setdefault(edge.from_unit, []).append(
                (edge.to_unit, edge.factor)
            )
            adjacency.setdefault(edge.to_unit, []).append(
                (edge.from_unit, _ONE / edge.factor)
            )
            accepted.append(edge)

        return cls(
            {unit: tuple(targets) for unit, targets in adjacency.items()},
            tuple(accepted),
        )

    @property
    def edges(self) -> tuple[ConversionEdge, ...]:
        return self._edges

    @property
    def units(self) -> frozenset[Unit]:
        return frozenset(self._adjacency)

    def neighbours(self, unit: Unit) -> tuple[tuple[Unit, Decimal], ...]:
        return self._adjacency.get(unit, ())

    def implied_factor(self, from_unit: Unit, to_unit: Unit) -> Decimal | None:
        """
        Factor f such that qty_to = qty_from * f along the shortest path,
        or None when the units are not connected.
        """
        if from_unit == to_unit:
            return _ONE
        visited = {from_unit}
        queue: deque[tuple[Unit, Decimal]] = deque([(from_unit, _ONE)])
        while queue:
            unit, acc = queue.popleft()
            for target, factor in self._adjacency.get(unit, ()):
                if target in visited:
                    continue
                value = acc * factor
                if target == to_unit:
                    return value
                visited.add(target)
                queue.append((target, value))
        return None

    def convert(self, qty: Decimal, from_unit: Unit, to_unit: Unit) -> Decimal:
        """
        Convert qty from one unit to another.

        Raises:
            InvalidQuantityError: qty is not a finite Decimal.
            NoConversionPathError: the units are not connected.
        """
        if not isinstance(qty, Decimal) or not qty.is_finite():
            raise InvalidQuantityError("qty", qty, "must be a finite Decimal")
        if from_unit == to_unit:
            return qty
        factor = self.implied_factor(from_unit, to_unit)
        if factor is None:
            raise NoConversionPathError(from_unit, to_unit)
        return qty * factor

    def can_convert(self, from_unit: Unit, to_unit: Unit) -> bool:
        return self.implied_factor(from_unit, to_unit) is not None

    def find_conflicts(
        self,
        tolerance: Decimal = Decimal("1e-9"),
    ) -> list[ConversionConflict]:
        """
        Report edges whose factor disagrees with an earlier path.

        Edges are replayed in insertion order; each one is compared with the
        factor implied by the graph of the edges before it.  An edge whose
        relative difference exceeds ``tolerance`` is reported and not added,
        so one bad edge does not cascade into spurious reports.
        """
        conflicts: list[ConversionConflict] = []
        prefix: list[ConversionEdge] = []
        for edge in self._edges:
            implied = UnitGraph.build(prefix).implied_factor(
                edge.from_unit, edge.to_unit,
            )
            if implied is not None and relative_difference(edge.factor, implied) > tolerance:
                conflicts.append(ConversionConflict(edge, implied))
                continue
            prefix.append(edge)
        return conflicts

    def __len__(self) -> int:
        return len(self._edges)

    def __repr__(self) -> str:
        return f"<UnitGraph units={len(self._adjacency)} edges={len(self._edges)}>"


def convert_qty(
    qty: Decimal,
    from_unit: Unit,
    to_unit: Unit,
    edges: Iterable[ConversionEdge],
) -> Decimal:
    """One-shot convenience: build a strict graph and convert."""
    return UnitGraph.build(edges).convert(qty, from_unit, to_unit)
