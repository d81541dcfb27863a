"""
Module: stock_kernel.selectors.conversion_selector
Responsibility: Read-only queries over units of measure and conversion edges,
    including resolution of the effective edge set for a scope.
Architecture position: Kernel > Selectors.

Effective edges for a scope:
    1. Every edge defined in that scope.
    2. Every global edge whose unordered unit pair is not redefined by (1).
"""

from uuid import UUID

from sqlalchemy import func, select

from stock_engines.conversion import ConversionEdge
from stock_kernel.models.scope import scope_key_for
from stock_kernel.models.uom import UomConversion
from stock_kernel.selectors.base import BaseSelector


class ConversionSelector(BaseSelector[UomConversion]):
    """Queries for unit-of-measure reference data."""

    def _rows_for_scope_key(self, scope_key: str) -> list[UomConversion]:
        return list(
            self.session.execute(
                select(UomConversion)
                .where(UomConversion.scope_key == scope_key)
                .order_by(UomConversion.created_at, UomConversion.id)
            ).scalars()
        )

    def edge_for_pair(
        self,
        scope_id: UUID | None,
        pair_key: str,
    ) -> ConversionEdge | None:
        """The edge defined for exactly this scope and unit pair, if any."""
        row = self.session.execute(
            select(UomConversion).where(
                UomConversion.scope_key == scope_key_for(scope_id),
                UomConversion.pair_key == pair_key,
            )
        ).scalar_one_or_none()
        if row is None:
            return None
        return ConversionEdge(row.from_uom_id, row.to_uom_id, row.factor)

    def effective_edges(
        self,
        scope_id: UUID | None = None,
        *,
        exclude_pair: str | None = None,
    ) -> list[ConversionEdge]:
        """Scoped edges first, then global edges not overridden in the scope."""
        scoped: list[UomConversion] = []
        if scope_id is not None:
            scoped = self._rows_for_scope_key(scope_key_for(scope_id))
        overridden = {row.pair_key for row in scoped}
        rows = scoped + [
            row for row in self._rows_for_scope_key(scope_key_for(None))
            if row.pair_key not in overridden
        ]
        return [
            ConversionEdge(row.from_uom_id, row.to_uom_id, row.factor)
            for row in rows
            if row.pair_key != exclude_pair
        ]

    def scopes_with_edges(self) -> list[UUID]:
        """Scope ids that define at least one scoped edge."""
        return list(
            self.session.execute(
                select(UomConversion.scope_id)
                .where(UomConversion.scope_id.is_not(None))
                .distinct()
            ).scalars()
        )

    def edge_fingerprint(self, scope_id: UUID | None = None) -> int:
        """
        Number of edges visible to a scope (its own plus the global ones).

        Edges are append-only, so any write that can change the effective
        graph of a scope changes this number.
        """
        scope_keys = {scope_key_for(None), scope_key_for(scope_id)}
        return self.session.execute(
            select(func.count())
            .select_from(UomConversion)
            .where(UomConversion.scope_key.in_(scope_keys))
        ).scalar_one()
