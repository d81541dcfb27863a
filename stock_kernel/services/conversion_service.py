"""
ConversionService -- scope-aware unit conversion backed by UnitGraph.

Responsibility:
    Resolve the effective conversion edges for a scope, build an immutable
    ``UnitGraph`` snapshot, cache it, and convert quantities through it.

Architecture position:
    Kernel > Services.  Reads through ConversionSelector; computes through
    ``stock_engines.conversion``.  Never writes.

Invariants enforced:
    - A scoped edge overrides the global edge for the same unit pair.
    - Each cached snapshot is tagged with the scope's edge fingerprint
      (``ConversionSelector.edge_fingerprint``).  Edges are append-only, so
      a snapshot is reused only while no edge visible to the scope has been
      added, whichever service or session added it.
    - Legacy rows with unusable factors are skipped with a warning rather
      than failing every conversion in the scope.

Failure modes:
    - NoConversionPathError, InvalidQuantityError from UnitGraph.convert.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from stock_engines.conversion import UnitGraph
from stock_kernel.db.types import to_decimal
from stock_kernel.exceptions import ItemNotFoundError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.item import Item
from stock_kernel.models.uom import UomConversion
from stock_kernel.selectors.conversion_selector import ConversionSelector
from stock_kernel.services.base import BaseService

logger = get_logger("services.conversion")


class ConversionService(BaseService[UomConversion]):
    """
    Cached, per-scope unit conversion.

    Contract:
        The cache lives as long as the instance.  Every lookup checks the
        scope's edge fingerprint first (one COUNT query) and rebuilds the
        graph when it moved.

    Non-goals:
        - Defining edges.  See MasterDataService.define_conversion.
    """

    def __init__(self, session: Session):
        super().__init__(session)
        self._selector = ConversionSelector(session)
        self._graphs: dict[UUID | None, tuple[int, UnitGraph]] = {}

    def graph_for(self, scope_id: UUID | None = None) -> UnitGraph:
        fingerprint = self._selector.edge_fingerprint(scope_id)
        cached = self._graphs.get(scope_id)
        if cached is not None and cached[0] == fingerprint:
            return cached[1]

        graph = UnitGraph.build(
            self._selector.effective_edges(scope_id), strict=False,
        )
        self._graphs[scope_id] = (fingerprint, graph)
        logger.debug(
            "unit_graph_built",
            extra={
                "scope_id": str(scope_id) if scope_id else None,
                "edge_count": len(graph),
                "fingerprint": fingerprint,
                "rebuilt": cached is not None,
            },
        )
        return graph

    def invalidate(self) -> None:
        """Drop every cached snapshot."""
        self._graphs.clear()

    def convert_qty(
        self,
        qty: Decimal,
        from_uom_id: UUID,
        to_uom_id: UUID,
        scope_id: UUID | None = None,
    ) -> Decimal:
        """
        Convert qty between two units.

        Raises:
            InvalidQuantityError: qty is not a finite number.
            NoConversionPathError: units are not connected in the scope.
        """
        qty = to_decimal(qty, "qty")
        if from_uom_id == to_uom_id:
            return qty
        return self.graph_for(scope_id).convert(qty, from_uom_id, to_uom_id)

    def to_base_qty(
        self,
        item_id: UUID,
        qty: Decimal,
        uom_id: UUID,
    ) -> Decimal:
        """Convert qty in uom_id to the item's base unit within the item's scope."""
        item = self.session.get(Item, item_id)
        if item is None:
            raise ItemNotFoundError(str(item_id))
        return self.convert_qty(qty, uom_id, item.base_uom_id, item.scope_id)
