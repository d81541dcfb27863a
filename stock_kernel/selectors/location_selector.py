"""
Module: stock_kernel.selectors.location_selector
Responsibility: Read-only lookups over warehouses and bins.
Architecture position: Kernel > Selectors.
"""

from uuid import UUID

from stock_kernel.exceptions import BinNotFoundError, WarehouseNotFoundError
from stock_kernel.models.location import Bin, Warehouse
from stock_kernel.selectors.base import BaseSelector


class LocationSelector(BaseSelector[Warehouse]):
    """Existence checks for stock locations."""

    def require_location(self, warehouse_id: UUID, bin_id: UUID | None) -> None:
        """
        Confirm the warehouse exists and, when given, the bin belongs to it.

        Raises:
            WarehouseNotFoundError, BinNotFoundError.
        """
        if self.session.get(Warehouse, warehouse_id) is None:
            raise WarehouseNotFoundError(str(warehouse_id))
        if bin_id is None:
            return
        bin_row = self.session.get(Bin, bin_id)
        if bin_row is None or bin_row.warehouse_id != warehouse_id:
            raise BinNotFoundError(str(bin_id))
