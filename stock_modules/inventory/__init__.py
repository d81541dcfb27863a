"""
Inventory Module (``stock_modules.inventory``).

Manual stock operations outside the order flow: receipts, issues, transfers
between locations, and adjustments to a counted quantity.  Conversion,
costing and ledger arithmetic come from the kernel and engines.
"""

from stock_modules.inventory.service import InventoryService

__all__ = ["InventoryService"]
