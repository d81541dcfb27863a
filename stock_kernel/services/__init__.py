"""Kernel services: flush-only writers over the stock schema."""

from stock_kernel.services.conversion_service import ConversionService
from stock_kernel.services.master_data_service import MasterDataService, normalize_code
from stock_kernel.services.movement_log import MovementLog
from stock_kernel.services.stock_ledger import StockLedger

__all__ = [
    "ConversionService",
    "MasterDataService",
    "MovementLog",
    "StockLedger",
    "normalize_code",
]
