"""
Config -> Service Bridges.

Functions that turn a loaded ``StockConfig`` into the inputs kernel services
and modules take.  These live in stock_config (the producer) because the
kernel must NEVER import stock_config.

Usage:
    from stock_config import get_active_config
    from stock_config.bridges import build_fulfillment_config, conflict_tolerance

    config = get_active_config()
    fulfillment = FulfillmentService(session, config=build_fulfillment_config(config))
    master_data = MasterDataService(
        session, conflict_tolerance=conflict_tolerance(config),
    )
"""

from __future__ import annotations

from decimal import Decimal

from stock_config.schema import StockConfig
from stock_modules.fulfillment.config import FulfillmentConfig


def build_fulfillment_config(config: StockConfig) -> FulfillmentConfig:
    """Module config for FulfillmentService from the ``fulfillment`` section."""
    settings = config.fulfillment
    return FulfillmentConfig(
        auto_close_purchase_orders=settings.auto_close_purchase_orders,
        auto_close_sales_orders=settings.auto_close_sales_orders,
        warn_on_counter_drift=settings.warn_on_counter_drift,
    )


def conflict_tolerance(config: StockConfig) -> Decimal:
    """Relative tolerance for MasterDataService.define_conversion."""
    return config.conversion.conflict_tolerance
