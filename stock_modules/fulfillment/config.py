"""
Fulfillment Configuration Schema.

Defines the structure and sensible defaults for order fulfillment settings.
Actual values are loaded from the active configuration set at runtime via
``stock_config.bridges.build_fulfillment_config``.
"""

from dataclasses import dataclass
from typing import Self

from stock_kernel.logging_config import get_logger

logger = get_logger("modules.fulfillment.config")


@dataclass
class FulfillmentConfig:
    """
    Configuration schema for the fulfillment module.

    Field defaults represent common warehouse practice.  Override at
    instantiation:

        config = FulfillmentConfig(auto_close_sales_orders=True)
    """

    # Completion
    auto_close_purchase_orders: bool = True  # fully received -> closed
    auto_close_sales_orders: bool = False  # fully shipped stays fulfilled

    # Cached line counters are advisory; log when they disagree with the log
    warn_on_counter_drift: bool = True

    def __post_init__(self):
        for name in (
            "auto_close_purchase_orders",
            "auto_close_sales_orders",
            "warn_on_counter_drift",
        ):
            if not isinstance(getattr(self, name), bool):
                raise ValueError(f"{name} must be a bool, got {getattr(self, name)!r}")

        logger.info(
            "fulfillment_config_initialized",
            extra={
                "auto_close_purchase_orders": self.auto_close_purchase_orders,
                "auto_close_sales_orders": self.auto_close_sales_orders,
                "warn_on_counter_drift": self.warn_on_counter_drift,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with default settings."""
        logger.info("fulfillment_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary (e.g., loaded from a file)."""
        logger.info(
            "fulfillment_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
