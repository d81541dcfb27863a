"""
Configuration Schema (``stock_config.schema``).

Frozen dataclasses describing one stock configuration set.  The loader
parses YAML into these; nothing else constructs them from raw files.

Structure::

    StockConfig
    +-- LedgerSettings       base currency, quantity precision
    +-- ConversionSettings   conflict tolerance for new edges
    +-- FulfillmentSettings  auto-close per order kind, drift warnings
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class LedgerSettings:
    """Stock ledger settings."""

    base_currency: str = "USD"
    quantity_decimal_places: int = 9

    def __post_init__(self) -> None:
        if len(self.base_currency) != 3:
            raise ValueError(
                f"base_currency must be a 3-letter ISO code, got {self.base_currency!r}"
            )
        if not 0 <= self.quantity_decimal_places <= 9:
            raise ValueError("quantity_decimal_places must be between 0 and 9")


@dataclass(frozen=True)
class ConversionSettings:
    """Unit conversion settings."""

    conflict_tolerance: Decimal = Decimal("1e-9")

    def __post_init__(self) -> None:
        if self.conflict_tolerance < 0:
            raise ValueError("conflict_tolerance cannot be negative")


@dataclass(frozen=True)
class FulfillmentSettings:
    """Order fulfillment settings."""

    auto_close_purchase_orders: bool = True
    auto_close_sales_orders: bool = False
    warn_on_counter_drift: bool = True


@dataclass(frozen=True)
class StockConfig:
    """A complete, validated configuration set."""

    config_id: str
    version: int
    ledger: LedgerSettings = field(default_factory=LedgerSettings)
    conversion: ConversionSettings = field(default_factory=ConversionSettings)
    fulfillment: FulfillmentSettings = field(default_factory=FulfillmentSettings)
    checksum: str = ""
