"""
stock_config -- single public entrypoint for stock configuration.

Responsibility:
    ``get_active_config()`` is the only way runtime code obtains
    configuration.  YAML loading is internal.

Architecture position:
    Configuration sits above ``stock_kernel``, which never imports it.
    ``stock_config.bridges`` translates settings into the inputs kernel
    services and module services take.

Audit relevance:
    Every successful load emits a ``STOCK_CONFIG_TRACE`` log entry with the
    config id, version and checksum.
"""

from __future__ import annotations

import logging
from pathlib import Path

from stock_config.loader import load_config
from stock_config.schema import (
    ConversionSettings,
    FulfillmentSettings,
    LedgerSettings,
    StockConfig,
)

_logger = logging.getLogger("stock_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(path: Path | None = None) -> StockConfig:
    """
    Load and validate the active configuration set.

    Args:
        path: YAML file to load.  Defaults to the bundled ``sets/default.yaml``.

    Raises:
        FileNotFoundError, ValueError, KeyError, yaml.YAMLError.
    """
    config = load_config(path or _DEFAULT_CONFIG_PATH)
    _logger.info(
        "STOCK_CONFIG_TRACE",
        extra={
            "trace_type": "STOCK_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "base_currency": config.ledger.base_currency,
        },
    )
    return config


__all__ = [
    "ConversionSettings",
    "FulfillmentSettings",
    "LedgerSettings",
    "StockConfig",
    "get_active_config",
]
