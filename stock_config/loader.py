"""
Configuration Loader (``stock_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses it into the frozen
``stock_config.schema`` dataclasses.  Runtime callers go through
``stock_config.get_active_config()`` instead of calling this directly.

Invariants enforced
-------------------
* Unknown keys are rejected with ``ValueError``; a typo never silently
  falls back to a default.
* Decimals are parsed from their string form, never through float.
* ``compute_checksum`` is deterministic for identical input.

Failure modes
-------------
* Missing file  -> ``FileNotFoundError``.
* Malformed YAML  -> ``yaml.YAMLError``.
* Missing ``config_id``/``version``  -> ``KeyError``.
* Bad values or unknown keys  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from stock_config.schema import (
    ConversionSettings,
    FulfillmentSettings,
    LedgerSettings,
    StockConfig,
)

_TOP_LEVEL_KEYS = frozenset({"config_id", "version", "ledger", "conversion", "fulfillment"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file; an empty file yields an empty dict."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_decimal(value: Any, field_name: str) -> Decimal:
    if isinstance(value, float):
        # YAML reads 1e-9 as a float; go through its repr, not binary value
        value = repr(value)
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{field_name}: cannot parse decimal from {value!r}") from exc


def _check_keys(section: str, data: dict[str, Any], allowed: set[str]) -> None:
    unknown = set(data) - allowed
    if unknown:
        raise ValueError(f"{section}: unknown keys {sorted(unknown)}")


def _parse_bool(value: Any, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{field_name}: expected true/false, got {value!r}")
    return value


def parse_ledger(data: dict[str, Any]) -> LedgerSettings:
    _check_keys("ledger", data, {"base_currency", "quantity_decimal_places"})
    defaults = LedgerSettings()
    return LedgerSettings(
        base_currency=str(data.get("base_currency", defaults.base_currency)).upper(),
        quantity_decimal_places=int(
            data.get("quantity_decimal_places", defaults.quantity_decimal_places)
        ),
    )


def parse_conversion(data: dict[str, Any]) -> ConversionSettings:
    _check_keys("conversion", data, {"conflict_tolerance"})
    if "conflict_tolerance" not in data:
        return ConversionSettings()
    return ConversionSettings(
        conflict_tolerance=parse_decimal(
            data["conflict_tolerance"], "conversion.conflict_tolerance",
        ),
    )


def parse_fulfillment(data: dict[str, Any]) -> FulfillmentSettings:
    allowed = {
        "auto_close_purchase_orders",
        "auto_close_sales_orders",
        "warn_on_counter_drift",
    }
    _check_keys("fulfillment", data, allowed)
    defaults = FulfillmentSettings()
    return FulfillmentSettings(**{
        key: _parse_bool(data.get(key, getattr(defaults, key)), f"fulfillment.{key}")
        for key in sorted(allowed)
    })


def parse_config(data: dict[str, Any]) -> StockConfig:
    """Parse a whole configuration document."""
    _check_keys("config", data, set(_TOP_LEVEL_KEYS))
    return StockConfig(
        config_id=str(data["config_id"]),
        version=int(data["version"]),
        ledger=parse_ledger(data.get("ledger") or {}),
        conversion=parse_conversion(data.get("conversion") or {}),
        fulfillment=parse_fulfillment(data.get("fulfillment") or {}),
        checksum=compute_checksum(data),
    )


def load_config(path: Path) -> StockConfig:
    return parse_config(load_yaml_file(path))
