"""Loading, validating and bridging the YAML configuration set."""

from decimal import Decimal
from pathlib import Path

import pytest
import yaml

from stock_config import get_active_config
from stock_config.bridges import build_fulfillment_config, conflict_tolerance
from stock_config.loader import compute_checksum, load_config, parse_config, parse_decimal
from stock_config.schema import ConversionSettings, LedgerSettings
from stock_modules.fulfillment.config import FulfillmentConfig


def _write(tmp_path, data) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


class TestDefaultSet:

    def test_bundled_default_loads(self):
        config = get_active_config()
        assert config.config_id == "default"
        assert config.version == 1
        assert config.ledger.base_currency == "USD"
        assert config.conversion.conflict_tolerance == Decimal("0.000000001")
        assert config.fulfillment.auto_close_purchase_orders is True
        assert config.fulfillment.auto_close_sales_orders is False
        assert len(config.checksum) == 64

    def test_load_is_traced(self, captured_logs):
        config = get_active_config()
        traces = [r for r in captured_logs() if r["message"] == "STOCK_CONFIG_TRACE"]
        assert traces
        assert traces[-1]["checksum"] == config.checksum
        assert traces[-1]["config_id"] == "default"


class TestParsing:

    def test_minimal_document_uses_defaults(self, tmp_path):
        config = load_config(_write(tmp_path, {"config_id": "min", "version": 2}))
        assert config.ledger == LedgerSettings()
        assert config.conversion == ConversionSettings()

    def test_currency_upper_cased(self):
        config = parse_config({"config_id": "x", "version": 1, "ledger": {"base_currency": "eur"}})
        assert config.ledger.base_currency == "EUR"

    def test_unknown_top_level_key_rejected(self):
        with pytest.raises(ValueError, match="unknown keys"):
            parse_config({"config_id": "x", "version": 1, "policies": {}})

    def test_unknown_section_key_rejected(self):
        with pytest.raises(ValueError, match="fulfillment"):
            parse_config({
                "config_id": "x", "version": 1,
                "fulfillment": {"auto_close_everything": True},
            })

    def test_missing_version(self):
        with pytest.raises(KeyError):
            parse_config({"config_id": "x"})

    def test_non_bool_flag_rejected(self):
        with pytest.raises(ValueError, match="true/false"):
            parse_config({
                "config_id": "x", "version": 1,
                "fulfillment": {"auto_close_sales_orders": "yes"},
            })

    def test_negative_tolerance_rejected(self):
        with pytest.raises(ValueError):
            parse_config({
                "config_id": "x", "version": 1,
                "conversion": {"conflict_tolerance": "-0.1"},
            })

    def test_bad_currency_rejected(self):
        with pytest.raises(ValueError, match="ISO"):
            LedgerSettings(base_currency="DOLLARS")

    def test_float_decimal_goes_through_repr(self):
        assert parse_decimal(1e-9, "t") == Decimal("1e-09")

    def test_unparseable_decimal(self):
        with pytest.raises(ValueError, match="cannot parse"):
            parse_decimal("abc", "t")

    def test_checksum_ignores_key_order(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})


class TestBridges:

    def test_fulfillment_config_from_settings(self):
        config = parse_config({
            "config_id": "x", "version": 1,
            "fulfillment": {"auto_close_purchase_orders": False, "auto_close_sales_orders": True},
        })
        module_config = build_fulfillment_config(config)
        assert isinstance(module_config, FulfillmentConfig)
        assert module_config.auto_close_purchase_orders is False
        assert module_config.auto_close_sales_orders is True
        assert module_config.warn_on_counter_drift is True

    def test_conflict_tolerance(self):
        config = parse_config({
            "config_id": "x", "version": 1,
            "conversion": {"conflict_tolerance": "0.01"},
        })
        assert conflict_tolerance(config) == Decimal("0.01")


class TestFulfillmentConfig:

    def test_non_bool_rejected(self):
        with pytest.raises(ValueError):
            FulfillmentConfig(auto_close_purchase_orders="no")

    def test_from_dict(self):
        config = FulfillmentConfig.from_dict({"auto_close_sales_orders": True})
        assert config.auto_close_sales_orders is True
        assert config.auto_close_purchase_orders is True
