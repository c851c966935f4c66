"""Tests for environment-driven settings."""

from decimal import Decimal
from pathlib import Path

import pytest

from watchmerchant.config import DEFAULT_DATA_DIR, ZERO_ADDRESS, Settings
from watchmerchant.errors import InvalidConfigError


class TestSettingsFromEnv:
    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings.cart_ttl_minutes == 120
        assert settings.tax_rate_percent == Decimal("8")
        assert settings.tax_rate == Decimal("0.08")
        assert settings.data_dir == DEFAULT_DATA_DIR
        assert settings.cart_sweep_limit == 0
        assert settings.strict_order_transitions is False
        assert settings.cors_origin == "*"
        assert settings.port == 3001
        assert settings.base_url == "http://localhost:3001"
        assert settings.merchant_contract_address == ZERO_ADDRESS
        assert settings.mandate_ttl_minutes == 15

    def test_overrides(self, temp_dir):
        settings = Settings.from_env(
            {
                "CART_TTL_MINUTES": "30",
                "TAX_RATE": "7.25",
                "WATCHMERCHANT_DATA_DIR": str(temp_dir),
                "CART_SWEEP_LIMIT": "50",
                "STRICT_ORDER_TRANSITIONS": "yes",
                "PORT": "8080",
            }
        )
        assert settings.cart_ttl_minutes == 30
        assert settings.tax_rate == Decimal("0.0725")
        assert settings.data_dir == Path(temp_dir)
        assert settings.cart_sweep_limit == 50
        assert settings.strict_order_transitions is True
        assert settings.base_url == "http://localhost:8080"

    def test_reads_os_environ(self, monkeypatch):
        monkeypatch.setenv("TAX_RATE", "10")
        assert Settings.from_env().tax_rate == Decimal("0.1")

    @pytest.mark.parametrize(
        "name,value",
        [
            ("CART_TTL_MINUTES", "soon"),
            ("CART_TTL_MINUTES", "0"),
            ("TAX_RATE", "eight"),
            ("TAX_RATE", "-1"),
            ("TAX_RATE", "NaN"),
            ("TAX_RATE", "Infinity"),
            ("TAX_RATE", "-Infinity"),
            ("PORT", "0"),
            ("STRICT_ORDER_TRANSITIONS", "maybe"),
        ],
    )
    def test_invalid_values(self, name, value):
        with pytest.raises(InvalidConfigError) as exc_info:
            Settings.from_env({name: value})
        assert name in str(exc_info.value)
