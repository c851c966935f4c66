"""Tests for shipping rate calculation."""

from decimal import Decimal

import pytest

from watchmerchant.errors import ShippingMethodUnavailableError
from watchmerchant.models import ShippingRate
from watchmerchant.shipping import ShippingRateCalculator


class TestRates:
    def test_base_plus_weight(self, shipping):
        rates = shipping.rates("US", 300, Decimal("200"))
        assert [(r.carrier, r.cost) for r in rates] == [
            ("USPS", Decimal("10.00")),
            ("FedEx", Decimal("26.50")),
        ]
        assert rates[0].estimated_days == "5-7 business days"

    def test_country_is_case_insensitive(self, shipping):
        assert shipping.rates("us", 300, 200) == shipping.rates("US", 300, 200)

    def test_unknown_country_uses_international(self, shipping):
        rates = shipping.rates("FR", 300, 200)
        assert len(rates) == 1
        assert rates[0].service == "International Standard"
        assert rates[0].cost == Decimal("43.00")

    def test_no_surcharge_at_threshold(self, shipping):
        rates = shipping.rates("US", 300, Decimal("5000"))
        assert rates[0].cost == Decimal("10.00")

    def test_insurance_surcharge_above_threshold(self, shipping):
        rates = shipping.rates("US", 300, Decimal("6000"))
        # 1% of the 1000 over the threshold, added to every tier
        assert [r.cost for r in rates] == [Decimal("20.00"), Decimal("36.50")]

    def test_cost_rounded_to_cents(self, shipping):
        rates = shipping.rates("US", 333, Decimal("100"))
        assert rates[1].cost == Decimal("26.67")


class TestMethodSelection:
    def test_cost_for_matches_service_substring(self, shipping):
        assert shipping.cost_for("US", 300, 200, "express") == Decimal("26.50")
        assert shipping.cost_for("US", 300, 200, "Standard") == Decimal("10.00")

    def test_cost_for_unavailable_method(self, shipping):
        with pytest.raises(ShippingMethodUnavailableError) as exc_info:
            shipping.cost_for("FR", 300, 200, "express")
        assert exc_info.value.code == "SHIPPING_METHOD_UNAVAILABLE"

    def test_supports_method(self, shipping):
        assert shipping.supports_method("US", "express")
        assert not shipping.supports_method("DE", "express")

    def test_default_cost_prefers_standard(self):
        rates = [
            ShippingRate("FedEx", "Express", Decimal("30"), "2 days"),
            ShippingRate("USPS", "Standard", Decimal("12"), "5 days"),
        ]
        assert ShippingRateCalculator.default_cost(rates) == Decimal("12")
        assert ShippingRateCalculator.default_cost(rates[:1]) == Decimal("30")
        assert ShippingRateCalculator.default_cost([]) == Decimal("0")
