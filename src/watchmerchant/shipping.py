"""Shipping rate calculation from destination, parcel weight and declared value."""

from decimal import Decimal

from .catalog import Catalog
from .errors import ShippingMethodUnavailableError
from .models import ShippingRate
from .utils import money, to_decimal

INSURANCE_THRESHOLD = Decimal("5000")
INSURANCE_RATE = Decimal("0.01")
DEFAULT_SERVICE = "standard"


class ShippingRateCalculator:
    """Derives carrier/service/cost/ETA options from the catalog's rate tables."""

    def __init__(self, catalog: Catalog):
        self.catalog = catalog

    def rates(self, country: str, weight_grams: int | Decimal, declared_value) -> list[ShippingRate]:
        """
        Price every service tier for a parcel.

        cost = base + perKg * kg, rounded to cents. Declared values above the
        insurance threshold add 1% of the excess to every tier.
        """
        weight_kg = to_decimal(weight_grams) / 1000
        declared_value = to_decimal(declared_value)

        surcharge = Decimal("0")
        if declared_value > INSURANCE_THRESHOLD:
            surcharge = (declared_value - INSURANCE_THRESHOLD) * INSURANCE_RATE

        rates = []
        for tier in self.catalog.shipping_table(country):
            cost = money(tier.base + tier.per_kg * weight_kg)
            if surcharge:
                cost = money(cost + surcharge)
            rates.append(
                ShippingRate(
                    carrier=tier.carrier,
                    service=tier.service,
                    cost=cost,
                    estimated_days=tier.days,
                )
            )
        return rates

    def cost_for(self, country: str, weight_grams, declared_value, method: str) -> Decimal:
        """
        Cost of the first tier whose service name contains `method` (case-insensitive).

        Raises:
            ShippingMethodUnavailableError: If no tier matches.
        """
        needle = method.lower()
        for rate in self.rates(country, weight_grams, declared_value):
            if needle in rate.service.lower():
                return rate.cost
        raise ShippingMethodUnavailableError(method, country)

    def supports_method(self, country: str, method: str) -> bool:
        needle = method.lower()
        return any(needle in tier.service.lower() for tier in self.catalog.shipping_table(country))

    @staticmethod
    def default_cost(rates: list[ShippingRate]) -> Decimal:
        """Standard tier cost, else the first tier's, else zero."""
        for rate in rates:
            if DEFAULT_SERVICE in rate.service.lower():
                return rate.cost
        return rates[0].cost if rates else Decimal("0")
