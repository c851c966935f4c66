"""Pytest fixtures for watchmerchant tests."""

import json
import os
import tempfile
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

import pytest

# Keep request/catalog logging quiet unless a test opts in
os.environ.setdefault("ENV", "test")

from watchmerchant.cart_store import CartStore  # noqa: E402
from watchmerchant.catalog import Catalog  # noqa: E402
from watchmerchant.config import Settings  # noqa: E402
from watchmerchant.orders import OrderWorkflow  # noqa: E402
from watchmerchant.pricing import PricingEngine  # noqa: E402
from watchmerchant.services import build_services  # noqa: E402
from watchmerchant.shipping import ShippingRateCalculator  # noqa: E402

PRODUCTS = [
    {
        "id": "p-1",
        "sku": "W-001",
        "name": "Test Diver Watch",
        "slug": "test-diver-watch",
        "brand": "Seiko",
        "price": 100,
        "stock": 5,
        "weight": 150,
        "images": ["/images/w-001.jpg"],
        "description": "An automatic diver for testing.",
        "categories": ["Dive", "Sport"],
        "tags": ["bestseller"],
        "rating": 4.5,
        "reviewCount": 10,
        "createdAt": "2024-01-01T00:00:00Z",
    },
    {
        "id": "p-2",
        "sku": "W-002",
        "name": "Omega Chronograph",
        "slug": "omega-chronograph",
        "brand": "Omega",
        "price": 6000,
        "stock": 2,
        "weight": 160,
        "description": "A co-axial chronograph.",
        "categories": ["Chronograph"],
        "tags": [],
        "rating": 4.9,
        "reviewCount": 3,
        "createdAt": "2024-03-01T00:00:00Z",
    },
    {
        "id": "p-3",
        "sku": "W-003",
        "name": "Classic Dress Watch",
        "slug": "classic-dress-watch",
        "brand": "Tissot",
        "price": 450.50,
        "stock": 0,
        "weight": 90,
        "description": "A slim dress watch on leather.",
        "categories": ["Dress"],
        "tags": ["classic"],
        "rating": 4.0,
        "reviewCount": 1,
        "createdAt": "2024-02-01T00:00:00Z",
    },
]

BRANDS = [
    {"id": "b-1", "name": "Seiko", "slug": "seiko", "country": "Japan", "founded": 1881},
    {"id": "b-2", "name": "Omega", "slug": "omega", "country": "Switzerland", "founded": 1848},
    {"id": "b-3", "name": "Tissot", "slug": "tissot", "country": "Switzerland", "founded": 1853},
]

COUPONS = [
    {"code": "TEN", "type": "percentage", "value": 10, "description": "10% off"},
    {
        "code": "OMEGA15",
        "type": "percentage",
        "value": 15,
        "description": "15% off Omega",
        "applicableBrands": ["Omega"],
    },
    {
        "code": "BIG50",
        "type": "fixed",
        "value": 50,
        "description": "$50 off orders over $500",
        "minOrderAmount": 500,
    },
    {
        "code": "SHIPFREE",
        "type": "free_shipping",
        "value": 0,
        "description": "Free shipping over $150",
        "minOrderAmount": 150,
    },
]

SHIPPING_RATES = {
    "US": {
        "standard": {
            "carrier": "USPS",
            "service": "Standard Shipping",
            "base": 10,
            "perKg": 0,
            "days": "5-7 business days",
        },
        "express": {
            "carrier": "FedEx",
            "service": "Express Shipping",
            "base": 25,
            "perKg": 5,
            "days": "2-3 business days",
        },
    },
    "international": {
        "standard": {
            "carrier": "DHL",
            "service": "International Standard",
            "base": 40,
            "perKg": 10,
            "days": "10-14 business days",
        },
    },
}


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def write_catalog(data_dir: Path) -> Path:
    data_dir.mkdir(parents=True, exist_ok=True)
    for filename, payload in (
        ("products.json", PRODUCTS),
        ("brands.json", BRANDS),
        ("coupons.json", COUPONS),
        ("shipping_rates.json", SHIPPING_RATES),
    ):
        (data_dir / filename).write_text(json.dumps(payload), encoding="utf-8")
    return data_dir


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def data_dir(temp_dir):
    """A data directory holding the small test catalog."""
    return write_catalog(temp_dir / "data")


@pytest.fixture
def catalog(data_dir):
    return Catalog.from_dir(data_dir)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings(data_dir):
    return Settings(
        cart_ttl_minutes=120,
        tax_rate_percent=Decimal("8"),
        data_dir=data_dir,
    )


@pytest.fixture
def shipping(catalog):
    return ShippingRateCalculator(catalog)


@pytest.fixture
def pricing(catalog):
    return PricingEngine(catalog, Decimal("0.08"))


@pytest.fixture
def carts(catalog, clock):
    return CartStore(catalog, ttl_minutes=120, clock=clock)


@pytest.fixture
def workflow(carts, pricing, shipping, clock):
    return OrderWorkflow(carts, pricing, shipping, clock=clock)


@pytest.fixture
def services(settings, catalog, clock):
    return build_services(settings, catalog=catalog, clock=clock)


@pytest.fixture
def api_client(services):
    """Test client over an app with its own stores."""
    from fastapi.testclient import TestClient

    from watchmerchant.api import create_app

    return TestClient(create_app(services=services))
