"""Composition root: wires the core components together."""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from .cart_store import CartStore
from .catalog import Catalog
from .config import Settings
from .inventory import InventoryService
from .mandate import MandateService
from .orders import OrderStore, OrderWorkflow
from .pricing import PricingEngine
from .shipping import ShippingRateCalculator
from .utils import utc_now


@dataclass
class Services:
    settings: Settings
    catalog: Catalog
    shipping: ShippingRateCalculator
    pricing: PricingEngine
    carts: CartStore
    inventory: InventoryService
    orders: OrderWorkflow
    mandates: MandateService


def build_services(
    settings: Settings,
    catalog: Catalog | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> Services:
    """
    Build one independent set of stores and services.

    Args:
        settings: Process settings.
        catalog: Pre-built catalog; loaded from settings.data_dir when omitted.
        clock: Time source for carts and orders (override for testing).
    """
    if catalog is None:
        catalog = Catalog.from_dir(settings.data_dir)

    shipping = ShippingRateCalculator(catalog)
    pricing = PricingEngine(catalog, settings.tax_rate)
    carts = CartStore(
        catalog,
        ttl_minutes=settings.cart_ttl_minutes,
        sweep_limit=settings.cart_sweep_limit,
        clock=clock,
    )
    orders = OrderWorkflow(
        carts,
        pricing,
        shipping,
        store=OrderStore(),
        strict_transitions=settings.strict_order_transitions,
        clock=clock,
    )
    return Services(
        settings=settings,
        catalog=catalog,
        shipping=shipping,
        pricing=pricing,
        carts=carts,
        inventory=InventoryService(catalog),
        orders=orders,
        mandates=MandateService(
            carts,
            contract_address=settings.merchant_contract_address,
            ttl_minutes=settings.mandate_ttl_minutes,
        ),
    )
