"""Stock availability checks over the catalog."""

from typing import Iterable

from .catalog import Catalog
from .models import InventoryStatus, Product

IN_STOCK_LEAD_TIME = "In Stock - Ships within 1-2 business days"
OUT_OF_STOCK_LEAD_TIME = "Out of Stock - 4-6 weeks"
LOW_STOCK_THRESHOLD = 5


class InventoryService:
    def __init__(self, catalog: Catalog):
        self.catalog = catalog

    def check(self, sku: str) -> InventoryStatus:
        """
        Availability for one SKU.

        Raises:
            ProductNotFoundError: If the SKU doesn't resolve.
        """
        product = self.catalog.require_product_by_sku(sku)
        in_stock = product.stock > 0
        return InventoryStatus(
            sku=sku,
            available=in_stock,
            quantity=product.stock,
            lead_time=IN_STOCK_LEAD_TIME if in_stock else OUT_OF_STOCK_LEAD_TIME,
        )

    def check_many(self, skus: Iterable[str]) -> list[InventoryStatus]:
        return [self.check(sku) for sku in skus]

    def can_fulfil(self, items: Iterable[tuple[str, int]]) -> bool:
        """True when every (sku, quantity) line exists and is covered by stock."""
        for sku, quantity in items:
            product = self.catalog.get_product_by_sku(sku)
            if product is None or product.stock < quantity:
                return False
        return True

    def low_stock(self, threshold: int = LOW_STOCK_THRESHOLD) -> list[Product]:
        return [p for p in self.catalog.all_products() if 0 < p.stock <= threshold]
