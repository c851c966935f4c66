"""Read-only catalog over the static reference tables."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

import structlog

from .errors import CatalogLoadError, ProductNotFoundError
from .models import (
    Brand,
    Coupon,
    PaginationMeta,
    Product,
    ProductFilters,
    ShippingTier,
)
from .utils import parse_timestamp, search_variants, slugify

logger = structlog.get_logger(__name__)

PRODUCTS_FILE = "products.json"
BRANDS_FILE = "brands.json"
COUPONS_FILE = "coupons.json"
SHIPPING_RATES_FILE = "shipping_rates.json"

INTERNATIONAL = "international"
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20

# (id, name, description, field, value) groupings computed from product data
COLLECTIONS = [
    (
        "dive-watches",
        "Dive Watches",
        "Professional dive watches with exceptional water resistance",
        "categories",
        "Dive",
    ),
    (
        "luxury-chronographs",
        "Luxury Chronographs",
        "Precision chronographs from top Swiss manufacturers",
        "categories",
        "Chronograph",
    ),
    (
        "dress-watches",
        "Dress Watches",
        "Elegant timepieces for formal occasions",
        "categories",
        "Dress",
    ),
    (
        "bestsellers",
        "Bestsellers",
        "Our most popular watches",
        "tags",
        "bestseller",
    ),
]

_UNDATED = datetime.min.replace(tzinfo=timezone.utc)


def _newest_key(product: Product) -> tuple[bool, datetime]:
    # Undated products sort last under reverse order
    if not product.created_at:
        return (False, _UNDATED)
    return (True, parse_timestamp(product.created_at))


_SORT_KEYS = {
    "price_asc": (lambda p: p.price, False),
    "price_desc": (lambda p: p.price, True),
    "rating": (lambda p: p.rating, True),
    "newest": (_newest_key, True),
}

SORT_OPTIONS = tuple(_SORT_KEYS)


def _load_json(path: Path) -> Any:
    if not path.exists():
        raise CatalogLoadError(str(path), "file not found")
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise CatalogLoadError(str(path), f"invalid JSON ({e})")


class Catalog:
    """Lookup, filtering and pagination over products and reference data."""

    def __init__(
        self,
        products: Iterable[Product],
        brands: Iterable[Brand] = (),
        coupons: Iterable[Coupon] = (),
        shipping_tables: dict[str, list[ShippingTier]] | None = None,
    ):
        self._products = list(products)
        self._brands = list(brands)
        self._coupons = {c.code.lower(): c for c in coupons}
        self._shipping_tables = shipping_tables or {}

        self._by_id = {p.id: p for p in self._products}
        self._by_sku = {p.sku: p for p in self._products}
        self._by_slug = {p.slug: p for p in self._products if p.slug}

    @classmethod
    def from_dir(cls, data_dir: Path) -> "Catalog":
        """
        Load the catalog from a directory of JSON reference files.

        Raises:
            CatalogLoadError: If a file is missing, malformed or has bad records.
        """
        data_dir = Path(data_dir)
        try:
            products = [Product.from_dict(p) for p in _load_json(data_dir / PRODUCTS_FILE)]
            for product in products:
                if product.created_at:
                    parse_timestamp(product.created_at)
            brands = [Brand.from_dict(b) for b in _load_json(data_dir / BRANDS_FILE)]
            coupons = [Coupon.from_dict(c) for c in _load_json(data_dir / COUPONS_FILE)]
            shipping_tables = {
                country: [ShippingTier.from_dict(t) for t in tiers.values()]
                for country, tiers in _load_json(data_dir / SHIPPING_RATES_FILE).items()
            }
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise CatalogLoadError(str(data_dir), f"malformed record ({e!r})")

        logger.info(
            "Catalog loaded",
            data_dir=str(data_dir),
            products=len(products),
            brands=len(brands),
            coupons=len(coupons),
            shipping_countries=len(shipping_tables),
        )
        return cls(products, brands, coupons, shipping_tables)

    # --- Product lookup ---

    def get_product_by_id(self, product_id: str) -> Product | None:
        return self._by_id.get(product_id)

    def get_product_by_sku(self, sku: str) -> Product | None:
        return self._by_sku.get(sku)

    def get_product_by_slug(self, slug: str) -> Product | None:
        return self._by_slug.get(slug)

    def require_product_by_sku(self, sku: str) -> Product:
        """
        Get a product by SKU.

        Raises:
            ProductNotFoundError: If no product has this SKU.
        """
        product = self._by_sku.get(sku)
        if product is None:
            raise ProductNotFoundError(sku)
        return product

    def get_products_by_skus(self, skus: Iterable[str]) -> list[Product]:
        wanted = set(skus)
        return [p for p in self._products if p.sku in wanted]

    def all_products(self) -> list[Product]:
        return list(self._products)

    # --- Listing ---

    def list_products(
        self,
        filters: ProductFilters | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> tuple[list[Product], PaginationMeta]:
        """
        Filter, sort and paginate products.

        Sorting is stable and applied after filtering, before pagination.
        page is clamped to >= 1 and limit to [1, 100].
        """
        filters = filters or ProductFilters()
        filtered = [p for p in self._products if self._matches(p, filters)]

        if filters.sort:
            key, reverse = _SORT_KEYS[filters.sort]
            filtered.sort(key=key, reverse=reverse)

        page = max(1, page)
        limit = min(MAX_PAGE_SIZE, max(1, limit))
        start = (page - 1) * limit

        return filtered[start:start + limit], PaginationMeta(
            page=page, limit=limit, total=len(filtered)
        )

    @staticmethod
    def _matches(product: Product, filters: ProductFilters) -> bool:
        if filters.search:
            variants = search_variants(filters.search)
            haystacks = (
                product.name.lower(),
                product.brand.lower(),
                product.description.lower(),
            )
            if not any(needle in text for text in haystacks for needle in variants):
                return False

        if filters.brands and product.brand not in filters.brands:
            return False
        if filters.categories and not set(product.categories) & set(filters.categories):
            return False
        if filters.tags and not set(product.tags) & set(filters.tags):
            return False
        if filters.price_min is not None and product.price < filters.price_min:
            return False
        if filters.price_max is not None and product.price > filters.price_max:
            return False
        if filters.min_rating is not None and product.rating < filters.min_rating:
            return False
        if filters.in_stock and product.stock <= 0:
            return False
        return True

    def list_brands(self) -> list[Brand]:
        return list(self._brands)

    def list_categories(self) -> list[dict[str, Any]]:
        """Distinct product categories in first-seen order, with product counts."""
        counts: dict[str, int] = {}
        for product in self._products:
            for category in product.categories:
                counts[category] = counts.get(category, 0) + 1
        return [
            {"name": name, "slug": slugify(name), "count": count}
            for name, count in counts.items()
        ]

    def list_collections(self) -> list[dict[str, Any]]:
        return [
            {
                "id": collection_id,
                "name": name,
                "slug": collection_id,
                "description": description,
                "productCount": sum(
                    1 for p in self._products if value in getattr(p, field_name)
                ),
            }
            for collection_id, name, description, field_name, value in COLLECTIONS
        ]

    # --- Coupons and shipping tables ---

    def get_coupon(self, code: str) -> Coupon | None:
        """Look up a coupon case-insensitively."""
        return self._coupons.get(code.lower())

    def list_coupons(self) -> list[Coupon]:
        return list(self._coupons.values())

    def shipping_table(self, country: str) -> list[ShippingTier]:
        """Rate tiers for a country, falling back to the international table."""
        tiers = self._shipping_tables.get(country.upper())
        if tiers is None:
            tiers = self._shipping_tables.get(INTERNATIONAL, [])
        return list(tiers)
