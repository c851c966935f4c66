"""Price quoting: subtotal, coupon discount, tax and shipping."""

from decimal import Decimal
from typing import Iterable

import structlog

from .catalog import Catalog
from .errors import CouponMinNotMetError, CouponNotApplicableError
from .models import Coupon, CouponCheck, CouponType, PricingBreakdown, Product
from .utils import money, to_decimal

logger = structlog.get_logger(__name__)

ZERO = Decimal("0")


class PricingEngine:
    """Composes subtotal, coupon discount, tax and shipping into a PricingBreakdown."""

    def __init__(self, catalog: Catalog, tax_rate: Decimal):
        """
        Args:
            catalog: Source of product prices and coupons.
            tax_rate: Flat tax rate as a fraction (0.08 for 8%).
        """
        self.catalog = catalog
        self.tax_rate = to_decimal(tax_rate)

    def quote(
        self,
        items: Iterable[tuple[str, int]],
        shipping_cost,
        coupon_code: str | None = None,
    ) -> PricingBreakdown:
        """
        Price a set of (sku, quantity) lines.

        Unknown coupon codes are ignored: no discount, no error. free_shipping
        coupons check their minimum but change neither discount nor shipping.

        Raises:
            ProductNotFoundError: If any SKU doesn't resolve.
            CouponMinNotMetError: If the subtotal is below the coupon minimum.
            CouponNotApplicableError: If a brand-restricted coupon matches no line.
        """
        lines: list[tuple[Product, int]] = [
            (self.catalog.require_product_by_sku(sku), quantity) for sku, quantity in items
        ]
        subtotal = sum((product.price * quantity for product, quantity in lines), ZERO)
        shipping = to_decimal(shipping_cost)

        discount = ZERO
        coupon = self.catalog.get_coupon(coupon_code) if coupon_code else None
        if coupon is not None:
            discount = self._discount(coupon, subtotal, lines)
        elif coupon_code:
            logger.debug("Ignoring unknown coupon", coupon_code=coupon_code)

        return PricingBreakdown.compose(
            subtotal=subtotal,
            discount=discount,
            tax_rate=self.tax_rate,
            shipping=shipping,
        )

    @staticmethod
    def _discount(coupon: Coupon, subtotal: Decimal, lines: list[tuple[Product, int]]) -> Decimal:
        if coupon.min_order_amount and subtotal < coupon.min_order_amount:
            raise CouponMinNotMetError(coupon.code, str(coupon.min_order_amount))

        base = subtotal
        if coupon.applicable_brands:
            base = sum(
                (
                    product.price * quantity
                    for product, quantity in lines
                    if product.brand in coupon.applicable_brands
                ),
                ZERO,
            )
            if base == 0:
                raise CouponNotApplicableError(coupon.code)

        if coupon.type == CouponType.PERCENTAGE:
            return money(base * coupon.value / 100)
        if coupon.type == CouponType.FIXED:
            return min(coupon.value, base)
        return ZERO

    def validate_coupon(self, code: str, subtotal) -> CouponCheck:
        """Check a code against a subtotal without raising."""
        coupon = self.catalog.get_coupon(code)
        if coupon is None:
            return CouponCheck(valid=False, message="Invalid coupon code")

        subtotal = to_decimal(subtotal)
        if coupon.min_order_amount and subtotal < coupon.min_order_amount:
            return CouponCheck(
                valid=False,
                message=f"Requires minimum order of ${coupon.min_order_amount}",
                coupon=coupon,
            )
        return CouponCheck(valid=True, coupon=coupon)
