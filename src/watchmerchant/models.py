"""Data models for watchmerchant."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from .utils import isoformat, money, money_to_json, to_decimal


class OrderStatus(str, Enum):
    PENDING_PAYMENT = "pending_payment"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class ReturnStatus(str, Enum):
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


class CouponType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    FREE_SHIPPING = "free_shipping"


# Catalog reference data


@dataclass(frozen=True)
class ProductSpecs:
    """Watch specification sheet."""

    case_size: str = ""
    case_material: str = ""
    strap_material: str = ""
    movement: str = ""
    water_resistance: str = ""
    crystal_type: str = ""
    warranty: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "caseSize": self.case_size,
            "caseMaterial": self.case_material,
            "strapMaterial": self.strap_material,
            "movement": self.movement,
            "waterResistance": self.water_resistance,
            "crystalType": self.crystal_type,
            "warranty": self.warranty,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProductSpecs":
        return cls(
            case_size=data.get("caseSize", ""),
            case_material=data.get("caseMaterial", ""),
            strap_material=data.get("strapMaterial", ""),
            movement=data.get("movement", ""),
            water_resistance=data.get("waterResistance", ""),
            crystal_type=data.get("crystalType", ""),
            warranty=data.get("warranty", ""),
        )


@dataclass(frozen=True)
class Product:
    """A catalog product. Loaded once and never mutated."""

    id: str
    sku: str
    name: str
    slug: str
    brand: str
    price: Decimal
    stock: int
    weight: int  # grams
    currency: str = "USD"
    images: tuple[str, ...] = ()
    description: str = ""
    short_description: str = ""
    categories: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    specs: ProductSpecs = field(default_factory=ProductSpecs)
    rating: float = 0.0
    review_count: int = 0
    created_at: str = ""
    updated_at: str = ""

    @property
    def image(self) -> str:
        """Primary image, or an empty string when the product has none."""
        return self.images[0] if self.images else ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "slug": self.slug,
            "brand": self.brand,
            "price": money_to_json(self.price),
            "currency": self.currency,
            "images": list(self.images),
            "description": self.description,
            "shortDescription": self.short_description,
            "stock": self.stock,
            "categories": list(self.categories),
            "specs": self.specs.to_dict(),
            "rating": self.rating,
            "reviewCount": self.review_count,
            "tags": list(self.tags),
            "weight": self.weight,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Product":
        return cls(
            id=data["id"],
            sku=data["sku"],
            name=data["name"],
            slug=data.get("slug", ""),
            brand=data["brand"],
            price=to_decimal(data["price"]),
            stock=int(data.get("stock", 0)),
            weight=int(data.get("weight", 0)),
            currency=data.get("currency", "USD"),
            images=tuple(data.get("images", [])),
            description=data.get("description", ""),
            short_description=data.get("shortDescription", ""),
            categories=tuple(data.get("categories", [])),
            tags=tuple(data.get("tags", [])),
            specs=ProductSpecs.from_dict(data.get("specs", {})),
            rating=float(data.get("rating", 0)),
            review_count=int(data.get("reviewCount", 0)),
            created_at=data.get("createdAt", ""),
            updated_at=data.get("updatedAt", ""),
        )


@dataclass(frozen=True)
class Brand:
    id: str
    name: str
    slug: str
    country: str = ""
    founded: int | None = None
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "country": self.country,
            "founded": self.founded,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Brand":
        return cls(
            id=data["id"],
            name=data["name"],
            slug=data.get("slug", ""),
            country=data.get("country", ""),
            founded=data.get("founded"),
            description=data.get("description", ""),
        )


@dataclass(frozen=True)
class Coupon:
    """A discount code. Codes compare case-insensitively."""

    code: str
    type: CouponType
    value: Decimal
    description: str = ""
    min_order_amount: Decimal | None = None
    applicable_brands: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "code": self.code,
            "type": self.type.value,
            "value": money_to_json(self.value),
            "description": self.description,
        }
        if self.min_order_amount is not None:
            result["minOrderAmount"] = money_to_json(self.min_order_amount)
        if self.applicable_brands:
            result["applicableBrands"] = list(self.applicable_brands)
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Coupon":
        minimum = data.get("minOrderAmount")
        return cls(
            code=data["code"],
            type=CouponType(data["type"]),
            value=to_decimal(data.get("value", 0)),
            description=data.get("description", ""),
            min_order_amount=to_decimal(minimum) if minimum is not None else None,
            applicable_brands=tuple(data.get("applicableBrands") or ()),
        )


@dataclass(frozen=True)
class ShippingTier:
    """One service level in a country's rate table."""

    carrier: str
    service: str
    base: Decimal
    per_kg: Decimal
    days: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ShippingTier":
        return cls(
            carrier=data["carrier"],
            service=data["service"],
            base=to_decimal(data["base"]),
            per_kg=to_decimal(data["perKg"]),
            days=data["days"],
        )


@dataclass
class ShippingRate:
    carrier: str
    service: str
    cost: Decimal
    estimated_days: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "carrier": self.carrier,
            "service": self.service,
            "cost": money_to_json(self.cost),
            "estimatedDays": self.estimated_days,
        }


@dataclass
class ProductFilters:
    """Catalog list filters. Empty/None fields don't filter."""

    search: str | None = None
    brands: list[str] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    price_min: Decimal | None = None
    price_max: Decimal | None = None
    min_rating: float | None = None
    in_stock: bool = False
    sort: str | None = None  # "price_asc" | "price_desc" | "rating" | "newest"


@dataclass
class PaginationMeta:
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "totalPages": self.total_pages,
        }


# Cart


@dataclass
class CartItem:
    """A cart line with product fields captured when the line was written."""

    sku: str
    product_id: str
    name: str
    price: Decimal
    quantity: int
    image: str = ""

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def to_dict(self) -> dict[str, Any]:
        return {
            "sku": self.sku,
            "productId": self.product_id,
            "name": self.name,
            "price": money_to_json(self.price),
            "quantity": self.quantity,
            "image": self.image,
        }

    @classmethod
    def from_product(cls, product: Product, quantity: int) -> "CartItem":
        return cls(
            sku=product.sku,
            product_id=product.id,
            name=product.name,
            price=product.price,
            quantity=quantity,
            image=product.image,
        )


@dataclass
class Cart:
    cart_id: str
    items: list[CartItem]
    created_at: datetime
    updated_at: datetime
    expires_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "cartId": self.cart_id,
            "items": [item.to_dict() for item in self.items],
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
            "expiresAt": isoformat(self.expires_at),
        }


# Pricing


@dataclass(frozen=True)
class PricingBreakdown:
    """A price quote. All amounts are rounded to cents."""

    subtotal: Decimal
    tax: Decimal
    shipping: Decimal
    discount: Decimal
    total: Decimal

    @classmethod
    def compose(
        cls,
        subtotal: Decimal,
        discount: Decimal,
        tax_rate: Decimal,
        shipping: Decimal,
    ) -> "PricingBreakdown":
        """Round each component, then derive tax and total from the rounded values."""
        subtotal = money(subtotal)
        discount = money(discount)
        shipping = money(shipping)
        tax = money((subtotal - discount) * tax_rate)
        return cls(
            subtotal=subtotal,
            tax=tax,
            shipping=shipping,
            discount=discount,
            total=money(subtotal - discount + tax + shipping),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "subtotal": money_to_json(self.subtotal),
            "tax": money_to_json(self.tax),
            "shipping": money_to_json(self.shipping),
            "discount": money_to_json(self.discount),
            "total": money_to_json(self.total),
        }


@dataclass(frozen=True)
class CouponCheck:
    valid: bool
    message: str | None = None
    coupon: Coupon | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"valid": self.valid}
        if self.message is not None:
            result["message"] = self.message
        if self.coupon is not None:
            result["coupon"] = self.coupon.to_dict()
        return result


# Orders and returns


@dataclass(frozen=True)
class CustomerInfo:
    email: str
    first_name: str
    last_name: str
    phone: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
        }
        if self.phone is not None:
            result["phone"] = self.phone
        return result


@dataclass(frozen=True)
class Address:
    line1: str
    city: str
    state: str
    postal_code: str
    country: str  # ISO 3166-1 alpha-2
    line2: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "line1": self.line1,
            "city": self.city,
            "state": self.state,
            "postalCode": self.postal_code,
            "country": self.country,
        }
        if self.line2 is not None:
            result["line2"] = self.line2
        return result


@dataclass(frozen=True)
class ShippingInfo:
    address: Address
    method: str

    def to_dict(self) -> dict[str, Any]:
        return {"address": self.address.to_dict(), "method": self.method}


@dataclass
class Payment:
    method: str
    status: PaymentStatus = PaymentStatus.PENDING

    def to_dict(self) -> dict[str, Any]:
        return {"method": self.method, "status": self.status.value}


@dataclass(frozen=True)
class OrderItem:
    sku: str
    product_id: str
    name: str
    price: Decimal
    quantity: int
    image: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "sku": self.sku,
            "productId": self.product_id,
            "name": self.name,
            "price": money_to_json(self.price),
            "quantity": self.quantity,
            "image": self.image,
        }

    @classmethod
    def from_cart_item(cls, item: CartItem) -> "OrderItem":
        return cls(
            sku=item.sku,
            product_id=item.product_id,
            name=item.name,
            price=item.price,
            quantity=item.quantity,
            image=item.image,
        )


@dataclass
class Order:
    """A placed order. Only status, payment status and updated_at change."""

    order_id: str
    cart_id: str
    status: OrderStatus
    items: tuple[OrderItem, ...]
    customer: CustomerInfo
    shipping: ShippingInfo
    pricing: PricingBreakdown
    payment: Payment
    created_at: datetime
    updated_at: datetime

    def quantity_of(self, sku: str) -> int | None:
        """Ordered quantity for a SKU, or None if the order doesn't contain it."""
        for item in self.items:
            if item.sku == sku:
                return item.quantity
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "orderId": self.order_id,
            "cartId": self.cart_id,
            "status": self.status.value,
            "items": [item.to_dict() for item in self.items],
            "customer": self.customer.to_dict(),
            "shipping": self.shipping.to_dict(),
            "pricing": self.pricing.to_dict(),
            "payment": self.payment.to_dict(),
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }


@dataclass(frozen=True)
class ReturnItem:
    sku: str
    quantity: int
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {"sku": self.sku, "quantity": self.quantity, "reason": self.reason}


@dataclass
class ReturnRequest:
    return_id: str
    order_id: str
    items: tuple[ReturnItem, ...]
    status: ReturnStatus
    created_at: datetime
    updated_at: datetime
    customer_notes: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "returnId": self.return_id,
            "orderId": self.order_id,
            "items": [item.to_dict() for item in self.items],
            "status": self.status.value,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }
        if self.customer_notes is not None:
            result["customerNotes"] = self.customer_notes
        return result


# Inventory


@dataclass(frozen=True)
class InventoryStatus:
    sku: str
    available: bool
    quantity: int
    lead_time: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "sku": self.sku,
            "available": self.available,
            "quantity": self.quantity,
            "leadTime": self.lead_time,
        }
