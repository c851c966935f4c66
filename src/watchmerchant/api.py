"""FastAPI REST API for the watch merchant."""

import time
from decimal import Decimal
from typing import Any, Literal, Optional

import structlog
from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import Settings
from .errors import ErrorKind, ProductNotFoundError, WatchMerchantError
from .logging_setup import add_context, clear_context, configure_logging
from .models import (
    Address,
    Cart,
    CustomerInfo,
    ProductFilters,
    ReturnItem,
    ShippingInfo,
)
from .orders import UNIT_WEIGHT_GRAMS
from .services import Services, build_services
from .utils import generate_id, isoformat, money_to_json, utc_now

logger = structlog.get_logger(__name__)


# --- Pydantic Schemas ---


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LineItemSchema(CamelModel):
    sku: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)


class CartCreateRequest(CamelModel):
    cart_id: Optional[str] = None
    items: list[LineItemSchema]


class CartItemUpdateRequest(CamelModel):
    quantity: int = Field(..., ge=0)


class MandateRequest(CamelModel):
    wallet_address: Optional[str] = None
    network: Optional[str] = None


class VerifyPaymentRequest(CamelModel):
    signature: Optional[str] = None
    mandate_hash: Optional[str] = None


class DestinationSchema(CamelModel):
    country: str = Field(..., min_length=2, max_length=2)
    state: Optional[str] = None
    postal_code: Optional[str] = None


class PriceQuoteRequest(CamelModel):
    items: list[LineItemSchema]
    coupon_code: Optional[str] = None
    shipping_destination: Optional[DestinationSchema] = None


class CouponValidationRequest(CamelModel):
    code: str = Field(..., min_length=1)
    subtotal: Decimal = Field(..., ge=0)


class ShippingRatesRequest(CamelModel):
    destination: DestinationSchema
    weight: Decimal = Field(..., gt=0, description="Parcel weight in grams")
    value: Decimal = Field(..., gt=0, description="Declared value")


class InventoryCheckRequest(CamelModel):
    skus: list[str] = Field(..., min_length=1)


class CustomerSchema(CamelModel):
    email: EmailStr
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    phone: Optional[str] = None


class AddressSchema(CamelModel):
    line1: str = Field(..., min_length=1)
    line2: Optional[str] = None
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    postal_code: str = Field(..., min_length=1)
    country: str = Field(..., min_length=2, max_length=2)


class ShippingSchema(CamelModel):
    address: AddressSchema
    method: str = Field(..., min_length=1)


class PaymentSchema(CamelModel):
    method: str = Field(..., min_length=1)
    token: Optional[str] = None


class OrderCreateRequest(CamelModel):
    cart_id: str = Field(..., min_length=1)
    customer: CustomerSchema
    shipping: ShippingSchema
    payment: PaymentSchema
    coupon_code: Optional[str] = None


class OrderStatusRequest(CamelModel):
    status: str = Field(..., min_length=1)


class ReturnItemSchema(CamelModel):
    sku: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)
    reason: str = Field(..., min_length=1)


class ReturnCreateRequest(CamelModel):
    order_id: Optional[str] = None
    items: list[ReturnItemSchema] = Field(..., min_length=1)
    customer_notes: Optional[str] = None


# --- Response Envelope ---


def success(data: Any = None, meta: dict | None = None, status_code: int = 200) -> JSONResponse:
    content: dict[str, Any] = {"success": True, "data": data}
    if meta:
        content["meta"] = meta
    return JSONResponse(status_code=status_code, content=content)


def error_response(
    code: str,
    message: str,
    status_code: int = 400,
    details: Any = None,
) -> JSONResponse:
    error: dict[str, Any] = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


# Map error kinds to HTTP status codes
ERROR_STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.VALIDATION: 400,
    ErrorKind.BUSINESS_RULE: 400,
    ErrorKind.CONFLICT: 409,
}


# --- Helper Functions ---


def get_services(request: Request) -> Services:
    """Get the Services bundle attached to the running app."""
    return request.app.state.services


def cart_payload(services: Services, cart: Cart) -> dict[str, Any]:
    payload = cart.to_dict()
    payload["totals"] = {
        "subtotal": money_to_json(services.carts.total(cart)),
        "itemCount": services.carts.item_count(cart),
    }
    return payload


# --- Routers ---


catalog_router = APIRouter(tags=["catalog"])
cart_router = APIRouter(prefix="/cart", tags=["cart"])
pricing_router = APIRouter(prefix="/pricing", tags=["pricing"])
shipping_router = APIRouter(prefix="/shipping", tags=["shipping"])
inventory_router = APIRouter(prefix="/inventory", tags=["inventory"])
orders_router = APIRouter(tags=["orders"])


@catalog_router.get("/products")
def list_products(
    search: Optional[str] = Query(None),
    brand: Optional[list[str]] = Query(None),
    category: Optional[list[str]] = Query(None),
    tags: Optional[list[str]] = Query(None),
    price_min: Optional[Decimal] = Query(None, alias="priceMin"),
    price_max: Optional[Decimal] = Query(None, alias="priceMax"),
    min_rating: Optional[float] = Query(None, alias="minRating"),
    in_stock: bool = Query(default=False, alias="inStock"),
    sort: Optional[Literal["price_asc", "price_desc", "rating", "newest"]] = Query(None),
    page: int = Query(default=1),
    limit: int = Query(default=20),
    services: Services = Depends(get_services),
):
    """List products with filters, sorting and pagination."""
    filters = ProductFilters(
        search=search,
        brands=brand or [],
        categories=category or [],
        tags=tags or [],
        price_min=price_min,
        price_max=price_max,
        min_rating=min_rating,
        in_stock=in_stock,
        sort=sort,
    )
    products, meta = services.catalog.list_products(filters, page=page, limit=limit)
    return success([p.to_dict() for p in products], meta={"pagination": meta.to_dict()})


@catalog_router.get("/products/slug/{slug}")
def get_product_by_slug(slug: str, services: Services = Depends(get_services)):
    product = services.catalog.get_product_by_slug(slug)
    if product is None:
        raise ProductNotFoundError(slug, field="slug")
    return success(product.to_dict())


@catalog_router.get("/products/sku/{sku}")
def get_product_by_sku(sku: str, services: Services = Depends(get_services)):
    return success(services.catalog.require_product_by_sku(sku).to_dict())


@catalog_router.get("/products/{product_id}")
def get_product(product_id: str, services: Services = Depends(get_services)):
    product = services.catalog.get_product_by_id(product_id)
    if product is None:
        raise ProductNotFoundError(product_id, field="id")
    return success(product.to_dict())


@catalog_router.get("/brands")
def list_brands(services: Services = Depends(get_services)):
    return success([b.to_dict() for b in services.catalog.list_brands()])


@catalog_router.get("/categories")
def list_categories(services: Services = Depends(get_services)):
    return success(services.catalog.list_categories())


@catalog_router.get("/collections")
def list_collections(services: Services = Depends(get_services)):
    return success(services.catalog.list_collections())


# --- Cart Endpoints ---


@cart_router.post("")
def create_or_update_cart(request: CartCreateRequest, services: Services = Depends(get_services)):
    """
    Create a cart, or replace the lines of an existing one.

    Returns 201 when no cartId was sent, 200 otherwise.
    """
    cart = services.carts.create_or_update(
        [(item.sku, item.quantity) for item in request.items],
        cart_id=request.cart_id,
    )
    return success(
        cart_payload(services, cart),
        status_code=200 if request.cart_id else 201,
    )


@cart_router.get("/{cart_id}")
def get_cart(cart_id: str, services: Services = Depends(get_services)):
    return success(cart_payload(services, services.carts.require(cart_id)))


@cart_router.put("/{cart_id}/items/{sku}")
def update_cart_item(
    cart_id: str,
    sku: str,
    request: CartItemUpdateRequest,
    services: Services = Depends(get_services),
):
    """Set a line's quantity; 0 removes the line."""
    cart = services.carts.update_item(cart_id, sku, request.quantity)
    return success(cart_payload(services, cart))


@cart_router.delete("/{cart_id}")
def delete_cart(cart_id: str, services: Services = Depends(get_services)):
    if not services.carts.delete(cart_id):
        return error_response("CART_NOT_FOUND", "Cart not found", 404)
    return success({"message": "Cart deleted successfully"})


@cart_router.post("/{cart_id}/create-mandate")
def create_mandate(
    cart_id: str,
    request: MandateRequest,
    services: Services = Depends(get_services),
):
    """Build a (mocked) payment mandate for the cart."""
    mandate = services.mandates.create_mandate(cart_id, request.wallet_address, request.network)
    return success(mandate)


@cart_router.post("/{cart_id}/verify-payment")
def verify_payment(
    cart_id: str,
    request: VerifyPaymentRequest,
    services: Services = Depends(get_services),
):
    """Accept a signed mandate (no real verification) and clear the cart."""
    result = services.mandates.verify_payment(cart_id, request.signature, request.mandate_hash)
    return success(result)


# --- Pricing / Shipping / Inventory Endpoints ---


@pricing_router.post("/quote")
def price_quote(request: PriceQuoteRequest, services: Services = Depends(get_services)):
    """
    Price a set of items.

    With a shipping destination, rates are computed from product weights and
    the standard tier (or the first one) is used for the quote.
    """
    items = [(item.sku, item.quantity) for item in request.items]
    shipping_cost = Decimal("0")
    shipping_rates = []

    if request.shipping_destination:
        weight = 0
        value = Decimal("0")
        for sku, quantity in items:
            product = services.catalog.get_product_by_sku(sku)
            weight += (product.weight if product and product.weight else UNIT_WEIGHT_GRAMS) * quantity
            value += (product.price if product else Decimal("0")) * quantity
        shipping_rates = services.shipping.rates(request.shipping_destination.country, weight, value)
        shipping_cost = services.shipping.default_cost(shipping_rates)

    pricing = services.pricing.quote(items, shipping_cost, request.coupon_code)

    data = pricing.to_dict()
    if shipping_rates:
        data["shippingOptions"] = [rate.to_dict() for rate in shipping_rates]
    return success(data)


@pricing_router.post("/validate-coupon")
def validate_coupon(request: CouponValidationRequest, services: Services = Depends(get_services)):
    check = services.pricing.validate_coupon(request.code, request.subtotal)
    return success(check.to_dict())


@shipping_router.post("/rates")
def shipping_rates(request: ShippingRatesRequest, services: Services = Depends(get_services)):
    rates = services.shipping.rates(request.destination.country, request.weight, request.value)
    return success([rate.to_dict() for rate in rates])


@inventory_router.post("/check")
def check_inventory(request: InventoryCheckRequest, services: Services = Depends(get_services)):
    return success([status.to_dict() for status in services.inventory.check_many(request.skus)])


@inventory_router.get("/low-stock")
def low_stock(
    threshold: int = Query(default=5, ge=1),
    services: Services = Depends(get_services),
):
    products = services.inventory.low_stock(threshold)
    return success([{"sku": p.sku, "name": p.name, "stock": p.stock} for p in products])


@inventory_router.get("/{sku}")
def check_sku(sku: str, services: Services = Depends(get_services)):
    return success(services.inventory.check(sku).to_dict())


# --- Order Endpoints ---


@orders_router.post("/orders")
def create_order(request: OrderCreateRequest, services: Services = Depends(get_services)):
    address = request.shipping.address
    order = services.orders.create_order(
        request.cart_id,
        CustomerInfo(
            email=str(request.customer.email),
            first_name=request.customer.first_name,
            last_name=request.customer.last_name,
            phone=request.customer.phone,
        ),
        ShippingInfo(
            address=Address(
                line1=address.line1,
                line2=address.line2,
                city=address.city,
                state=address.state,
                postal_code=address.postal_code,
                country=address.country,
            ),
            method=request.shipping.method,
        ),
        request.payment.method,
        request.coupon_code,
    )
    return success(order.to_dict(), status_code=201)


@orders_router.get("/orders")
def list_orders(
    email: Optional[str] = Query(None, description="Filter by customer email"),
    services: Services = Depends(get_services),
):
    orders = (
        services.orders.orders_for_customer(email) if email else services.orders.list_orders()
    )
    return success([o.to_dict() for o in orders], meta={"count": len(orders)})


@orders_router.get("/orders/{order_id}")
def get_order(order_id: str, services: Services = Depends(get_services)):
    return success(services.orders.require_order(order_id).to_dict())


@orders_router.patch("/orders/{order_id}/status")
def update_order_status(
    order_id: str,
    request: OrderStatusRequest,
    services: Services = Depends(get_services),
):
    order = services.orders.update_status(order_id, request.status)
    return success(order.to_dict())


@orders_router.post("/orders/{order_id}/returns")
def create_return(
    order_id: str,
    request: ReturnCreateRequest,
    services: Services = Depends(get_services),
):
    return_request = services.orders.create_return(
        order_id,
        [ReturnItem(sku=i.sku, quantity=i.quantity, reason=i.reason) for i in request.items],
        request.customer_notes,
    )
    return success(return_request.to_dict(), status_code=201)


@orders_router.get("/returns/{return_id}")
def get_return(return_id: str, services: Services = Depends(get_services)):
    return success(services.orders.require_return(return_id).to_dict())


# --- FastAPI App ---


def create_app(settings: Settings | None = None, services: Services | None = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Defaults to Settings.from_env().
        services: Pre-built services (for testing); built from settings when omitted.
    """
    configure_logging()
    if services is None:
        services = build_services(settings or Settings.from_env())
    settings = services.settings

    app = FastAPI(
        title="Watch Merchant API",
        description="Demo watch merchant API: catalog, cart, pricing, shipping and orders",
        version=__version__,
    )
    app.state.services = services
    app.state.started_at = time.monotonic()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in settings.cors_origin.split(",")],
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-API-Key", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or generate_id()
        add_context(request_id=request_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            log = logger.error if response.status_code >= 400 else logger.info
            log(
                "Request handled",
                method=request.method,
                path=request.url.path,
                status=response.status_code,
                duration_ms=duration_ms,
            )
        finally:
            clear_context()
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(WatchMerchantError)
    async def merchant_error_handler(request: Request, exc: WatchMerchantError) -> JSONResponse:
        """Map WatchMerchantError subclasses to envelope responses."""
        status_code = ERROR_STATUS_CODES.get(exc.kind, 500)
        return error_response(exc.code, str(exc), status_code, exc.details())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return error_response(
            "VALIDATION_ERROR",
            "Invalid request data",
            400,
            jsonable_encoder(exc.errors()),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        code = "NOT_FOUND" if exc.status_code == 404 else "HTTP_ERROR"
        message = "Route not found" if exc.status_code == 404 else str(exc.detail)
        return error_response(code, message, exc.status_code)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error", path=request.url.path)
        return error_response("INTERNAL_ERROR", "Internal server error", 500)

    @app.get("/")
    def root():
        return {
            "name": "Watch Merchant API",
            "version": __version__,
            "description": "Demo watch merchant API for AP2 integration",
            "baseUrl": settings.base_url,
            "endpoints": {
                name: f"/api/v1/{name}"
                for name in (
                    "products",
                    "cart",
                    "pricing",
                    "inventory",
                    "shipping",
                    "orders",
                    "brands",
                    "categories",
                    "collections",
                    "health",
                )
            },
            "documentation": {"openapi": "/openapi.json", "swagger": "/docs"},
        }

    @app.get("/api/v1/health")
    def health_check():
        """Health check endpoint."""
        return success(
            {
                "status": "healthy",
                "timestamp": isoformat(utc_now()),
                "uptime": round(time.monotonic() - app.state.started_at, 3),
            }
        )

    for router in (
        catalog_router,
        cart_router,
        pricing_router,
        shipping_router,
        inventory_router,
        orders_router,
    ):
        app.include_router(router, prefix="/api/v1")

    return app


app = create_app()
