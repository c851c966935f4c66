"""Custom exceptions for watchmerchant."""

from enum import Enum


class ErrorKind(str, Enum):
    """Broad failure category, mapped to a transport status by the API."""

    NOT_FOUND = "NOT_FOUND"
    VALIDATION = "VALIDATION"
    BUSINESS_RULE = "BUSINESS_RULE"
    CONFLICT = "CONFLICT"


class WatchMerchantError(Exception):
    """Base exception for all watchmerchant errors."""

    code = "MERCHANT_ERROR"
    kind = ErrorKind.BUSINESS_RULE

    def details(self) -> dict | None:
        """Structured context echoed in the error envelope."""
        return None


# Catalog / configuration


class CatalogLoadError(WatchMerchantError):
    """Raised when a reference data file is missing or malformed."""

    code = "CATALOG_LOAD_ERROR"
    kind = ErrorKind.CONFLICT

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot load reference data from {path}: {reason}")


class InvalidConfigError(WatchMerchantError):
    """Raised when an environment setting cannot be parsed."""

    code = "INVALID_CONFIG"
    kind = ErrorKind.VALIDATION

    def __init__(self, name: str, value: str, expected: str):
        self.name = name
        self.value = value
        super().__init__(f"Invalid value for {name}: {value!r} (expected {expected})")


class ProductNotFoundError(WatchMerchantError):
    """Raised when a SKU, id or slug doesn't resolve to a product."""

    code = "PRODUCT_NOT_FOUND"
    kind = ErrorKind.NOT_FOUND

    def __init__(self, key: str, field: str = "SKU"):
        self.key = key
        self.field = field
        super().__init__(f"Product with {field} {key} not found")

    def details(self) -> dict:
        return {"field": self.field, "key": self.key}


# Cart


class CartNotFoundError(WatchMerchantError):
    """Raised when a cart id is unknown or the cart has expired."""

    code = "CART_NOT_FOUND"
    kind = ErrorKind.NOT_FOUND

    def __init__(self, cart_id: str):
        self.cart_id = cart_id
        super().__init__("Cart not found or expired")


class InsufficientStockError(WatchMerchantError):
    """Raised when a requested quantity exceeds current stock."""

    code = "INSUFFICIENT_STOCK"

    def __init__(self, sku: str, name: str, requested: int, available: int):
        self.sku = sku
        self.requested = requested
        self.available = available
        super().__init__(f"Insufficient stock for {name}. Available: {available}")

    def details(self) -> dict:
        return {"sku": self.sku, "requested": self.requested, "available": self.available}


class InvalidQuantityError(WatchMerchantError):
    """Raised when a cart line quantity is below the allowed minimum."""

    code = "INVALID_QUANTITY"
    kind = ErrorKind.VALIDATION

    def __init__(self, sku: str, quantity: int, minimum: int = 1):
        self.sku = sku
        self.quantity = quantity
        super().__init__(f"Quantity for {sku} must be at least {minimum}, got {quantity}")


class EmptyCartError(WatchMerchantError):
    """Raised when an order is requested for a cart without lines."""

    code = "EMPTY_CART"

    def __init__(self, cart_id: str):
        self.cart_id = cart_id
        super().__init__("Cannot create order from empty cart")


# Pricing / shipping


class CouponMinNotMetError(WatchMerchantError):
    """Raised when the subtotal is below a coupon's minimum order amount."""

    code = "COUPON_MIN_NOT_MET"

    def __init__(self, code: str, minimum: str):
        self.coupon_code = code
        self.minimum = minimum
        super().__init__(f"Coupon requires minimum order of ${minimum}")


class CouponNotApplicableError(WatchMerchantError):
    """Raised when no line matches a brand-restricted coupon."""

    code = "COUPON_NOT_APPLICABLE"

    def __init__(self, code: str):
        self.coupon_code = code
        super().__init__("Coupon not applicable to any items in cart")


class ShippingMethodUnavailableError(WatchMerchantError):
    """Raised when no rate tier matches the requested shipping method."""

    code = "SHIPPING_METHOD_UNAVAILABLE"

    def __init__(self, method: str, country: str):
        self.method = method
        self.country = country
        super().__init__(f"Shipping method '{method}' not available for {country}")


# Orders / returns


class OrderNotFoundError(WatchMerchantError):
    """Raised when an order id doesn't exist."""

    code = "ORDER_NOT_FOUND"
    kind = ErrorKind.NOT_FOUND

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__("Order not found")


class InvalidOrderStatusError(WatchMerchantError):
    """Raised when a status value is not one of the known order statuses."""

    code = "INVALID_STATUS"
    kind = ErrorKind.VALIDATION

    def __init__(self, status: str, allowed: list[str]):
        self.status = status
        self.allowed = allowed
        super().__init__(f"Status must be one of: {', '.join(allowed)}")


class InvalidStatusTransitionError(WatchMerchantError):
    """Raised in strict mode when a status change isn't in the transition table."""

    code = "INVALID_TRANSITION"
    kind = ErrorKind.CONFLICT

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move order from {current} to {requested}")


class ReturnNotAllowedError(WatchMerchantError):
    """Raised when a return is requested for an order that isn't delivered."""

    code = "RETURN_NOT_ALLOWED"

    def __init__(self, order_id: str, status: str):
        self.order_id = order_id
        self.status = status
        super().__init__("Can only return delivered orders")


class SkuNotInOrderError(WatchMerchantError):
    """Raised when a return line names a SKU the order doesn't contain."""

    code = "SKU_NOT_IN_ORDER"

    def __init__(self, sku: str, order_id: str):
        self.sku = sku
        self.order_id = order_id
        super().__init__(f"SKU {sku} not found in order")


class QuantityExceedsOrderedError(WatchMerchantError):
    """Raised when a return line asks for more units than were ordered."""

    code = "QUANTITY_EXCEEDS_ORDERED"

    def __init__(self, sku: str, requested: int, ordered: int):
        self.sku = sku
        self.requested = requested
        self.ordered = ordered
        super().__init__(f"Cannot return more than ordered quantity for {sku}")

    def details(self) -> dict:
        return {"sku": self.sku, "requested": self.requested, "ordered": self.ordered}


class ReturnNotFoundError(WatchMerchantError):
    """Raised when a return request id doesn't exist."""

    code = "RETURN_NOT_FOUND"
    kind = ErrorKind.NOT_FOUND

    def __init__(self, return_id: str):
        self.return_id = return_id
        super().__init__("Return request not found")


# Mocked payment flow


class MissingWalletError(WatchMerchantError):
    """Raised when a mandate is requested without a wallet address."""

    code = "MISSING_WALLET"
    kind = ErrorKind.VALIDATION

    def __init__(self):
        super().__init__("Wallet address is required")


class MissingPaymentParamsError(WatchMerchantError):
    """Raised when payment verification lacks a signature or mandate hash."""

    code = "MISSING_PARAMS"
    kind = ErrorKind.VALIDATION

    def __init__(self):
        super().__init__("Signature and mandateHash are required")
