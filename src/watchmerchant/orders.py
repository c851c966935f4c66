"""Order creation, status transitions and return requests."""

import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterable, Iterator

import structlog

from .cart_store import CartStore
from .errors import (
    EmptyCartError,
    InvalidOrderStatusError,
    InvalidStatusTransitionError,
    OrderNotFoundError,
    QuantityExceedsOrderedError,
    ReturnNotAllowedError,
    ReturnNotFoundError,
    SkuNotInOrderError,
)
from .models import (
    CustomerInfo,
    Order,
    OrderItem,
    OrderStatus,
    Payment,
    PaymentStatus,
    ReturnItem,
    ReturnRequest,
    ReturnStatus,
    ShippingInfo,
)
from .pricing import PricingEngine
from .shipping import ShippingRateCalculator
from .utils import generate_id, utc_now

logger = structlog.get_logger(__name__)

# Parcel weight estimate per unit when building an order
UNIT_WEIGHT_GRAMS = 150

# Used only when strict transitions are enabled
ALLOWED_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PENDING_PAYMENT: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}


class OrderStore:
    """Keyed storage for orders and return requests."""

    def __init__(self):
        self._orders: dict[str, Order] = {}
        self._returns: dict[str, ReturnRequest] = {}
        self._mutex = threading.RLock()

    @contextmanager
    def lock(self) -> Iterator[None]:
        """Hold the store lock for a lookup -> validate -> write sequence."""
        with self._mutex:
            yield

    def get_order(self, order_id: str) -> Order | None:
        with self.lock():
            return self._orders.get(order_id)

    def save_order(self, order: Order) -> None:
        with self.lock():
            self._orders[order.order_id] = order

    def list_orders(self) -> list[Order]:
        with self.lock():
            return list(self._orders.values())

    def get_return(self, return_id: str) -> ReturnRequest | None:
        with self.lock():
            return self._returns.get(return_id)

    def save_return(self, request: ReturnRequest) -> None:
        with self.lock():
            self._returns[request.return_id] = request

    def clear(self) -> None:
        with self.lock():
            self._orders.clear()
            self._returns.clear()


class OrderWorkflow:
    """Builds orders from carts and drives order/return state."""

    def __init__(
        self,
        carts: CartStore,
        pricing: PricingEngine,
        shipping: ShippingRateCalculator,
        store: OrderStore | None = None,
        strict_transitions: bool = False,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.carts = carts
        self.pricing = pricing
        self.shipping = shipping
        self.store = store or OrderStore()
        self.strict_transitions = strict_transitions
        self._clock = clock

    def create_order(
        self,
        cart_id: str,
        customer: CustomerInfo,
        shipping: ShippingInfo,
        payment_method: str,
        coupon_code: str | None = None,
    ) -> Order:
        """
        Snapshot a cart into a new pending_payment order.

        The source cart is left in place.

        Raises:
            CartNotFoundError: If the cart doesn't exist or has expired.
            EmptyCartError: If the cart has no lines.
            ShippingMethodUnavailableError: If the method isn't offered for the destination.
            ProductNotFoundError, CouponMinNotMetError, CouponNotApplicableError: From pricing.
        """
        cart = self.carts.require(cart_id)
        if not cart.items:
            raise EmptyCartError(cart_id)

        weight = UNIT_WEIGHT_GRAMS * self.carts.item_count(cart)
        shipping_cost = self.shipping.cost_for(
            shipping.address.country,
            weight,
            self.carts.total(cart),
            shipping.method,
        )
        pricing = self.pricing.quote(
            [(item.sku, item.quantity) for item in cart.items],
            shipping_cost,
            coupon_code,
        )

        now = self._clock()
        order = Order(
            order_id=generate_id(),
            cart_id=cart_id,
            status=OrderStatus.PENDING_PAYMENT,
            items=tuple(OrderItem.from_cart_item(item) for item in cart.items),
            customer=customer,
            shipping=shipping,
            pricing=pricing,
            payment=Payment(method=payment_method),
            created_at=now,
            updated_at=now,
        )
        self.store.save_order(order)

        logger.info(
            "Order created",
            order_id=order.order_id,
            cart_id=cart_id,
            total=str(pricing.total),
            coupon_code=coupon_code,
        )
        return order

    def get_order(self, order_id: str) -> Order | None:
        return self.store.get_order(order_id)

    def require_order(self, order_id: str) -> Order:
        """
        Raises:
            OrderNotFoundError: If the order doesn't exist.
        """
        order = self.store.get_order(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def list_orders(self) -> list[Order]:
        return self.store.list_orders()

    def orders_for_customer(self, email: str) -> list[Order]:
        email = email.lower()
        return [o for o in self.store.list_orders() if o.customer.email.lower() == email]

    @staticmethod
    def parse_status(status: str | OrderStatus) -> OrderStatus:
        """
        Raises:
            InvalidOrderStatusError: If the value isn't a known order status.
        """
        try:
            return OrderStatus(status)
        except ValueError:
            raise InvalidOrderStatusError(str(status), [s.value for s in OrderStatus])

    def update_status(self, order_id: str, status: str | OrderStatus) -> Order:
        """
        Move an order to a new status.

        Any known status is accepted from any current status unless strict
        transitions are enabled. Entering processing completes the payment.

        Raises:
            InvalidOrderStatusError: If the status value is unknown.
            OrderNotFoundError: If the order doesn't exist.
            InvalidStatusTransitionError: In strict mode, for a transition outside the table.
        """
        new_status = self.parse_status(status)

        with self.store.lock():
            order = self.require_order(order_id)
            previous = order.status

            if self.strict_transitions and new_status not in ALLOWED_TRANSITIONS[previous]:
                raise InvalidStatusTransitionError(previous.value, new_status.value)

            order.status = new_status
            order.updated_at = self._clock()
            if new_status == OrderStatus.PROCESSING:
                order.payment.status = PaymentStatus.COMPLETED
            self.store.save_order(order)

        logger.info(
            "Order status changed",
            order_id=order_id,
            previous=previous.value,
            status=new_status.value,
        )
        return order

    def create_return(
        self,
        order_id: str,
        items: Iterable[ReturnItem],
        customer_notes: str | None = None,
    ) -> ReturnRequest:
        """
        Open a return against a delivered order.

        Each line is checked against the order on its own; earlier returns
        against the same order are not counted.

        Raises:
            OrderNotFoundError: If the order doesn't exist.
            ReturnNotAllowedError: If the order isn't delivered.
            SkuNotInOrderError: If a line's SKU isn't in the order.
            QuantityExceedsOrderedError: If a line asks for more than was ordered.
        """
        items = tuple(items)
        order = self.require_order(order_id)

        if order.status != OrderStatus.DELIVERED:
            raise ReturnNotAllowedError(order_id, order.status.value)

        for item in items:
            ordered = order.quantity_of(item.sku)
            if ordered is None:
                raise SkuNotInOrderError(item.sku, order_id)
            if item.quantity > ordered:
                raise QuantityExceedsOrderedError(item.sku, item.quantity, ordered)

        now = self._clock()
        request = ReturnRequest(
            return_id=generate_id(),
            order_id=order_id,
            items=items,
            status=ReturnStatus.PENDING_REVIEW,
            created_at=now,
            updated_at=now,
            customer_notes=customer_notes,
        )
        self.store.save_return(request)

        logger.info("Return requested", return_id=request.return_id, order_id=order_id)
        return request

    def get_return(self, return_id: str) -> ReturnRequest | None:
        return self.store.get_return(return_id)

    def require_return(self, return_id: str) -> ReturnRequest:
        """
        Raises:
            ReturnNotFoundError: If the return request doesn't exist.
        """
        request = self.store.get_return(return_id)
        if request is None:
            raise ReturnNotFoundError(return_id)
        return request
