"""In-memory cart storage with sliding expiry."""

import copy
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Iterable, Iterator

import structlog

from .catalog import Catalog
from .errors import CartNotFoundError, InsufficientStockError, InvalidQuantityError
from .models import Cart, CartItem, Product
from .utils import utc_now

logger = structlog.get_logger(__name__)


class CartStore:
    """Owns every cart, keyed by cart id.

    Stock is checked on each mutation but never reserved. Expired carts are
    dropped when read and swept at the start of every mutation.
    """

    def __init__(
        self,
        catalog: Catalog,
        ttl_minutes: int,
        sweep_limit: int = 0,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize CartStore.

        Args:
            catalog: Product source for price/stock validation.
            ttl_minutes: Sliding expiry window applied on every mutation.
            sweep_limit: Max expired carts evicted per mutation (0 = all).
            clock: Returns the current time (override for testing).
        """
        self.catalog = catalog
        self.ttl = timedelta(minutes=ttl_minutes)
        self.sweep_limit = sweep_limit
        self._clock = clock
        self._carts: dict[str, Cart] = {}
        self._mutex = threading.RLock()

    @contextmanager
    def _lock(self) -> Iterator[None]:
        """Hold the store lock for a lookup -> validate -> write sequence."""
        with self._mutex:
            yield

    def __len__(self) -> int:
        with self._lock():
            return len(self._carts)

    def _is_expired(self, cart: Cart, now: datetime) -> bool:
        return cart.expires_at < now

    def _sweep(self, now: datetime) -> int:
        """Evict expired carts, at most sweep_limit of them when set."""
        expired = []
        for cart_id, cart in self._carts.items():
            if self._is_expired(cart, now):
                expired.append(cart_id)
                if self.sweep_limit and len(expired) >= self.sweep_limit:
                    break
        for cart_id in expired:
            del self._carts[cart_id]
        if expired:
            logger.debug("Swept expired carts", count=len(expired))
        return len(expired)

    def _live(self, cart_id: str, now: datetime) -> Cart | None:
        cart = self._carts.get(cart_id)
        if cart is None:
            return None
        if self._is_expired(cart, now):
            del self._carts[cart_id]
            logger.info("Cart expired", cart_id=cart_id)
            return None
        return cart

    def _validated_line(self, sku: str, quantity: int) -> Product:
        product = self.catalog.require_product_by_sku(sku)
        if quantity < 1:
            raise InvalidQuantityError(sku, quantity)
        if product.stock < quantity:
            raise InsufficientStockError(sku, product.name, quantity, product.stock)
        return product

    def _touch(self, cart: Cart, now: datetime) -> None:
        cart.updated_at = now
        cart.expires_at = now + self.ttl

    def create_or_update(
        self,
        items: Iterable[tuple[str, int]],
        cart_id: str | None = None,
    ) -> Cart:
        """
        Create a cart, or replace the lines of a live cart.

        Every line is rebuilt from the current catalog price and stock and
        validated on its own; repeated SKUs stay separate lines. Nothing is
        stored unless every line validates.

        Args:
            items: (sku, quantity) pairs.
            cart_id: Existing cart to update. Unknown or expired ids get a new cart.

        Raises:
            ProductNotFoundError: If a SKU doesn't resolve.
            InvalidQuantityError: If a quantity is below 1.
            InsufficientStockError: If a quantity exceeds current stock.
        """
        with self._lock():
            now = self._clock()
            self._sweep(now)

            lines = [
                CartItem.from_product(self._validated_line(sku, quantity), quantity)
                for sku, quantity in items
            ]

            existing = self._live(cart_id, now) if cart_id else None
            if existing is not None:
                existing.items = lines
                self._touch(existing, now)
                cart = existing
                logger.info("Cart updated", cart_id=cart.cart_id, lines=len(lines))
            else:
                cart = Cart(
                    cart_id=str(uuid.uuid4()),
                    items=lines,
                    created_at=now,
                    updated_at=now,
                    expires_at=now + self.ttl,
                )
                self._carts[cart.cart_id] = cart
                logger.info("Cart created", cart_id=cart.cart_id, lines=len(lines))

            return copy.deepcopy(cart)

    def get(self, cart_id: str) -> Cart | None:
        """Return a copy of a live cart, or None. Reading never extends expiry."""
        with self._lock():
            cart = self._live(cart_id, self._clock())
            return copy.deepcopy(cart) if cart is not None else None

    def require(self, cart_id: str) -> Cart:
        """
        Get a live cart.

        Raises:
            CartNotFoundError: If the cart doesn't exist or has expired.
        """
        cart = self.get(cart_id)
        if cart is None:
            raise CartNotFoundError(cart_id)
        return cart

    def update_item(self, cart_id: str, sku: str, quantity: int) -> Cart:
        """
        Set one line's quantity. 0 removes the line; a new SKU appends one.

        Raises:
            CartNotFoundError: If the cart doesn't exist or has expired.
            ProductNotFoundError: If the SKU doesn't resolve.
            InvalidQuantityError: If quantity is negative.
            InsufficientStockError: If quantity exceeds current stock.
        """
        with self._lock():
            now = self._clock()
            self._sweep(now)

            cart = self._live(cart_id, now)
            if cart is None:
                raise CartNotFoundError(cart_id)

            if quantity == 0:
                cart.items = [item for item in cart.items if item.sku != sku]
            else:
                product = self._validated_line(sku, quantity)
                for item in cart.items:
                    if item.sku == sku:
                        item.quantity = quantity
                        break
                else:
                    cart.items.append(CartItem.from_product(product, quantity))

            self._touch(cart, now)
            logger.info("Cart item updated", cart_id=cart_id, sku=sku, quantity=quantity)
            return copy.deepcopy(cart)

    def pop_live(self, cart_id: str) -> Cart | None:
        """Remove and return a live cart in one locked step, or None."""
        with self._lock():
            cart = self._live(cart_id, self._clock())
            if cart is None:
                return None
            del self._carts[cart_id]
        logger.info("Cart checked out", cart_id=cart_id)
        return cart

    def delete(self, cart_id: str) -> bool:
        """Remove a cart. Returns whether a cart existed."""
        with self._lock():
            existed = self._carts.pop(cart_id, None) is not None
        if existed:
            logger.info("Cart deleted", cart_id=cart_id)
        return existed

    def clear(self) -> None:
        with self._lock():
            self._carts.clear()

    @staticmethod
    def total(cart: Cart) -> Decimal:
        """Sum of line price * quantity. No tax, shipping or discount."""
        return sum((item.line_total for item in cart.items), Decimal("0"))

    @staticmethod
    def item_count(cart: Cart) -> int:
        return sum(item.quantity for item in cart.items)
