"""Tests for CartStore."""

from datetime import timedelta
from decimal import Decimal

import pytest

from watchmerchant.cart_store import CartStore
from watchmerchant.errors import (
    CartNotFoundError,
    InsufficientStockError,
    InvalidQuantityError,
    ProductNotFoundError,
)


class TestCreateOrUpdate:
    def test_create(self, carts, clock):
        cart = carts.create_or_update([("W-001", 2)])
        assert cart.cart_id
        assert len(cart.items) == 1
        item = cart.items[0]
        assert (item.sku, item.product_id, item.price, item.quantity) == (
            "W-001",
            "p-1",
            Decimal("100"),
            2,
        )
        assert item.image == "/images/w-001.jpg"
        assert cart.created_at == clock.now
        assert cart.expires_at == clock.now + timedelta(minutes=120)
        assert CartStore.total(cart) == Decimal("200")
        assert CartStore.item_count(cart) == 2

    def test_each_create_gets_new_id(self, carts):
        first = carts.create_or_update([("W-001", 1)])
        second = carts.create_or_update([("W-001", 1)])
        assert first.cart_id != second.cart_id
        assert len(carts) == 2

    def test_empty_cart_allowed(self, carts):
        cart = carts.create_or_update([])
        assert cart.items == []
        assert carts.get(cart.cart_id) is not None

    def test_insufficient_stock_stores_nothing(self, carts):
        with pytest.raises(InsufficientStockError) as exc_info:
            carts.create_or_update([("W-001", 1), ("W-002", 3)])
        assert str(exc_info.value) == "Insufficient stock for Omega Chronograph. Available: 2"
        assert exc_info.value.details() == {"sku": "W-002", "requested": 3, "available": 2}
        assert len(carts) == 0

    def test_out_of_stock_product(self, carts):
        with pytest.raises(InsufficientStockError):
            carts.create_or_update([("W-003", 1)])

    def test_unknown_sku(self, carts):
        with pytest.raises(ProductNotFoundError):
            carts.create_or_update([("NOPE", 1)])

    def test_zero_quantity(self, carts):
        with pytest.raises(InvalidQuantityError):
            carts.create_or_update([("W-001", 0)])

    def test_duplicate_skus_stay_separate_lines(self, carts):
        cart = carts.create_or_update([("W-001", 2), ("W-001", 2)])
        assert [(i.sku, i.quantity) for i in cart.items] == [("W-001", 2), ("W-001", 2)]

    def test_duplicate_skus_checked_line_by_line(self, carts):
        # Stock is 5; each line of 3 fits on its own
        cart = carts.create_or_update([("W-001", 3), ("W-001", 3)])
        assert carts.item_count(cart) == 6

    def test_invalid_duplicate_line_rejected(self, carts):
        with pytest.raises(InvalidQuantityError):
            carts.create_or_update([("W-001", 2), ("W-001", 0)])
        assert len(carts) == 0

    def test_update_replaces_lines(self, carts, clock):
        cart = carts.create_or_update([("W-001", 1)])
        clock.advance(minutes=30)

        updated = carts.create_or_update([("W-002", 1)], cart_id=cart.cart_id)
        assert updated.cart_id == cart.cart_id
        assert [i.sku for i in updated.items] == ["W-002"]
        assert updated.created_at == cart.created_at
        assert updated.updated_at == clock.now
        assert updated.expires_at == clock.now + timedelta(minutes=120)

    def test_failed_update_leaves_cart_unchanged(self, carts):
        cart = carts.create_or_update([("W-001", 1)])
        with pytest.raises(InsufficientStockError):
            carts.create_or_update([("W-001", 6)], cart_id=cart.cart_id)
        assert carts.get(cart.cart_id).items[0].quantity == 1

    def test_unknown_cart_id_creates_new_cart(self, carts):
        cart = carts.create_or_update([("W-001", 1)], cart_id="does-not-exist")
        assert cart.cart_id != "does-not-exist"


class TestReadAndExpiry:
    def test_get_returns_copy(self, carts):
        cart = carts.create_or_update([("W-001", 1)])
        fetched = carts.get(cart.cart_id)
        fetched.items[0].quantity = 5
        assert carts.get(cart.cart_id).items[0].quantity == 1

    def test_get_is_idempotent(self, carts, clock):
        cart = carts.create_or_update([("W-001", 1)])
        clock.advance(minutes=60)
        first = carts.get(cart.cart_id)
        second = carts.get(cart.cart_id)
        assert first == second
        assert first.expires_at == cart.expires_at

    def test_get_unknown(self, carts):
        assert carts.get("missing") is None
        with pytest.raises(CartNotFoundError):
            carts.require("missing")

    def test_live_at_exact_expiry(self, carts, clock):
        cart = carts.create_or_update([("W-001", 1)])
        clock.advance(minutes=120)
        assert carts.get(cart.cart_id) is not None

    def test_expired_cart_is_gone(self, carts, clock):
        cart = carts.create_or_update([("W-001", 1)])
        clock.advance(minutes=121)
        assert carts.get(cart.cart_id) is None
        assert len(carts) == 0

    def test_mutation_extends_expiry(self, carts, clock):
        cart = carts.create_or_update([("W-001", 1)])
        clock.advance(minutes=100)
        carts.update_item(cart.cart_id, "W-001", 2)
        clock.advance(minutes=100)
        assert carts.get(cart.cart_id) is not None

    def test_expired_id_creates_new_cart(self, carts, clock):
        cart = carts.create_or_update([("W-001", 1)])
        clock.advance(hours=3)
        fresh = carts.create_or_update([("W-001", 1)], cart_id=cart.cart_id)
        assert fresh.cart_id != cart.cart_id

    def test_mutation_sweeps_expired_carts(self, carts, clock):
        carts.create_or_update([("W-001", 1)])
        carts.create_or_update([("W-001", 1)])
        clock.advance(hours=3)
        carts.create_or_update([("W-001", 1)])
        assert len(carts) == 1

    def test_bounded_sweep(self, catalog, clock):
        store = CartStore(catalog, ttl_minutes=120, sweep_limit=1, clock=clock)
        store.create_or_update([("W-001", 1)])
        store.create_or_update([("W-001", 1)])
        clock.advance(hours=3)
        store.create_or_update([("W-001", 1)])
        assert len(store) == 2


class TestUpdateItem:
    def test_change_quantity(self, carts):
        cart = carts.create_or_update([("W-001", 1)])
        updated = carts.update_item(cart.cart_id, "W-001", 3)
        assert updated.items[0].quantity == 3

    def test_zero_removes_line(self, carts):
        cart = carts.create_or_update([("W-001", 1), ("W-002", 1)])
        updated = carts.update_item(cart.cart_id, "W-001", 0)
        assert [i.sku for i in updated.items] == ["W-002"]

    def test_zero_for_missing_line_is_noop(self, carts):
        cart = carts.create_or_update([("W-001", 1)])
        updated = carts.update_item(cart.cart_id, "W-002", 0)
        assert [i.sku for i in updated.items] == ["W-001"]

    def test_new_sku_appends_line(self, carts):
        cart = carts.create_or_update([("W-001", 1)])
        updated = carts.update_item(cart.cart_id, "W-002", 2)
        assert [(i.sku, i.quantity) for i in updated.items] == [("W-001", 1), ("W-002", 2)]

    def test_exceeding_stock(self, carts):
        cart = carts.create_or_update([("W-001", 1)])
        with pytest.raises(InsufficientStockError):
            carts.update_item(cart.cart_id, "W-001", 6)
        assert carts.get(cart.cart_id).items[0].quantity == 1

    def test_negative_quantity(self, carts):
        cart = carts.create_or_update([("W-001", 1)])
        with pytest.raises(InvalidQuantityError):
            carts.update_item(cart.cart_id, "W-001", -1)

    def test_unknown_cart(self, carts):
        with pytest.raises(CartNotFoundError):
            carts.update_item("missing", "W-001", 1)


class TestDelete:
    def test_delete(self, carts):
        cart = carts.create_or_update([("W-001", 1)])
        assert carts.delete(cart.cart_id) is True
        assert carts.get(cart.cart_id) is None
        assert carts.delete(cart.cart_id) is False

    def test_clear(self, carts):
        carts.create_or_update([("W-001", 1)])
        carts.clear()
        assert len(carts) == 0

    def test_pop_live(self, carts):
        cart = carts.create_or_update([("W-001", 1)])
        popped = carts.pop_live(cart.cart_id)
        assert popped.cart_id == cart.cart_id
        assert carts.get(cart.cart_id) is None
        assert carts.pop_live(cart.cart_id) is None

    def test_pop_live_expired(self, carts, clock):
        cart = carts.create_or_update([("W-001", 1)])
        clock.advance(minutes=121)
        assert carts.pop_live(cart.cart_id) is None
        assert len(carts) == 0

    def test_pop_live_unknown(self, carts):
        assert carts.pop_live("missing") is None
