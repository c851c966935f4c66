"""Tests for InventoryService."""

import pytest

from watchmerchant.errors import ProductNotFoundError
from watchmerchant.inventory import (
    IN_STOCK_LEAD_TIME,
    OUT_OF_STOCK_LEAD_TIME,
    InventoryService,
)


@pytest.fixture
def inventory(catalog):
    return InventoryService(catalog)


class TestInventory:
    def test_in_stock(self, inventory):
        status = inventory.check("W-001")
        assert status.available is True
        assert status.quantity == 5
        assert status.lead_time == IN_STOCK_LEAD_TIME

    def test_out_of_stock(self, inventory):
        status = inventory.check("W-003")
        assert status.available is False
        assert status.quantity == 0
        assert status.to_dict()["leadTime"] == OUT_OF_STOCK_LEAD_TIME

    def test_unknown_sku(self, inventory):
        with pytest.raises(ProductNotFoundError):
            inventory.check("NOPE")

    def test_check_many_keeps_order(self, inventory):
        assert [s.sku for s in inventory.check_many(["W-002", "W-001"])] == ["W-002", "W-001"]

    def test_can_fulfil(self, inventory):
        assert inventory.can_fulfil([("W-001", 5), ("W-002", 1)])
        assert not inventory.can_fulfil([("W-001", 6)])
        assert not inventory.can_fulfil([("NOPE", 1)])

    def test_low_stock_excludes_sold_out(self, inventory):
        assert [p.sku for p in inventory.low_stock()] == ["W-001", "W-002"]
        assert [p.sku for p in inventory.low_stock(threshold=2)] == ["W-002"]
