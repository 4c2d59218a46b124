"""Integration tests for the SQLAlchemy catalog store on SQLite."""

import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest
from inventory.catalog.sql_adapter import SqlCatalogStore
from inventory.stock.reservation import InventoryGatekeeper
from shared.errors import InsufficientStock


@pytest.fixture()
def store(sql_engine):
    store = SqlCatalogStore(sql_engine)
    store.add_product("prod-tee", "Tee", "25.00", stock=3, category_id="cat-apparel")
    return store


class TestSqlCatalogStore:
    def test_get_product(self, store):
        product = store.get_product("prod-tee")
        assert product.price == Decimal("25.00")
        assert product.stock == 3
        assert product.category_id == "cat-apparel"
        assert store.get_product("missing") is None

    def test_conditional_decrement(self, store):
        assert store.conditional_decrement_stock("prod-tee", 2)
        assert not store.conditional_decrement_stock("prod-tee", 2)
        assert store.get_product("prod-tee").stock == 1

    def test_decrement_unknown_product(self, store):
        assert not store.conditional_decrement_stock("missing", 1)

    def test_increment(self, store):
        store.increment_stock("prod-tee", 4)
        assert store.get_product("prod-tee").stock == 7

    def test_increment_unknown_product_raises(self, store):
        with pytest.raises(KeyError):
            store.increment_stock("missing", 1)

    def test_gatekeeper_rolls_back_on_sql(self, store):
        store.add_product("prod-mug", "Mug", "12.00", stock=0)
        with pytest.raises(InsufficientStock):
            InventoryGatekeeper(store).reserve([("prod-tee", 1), ("prod-mug", 1)])
        assert store.get_product("prod-tee").stock == 3

    def test_concurrent_decrements_never_oversell(self, store):
        barrier = threading.Barrier(6)

        def attempt(_):
            barrier.wait()
            return store.conditional_decrement_stock("prod-tee", 1)

        with ThreadPoolExecutor(max_workers=6) as pool:
            results = list(pool.map(attempt, range(6)))

        assert results.count(True) == 3
        assert store.get_product("prod-tee").stock == 0
