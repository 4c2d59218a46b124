import os
from pathlib import Path
from types import SimpleNamespace

import pytest

# Settings are read lazily, but importing ``app`` reads them at collection time.
os.environ["STOREFRONT_ENV"] = "test"
# Logging is configured by shared.logging, not by Domain.init().
os.environ["PROTEAN_NO_AUTO_LOGGING"] = "1"
os.environ.pop("DATABASE_URL", None)
os.environ.pop("STRIPE_SECRET_KEY", None)

WEBHOOK_SECRET = "whsec_test_secret"

_TEST_ENV = {
    "STOREFRONT_ENV": "test",
    "DATABASE_URL": "",
    "CURRENCY": "usd",
    "TAX_RATE": "0.085",
    "TAX_BASE": "post_discount",
    "SHIPPING_DOMESTIC_COUNTRY": "US",
    "SHIPPING_DOMESTIC_RATE": "4.99",
    "SHIPPING_REGIONAL_COUNTRIES": "CA,MX",
    "SHIPPING_REGIONAL_RATE": "9.99",
    "SHIPPING_INTERNATIONAL_RATE": "14.99",
    "SHIPPING_PER_UNIT": "0.00",
    "FREE_SHIPPING_THRESHOLD": "",
    "CHECKOUT_SUCCESS_URL": "http://shop.test/checkout/success",
    "CHECKOUT_CANCEL_URL": "http://shop.test/checkout/cancel",
    "STRIPE_SECRET_KEY": "",
    "STRIPE_WEBHOOK_SECRET": WEBHOOK_SECRET,
    "WEBHOOK_TOLERANCE_SECONDS": "300",
}


def pytest_sessionstart(session):
    """Initialize the domains and activate one, so elements can reach ``current_domain``."""
    from discounts.domain import discounts
    from inventory.domain import inventory
    from ordering.domain import ordering

    for domain in (inventory, discounts, ordering):
        domain.init(traverse=False)
    ordering.domain_context().push()


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/bdd/" in test_path:
            item.add_marker(pytest.mark.bdd)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(autouse=True)
def storefront_env(monkeypatch):
    """Pin every setting a test might depend on, then re-read settings."""
    from shared.config import reset_settings

    for name, value in _TEST_ENV.items():
        monkeypatch.setenv(name, value)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture(autouse=True)
def run_around_tests():
    """Fixture to reset every adapter factory after every test"""
    yield

    from discounts.registry import reset_discount_registry
    from identity.store import reset_customer_store
    from inventory.catalog import reset_catalog_store
    from ordering.cart.store import reset_cart_store
    from ordering.order.store import reset_order_store
    from payments.gateway import reset_gateway

    reset_customer_store()
    reset_catalog_store()
    reset_discount_registry()
    reset_cart_store()
    reset_order_store()
    reset_gateway()


# ---------------------------------------------------------------------------
# In-memory adapters, installed into the factories
# ---------------------------------------------------------------------------
@pytest.fixture()
def customers():
    from identity.store import set_customer_store
    from identity.store.memory_adapter import MemoryCustomerStore
    from identity.store.port import Customer

    store = MemoryCustomerStore()
    store.add_customer(Customer(id="cust-0001", name="Ada Buyer", email="ada@example.com"))
    store.add_customer(Customer(id="cust-0002", name="Bo Shopper", email="bo@example.com"))
    set_customer_store(store)
    return store


@pytest.fixture()
def catalog():
    from inventory.catalog import set_catalog_store
    from inventory.catalog.memory_adapter import MemoryCatalogStore

    store = MemoryCatalogStore()
    set_catalog_store(store)
    return store


@pytest.fixture()
def discounts():
    from discounts.registry import set_discount_registry
    from discounts.registry.memory_adapter import MemoryDiscountRegistry

    registry = MemoryDiscountRegistry()
    set_discount_registry(registry)
    return registry


@pytest.fixture()
def carts():
    from ordering.cart.store import set_cart_store
    from ordering.cart.store.memory_adapter import MemoryCartStore

    store = MemoryCartStore()
    set_cart_store(store)
    return store


@pytest.fixture()
def orders():
    from ordering.order.store import set_order_store
    from ordering.order.store.memory_adapter import MemoryOrderStore

    store = MemoryOrderStore()
    set_order_store(store)
    return store


@pytest.fixture()
def gateway():
    from payments.gateway import set_gateway
    from payments.gateway.fake_adapter import FakeGateway

    fake = FakeGateway(webhook_secret=WEBHOOK_SECRET)
    set_gateway(fake)
    return fake


@pytest.fixture()
def storefront(customers, catalog, discounts, carts, orders, gateway):
    """All collaborators of checkout, wired to fresh in-memory adapters."""
    return SimpleNamespace(
        customers=customers,
        catalog=catalog,
        discounts=discounts,
        carts=carts,
        orders=orders,
        gateway=gateway,
    )


@pytest.fixture()
def address():
    from ordering.order.order import ShippingAddress

    return ShippingAddress(
        full_name="Ada Buyer",
        street="1 Main St",
        city="Springfield",
        state="IL",
        postal_code="62704",
        country="US",
    )


@pytest.fixture()
def sql_engine(tmp_path):
    """A file-backed SQLite database with the storefront schema."""
    from shared.db import drop_db, make_engine, setup_db

    engine = make_engine(f"sqlite:///{tmp_path / 'storefront.db'}")
    setup_db(engine)
    yield engine
    drop_db(engine)
    engine.dispose()
