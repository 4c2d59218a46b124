import pytest


@pytest.fixture()
def products(catalog):
    """A small catalog: a tee at $25.00, a mug at $12.00 and a single poster."""
    catalog.add_product("prod-tee", "Tee", "25.00", stock=10, category_id="cat-apparel")
    catalog.add_product("prod-mug", "Mug", "12.00", stock=5, category_id="cat-kitchen")
    catalog.add_product("prod-poster", "Poster", "30.00", stock=1, category_id="cat-prints")
    return catalog


@pytest.fixture()
def fill_cart(storefront):
    """Put lines straight into a customer's cart via the cart service."""
    from ordering.cart.management import add_to_cart

    def _fill(customer_id, *lines):
        for product_id, quantity in lines:
            add_to_cart(customer_id, product_id, quantity)

    return _fill
