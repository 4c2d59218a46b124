from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from discounts.discount import Discount, DiscountKind
from ordering.cart.management import add_to_cart
from ordering.checkout.placement import place_order


@pytest.fixture()
def shop(storefront, address):
    """Storefront with a stocked catalog and the SAVE10 code."""
    storefront.catalog.add_product("prod-tee", "Tee", "25.00", stock=10)
    storefront.catalog.add_product("prod-mug", "Mug", "12.00", stock=5)
    now = datetime.now(UTC)
    storefront.discounts.add_discount(
        Discount(
            id="disc-save10",
            code="SAVE10",
            kind=DiscountKind.PERCENTAGE.value,
            value=Decimal("10"),
            min_purchase=Decimal("20.00"),
            valid_from=now - timedelta(days=1),
            valid_until=now + timedelta(days=30),
        )
    )
    return storefront


@pytest.fixture()
def place(shop, address):
    """Place an order and return it as stored, payment session included."""

    def _place(customer_id="cust-0001", lines=(("prod-tee", 2),), discount_code=None):
        for product_id, quantity in lines:
            add_to_cart(customer_id, product_id, quantity)
        placed = place_order(customer_id, address, discount_code)
        return shop.orders.find_by_id(placed.order_id)

    return _place
