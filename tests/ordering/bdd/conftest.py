"""Shared BDD fixtures and step definitions for checkout."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from discounts.discount import Discount, DiscountKind
from ordering.cart.management import add_to_cart
from pytest_bdd import given, parsers, then


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def outcome():
    """What the When step produced: placed orders, errors and the acting customer."""
    return {"placed": [], "errors": [], "customer_id": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('the catalog has "{product_id}" priced {price} with {stock:d} in stock'))
def _(storefront, product_id, price, stock):
    storefront.catalog.add_product(product_id, product_id.removeprefix("prod-").title(), price, stock=stock)


@given(
    parsers.cfparse('the discount code "{code}" takes {percent:d} percent off orders of at least {minimum}')
)
def _(storefront, code, percent, minimum):
    now = datetime.now(UTC)
    storefront.discounts.add_discount(
        Discount(
            id=f"disc-{code.lower()}",
            code=code,
            kind=DiscountKind.PERCENTAGE.value,
            value=Decimal(percent),
            min_purchase=Decimal(minimum),
            valid_from=now - timedelta(days=1),
            valid_until=now + timedelta(days=30),
        )
    )


@given(parsers.cfparse('customer "{customer_id}" has {quantity:d} of "{product_id}" in the cart'))
def _(storefront, customer_id, quantity, product_id):
    add_to_cart(customer_id, product_id, quantity)


@given("the payment gateway is unavailable")
def _(storefront):
    storefront.gateway.configure(should_succeed=False)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
def _latest_order(storefront, outcome):
    orders = storefront.orders.find_by_customer(outcome["customer_id"])
    assert orders, "no order was created"
    return orders[0]


@then(parsers.cfparse('the order is "{status}"'))
def _(storefront, outcome, status):
    assert _latest_order(storefront, outcome).status == status


@then(
    parsers.cfparse(
        "the order totals are subtotal {subtotal}, discount {discount}, "
        "shipping {shipping}, tax {tax}, total {total}"
    )
)
def _(storefront, outcome, subtotal, discount, shipping, tax, total):
    order = _latest_order(storefront, outcome)
    assert order.subtotal == Decimal(subtotal)
    assert order.discount_amount == Decimal(discount)
    assert order.shipping_cost == Decimal(shipping)
    assert order.tax_amount == Decimal(tax)
    assert order.total == Decimal(total)


@then(parsers.cfparse('"{product_id}" has {stock:d} in stock'))
def _(storefront, product_id, stock):
    assert storefront.catalog.get_product(product_id).stock == stock


@then("the shopper is redirected to the payment gateway")
def _(storefront, outcome):
    (placed,) = outcome["placed"]
    order = storefront.orders.find_by_id(placed.order_id)
    assert placed.redirect_url.endswith(order.payment_session_id)


@then(parsers.cfparse('the cart of customer "{customer_id}" is empty'))
def _(storefront, customer_id):
    assert storefront.carts.get_lines(customer_id) == []


@then(parsers.cfparse('customer "{customer_id}" has no orders'))
def _(storefront, customer_id):
    assert storefront.orders.find_by_customer(customer_id) == []


@then(parsers.cfparse('the checkout fails with "{code}"'))
def _(outcome, code):
    assert outcome["placed"] == []
    assert [exc.code for exc in outcome["errors"]] == [code]


@then("exactly one checkout succeeds")
def _(outcome):
    assert len(outcome["placed"]) == 1


@then(parsers.cfparse('the other checkout fails with "{code}"'))
def _(outcome, code):
    assert [exc.code for exc in outcome["errors"]] == [code]
