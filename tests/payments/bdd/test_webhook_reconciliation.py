"""BDD tests for payment webhook reconciliation."""

import pytest
from ordering.cart.management import add_to_cart
from ordering.checkout.placement import place_order
from payments.payment.webhook import handle_webhook
from pytest_bdd import given, parsers, scenarios, then, when
from shared.errors import CheckoutError

scenarios("features/webhook_reconciliation.feature")


@pytest.fixture()
def delivery():
    """The last event sent and what the reconciler answered."""
    return {"event": None, "outcome": None, "error": None}


def _send(delivery, payload, header):
    delivery["event"] = (payload, header)
    try:
        delivery["outcome"] = handle_webhook(payload, header)
        delivery["error"] = None
    except CheckoutError as exc:
        delivery["outcome"] = None
        delivery["error"] = exc


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse('a pending order for {quantity:d} of "{product_id}" with code "{code}"'),
    target_fixture="order",
)
def _(shop, address, quantity, product_id, code):
    add_to_cart("cust-0001", product_id, quantity)
    placed = place_order("cust-0001", address, code)
    return shop.orders.find_by_id(placed.order_id)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the gateway reports "{event_type}"'))
def _(shop, order, delivery, event_type):
    _send(delivery, *shop.gateway.session_event(order.payment_session_id, event_type))


@when("the same event is delivered again")
def _(delivery):
    _send(delivery, *delivery["event"])


@when(parsers.cfparse('a forged "{event_type}" event arrives'))
def _(shop, order, delivery, event_type):
    payload, header = shop.gateway.session_event(order.payment_session_id, event_type)
    _send(delivery, payload + b" ", header)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the webhook is acknowledged as "{outcome}"'))
def _(delivery, outcome):
    assert delivery["error"] is None
    assert delivery["outcome"].value == outcome


@then(parsers.cfparse('the webhook is rejected as "{code}"'))
def _(delivery, code):
    assert delivery["error"].code == code


@then(parsers.cfparse('the order is "{status}"'))
def _(shop, order, status):
    assert shop.orders.find_by_id(order.id).status == status


@then(parsers.cfparse('the discount "{code}" has been used {count:d} time'))
@then(parsers.cfparse('the discount "{code}" has been used {count:d} times'))
def _(shop, code, count):
    assert shop.discounts.find_by_code(code).used_count == count


@then(parsers.cfparse('"{product_id}" has {stock:d} in stock'))
def _(shop, product_id, stock):
    assert shop.catalog.get_product(product_id).stock == stock
