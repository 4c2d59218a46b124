"""FastAPI routes for the Ordering context: carts, checkout and orders.

Handlers are plain ``def`` functions: the services they call block on store
and gateway I/O, so FastAPI runs them in its threadpool.
"""

from fastapi import APIRouter, Query

from ordering.api.schemas import (
    AddToCartRequest,
    CartLineSchema,
    CartResponse,
    CheckoutRequest,
    CheckoutResponse,
    OrderResponse,
    QuoteRequest,
    QuoteResponse,
    StatusResponse,
    UpdateCartLineRequest,
    UpdateOrderStatusRequest,
)
from ordering.cart.management import (
    add_to_cart,
    cart_total,
    clear_cart,
    get_cart,
    remove_from_cart,
    update_cart_line,
)
from ordering.checkout.placement import place_order, quote_cart
from ordering.order.management import get_order, list_orders_for_customer, update_order_status


def _cart_response(customer_id: str, lines) -> CartResponse:
    return CartResponse(
        customer_id=customer_id,
        lines=[CartLineSchema.from_line(line) for line in lines],
        total=cart_total(lines),
    )


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


@cart_router.get("/{customer_id}", response_model=CartResponse)
def read_cart(customer_id: str) -> CartResponse:
    return _cart_response(customer_id, get_cart(customer_id))


@cart_router.post("/{customer_id}/items", status_code=201, response_model=CartResponse)
def add_item(customer_id: str, body: AddToCartRequest) -> CartResponse:
    lines = add_to_cart(customer_id, body.product_id, body.quantity, body.size)
    return _cart_response(customer_id, lines)


@cart_router.put("/{customer_id}/items/{product_id}", response_model=CartResponse)
def update_item(customer_id: str, product_id: str, body: UpdateCartLineRequest) -> CartResponse:
    lines = update_cart_line(customer_id, product_id, body.quantity, body.size)
    return _cart_response(customer_id, lines)


@cart_router.delete("/{customer_id}/items/{product_id}", response_model=CartResponse)
def remove_item(customer_id: str, product_id: str, size: str | None = None) -> CartResponse:
    lines = remove_from_cart(customer_id, product_id, size)
    return _cart_response(customer_id, lines)


@cart_router.delete("/{customer_id}", response_model=StatusResponse)
def empty_cart(customer_id: str) -> StatusResponse:
    clear_cart(customer_id)
    return StatusResponse(status="cleared")


@cart_router.post("/{customer_id}/quote", response_model=QuoteResponse)
def quote(customer_id: str, body: QuoteRequest) -> QuoteResponse:
    """Recalculate the cart total before confirming; nothing is reserved or counted."""
    result = quote_cart(customer_id, body.destination_country.upper(), body.discount_code)
    return QuoteResponse.from_quote(result)


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


@checkout_router.post("", status_code=201, response_model=CheckoutResponse)
def checkout(body: CheckoutRequest) -> CheckoutResponse:
    placed = place_order(body.customer_id, body.shipping_address.to_address(), body.discount_code)
    return CheckoutResponse(
        order_id=placed.order_id,
        order_number=placed.order_number,
        redirect_url=placed.redirect_url,
    )


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("", response_model=list[OrderResponse])
def list_orders(customer_id: str = Query(min_length=1)) -> list[OrderResponse]:
    return [OrderResponse.from_order(order) for order in list_orders_for_customer(customer_id)]


@order_router.get("/{order_id}", response_model=OrderResponse)
def read_order(order_id: str) -> OrderResponse:
    return OrderResponse.from_order(get_order(order_id))


@order_router.put("/{order_id}/status", response_model=OrderResponse)
def change_order_status(order_id: str, body: UpdateOrderStatusRequest) -> OrderResponse:
    return OrderResponse.from_order(update_order_status(order_id, body.status))
