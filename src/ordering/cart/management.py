"""Cart management.

Adding a product snapshots its current catalog price and merges into an
existing line with the same product and size. Stock is checked against the
line's new total quantity; this is advisory only, the authoritative check is
the conditional decrement at order placement.
"""

from decimal import Decimal

import structlog
from protean.exceptions import ValidationError

from identity.store import get_customer_store
from inventory.catalog import get_catalog_store
from ordering.cart.cart import CartLine
from ordering.cart.store import get_cart_store
from shared.errors import (
    CartLineNotFound,
    CustomerNotFound,
    InsufficientStock,
    InvalidCartLine,
    ProductNotFound,
)
from shared.money import ZERO, to_money

logger = structlog.get_logger(__name__)


def _require_customer(customer_id: str) -> None:
    if get_customer_store().get_customer(customer_id) is None:
        raise CustomerNotFound(customer_id=customer_id)


def _require_positive(quantity: int, product_id: str) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidCartLine("Quantity must be a positive integer", product_id=product_id)


def _line(product_id: str, quantity: int, price: Decimal, size: str | None) -> CartLine:
    try:
        return CartLine(product_id=product_id, quantity=quantity, unit_price_snapshot=price, size=size)
    except ValidationError as exc:
        raise InvalidCartLine("Invalid cart line", product_id=product_id, fields=exc.messages) from exc


def _check_stock(product_id: str, quantity: int) -> Decimal:
    product = get_catalog_store().get_product(product_id)
    if product is None:
        raise ProductNotFound(product_id=product_id)
    if product.stock < quantity:
        raise InsufficientStock(
            f"Only {product.stock} left in stock for product {product_id}",
            product_id=product_id,
            requested=quantity,
            available=product.stock,
        )
    return product.price


def _find(lines: list[CartLine], product_id: str, size: str | None) -> int:
    for index, line in enumerate(lines):
        if line.key == (product_id, size):
            return index
    raise CartLineNotFound(product_id=product_id, size=size)


def get_cart(customer_id: str) -> list[CartLine]:
    _require_customer(customer_id)
    return get_cart_store().get_lines(customer_id)


def cart_total(lines: list[CartLine]) -> Decimal:
    """Display total from the price snapshots; checkout reprices from the catalog."""
    return to_money(sum((line.line_total for line in lines), ZERO))


def add_to_cart(customer_id: str, product_id: str, quantity: int = 1, size: str | None = None) -> list[CartLine]:
    _require_customer(customer_id)
    _require_positive(quantity, product_id)

    store = get_cart_store()
    lines = store.get_lines(customer_id)
    try:
        index = _find(lines, product_id, size)
    except CartLineNotFound:
        index = None

    new_quantity = quantity + (lines[index].quantity if index is not None else 0)
    price = _check_stock(product_id, new_quantity)
    line = _line(product_id, new_quantity, price, size)

    if index is None:
        lines.append(line)
    else:
        lines[index] = line
    store.save_lines(customer_id, lines)

    logger.info("Item added to cart", customer_id=customer_id, product_id=product_id, quantity=new_quantity)
    return lines


def update_cart_line(customer_id: str, product_id: str, quantity: int, size: str | None = None) -> list[CartLine]:
    _require_customer(customer_id)
    _require_positive(quantity, product_id)

    store = get_cart_store()
    lines = store.get_lines(customer_id)
    index = _find(lines, product_id, size)
    price = _check_stock(product_id, quantity)
    lines[index] = _line(product_id, quantity, price, size)
    store.save_lines(customer_id, lines)
    return lines


def remove_from_cart(customer_id: str, product_id: str, size: str | None = None) -> list[CartLine]:
    _require_customer(customer_id)

    store = get_cart_store()
    lines = store.get_lines(customer_id)
    del lines[_find(lines, product_id, size)]
    store.save_lines(customer_id, lines)
    return lines


def clear_cart(customer_id: str) -> None:
    _require_customer(customer_id)
    get_cart_store().clear(customer_id)
    logger.debug("Cart cleared", customer_id=customer_id)
