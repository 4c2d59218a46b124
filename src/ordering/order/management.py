"""Order queries and administrative status updates.

Administrators move paid orders through fulfillment (Processing → Shipped →
Delivered) and may cancel any order that is not yet terminal. Payment
outcomes are not theirs to set; those arrive through the webhook.

Cancelling an order that still holds its stock reservation (Pending or
Processing) returns the stock. The compare-and-swap on status guarantees the
release happens at most once, even if a payment event races the cancel, and
the release is part of that transition: if it fails, the order is not cancelled.
"""

import structlog

from inventory.stock.reservation import InventoryGatekeeper
from ordering.order.order import Order, OrderStatus, can_admin_transition, holds_stock
from ordering.order.store import get_order_store
from shared.errors import InvalidStatusTransition, OrderNotFound

logger = structlog.get_logger(__name__)


def get_order(order_id: str) -> Order:
    order = get_order_store().find_by_id(order_id)
    if order is None:
        raise OrderNotFound(order_id=order_id)
    return order


def list_orders_for_customer(customer_id: str) -> list[Order]:
    return get_order_store().find_by_customer(customer_id)


def update_order_status(order_id: str, new_status: OrderStatus | str) -> Order:
    new_status = OrderStatus(new_status)
    store = get_order_store()
    order = get_order(order_id)
    current_status = OrderStatus(order.status)

    if not can_admin_transition(current_status, new_status):
        raise InvalidStatusTransition(
            f"Cannot change order status from {current_status.value} to {new_status.value}",
            order_id=order_id,
            from_status=current_status.value,
            to_status=new_status.value,
        )

    releases_stock = new_status == OrderStatus.CANCELLED and holds_stock(current_status)
    effects = (lambda: InventoryGatekeeper().release(order.stock_reservations)) if releases_stock else None

    if not store.transition_status(order_id, current_status, new_status, effects=effects):
        # Someone else moved the order first; report what it is now.
        current = get_order(order_id)
        raise InvalidStatusTransition(
            "Order status changed concurrently",
            order_id=order_id,
            from_status=current.status,
            to_status=new_status.value,
        )

    logger.info(
        "Order status updated",
        order_id=order_id,
        from_status=current_status.value,
        to_status=new_status.value,
        stock_released=releases_stock,
    )
    return get_order(order_id)
