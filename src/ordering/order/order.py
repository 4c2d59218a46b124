"""Order aggregate and its status state machine.

An order is created once, in ``Pending``, with its price breakdown locked:
``total = subtotal - discount + shipping + tax`` is never recomputed. After
creation only two actors change it, and only through the order store's
compare-and-swap on ``status``: the payment webhook reconciler and
administrative fulfillment updates.

State machine:
    Pending → Processing → Shipped → Delivered
    Pending → PaymentFailed
    Pending / Processing / Shipped / PaymentFailed → Cancelled
    Delivered and Cancelled are terminal.
"""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, List, String, ValueObject
from protean.fields import Decimal as DecimalField

from discounts.discount import DiscountKind, ResolvedDiscount
from inventory.stock.reservation import StockDecrement
from ordering.domain import ordering
from shared.money import ZERO, to_money


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    PAYMENT_FAILED = "PaymentFailed"
    CANCELLED = "Cancelled"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {
        OrderStatus.PROCESSING,
        OrderStatus.PAYMENT_FAILED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.PAYMENT_FAILED: {OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

# Transitions an administrator may request; payment outcomes belong to the webhook.
_ADMIN_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.PAYMENT_FAILED: {OrderStatus.CANCELLED},
}

# States in which the order still holds reserved stock
_STOCK_HOLDING_STATES = {OrderStatus.PENDING, OrderStatus.PROCESSING}

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def can_transition(from_status: OrderStatus, to_status: OrderStatus) -> bool:
    return to_status in _VALID_TRANSITIONS[from_status]


def can_admin_transition(from_status: OrderStatus, to_status: OrderStatus) -> bool:
    return to_status in _ADMIN_TRANSITIONS.get(from_status, set())


def holds_stock(status: OrderStatus) -> bool:
    return status in _STOCK_HOLDING_STATES


def make_order_number(customer_id: str, created_at: datetime) -> str:
    """Human-readable number: last six digits of epoch millis and the customer id tail."""
    millis = (created_at - _EPOCH) // timedelta(milliseconds=1)
    return f"{millis % 1_000_000:06d}-{customer_id[-4:]}".upper()


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class OrderLineItem:
    """A line frozen at order time; ``unit_price`` never follows catalog changes."""

    product_id = Identifier(required=True)
    name = String(required=True, max_length=255, sanitize=False)
    quantity = Integer(required=True, min_value=1)
    unit_price = DecimalField(required=True, min_value=0)
    size = String(max_length=32)

    @property
    def line_total(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)


@ordering.value_object(part_of="Order")
class ShippingAddress:
    """Where the order ships, captured at checkout and immutable afterwards."""

    street = String(required=True, max_length=255, sanitize=False)
    city = String(required=True, max_length=100, sanitize=False)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)
    state = String(max_length=100, default="", sanitize=False)
    full_name = String(max_length=255, default="", sanitize=False)


@ordering.value_object(part_of="Order")
class AppliedDiscount:
    """The discount as it was resolved at placement; never re-read from the registry."""

    discount_id = Identifier(required=True)
    code = String(required=True, max_length=64)
    kind = String(required=True, choices=DiscountKind)
    value = DecimalField(required=True, min_value=0)
    amount = DecimalField(required=True, min_value=0)

    @classmethod
    def from_resolved(cls, resolved: ResolvedDiscount) -> "AppliedDiscount":
        return cls(
            discount_id=resolved.discount_id,
            code=resolved.code,
            kind=resolved.kind.value,
            value=resolved.value,
            amount=resolved.amount,
        )


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    order_number = String(required=True, max_length=32)
    customer_id = Identifier(required=True)
    status = String(
        choices=OrderStatus,
        default=OrderStatus.PENDING.value,
    )
    line_items = List(content_type=ValueObject(OrderLineItem))
    shipping_address = ValueObject(ShippingAddress, required=True)
    subtotal = DecimalField(required=True, min_value=0)
    discount_applied = ValueObject(AppliedDiscount)
    shipping_cost = DecimalField(required=True, min_value=0)
    tax_amount = DecimalField(required=True, min_value=0)
    total = DecimalField(required=True, min_value=0)
    currency = String(required=True, max_length=3)
    stock_reservations = List(content_type=ValueObject(StockDecrement))
    payment_session_id = String(max_length=255)
    payment_reference = String(max_length=255)
    created_at = DateTime(required=True)
    updated_at = DateTime(required=True)
    resolved_at = DateTime()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Order":
        """Rebuild an order from the output of ``to_dict``."""
        data = dict(data)
        data["line_items"] = [OrderLineItem(**item) for item in data.get("line_items") or []]
        data["stock_reservations"] = [StockDecrement(**d) for d in data.get("stock_reservations") or []]
        data["shipping_address"] = ShippingAddress(**data["shipping_address"])
        if data.get("discount_applied"):
            data["discount_applied"] = AppliedDiscount(**data["discount_applied"])
        return cls(**data)

    @invariant.post
    def has_line_items(self):
        if not self.line_items:
            raise ValidationError({"line_items": ["An order needs at least one line item"]})

    @invariant.post
    def total_matches_breakdown(self):
        expected = self.subtotal - self.discount_amount + self.shipping_cost + self.tax_amount
        if self.total != expected:
            raise ValidationError({"total": [f"Total {self.total} does not match its breakdown ({expected})"]})

    @property
    def discount_amount(self) -> Decimal:
        return self.discount_applied.amount if self.discount_applied else ZERO
