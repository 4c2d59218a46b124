"""Pydantic request/response schemas for the Ordering API.

These are external contracts, kept separate from the domain model.
Money fields are ``Decimal`` and serialize as strings ("53.82").
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from ordering.cart.cart import CartLine
from ordering.checkout.placement import Quote
from ordering.order.order import Order, OrderStatus, ShippingAddress


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    full_name: str = ""
    street: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str | None = None
    postal_code: str = Field(min_length=1)
    country: str = Field(min_length=2, max_length=2)

    def to_address(self) -> ShippingAddress:
        return ShippingAddress(
            full_name=self.full_name,
            street=self.street,
            city=self.city,
            state=self.state or "",
            postal_code=self.postal_code,
            country=self.country.upper(),
        )


class StatusResponse(BaseModel):
    status: str = "ok"


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int = Field(ge=1, default=1)
    size: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "prod-tee",
                    "quantity": 2,
                    "size": "M",
                }
            ]
        }
    }


class UpdateCartLineRequest(BaseModel):
    quantity: int = Field(ge=1)
    size: str | None = None


class CartLineSchema(BaseModel):
    product_id: str
    quantity: int
    unit_price_snapshot: Decimal
    size: str | None = None
    line_total: Decimal

    @classmethod
    def from_line(cls, line: CartLine) -> "CartLineSchema":
        return cls(
            product_id=line.product_id,
            quantity=line.quantity,
            unit_price_snapshot=line.unit_price_snapshot,
            size=line.size,
            line_total=line.line_total,
        )


class CartResponse(BaseModel):
    customer_id: str
    lines: list[CartLineSchema]
    total: Decimal


class QuoteRequest(BaseModel):
    destination_country: str = Field(min_length=2, max_length=2)
    discount_code: str | None = None


class QuoteLineSchema(BaseModel):
    product_id: str
    name: str
    quantity: int
    unit_price: Decimal
    size: str | None = None


class QuoteResponse(BaseModel):
    lines: list[QuoteLineSchema]
    subtotal: Decimal
    discount_code: str | None = None
    discount_amount: Decimal
    shipping_cost: Decimal
    tax_amount: Decimal
    total: Decimal

    @classmethod
    def from_quote(cls, quote: Quote) -> "QuoteResponse":
        breakdown = quote.breakdown
        return cls(
            lines=[
                QuoteLineSchema(
                    product_id=line.product_id,
                    name=line.name,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    size=line.size,
                )
                for line in quote.lines
            ],
            subtotal=breakdown.subtotal,
            discount_code=quote.discount.code if quote.discount else None,
            discount_amount=breakdown.discount_amount,
            shipping_cost=breakdown.shipping_cost,
            tax_amount=breakdown.tax_amount,
            total=breakdown.total,
        )


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------
class CheckoutRequest(BaseModel):
    customer_id: str
    shipping_address: AddressSchema
    discount_code: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer_id": "cust-001",
                    "shipping_address": {
                        "full_name": "Jane Doe",
                        "street": "123 Main St",
                        "city": "Springfield",
                        "state": "IL",
                        "postal_code": "62704",
                        "country": "US",
                    },
                    "discount_code": "SAVE10",
                }
            ]
        }
    }


class CheckoutResponse(BaseModel):
    order_id: str
    order_number: str
    redirect_url: str


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class OrderLineSchema(BaseModel):
    product_id: str
    name: str
    quantity: int
    unit_price: Decimal
    size: str | None = None


class AppliedDiscountSchema(BaseModel):
    discount_id: str
    code: str
    kind: str
    value: Decimal
    amount: Decimal


class OrderResponse(BaseModel):
    order_id: str
    order_number: str
    customer_id: str
    status: OrderStatus
    line_items: list[OrderLineSchema]
    shipping_address: AddressSchema
    subtotal: Decimal
    discount_applied: AppliedDiscountSchema | None = None
    shipping_cost: Decimal
    tax_amount: Decimal
    total: Decimal
    currency: str
    payment_session_id: str | None = None
    payment_reference: str | None = None
    created_at: datetime
    resolved_at: datetime | None = None

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        discount = order.discount_applied
        return cls(
            order_id=order.id,
            order_number=order.order_number,
            customer_id=order.customer_id,
            status=order.status,
            line_items=[
                OrderLineSchema(
                    product_id=item.product_id,
                    name=item.name,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    size=item.size,
                )
                for item in order.line_items
            ],
            shipping_address=AddressSchema(**order.shipping_address.to_dict()),
            subtotal=order.subtotal,
            discount_applied=(
                AppliedDiscountSchema(
                    discount_id=discount.discount_id,
                    code=discount.code,
                    kind=discount.kind,
                    value=discount.value,
                    amount=discount.amount,
                )
                if discount
                else None
            ),
            shipping_cost=order.shipping_cost,
            tax_amount=order.tax_amount,
            total=order.total,
            currency=order.currency,
            payment_session_id=order.payment_session_id,
            payment_reference=order.payment_reference,
            created_at=order.created_at,
            resolved_at=order.resolved_at,
        )


class UpdateOrderStatusRequest(BaseModel):
    status: OrderStatus
