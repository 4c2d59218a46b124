"""Checkout error taxonomy.

Every failure a caller can observe is a ``CheckoutError`` subclass with a
stable ``code`` and an HTTP status used by the API layer. Extra context
(product id, requested quantity, ...) travels in ``context`` and is rendered
alongside the code in error responses.
"""

from typing import Any


class CheckoutError(Exception):
    code = "checkout_error"
    status_code = 400
    default_message = "Checkout failed"

    def __init__(self, message: str | None = None, **context: Any) -> None:
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "detail": self.message, **self.context}


# ---------------------------------------------------------------------------
# Cart / customer
# ---------------------------------------------------------------------------
class EmptyCart(CheckoutError):
    code = "empty_cart"
    default_message = "Cannot place an order from an empty cart"


class InvalidCartLine(CheckoutError):
    code = "invalid_cart_line"
    default_message = "Invalid cart line"


class CustomerNotFound(CheckoutError):
    code = "customer_not_found"
    status_code = 404
    default_message = "Customer not found"


class CartLineNotFound(CheckoutError):
    code = "cart_line_not_found"
    status_code = 404
    default_message = "Item not in cart"


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------
class ProductNotFound(CheckoutError):
    code = "product_not_found"
    status_code = 404
    default_message = "Product not found"


class InsufficientStock(CheckoutError):
    code = "insufficient_stock"
    status_code = 409
    default_message = "Not enough stock"

    @property
    def product_id(self) -> str | None:
        return self.context.get("product_id")


# ---------------------------------------------------------------------------
# Discounts
# ---------------------------------------------------------------------------
class DiscountRejected(CheckoutError):
    code = "discount_rejected"
    status_code = 422
    default_message = "Discount code cannot be applied"


class DiscountNotFound(DiscountRejected):
    code = "discount_not_found"
    default_message = "Discount code not found"


class DiscountInactive(DiscountRejected):
    code = "discount_inactive"
    default_message = "Discount code is not active"


class DiscountExpired(DiscountRejected):
    code = "discount_expired"
    default_message = "Discount code is not valid at this time"


class DiscountExhausted(DiscountRejected):
    code = "discount_exhausted"
    default_message = "Discount code usage limit reached"


class DiscountMinimumNotMet(DiscountRejected):
    code = "discount_minimum_not_met"
    default_message = "Order subtotal is below the discount minimum"


class DiscountNotApplicable(DiscountRejected):
    code = "discount_not_applicable"
    default_message = "Discount code does not apply to any item in the cart"


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------
class PaymentSessionCreationFailed(CheckoutError):
    code = "payment_session_creation_failed"
    status_code = 502
    default_message = "Payment provider is unreachable, please try again"


class InvalidWebhookSignature(CheckoutError):
    code = "invalid_webhook_signature"
    status_code = 400
    default_message = "Invalid webhook signature"


class UnknownOrderReference(CheckoutError):
    code = "unknown_order_reference"
    status_code = 200
    default_message = "Payment event does not reference a known order"


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class OrderNotFound(CheckoutError):
    code = "order_not_found"
    status_code = 404
    default_message = "Order not found"


class InvalidStatusTransition(CheckoutError):
    code = "invalid_status_transition"
    status_code = 409
    default_message = "Order status cannot be changed"
