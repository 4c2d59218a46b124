"""Stripe payment gateway adapter.

Opens Stripe Checkout Sessions in ``payment`` mode and verifies Stripe
webhook signatures against the raw request body. The order is charged as a
single line carrying the locked order total, so Stripe's amount always equals
the order's ``total``; the per-product lines go into the description.
"""

import json

import stripe
import structlog

from payments.gateway.events import event_from_dict
from payments.gateway.port import GatewayEvent, PaymentGateway, PaymentSession, PaymentSessionRequest
from shared.errors import InvalidWebhookSignature, PaymentSessionCreationFailed
from shared.money import to_cents

logger = structlog.get_logger(__name__)


class StripeGateway(PaymentGateway):
    """Production Stripe gateway adapter."""

    def __init__(self, api_key: str, webhook_secret: str, tolerance: int = 300) -> None:
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.tolerance = tolerance

    def _line_items(self, request: PaymentSessionRequest) -> list[dict]:
        summary = ", ".join(f"{item.quantity} x {item.name}" for item in request.line_items)
        product_data = {"name": request.description or "Order"}
        if summary:
            product_data["description"] = summary[:500]
        return [
            {
                "price_data": {
                    "currency": request.currency,
                    "unit_amount": to_cents(request.amount),
                    "product_data": product_data,
                },
                "quantity": 1,
            }
        ]

    def create_session(self, request: PaymentSessionRequest) -> PaymentSession:
        metadata = dict(request.metadata)
        try:
            session = stripe.checkout.Session.create(
                api_key=self.api_key,
                mode="payment",
                line_items=self._line_items(request),
                success_url=request.success_url,
                cancel_url=request.cancel_url,
                metadata=metadata,
                payment_intent_data={"metadata": metadata},
                client_reference_id=metadata.get("order_id"),
            )
        except stripe.StripeError as exc:
            logger.warning(
                "Stripe session creation failed",
                error=type(exc).__name__,
                message=getattr(exc, "user_message", None) or str(exc),
            )
            raise PaymentSessionCreationFailed(reason=type(exc).__name__) from exc

        return PaymentSession(session_id=session["id"], redirect_url=session["url"])

    def construct_event(self, payload: bytes, signature: str | None) -> GatewayEvent:
        try:
            text = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidWebhookSignature("Webhook body is not valid UTF-8") from exc

        try:
            stripe.WebhookSignature.verify_header(text, signature or "", self.webhook_secret, self.tolerance)
        except stripe.SignatureVerificationError as exc:
            raise InvalidWebhookSignature() from exc

        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise InvalidWebhookSignature("Webhook body is not valid JSON") from exc
        return event_from_dict(data)
