"""Configurable fake payment gateway for development and testing.

This adapter simulates a hosted checkout provider without any external calls.
It can be configured at runtime to succeed or fail, making it useful for:
- Automated tests with predictable outcomes
- Development without real gateway credentials

Webhooks use the Stripe wire format: a JSON event body signed with
``Stripe-Signature: t=<unix time>,v1=<hex HMAC-SHA256 of "<t>.<body>">``.
``session_event()`` produces a signed event for a session this gateway
opened, echoing the session metadata the way the real provider does.
"""

import hashlib
import hmac
import json
import threading
import time
from uuid import uuid4

from payments.gateway.events import event_from_dict
from payments.gateway.port import GatewayEvent, PaymentGateway, PaymentSession, PaymentSessionRequest
from shared.errors import InvalidWebhookSignature, PaymentSessionCreationFailed
from shared.money import to_cents


def compute_signature(payload: str, secret: str, timestamp: int) -> str:
    signed = f"{timestamp}.{payload}".encode()
    return hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()


def _parse_header(header: str) -> tuple[int | None, list[str]]:
    timestamp = None
    signatures = []
    for part in header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t" and value.isdigit():
            timestamp = int(value)
        elif key == "v1":
            signatures.append(value)
    return timestamp, signatures


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(
        self,
        webhook_secret: str = "whsec_fake",
        tolerance: int = 300,
        checkout_url: str = "https://checkout.fake-gateway.test/pay",
    ) -> None:
        self.webhook_secret = webhook_secret
        self.tolerance = tolerance
        self.checkout_url = checkout_url
        self.should_succeed: bool = True
        self.failure_reason: str = "Payment provider unavailable"
        self.calls: list[dict] = []
        self.sessions: dict[str, PaymentSessionRequest] = {}
        self._lock = threading.Lock()

    def configure(self, should_succeed: bool, failure_reason: str = "Payment provider unavailable") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------
    def create_session(self, request: PaymentSessionRequest) -> PaymentSession:
        call = {
            "method": "create_session",
            "amount": to_cents(request.amount),
            "currency": request.currency,
            "metadata": dict(request.metadata),
            "line_items": len(request.line_items),
        }
        with self._lock:
            self.calls.append(call)

        if not self.should_succeed:
            raise PaymentSessionCreationFailed(reason=self.failure_reason)

        session_id = f"cs_fake_{uuid4().hex[:16]}"
        with self._lock:
            self.sessions[session_id] = request
        return PaymentSession(session_id=session_id, redirect_url=f"{self.checkout_url}/{session_id}")

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------
    def sign(self, payload: bytes | str, timestamp: int | None = None) -> str:
        """Build a signature header for ``payload``."""
        text = payload.decode("utf-8") if isinstance(payload, bytes) else payload
        timestamp = int(time.time()) if timestamp is None else timestamp
        return f"t={timestamp},v1={compute_signature(text, self.webhook_secret, timestamp)}"

    def session_event(
        self,
        session_id: str,
        event_type: str,
        payment_status: str = "paid",
        payment_reference: str | None = None,
        event_id: str | None = None,
    ) -> tuple[bytes, str]:
        """A signed event body for a session opened by this gateway."""
        request = self.sessions[session_id]
        body = {
            "id": event_id or f"evt_fake_{uuid4().hex[:16]}",
            "type": event_type,
            "data": {
                "object": {
                    "id": session_id,
                    "object": "checkout.session",
                    "amount_total": to_cents(request.amount),
                    "currency": request.currency,
                    "metadata": dict(request.metadata),
                    "payment_status": payment_status,
                    "payment_intent": payment_reference or f"pi_fake_{uuid4().hex[:16]}",
                }
            },
        }
        payload = json.dumps(body).encode("utf-8")
        return payload, self.sign(payload)

    def construct_event(self, payload: bytes, signature: str | None) -> GatewayEvent:
        try:
            text = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidWebhookSignature("Webhook body is not valid UTF-8") from exc

        timestamp, candidates = _parse_header(signature or "")
        if timestamp is None or not candidates:
            raise InvalidWebhookSignature("Malformed signature header")

        expected = compute_signature(text, self.webhook_secret, timestamp)
        if not any(hmac.compare_digest(expected, candidate) for candidate in candidates):
            raise InvalidWebhookSignature()
        if self.tolerance and abs(time.time() - timestamp) > self.tolerance:
            raise InvalidWebhookSignature("Signature timestamp outside the tolerance zone")

        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise InvalidWebhookSignature("Webhook body is not valid JSON") from exc
        return event_from_dict(data)
