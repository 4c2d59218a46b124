"""Decoding of Stripe-format checkout events.

Both adapters speak the Stripe event shape: ``{"id", "type", "data": {"object": ...}}``
with a Checkout Session as the object. A completed session only counts as
paid when its ``payment_status`` says so; delayed methods (bank debits) are
resolved by the later ``async_payment_*`` events.
"""

from typing import Any

from payments.gateway.port import GatewayEvent, PaymentEventKind

SESSION_COMPLETED = "checkout.session.completed"
ASYNC_PAYMENT_SUCCEEDED = "checkout.session.async_payment_succeeded"
ASYNC_PAYMENT_FAILED = "checkout.session.async_payment_failed"
SESSION_EXPIRED = "checkout.session.expired"

_PAID_STATUSES = {"paid", "no_payment_required"}


def _kind(event_type: str, session: dict[str, Any]) -> PaymentEventKind:
    if event_type == SESSION_COMPLETED:
        if session.get("payment_status") in _PAID_STATUSES:
            return PaymentEventKind.COMPLETED
        return PaymentEventKind.PENDING
    if event_type == ASYNC_PAYMENT_SUCCEEDED:
        return PaymentEventKind.COMPLETED
    if event_type in (ASYNC_PAYMENT_FAILED, SESSION_EXPIRED):
        return PaymentEventKind.FAILED
    return PaymentEventKind.OTHER


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def event_from_dict(data: Any) -> GatewayEvent:
    """Decode a verified event body; shapes other than an event object decode as ``OTHER``."""
    data = _mapping(data)
    event_type = str(data.get("type") or "")
    session = _mapping(_mapping(data.get("data")).get("object"))
    metadata = _mapping(session.get("metadata"))

    order_id = metadata.get("order_id")
    reference = session.get("payment_intent")
    if isinstance(reference, dict):
        reference = reference.get("id")
    session_id = session.get("id")

    return GatewayEvent(
        event_id=str(data.get("id") or ""),
        event_type=event_type,
        kind=_kind(event_type, session),
        order_id=str(order_id) if order_id else None,
        session_id=str(session_id) if session_id else None,
        payment_reference=str(reference) if reference else None,
    )
