"""Payment webhook reconciliation.

Authenticates an inbound gateway event and applies it to the order named in
the event's echoed metadata. Every transition is a compare-and-swap on the
order status, which doubles as the idempotency key:

    completed  Pending → Processing, record the payment reference, count the
               discount use once
    failed     Pending → PaymentFailed, release the reserved stock

A mismatch (the order already left Pending) is a no-op, so duplicate
deliveries and late events in either order change nothing. The discount count
and the stock release run inside the transition: if either fails, the order
stays Pending and the error propagates, so the gateway's redelivery applies
the whole event again. Apart from that, only an authentication failure is
reported back to the gateway; everything else is logged and acknowledged.
"""

from datetime import UTC, datetime
from enum import Enum

import structlog

from discounts.registry import get_discount_registry
from discounts.registry.port import DiscountRegistry
from inventory.stock.reservation import InventoryGatekeeper
from ordering.order.order import Order, OrderStatus
from ordering.order.store import get_order_store
from ordering.order.store.port import OrderStore
from payments.gateway import get_gateway
from payments.gateway.port import GatewayEvent, PaymentEventKind, PaymentGateway
from shared.errors import InvalidWebhookSignature, UnknownOrderReference

logger = structlog.get_logger(__name__)


class ReconciliationOutcome(Enum):
    APPLIED = "applied"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"
    UNKNOWN_ORDER = "unknown_order"


_PAID_STATES = {OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED}


class PaymentWebhookReconciler:
    def __init__(
        self,
        gateway: PaymentGateway | None = None,
        orders: OrderStore | None = None,
        discounts: DiscountRegistry | None = None,
        gatekeeper: InventoryGatekeeper | None = None,
    ) -> None:
        self.gateway = gateway or get_gateway()
        self.orders = orders or get_order_store()
        self.discounts = discounts or get_discount_registry()
        self.gatekeeper = gatekeeper or InventoryGatekeeper()

    def handle(self, payload: bytes, signature: str | None) -> ReconciliationOutcome:
        """Verify and apply one webhook delivery.

        ``payload`` must be the raw request body. Raises
        ``InvalidWebhookSignature`` before any order is looked up.
        """
        try:
            event = self.gateway.construct_event(payload, signature)
        except InvalidWebhookSignature as exc:
            logger.warning("Webhook signature verification failed", reason=exc.message)
            raise

        log = logger.bind(event_id=event.event_id, event_type=event.event_type, order_id=event.order_id)

        if event.kind in (PaymentEventKind.OTHER, PaymentEventKind.PENDING):
            log.info("Webhook ignored", kind=event.kind.value)
            return ReconciliationOutcome.IGNORED

        try:
            order = self._find_order(event)
        except UnknownOrderReference:
            log.warning("Webhook references unknown order")
            return ReconciliationOutcome.UNKNOWN_ORDER

        if event.kind == PaymentEventKind.COMPLETED:
            outcome = self._apply_completed(order, event)
        else:
            outcome = self._apply_failed(order, event)

        log.info("Webhook processed", outcome=outcome.value)
        return outcome

    def _find_order(self, event: GatewayEvent) -> Order:
        if not event.order_id:
            raise UnknownOrderReference()
        order = self.orders.find_by_id(event.order_id)
        if order is None:
            raise UnknownOrderReference(order_id=event.order_id)
        return order

    def _apply_completed(self, order: Order, event: GatewayEvent) -> ReconciliationOutcome:
        moved = self.orders.transition_status(
            order.id,
            OrderStatus.PENDING,
            OrderStatus.PROCESSING,
            effects=lambda: self._count_discount_use(order),
            payment_reference=event.payment_reference,
            resolved_at=datetime.now(UTC),
        )
        if not moved:
            current = self.orders.find_by_id(order.id)
            if current is not None and OrderStatus(current.status) in _PAID_STATES:
                return ReconciliationOutcome.DUPLICATE
            logger.warning(
                "Payment completed for an order that is no longer pending",
                order_id=order.id,
                status=current.status if current else None,
                payment_reference=event.payment_reference,
            )
            return ReconciliationOutcome.IGNORED
        return ReconciliationOutcome.APPLIED

    def _count_discount_use(self, order: Order) -> None:
        """Runs inside the Pending → Processing transition, so once per order."""
        if order.discount_applied is None:
            return
        counted = self.discounts.conditional_increment_usage(order.discount_applied.discount_id)
        if not counted:
            logger.warning(
                "Discount usage limit reached after payment",
                order_id=order.id,
                discount_code=order.discount_applied.code,
            )

    def _apply_failed(self, order: Order, event: GatewayEvent) -> ReconciliationOutcome:
        moved = self.orders.transition_status(
            order.id,
            OrderStatus.PENDING,
            OrderStatus.PAYMENT_FAILED,
            effects=lambda: self.gatekeeper.release(order.stock_reservations),
            resolved_at=datetime.now(UTC),
        )
        if not moved:
            current = self.orders.find_by_id(order.id)
            if current is not None and OrderStatus(current.status) == OrderStatus.PAYMENT_FAILED:
                return ReconciliationOutcome.DUPLICATE
            logger.info(
                "Late payment failure ignored",
                order_id=order.id,
                status=current.status if current else None,
                event_type=event.event_type,
            )
            return ReconciliationOutcome.IGNORED

        logger.info("Payment failed, stock released", order_id=order.id, lines=len(order.stock_reservations))
        return ReconciliationOutcome.APPLIED


def handle_webhook(payload: bytes, signature: str | None) -> ReconciliationOutcome:
    return PaymentWebhookReconciler().handle(payload, signature)
