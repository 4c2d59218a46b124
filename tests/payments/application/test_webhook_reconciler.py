"""Application tests for payment webhook reconciliation."""

import json
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from discounts.discount import Discount, DiscountKind
from ordering.order.management import update_order_status
from ordering.order.order import OrderStatus
from ordering.order.store.memory_adapter import MemoryOrderStore
from payments.gateway.events import (
    ASYNC_PAYMENT_FAILED,
    ASYNC_PAYMENT_SUCCEEDED,
    SESSION_COMPLETED,
    SESSION_EXPIRED,
)
from payments.payment.webhook import PaymentWebhookReconciler, ReconciliationOutcome, handle_webhook
from shared.errors import InvalidWebhookSignature


def _deliver(shop, order, event_type, **kwargs):
    payload, header = shop.gateway.session_event(order.payment_session_id, event_type, **kwargs)
    return handle_webhook(payload, header)


def _stock(shop, product_id="prod-tee"):
    return shop.catalog.get_product(product_id).stock


def _used(shop, discount_id="disc-save10"):
    return shop.discounts.find_by_id(discount_id).used_count


class TestPaymentCompleted:
    def test_pending_order_becomes_processing(self, shop, place):
        order = place(discount_code="SAVE10")

        outcome = _deliver(shop, order, SESSION_COMPLETED, payment_reference="pi_777")

        assert outcome == ReconciliationOutcome.APPLIED
        paid = shop.orders.find_by_id(order.id)
        assert paid.status == OrderStatus.PROCESSING.value
        assert paid.payment_reference == "pi_777"
        assert paid.resolved_at is not None
        assert paid.total == order.total
        assert _used(shop) == 1
        assert _stock(shop) == 8

    def test_order_without_discount(self, shop, place):
        order = place()
        assert _deliver(shop, order, SESSION_COMPLETED) == ReconciliationOutcome.APPLIED
        assert _used(shop) == 0

    def test_redelivery_is_a_no_op(self, shop, place):
        order = place(discount_code="SAVE10")
        payload, header = shop.gateway.session_event(order.payment_session_id, SESSION_COMPLETED)

        first = handle_webhook(payload, header)
        paid = shop.orders.find_by_id(order.id)
        second = handle_webhook(payload, header)

        assert (first, second) == (ReconciliationOutcome.APPLIED, ReconciliationOutcome.DUPLICATE)
        assert shop.orders.find_by_id(order.id).to_dict() == paid.to_dict()
        assert _used(shop) == 1

    def test_completed_after_shipping_is_duplicate(self, shop, place):
        order = place()
        _deliver(shop, order, SESSION_COMPLETED)
        update_order_status(order.id, OrderStatus.SHIPPED)

        assert _deliver(shop, order, SESSION_COMPLETED) == ReconciliationOutcome.DUPLICATE
        assert shop.orders.find_by_id(order.id).status == OrderStatus.SHIPPED.value

    def test_unpaid_completion_waits_for_async_result(self, shop, place):
        order = place()

        assert _deliver(shop, order, SESSION_COMPLETED, payment_status="unpaid") == ReconciliationOutcome.IGNORED
        assert shop.orders.find_by_id(order.id).status == OrderStatus.PENDING.value

        assert _deliver(shop, order, ASYNC_PAYMENT_SUCCEEDED) == ReconciliationOutcome.APPLIED
        assert shop.orders.find_by_id(order.id).status == OrderStatus.PROCESSING.value

    def test_usage_limit_reached_after_payment_keeps_order_paid(self, shop, place):
        now = datetime.now(UTC)
        shop.discounts.add_discount(
            Discount(
                id="disc-once",
                code="ONCE",
                kind=DiscountKind.FIXED.value,
                value=Decimal("5.00"),
                usage_limit=1,
                valid_from=now - timedelta(days=1),
                valid_until=now + timedelta(days=1),
            )
        )
        first = place("cust-0001", discount_code="ONCE")
        second = place("cust-0002", discount_code="ONCE")

        _deliver(shop, first, SESSION_COMPLETED)
        outcome = _deliver(shop, second, SESSION_COMPLETED)

        assert outcome == ReconciliationOutcome.APPLIED
        assert shop.orders.find_by_id(second.id).status == OrderStatus.PROCESSING.value
        assert _used(shop, "disc-once") == 1


class TestPaymentFailed:
    @pytest.mark.parametrize("event_type", [SESSION_EXPIRED, ASYNC_PAYMENT_FAILED])
    def test_pending_order_fails_and_releases_stock(self, shop, place, event_type):
        order = place(lines=(("prod-tee", 2), ("prod-mug", 1)), discount_code="SAVE10")

        outcome = _deliver(shop, order, event_type, payment_status="unpaid")

        assert outcome == ReconciliationOutcome.APPLIED
        failed = shop.orders.find_by_id(order.id)
        assert failed.status == OrderStatus.PAYMENT_FAILED.value
        assert failed.resolved_at is not None
        assert _stock(shop) == 10
        assert _stock(shop, "prod-mug") == 5
        assert _used(shop) == 0

    def test_redelivered_failure_releases_once(self, shop, place):
        order = place()
        payload, header = shop.gateway.session_event(order.payment_session_id, SESSION_EXPIRED)

        assert handle_webhook(payload, header) == ReconciliationOutcome.APPLIED
        assert handle_webhook(payload, header) == ReconciliationOutcome.DUPLICATE
        assert _stock(shop) == 10

    def test_failure_after_payment_is_ignored(self, shop, place):
        order = place()
        _deliver(shop, order, SESSION_COMPLETED)

        assert _deliver(shop, order, SESSION_EXPIRED) == ReconciliationOutcome.IGNORED
        assert shop.orders.find_by_id(order.id).status == OrderStatus.PROCESSING.value
        assert _stock(shop) == 8

    def test_payment_after_failure_is_ignored(self, shop, place):
        order = place(discount_code="SAVE10")
        _deliver(shop, order, SESSION_EXPIRED)

        assert _deliver(shop, order, SESSION_COMPLETED) == ReconciliationOutcome.IGNORED
        assert shop.orders.find_by_id(order.id).status == OrderStatus.PAYMENT_FAILED.value
        assert _stock(shop) == 10
        assert _used(shop) == 0

    def test_failure_after_admin_cancel_does_not_release_again(self, shop, place):
        order = place()
        update_order_status(order.id, OrderStatus.CANCELLED)

        assert _deliver(shop, order, SESSION_EXPIRED) == ReconciliationOutcome.IGNORED
        assert _stock(shop) == 10


class TestUnmatchedEvents:
    def _signed(self, shop, body):
        payload = json.dumps(body).encode()
        return payload, shop.gateway.sign(payload)

    def test_unknown_order(self, shop):
        body = {
            "id": "evt_x",
            "type": SESSION_COMPLETED,
            "data": {"object": {"id": "cs_x", "metadata": {"order_id": "ord-ghost"}, "payment_status": "paid"}},
        }
        assert handle_webhook(*self._signed(shop, body)) == ReconciliationOutcome.UNKNOWN_ORDER

    def test_missing_order_reference(self, shop):
        body = {"id": "evt_x", "type": SESSION_EXPIRED, "data": {"object": {"id": "cs_x", "metadata": {}}}}
        assert handle_webhook(*self._signed(shop, body)) == ReconciliationOutcome.UNKNOWN_ORDER

    def test_unrelated_event_type(self, shop, place):
        order = place()
        assert _deliver(shop, order, "payment_intent.created") == ReconciliationOutcome.IGNORED
        assert shop.orders.find_by_id(order.id).status == OrderStatus.PENDING.value


class TestAuthentication:
    def test_bad_signature_never_reads_orders(self, shop, place):
        order = place()
        lookups = []

        class SpyOrderStore(MemoryOrderStore):
            def find_by_id(self, order_id):
                lookups.append(order_id)
                return super().find_by_id(order_id)

        payload, header = shop.gateway.session_event(order.payment_session_id, SESSION_COMPLETED)
        forged = payload.replace(b'"paid"', b'"paid" ')
        reconciler = PaymentWebhookReconciler(orders=SpyOrderStore())

        with pytest.raises(InvalidWebhookSignature):
            reconciler.handle(forged, header)

        assert lookups == []
        assert shop.orders.find_by_id(order.id).status == OrderStatus.PENDING.value

    def test_missing_signature(self, shop, place):
        order = place()
        payload, _ = shop.gateway.session_event(order.payment_session_id, SESSION_COMPLETED)
        with pytest.raises(InvalidWebhookSignature):
            handle_webhook(payload, None)


class TestInfrastructureErrors:
    def test_store_failure_propagates_for_redelivery(self, shop, place, monkeypatch):
        order = place()
        payload, header = shop.gateway.session_event(order.payment_session_id, SESSION_COMPLETED)

        def broken(*args, **kwargs):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(shop.orders, "transition_status", broken)
        with pytest.raises(RuntimeError):
            handle_webhook(payload, header)

        monkeypatch.undo()
        assert handle_webhook(payload, header) == ReconciliationOutcome.APPLIED


class TestSideEffectFailures:
    def test_discount_registry_outage_is_retried_to_a_single_count(self, shop, place, monkeypatch):
        order = place(discount_code="SAVE10")
        payload, header = shop.gateway.session_event(order.payment_session_id, SESSION_COMPLETED)

        def unavailable(discount_id):
            raise RuntimeError("discount registry unavailable")

        monkeypatch.setattr(shop.discounts, "conditional_increment_usage", unavailable)
        with pytest.raises(RuntimeError):
            handle_webhook(payload, header)

        assert shop.orders.find_by_id(order.id).status == OrderStatus.PENDING.value
        assert _used(shop) == 0

        monkeypatch.undo()
        assert handle_webhook(payload, header) == ReconciliationOutcome.APPLIED
        assert handle_webhook(payload, header) == ReconciliationOutcome.DUPLICATE
        assert shop.orders.find_by_id(order.id).status == OrderStatus.PROCESSING.value
        assert _used(shop) == 1

    def test_catalog_outage_is_retried_to_a_single_release(self, shop, place, monkeypatch):
        order = place(lines=(("prod-tee", 2), ("prod-mug", 1)))
        payload, header = shop.gateway.session_event(order.payment_session_id, SESSION_EXPIRED)
        original = shop.catalog.increment_stock

        def increment_stock(product_id, quantity):
            if product_id == "prod-tee":
                raise ConnectionError("catalog unavailable")
            original(product_id, quantity)

        monkeypatch.setattr(shop.catalog, "increment_stock", increment_stock)
        with pytest.raises(ConnectionError):
            handle_webhook(payload, header)

        assert shop.orders.find_by_id(order.id).status == OrderStatus.PENDING.value
        assert _stock(shop) == 8
        assert _stock(shop, "prod-mug") == 4

        monkeypatch.undo()
        assert handle_webhook(payload, header) == ReconciliationOutcome.APPLIED
        assert handle_webhook(payload, header) == ReconciliationOutcome.DUPLICATE
        assert shop.orders.find_by_id(order.id).status == OrderStatus.PAYMENT_FAILED.value
        assert _stock(shop) == 10
        assert _stock(shop, "prod-mug") == 5


class TestConcurrentDeliveries:
    def test_parallel_duplicates_apply_once(self, shop, place):
        order = place(discount_code="SAVE10")
        payload, header = shop.gateway.session_event(order.payment_session_id, SESSION_COMPLETED)
        barrier = threading.Barrier(8)

        def deliver(_):
            barrier.wait()
            return handle_webhook(payload, header)

        with ThreadPoolExecutor(max_workers=8) as pool:
            outcomes = list(pool.map(deliver, range(8)))

        assert outcomes.count(ReconciliationOutcome.APPLIED) == 1
        assert outcomes.count(ReconciliationOutcome.DUPLICATE) == 7
        assert _used(shop) == 1

    def test_completion_racing_expiry_has_one_winner(self, shop, place):
        order = place()
        events = [
            shop.gateway.session_event(order.payment_session_id, SESSION_COMPLETED),
            shop.gateway.session_event(order.payment_session_id, SESSION_EXPIRED),
        ]
        barrier = threading.Barrier(2)

        def deliver(event):
            barrier.wait()
            return handle_webhook(*event)

        with ThreadPoolExecutor(max_workers=2) as pool:
            outcomes = list(pool.map(deliver, events))

        assert outcomes.count(ReconciliationOutcome.APPLIED) == 1
        final = shop.orders.find_by_id(order.id)
        expected_stock = 8 if final.status == OrderStatus.PROCESSING.value else 10
        assert final.status in (OrderStatus.PROCESSING.value, OrderStatus.PAYMENT_FAILED.value)
        assert _stock(shop) == expected_stock
