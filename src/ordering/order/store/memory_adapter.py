"""In-memory order store.

Orders are kept as ``to_dict()`` snapshots and rebuilt on every read. One lock
covers the guard, the transition's effects and the write, so each
compare-and-swap and whatever must happen with it are indivisible.
"""

import threading
from datetime import UTC, datetime
from typing import Any

from ordering.order.order import Order, OrderStatus
from ordering.order.store.port import OrderStore, TransitionEffects, check_transition


class MemoryOrderStore(OrderStore):
    def __init__(self) -> None:
        self._orders: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def _load(self, order_id: str) -> Order | None:
        data = self._orders.get(order_id)
        return Order.from_dict(data) if data is not None else None

    def create(self, order: Order) -> str:
        with self._lock:
            if order.id in self._orders:
                raise ValueError(f"Order {order.id} already exists")
            self._orders[order.id] = order.to_dict()
        return order.id

    def find_by_id(self, order_id: str) -> Order | None:
        with self._lock:
            return self._load(order_id)

    def find_by_customer(self, customer_id: str) -> list[Order]:
        with self._lock:
            orders = [Order.from_dict(data) for data in self._orders.values() if data["customer_id"] == customer_id]
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    def transition_status(
        self,
        order_id: str,
        from_status: OrderStatus,
        to_status: OrderStatus,
        effects: TransitionEffects | None = None,
        **extra: Any,
    ) -> bool:
        check_transition(from_status, to_status, extra)
        with self._lock:
            order = self._load(order_id)
            if order is None or OrderStatus(order.status) != from_status:
                return False
            if effects is not None:
                effects()
            order.status = to_status.value
            order.updated_at = datetime.now(UTC)
            for name, value in extra.items():
                setattr(order, name, value)
            self._orders[order_id] = order.to_dict()
            return True

    def set_payment_session(self, order_id: str, session_id: str) -> bool:
        with self._lock:
            order = self._load(order_id)
            if order is None or order.payment_session_id is not None:
                return False
            order.payment_session_id = session_id
            order.updated_at = datetime.now(UTC)
            self._orders[order_id] = order.to_dict()
            return True
