"""In-memory cart store."""

import threading

from ordering.cart.cart import CartLine
from ordering.cart.store.port import CartStore


class MemoryCartStore(CartStore):
    def __init__(self) -> None:
        self._carts: dict[str, list[CartLine]] = {}
        self._lock = threading.Lock()

    def get_lines(self, customer_id: str) -> list[CartLine]:
        with self._lock:
            return list(self._carts.get(customer_id, []))

    def save_lines(self, customer_id: str, lines: list[CartLine]) -> None:
        with self._lock:
            self._carts[customer_id] = list(lines)

    def clear(self, customer_id: str) -> None:
        with self._lock:
            self._carts.pop(customer_id, None)
