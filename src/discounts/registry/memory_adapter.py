"""In-memory discount registry.

Discounts are kept as ``to_dict()`` snapshots and rebuilt on every read, so a
caller holding a discount never sees (or causes) a change behind the lock.
"""

import threading
from typing import Any

from discounts.discount import Discount
from discounts.registry.port import DiscountRegistry


class MemoryDiscountRegistry(DiscountRegistry):
    def __init__(self) -> None:
        self._discounts: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def add_discount(self, discount: Discount) -> Discount:
        with self._lock:
            for existing in self._discounts.values():
                if existing["id"] != discount.id and existing["code"].lower() == discount.code.lower():
                    raise ValueError(f"Discount code {discount.code!r} already exists")
            self._discounts[discount.id] = discount.to_dict()
        return discount

    def find_by_code(self, code: str) -> Discount | None:
        wanted = code.strip().lower()
        with self._lock:
            for data in self._discounts.values():
                if data["code"].lower() == wanted:
                    return Discount(**data)
        return None

    def find_by_id(self, discount_id: str) -> Discount | None:
        with self._lock:
            data = self._discounts.get(discount_id)
            return Discount(**data) if data is not None else None

    def conditional_increment_usage(self, discount_id: str) -> bool:
        with self._lock:
            data = self._discounts.get(discount_id)
            if data is None:
                return False
            discount = Discount(**data)
            if discount.is_exhausted:
                return False
            discount.used_count += 1
            self._discounts[discount_id] = discount.to_dict()
            return True
