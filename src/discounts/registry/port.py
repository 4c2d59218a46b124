"""Discount registry port (abstract interface)."""

from abc import ABC, abstractmethod

from discounts.discount import Discount


class DiscountRegistry(ABC):
    """Abstract discount registry interface."""

    @abstractmethod
    def find_by_code(self, code: str) -> Discount | None:
        """Case-insensitive lookup by code."""
        ...

    @abstractmethod
    def find_by_id(self, discount_id: str) -> Discount | None: ...

    @abstractmethod
    def conditional_increment_usage(self, discount_id: str) -> bool:
        """Atomically increment ``used_count`` unless the usage limit is reached.

        Returns False when the discount is unknown or already exhausted.
        """
        ...
