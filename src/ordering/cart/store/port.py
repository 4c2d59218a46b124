"""Cart store port (abstract interface)."""

from abc import ABC, abstractmethod

from ordering.cart.cart import CartLine


class CartStore(ABC):
    @abstractmethod
    def get_lines(self, customer_id: str) -> list[CartLine]:
        """Lines in the order they were added; empty for an unknown customer."""
        ...

    @abstractmethod
    def save_lines(self, customer_id: str, lines: list[CartLine]) -> None:
        """Replace the customer's cart with ``lines``."""
        ...

    @abstractmethod
    def clear(self, customer_id: str) -> None: ...
