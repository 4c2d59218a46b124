"""Catalog store port (abstract interface).

Checkout reads price and stock from the catalog and is the only writer that
decrements stock. Decrements must be a single conditional operation at the
storage layer ("decrement by N only if stock >= N"); a read followed by a
separate write would let two concurrent orders oversell the last unit.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class Product:
    """Catalog view of a product as seen by checkout."""

    id: str
    name: str
    price: Decimal
    stock: int
    category_id: str | None = None


class CatalogStore(ABC):
    """Abstract catalog store interface."""

    @abstractmethod
    def get_product(self, product_id: str) -> Product | None:
        """Return the product, or None when it does not exist."""
        ...

    @abstractmethod
    def conditional_decrement_stock(self, product_id: str, quantity: int) -> bool:
        """Atomically decrement stock by ``quantity`` if at least that much is available.

        Returns False, leaving stock untouched, when the product is unknown or
        stock is insufficient.
        """
        ...

    @abstractmethod
    def increment_stock(self, product_id: str, quantity: int) -> None:
        """Return ``quantity`` units to stock (compensation for a decrement)."""
        ...
