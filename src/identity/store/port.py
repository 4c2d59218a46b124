"""Customer store port.

The identity store is read-only for checkout: it only answers "who is the
acting customer". Registration and profile management live elsewhere.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Customer:
    id: str
    name: str = ""
    email: str = ""


class CustomerStore(ABC):
    @abstractmethod
    def get_customer(self, customer_id: str) -> Customer | None:
        """Return the customer, or None when the id is unknown."""
        ...
