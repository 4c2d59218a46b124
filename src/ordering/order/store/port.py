"""Order store port (abstract interface).

``transition_status`` is the only way an existing order changes state. It is a
compare-and-swap on ``status``: the write happens only if the stored status
still equals ``from_status``, which is what makes duplicate or out-of-order
payment events harmless.

A transition may carry ``effects``: a callable run as part of the transition,
after the guard has matched and before the new status is committed. If it
raises, the transition is not applied and the exception propagates, so the
same event can be delivered again and will find the order unchanged.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from ordering.order.order import Order, OrderStatus, can_transition

# Fields a status transition may set alongside the status itself
TRANSITION_FIELDS = frozenset({"payment_reference", "resolved_at"})

TransitionEffects = Callable[[], None]


class OrderStore(ABC):
    """Abstract order store interface."""

    @abstractmethod
    def create(self, order: Order) -> str:
        """Persist a new order and return its id."""
        ...

    @abstractmethod
    def find_by_id(self, order_id: str) -> Order | None: ...

    @abstractmethod
    def find_by_customer(self, customer_id: str) -> list[Order]:
        """All orders of a customer, newest first."""
        ...

    @abstractmethod
    def transition_status(
        self,
        order_id: str,
        from_status: OrderStatus,
        to_status: OrderStatus,
        effects: TransitionEffects | None = None,
        **extra: Any,
    ) -> bool:
        """Set ``to_status`` (and ``extra``) only if the order is currently ``from_status``.

        Returns False, without running ``effects``, when the guard does not match.
        """
        ...

    @abstractmethod
    def set_payment_session(self, order_id: str, session_id: str) -> bool:
        """Record the gateway session id once; the order may already be resolved."""
        ...


def check_transition(from_status: OrderStatus, to_status: OrderStatus, extra: dict[str, Any]) -> None:
    if not can_transition(from_status, to_status):
        raise ValueError(f"{from_status.value} → {to_status.value} is not an order status transition")
    unknown = set(extra) - TRANSITION_FIELDS
    if unknown:
        raise ValueError(f"Cannot set {sorted(unknown)} during a status transition")
