"""Payment gateway port (abstract interface).

Defines the contract that all payment gateway adapters must implement.
This enables swapping between FakeGateway (dev/test) and StripeGateway
(production) without changing any checkout or webhook code.

Adapters are pure translation layers. They own no business state, and the
``metadata`` handed to ``create_session`` must come back verbatim on the
resolution event.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum


@dataclass(frozen=True)
class SessionLineItem:
    name: str
    quantity: int
    unit_amount: Decimal


@dataclass(frozen=True)
class PaymentSessionRequest:
    """Everything the provider needs to open a checkout session for one order."""

    amount: Decimal
    currency: str
    line_items: tuple[SessionLineItem, ...]
    success_url: str
    cancel_url: str
    metadata: Mapping[str, str] = field(default_factory=dict)
    description: str = ""


@dataclass(frozen=True)
class PaymentSession:
    session_id: str
    redirect_url: str


class PaymentEventKind(Enum):
    COMPLETED = "completed"
    PENDING = "pending"  # session finished, funds not yet confirmed
    FAILED = "failed"
    OTHER = "other"


@dataclass(frozen=True)
class GatewayEvent:
    """An authenticated provider event reduced to what reconciliation needs."""

    event_id: str
    event_type: str
    kind: PaymentEventKind
    order_id: str | None = None
    session_id: str | None = None
    payment_reference: str | None = None


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_session(self, request: PaymentSessionRequest) -> PaymentSession:
        """Open a payment session.

        Raises ``PaymentSessionCreationFailed`` for network errors and provider
        rejections alike.
        """
        ...

    @abstractmethod
    def construct_event(self, payload: bytes, signature: str | None) -> GatewayEvent:
        """Authenticate a raw webhook body and decode it.

        ``payload`` must be the exact bytes received. Raises
        ``InvalidWebhookSignature`` when the signature does not verify or the
        body cannot be decoded.
        """
        ...
