"""Order placement: cart → priced, stock-reserved, pending order → payment session.

Flow:
    1. Snapshot the cart and reprice every line from the catalog.
    2. Re-validate the discount code, if any.
    3. Compute the price breakdown.
    4. Reserve stock (all lines or none).
    5. Persist the order in Pending with the locked prices and the reservation record.
    6. Open a payment session carrying the order id as metadata.
    7. Record the session id, clear the cart and hand back the redirect URL.

Steps 1-4 write nothing, so a rejection there leaves no trace. Once stock is
reserved, every later failure releases it again before the error surfaces:
a failed session marks the order PaymentFailed. Discount usage is not counted
here; the webhook reconciler counts it when payment is confirmed.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import uuid4

import structlog

from discounts.discount import ResolvedDiscount
from discounts.registry.port import DiscountRegistry
from discounts.validator import DiscountValidator
from identity.store import get_customer_store
from identity.store.port import CustomerStore
from inventory.catalog import get_catalog_store
from inventory.catalog.port import CatalogStore
from inventory.stock.reservation import InventoryGatekeeper, StockDecrement
from ordering.cart.cart import CartLine
from ordering.cart.store import get_cart_store
from ordering.cart.store.port import CartStore
from ordering.order.order import (
    AppliedDiscount,
    Order,
    OrderLineItem,
    OrderStatus,
    ShippingAddress,
    make_order_number,
)
from ordering.order.store import get_order_store
from ordering.order.store.port import OrderStore
from ordering.pricing import (
    PriceBreakdown,
    PricedLine,
    ShippingRule,
    compute_breakdown,
    compute_subtotal,
    shipping_rule_from_settings,
)
from payments.gateway import get_gateway
from payments.gateway.port import PaymentGateway, PaymentSession, PaymentSessionRequest, SessionLineItem
from shared.config import Settings, get_settings
from shared.errors import (
    CheckoutError,
    CustomerNotFound,
    EmptyCart,
    PaymentSessionCreationFailed,
    ProductNotFound,
)
from shared.money import ZERO

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Quote:
    lines: tuple[PricedLine, ...]
    breakdown: PriceBreakdown
    discount: ResolvedDiscount | None = None


@dataclass(frozen=True)
class PlacedOrder:
    order_id: str
    order_number: str
    redirect_url: str


def _with_query(url: str, **params: str) -> str:
    separator = "&" if "?" in url else "?"
    return url + separator + "&".join(f"{key}={value}" for key, value in params.items())


class OrderCheckout:
    """Checkout workflow over explicit collaborators.

    Any collaborator left as None is taken from its module factory, so the
    defaults follow whatever adapters the application (or a test) installed.
    """

    def __init__(
        self,
        customers: CustomerStore | None = None,
        carts: CartStore | None = None,
        catalog: CatalogStore | None = None,
        discounts: DiscountRegistry | None = None,
        orders: OrderStore | None = None,
        gateway: PaymentGateway | None = None,
        settings: Settings | None = None,
        shipping_rule: ShippingRule | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.customers = customers or get_customer_store()
        self.carts = carts or get_cart_store()
        self.catalog = catalog or get_catalog_store()
        self.orders = orders or get_order_store()
        self.gateway = gateway or get_gateway()
        self.settings = settings or get_settings()
        self.shipping_rule = shipping_rule or shipping_rule_from_settings(self.settings)
        self.clock = clock or (lambda: datetime.now(UTC))
        self.validator = DiscountValidator(discounts)
        self.gatekeeper = InventoryGatekeeper(self.catalog)

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------
    def _price_lines(self, cart_lines: list[CartLine]) -> list[PricedLine]:
        priced = []
        for line in cart_lines:
            product = self.catalog.get_product(line.product_id)
            if product is None:
                raise ProductNotFound(product_id=line.product_id)
            priced.append(
                PricedLine(
                    product_id=product.id,
                    name=product.name,
                    quantity=line.quantity,
                    unit_price=product.price,
                    category_id=product.category_id,
                    size=line.size,
                )
            )
        return priced

    def _quote(self, customer_id: str, destination_country: str, discount_code: str | None) -> Quote:
        cart_lines = self.carts.get_lines(customer_id)
        if not cart_lines:
            raise EmptyCart(customer_id=customer_id)

        lines = self._price_lines(cart_lines)
        subtotal = compute_subtotal(lines)

        resolved = None
        if discount_code and discount_code.strip():
            resolved = self.validator.validate(discount_code, subtotal, lines, now=self.clock())

        breakdown = compute_breakdown(
            lines,
            destination_country=destination_country,
            shipping_rule=self.shipping_rule,
            tax_rate=self.settings.tax_rate,
            discount_amount=resolved.amount if resolved else ZERO,
            tax_base=self.settings.tax_base,
        )
        return Quote(lines=tuple(lines), breakdown=breakdown, discount=resolved)

    def _require_customer(self, customer_id: str) -> None:
        if self.customers.get_customer(customer_id) is None:
            raise CustomerNotFound(customer_id=customer_id)

    def quote(self, customer_id: str, destination_country: str, discount_code: str | None = None) -> Quote:
        """Price the current cart exactly as placement would, without side effects."""
        self._require_customer(customer_id)
        return self._quote(customer_id, destination_country, discount_code)

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------
    def _build_order(
        self,
        order_id: str,
        customer_id: str,
        quote: Quote,
        shipping_address: ShippingAddress,
        reservations: list[StockDecrement],
    ) -> Order:
        now = self.clock()
        breakdown = quote.breakdown
        return Order(
            id=order_id,
            order_number=make_order_number(customer_id, now),
            customer_id=customer_id,
            line_items=[
                OrderLineItem(
                    product_id=line.product_id,
                    name=line.name,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    size=line.size,
                )
                for line in quote.lines
            ],
            shipping_address=shipping_address,
            subtotal=breakdown.subtotal,
            discount_applied=AppliedDiscount.from_resolved(quote.discount) if quote.discount else None,
            shipping_cost=breakdown.shipping_cost,
            tax_amount=breakdown.tax_amount,
            total=breakdown.total,
            currency=self.settings.currency,
            status=OrderStatus.PENDING.value,
            stock_reservations=reservations,
            created_at=now,
            updated_at=now,
        )

    def _session_request(self, order: Order) -> PaymentSessionRequest:
        return PaymentSessionRequest(
            amount=order.total,
            currency=order.currency,
            line_items=tuple(
                SessionLineItem(name=item.name, quantity=item.quantity, unit_amount=item.unit_price)
                for item in order.line_items
            ),
            success_url=_with_query(
                self.settings.checkout_success_url,
                order_id=order.id,
                session_id="{CHECKOUT_SESSION_ID}",
            ),
            cancel_url=_with_query(self.settings.checkout_cancel_url, order_id=order.id),
            metadata={"order_id": order.id, "order_number": order.order_number},
            description=f"Order {order.order_number}",
        )

    def _open_session(self, order: Order) -> PaymentSession:
        """Open the payment session, compensating the reservation if that fails."""
        try:
            return self.gateway.create_session(self._session_request(order))
        except Exception as exc:
            failed = self.orders.transition_status(
                order.id,
                OrderStatus.PENDING,
                OrderStatus.PAYMENT_FAILED,
                effects=lambda: self.gatekeeper.release(order.stock_reservations),
                resolved_at=self.clock(),
            )
            logger.warning(
                "Payment session creation failed, reservation released",
                order_id=order.id,
                stock_released=failed,
                error=type(exc).__name__,
            )
            if isinstance(exc, PaymentSessionCreationFailed):
                raise
            raise PaymentSessionCreationFailed(order_id=order.id) from exc

    def _record_session(self, order: Order, session: PaymentSession) -> None:
        """Store the session id on the order.

        The id is informational: the webhook finds the order through the
        ``order_id`` the session echoes back. A failure here is logged and
        placement still completes, since the customer can already pay.
        """
        try:
            self.orders.set_payment_session(order.id, session.session_id)
        except Exception:
            logger.exception(
                "Payment session id not recorded on order",
                order_id=order.id,
                payment_session_id=session.session_id,
            )

    def place_order(
        self,
        customer_id: str,
        shipping_address: ShippingAddress,
        discount_code: str | None = None,
    ) -> PlacedOrder:
        try:
            self._require_customer(customer_id)
            quote = self._quote(customer_id, shipping_address.country, discount_code)
            reservations = self.gatekeeper.reserve((line.product_id, line.quantity) for line in quote.lines)
        except CheckoutError as exc:
            logger.info(
                "Order placement rejected",
                customer_id=customer_id,
                reason=exc.code,
                discount_code=discount_code,
            )
            raise

        order = self._build_order(str(uuid4()), customer_id, quote, shipping_address, reservations)
        try:
            self.orders.create(order)
        except Exception:
            logger.exception("Order could not be persisted, releasing stock", customer_id=customer_id)
            self.gatekeeper.release(reservations)
            raise

        session = self._open_session(order)
        self._record_session(order, session)
        self.carts.clear(customer_id)

        logger.info(
            "Order placed",
            order_id=order.id,
            order_number=order.order_number,
            customer_id=customer_id,
            total=str(order.total),
            discount_code=order.discount_applied.code if order.discount_applied else None,
            payment_session_id=session.session_id,
        )
        return PlacedOrder(order_id=order.id, order_number=order.order_number, redirect_url=session.redirect_url)


def place_order(
    customer_id: str,
    shipping_address: ShippingAddress,
    discount_code: str | None = None,
) -> PlacedOrder:
    """Place an order for the customer's current cart using the installed adapters."""
    return OrderCheckout().place_order(customer_id, shipping_address, discount_code)


def quote_cart(customer_id: str, destination_country: str, discount_code: str | None = None) -> Quote:
    return OrderCheckout().quote(customer_id, destination_country, discount_code)
