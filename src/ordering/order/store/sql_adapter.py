"""SQLAlchemy order store.

Line items, address, applied discount and stock reservations are JSON
documents; status transitions are ``UPDATE ... WHERE status = :from_status``.
The transition's effects run on the same connection before it commits, so
the other SQL stores they touch join the transaction.
"""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Engine, insert, select, update

from inventory.stock.reservation import StockDecrement
from ordering.order.order import AppliedDiscount, Order, OrderLineItem, OrderStatus, ShippingAddress
from ordering.order.store.port import OrderStore, TransitionEffects, check_transition
from shared.db import connection, orders, transaction
from shared.money import from_cents, to_cents


def _aware(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo; stored values are always UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _to_row(order: Order) -> dict[str, Any]:
    return {
        "id": order.id,
        "order_number": order.order_number,
        "customer_id": order.customer_id,
        "status": order.status,
        "line_items": [item.to_dict() for item in order.line_items],
        "shipping_address": order.shipping_address.to_dict(),
        "subtotal_cents": to_cents(order.subtotal),
        "discount_applied": order.discount_applied.to_dict() if order.discount_applied else None,
        "shipping_cost_cents": to_cents(order.shipping_cost),
        "tax_amount_cents": to_cents(order.tax_amount),
        "total_cents": to_cents(order.total),
        "currency": order.currency,
        "stock_reservations": [d.to_dict() for d in order.stock_reservations],
        "payment_session_id": order.payment_session_id,
        "payment_reference": order.payment_reference,
        "created_at": order.created_at,
        "updated_at": order.updated_at,
        "resolved_at": order.resolved_at,
    }


def _to_order(row) -> Order:
    return Order(
        id=row.id,
        order_number=row.order_number,
        customer_id=row.customer_id,
        status=row.status,
        line_items=[OrderLineItem(**item) for item in row.line_items],
        shipping_address=ShippingAddress(**row.shipping_address),
        subtotal=from_cents(row.subtotal_cents),
        discount_applied=AppliedDiscount(**row.discount_applied) if row.discount_applied else None,
        shipping_cost=from_cents(row.shipping_cost_cents),
        tax_amount=from_cents(row.tax_amount_cents),
        total=from_cents(row.total_cents),
        currency=row.currency,
        stock_reservations=[StockDecrement(**d) for d in row.stock_reservations],
        payment_session_id=row.payment_session_id,
        payment_reference=row.payment_reference,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
        resolved_at=_aware(row.resolved_at),
    )


class SqlOrderStore(OrderStore):
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create(self, order: Order) -> str:
        with transaction(self.engine) as conn:
            conn.execute(insert(orders).values(**_to_row(order)))
        return order.id

    def find_by_id(self, order_id: str) -> Order | None:
        with connection(self.engine) as conn:
            row = conn.execute(select(orders).where(orders.c.id == order_id)).first()
        return _to_order(row) if row is not None else None

    def find_by_customer(self, customer_id: str) -> list[Order]:
        statement = select(orders).where(orders.c.customer_id == customer_id).order_by(orders.c.created_at.desc())
        with connection(self.engine) as conn:
            rows = conn.execute(statement).all()
        return [_to_order(row) for row in rows]

    def transition_status(
        self,
        order_id: str,
        from_status: OrderStatus,
        to_status: OrderStatus,
        effects: TransitionEffects | None = None,
        **extra: Any,
    ) -> bool:
        check_transition(from_status, to_status, extra)
        statement = (
            update(orders)
            .where(orders.c.id == order_id, orders.c.status == from_status.value)
            .values(status=to_status.value, updated_at=datetime.now(UTC), **extra)
        )
        with transaction(self.engine) as conn:
            if conn.execute(statement).rowcount != 1:
                return False
            if effects is not None:
                effects()
        return True

    def set_payment_session(self, order_id: str, session_id: str) -> bool:
        statement = (
            update(orders)
            .where(orders.c.id == order_id, orders.c.payment_session_id.is_(None))
            .values(payment_session_id=session_id, updated_at=datetime.now(UTC))
        )
        with transaction(self.engine) as conn:
            result = conn.execute(statement)
        return result.rowcount == 1
