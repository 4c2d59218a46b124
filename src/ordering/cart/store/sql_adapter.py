"""SQLAlchemy cart store; one row per line, ordered by ``position``."""

from sqlalchemy import Engine, delete, insert, select

from ordering.cart.cart import CartLine
from ordering.cart.store.port import CartStore
from shared.db import cart_lines, connection, transaction
from shared.money import from_cents, to_cents


class SqlCartStore(CartStore):
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def get_lines(self, customer_id: str) -> list[CartLine]:
        statement = (
            select(cart_lines)
            .where(cart_lines.c.customer_id == customer_id)
            .order_by(cart_lines.c.position, cart_lines.c.id)
        )
        with connection(self.engine) as conn:
            rows = conn.execute(statement).all()
        return [
            CartLine(
                product_id=row.product_id,
                quantity=row.quantity,
                unit_price_snapshot=from_cents(row.unit_price_cents),
                size=row.size,
            )
            for row in rows
        ]

    def save_lines(self, customer_id: str, lines: list[CartLine]) -> None:
        with transaction(self.engine) as conn:
            conn.execute(delete(cart_lines).where(cart_lines.c.customer_id == customer_id))
            if lines:
                conn.execute(
                    insert(cart_lines),
                    [
                        {
                            "customer_id": customer_id,
                            "product_id": line.product_id,
                            "quantity": line.quantity,
                            "unit_price_cents": to_cents(line.unit_price_snapshot),
                            "size": line.size,
                            "position": position,
                        }
                        for position, line in enumerate(lines)
                    ],
                )

    def clear(self, customer_id: str) -> None:
        with transaction(self.engine) as conn:
            conn.execute(delete(cart_lines).where(cart_lines.c.customer_id == customer_id))
