"""SQLAlchemy catalog store.

Stock changes are single ``UPDATE`` statements; the ``stock >= :quantity``
guard lives in the WHERE clause so the database arbitrates concurrent orders.
"""

from decimal import Decimal

from sqlalchemy import Engine, insert, select, update

from inventory.catalog.port import CatalogStore, Product
from shared.db import connection, products, transaction
from shared.money import from_cents, to_cents


class SqlCatalogStore(CatalogStore):
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def add_product(
        self,
        product_id: str,
        name: str,
        price: Decimal | str,
        stock: int,
        category_id: str | None = None,
    ) -> Product:
        with transaction(self.engine) as conn:
            conn.execute(
                insert(products).values(
                    id=product_id,
                    name=name,
                    price_cents=to_cents(Decimal(price)),
                    stock=stock,
                    category_id=category_id,
                )
            )
        return self.get_product(product_id)

    def get_product(self, product_id: str) -> Product | None:
        with connection(self.engine) as conn:
            row = conn.execute(select(products).where(products.c.id == product_id)).first()
        if row is None:
            return None
        return Product(
            id=row.id,
            name=row.name,
            price=from_cents(row.price_cents),
            stock=row.stock,
            category_id=row.category_id,
        )

    def conditional_decrement_stock(self, product_id: str, quantity: int) -> bool:
        statement = (
            update(products)
            .where(products.c.id == product_id, products.c.stock >= quantity)
            .values(stock=products.c.stock - quantity)
        )
        with transaction(self.engine) as conn:
            result = conn.execute(statement)
        return result.rowcount == 1

    def increment_stock(self, product_id: str, quantity: int) -> None:
        statement = update(products).where(products.c.id == product_id).values(stock=products.c.stock + quantity)
        with transaction(self.engine) as conn:
            result = conn.execute(statement)
        if result.rowcount != 1:
            raise KeyError(product_id)
