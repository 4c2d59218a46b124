"""SQLAlchemy customer store."""

from sqlalchemy import Engine, insert, select

from identity.store.port import Customer, CustomerStore
from shared.db import connection, customers, transaction


class SqlCustomerStore(CustomerStore):
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def add_customer(self, customer: Customer) -> Customer:
        with transaction(self.engine) as conn:
            conn.execute(insert(customers).values(id=customer.id, name=customer.name, email=customer.email))
        return customer

    def get_customer(self, customer_id: str) -> Customer | None:
        with connection(self.engine) as conn:
            row = conn.execute(select(customers).where(customers.c.id == customer_id)).first()
        if row is None:
            return None
        return Customer(id=row.id, name=row.name, email=row.email)
