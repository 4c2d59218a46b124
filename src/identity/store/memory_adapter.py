"""In-memory customer store for development and testing."""

from identity.store.port import Customer, CustomerStore


class MemoryCustomerStore(CustomerStore):
    def __init__(self) -> None:
        self._customers: dict[str, Customer] = {}

    def add_customer(self, customer: Customer) -> Customer:
        self._customers[customer.id] = customer
        return customer

    def get_customer(self, customer_id: str) -> Customer | None:
        return self._customers.get(customer_id)
