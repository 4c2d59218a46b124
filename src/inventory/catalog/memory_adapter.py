"""In-memory catalog store.

A single lock makes each conditional decrement indivisible, standing in for
the row-level atomic update a database performs.
"""

import threading
from dataclasses import replace
from decimal import Decimal

from inventory.catalog.port import CatalogStore, Product
from shared.money import to_money


class MemoryCatalogStore(CatalogStore):
    def __init__(self) -> None:
        self._products: dict[str, Product] = {}
        self._lock = threading.Lock()

    def add_product(
        self,
        product_id: str,
        name: str,
        price: Decimal | str,
        stock: int,
        category_id: str | None = None,
    ) -> Product:
        product = Product(id=product_id, name=name, price=to_money(price), stock=stock, category_id=category_id)
        with self._lock:
            self._products[product_id] = product
        return product

    def set_stock(self, product_id: str, stock: int) -> None:
        """Administrative stock edit."""
        if stock < 0:
            raise ValueError("Stock cannot be negative")
        with self._lock:
            self._products[product_id] = replace(self._products[product_id], stock=stock)

    def set_price(self, product_id: str, price: Decimal | str) -> None:
        with self._lock:
            self._products[product_id] = replace(self._products[product_id], price=to_money(price))

    def get_product(self, product_id: str) -> Product | None:
        with self._lock:
            return self._products.get(product_id)

    def conditional_decrement_stock(self, product_id: str, quantity: int) -> bool:
        with self._lock:
            product = self._products.get(product_id)
            if product is None or product.stock < quantity:
                return False
            self._products[product_id] = replace(product, stock=product.stock - quantity)
            return True

    def increment_stock(self, product_id: str, quantity: int) -> None:
        with self._lock:
            product = self._products.get(product_id)
            if product is None:
                raise KeyError(product_id)
            self._products[product_id] = replace(product, stock=product.stock + quantity)
