"""Ordering bounded context: carts, orders and the checkout that joins them."""

from protean.domain import Domain

ordering = Domain(name="ordering")
