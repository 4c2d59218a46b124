"""Inventory bounded context: catalog stock and its reservation for orders."""

from protean.domain import Domain

inventory = Domain(name="inventory")
