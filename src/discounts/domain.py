"""Discounts bounded context: discount codes and their usage accounting."""

from protean.domain import Domain

discounts = Domain(name="discounts")
