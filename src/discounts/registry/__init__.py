"""Discount registry factory.

Provides get_discount_registry() / set_discount_registry() to swap implementations:
- MemoryDiscountRegistry for development and testing
- SqlDiscountRegistry when DATABASE_URL is configured
"""

from discounts.registry.memory_adapter import MemoryDiscountRegistry
from discounts.registry.port import DiscountRegistry

_current_registry: DiscountRegistry | None = None


def get_discount_registry() -> DiscountRegistry:
    """Return the current discount registry. Defaults to MemoryDiscountRegistry."""
    global _current_registry
    if _current_registry is None:
        _current_registry = MemoryDiscountRegistry()
    return _current_registry


def set_discount_registry(registry: DiscountRegistry) -> None:
    """Override the active discount registry (useful for tests)."""
    global _current_registry
    _current_registry = registry


def reset_discount_registry() -> None:
    """Reset to default registry."""
    global _current_registry
    _current_registry = None
