"""Cart store factory.

Provides get_cart_store() / set_cart_store() to swap implementations:
- MemoryCartStore for development and testing
- SqlCartStore when DATABASE_URL is configured
"""

from ordering.cart.store.memory_adapter import MemoryCartStore
from ordering.cart.store.port import CartStore

_current_store: CartStore | None = None


def get_cart_store() -> CartStore:
    """Return the current cart store. Defaults to MemoryCartStore."""
    global _current_store
    if _current_store is None:
        _current_store = MemoryCartStore()
    return _current_store


def set_cart_store(store: CartStore) -> None:
    """Override the active cart store (useful for tests)."""
    global _current_store
    _current_store = store


def reset_cart_store() -> None:
    """Reset to default store."""
    global _current_store
    _current_store = None
