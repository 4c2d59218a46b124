"""Order store factory.

Provides get_order_store() / set_order_store() to swap implementations:
- MemoryOrderStore for development and testing
- SqlOrderStore when DATABASE_URL is configured
"""

from ordering.order.store.memory_adapter import MemoryOrderStore
from ordering.order.store.port import OrderStore

_current_store: OrderStore | None = None


def get_order_store() -> OrderStore:
    """Return the current order store. Defaults to MemoryOrderStore."""
    global _current_store
    if _current_store is None:
        _current_store = MemoryOrderStore()
    return _current_store


def set_order_store(store: OrderStore) -> None:
    """Override the active order store (useful for tests)."""
    global _current_store
    _current_store = store


def reset_order_store() -> None:
    """Reset to default store."""
    global _current_store
    _current_store = None
