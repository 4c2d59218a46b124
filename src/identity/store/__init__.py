"""Customer store factory.

Provides get_customer_store() / set_customer_store() to swap implementations:
- MemoryCustomerStore for development and testing
- SqlCustomerStore when DATABASE_URL is configured
"""

from identity.store.memory_adapter import MemoryCustomerStore
from identity.store.port import CustomerStore

_current_store: CustomerStore | None = None


def get_customer_store() -> CustomerStore:
    """Return the current customer store. Defaults to MemoryCustomerStore."""
    global _current_store
    if _current_store is None:
        _current_store = MemoryCustomerStore()
    return _current_store


def set_customer_store(store: CustomerStore) -> None:
    """Override the active customer store (useful for tests)."""
    global _current_store
    _current_store = store


def reset_customer_store() -> None:
    """Reset to default store."""
    global _current_store
    _current_store = None
