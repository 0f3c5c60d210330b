"""Order persistence."""

from dexduels.storage.order_store import InMemoryOrderStore, OrderStore, PostgresOrderStore

__all__ = [
    "InMemoryOrderStore",
    "OrderStore",
    "PostgresOrderStore",
]
