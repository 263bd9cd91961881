"""SQLite storage implementations."""

from stockledger.infrastructure.storage.sqlite.connection import (
    ConnectionPool,
    close_pool,
    get_connection,
    get_pool,
    get_transaction,
    is_busy_error,
)
from stockledger.infrastructure.storage.sqlite.inventory_store import SQLiteInventoryStore
from stockledger.infrastructure.storage.sqlite.movement_store import SQLiteStockMovementStore

# Type aliases for convenience
InventoryStore = SQLiteInventoryStore
StockMovementStore = SQLiteStockMovementStore

# Singleton instances
_inventory_store: SQLiteInventoryStore | None = None
_movement_store: SQLiteStockMovementStore | None = None


async def get_inventory_store() -> SQLiteInventoryStore:
    """Get singleton inventory store instance."""
    global _inventory_store
    if _inventory_store is None:
        _inventory_store = SQLiteInventoryStore()
    return _inventory_store


async def get_movement_store() -> SQLiteStockMovementStore:
    """Get singleton stock movement store instance."""
    global _movement_store
    if _movement_store is None:
        _movement_store = SQLiteStockMovementStore()
    return _movement_store


__all__ = [
    # Connection
    "ConnectionPool",
    "get_pool",
    "close_pool",
    "get_connection",
    "get_transaction",
    "is_busy_error",
    # Store classes
    "SQLiteInventoryStore",
    "SQLiteStockMovementStore",
    # Type aliases
    "InventoryStore",
    "StockMovementStore",
    # Factory functions
    "get_inventory_store",
    "get_movement_store",
]
