"""Core interfaces (ports) for dependency injection."""

from stockledger.core.interfaces.inventory_store import IInventoryStore
from stockledger.core.interfaces.movement_store import IStockMovementStore

__all__ = [
    "IInventoryStore",
    "IStockMovementStore",
]
