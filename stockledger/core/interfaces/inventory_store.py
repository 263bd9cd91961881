"""Abstract interface for inventory catalog storage."""

from abc import ABC, abstractmethod
from typing import Any

from stockledger.core.entities.inventory import InventoryItem


class IInventoryStore(ABC):
    """
    Interface for inventory item persistence.

    ``current_stock`` is written only by the ledger, through
    IStockMovementStore; nothing here changes a balance after creation.
    """

    @abstractmethod
    async def create_item(self, item: InventoryItem) -> InventoryItem:
        """Create a new inventory item with its seed balance."""
        pass

    @abstractmethod
    async def get_item(self, item_id: int) -> InventoryItem | None:
        """Get inventory item by ID."""
        pass

    @abstractmethod
    async def get_items(self, item_ids: list[int]) -> dict[int, InventoryItem]:
        """Get several inventory items keyed by ID; missing IDs are absent."""
        pass

    @abstractmethod
    async def get_item_by_code(self, item_code: str) -> InventoryItem | None:
        """Get inventory item by its human code."""
        pass

    @abstractmethod
    async def list_items(
        self,
        category: str | None = None,
        include_inactive: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> list[InventoryItem]:
        """List inventory items with pagination."""
        pass

    @abstractmethod
    async def count_items(
        self,
        category: str | None = None,
        include_inactive: bool = False,
    ) -> int:
        """Count the items list_items would return without pagination."""
        pass

    @abstractmethod
    async def update_item(self, item_id: int, changes: dict[str, Any]) -> InventoryItem | None:
        """
        Change catalog fields of an item; returns None if it does not exist.

        Rejects ``current_stock`` and ``version``, which only the ledger
        writes.
        """
        pass

    @abstractmethod
    async def list_active_items(self) -> list[InventoryItem]:
        """List every active item (for catalog-wide statistics)."""
        pass

    @abstractmethod
    async def list_low_stock(self) -> list[InventoryItem]:
        """List active items whose current_stock is at or below min_stock."""
        pass

    @abstractmethod
    async def set_active(self, item_id: int, is_active: bool) -> InventoryItem | None:
        """Soft-(de)activate an item; returns None if it does not exist."""
        pass
