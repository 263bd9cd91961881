"""Update Inventory Item Use Case: edit catalog fields of an existing item."""

from stockledger.application.dto.requests import UpdateInventoryItemRequest
from stockledger.application.dto.responses import InventoryItemResponse
from stockledger.config import get_logger
from stockledger.core.entities.inventory import InventoryItem
from stockledger.core.exceptions import DuplicateItemCodeError, InventoryItemNotFoundError
from stockledger.core.interfaces.inventory_store import IInventoryStore

logger = get_logger(__name__)


class UpdateInventoryItemUseCase:
    """Change an item's catalog data; its balance is never touched."""

    def __init__(self, inventory_store: IInventoryStore | None = None):
        self._inventory_store = inventory_store

    async def _get_inventory_store(self) -> IInventoryStore:
        if self._inventory_store is None:
            from stockledger.infrastructure.storage.sqlite import get_inventory_store

            self._inventory_store = await get_inventory_store()
        return self._inventory_store

    async def execute(self, item_id: int, request: UpdateInventoryItemRequest) -> InventoryItem:
        """
        Execute update inventory item use case.

        Raises:
            InventoryItemNotFoundError: No item with this ID
            ValidationError: min_stock would exceed max_stock
            DuplicateItemCodeError: item_code used by another item
        """
        store = await self._get_inventory_store()
        changes = request.changes()

        if not changes:
            item = await store.get_item(item_id)
            if item is None:
                raise InventoryItemNotFoundError(item_id)
            return item

        code = changes.get("item_code")
        if code:
            holder = await store.get_item_by_code(code)
            if holder is not None and holder.id != item_id:
                raise DuplicateItemCodeError(code)

        item = await store.update_item(item_id, changes)
        if item is None:
            raise InventoryItemNotFoundError(item_id)

        logger.info("update_inventory_item_complete", item_id=item_id, fields=sorted(changes))
        return item

    def to_response(self, item: InventoryItem) -> InventoryItemResponse:
        return InventoryItemResponse.from_entity(item)
