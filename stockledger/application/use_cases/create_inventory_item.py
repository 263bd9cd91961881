"""Create Inventory Item Use Case: seed a catalog entry and its balance."""

from stockledger.application.dto.requests import CreateInventoryItemRequest
from stockledger.application.dto.responses import InventoryItemResponse
from stockledger.config import get_logger
from stockledger.core.entities.inventory import InventoryItem
from stockledger.core.exceptions import DuplicateItemCodeError, ValidationError
from stockledger.core.interfaces.inventory_store import IInventoryStore

logger = get_logger(__name__)


class CreateInventoryItemUseCase:
    """Add an item to the catalog with its initial stock."""

    def __init__(self, inventory_store: IInventoryStore | None = None):
        self._inventory_store = inventory_store

    async def _get_inventory_store(self) -> IInventoryStore:
        if self._inventory_store is None:
            from stockledger.infrastructure.storage.sqlite import get_inventory_store

            self._inventory_store = await get_inventory_store()
        return self._inventory_store

    async def execute(self, request: CreateInventoryItemRequest) -> InventoryItem:
        """
        Execute create inventory item use case.

        Raises:
            ValidationError: min_stock exceeds max_stock
            DuplicateItemCodeError: item_code already used
        """
        if request.max_stock is not None and request.min_stock > request.max_stock:
            raise ValidationError(
                "min_stock",
                "must not exceed max_stock",
                request.min_stock,
            )

        store = await self._get_inventory_store()

        if request.item_code and await store.get_item_by_code(request.item_code):
            raise DuplicateItemCodeError(request.item_code)

        item = await store.create_item(InventoryItem(**request.model_dump()))

        logger.info(
            "create_inventory_item_complete",
            item_id=item.id,
            item_code=item.item_code,
        )
        return item

    def to_response(self, item: InventoryItem) -> InventoryItemResponse:
        return InventoryItemResponse.from_entity(item)
