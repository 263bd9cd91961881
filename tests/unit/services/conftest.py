"""Shared fixtures for core service tests (stores are mocked)."""

from unittest.mock import AsyncMock

import pytest

from stockledger.core.entities.inventory import InventoryItem, StockMovement
from stockledger.core.services.stock_ledger import StockLedgerService


def _saved(movement: StockMovement, movement_id: int) -> StockMovement:
    return movement.model_copy(update={"id": movement_id})


@pytest.fixture
def rice() -> InventoryItem:
    return InventoryItem(
        id=1,
        item_code="RICE-25",
        item_name="Rice 25kg",
        unit="kg",
        current_stock=100.0,
        min_stock=20.0,
        max_stock=500.0,
        version=3,
    )


@pytest.fixture
def oil() -> InventoryItem:
    return InventoryItem(
        id=2,
        item_code="OIL-5L",
        item_name="Cooking oil 5L",
        unit="bottle",
        current_stock=10.0,
        min_stock=5.0,
        version=0,
    )


@pytest.fixture
def mock_inventory_store(rice, oil):
    store = AsyncMock()
    catalog = {rice.id: rice, oil.id: oil}
    store.get_item.side_effect = lambda item_id: catalog.get(item_id)
    store.get_items.side_effect = lambda ids: {i: catalog[i] for i in ids if i in catalog}
    return store


@pytest.fixture
def mock_movement_store():
    store = AsyncMock()
    store.append.side_effect = lambda movement, expected_version: _saved(movement, 101)
    store.append_many.side_effect = lambda movements, expected_versions: [
        _saved(m, 200 + i) for i, m in enumerate(movements)
    ]
    return store


@pytest.fixture
def ledger(mock_inventory_store, mock_movement_store):
    return StockLedgerService(
        inventory_store=mock_inventory_store,
        movement_store=mock_movement_store,
        max_retries=3,
        retry_delay=0,
    )
