"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator, Awaitable, Callable, Generator
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

import stockledger.infrastructure.storage.sqlite.connection as conn_module
from stockledger.application.services import reset_services
from stockledger.config import Settings, get_settings, reset_settings
from stockledger.core.entities.inventory import InventoryItem
from stockledger.infrastructure.storage.sqlite import (
    SQLiteInventoryStore,
    SQLiteStockMovementStore,
    close_pool,
)
from stockledger.infrastructure.storage.sqlite.migrations.migrator import initialize_database


@pytest.fixture
def ledger_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[Settings, None, None]:
    """Settings pointing at a throwaway database, with fast retries."""
    monkeypatch.setenv("STORAGE_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("STORAGE_DB_NAME", "ledger_test.db")
    monkeypatch.setenv("STORAGE_POOL_SIZE", "3")
    monkeypatch.setenv("STORAGE_BUSY_TIMEOUT", "5000")
    monkeypatch.setenv("LEDGER_RETRY_DELAY", "0.001")
    reset_settings()
    reset_services()
    yield get_settings()
    reset_settings()
    reset_services()


@pytest_asyncio.fixture
async def ledger_db(ledger_settings: Settings) -> AsyncGenerator[Path, None]:
    """Migrated database plus a fresh global connection pool."""
    conn_module._pool = None
    results = await initialize_database(create_backup_before=False)
    assert results and all(r.success for r in results)
    try:
        yield ledger_settings.storage.db_path
    finally:
        await close_pool()


@pytest.fixture
def inventory_store(ledger_db: Path) -> SQLiteInventoryStore:
    return SQLiteInventoryStore()


@pytest.fixture
def movement_store(ledger_db: Path) -> SQLiteStockMovementStore:
    return SQLiteStockMovementStore()


@pytest.fixture
def make_item(
    inventory_store: SQLiteInventoryStore,
) -> Callable[..., Awaitable[InventoryItem]]:
    """Factory creating catalog items with sensible defaults."""

    async def _make(**overrides) -> InventoryItem:
        data = {
            "item_name": "Rice 25kg",
            "unit": "kg",
            "category": "GRAIN",
            "current_stock": 100.0,
            "min_stock": 20.0,
            "max_stock": 500.0,
            "cost_per_unit": 2.5,
        }
        data.update(overrides)
        return await inventory_store.create_item(InventoryItem(**data))

    return _make


@pytest_asyncio.fixture
async def async_client(ledger_db: Path) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client bound to the migrated test database."""
    from stockledger.api.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
