"""
Dependency injection container for FastAPI.

Provides service instances to route handlers.
"""

from functools import lru_cache

from stockledger.application.services import (
    get_report_service,
    get_stock_ledger_service,
)
from stockledger.application.use_cases import (
    ApproveMovementUseCase,
    CreateInventoryItemUseCase,
    RecordMovementUseCase,
    SubmitBatchUseCase,
    UpdateInventoryItemUseCase,
)
from stockledger.config import Settings, get_settings
from stockledger.core.services import StockLedgerService, StockReportService
from stockledger.infrastructure.storage.sqlite import (
    SQLiteInventoryStore,
    get_inventory_store,
)


@lru_cache
def get_app_settings() -> Settings:
    """Get cached application settings."""
    return get_settings()


# Service dependencies
async def get_ledger() -> StockLedgerService:
    """Get stock ledger service."""
    return await get_stock_ledger_service()


async def get_reports() -> StockReportService:
    """Get stock report service."""
    return await get_report_service()


# Store dependencies
async def get_inv_item_store() -> SQLiteInventoryStore:
    """Get inventory store."""
    return await get_inventory_store()


# Use case dependencies
def get_create_inventory_item_use_case() -> CreateInventoryItemUseCase:
    """Get create inventory item use case."""
    return CreateInventoryItemUseCase()


def get_update_inventory_item_use_case() -> UpdateInventoryItemUseCase:
    """Get update inventory item use case."""
    return UpdateInventoryItemUseCase()


def get_record_movement_use_case() -> RecordMovementUseCase:
    """Get record movement use case."""
    return RecordMovementUseCase()


def get_submit_batch_use_case() -> SubmitBatchUseCase:
    """Get submit batch use case."""
    return SubmitBatchUseCase()


def get_approve_movement_use_case() -> ApproveMovementUseCase:
    """Get approve movement use case."""
    return ApproveMovementUseCase()
