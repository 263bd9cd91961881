"""
Service factory functions for dependency injection.

This module provides factory functions that wire infrastructure
implementations to core services. Use cases should import from here.

Clean Architecture: Application layer orchestrates DI, not core layer.
"""

from typing import TYPE_CHECKING

from stockledger.config import get_settings
from stockledger.core.concurrency import KeyedLock
from stockledger.core.services import (
    BatchTransactionCoordinator,
    MovementApprovalService,
    StockLedgerService,
    StockReportService,
)

if TYPE_CHECKING:
    from stockledger.core.interfaces import IInventoryStore, IStockMovementStore


# Singleton service instances
_item_locks: KeyedLock | None = None
_stock_ledger_service: StockLedgerService | None = None
_approval_service: MovementApprovalService | None = None
_batch_coordinator: BatchTransactionCoordinator | None = None
_report_service: StockReportService | None = None


async def _default_stores() -> "tuple[IInventoryStore, IStockMovementStore]":
    # Lazy import infrastructure to avoid circular imports
    from stockledger.infrastructure.storage.sqlite import (
        get_inventory_store,
        get_movement_store,
    )

    return await get_inventory_store(), await get_movement_store()


def get_item_locks() -> KeyedLock:
    """
    Get the process-wide per-item lock registry.

    Shared by the ledger and the batch coordinator so single movements
    and batches on the same item exclude each other.
    """
    global _item_locks
    if _item_locks is None:
        _item_locks = KeyedLock(timeout=get_settings().ledger.lock_timeout)
    return _item_locks


async def get_stock_ledger_service(
    inventory_store: "IInventoryStore | None" = None,
    movement_store: "IStockMovementStore | None" = None,
) -> StockLedgerService:
    """
    Get or create StockLedgerService instance.

    Creates infrastructure dependencies if not provided.
    Uses singleton pattern for the default wiring.

    Args:
        inventory_store: Optional inventory store override
        movement_store: Optional movement store override

    Returns:
        Configured StockLedgerService
    """
    global _stock_ledger_service

    overridden = inventory_store is not None or movement_store is not None
    if _stock_ledger_service is not None and not overridden:
        return _stock_ledger_service

    default_inventory, default_movements = await _default_stores()
    ledger_settings = get_settings().ledger

    service = StockLedgerService(
        inventory_store=inventory_store or default_inventory,
        movement_store=movement_store or default_movements,
        locks=get_item_locks(),
        max_retries=ledger_settings.max_retries,
        retry_delay=ledger_settings.retry_delay,
        retry_multiplier=ledger_settings.retry_multiplier,
        default_page_size=ledger_settings.default_page_size,
        max_page_size=ledger_settings.max_page_size,
    )

    if not overridden:
        _stock_ledger_service = service

    return service


async def get_approval_service(
    movement_store: "IStockMovementStore | None" = None,
) -> MovementApprovalService:
    """Get or create MovementApprovalService instance."""
    global _approval_service

    if _approval_service is not None and movement_store is None:
        return _approval_service

    if movement_store is None:
        _, default_movements = await _default_stores()
        _approval_service = MovementApprovalService(default_movements)
        return _approval_service

    return MovementApprovalService(movement_store)


async def get_batch_coordinator(
    ledger: StockLedgerService | None = None,
) -> BatchTransactionCoordinator:
    """Get or create BatchTransactionCoordinator bound to the ledger."""
    global _batch_coordinator

    if _batch_coordinator is not None and ledger is None:
        return _batch_coordinator

    coordinator = BatchTransactionCoordinator(
        ledger=ledger or await get_stock_ledger_service(),
        max_batch_size=get_settings().ledger.max_batch_size,
    )

    if ledger is None:
        _batch_coordinator = coordinator

    return coordinator


async def get_report_service(
    inventory_store: "IInventoryStore | None" = None,
    movement_store: "IStockMovementStore | None" = None,
) -> StockReportService:
    """Get or create StockReportService instance."""
    global _report_service

    overridden = inventory_store is not None or movement_store is not None
    if _report_service is not None and not overridden:
        return _report_service

    default_inventory, default_movements = await _default_stores()
    service = StockReportService(
        inventory_store=inventory_store or default_inventory,
        movement_store=movement_store or default_movements,
        summary_default_days=get_settings().ledger.summary_default_days,
    )

    if not overridden:
        _report_service = service

    return service


def reset_services() -> None:
    """
    Reset all singleton service instances.

    Useful for testing or when configuration changes.
    """
    global _item_locks
    global _stock_ledger_service
    global _approval_service
    global _batch_coordinator
    global _report_service

    _item_locks = None
    _stock_ledger_service = None
    _approval_service = None
    _batch_coordinator = None
    _report_service = None


__all__ = [
    # Factory functions
    "get_item_locks",
    "get_stock_ledger_service",
    "get_approval_service",
    "get_batch_coordinator",
    "get_report_service",
    # Reset
    "reset_services",
]
