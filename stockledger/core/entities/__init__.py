"""Core domain entities."""

from stockledger.core.entities.inventory import (
    ApprovalState,
    InventoryItem,
    MovementFilters,
    MovementPage,
    MovementType,
    ProposedMovement,
    ReferenceType,
    StockMovement,
    to_naive_utc,
    utcnow,
)
from stockledger.core.entities.reporting import (
    CategoryStats,
    InventoryStats,
    LowStockEntry,
    LowStockReport,
    LowStockSummary,
    MovementTotals,
    MovementSummary,
    MovementTypeSummary,
    UrgencyLevel,
)

__all__ = [
    # Inventory entities
    "ApprovalState",
    "InventoryItem",
    "MovementFilters",
    "MovementPage",
    "MovementType",
    "ProposedMovement",
    "ReferenceType",
    "StockMovement",
    "to_naive_utc",
    "utcnow",
    # Reporting entities
    "CategoryStats",
    "InventoryStats",
    "LowStockEntry",
    "LowStockReport",
    "LowStockSummary",
    "MovementTotals",
    "MovementSummary",
    "MovementTypeSummary",
    "UrgencyLevel",
]
