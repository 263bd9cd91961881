"""Read-only projections derived from balances and the ledger."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel

from stockledger.core.entities.inventory import InventoryItem, MovementType


class UrgencyLevel(str, Enum):
    """Replenishment urgency, most urgent first."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"

    @property
    def rank(self) -> int:
        return _URGENCY_RANK[self]


_URGENCY_RANK = {
    UrgencyLevel.CRITICAL: 0,
    UrgencyLevel.HIGH: 1,
    UrgencyLevel.MEDIUM: 2,
}


class LowStockEntry(BaseModel):
    """An item at or below its minimum, with its urgency tier."""

    item: InventoryItem
    urgency: UrgencyLevel
    stock_percentage: int
    stock_difference: float
    reorder_amount: float

    @property
    def is_out_of_stock(self) -> bool:
        return self.item.is_out_of_stock


class LowStockSummary(BaseModel):
    total: int = 0
    critical: int = 0
    high: int = 0
    medium: int = 0
    out_of_stock: int = 0


class LowStockReport(BaseModel):
    entries: list[LowStockEntry]
    summary: LowStockSummary


class CategoryStats(BaseModel):
    category: str
    count: int
    total_value: float
    low_stock_count: int


class InventoryStats(BaseModel):
    """Catalog-wide stock statistics over active items."""

    total_items: int
    total_value: float
    low_stock_count: int
    out_of_stock_count: int
    overstocked_count: int
    by_category: list[CategoryStats]


class MovementTypeSummary(BaseModel):
    movement_type: MovementType
    count: int
    total_quantity: float
    total_value: float
    approved_count: int
    pending_count: int


class MovementTotals(BaseModel):
    in_: float = 0.0
    out: float = 0.0
    adjustments: float = 0.0
    expired: float = 0.0
    damaged: float = 0.0
    transfers: float = 0.0

    @property
    def net_change(self) -> float:
        return self.in_ - self.out


class MovementSummary(BaseModel):
    """Ledger activity over a period."""

    period_start: datetime
    period_end: datetime
    total_movements: int
    total_approved: int
    total_pending: int
    total_value: float
    by_type: list[MovementTypeSummary]
    totals: MovementTotals
