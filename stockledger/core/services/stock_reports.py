"""
Stock reporting.

Read-only projections over current balances and the movement ledger:
low-stock urgency, catalog statistics and period summaries.
"""

from datetime import datetime, timedelta

from stockledger.config import get_logger
from stockledger.core.entities.inventory import (
    InventoryItem,
    MovementType,
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
    MovementSummary,
    MovementTotals,
    MovementTypeSummary,
    UrgencyLevel,
)
from stockledger.core.exceptions import ValidationError
from stockledger.core.interfaces.inventory_store import IInventoryStore
from stockledger.core.interfaces.movement_store import IStockMovementStore

logger = get_logger(__name__)

# Upper bounds (inclusive) of stock percentage per tier
CRITICAL_THRESHOLD = 25
HIGH_THRESHOLD = 50

_TOTAL_FIELDS = {
    MovementType.IN: "in_",
    MovementType.OUT: "out",
    MovementType.ADJUSTMENT: "adjustments",
    MovementType.EXPIRED: "expired",
    MovementType.DAMAGED: "damaged",
    MovementType.TRANSFER: "transfers",
}


def _exact_percentage(item: InventoryItem) -> float:
    if item.min_stock <= 0:
        return 0.0
    return item.current_stock / item.min_stock * 100


def stock_percentage(item: InventoryItem) -> int:
    """current_stock as a rounded percentage of min_stock (0 without a minimum)."""
    return round(_exact_percentage(item))


def classify_urgency(item: InventoryItem) -> UrgencyLevel:
    """Urgency tier of a low-stock item; an empty item is always CRITICAL."""
    if item.current_stock <= 0:
        return UrgencyLevel.CRITICAL
    # Tiers compare the unrounded percentage
    percentage = _exact_percentage(item)
    if percentage <= CRITICAL_THRESHOLD:
        return UrgencyLevel.CRITICAL
    if percentage <= HIGH_THRESHOLD:
        return UrgencyLevel.HIGH
    return UrgencyLevel.MEDIUM


def reorder_amount(item: InventoryItem) -> float:
    if item.reorder_quantity:
        return item.reorder_quantity
    if item.max_stock is not None:
        return max(item.max_stock - item.current_stock, 0.0)
    return 0.0


def build_low_stock_report(items: list[InventoryItem]) -> LowStockReport:
    """Classify low-stock items and order them for replenishment."""
    entries = [
        LowStockEntry(
            item=item,
            urgency=classify_urgency(item),
            stock_percentage=stock_percentage(item),
            stock_difference=item.min_stock - item.current_stock,
            reorder_amount=reorder_amount(item),
        )
        for item in items
        if item.is_active and item.is_low_stock
    ]
    entries.sort(
        key=lambda e: (e.urgency.rank, e.item.current_stock, e.item.item_name.lower())
    )

    summary = LowStockSummary(
        total=len(entries),
        critical=sum(1 for e in entries if e.urgency == UrgencyLevel.CRITICAL),
        high=sum(1 for e in entries if e.urgency == UrgencyLevel.HIGH),
        medium=sum(1 for e in entries if e.urgency == UrgencyLevel.MEDIUM),
        out_of_stock=sum(1 for e in entries if e.is_out_of_stock),
    )
    return LowStockReport(entries=entries, summary=summary)


def build_inventory_stats(items: list[InventoryItem]) -> InventoryStats:
    active = [item for item in items if item.is_active]

    categories: dict[str, CategoryStats] = {}
    for item in active:
        stats = categories.setdefault(
            item.category,
            CategoryStats(category=item.category, count=0, total_value=0.0, low_stock_count=0),
        )
        stats.count += 1
        stats.total_value += item.total_value
        if item.is_low_stock:
            stats.low_stock_count += 1

    return InventoryStats(
        total_items=len(active),
        total_value=sum(item.total_value for item in active),
        low_stock_count=sum(1 for item in active if item.is_low_stock),
        out_of_stock_count=sum(1 for item in active if item.is_out_of_stock),
        overstocked_count=sum(1 for item in active if item.is_overstocked),
        by_category=sorted(categories.values(), key=lambda c: c.category),
    )


def build_movement_summary(
    movements: list[StockMovement],
    period_start: datetime,
    period_end: datetime,
) -> MovementSummary:
    by_type: dict[MovementType, MovementTypeSummary] = {}
    totals = MovementTotals()

    for movement in movements:
        value = movement.total_cost or 0.0
        row = by_type.setdefault(
            movement.movement_type,
            MovementTypeSummary(
                movement_type=movement.movement_type,
                count=0,
                total_quantity=0.0,
                total_value=0.0,
                approved_count=0,
                pending_count=0,
            ),
        )
        row.count += 1
        row.total_quantity += movement.quantity
        row.total_value += value
        if movement.is_approved:
            row.approved_count += 1
        else:
            row.pending_count += 1

        attr = _TOTAL_FIELDS[movement.movement_type]
        setattr(totals, attr, getattr(totals, attr) + movement.quantity)

    approved = sum(1 for m in movements if m.is_approved)
    return MovementSummary(
        period_start=period_start,
        period_end=period_end,
        total_movements=len(movements),
        total_approved=approved,
        total_pending=len(movements) - approved,
        total_value=sum(m.total_cost or 0.0 for m in movements),
        by_type=[by_type[t] for t in MovementType if t in by_type],
        totals=totals,
    )


class StockReportService:
    """Read-side service behind the low-stock, stats and summary views."""

    def __init__(
        self,
        inventory_store: IInventoryStore,
        movement_store: IStockMovementStore,
        summary_default_days: int = 30,
    ) -> None:
        self._inventory_store = inventory_store
        self._movement_store = movement_store
        self._summary_default_days = summary_default_days

    async def low_stock_report(self) -> LowStockReport:
        items = await self._inventory_store.list_low_stock()
        report = build_low_stock_report(items)
        logger.debug(
            "low_stock_report_built",
            total=report.summary.total,
            critical=report.summary.critical,
        )
        return report

    async def inventory_stats(self) -> InventoryStats:
        items = await self._inventory_store.list_active_items()
        return build_inventory_stats(items)

    async def movement_summary(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MovementSummary:
        """Summarize movements in [start, end]; defaults to the recent window."""
        end = to_naive_utc(end) if end else utcnow()
        start = to_naive_utc(start) if start else end - timedelta(days=self._summary_default_days)
        if start > end:
            raise ValidationError("start_date", "must not be after end_date", start.isoformat())

        movements = await self._movement_store.list_between(start, end)
        return build_movement_summary(movements, start, end)
