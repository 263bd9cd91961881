"""Response DTOs for API endpoints.

Pydantic v2 models for API responses.
These are the ONLY contracts between use cases and API.
"""

from datetime import date, datetime

from pydantic import BaseModel, Field

from stockledger.core.entities.inventory import InventoryItem, StockMovement
from stockledger.core.services.movement_validator import MovementWarning


# --- Inventory catalog ---


class InventoryItemResponse(BaseModel):
    """Inventory item with its current balance."""

    id: int
    item_code: str | None = None
    item_name: str
    category: str
    unit: str
    current_stock: float
    min_stock: float
    max_stock: float | None = None
    reorder_quantity: float | None = None
    cost_per_unit: float | None = None
    average_price: float | None = None
    has_expiry: bool = False
    shelf_life: int | None = None
    is_active: bool = True
    total_value: float = Field(..., description="current_stock x cost_per_unit")
    is_low_stock: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, item: InventoryItem) -> "InventoryItemResponse":
        return cls(
            id=item.id,  # type: ignore[arg-type]
            item_code=item.item_code,
            item_name=item.item_name,
            category=item.category,
            unit=item.unit,
            current_stock=item.current_stock,
            min_stock=item.min_stock,
            max_stock=item.max_stock,
            reorder_quantity=item.reorder_quantity,
            cost_per_unit=item.cost_per_unit,
            average_price=item.average_price,
            has_expiry=item.has_expiry,
            shelf_life=item.shelf_life,
            is_active=item.is_active,
            total_value=item.total_value,
            is_low_stock=item.is_low_stock,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )


class InventoryItemListResponse(BaseModel):
    items: list[InventoryItemResponse]
    total: int
    limit: int
    offset: int


class LowStockItemResponse(BaseModel):
    """Low-stock item with urgency classification."""

    item: InventoryItemResponse
    urgency: str = Field(..., description="CRITICAL, HIGH or MEDIUM")
    stock_percentage: int = Field(..., description="current_stock as % of min_stock")
    stock_difference: float = Field(..., description="min_stock - current_stock")
    reorder_amount: float
    is_out_of_stock: bool


class LowStockSummaryResponse(BaseModel):
    total: int
    critical: int
    high: int
    medium: int
    out_of_stock: int


class LowStockResponse(BaseModel):
    """Low-stock items ordered by urgency."""

    items: list[LowStockItemResponse]
    summary: LowStockSummaryResponse


class CategoryStatsResponse(BaseModel):
    category: str
    count: int
    total_value: float
    low_stock_count: int


class InventoryStatsResponse(BaseModel):
    total_items: int
    total_value: float
    low_stock_count: int
    out_of_stock_count: int
    overstocked_count: int
    by_category: list[CategoryStatsResponse]


# --- Stock movements ---


class MovementWarningResponse(BaseModel):
    code: str = Field(..., description="BELOW_MINIMUM or ABOVE_MAXIMUM")
    message: str

    @classmethod
    def from_warning(cls, warning: MovementWarning) -> "MovementWarningResponse":
        return cls(code=warning.code.value, message=warning.message)


class StockMovementResponse(BaseModel):
    """Recorded ledger entry."""

    id: int
    inventory_id: int
    movement_type: str
    quantity: float
    unit: str
    stock_before: float
    stock_after: float
    unit_cost: float | None = None
    total_cost: float | None = None
    reference_type: str | None = None
    reference_id: str | None = None
    reference_number: str | None = None
    batch_number: str | None = None
    expiry_date: date | None = None
    notes: str | None = None
    document_url: str | None = None
    moved_by: str
    moved_at: datetime
    approval_state: str
    approved_by: str | None = None
    approved_at: datetime | None = None
    approval_notes: str | None = None

    @classmethod
    def from_entity(cls, movement: StockMovement) -> "StockMovementResponse":
        return cls(
            id=movement.id,  # type: ignore[arg-type]
            inventory_id=movement.inventory_id,
            movement_type=movement.movement_type.value,
            quantity=movement.quantity,
            unit=movement.unit,
            stock_before=movement.stock_before,
            stock_after=movement.stock_after,
            unit_cost=movement.unit_cost,
            total_cost=movement.total_cost,
            reference_type=movement.reference_type.value if movement.reference_type else None,
            reference_id=movement.reference_id,
            reference_number=movement.reference_number,
            batch_number=movement.batch_number,
            expiry_date=movement.expiry_date,
            notes=movement.notes,
            document_url=movement.document_url,
            moved_by=movement.moved_by,
            moved_at=movement.moved_at,
            approval_state=movement.approval_state.value,
            approved_by=movement.approved_by,
            approved_at=movement.approved_at,
            approval_notes=movement.approval_notes,
        )


class RecordMovementResponse(BaseModel):
    """Accepted movement with any non-blocking warnings."""

    movement: StockMovementResponse
    warnings: list[MovementWarningResponse] = Field(default=[])


class BatchMovementResultResponse(BaseModel):
    index: int
    movement: StockMovementResponse
    warnings: list[MovementWarningResponse] = Field(default=[])


class SubmitBatchResponse(BaseModel):
    """Every movement of an accepted batch, in submission order."""

    reference_type: str
    reference_id: str
    reference_number: str
    count: int
    movements: list[BatchMovementResultResponse]


class PaginationMeta(BaseModel):
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool


class MovementListResponse(BaseModel):
    """Page of movements, newest first."""

    items: list[StockMovementResponse]
    pagination: PaginationMeta


class MovementTypeResponse(BaseModel):
    movement_type: str
    label: str
    description: str
    effect: str = Field(..., description="increase, decrease or absolute")
    reference_types: list[str]


class MovementTypeSummaryResponse(BaseModel):
    movement_type: str
    count: int
    total_quantity: float
    total_value: float
    approved_count: int
    pending_count: int


class MovementTotalsResponse(BaseModel):
    in_: float = Field(..., serialization_alias="in")
    out: float
    adjustments: float
    expired: float
    damaged: float
    transfers: float
    net_change: float


class MovementSummaryResponse(BaseModel):
    period_start: datetime
    period_end: datetime
    total_movements: int
    total_approved: int
    total_pending: int
    total_value: float
    by_type: list[MovementTypeSummaryResponse]
    totals: MovementTotalsResponse


# --- System ---


class DatabaseHealthResponse(BaseModel):
    """Ledger database status."""

    available: bool
    schema_version: str | None = None
    missing_schema: dict[str, list[str]] = Field(default={}, description="Missing tables (\"*\") or columns")
    writer_busy: bool = False
    latency_ms: float | None = None
    error: str | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str = "1.0.0"
    uptime_seconds: float
    database: DatabaseHealthResponse | None = None


class ErrorResponse(BaseModel):
    """Standardized error response DTO.

    Every error response includes:
    - error_code: machine-readable code (e.g. INSUFFICIENT_STOCK)
    - message: human-readable description
    - hint: suggested recovery action
    - path: request path that triggered the error
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error description")
    hint: str | None = Field(default=None, description="Suggested recovery action")
    detail: str | None = Field(default=None, description="Additional details")
    path: str | None = Field(default=None, description="Request path")
    details: dict | None = Field(default=None, description="Structured error context")
    timestamp: datetime = Field(default_factory=datetime.now)
