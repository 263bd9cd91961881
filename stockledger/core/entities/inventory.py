"""Inventory domain entities."""

from datetime import UTC, date, datetime
from enum import Enum

from pydantic import BaseModel, Field, model_validator


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in the ledger."""
    return datetime.now(UTC).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


class MovementType(str, Enum):
    """Types of stock movements."""

    IN = "IN"
    OUT = "OUT"
    ADJUSTMENT = "ADJUSTMENT"
    EXPIRED = "EXPIRED"
    DAMAGED = "DAMAGED"
    TRANSFER = "TRANSFER"


class ReferenceType(str, Enum):
    """Business reason a movement was recorded for."""

    PROCUREMENT = "PROCUREMENT"
    PRODUCTION = "PRODUCTION"
    DISTRIBUTION = "DISTRIBUTION"
    RETURN = "RETURN"
    DONATION = "DONATION"
    WASTE = "WASTE"
    EXPIRED = "EXPIRED"
    DAMAGED = "DAMAGED"
    TRANSFER_IN = "TRANSFER_IN"
    TRANSFER_OUT = "TRANSFER_OUT"
    COUNT_ADJUSTMENT = "COUNT_ADJUSTMENT"
    SYSTEM_CORRECTION = "SYSTEM_CORRECTION"
    OTHER = "OTHER"


class ApprovalState(str, Enum):
    """Review state of a recorded movement."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"


class InventoryItem(BaseModel):
    """A stock-keeping unit with its authoritative running balance."""

    id: int | None = None
    item_code: str | None = None
    item_name: str
    category: str = "OTHER"
    unit: str = "pcs"

    current_stock: float = Field(default=0.0, ge=0)
    min_stock: float = Field(default=0.0, ge=0)
    max_stock: float | None = Field(default=None, ge=0)
    reorder_quantity: float | None = Field(default=None, ge=0)

    # Read by costing collaborators, never computed here
    cost_per_unit: float | None = Field(default=None, ge=0)
    average_price: float | None = Field(default=None, ge=0)

    has_expiry: bool = False
    shelf_life: int | None = Field(default=None, ge=0)  # days

    is_active: bool = True
    version: int = 0  # bumped on every balance change
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _check_stock_range(self) -> "InventoryItem":
        if self.max_stock is not None and self.min_stock > self.max_stock:
            raise ValueError("min_stock must not exceed max_stock")
        return self

    @property
    def total_value(self) -> float:
        """Stock value at the catalog unit cost (missing cost counts as zero)."""
        return self.current_stock * (self.cost_per_unit or 0.0)

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock <= self.min_stock

    @property
    def is_out_of_stock(self) -> bool:
        return self.current_stock == 0

    @property
    def is_overstocked(self) -> bool:
        return self.max_stock is not None and self.current_stock >= self.max_stock


class StockMovement(BaseModel):
    """
    An immutable ledger entry.

    Only the approval fields are ever written after creation.
    """

    id: int | None = None
    inventory_id: int
    movement_type: MovementType
    quantity: float = Field(ge=0)  # magnitude as entered
    unit: str

    stock_before: float = Field(ge=0)
    stock_after: float = Field(ge=0)

    unit_cost: float | None = None
    total_cost: float | None = None

    reference_type: ReferenceType | None = None
    reference_id: str | None = None
    reference_number: str | None = None
    batch_number: str | None = None
    expiry_date: date | None = None
    notes: str | None = None
    document_url: str | None = None

    moved_by: str
    moved_at: datetime = Field(default_factory=utcnow)
    approved_by: str | None = None
    approved_at: datetime | None = None
    approval_notes: str | None = None

    @property
    def approval_state(self) -> ApprovalState:
        if self.approved_by is not None:
            return ApprovalState.APPROVED
        return ApprovalState.PENDING

    @property
    def is_approved(self) -> bool:
        return self.approval_state is ApprovalState.APPROVED


class ProposedMovement(BaseModel):
    """A movement a caller asks the ledger to record."""

    inventory_id: int
    movement_type: MovementType
    quantity: float
    unit_cost: float | None = Field(default=None, ge=0)
    reference_type: ReferenceType | None = None
    reference_id: str | None = None
    reference_number: str | None = None
    batch_number: str | None = None
    expiry_date: date | None = None
    notes: str | None = None
    document_url: str | None = None


class MovementFilters(BaseModel):
    """Criteria for listing ledger entries."""

    inventory_id: int | None = None
    movement_type: MovementType | None = None
    reference_type: ReferenceType | None = None
    reference_id: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    approval_state: ApprovalState | None = None
    moved_by: str | None = None
    approved_by: str | None = None

    @model_validator(mode="after")
    def _normalize_dates(self) -> "MovementFilters":
        # Stored timestamps are naive UTC
        for name in ("start_date", "end_date"):
            value = getattr(self, name)
            if value is not None:
                setattr(self, name, to_naive_utc(value))
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class MovementPage(BaseModel):
    """One page of ledger entries, newest first."""

    items: list[StockMovement]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return -(-self.total // self.page_size)

    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous_page(self) -> bool:
        return self.page > 1
