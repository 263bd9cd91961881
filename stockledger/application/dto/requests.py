"""Request DTOs for API endpoints.

Pydantic v2 models for API request validation.
These are the ONLY contracts between API and use cases.

Quantities are deliberately unbounded here: zero, negative and
insufficient quantities are ledger rejections, not schema errors.
"""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field

from stockledger.core.entities.inventory import MovementType, ProposedMovement, ReferenceType


class CreateInventoryItemRequest(BaseModel):
    """Request to add an item to the inventory catalog."""

    item_code: str | None = Field(default=None, description="Unique human code", examples=["RICE-25KG"])
    item_name: str = Field(..., min_length=1, description="Item name")
    category: str = Field(default="OTHER", description="Catalog category", examples=["GRAIN"])
    unit: str = Field(default="pcs", min_length=1, description="Unit of measure", examples=["kg"])
    current_stock: float = Field(default=0.0, ge=0, description="Seed balance")
    min_stock: float = Field(default=0.0, ge=0, description="Minimum stock threshold")
    max_stock: float | None = Field(default=None, ge=0, description="Maximum stock threshold")
    reorder_quantity: float | None = Field(default=None, ge=0, description="Default reorder amount")
    cost_per_unit: float | None = Field(default=None, ge=0, description="Catalog unit cost")
    average_price: float | None = Field(default=None, ge=0, description="Average purchase price")
    has_expiry: bool = Field(default=False, description="Whether the item is perishable")
    shelf_life: int | None = Field(default=None, ge=0, description="Shelf life in days")


class UpdateInventoryItemRequest(BaseModel):
    """
    Partial update of catalog fields.

    Only fields present in the body change. The balance is not a catalog
    field; it moves through recorded movements only.
    """

    model_config = ConfigDict(extra="forbid")

    item_code: str | None = Field(default=None, description="Unique human code")
    item_name: str | None = Field(default=None, min_length=1, description="Item name")
    category: str | None = Field(default=None, description="Catalog category")
    unit: str | None = Field(default=None, min_length=1, description="Unit of measure")
    min_stock: float | None = Field(default=None, ge=0, description="Minimum stock threshold")
    max_stock: float | None = Field(default=None, ge=0, description="Maximum stock threshold")
    reorder_quantity: float | None = Field(default=None, ge=0, description="Default reorder amount")
    cost_per_unit: float | None = Field(default=None, ge=0, description="Catalog unit cost")
    average_price: float | None = Field(default=None, ge=0, description="Average purchase price")
    has_expiry: bool | None = Field(default=None, description="Whether the item is perishable")
    shelf_life: int | None = Field(default=None, ge=0, description="Shelf life in days")

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class MovementFields(BaseModel):
    """Fields shared by single and batched movement requests."""

    inventory_id: int = Field(..., description="Inventory item ID")
    movement_type: MovementType = Field(..., description="Movement type")
    quantity: float = Field(
        ...,
        description="Magnitude as entered; for ADJUSTMENT the new absolute balance",
    )
    unit_cost: float | None = Field(default=None, ge=0, description="Movement-time unit cost")
    batch_number: str | None = Field(default=None, description="Supplier or production batch")
    expiry_date: date | None = Field(default=None, description="Expiry of the moved goods")
    notes: str | None = Field(default=None, description="Free-text notes")
    document_url: str | None = Field(default=None, description="Supporting document link")


class RecordMovementRequest(MovementFields):
    """Request to record one stock movement."""

    reference_type: ReferenceType | None = Field(default=None, description="Business reason")
    reference_id: str | None = Field(default=None, description="ID of the source document")
    reference_number: str | None = Field(default=None, description="Number of the source document")
    moved_by: str = Field(..., min_length=1, description="Actor recording the movement")

    def to_proposal(self) -> ProposedMovement:
        return ProposedMovement(**self.model_dump(exclude={"moved_by"}))


class BatchMovementItem(MovementFields):
    """One movement inside a batch; provenance comes from the batch."""

    def to_proposal(self) -> ProposedMovement:
        return ProposedMovement(**self.model_dump())


class SubmitBatchRequest(BaseModel):
    """Request to record several movements tied to one business document."""

    movements: list[BatchMovementItem] = Field(..., description="Movements in order")
    reference_type: ReferenceType = Field(..., description="Business reason for the batch")
    reference_id: str = Field(..., min_length=1, description="ID of the source document")
    reference_number: str = Field(..., min_length=1, description="Number of the source document")
    moved_by: str = Field(..., min_length=1, description="Actor submitting the batch")
    notes: str | None = Field(default=None, description="Notes for movements that have none")


class ApproveMovementRequest(BaseModel):
    """Request to sign off a recorded movement."""

    approver_id: str = Field(..., min_length=1, description="Actor approving the movement")
    notes: str | None = Field(default=None, description="Approval notes")

