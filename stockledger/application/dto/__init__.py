"""Data Transfer Objects for API layer.

Request DTOs: Validate and parse incoming API requests.
Response DTOs: Structure and serialize API responses.

These are the ONLY contracts between API handlers and use cases.
"""

from stockledger.application.dto.requests import (
    ApproveMovementRequest,
    BatchMovementItem,
    CreateInventoryItemRequest,
    MovementFields,
    RecordMovementRequest,
    SubmitBatchRequest,
    UpdateInventoryItemRequest,
)
from stockledger.application.dto.responses import (
    BatchMovementResultResponse,
    CategoryStatsResponse,
    ErrorResponse,
    HealthResponse,
    InventoryItemListResponse,
    InventoryItemResponse,
    InventoryStatsResponse,
    LowStockItemResponse,
    LowStockResponse,
    LowStockSummaryResponse,
    MovementListResponse,
    MovementSummaryResponse,
    MovementTotalsResponse,
    MovementTypeResponse,
    MovementTypeSummaryResponse,
    MovementWarningResponse,
    PaginationMeta,
    DatabaseHealthResponse,
    RecordMovementResponse,
    StockMovementResponse,
    SubmitBatchResponse,
)

__all__ = [
    # Requests
    "ApproveMovementRequest",
    "BatchMovementItem",
    "CreateInventoryItemRequest",
    "MovementFields",
    "RecordMovementRequest",
    "SubmitBatchRequest",
    "UpdateInventoryItemRequest",
    # Responses
    "BatchMovementResultResponse",
    "CategoryStatsResponse",
    "ErrorResponse",
    "HealthResponse",
    "InventoryItemListResponse",
    "InventoryItemResponse",
    "InventoryStatsResponse",
    "LowStockItemResponse",
    "LowStockResponse",
    "LowStockSummaryResponse",
    "MovementListResponse",
    "MovementSummaryResponse",
    "MovementTotalsResponse",
    "MovementTypeResponse",
    "MovementTypeSummaryResponse",
    "MovementWarningResponse",
    "PaginationMeta",
    "DatabaseHealthResponse",
    "RecordMovementResponse",
    "StockMovementResponse",
    "SubmitBatchResponse",
]
