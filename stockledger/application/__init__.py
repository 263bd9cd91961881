"""
Application layer - Use cases, DTOs, and service factories.

This layer orchestrates business logic by:
1. Defining request/response DTOs for API contracts
2. Implementing use cases that coordinate core services
3. Providing factory functions for dependency injection

Use cases are the only entry point for API write handlers.
"""

from stockledger.application.dto.requests import (
    ApproveMovementRequest,
    BatchMovementItem,
    CreateInventoryItemRequest,
    RecordMovementRequest,
    SubmitBatchRequest,
    UpdateInventoryItemRequest,
)
from stockledger.application.dto.responses import (
    ErrorResponse,
    HealthResponse,
    InventoryItemResponse,
    InventoryStatsResponse,
    LowStockResponse,
    MovementListResponse,
    MovementSummaryResponse,
    RecordMovementResponse,
    StockMovementResponse,
    SubmitBatchResponse,
)
from stockledger.application.services import (
    get_approval_service,
    get_batch_coordinator,
    get_report_service,
    get_stock_ledger_service,
    reset_services,
)
from stockledger.application.use_cases import (
    ApproveMovementUseCase,
    CreateInventoryItemUseCase,
    RecordMovementUseCase,
    SubmitBatchUseCase,
    UpdateInventoryItemUseCase,
)

__all__ = [
    # Request DTOs
    "ApproveMovementRequest",
    "BatchMovementItem",
    "CreateInventoryItemRequest",
    "RecordMovementRequest",
    "SubmitBatchRequest",
    "UpdateInventoryItemRequest",
    # Response DTOs
    "ErrorResponse",
    "HealthResponse",
    "InventoryItemResponse",
    "InventoryStatsResponse",
    "LowStockResponse",
    "MovementListResponse",
    "MovementSummaryResponse",
    "RecordMovementResponse",
    "StockMovementResponse",
    "SubmitBatchResponse",
    # Use Cases
    "ApproveMovementUseCase",
    "CreateInventoryItemUseCase",
    "RecordMovementUseCase",
    "SubmitBatchUseCase",
    "UpdateInventoryItemUseCase",
    # Service factories
    "get_approval_service",
    "get_batch_coordinator",
    "get_report_service",
    "get_stock_ledger_service",
    "reset_services",
]
