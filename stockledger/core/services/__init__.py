"""
Core business logic services.

Layer-pure services that depend only on:
- stockledger/core/entities/*
- stockledger/core/interfaces/*
- stockledger/core/exceptions.py

NO infrastructure imports. All dependencies injected via constructor.
"""

from stockledger.core.services.batch_coordinator import (
    BatchFailure,
    BatchRejection,
    BatchTransactionCoordinator,
    CommittedBatch,
)
from stockledger.core.services.movement_approval import MovementApprovalService
from stockledger.core.services.movement_validator import (
    MOVEMENT_TYPES,
    BalanceEffect,
    MovementDecision,
    MovementTypeInfo,
    MovementValidator,
    MovementWarning,
    RejectionReason,
    WarningCode,
    compute_stock_after,
)
from stockledger.core.services.stock_ledger import (
    MovementRejection,
    RecordedMovement,
    StockLedgerService,
    build_movement,
)
from stockledger.core.services.stock_reports import (
    StockReportService,
    build_inventory_stats,
    build_low_stock_report,
    build_movement_summary,
    classify_urgency,
)

__all__ = [
    # Movement Validator
    "MOVEMENT_TYPES",
    "BalanceEffect",
    "MovementDecision",
    "MovementTypeInfo",
    "MovementValidator",
    "MovementWarning",
    "RejectionReason",
    "WarningCode",
    "compute_stock_after",
    # Stock Ledger
    "MovementRejection",
    "RecordedMovement",
    "StockLedgerService",
    "build_movement",
    # Approval
    "MovementApprovalService",
    # Batch
    "BatchFailure",
    "BatchRejection",
    "BatchTransactionCoordinator",
    "CommittedBatch",
    # Reports
    "StockReportService",
    "build_inventory_stats",
    "build_low_stock_report",
    "build_movement_summary",
    "classify_urgency",
]
