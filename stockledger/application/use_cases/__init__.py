"""Application use cases."""

from stockledger.application.use_cases.approve_movement import ApproveMovementUseCase
from stockledger.application.use_cases.create_inventory_item import CreateInventoryItemUseCase
from stockledger.application.use_cases.record_movement import RecordMovementUseCase
from stockledger.application.use_cases.submit_batch import SubmitBatchUseCase
from stockledger.application.use_cases.update_inventory_item import UpdateInventoryItemUseCase

__all__ = [
    "ApproveMovementUseCase",
    "CreateInventoryItemUseCase",
    "RecordMovementUseCase",
    "SubmitBatchUseCase",
    "UpdateInventoryItemUseCase",
]
