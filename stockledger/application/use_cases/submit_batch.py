"""Submit Batch Use Case: all-or-nothing multi-item movements."""

from stockledger.application.dto.requests import SubmitBatchRequest
from stockledger.application.dto.responses import (
    BatchMovementResultResponse,
    MovementWarningResponse,
    StockMovementResponse,
    SubmitBatchResponse,
)
from stockledger.config import get_logger
from stockledger.core.services.batch_coordinator import (
    BatchRejection,
    BatchTransactionCoordinator,
    CommittedBatch,
)

logger = get_logger(__name__)


class SubmitBatchUseCase:
    """Submit a batch of movements tied to one business document."""

    def __init__(self, coordinator: BatchTransactionCoordinator | None = None):
        self._coordinator = coordinator

    async def _get_coordinator(self) -> BatchTransactionCoordinator:
        if self._coordinator is None:
            from stockledger.application.services import get_batch_coordinator

            self._coordinator = await get_batch_coordinator()
        return self._coordinator

    async def execute(self, request: SubmitBatchRequest) -> CommittedBatch:
        """
        Execute submit batch use case.

        Raises:
            BatchValidationFailedError: At least one movement was rejected
            InventoryItemNotFoundError: A movement targets an unknown item
            ValidationError: Empty or oversized batch
        """
        logger.info(
            "submit_batch_started",
            reference_type=request.reference_type.value,
            reference_number=request.reference_number,
            size=len(request.movements),
        )
        coordinator = await self._get_coordinator()
        outcome = await coordinator.submit_batch(
            [m.to_proposal() for m in request.movements],
            reference_type=request.reference_type,
            reference_id=request.reference_id,
            reference_number=request.reference_number,
            moved_by=request.moved_by,
            notes=request.notes,
        )

        if isinstance(outcome, BatchRejection):
            raise outcome.to_exception()

        return outcome

    def to_response(self, result: CommittedBatch) -> SubmitBatchResponse:
        """Convert result to API response."""
        first = result.movements[0]
        return SubmitBatchResponse(
            reference_type=first.reference_type.value if first.reference_type else "",
            reference_id=first.reference_id or "",
            reference_number=first.reference_number or "",
            count=len(result.movements),
            movements=[
                BatchMovementResultResponse(
                    index=index,
                    movement=StockMovementResponse.from_entity(movement),
                    warnings=[
                        MovementWarningResponse.from_warning(w)
                        for w in result.warnings.get(index, ())
                    ],
                )
                for index, movement in enumerate(result.movements)
            ],
        )
