"""Record Movement Use Case: one validated ledger entry."""

from stockledger.application.dto.requests import RecordMovementRequest
from stockledger.application.dto.responses import (
    MovementWarningResponse,
    RecordMovementResponse,
    StockMovementResponse,
)
from stockledger.config import get_logger
from stockledger.core.services.stock_ledger import (
    MovementRejection,
    RecordedMovement,
    StockLedgerService,
)

logger = get_logger(__name__)


class RecordMovementUseCase:
    """Record a stock movement through the ledger."""

    def __init__(self, ledger: StockLedgerService | None = None):
        self._ledger = ledger

    async def _get_ledger(self) -> StockLedgerService:
        if self._ledger is None:
            from stockledger.application.services import get_stock_ledger_service

            self._ledger = await get_stock_ledger_service()
        return self._ledger

    async def execute(self, request: RecordMovementRequest) -> RecordedMovement:
        """
        Execute record movement use case.

        Raises:
            InvalidQuantityError / InsufficientStockError: Movement rejected
            InventoryItemNotFoundError: Unknown inventory item
            LedgerUnavailableError: Write could not be committed
        """
        logger.info(
            "record_movement_started",
            inventory_id=request.inventory_id,
            type=request.movement_type.value,
            quantity=request.quantity,
        )

        ledger = await self._get_ledger()
        outcome = await ledger.record(request.to_proposal(), moved_by=request.moved_by)

        if isinstance(outcome, MovementRejection):
            raise outcome.to_exception()

        return outcome

    def to_response(self, result: RecordedMovement) -> RecordMovementResponse:
        """Convert result to API response."""
        return RecordMovementResponse(
            movement=StockMovementResponse.from_entity(result.movement),
            warnings=[MovementWarningResponse.from_warning(w) for w in result.warnings],
        )
