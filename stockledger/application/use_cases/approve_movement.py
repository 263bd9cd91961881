"""Approve Movement Use Case."""

from stockledger.application.dto.requests import ApproveMovementRequest
from stockledger.application.dto.responses import StockMovementResponse
from stockledger.config import get_logger
from stockledger.core.entities.inventory import StockMovement
from stockledger.core.services.movement_approval import MovementApprovalService

logger = get_logger(__name__)


class ApproveMovementUseCase:
    """Sign off a recorded movement. Balances are never touched."""

    def __init__(self, approval_service: MovementApprovalService | None = None):
        self._approval_service = approval_service

    async def _get_approval_service(self) -> MovementApprovalService:
        if self._approval_service is None:
            from stockledger.application.services import get_approval_service

            self._approval_service = await get_approval_service()
        return self._approval_service

    async def execute(self, movement_id: int, request: ApproveMovementRequest) -> StockMovement:
        """
        Execute approve movement use case.

        Raises:
            MovementNotFoundError: No such movement
            AlreadyApprovedError: Movement was approved before
        """
        service = await self._get_approval_service()
        return await service.approve(movement_id, request.approver_id, notes=request.notes)

    def to_response(self, movement: StockMovement) -> StockMovementResponse:
        return StockMovementResponse.from_entity(movement)
