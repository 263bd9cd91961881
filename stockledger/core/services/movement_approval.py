"""Movement approval: a one-way PENDING -> APPROVED sign-off."""

from stockledger.config import get_logger
from stockledger.core.entities.inventory import StockMovement, utcnow
from stockledger.core.exceptions import (
    AlreadyApprovedError,
    MovementNotFoundError,
    ValidationError,
)
from stockledger.core.interfaces.movement_store import IStockMovementStore

logger = get_logger(__name__)


class MovementApprovalService:
    """
    Attaches review decisions to recorded movements.

    Approval is audit metadata only; the balances a movement recorded
    are never touched here.
    """

    def __init__(self, movement_store: IStockMovementStore) -> None:
        self._movement_store = movement_store

    async def approve(
        self,
        movement_id: int,
        approver_id: str,
        notes: str | None = None,
    ) -> StockMovement:
        """
        Approve a movement.

        The store sets the approval fields only while they are empty, so
        two concurrent approvals cannot both succeed.

        Raises:
            MovementNotFoundError: No such movement
            AlreadyApprovedError: The movement already has an approver
        """
        if not approver_id:
            raise ValidationError("approver_id", "approver is required")

        updated = await self._movement_store.mark_approved(
            movement_id,
            approved_by=approver_id,
            approved_at=utcnow(),
            approval_notes=notes,
        )

        movement = await self._movement_store.get_movement(movement_id)
        if movement is None:
            raise MovementNotFoundError(movement_id)

        if not updated:
            logger.info(
                "movement_already_approved",
                movement_id=movement_id,
                approved_by=movement.approved_by,
                attempted_by=approver_id,
            )
            raise AlreadyApprovedError(movement_id, movement.approved_by)

        logger.info(
            "movement_approved",
            movement_id=movement_id,
            approved_by=approver_id,
        )
        return movement
