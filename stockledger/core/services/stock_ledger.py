"""
Stock Ledger Service.

The only component that creates stock movements. Every accepted
movement is appended to the ledger and applied to its item's balance
as one unit, serialized per inventory item.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar, cast

from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from stockledger.config import get_logger
from stockledger.core.concurrency import KeyedLock
from stockledger.core.entities.inventory import (
    InventoryItem,
    MovementFilters,
    MovementPage,
    ProposedMovement,
    StockMovement,
    utcnow,
)
from stockledger.core.exceptions import (
    ConcurrencyConflictError,
    InventoryItemNotFoundError,
    LedgerUnavailableError,
    MovementNotFoundError,
    MovementRejectedError,
    ValidationError,
)
from stockledger.core.interfaces.inventory_store import IInventoryStore
from stockledger.core.interfaces.movement_store import IStockMovementStore
from stockledger.core.services.movement_validator import (
    MovementDecision,
    MovementValidator,
    MovementWarning,
    RejectionReason,
)

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RecordedMovement:
    """An accepted movement and the warnings raised while validating it."""

    movement: StockMovement
    warnings: tuple[MovementWarning, ...] = ()


@dataclass(frozen=True)
class MovementRejection:
    """A refused movement; nothing was written."""

    inventory_id: int
    decision: MovementDecision

    @property
    def reason(self) -> RejectionReason:
        return cast(RejectionReason, self.decision.reason)

    @property
    def detail(self) -> str | None:
        return self.decision.detail

    @property
    def shortfall(self) -> float | None:
        return self.decision.shortfall

    def to_exception(self) -> MovementRejectedError:
        return self.decision.to_exception(self.inventory_id)


def build_movement(
    item: InventoryItem,
    proposal: ProposedMovement,
    decision: MovementDecision,
    moved_by: str,
) -> StockMovement:
    """Ledger entry for an accepted decision, snapshotting balances and cost."""
    quantity = float(proposal.quantity)
    total_cost = (
        quantity * proposal.unit_cost if proposal.unit_cost is not None else None
    )
    return StockMovement(
        inventory_id=cast(int, item.id),
        movement_type=proposal.movement_type,
        quantity=quantity,
        unit=item.unit,
        stock_before=decision.stock_before,
        stock_after=cast(float, decision.stock_after),
        unit_cost=proposal.unit_cost,
        total_cost=total_cost,
        reference_type=proposal.reference_type,
        reference_id=proposal.reference_id,
        reference_number=proposal.reference_number,
        batch_number=proposal.batch_number,
        expiry_date=proposal.expiry_date,
        notes=proposal.notes,
        document_url=proposal.document_url,
        moved_by=moved_by,
        moved_at=utcnow(),
    )


class StockLedgerService:
    """
    Records movements and serves the ledger history.

    Writes for one inventory item are serialized with a keyed lock and
    checked against the item's version at commit; a conflict is retried
    a bounded number of times and then reported as LedgerUnavailableError.
    """

    def __init__(
        self,
        inventory_store: IInventoryStore,
        movement_store: IStockMovementStore,
        validator: MovementValidator | None = None,
        locks: KeyedLock | None = None,
        max_retries: int = 3,
        retry_delay: float = 0.05,
        retry_multiplier: float = 2.0,
        default_page_size: int = 10,
        max_page_size: int = 100,
    ) -> None:
        self.inventory_store = inventory_store
        self.movement_store = movement_store
        self.validator = validator or MovementValidator()
        self.locks = locks or KeyedLock()
        self._max_retries = max(1, max_retries)
        self._retry_delay = retry_delay
        self._retry_multiplier = retry_multiplier
        self._default_page_size = default_page_size
        self._max_page_size = max_page_size

    async def record(
        self,
        proposal: ProposedMovement,
        moved_by: str,
    ) -> RecordedMovement | MovementRejection:
        """
        Validate and record one movement.

        Returns the stored movement, or a MovementRejection when the
        validator refuses it. Raises InventoryItemNotFoundError for an
        unknown item and LedgerUnavailableError when the write could not
        be committed.
        """
        if not moved_by:
            raise ValidationError("moved_by", "actor is required")

        return await self.run_with_retry(
            "record_movement", self._record_once, proposal, moved_by
        )

    async def _record_once(
        self,
        proposal: ProposedMovement,
        moved_by: str,
    ) -> RecordedMovement | MovementRejection:
        async with self.locks.acquire(proposal.inventory_id):
            item = await self.inventory_store.get_item(proposal.inventory_id)
            if item is None:
                raise InventoryItemNotFoundError(proposal.inventory_id)

            decision = self.validator.validate_for_item(
                item, proposal.movement_type, proposal.quantity
            )
            if not decision.accepted:
                logger.info(
                    "movement_rejected",
                    inventory_id=proposal.inventory_id,
                    type=proposal.movement_type.value,
                    qty=proposal.quantity,
                    reason=decision.reason.value if decision.reason else None,
                )
                return MovementRejection(proposal.inventory_id, decision)

            movement = build_movement(item, proposal, decision, moved_by)
            saved = await self.movement_store.append(
                movement, expected_version=item.version
            )

        logger.info(
            "stock_movement_recorded",
            movement_id=saved.id,
            inventory_id=saved.inventory_id,
            type=saved.movement_type.value,
            qty=saved.quantity,
            stock_before=saved.stock_before,
            stock_after=saved.stock_after,
            warnings=[w.code.value for w in decision.warnings],
        )
        return RecordedMovement(movement=saved, warnings=decision.warnings)

    async def get_movement(self, movement_id: int) -> StockMovement:
        movement = await self.movement_store.get_movement(movement_id)
        if movement is None:
            raise MovementNotFoundError(movement_id)
        return movement

    async def list_movements(
        self,
        filters: MovementFilters | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> MovementPage:
        """Filtered page of movements, newest first."""
        if page < 1:
            raise ValidationError("page", "must be 1 or greater", page)
        size = page_size or self._default_page_size
        if size < 1:
            raise ValidationError("page_size", "must be 1 or greater", page_size)
        size = min(size, self._max_page_size)

        items, total = await self.movement_store.list_movements(
            filters or MovementFilters(),
            limit=size,
            offset=(page - 1) * size,
        )
        return MovementPage(items=items, total=total, page=page, page_size=size)

    def _get_retry_decorator(self) -> Any:
        """Get tenacity retry decorator for concurrency conflicts."""
        return retry(
            stop=stop_after_attempt(self._max_retries),
            wait=wait_exponential(
                multiplier=self._retry_delay,
                min=self._retry_delay,
                max=self._retry_delay * (self._retry_multiplier**3),
            ),
            retry=retry_if_exception_type(ConcurrencyConflictError),
            before_sleep=self._log_retry,
            reraise=True,
        )

    @staticmethod
    def _log_retry(retry_state: RetryCallState) -> None:
        """Log retry attempts."""
        logger.warning(
            "ledger_conflict_retry",
            attempt=retry_state.attempt_number,
            error=str(retry_state.outcome.exception()) if retry_state.outcome else None,
        )

    async def run_with_retry(
        self,
        operation: str,
        func: Callable[..., Awaitable[T]],
        *args: Any,
    ) -> T:
        """
        Run a read-validate-write attempt, retrying on conflicts.

        Raises:
            LedgerUnavailableError: If conflicts persist past the retry bound
        """
        try:
            result = await self._get_retry_decorator()(func)(*args)
            return cast(T, result)
        except ConcurrencyConflictError as e:
            logger.error(
                "ledger_conflict_exhausted",
                operation=operation,
                attempts=self._max_retries,
                error=str(e),
            )
            raise LedgerUnavailableError(operation, "concurrent updates did not settle") from e
