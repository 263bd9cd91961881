"""Abstract interface for the stock movement ledger storage."""

from abc import ABC, abstractmethod
from datetime import datetime

from stockledger.core.entities.inventory import MovementFilters, StockMovement


class IStockMovementStore(ABC):
    """
    Interface for ledger persistence.

    Appends are the only path that changes an item's balance: each
    movement is inserted and its item's ``current_stock`` set to
    ``stock_after`` in the same transaction.
    """

    @abstractmethod
    async def append(
        self,
        movement: StockMovement,
        expected_version: int,
    ) -> StockMovement:
        """
        Insert one movement and apply its balance.

        Raises ConcurrencyConflictError (and applies nothing) when the
        item's version no longer equals ``expected_version``.
        """
        pass

    @abstractmethod
    async def append_many(
        self,
        movements: list[StockMovement],
        expected_versions: dict[int, int],
    ) -> list[StockMovement]:
        """Insert movements in order as one all-or-nothing transaction."""
        pass

    @abstractmethod
    async def get_movement(self, movement_id: int) -> StockMovement | None:
        """Get movement by ID."""
        pass

    @abstractmethod
    async def list_movements(
        self,
        filters: MovementFilters,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[StockMovement], int]:
        """List movements newest first, with the total matching count."""
        pass

    @abstractmethod
    async def list_between(
        self,
        start: datetime,
        end: datetime,
    ) -> list[StockMovement]:
        """All movements with moved_at in [start, end]."""
        pass

    @abstractmethod
    async def mark_approved(
        self,
        movement_id: int,
        approved_by: str,
        approved_at: datetime,
        approval_notes: str | None = None,
    ) -> bool:
        """
        Set the approval fields if they are still empty.

        Returns False when the movement is missing or already approved.
        """
        pass
