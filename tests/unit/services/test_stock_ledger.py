"""Tests for StockLedgerService with mocked stores."""

import pytest

from stockledger.core.entities.inventory import (
    MovementFilters,
    MovementType,
    ProposedMovement,
    ReferenceType,
    StockMovement,
)
from stockledger.core.exceptions import (
    ConcurrencyConflictError,
    InsufficientStockError,
    InventoryItemNotFoundError,
    LedgerUnavailableError,
    MovementNotFoundError,
    ValidationError,
)
from stockledger.core.services.movement_validator import RejectionReason, WarningCode
from stockledger.core.services.stock_ledger import MovementRejection, RecordedMovement


class TestRecord:
    async def test_accepted_movement_is_appended(self, ledger, mock_movement_store):
        proposal = ProposedMovement(
            inventory_id=1,
            movement_type=MovementType.OUT,
            quantity=30,
            unit_cost=2.0,
            reference_type=ReferenceType.DISTRIBUTION,
            reference_number="DN-7",
        )

        outcome = await ledger.record(proposal, moved_by="clerk-1")

        assert isinstance(outcome, RecordedMovement)
        movement = outcome.movement
        assert movement.id == 101
        assert movement.stock_before == 100.0
        assert movement.stock_after == 70.0
        assert movement.unit == "kg"
        assert movement.total_cost == 60.0
        assert movement.moved_by == "clerk-1"
        assert movement.approved_by is None
        assert outcome.warnings == ()

        _, kwargs = mock_movement_store.append.call_args
        assert kwargs["expected_version"] == 3

    async def test_rejection_writes_nothing(self, ledger, mock_movement_store):
        proposal = ProposedMovement(inventory_id=2, movement_type=MovementType.OUT, quantity=15)

        outcome = await ledger.record(proposal, moved_by="clerk-1")

        assert isinstance(outcome, MovementRejection)
        assert outcome.reason is RejectionReason.INSUFFICIENT_STOCK
        assert outcome.shortfall == 5.0
        assert isinstance(outcome.to_exception(), InsufficientStockError)
        mock_movement_store.append.assert_not_called()

    async def test_invalid_quantity_rejected(self, ledger, mock_movement_store):
        proposal = ProposedMovement(inventory_id=1, movement_type=MovementType.IN, quantity=-5)

        outcome = await ledger.record(proposal, moved_by="clerk-1")

        assert isinstance(outcome, MovementRejection)
        assert outcome.reason is RejectionReason.INVALID_QUANTITY
        mock_movement_store.append.assert_not_called()

    async def test_warnings_are_returned(self, ledger):
        proposal = ProposedMovement(inventory_id=2, movement_type=MovementType.OUT, quantity=8)

        outcome = await ledger.record(proposal, moved_by="clerk-1")

        assert [w.code for w in outcome.warnings] == [WarningCode.BELOW_MINIMUM]
        assert outcome.movement.stock_after == 2.0

    async def test_unknown_item(self, ledger):
        proposal = ProposedMovement(inventory_id=99, movement_type=MovementType.IN, quantity=1)
        with pytest.raises(InventoryItemNotFoundError):
            await ledger.record(proposal, moved_by="clerk-1")

    async def test_actor_required(self, ledger):
        proposal = ProposedMovement(inventory_id=1, movement_type=MovementType.IN, quantity=1)
        with pytest.raises(ValidationError):
            await ledger.record(proposal, moved_by="")

    async def test_lock_released_after_record(self, ledger):
        proposal = ProposedMovement(inventory_id=1, movement_type=MovementType.IN, quantity=1)
        await ledger.record(proposal, moved_by="clerk-1")
        assert len(ledger.locks) == 0


class TestConflictRetry:
    async def test_conflict_is_retried_with_fresh_read(
        self, ledger, mock_inventory_store, mock_movement_store
    ):
        saved = []

        def append(movement: StockMovement, expected_version: int) -> StockMovement:
            if not saved:
                saved.append(None)
                raise ConcurrencyConflictError(1)
            return movement.model_copy(update={"id": 5})

        mock_movement_store.append.side_effect = append
        proposal = ProposedMovement(inventory_id=1, movement_type=MovementType.IN, quantity=1)

        outcome = await ledger.record(proposal, moved_by="clerk-1")

        assert outcome.movement.id == 5
        assert mock_inventory_store.get_item.await_count == 2
        assert mock_movement_store.append.await_count == 2

    async def test_exhausted_retries_surface_as_unavailable(self, ledger, mock_movement_store):
        mock_movement_store.append.side_effect = ConcurrencyConflictError(1)
        proposal = ProposedMovement(inventory_id=1, movement_type=MovementType.IN, quantity=1)

        with pytest.raises(LedgerUnavailableError) as exc_info:
            await ledger.record(proposal, moved_by="clerk-1")

        assert exc_info.value.details["operation"] == "record_movement"
        assert mock_movement_store.append.await_count == 3
        assert len(ledger.locks) == 0

    async def test_rejections_are_not_retried(self, ledger, mock_inventory_store):
        proposal = ProposedMovement(inventory_id=2, movement_type=MovementType.OUT, quantity=50)
        await ledger.record(proposal, moved_by="clerk-1")
        assert mock_inventory_store.get_item.await_count == 1


class TestQueries:
    async def test_get_movement_missing(self, ledger, mock_movement_store):
        mock_movement_store.get_movement.return_value = None
        with pytest.raises(MovementNotFoundError):
            await ledger.get_movement(404)

    async def test_list_movements_pages(self, ledger, mock_movement_store):
        mock_movement_store.list_movements.return_value = ([], 35)

        page = await ledger.list_movements(MovementFilters(inventory_id=1), page=2, page_size=10)

        assert page.total == 35
        assert page.total_pages == 4
        args, kwargs = mock_movement_store.list_movements.call_args
        assert kwargs == {"limit": 10, "offset": 10}
        assert args[0].inventory_id == 1

    async def test_page_size_clamped(self, ledger, mock_movement_store):
        mock_movement_store.list_movements.return_value = ([], 0)
        page = await ledger.list_movements(page_size=10_000)
        assert page.page_size == 100

    async def test_default_page_size(self, ledger, mock_movement_store):
        mock_movement_store.list_movements.return_value = ([], 0)
        page = await ledger.list_movements()
        assert page.page_size == 10

    @pytest.mark.parametrize(("page", "page_size"), [(0, 10), (1, -1)])
    async def test_invalid_paging(self, ledger, page, page_size):
        with pytest.raises(ValidationError):
            await ledger.list_movements(page=page, page_size=page_size)
