"""Tests for BatchTransactionCoordinator with mocked stores."""

import pytest

from stockledger.core.entities.inventory import MovementType, ProposedMovement, ReferenceType
from stockledger.core.exceptions import (
    BatchValidationFailedError,
    ConcurrencyConflictError,
    InventoryItemNotFoundError,
    LedgerUnavailableError,
    ValidationError,
)
from stockledger.core.services.batch_coordinator import (
    BatchRejection,
    BatchTransactionCoordinator,
    CommittedBatch,
)
from stockledger.core.services.movement_validator import WarningCode


@pytest.fixture
def coordinator(ledger):
    return BatchTransactionCoordinator(ledger, max_batch_size=5)


def _proposal(inventory_id: int, movement_type: MovementType, quantity, **extra) -> ProposedMovement:
    return ProposedMovement(
        inventory_id=inventory_id, movement_type=movement_type, quantity=quantity, **extra
    )


async def _submit(coordinator, movements, **overrides):
    kwargs = {
        "reference_type": ReferenceType.DISTRIBUTION,
        "reference_id": "dist-42",
        "reference_number": "DN-0042",
        "moved_by": "clerk-1",
    }
    kwargs.update(overrides)
    return await coordinator.submit_batch(movements, **kwargs)


class TestSubmitBatch:
    async def test_accepted_batch_commits_once(self, coordinator, mock_movement_store):
        outcome = await _submit(
            coordinator,
            [
                _proposal(1, MovementType.OUT, 30),
                _proposal(2, MovementType.OUT, 4),
            ],
            notes="weekly distribution",
        )

        assert isinstance(outcome, CommittedBatch)
        assert [m.id for m in outcome.movements] == [200, 201]
        assert mock_movement_store.append_many.await_count == 1

        drafts, kwargs = (
            mock_movement_store.append_many.call_args.args[0],
            mock_movement_store.append_many.call_args.kwargs,
        )
        assert kwargs["expected_versions"] == {1: 3, 2: 0}
        for draft in drafts:
            assert draft.reference_type is ReferenceType.DISTRIBUTION
            assert draft.reference_id == "dist-42"
            assert draft.reference_number == "DN-0042"
            assert draft.notes == "weekly distribution"
            assert draft.moved_by == "clerk-1"

    async def test_movement_notes_win_over_batch_notes(self, coordinator, mock_movement_store):
        await _submit(
            coordinator,
            [_proposal(1, MovementType.IN, 1, notes="damaged box")],
            notes="batch note",
        )
        drafts = mock_movement_store.append_many.call_args.args[0]
        assert drafts[0].notes == "damaged box"

    async def test_same_item_uses_running_balance(self, coordinator, mock_movement_store):
        outcome = await _submit(
            coordinator,
            [
                _proposal(2, MovementType.OUT, 6),
                _proposal(2, MovementType.OUT, 3),
            ],
        )
        before_after = [(m.stock_before, m.stock_after) for m in outcome.movements]
        assert before_after == [(10.0, 4.0), (4.0, 1.0)]
        assert [w.code for w in outcome.warnings[0]] == [WarningCode.BELOW_MINIMUM]

    async def test_running_balance_overdraw_rejects_whole_batch(
        self, coordinator, mock_movement_store
    ):
        outcome = await _submit(
            coordinator,
            [
                _proposal(2, MovementType.OUT, 6),
                _proposal(1, MovementType.OUT, 1),
                _proposal(2, MovementType.OUT, 6),
            ],
        )

        assert isinstance(outcome, BatchRejection)
        assert outcome.failing_index == 2
        assert outcome.reason == "INSUFFICIENT_STOCK"
        assert outcome.failures[0].shortfall == 2.0
        mock_movement_store.append_many.assert_not_called()

    async def test_all_failures_reported_in_order(self, coordinator):
        outcome = await _submit(
            coordinator,
            [
                _proposal(1, MovementType.IN, 0),
                _proposal(1, MovementType.OUT, 1),
                _proposal(2, MovementType.OUT, 50),
            ],
        )

        assert [f.index for f in outcome.failures] == [0, 2]
        assert [f.reason for f in outcome.failures] == ["INVALID_QUANTITY", "INSUFFICIENT_STOCK"]

        error = outcome.to_exception()
        assert isinstance(error, BatchValidationFailedError)
        assert error.failing_index == 0
        assert len(error.details["failures"]) == 2

    async def test_unknown_item_aborts_before_writing(self, coordinator, mock_movement_store):
        with pytest.raises(InventoryItemNotFoundError):
            await _submit(
                coordinator,
                [_proposal(1, MovementType.IN, 1), _proposal(99, MovementType.IN, 1)],
            )
        mock_movement_store.append_many.assert_not_called()

    async def test_conflict_retried_then_unavailable(
        self, coordinator, ledger, mock_movement_store
    ):
        mock_movement_store.append_many.side_effect = ConcurrencyConflictError(1)

        with pytest.raises(LedgerUnavailableError):
            await _submit(coordinator, [_proposal(1, MovementType.IN, 1)])

        assert mock_movement_store.append_many.await_count == 3
        assert len(ledger.locks) == 0


class TestBatchValidation:
    async def test_empty_batch(self, coordinator):
        with pytest.raises(ValidationError):
            await _submit(coordinator, [])

    async def test_oversized_batch(self, coordinator):
        with pytest.raises(ValidationError):
            await _submit(coordinator, [_proposal(1, MovementType.IN, 1)] * 6)

    async def test_actor_required(self, coordinator):
        with pytest.raises(ValidationError):
            await _submit(coordinator, [_proposal(1, MovementType.IN, 1)], moved_by="")
