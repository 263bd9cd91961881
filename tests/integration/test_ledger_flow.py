"""Ledger scenarios against a real temporary SQLite database."""

import asyncio

import pytest

from stockledger.application.services import (
    get_approval_service,
    get_batch_coordinator,
    get_stock_ledger_service,
)
from stockledger.core.entities.inventory import (
    MovementFilters,
    MovementType,
    ProposedMovement,
    ReferenceType,
)
from stockledger.core.exceptions import AlreadyApprovedError
from stockledger.core.services.batch_coordinator import BatchRejection, CommittedBatch
from stockledger.core.services.movement_validator import RejectionReason, WarningCode
from stockledger.core.services.stock_ledger import MovementRejection, RecordedMovement
from stockledger.infrastructure.storage.sqlite.migrations.migrator import verify_schema_integrity


@pytest.fixture
async def ledger(ledger_db):
    return await get_stock_ledger_service()


@pytest.fixture
async def coordinator(ledger):
    return await get_batch_coordinator()


def _out(item_id: int, quantity) -> ProposedMovement:
    return ProposedMovement(inventory_id=item_id, movement_type=MovementType.OUT, quantity=quantity)


async def _assert_ledger_consistent(ledger_db):
    checks = {c["check"]: c for c in await verify_schema_integrity(ledger_db)}
    assert checks["ledger_balances"]["status"] == "PASS"


class TestSingleMovements:
    """Record, warn, reject, and adjust on one item."""

    async def test_out_in_out_sequence(self, ledger, inventory_store, make_item, ledger_db):
        item = await make_item(current_stock=100, min_stock=20)

        first = await ledger.record(_out(item.id, 30), moved_by="clerk-1")
        assert isinstance(first, RecordedMovement)
        assert (first.movement.stock_before, first.movement.stock_after) == (100, 70)
        assert first.warnings == ()

        second = await ledger.record(_out(item.id, 60), moved_by="clerk-1")
        assert isinstance(second, RecordedMovement)
        assert second.movement.stock_after == 10
        assert [w.code for w in second.warnings] == [WarningCode.BELOW_MINIMUM]

        third = await ledger.record(_out(item.id, 50), moved_by="clerk-1")
        assert isinstance(third, MovementRejection)
        assert third.reason is RejectionReason.INSUFFICIENT_STOCK
        assert third.shortfall == 40

        current = await inventory_store.get_item(item.id)
        assert current.current_stock == 10
        page = await ledger.list_movements(MovementFilters(inventory_id=item.id))
        assert page.total == 2
        await _assert_ledger_consistent(ledger_db)

    async def test_adjustment_to_zero(self, ledger, inventory_store, make_item):
        item = await make_item(current_stock=37)

        outcome = await ledger.record(
            ProposedMovement(
                inventory_id=item.id,
                movement_type=MovementType.ADJUSTMENT,
                quantity=0,
                reference_type=ReferenceType.COUNT_ADJUSTMENT,
            ),
            moved_by="auditor",
        )

        assert isinstance(outcome, RecordedMovement)
        assert (outcome.movement.stock_before, outcome.movement.stock_after) == (37, 0)
        assert (await inventory_store.get_item(item.id)).current_stock == 0

        rejected = await ledger.record(_out(item.id, 0), moved_by="clerk-1")
        assert rejected.reason is RejectionReason.INVALID_QUANTITY


class TestBatches:
    async def test_chained_batch_on_one_item(self, coordinator, inventory_store, make_item, ledger_db):
        item = await make_item(current_stock=100, max_stock=1000)

        outcome = await coordinator.submit_batch(
            [
                ProposedMovement(inventory_id=item.id, movement_type=MovementType.IN, quantity=50),
                _out(item.id, 120),
            ],
            reference_type=ReferenceType.PRODUCTION,
            reference_id="prod-1",
            reference_number="PR-0001",
            moved_by="clerk-1",
        )

        assert isinstance(outcome, CommittedBatch)
        chain = [(m.stock_before, m.stock_after) for m in outcome.movements]
        assert chain == [(100, 150), (150, 30)]
        assert all(m.reference_number == "PR-0001" for m in outcome.movements)

        current = await inventory_store.get_item(item.id)
        assert current.current_stock == 30
        assert current.version == 2
        await _assert_ledger_consistent(ledger_db)

    async def test_overdrawn_batch_leaves_nothing(self, coordinator, ledger, inventory_store, make_item):
        item = await make_item(current_stock=100, max_stock=1000)

        outcome = await coordinator.submit_batch(
            [
                ProposedMovement(inventory_id=item.id, movement_type=MovementType.IN, quantity=50),
                _out(item.id, 200),
            ],
            reference_type=ReferenceType.PRODUCTION,
            reference_id="prod-2",
            reference_number="PR-0002",
            moved_by="clerk-1",
        )

        assert isinstance(outcome, BatchRejection)
        assert outcome.failing_index == 1
        assert outcome.failures[0].shortfall == 50

        assert (await inventory_store.get_item(item.id)).current_stock == 100
        page = await ledger.list_movements(MovementFilters(inventory_id=item.id))
        assert page.total == 0


class TestConcurrency:
    async def test_concurrent_same_item_no_lost_update(self, ledger, inventory_store, make_item, ledger_db):
        item = await make_item(current_stock=50, min_stock=0)

        results = await asyncio.gather(
            ledger.record(_out(item.id, 10), moved_by="clerk-1"),
            ledger.record(_out(item.id, 20), moved_by="clerk-2"),
        )

        assert all(isinstance(r, RecordedMovement) for r in results)
        assert (await inventory_store.get_item(item.id)).current_stock == 20

        chain = sorted((r.movement.stock_before, r.movement.stock_after) for r in results)
        assert chain in ([(40, 20), (50, 40)], [(30, 20), (50, 30)])
        await _assert_ledger_consistent(ledger_db)

    async def test_many_writers_across_items(self, ledger, coordinator, inventory_store, make_item, ledger_db):
        a = await make_item(item_name="A", current_stock=100, min_stock=0, max_stock=None)
        b = await make_item(item_name="B", current_stock=100, min_stock=0, max_stock=None)

        singles = [ledger.record(_out(a.id, 1), moved_by=f"c{i}") for i in range(10)]
        singles += [ledger.record(_out(b.id, 2), moved_by=f"d{i}") for i in range(10)]
        batch = coordinator.submit_batch(
            [_out(a.id, 5), _out(b.id, 5)],
            reference_type=ReferenceType.DISTRIBUTION,
            reference_id="dist-1",
            reference_number="DN-1",
            moved_by="clerk-9",
        )

        results = await asyncio.gather(*singles, batch)

        assert all(isinstance(r, RecordedMovement) for r in results[:-1])
        assert isinstance(results[-1], CommittedBatch)
        assert (await inventory_store.get_item(a.id)).current_stock == 85
        assert (await inventory_store.get_item(b.id)).current_stock == 75
        assert len(ledger.locks) == 0
        await _assert_ledger_consistent(ledger_db)


class TestApproval:
    async def test_approval_does_not_touch_balances(self, ledger, inventory_store, make_item):
        item = await make_item(current_stock=100)
        recorded = await ledger.record(_out(item.id, 30), moved_by="clerk-1")
        approvals = await get_approval_service()

        approved = await approvals.approve(recorded.movement.id, "manager-1", notes="checked")

        assert approved.approved_by == "manager-1"
        assert approved.approval_notes == "checked"
        assert approved.notes is None
        assert (approved.stock_before, approved.stock_after) == (100, 70)

        with pytest.raises(AlreadyApprovedError):
            await approvals.approve(recorded.movement.id, "manager-2")

        again = await ledger.get_movement(recorded.movement.id)
        assert again.approved_by == "manager-1"
        assert (await inventory_store.get_item(item.id)).current_stock == 70

    async def test_concurrent_approvals_single_winner(self, ledger, make_item):
        item = await make_item(current_stock=10)
        recorded = await ledger.record(_out(item.id, 1), moved_by="clerk-1")
        approvals = await get_approval_service()

        results = await asyncio.gather(
            approvals.approve(recorded.movement.id, "manager-1"),
            approvals.approve(recorded.movement.id, "manager-2"),
            return_exceptions=True,
        )

        assert sum(isinstance(r, AlreadyApprovedError) for r in results) == 1
