"""
Batch Transaction Coordinator.

Applies a list of movements tied to one business document as a single
all-or-nothing unit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from stockledger.config import get_logger
from stockledger.core.entities.inventory import (
    InventoryItem,
    ProposedMovement,
    ReferenceType,
    StockMovement,
)
from stockledger.core.exceptions import (
    BatchValidationFailedError,
    InventoryItemNotFoundError,
    ValidationError,
)
from stockledger.core.services.movement_validator import MovementWarning
from stockledger.core.services.stock_ledger import StockLedgerService, build_movement

logger = get_logger(__name__)


@dataclass(frozen=True)
class BatchFailure:
    """One refused movement inside a batch."""

    index: int
    inventory_id: int
    reason: str
    detail: str | None = None
    shortfall: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "inventory_id": self.inventory_id,
            "reason": self.reason,
            "detail": self.detail,
            "shortfall": self.shortfall,
        }


@dataclass(frozen=True)
class BatchRejection:
    """A refused batch: every failure in submission order, nothing written."""

    failures: tuple[BatchFailure, ...]

    @property
    def failing_index(self) -> int:
        return self.failures[0].index

    @property
    def reason(self) -> str:
        return self.failures[0].reason

    def to_exception(self) -> BatchValidationFailedError:
        return BatchValidationFailedError(
            failing_index=self.failing_index,
            reason=self.reason,
            failures=[f.to_dict() for f in self.failures],
        )


@dataclass(frozen=True)
class CommittedBatch:
    """Movements created by an accepted batch, in submission order."""

    movements: list[StockMovement]
    warnings: dict[int, tuple[MovementWarning, ...]] = field(default_factory=dict)


class BatchTransactionCoordinator:
    """
    Validates a whole batch against simulated running balances, then
    commits every movement in one transaction.

    Holds the ledger's per-item locks for all items in the batch for the
    duration of validation and commit.
    """

    def __init__(
        self,
        ledger: StockLedgerService,
        max_batch_size: int = 200,
    ) -> None:
        self._ledger = ledger
        self._max_batch_size = max_batch_size

    async def submit_batch(
        self,
        movements: list[ProposedMovement],
        reference_type: ReferenceType,
        reference_id: str,
        reference_number: str,
        moved_by: str,
        notes: str | None = None,
    ) -> CommittedBatch | BatchRejection:
        """
        Submit a batch of movements.

        Batch-level provenance is stamped onto every movement; ``notes``
        fills in only where a movement has none.

        Raises:
            ValidationError: Empty or oversized batch, or missing actor
            InventoryItemNotFoundError: A movement targets an unknown item
            LedgerUnavailableError: The commit could not be completed
        """
        if not movements:
            raise ValidationError("movements", "at least one movement is required")
        if len(movements) > self._max_batch_size:
            raise ValidationError(
                "movements",
                f"at most {self._max_batch_size} movements per batch",
                len(movements),
            )
        if not moved_by:
            raise ValidationError("moved_by", "actor is required")

        stamped = [
            m.model_copy(
                update={
                    "reference_type": reference_type,
                    "reference_id": reference_id,
                    "reference_number": reference_number,
                    "notes": m.notes if m.notes is not None else notes,
                }
            )
            for m in movements
        ]

        logger.info(
            "batch_submitted",
            reference_type=reference_type.value,
            reference_number=reference_number,
            size=len(stamped),
        )
        return await self._ledger.run_with_retry(
            "submit_batch", self._submit_once, stamped, moved_by
        )

    async def _submit_once(
        self,
        proposals: list[ProposedMovement],
        moved_by: str,
    ) -> CommittedBatch | BatchRejection:
        ids = [p.inventory_id for p in proposals]

        async with self._ledger.locks.acquire_many(ids):
            items = await self._ledger.inventory_store.get_items(sorted(set(ids)))
            for inventory_id in ids:
                if inventory_id not in items:
                    raise InventoryItemNotFoundError(inventory_id)

            drafts, warnings, failures = self._simulate(proposals, items, moved_by)

            if failures:
                logger.info(
                    "batch_rejected",
                    failing_index=failures[0].index,
                    reason=failures[0].reason,
                    failures=len(failures),
                )
                return BatchRejection(tuple(failures))

            saved = await self._ledger.movement_store.append_many(
                drafts,
                expected_versions={i: item.version for i, item in items.items()},
            )

        logger.info(
            "batch_committed",
            movements=len(saved),
            items=len(items),
            reference_number=proposals[0].reference_number,
        )
        return CommittedBatch(movements=saved, warnings=warnings)

    def _simulate(
        self,
        proposals: list[ProposedMovement],
        items: dict[int, InventoryItem],
        moved_by: str,
    ) -> tuple[list[StockMovement], dict[int, tuple[MovementWarning, ...]], list[BatchFailure]]:
        """Validate in order against a running balance per item."""
        running = {i: item.current_stock for i, item in items.items()}
        drafts: list[StockMovement] = []
        warnings: dict[int, tuple[MovementWarning, ...]] = {}
        failures: list[BatchFailure] = []

        for index, proposal in enumerate(proposals):
            item = items[proposal.inventory_id]
            decision = self._ledger.validator.validate_for_item(
                item,
                proposal.movement_type,
                proposal.quantity,
                stock_before=running[proposal.inventory_id],
            )
            if not decision.accepted:
                failures.append(
                    BatchFailure(
                        index=index,
                        inventory_id=proposal.inventory_id,
                        reason=decision.reason.value if decision.reason else "REJECTED",
                        detail=decision.detail,
                        shortfall=decision.shortfall,
                    )
                )
                continue

            running[proposal.inventory_id] = decision.stock_after  # type: ignore[assignment]
            drafts.append(build_movement(item, proposal, decision, moved_by))
            if decision.warnings:
                warnings[index] = decision.warnings

        return drafts, warnings, failures
