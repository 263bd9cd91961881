"""Tests for RecordMovementUseCase."""

from unittest.mock import AsyncMock

import pytest

from stockledger.application.dto.requests import RecordMovementRequest
from stockledger.application.use_cases.record_movement import RecordMovementUseCase
from stockledger.core.entities.inventory import MovementType, ReferenceType, StockMovement
from stockledger.core.exceptions import InsufficientStockError, InvalidQuantityError
from stockledger.core.services.movement_validator import MovementValidator, MovementWarning, WarningCode
from stockledger.core.services.stock_ledger import MovementRejection, RecordedMovement


@pytest.fixture
def mock_ledger():
    return AsyncMock()


@pytest.fixture
def use_case(mock_ledger):
    return RecordMovementUseCase(ledger=mock_ledger)


def _request(**overrides) -> RecordMovementRequest:
    data = {
        "inventory_id": 1,
        "movement_type": "OUT",
        "quantity": 30,
        "reference_type": "DISTRIBUTION",
        "reference_number": "DN-1",
        "moved_by": "clerk-1",
    }
    data.update(overrides)
    return RecordMovementRequest(**data)


class TestRecordMovementUseCase:
    async def test_successful_record(self, use_case, mock_ledger):
        movement = StockMovement(
            id=1, inventory_id=1, movement_type=MovementType.OUT, quantity=30, unit="kg",
            stock_before=100, stock_after=70, moved_by="clerk-1",
            reference_type=ReferenceType.DISTRIBUTION,
        )
        warning = MovementWarning(WarningCode.BELOW_MINIMUM, "low")
        mock_ledger.record.return_value = RecordedMovement(movement=movement, warnings=(warning,))

        result = await use_case.execute(_request())

        proposal = mock_ledger.record.call_args.args[0]
        assert proposal.movement_type is MovementType.OUT
        assert proposal.reference_number == "DN-1"
        assert mock_ledger.record.call_args.kwargs["moved_by"] == "clerk-1"

        response = use_case.to_response(result)
        assert response.movement.stock_after == 70
        assert response.movement.approval_state == "PENDING"
        assert response.warnings[0].code == "BELOW_MINIMUM"

    async def test_insufficient_stock_raised(self, use_case, mock_ledger):
        decision = MovementValidator().validate(MovementType.OUT, 30, stock_before=10)
        mock_ledger.record.return_value = MovementRejection(1, decision)

        with pytest.raises(InsufficientStockError) as exc_info:
            await use_case.execute(_request())

        assert exc_info.value.shortfall == 20

    async def test_invalid_quantity_raised(self, use_case, mock_ledger):
        decision = MovementValidator().validate(MovementType.OUT, -3, stock_before=10)
        mock_ledger.record.return_value = MovementRejection(1, decision)

        with pytest.raises(InvalidQuantityError):
            await use_case.execute(_request(quantity=-3))
