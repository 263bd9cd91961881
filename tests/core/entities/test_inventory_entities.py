"""Tests for inventory entities."""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from stockledger.core.entities.inventory import (
    ApprovalState,
    InventoryItem,
    MovementFilters,
    MovementPage,
    MovementType,
    StockMovement,
    to_naive_utc,
)


def _movement(**overrides) -> StockMovement:
    data = {
        "inventory_id": 1,
        "movement_type": MovementType.IN,
        "quantity": 10.0,
        "unit": "kg",
        "stock_before": 0.0,
        "stock_after": 10.0,
        "moved_by": "clerk-1",
    }
    data.update(overrides)
    return StockMovement(**data)


class TestInventoryItem:
    def test_defaults(self):
        item = InventoryItem(item_name="Beans")
        assert item.current_stock == 0.0
        assert item.version == 0
        assert item.is_active is True
        assert item.created_at.tzinfo is None

    def test_negative_stock_rejected(self):
        with pytest.raises(ValidationError):
            InventoryItem(item_name="Beans", current_stock=-1)

    def test_min_above_max_rejected(self):
        with pytest.raises(ValidationError):
            InventoryItem(item_name="Beans", min_stock=50, max_stock=10)

    def test_stock_flags(self):
        item = InventoryItem(item_name="Beans", current_stock=10, min_stock=10, max_stock=10)
        assert item.is_low_stock
        assert item.is_overstocked
        assert not item.is_out_of_stock

    def test_total_value_without_cost(self):
        assert InventoryItem(item_name="Beans", current_stock=10).total_value == 0.0
        assert InventoryItem(item_name="Beans", current_stock=10, cost_per_unit=1.5).total_value == 15.0


class TestStockMovement:
    def test_pending_until_approved(self):
        movement = _movement()
        assert movement.approval_state is ApprovalState.PENDING
        assert not movement.is_approved

        approved = movement.model_copy(update={"approved_by": "manager-1"})
        assert approved.approval_state is ApprovalState.APPROVED

    def test_negative_snapshot_rejected(self):
        with pytest.raises(ValidationError):
            _movement(stock_after=-1)


class TestMovementFilters:
    def test_aware_dates_normalized_to_naive_utc(self):
        start = datetime(2024, 1, 1, 12, tzinfo=timezone(timedelta(hours=2)))
        filters = MovementFilters(start_date=start)
        assert filters.start_date == datetime(2024, 1, 1, 10)
        assert filters.start_date.tzinfo is None

    def test_inverted_range_rejected(self):
        with pytest.raises(ValidationError):
            MovementFilters(start_date=datetime(2024, 2, 1), end_date=datetime(2024, 1, 1))

    def test_to_naive_utc_keeps_naive(self):
        value = datetime(2024, 1, 1, 8)
        assert to_naive_utc(value) is value
        assert to_naive_utc(datetime(2024, 1, 1, 8, tzinfo=UTC)) == value


class TestMovementPage:
    def test_page_math(self):
        page = MovementPage(items=[], total=25, page=2, page_size=10)
        assert page.total_pages == 3
        assert page.has_next_page
        assert page.has_previous_page

    def test_empty(self):
        page = MovementPage(items=[], total=0, page=1, page_size=10)
        assert page.total_pages == 0
        assert not page.has_next_page
        assert not page.has_previous_page
