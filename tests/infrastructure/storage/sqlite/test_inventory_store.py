"""Tests for SQLite inventory store."""

import pytest

from stockledger.core.entities.inventory import InventoryItem
from stockledger.core.exceptions import (
    ConcurrencyConflictError,
    DuplicateItemCodeError,
    ValidationError,
)
from stockledger.infrastructure.storage.sqlite.connection import get_transaction
from stockledger.infrastructure.storage.sqlite.inventory_store import apply_balance_change


class TestSQLiteInventoryStore:
    """Tests for SQLiteInventoryStore."""

    async def test_create_and_get_item(self, inventory_store):
        created = await inventory_store.create_item(
            InventoryItem(item_code="RICE-25", item_name="Rice", unit="kg", current_stock=40, min_stock=10)
        )
        assert created.id is not None
        assert created.version == 0

        fetched = await inventory_store.get_item(created.id)
        assert fetched is not None
        assert fetched.item_code == "RICE-25"
        assert fetched.current_stock == 40
        assert fetched.max_stock is None
        assert fetched.is_active is True

    async def test_get_item_not_found(self, inventory_store):
        assert await inventory_store.get_item(9999) is None

    async def test_get_item_by_code(self, inventory_store, make_item):
        await make_item(item_code="OIL-5L", item_name="Oil")
        fetched = await inventory_store.get_item_by_code("OIL-5L")
        assert fetched is not None
        assert fetched.item_name == "Oil"
        assert await inventory_store.get_item_by_code("NOPE") is None

    async def test_duplicate_code_rejected(self, make_item):
        await make_item(item_code="DUP")
        with pytest.raises(DuplicateItemCodeError):
            await make_item(item_code="DUP", item_name="Other")

    async def test_items_without_code_do_not_collide(self, make_item):
        first = await make_item(item_code=None)
        second = await make_item(item_code=None)
        assert first.id != second.id

    async def test_get_items(self, inventory_store, make_item):
        a = await make_item(item_name="A")
        b = await make_item(item_name="B")
        items = await inventory_store.get_items([a.id, b.id, 9999])
        assert set(items) == {a.id, b.id}
        assert await inventory_store.get_items([]) == {}

    async def test_list_items_filters(self, inventory_store, make_item):
        await make_item(item_name="rice", category="GRAIN")
        await make_item(item_name="Beans", category="GRAIN")
        oil = await make_item(item_name="Oil", category="OIL")
        await inventory_store.set_active(oil.id, is_active=False)

        grains = await inventory_store.list_items(category="GRAIN")
        assert [i.item_name for i in grains] == ["Beans", "rice"]

        active = await inventory_store.list_items()
        assert len(active) == 2
        everything = await inventory_store.list_items(include_inactive=True)
        assert len(everything) == 3

        page = await inventory_store.list_items(limit=1, offset=1)
        assert [i.item_name for i in page] == ["rice"]

    async def test_count_items_ignores_pagination(self, inventory_store, make_item):
        await make_item(item_name="rice", category="GRAIN")
        await make_item(item_name="Beans", category="GRAIN")
        oil = await make_item(item_name="Oil", category="OIL")
        await inventory_store.set_active(oil.id, is_active=False)

        assert await inventory_store.count_items() == 2
        assert await inventory_store.count_items(category="GRAIN") == 2
        assert await inventory_store.count_items(category="OIL") == 0
        assert await inventory_store.count_items(include_inactive=True) == 3

    async def test_list_low_stock(self, inventory_store, make_item):
        await make_item(item_name="Plenty", current_stock=100, min_stock=10)
        await make_item(item_name="AtMin", current_stock=10, min_stock=10)
        await make_item(item_name="Empty", current_stock=0, min_stock=5)
        retired = await make_item(item_name="Retired", current_stock=0, min_stock=5)
        await inventory_store.set_active(retired.id, is_active=False)

        low = await inventory_store.list_low_stock()
        assert [i.item_name for i in low] == ["Empty", "AtMin"]

    async def test_set_active_missing(self, inventory_store):
        assert await inventory_store.set_active(9999, is_active=False) is None


class TestUpdateItem:
    async def test_catalog_update_keeps_balance_and_version(self, inventory_store, make_item):
        item = await make_item(current_stock=40, min_stock=10, max_stock=100)
        async with get_transaction(immediate=True) as conn:
            await apply_balance_change(conn, item.id, 25.0, expected_version=0)

        updated = await inventory_store.update_item(
            item.id, {"item_name": "Rice 50kg", "min_stock": 30, "max_stock": 200}
        )

        assert updated.item_name == "Rice 50kg"
        assert updated.min_stock == 30
        assert updated.current_stock == 25.0
        assert updated.version == 1
        stored = await inventory_store.get_item(item.id)
        assert stored.item_name == "Rice 50kg"
        assert stored.max_stock == 200
        assert stored.current_stock == 25.0
        assert stored.version == 1

    @pytest.mark.parametrize("field", ["current_stock", "version", "is_active"])
    async def test_ledger_fields_rejected(self, inventory_store, make_item, field):
        item = await make_item(current_stock=40)

        with pytest.raises(ValidationError):
            await inventory_store.update_item(item.id, {field: 0})

        stored = await inventory_store.get_item(item.id)
        assert stored.current_stock == 40
        assert stored.version == 0
        assert stored.is_active is True

    async def test_max_below_stored_min(self, inventory_store, make_item):
        item = await make_item(min_stock=10, max_stock=50)

        with pytest.raises(ValidationError):
            await inventory_store.update_item(item.id, {"max_stock": 5})

        assert (await inventory_store.get_item(item.id)).max_stock == 50

    async def test_clear_max_stock(self, inventory_store, make_item):
        item = await make_item(max_stock=50)

        updated = await inventory_store.update_item(item.id, {"max_stock": None})

        assert updated.max_stock is None
        assert (await inventory_store.get_item(item.id)).max_stock is None

    async def test_null_name_rejected(self, inventory_store, make_item):
        item = await make_item()

        with pytest.raises(ValidationError):
            await inventory_store.update_item(item.id, {"item_name": None})

    async def test_code_taken_by_other_item(self, inventory_store, make_item):
        await make_item(item_code="RICE-25")
        other = await make_item(item_code="OIL-5L", item_name="Oil")

        with pytest.raises(DuplicateItemCodeError):
            await inventory_store.update_item(other.id, {"item_code": "RICE-25"})

        assert (await inventory_store.get_item(other.id)).item_code == "OIL-5L"

    async def test_missing_item(self, inventory_store):
        assert await inventory_store.update_item(9999, {"item_name": "Ghost"}) is None


class TestApplyBalanceChange:
    async def test_bumps_version(self, inventory_store, make_item):
        item = await make_item(current_stock=10)
        async with get_transaction(immediate=True) as conn:
            await apply_balance_change(conn, item.id, 25.0, expected_version=0)

        updated = await inventory_store.get_item(item.id)
        assert updated.current_stock == 25.0
        assert updated.version == 1

    async def test_stale_version_conflicts(self, inventory_store, make_item):
        item = await make_item(current_stock=10)
        with pytest.raises(ConcurrencyConflictError):
            async with get_transaction(immediate=True) as conn:
                await apply_balance_change(conn, item.id, 25.0, expected_version=4)

        unchanged = await inventory_store.get_item(item.id)
        assert unchanged.current_stock == 10
        assert unchanged.version == 0
