"""SQLite implementation of the inventory catalog."""

from datetime import datetime
from typing import Any

import aiosqlite
from pydantic import ValidationError as PydanticValidationError

from stockledger.config import get_logger
from stockledger.core.entities.inventory import InventoryItem, utcnow
from stockledger.core.exceptions import (
    ConcurrencyConflictError,
    DatabaseError,
    DuplicateItemCodeError,
    ValidationError,
)
from stockledger.core.interfaces.inventory_store import IInventoryStore
from stockledger.infrastructure.storage.sqlite.connection import get_connection, get_transaction

logger = get_logger(__name__)


async def apply_balance_change(
    conn: aiosqlite.Connection,
    item_id: int,
    new_balance: float,
    expected_version: int,
) -> None:
    """
    Set an item's balance inside the caller's ledger transaction.

    Only the movement store calls this, after inserting the movement
    that produced ``new_balance``. Raises ConcurrencyConflictError when
    the item's version moved since it was read.
    """
    cursor = await conn.execute(
        """
        UPDATE inventory_items
        SET current_stock = ?, version = version + 1, updated_at = ?
        WHERE id = ? AND version = ?
        """,
        (new_balance, utcnow().isoformat(), item_id, expected_version),
    )
    if cursor.rowcount != 1:
        raise ConcurrencyConflictError(item_id, f"expected version {expected_version}")


# Columns an update may touch; balance, version and is_active have their own paths
CATALOG_FIELDS = (
    "item_code",
    "item_name",
    "category",
    "unit",
    "min_stock",
    "max_stock",
    "reorder_quantity",
    "cost_per_unit",
    "average_price",
    "has_expiry",
    "shelf_life",
)


def _item_filters(category: str | None, include_inactive: bool) -> tuple[str, list]:
    clauses = ["1=1"]
    params: list = []
    if category:
        clauses.append("category = ?")
        params.append(category)
    if not include_inactive:
        clauses.append("is_active = 1")
    return " AND ".join(clauses), params


def _merge_catalog_changes(item: InventoryItem, changes: dict[str, Any]) -> InventoryItem:
    if "max_stock" in changes or "min_stock" in changes:
        min_stock = changes.get("min_stock", item.min_stock)
        max_stock = changes.get("max_stock", item.max_stock)
        if min_stock is not None and max_stock is not None and min_stock > max_stock:
            raise ValidationError("min_stock", "must not exceed max_stock", min_stock)
    try:
        return InventoryItem.model_validate({**item.model_dump(), **changes})
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or "item"
        raise ValidationError(field, first["msg"], first.get("input")) from e


def _column_value(value: Any) -> Any:
    return int(value) if isinstance(value, bool) else value


class SQLiteInventoryStore(IInventoryStore):
    """SQLite implementation of inventory item storage."""

    async def create_item(self, item: InventoryItem) -> InventoryItem:
        """Create a new inventory item with its seed balance."""
        now = utcnow()
        item.created_at = now
        item.updated_at = now
        item.version = 0
        try:
            async with get_transaction() as conn:
                cursor = await conn.execute(
                    """
                    INSERT INTO inventory_items (
                        item_code, item_name, category, unit,
                        current_stock, min_stock, max_stock, reorder_quantity,
                        cost_per_unit, average_price, has_expiry, shelf_life,
                        is_active, version, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        item.item_code,
                        item.item_name,
                        item.category,
                        item.unit,
                        item.current_stock,
                        item.min_stock,
                        item.max_stock,
                        item.reorder_quantity,
                        item.cost_per_unit,
                        item.average_price,
                        int(item.has_expiry),
                        item.shelf_life,
                        int(item.is_active),
                        item.version,
                        item.created_at.isoformat(),
                        item.updated_at.isoformat(),
                    ),
                )
                item.id = cursor.lastrowid
        except aiosqlite.IntegrityError as e:
            if item.item_code and "item_code" in str(e):
                raise DuplicateItemCodeError(item.item_code) from e
            raise DatabaseError("create_item", str(e)) from e

        logger.info(
            "inventory_item_created",
            item_id=item.id,
            item_code=item.item_code,
            current_stock=item.current_stock,
        )
        return item

    async def get_item(self, item_id: int) -> InventoryItem | None:
        """Get inventory item by ID."""
        async with get_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM inventory_items WHERE id = ?", (item_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_inventory_item(row)

    async def get_items(self, item_ids: list[int]) -> dict[int, InventoryItem]:
        if not item_ids:
            return {}
        placeholders = ",".join("?" for _ in item_ids)
        async with get_connection() as conn:
            cursor = await conn.execute(
                f"SELECT * FROM inventory_items WHERE id IN ({placeholders})",
                tuple(item_ids),
            )
            rows = await cursor.fetchall()
            return {row["id"]: self._row_to_inventory_item(row) for row in rows}

    async def get_item_by_code(self, item_code: str) -> InventoryItem | None:
        """Get inventory item by its human code."""
        async with get_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM inventory_items WHERE item_code = ?",
                (item_code,),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_inventory_item(row)

    async def list_items(
        self,
        category: str | None = None,
        include_inactive: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> list[InventoryItem]:
        """List inventory items with pagination."""
        where, params = _item_filters(category, include_inactive)
        query = (
            f"SELECT * FROM inventory_items WHERE {where} "
            "ORDER BY item_name COLLATE NOCASE, id LIMIT ? OFFSET ?"
        )
        params.extend([limit, offset])

        async with get_connection() as conn:
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()
            return [self._row_to_inventory_item(row) for row in rows]

    async def count_items(
        self,
        category: str | None = None,
        include_inactive: bool = False,
    ) -> int:
        where, params = _item_filters(category, include_inactive)
        async with get_connection() as conn:
            cursor = await conn.execute(f"SELECT COUNT(*) FROM inventory_items WHERE {where}", params)
            row = await cursor.fetchone()
            return row[0]

    async def update_item(self, item_id: int, changes: dict[str, Any]) -> InventoryItem | None:
        """
        Change catalog fields of an item.

        The row is re-validated as a whole, so lowering max_stock below
        the stored min_stock fails even when min_stock is not in
        ``changes``. Balance and version are left as they are.

        Raises:
            ValidationError: A non-catalog field, or an invalid merged item
            DuplicateItemCodeError: item_code already used by another item
        """
        for field in changes:
            if field not in CATALOG_FIELDS:
                raise ValidationError(field, "not an editable catalog field", changes[field])

        try:
            async with get_transaction(immediate=True) as conn:
                cursor = await conn.execute(
                    "SELECT * FROM inventory_items WHERE id = ?", (item_id,)
                )
                row = await cursor.fetchone()
                if row is None:
                    return None
                item = _merge_catalog_changes(self._row_to_inventory_item(row), changes)
                item.updated_at = utcnow()

                assignments = ", ".join(f"{field} = ?" for field in CATALOG_FIELDS)
                await conn.execute(
                    f"UPDATE inventory_items SET {assignments}, updated_at = ? WHERE id = ?",
                    (
                        *(_column_value(getattr(item, field)) for field in CATALOG_FIELDS),
                        item.updated_at.isoformat(),
                        item_id,
                    ),
                )
        except aiosqlite.IntegrityError as e:
            if changes.get("item_code") and "item_code" in str(e):
                raise DuplicateItemCodeError(changes["item_code"]) from e
            raise DatabaseError("update_item", str(e)) from e

        logger.info("inventory_item_updated", item_id=item_id, fields=sorted(changes))
        return item

    async def list_active_items(self) -> list[InventoryItem]:
        async with get_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM inventory_items WHERE is_active = 1 ORDER BY id"
            )
            rows = await cursor.fetchall()
            return [self._row_to_inventory_item(row) for row in rows]

    async def list_low_stock(self) -> list[InventoryItem]:
        """List active items at or below their minimum."""
        async with get_connection() as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM inventory_items
                WHERE is_active = 1 AND current_stock <= min_stock
                ORDER BY current_stock, item_name COLLATE NOCASE
                """
            )
            rows = await cursor.fetchall()
            return [self._row_to_inventory_item(row) for row in rows]

    async def set_active(self, item_id: int, is_active: bool) -> InventoryItem | None:
        """Soft-(de)activate an item; the balance and version are untouched."""
        async with get_transaction() as conn:
            cursor = await conn.execute(
                "UPDATE inventory_items SET is_active = ?, updated_at = ? WHERE id = ?",
                (int(is_active), utcnow().isoformat(), item_id),
            )
            if cursor.rowcount == 0:
                return None

        logger.info("inventory_item_active_changed", item_id=item_id, is_active=is_active)
        return await self.get_item(item_id)

    def _row_to_inventory_item(self, row: aiosqlite.Row) -> InventoryItem:
        """Convert database row to InventoryItem entity."""
        return InventoryItem(
            id=row["id"],
            item_code=row["item_code"],
            item_name=row["item_name"],
            category=row["category"],
            unit=row["unit"],
            current_stock=row["current_stock"],
            min_stock=row["min_stock"],
            max_stock=row["max_stock"],
            reorder_quantity=row["reorder_quantity"],
            cost_per_unit=row["cost_per_unit"],
            average_price=row["average_price"],
            has_expiry=bool(row["has_expiry"]),
            shelf_life=row["shelf_life"],
            is_active=bool(row["is_active"]),
            version=row["version"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
