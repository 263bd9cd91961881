"""SQLite implementation of the stock movement ledger."""

from datetime import date, datetime

import aiosqlite

from stockledger.config import get_logger
from stockledger.core.entities.inventory import (
    ApprovalState,
    MovementFilters,
    MovementType,
    ReferenceType,
    StockMovement,
)
from stockledger.core.exceptions import ConcurrencyConflictError, DatabaseError
from stockledger.core.interfaces.movement_store import IStockMovementStore
from stockledger.infrastructure.storage.sqlite.connection import (
    get_connection,
    get_transaction,
    is_busy_error,
)
from stockledger.infrastructure.storage.sqlite.inventory_store import apply_balance_change

logger = get_logger(__name__)

_INSERT_SQL = """
    INSERT INTO stock_movements (
        inventory_id, movement_type, quantity, unit,
        stock_before, stock_after, unit_cost, total_cost,
        reference_type, reference_id, reference_number,
        batch_number, expiry_date, notes, document_url,
        moved_by, moved_at, approved_by, approved_at, approval_notes
    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""


def _filter_clause(filters: MovementFilters) -> tuple[str, list]:
    """WHERE clause and parameters for a set of list filters."""
    clauses: list[str] = []
    params: list = []

    if filters.inventory_id is not None:
        clauses.append("inventory_id = ?")
        params.append(filters.inventory_id)
    if filters.movement_type is not None:
        clauses.append("movement_type = ?")
        params.append(filters.movement_type.value)
    if filters.reference_type is not None:
        clauses.append("reference_type = ?")
        params.append(filters.reference_type.value)
    if filters.reference_id is not None:
        clauses.append("reference_id = ?")
        params.append(filters.reference_id)
    if filters.start_date is not None:
        clauses.append("moved_at >= ?")
        params.append(filters.start_date.isoformat())
    if filters.end_date is not None:
        clauses.append("moved_at <= ?")
        params.append(filters.end_date.isoformat())
    if filters.approval_state is ApprovalState.APPROVED:
        clauses.append("approved_by IS NOT NULL")
    elif filters.approval_state is ApprovalState.PENDING:
        clauses.append("approved_by IS NULL")
    if filters.moved_by is not None:
        clauses.append("moved_by = ?")
        params.append(filters.moved_by)
    if filters.approved_by is not None:
        clauses.append("approved_by = ?")
        params.append(filters.approved_by)

    where = " WHERE " + " AND ".join(clauses) if clauses else ""
    return where, params


class SQLiteStockMovementStore(IStockMovementStore):
    """
    SQLite ledger storage.

    Every append inserts the movement and moves the item's balance in one
    immediate transaction; any failure rolls both back.
    """

    async def append(
        self,
        movement: StockMovement,
        expected_version: int,
    ) -> StockMovement:
        saved = await self.append_many(
            [movement], expected_versions={movement.inventory_id: expected_version}
        )
        return saved[0]

    async def append_many(
        self,
        movements: list[StockMovement],
        expected_versions: dict[int, int],
    ) -> list[StockMovement]:
        """Insert movements in order and chain each item's version through them."""
        versions = dict(expected_versions)
        try:
            async with get_transaction(immediate=True) as conn:
                for movement in movements:
                    cursor = await conn.execute(_INSERT_SQL, self._movement_params(movement))
                    movement.id = cursor.lastrowid
                    await apply_balance_change(
                        conn,
                        movement.inventory_id,
                        movement.stock_after,
                        versions[movement.inventory_id],
                    )
                    versions[movement.inventory_id] += 1
        except aiosqlite.Error as e:
            for movement in movements:
                movement.id = None
            if is_busy_error(e):
                raise ConcurrencyConflictError(
                    movements[0].inventory_id if movements else None, str(e)
                ) from e
            logger.error("ledger_append_failed", movements=len(movements), error=str(e))
            raise DatabaseError("append_movements", str(e)) from e
        except ConcurrencyConflictError:
            for movement in movements:
                movement.id = None
            raise

        return movements

    async def get_movement(self, movement_id: int) -> StockMovement | None:
        """Get movement by ID."""
        async with get_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM stock_movements WHERE id = ?", (movement_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_movement(row)

    async def list_movements(
        self,
        filters: MovementFilters,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[StockMovement], int]:
        """List movements newest first, with the total matching count."""
        where, params = _filter_clause(filters)
        async with get_connection() as conn:
            cursor = await conn.execute(
                f"SELECT COUNT(*) FROM stock_movements{where}", params
            )
            total = (await cursor.fetchone())[0]

            cursor = await conn.execute(
                f"""
                SELECT * FROM stock_movements{where}
                ORDER BY moved_at DESC, id DESC
                LIMIT ? OFFSET ?
                """,
                [*params, limit, offset],
            )
            rows = await cursor.fetchall()
            return [self._row_to_movement(row) for row in rows], total

    async def list_between(
        self,
        start: datetime,
        end: datetime,
    ) -> list[StockMovement]:
        async with get_connection() as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM stock_movements
                WHERE moved_at >= ? AND moved_at <= ?
                ORDER BY moved_at, id
                """,
                (start.isoformat(), end.isoformat()),
            )
            rows = await cursor.fetchall()
            return [self._row_to_movement(row) for row in rows]

    async def mark_approved(
        self,
        movement_id: int,
        approved_by: str,
        approved_at: datetime,
        approval_notes: str | None = None,
    ) -> bool:
        """Set the approval fields only while they are still empty."""
        async with get_transaction() as conn:
            cursor = await conn.execute(
                """
                UPDATE stock_movements
                SET approved_by = ?, approved_at = ?, approval_notes = ?
                WHERE id = ? AND approved_by IS NULL
                """,
                (approved_by, approved_at.isoformat(), approval_notes, movement_id),
            )
            return cursor.rowcount == 1

    def _movement_params(self, movement: StockMovement) -> tuple:
        return (
            movement.inventory_id,
            movement.movement_type.value,
            movement.quantity,
            movement.unit,
            movement.stock_before,
            movement.stock_after,
            movement.unit_cost,
            movement.total_cost,
            movement.reference_type.value if movement.reference_type else None,
            movement.reference_id,
            movement.reference_number,
            movement.batch_number,
            movement.expiry_date.isoformat() if movement.expiry_date else None,
            movement.notes,
            movement.document_url,
            movement.moved_by,
            movement.moved_at.isoformat(),
            movement.approved_by,
            movement.approved_at.isoformat() if movement.approved_at else None,
            movement.approval_notes,
        )

    def _row_to_movement(self, row: aiosqlite.Row) -> StockMovement:
        """Convert database row to StockMovement entity."""
        return StockMovement(
            id=row["id"],
            inventory_id=row["inventory_id"],
            movement_type=MovementType(row["movement_type"]),
            quantity=row["quantity"],
            unit=row["unit"],
            stock_before=row["stock_before"],
            stock_after=row["stock_after"],
            unit_cost=row["unit_cost"],
            total_cost=row["total_cost"],
            reference_type=(
                ReferenceType(row["reference_type"]) if row["reference_type"] else None
            ),
            reference_id=row["reference_id"],
            reference_number=row["reference_number"],
            batch_number=row["batch_number"],
            expiry_date=date.fromisoformat(row["expiry_date"]) if row["expiry_date"] else None,
            notes=row["notes"],
            document_url=row["document_url"],
            moved_by=row["moved_by"],
            moved_at=datetime.fromisoformat(row["moved_at"]),
            approved_by=row["approved_by"],
            approved_at=(
                datetime.fromisoformat(row["approved_at"]) if row["approved_at"] else None
            ),
            approval_notes=row["approval_notes"],
        )
