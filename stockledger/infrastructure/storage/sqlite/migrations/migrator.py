"""
Schema migrations for the ledger database.

Each ``vNNN_name.sql`` file runs in one transaction together with its
``schema_migrations`` row, so a failed migration leaves the database at
the previous version. After a run the ledger schema is checked for the
tables and columns the stores rely on.
"""

import argparse
import asyncio
import hashlib
import re
import sys
import time
from dataclasses import dataclass
from pathlib import Path

import aiosqlite

from stockledger.config import get_logger, get_settings
from stockledger.core.exceptions import DatabaseError

logger = get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent

_FILENAME = re.compile(r"v(\d{3})_(\w+)\.sql")

# Columns read or written by the stores and the integrity checks
REQUIRED_COLUMNS: dict[str, frozenset[str]] = {
    "inventory_items": frozenset(
        {"id", "item_code", "current_stock", "min_stock", "max_stock", "is_active", "version"}
    ),
    "stock_movements": frozenset(
        {"id", "inventory_id", "movement_type", "quantity", "stock_before",
         "stock_after", "moved_at", "approved_by", "approved_at"}
    ),
    "schema_migrations": frozenset({"version", "name", "checksum"}),
}

REQUIRED_TABLES = tuple(REQUIRED_COLUMNS)

# Items whose balance differs from the stock_after of their newest movement
_BALANCE_DRIFT_SQL = """
    SELECT i.id, i.current_stock, m.stock_after
    FROM inventory_items i
    JOIN stock_movements m ON m.id = (
        SELECT id FROM stock_movements
        WHERE inventory_id = i.id
        ORDER BY id DESC LIMIT 1
    )
    WHERE abs(i.current_stock - m.stock_after) > 1e-9
"""

# Movements whose stock_before does not continue the item's previous stock_after
_BROKEN_CHAIN_SQL = """
    SELECT id, inventory_id FROM (
        SELECT id, inventory_id, stock_before,
               LAG(stock_after) OVER (PARTITION BY inventory_id ORDER BY id) AS previous_after
        FROM stock_movements
    )
    WHERE previous_after IS NOT NULL AND abs(stock_before - previous_after) > 1e-9
    ORDER BY id
"""


@dataclass(frozen=True)
class MigrationInfo:
    """A migration script shipped with the package."""

    version: str
    name: str
    path: Path
    checksum: str

    @classmethod
    def from_file(cls, path: Path) -> "MigrationInfo":
        match = _FILENAME.fullmatch(path.name)
        if match is None:
            raise ValueError(f"Invalid migration filename: {path.name}")
        checksum = hashlib.sha256(path.read_bytes()).hexdigest()[:16]
        return cls(version=match.group(1), name=match.group(2), path=path, checksum=checksum)


@dataclass
class MigrationResult:
    version: str
    name: str
    success: bool
    execution_time_ms: int
    error: str | None = None


def discover_migrations() -> list[MigrationInfo]:
    """Migration scripts in version order; duplicate versions are a packaging error."""
    migrations = [MigrationInfo.from_file(p) for p in sorted(MIGRATIONS_DIR.glob("v*.sql"))]
    versions = [m.version for m in migrations]
    if len(set(versions)) != len(versions):
        raise ValueError(f"Duplicate migration versions: {versions}")
    return migrations


async def table_columns(conn: aiosqlite.Connection) -> dict[str, set[str]]:
    cursor = await conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
    tables = [row[0] for row in await cursor.fetchall()]
    columns = {}
    for table in tables:
        cursor = await conn.execute(f"PRAGMA table_info({table})")
        columns[table] = {row[1] for row in await cursor.fetchall()}
    return columns


async def _applied_checksums(conn: aiosqlite.Connection) -> dict[str, str]:
    if "schema_migrations" not in await table_columns(conn):
        return {}
    cursor = await conn.execute("SELECT version, checksum FROM schema_migrations ORDER BY version")
    return {version: checksum for version, checksum in await cursor.fetchall()}


async def get_current_version(conn: aiosqlite.Connection) -> str | None:
    applied = await _applied_checksums(conn)
    return max(applied) if applied else None


async def pending_migrations(conn: aiosqlite.Connection) -> list[MigrationInfo]:
    """
    Migrations not yet applied.

    Raises:
        DatabaseError: An applied script was edited afterwards
    """
    applied = await _applied_checksums(conn)
    pending = []
    for migration in discover_migrations():
        recorded = applied.get(migration.version)
        if recorded is None:
            pending.append(migration)
        elif recorded != migration.checksum:
            raise DatabaseError(
                "migrate",
                f"v{migration.version}_{migration.name} changed after it was applied",
            )
    return pending


def schema_problems(columns: dict[str, set[str]]) -> dict[str, list[str]]:
    """Missing ledger tables and columns, keyed by table ("*" for a missing table)."""
    problems: dict[str, list[str]] = {}
    for table, required in REQUIRED_COLUMNS.items():
        if table not in columns:
            problems[table] = ["*"]
        elif missing := sorted(required - columns[table]):
            problems[table] = missing
    return problems


async def apply_migration(conn: aiosqlite.Connection, migration: MigrationInfo) -> MigrationResult:
    """Run one script and record it, atomically."""
    logger.info("applying_migration", version=migration.version, name=migration.name)
    start = time.perf_counter()

    try:
        await conn.executescript("BEGIN IMMEDIATE;\n" + migration.path.read_text(encoding="utf-8"))
        await conn.execute(
            "INSERT INTO schema_migrations (version, name, checksum, execution_time_ms) "
            "VALUES (?, ?, ?, ?)",
            (
                migration.version,
                migration.name,
                migration.checksum,
                int((time.perf_counter() - start) * 1000),
            ),
        )
        await conn.commit()
    except aiosqlite.Error as e:
        if conn.in_transaction:
            await conn.rollback()
        logger.error("migration_failed", version=migration.version, error=str(e))
        return MigrationResult(
            version=migration.version,
            name=migration.name,
            success=False,
            execution_time_ms=int((time.perf_counter() - start) * 1000),
            error=str(e),
        )

    elapsed = int((time.perf_counter() - start) * 1000)
    logger.info("migration_applied", version=migration.version, execution_time_ms=elapsed)
    return MigrationResult(
        version=migration.version,
        name=migration.name,
        success=True,
        execution_time_ms=elapsed,
    )


async def create_backup(conn: aiosqlite.Connection, db_path: Path, version: str) -> Path:
    """Snapshot the live database through SQLite's online backup API."""
    backup_path = db_path.with_name(f"{db_path.stem}.v{version}.backup{db_path.suffix}")
    async with aiosqlite.connect(backup_path) as target:
        await conn.backup(target)
    logger.info("database_backup_created", backup_path=str(backup_path))
    return backup_path


async def initialize_database(
    db_path: Path | None = None,
    create_backup_before: bool = True,
) -> list[MigrationResult]:
    """
    Bring the database up to the newest schema.

    A database that already carries migrations is snapshotted before
    anything new is applied. Application stops at the first failing
    migration; earlier ones stay committed.

    Raises:
        DatabaseError: An applied script was edited, or the migrated
            schema lacks ledger tables or columns
    """
    db_path = db_path or get_settings().storage.db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("initializing_database", db_path=str(db_path))

    results: list[MigrationResult] = []
    async with aiosqlite.connect(db_path) as conn:
        await conn.execute("PRAGMA journal_mode=WAL")
        await conn.execute("PRAGMA foreign_keys=ON")

        pending = await pending_migrations(conn)
        if not pending:
            logger.info("database_up_to_date", version=await get_current_version(conn))
            return results

        current = await get_current_version(conn)
        if create_backup_before and current is not None:
            await create_backup(conn, db_path, current)

        for migration in pending:
            result = await apply_migration(conn, migration)
            results.append(result)
            if not result.success:
                return results

        problems = schema_problems(await table_columns(conn))
        if problems:
            raise DatabaseError("migrate", f"ledger schema incomplete: {problems}")

    return results


run_migrations = initialize_database


async def get_migration_status(db_path: Path | None = None) -> dict:
    db_path = db_path or get_settings().storage.db_path
    if not db_path.exists():
        return {
            "exists": False,
            "current_version": None,
            "applied_migrations": [],
            "pending_migrations": [m.version for m in discover_migrations()],
        }

    async with aiosqlite.connect(db_path) as conn:
        applied = await _applied_checksums(conn)
        pending = await pending_migrations(conn)
        return {
            "exists": True,
            "current_version": max(applied) if applied else None,
            "applied_migrations": sorted(applied),
            "pending_migrations": [m.version for m in pending],
        }


async def verify_schema_integrity(db_path: Path | None = None) -> list[dict]:
    """
    Check storage integrity and the ledger invariants.

    Besides SQLite's own checks: every ledger table and column exists,
    each item's balance equals its newest movement's stock_after, and
    each movement's stock_before continues the previous movement of the
    same item.
    """
    db_path = db_path or get_settings().storage.db_path
    checks = []

    async with aiosqlite.connect(db_path) as conn:
        cursor = await conn.execute("PRAGMA integrity_check")
        result = (await cursor.fetchone())[0]
        checks.append({"check": "integrity", "status": "PASS" if result == "ok" else "FAIL", "result": result})

        cursor = await conn.execute("PRAGMA foreign_key_check")
        violations = await cursor.fetchall()
        checks.append({
            "check": "foreign_keys",
            "status": "FAIL" if violations else "PASS",
            "violations": len(violations),
        })

        problems = schema_problems(await table_columns(conn))
        checks.append({
            "check": "required_tables",
            "status": "FAIL" if problems else "PASS",
            "missing": problems,
        })
        if problems:
            return checks

        cursor = await conn.execute(_BALANCE_DRIFT_SQL)
        drift = await cursor.fetchall()
        checks.append({
            "check": "ledger_balances",
            "status": "FAIL" if drift else "PASS",
            "mismatched_items": [row[0] for row in drift],
        })

        cursor = await conn.execute(_BROKEN_CHAIN_SQL)
        broken = await cursor.fetchall()
        checks.append({
            "check": "movement_chain",
            "status": "FAIL" if broken else "PASS",
            "broken_movements": [row[0] for row in broken],
        })

    return checks


def main(argv: list[str] | None = None) -> int:
    """CLI entry point; returns the process exit code."""
    parser = argparse.ArgumentParser(description="Stock ledger database migrations")
    parser.add_argument("--db-path", type=Path, help="Database path (default from settings)")
    parser.add_argument("--status", action="store_true", help="Show applied and pending versions")
    parser.add_argument("--verify", action="store_true", help="Check schema and ledger balances")
    parser.add_argument("--no-backup", action="store_true", help="Skip the pre-migration snapshot")
    args = parser.parse_args(argv)

    if args.status:
        status = asyncio.run(get_migration_status(args.db_path))
        print(f"Database exists: {status['exists']}")
        print(f"Current version: {status['current_version'] or 'N/A'}")
        print(f"Applied: {status['applied_migrations']}  Pending: {status['pending_migrations']}")
        return 0

    if args.verify:
        checks = asyncio.run(verify_schema_integrity(args.db_path))
        for check in checks:
            print(f"[{check['status']}] {check['check']}")
            if check["status"] != "PASS":
                for key, value in check.items():
                    if key not in ("check", "status"):
                        print(f"       {key}: {value}")
        return 0 if all(c["status"] == "PASS" for c in checks) else 1

    results = asyncio.run(initialize_database(args.db_path, create_backup_before=not args.no_backup))
    if not results:
        print("Database is up to date.")
    for result in results:
        label = "SUCCESS" if result.success else "FAILED"
        print(f"[{label}] v{result.version}_{result.name} ({result.execution_time_ms}ms)")
        if result.error:
            print(f"         Error: {result.error}")
    return 0 if all(r.success for r in results) else 1


if __name__ == "__main__":
    sys.exit(main())
