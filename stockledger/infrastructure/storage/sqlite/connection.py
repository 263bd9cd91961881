"""
SQLite access for the ledger: a pool of reader connections plus one
writer connection.

SQLite admits a single writer at a time. Routing every write through one
connection, guarded by an asyncio lock, queues writers of this process
in order instead of letting them race for the file lock; "database is
locked" can then only come from another process.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite

from stockledger.config import get_logger, get_settings

logger = get_logger(__name__)

_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA foreign_keys=ON",
)

# sqlite3 messages for a writer that lost the race for the database lock
_BUSY_MESSAGES = ("database is locked", "database table is locked", "database is busy")


def is_busy_error(error: BaseException) -> bool:
    """True for lock contention errors that are safe to retry."""
    return isinstance(error, aiosqlite.OperationalError) and any(
        msg in str(error).lower() for msg in _BUSY_MESSAGES
    )


class ConnectionPool:
    """Reader connections for queries, a single writer for transactions."""

    def __init__(self, db_path: Path, pool_size: int = 5, busy_timeout: int = 30000):
        self.db_path = db_path
        self.pool_size = pool_size
        self.busy_timeout = busy_timeout

        self._readers: asyncio.Queue[aiosqlite.Connection] = asyncio.Queue()
        self._all: list[aiosqlite.Connection] = []
        self._writer: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()
        self._setup_lock = asyncio.Lock()

    @property
    def available(self) -> int:
        """Idle reader connections."""
        return self._readers.qsize()

    @property
    def writing(self) -> bool:
        return self._write_lock.locked()

    async def initialize(self) -> None:
        async with self._setup_lock:
            if self._writer is not None:
                return
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._writer = await self._open()
            for _ in range(self.pool_size):
                self._readers.put_nowait(await self._open())
            logger.info("connection_pool_initialized", db_path=str(self.db_path), readers=self.pool_size)

    async def _open(self) -> aiosqlite.Connection:
        conn = await aiosqlite.connect(self.db_path)
        for pragma in _PRAGMAS:
            await conn.execute(pragma)
        await conn.execute(f"PRAGMA busy_timeout={self.busy_timeout}")
        conn.row_factory = aiosqlite.Row
        self._all.append(conn)
        return conn

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Borrow a reader connection.

        A connection handed back with an open transaction is rolled back
        first, so the next borrower never inherits half a write.
        """
        if self._writer is None:
            await self.initialize()
        conn = await self._readers.get()
        try:
            yield conn
        finally:
            if conn.in_transaction:
                await conn.rollback()
            self._readers.put_nowait(conn)

    @asynccontextmanager
    async def transaction(self, immediate: bool = False) -> AsyncIterator[aiosqlite.Connection]:
        """
        Run a write on the writer connection.

        Commits on success and rolls back on any exception, cancellation
        included. ``immediate`` takes the database write lock at BEGIN,
        before the first read of the transaction.
        """
        if self._writer is None:
            await self.initialize()
        async with self._write_lock:
            conn = self._writer
            if immediate:
                await conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
                await conn.commit()
            except BaseException:
                await conn.rollback()
                raise

    async def close(self) -> None:
        async with self._setup_lock:
            for conn in self._all:
                await conn.close()
            self._all.clear()
            self._readers = asyncio.Queue()
            self._writer = None
            logger.info("connection_pool_closed")


_pool: ConnectionPool | None = None


async def get_pool() -> ConnectionPool:
    """Get or create the process-wide pool from storage settings."""
    global _pool
    if _pool is None:
        storage = get_settings().storage
        _pool = ConnectionPool(
            db_path=storage.db_path,
            pool_size=storage.pool_size,
            busy_timeout=storage.busy_timeout,
        )
        await _pool.initialize()
    return _pool


async def close_pool() -> None:
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None


@asynccontextmanager
async def get_connection() -> AsyncIterator[aiosqlite.Connection]:
    pool = await get_pool()
    async with pool.acquire() as conn:
        yield conn


@asynccontextmanager
async def get_transaction(immediate: bool = False) -> AsyncIterator[aiosqlite.Connection]:
    pool = await get_pool()
    async with pool.transaction(immediate=immediate) as conn:
        yield conn
