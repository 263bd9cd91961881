"""Tests for the SQLite connection pool."""

import asyncio
from pathlib import Path

import aiosqlite
import pytest

from stockledger.infrastructure.storage.sqlite.connection import ConnectionPool, is_busy_error


@pytest.fixture
async def pool(tmp_path: Path):
    pool = ConnectionPool(tmp_path / "pool.db", pool_size=2, busy_timeout=1000)
    await pool.initialize()
    async with pool.transaction() as conn:
        await conn.execute("CREATE TABLE t (id INTEGER PRIMARY KEY, v TEXT)")
    yield pool
    await pool.close()


class TestConnectionPool:
    async def test_pragmas(self, pool):
        async with pool.acquire() as conn:
            cursor = await conn.execute("PRAGMA journal_mode")
            assert (await cursor.fetchone())[0] == "wal"
            cursor = await conn.execute("PRAGMA foreign_keys")
            assert (await cursor.fetchone())[0] == 1

    async def test_acquire_returns_connection(self, pool):
        assert pool.available == 2
        async with pool.acquire():
            assert pool.available == 1
        assert pool.available == 2

    async def test_transaction_commits(self, pool):
        async with pool.transaction(immediate=True) as conn:
            await conn.execute("INSERT INTO t (v) VALUES ('a')")

        async with pool.acquire() as conn:
            cursor = await conn.execute("SELECT COUNT(*) FROM t")
            assert (await cursor.fetchone())[0] == 1

    async def test_transaction_rolls_back_on_error(self, pool):
        with pytest.raises(RuntimeError):
            async with pool.transaction(immediate=True) as conn:
                await conn.execute("INSERT INTO t (v) VALUES ('a')")
                raise RuntimeError("boom")

        async with pool.acquire() as conn:
            cursor = await conn.execute("SELECT COUNT(*) FROM t")
            assert (await cursor.fetchone())[0] == 0

    async def test_close_allows_reinitialize(self, pool):
        await pool.close()
        assert pool.available == 0
        await pool.initialize()
        assert pool.available == 2

    async def test_writers_are_serialized(self, pool):
        entered = asyncio.Event()
        release = asyncio.Event()
        order: list[str] = []

        async def first():
            async with pool.transaction(immediate=True) as conn:
                entered.set()
                await release.wait()
                await conn.execute("INSERT INTO t (v) VALUES ('first')")
                order.append("first")

        async def second():
            await entered.wait()
            async with pool.transaction(immediate=True) as conn:
                await conn.execute("INSERT INTO t (v) VALUES ('second')")
                order.append("second")

        tasks = [asyncio.create_task(first()), asyncio.create_task(second())]
        await entered.wait()
        await asyncio.sleep(0.01)
        assert pool.writing
        assert order == []

        release.set()
        await asyncio.gather(*tasks)

        assert order == ["first", "second"]
        assert not pool.writing

    async def test_reads_proceed_during_write(self, pool):
        async with pool.transaction(immediate=True) as writer:
            await writer.execute("INSERT INTO t (v) VALUES ('pending')")
            async with pool.acquire() as reader:
                cursor = await reader.execute("SELECT COUNT(*) FROM t")
                assert (await cursor.fetchone())[0] == 0

    async def test_reader_returned_mid_transaction_is_reset(self, pool):
        async with pool.acquire() as conn:
            await conn.execute("BEGIN")
            await conn.execute("SELECT COUNT(*) FROM t")
            assert conn.in_transaction

        async with pool.acquire() as conn:
            assert not conn.in_transaction


class TestBusyErrors:
    def test_locked_is_busy(self):
        assert is_busy_error(aiosqlite.OperationalError("database is locked"))

    def test_other_errors_are_not_busy(self):
        assert not is_busy_error(aiosqlite.OperationalError("no such table: t"))
        assert not is_busy_error(aiosqlite.IntegrityError("database is locked"))
