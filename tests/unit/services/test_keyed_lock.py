"""Tests for the per-item KeyedLock."""

import asyncio

import pytest

from stockledger.core.concurrency import KeyedLock
from stockledger.core.exceptions import ConcurrencyConflictError


class TestKeyedLock:
    async def test_same_key_serializes(self):
        locks = KeyedLock()
        order: list[str] = []

        async def worker(name: str):
            async with locks.acquire(1):
                order.append(f"{name}-start")
                await asyncio.sleep(0.01)
                order.append(f"{name}-end")

        await asyncio.gather(worker("a"), worker("b"))
        assert order in (
            ["a-start", "a-end", "b-start", "b-end"],
            ["b-start", "b-end", "a-start", "a-end"],
        )

    async def test_different_keys_run_in_parallel(self):
        locks = KeyedLock()
        inside = asyncio.Event()

        async def holder():
            async with locks.acquire(1):
                await asyncio.wait_for(inside.wait(), timeout=1)

        async def other():
            async with locks.acquire(2):
                inside.set()

        await asyncio.gather(holder(), other())

    async def test_entries_released_after_use(self):
        locks = KeyedLock()
        async with locks.acquire(1):
            assert locks.locked(1)
            assert len(locks) == 1
        assert len(locks) == 0
        assert not locks.locked(1)

    async def test_timeout_raises_conflict(self):
        locks = KeyedLock(timeout=0.01)
        async with locks.acquire(7):
            with pytest.raises(ConcurrencyConflictError) as exc_info:
                async with locks.acquire(7):
                    pass
        assert exc_info.value.details["inventory_id"] == 7
        assert len(locks) == 0

    async def test_acquire_many_dedupes_keys(self):
        locks = KeyedLock()
        async with locks.acquire_many([3, 1, 3, 2]):
            assert len(locks) == 3
            assert all(locks.locked(k) for k in (1, 2, 3))
        assert len(locks) == 0

    async def test_acquire_many_does_not_deadlock_on_opposite_order(self):
        locks = KeyedLock(timeout=1)

        async def batch(keys):
            async with locks.acquire_many(keys):
                await asyncio.sleep(0.005)

        await asyncio.gather(batch([1, 2]), batch([2, 1]), batch([2, 3, 1]))
