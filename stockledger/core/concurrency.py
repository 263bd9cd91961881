"""
Per-key asyncio locking.

Serializes writers of the same inventory item while letting different
items proceed in parallel.
"""

import asyncio
from collections.abc import AsyncIterator, Hashable, Iterable
from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import dataclass, field

from stockledger.config import get_logger
from stockledger.core.exceptions import ConcurrencyConflictError

logger = get_logger(__name__)


@dataclass
class _LockEntry:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    holders: int = 0  # tasks holding or waiting


class KeyedLock:
    """
    Lock registry keyed by an arbitrary hashable id.

    Entries are reference-counted and dropped once nobody holds or waits
    on them, so the registry only grows with the number of items being
    written at the same time.
    """

    def __init__(self, timeout: float | None = 5.0):
        self.timeout = timeout
        self._entries: dict[Hashable, _LockEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def locked(self, key: Hashable) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.lock.locked()

    @asynccontextmanager
    async def acquire(self, key: Hashable) -> AsyncIterator[None]:
        """
        Hold the lock for ``key``.

        Raises ConcurrencyConflictError if the lock is not obtained
        within ``timeout`` seconds.
        """
        entry = self._entries.setdefault(key, _LockEntry())
        entry.holders += 1
        try:
            try:
                await asyncio.wait_for(entry.lock.acquire(), timeout=self.timeout)
            except TimeoutError:
                logger.warning("item_lock_timeout", key=key, timeout=self.timeout)
                raise ConcurrencyConflictError(
                    key if isinstance(key, int) else None,
                    reason=f"lock not acquired within {self.timeout}s",
                ) from None
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            entry.holders -= 1
            if entry.holders == 0 and self._entries.get(key) is entry:
                del self._entries[key]

    @asynccontextmanager
    async def acquire_many(self, keys: Iterable[int]) -> AsyncIterator[None]:
        """Hold the locks of all distinct keys, taken in ascending order."""
        ordered = sorted(set(keys))
        async with AsyncExitStack() as stack:
            for key in ordered:
                await stack.enter_async_context(self.acquire(key))
            yield

