"""Keyed Locks — per-key asyncio.Lock registry with reference-counted cleanup.

Invariants:
    - Two holders of the same key never run concurrently; different keys never block
    - A key's lock is dropped once no task holds or waits on it (no unbounded growth)
    - acquire_many() takes locks in sorted key order (no lock-order deadlocks)

Design Decisions:
    - asyncio locks, not threading: the service is a single event loop (uvicorn)
"""

import asyncio
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager, AsyncExitStack


class KeyedLocks:
    """Lazily created asyncio.Lock per key."""

    def __init__(self):
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._refs: dict[Hashable, int] = {}

    @asynccontextmanager
    async def acquire(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._refs[key] = self._refs.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._refs[key] -= 1
            if self._refs[key] == 0:
                del self._refs[key]
                del self._locks[key]

    @asynccontextmanager
    async def acquire_many(self, *keys: Hashable) -> AsyncIterator[None]:
        async with AsyncExitStack() as stack:
            for key in sorted(set(keys), key=repr):
                await stack.enter_async_context(self.acquire(key))
            yield

    def __len__(self) -> int:
        return len(self._locks)
