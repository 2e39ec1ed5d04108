"""Family Locks — per-family-root mutual exclusion for relationship mutations.

Invariants:
    - At most one holder per family root key at a time (within this process)
    - Multiple keys are always acquired in sorted order: no lock-order deadlocks
    - Released in reverse order, also on exception
    - Lock objects for idle keys are dropped so the registry does not grow without bound

Design Decisions:
    - asyncio.Lock per key over one global lock: unrelated families mutate concurrently
    - Cross-process exclusion is layered on top by the store (pg_advisory_xact_lock),
      this registry only serializes coroutines of one worker
"""

import asyncio
from collections.abc import Hashable, Iterable
from contextlib import AsyncExitStack, asynccontextmanager


class FamilyLocks:
    """Registry of asyncio locks keyed by family root."""

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._waiters: dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, keys: Iterable[Hashable]):
        ordered = sorted(set(keys), key=str)
        async with AsyncExitStack() as stack:
            for key in ordered:
                await stack.enter_async_context(self._hold_one(key))
            yield ordered

    @asynccontextmanager
    async def _hold_one(self, key: Hashable):
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                self._locks.pop(key, None)

    def is_held(self, key: Hashable) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()
