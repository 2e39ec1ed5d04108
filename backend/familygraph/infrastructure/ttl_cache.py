"""TTL Cache — explicit, injectable cache with per-entry expiry and targeted invalidation.

Invariants:
    - get() never returns an entry older than ttl_seconds
    - invalidate(key) removes exactly that key; clear() removes everything
    - max_entries bounds memory: oldest entry evicted first when full
    - Owned by whoever constructs it and passed by reference — no module-level instance

Design Decisions:
    - Injected clock (time.monotonic by default): tests advance time without sleeping
    - Single-process dict: suggestion results are advisory and cheap to recompute,
      so a shared cache server is not required
"""

import time
from collections import OrderedDict
from collections.abc import Callable, Hashable
from typing import Any


class TTLCache:
    """Small in-process cache with time-based expiry."""

    def __init__(
        self,
        ttl_seconds: float,
        max_entries: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[Hashable, tuple[float, Any]] = OrderedDict()

    def get(self, key: Hashable) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at >= self.ttl_seconds:
            del self._entries[key]
            return None
        return value

    def set(self, key: Hashable, value: Any) -> None:
        self._entries.pop(key, None)
        self._entries[key] = (self._clock(), value)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def invalidate(self, key: Hashable) -> bool:
        """Drop one entry. Returns True if it was present."""
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)
