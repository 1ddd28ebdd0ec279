"""
Local cache seam for normalized domain objects.

Persistence is an external collaborator: anything implementing
[EventCache][zapstore.core.cache.EventCache] can back the catalog queries.
[MemoryCache][zapstore.core.cache.MemoryCache] is the in-process default
with optional expiry and a size cap.

Keys are namespaced by event kind. Composite keys are built with
[cache_key()][zapstore.core.cache.cache_key]: ``pubkey:d_tag`` for
addressable objects, the event id or pubkey otherwise.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from typing import Any, Protocol, runtime_checkable


def cache_key(*parts: str) -> str:
    """Join key parts with ``:``."""
    return ":".join(parts)


@runtime_checkable
class EventCache(Protocol):
    """Key-value store for normalized records, namespaced by kind."""

    async def get(self, kind: int, key: str) -> Any | None: ...

    async def set(self, kind: int, key: str, value: Any) -> None: ...

    async def delete(self, kind: int, key: str) -> None: ...


class MemoryCache:
    """In-memory LRU cache with optional time-to-live.

    Args:
        ttl: Seconds an entry stays valid; ``None`` keeps entries until evicted.
        max_entries: Entries kept before the least recently used is evicted.
    """

    def __init__(self, ttl: float | None = None, max_entries: int = 10_000) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be positive")
        self._ttl = ttl
        self._max_entries = max_entries
        self._entries: OrderedDict[tuple[int, str], tuple[float, Any]] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, kind: int, key: str) -> Any | None:
        entry = self._entries.get((kind, key))
        if entry is None:
            return None
        stored_at, value = entry
        if self._ttl is not None and time.monotonic() - stored_at > self._ttl:
            del self._entries[(kind, key)]
            return None
        self._entries.move_to_end((kind, key))
        return value

    async def set(self, kind: int, key: str, value: Any) -> None:
        self._entries[(kind, key)] = (time.monotonic(), value)
        self._entries.move_to_end((kind, key))
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

    async def delete(self, kind: int, key: str) -> None:
        self._entries.pop((kind, key), None)

    def clear(self) -> None:
        self._entries.clear()
