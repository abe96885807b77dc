"""Process-local store of backend reads.

One `CacheStore` is created by the composition root and shared by every
cached query and the prefetcher. Entries are immutable; writers read the
current entry, build a new one with `dataclasses.replace` and `set` it back.
All access happens on the event loop thread, and no writer awaits between
its read and its write, so no locking is needed.

Entries are never evicted. Staleness is decided per read against the
reader's TTL; the key space is the fixed set of console endpoints.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Iterator, Optional


@dataclass(frozen=True)
class CacheEntry:
    """Cached payload for one endpoint key.

    Attributes:
        data: Last successfully fetched payload (None when absent).
        fetched_at: Clock reading of the last successful fetch.
        pending: The in-flight prefetch task for this key, if any. Joining
            it de-duplicates requests; cancelling it aborts the prefetch.
    """

    data: Any = None
    fetched_at: Optional[float] = None
    pending: Optional[asyncio.Task] = None

    @property
    def has_data(self) -> bool:
        return self.data is not None

    @property
    def in_flight(self) -> bool:
        return self.pending is not None and not self.pending.done()

    def age(self, now: float) -> float:
        return now - (self.fetched_at or 0.0)

    def is_stale(self, now: float, ttl_seconds: float) -> bool:
        return self.age(now) > ttl_seconds


class CacheStore:
    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._clock = clock

    def now(self) -> float:
        return self._clock()

    def get(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def set(self, key: str, entry: CacheEntry) -> None:
        self._entries[key] = entry

    def mark_stale(self, key: str) -> bool:
        """Force the next read of `key` to revalidate, keeping its data.

        Returns:
            True if an entry with data existed.
        """

        entry = self._entries.get(key)
        if entry is None or not entry.has_data:
            return False
        self._entries[key] = replace(entry, fetched_at=None)
        return True

    def keys(self) -> list[str]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))


__all__ = ["CacheEntry", "CacheStore"]
