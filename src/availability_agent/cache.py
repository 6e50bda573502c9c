"""In-memory TTL cache for scrape results."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional


@dataclass(frozen=True)
class CacheEntry:
    """A stored payload and the moment it was written."""

    payload: Any
    stored_at: float


class TTLCache:
    """Key-scoped get/set store whose entries expire a fixed time after writing.

    Entries are never updated in place; ``set`` replaces them wholesale.
    """

    def __init__(self, ttl_seconds: float = 900, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Hashable, CacheEntry] = {}
        self._locks: Dict[Hashable, asyncio.Lock] = {}

    def _is_expired(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.stored_at >= self.ttl_seconds

    def get(self, key: Hashable) -> Optional[Any]:
        """Return the cached payload, or None on miss or expiry."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._is_expired(entry):
            self._entries.pop(key, None)
            return None
        return entry.payload

    def set(self, key: Hashable, payload: Any) -> CacheEntry:
        entry = CacheEntry(payload=payload, stored_at=self._clock())
        self._entries[key] = entry
        return entry

    def lock_for(self, key: Hashable) -> asyncio.Lock:
        """Per-key lock used to let one scrape populate a key while others wait."""
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def purge_expired(self) -> int:
        """Drop expired entries and idle locks. Returns the number of entries removed."""
        expired = [key for key, entry in self._entries.items() if self._is_expired(entry)]
        for key in expired:
            del self._entries[key]
        for key in [key for key, lock in self._locks.items() if not lock.locked() and key not in self._entries]:
            del self._locks[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
