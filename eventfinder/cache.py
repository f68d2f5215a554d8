"""In-memory TTL cache for aggregated results."""

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger("eventfinder.cache")


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    sets: int = 0
    evictions: int = 0
    size: int = 0


class TTLCache:
    """Key-value store with a TTL per entry and an LRU size bound.

    Expired entries are dropped lazily on read. When the cache is full the
    least recently used entry is evicted to make room.
    """

    def __init__(self, max_entries: int = 256, clock: Callable[[], float] = time.monotonic):
        if max_entries <= 0:
            raise ValueError("max_entries must be > 0")
        self.max_entries = max_entries
        self.clock = clock
        self._entries: "OrderedDict[str, tuple]" = OrderedDict()
        self.stats = CacheStats()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            self.stats.misses += 1
            return None

        value, expires_at = entry
        if self.clock() > expires_at:
            del self._entries[key]
            self.stats.misses += 1
            self.stats.size = len(self._entries)
            return None

        self._entries.move_to_end(key)
        self.stats.hits += 1
        return value

    def set(self, key: str, value: Any, ttl: float) -> None:
        """Store ``value`` for ``ttl`` seconds."""
        if key in self._entries:
            del self._entries[key]
        self._entries[key] = (value, self.clock() + ttl)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            self.stats.evictions += 1
            logger.debug(f"Evicted cache entry {evicted[:60]}")
        self.stats.sets += 1
        self.stats.size = len(self._entries)

    def clear(self) -> None:
        self._entries.clear()
        self.stats.size = 0
