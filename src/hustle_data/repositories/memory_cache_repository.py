"""In-memory implementation of CacheStore.

A process-wide key-value map with per-key write timestamps. There is no
automatic eviction: entries live until removed or the process restarts,
and staleness is decided by callers through `is_expired`.
"""

import copy
import logging
import threading
import time
from collections.abc import Callable
from typing import Any

from hustle_data.entities import CacheEntryEntity

logger = logging.getLogger(__name__)


class MemoryCacheRepository:
    """Thread-safe TTL cache store.

    This class satisfies the CacheStore protocol through structural
    typing - no explicit inheritance needed.

    Values are deep-copied on the way in and on the way out, so callers
    never hold references into the store. Concurrent `store` calls on the
    same key are last-write-wins.
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        """Initialize the cache store.

        Args:
            clock: Returns the current time in seconds. Defaults to time.monotonic.
        """
        self._clock = clock or time.monotonic
        self._entries: dict[str, CacheEntryEntity] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @classmethod
    def create(cls, clock: Callable[[], float] | None = None) -> "MemoryCacheRepository":
        """Factory method to create MemoryCacheRepository with defaults.

        Args:
            clock: Optional time source, mainly for tests.

        Returns:
            Configured MemoryCacheRepository
        """
        return cls(clock=clock)

    def store(self, key: str, value: Any) -> None:
        """Insert or replace the entry for `key`.

        Args:
            key: Cache key
            value: Payload to store
        """
        entry = CacheEntryEntity(value=copy.deepcopy(value), stored_at=self._clock())
        with self._lock:
            self._entries[key] = entry
        logger.debug(f"cache store {key}")

    def retrieve(self, key: str) -> Any | None:
        """Return a copy of the stored value, ignoring staleness.

        Args:
            key: Cache key

        Returns:
            The value, or None if absent
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            self._hits += 1
        return copy.deepcopy(entry.value)

    def is_expired(self, key: str, max_age: float) -> bool:
        """Check whether `key` is absent or older than `max_age` seconds."""
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return True
        return entry.is_older_than(max_age, self._clock())

    def remove(self, key: str) -> None:
        with self._lock:
            removed = self._entries.pop(key, None)
        if removed is not None:
            logger.debug(f"cache invalidate {key}")

    def remove_prefix(self, prefix: str) -> int:
        """Delete every entry whose key starts with `prefix`.

        Args:
            prefix: Key prefix, e.g. CacheKeys.following_statuses_prefix()

        Returns:
            Number of entries removed
        """
        with self._lock:
            keys = [key for key in self._entries if key.startswith(prefix)]
            for key in keys:
                del self._entries[key]
        if keys:
            logger.debug(f"cache invalidate {len(keys)} keys under {prefix}*")
        return len(keys)

    def clear_all(self) -> int:
        """Empty the store.

        Returns:
            Number of entries removed
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info(f"cache cleared ({count} entries)")
        return count

    def count_all(self) -> int:
        with self._lock:
            return len(self._entries)

    def keys(self) -> list[str]:
        """Snapshot of the current keys, sorted."""
        with self._lock:
            return sorted(self._entries)

    def get_stats(self) -> dict:
        """Get cache statistics.

        Returns:
            Dictionary with entry count, hit/miss counters and oldest entry age
        """
        now = self._clock()
        with self._lock:
            ages = [entry.age(now) for entry in self._entries.values()]
            hits, misses = self._hits, self._misses
        lookups = hits + misses
        return {
            "total_entries": len(ages),
            "hits": hits,
            "misses": misses,
            "hit_rate": hits / lookups if lookups else 0.0,
            "oldest_entry_age": max(ages) if ages else 0.0,
        }

    def health_check(self) -> bool:
        """The in-memory store is always available."""
        return True
