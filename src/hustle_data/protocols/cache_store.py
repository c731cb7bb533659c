"""Cache storage protocol.

Defines the interface for the key-value store every facade reads
through and invalidates. Staleness is a caller policy: the store keeps
write timestamps, callers pass their own max-age to `is_expired`.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class CacheStore(Protocol):
    """Protocol for TTL cache storage backends.

    `retrieve` and `is_expired` are deliberately separate calls: a caller
    can skip the network when an entry is fresh, and still fall back to a
    stale value when a live fetch fails.

    None of these operations raise; absence is a normal result.

    Example:
        ```python
        if not cache.is_expired(key, max_age=300):
            cached = cache.retrieve(key)
        ```
    """

    def store(self, key: str, value: Any) -> None:
        """Insert or replace the entry for `key`, stamping the current time.

        Args:
            key: Cache key built with CacheKeys
            value: Payload to store (copied, never shared)
        """
        ...

    def retrieve(self, key: str) -> Any | None:
        """Return the stored value for `key` without checking staleness.

        Args:
            key: Cache key

        Returns:
            A copy of the stored value, or None if absent
        """
        ...

    def is_expired(self, key: str, max_age: float) -> bool:
        """Check whether `key` is absent or older than `max_age`.

        Args:
            key: Cache key
            max_age: Maximum acceptable age in seconds

        Returns:
            True if no entry exists or now - stored_at > max_age
        """
        ...

    def remove(self, key: str) -> None:
        """Delete the entry for `key` if present."""
        ...

    def remove_prefix(self, prefix: str) -> int:
        """Delete every entry whose key starts with `prefix`.

        Returns:
            Number of entries removed
        """
        ...

    def clear_all(self) -> int:
        """Empty the store.

        Returns:
            Number of entries removed
        """
        ...

    def count_all(self) -> int:
        """Count entries currently held."""
        ...

    def get_stats(self) -> dict:
        """Get store statistics (implementation-specific)."""
        ...

    def health_check(self) -> bool:
        """Check if the store is reachable."""
        ...
