"""Cache entry domain entity."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class CacheEntryEntity:
    """A value held by the TTL cache store.

    An update is a replacement: `stored_at` is set when the entry is
    created and never mutated afterward.

    Attributes:
        value: The cached payload (a private copy)
        stored_at: Clock reading at the moment of `store`
    """

    value: Any
    stored_at: float

    def age(self, now: float) -> float:
        return now - self.stored_at

    def is_older_than(self, max_age: float, now: float) -> bool:
        return self.age(now) > max_age
