"""Lifecycle state derived from stored flags."""

from enum import Enum


class EntityState(str, Enum):
    """Visibility state of a soft-deletable entity.

    ACTIVE entities appear in default listings. INACTIVE (soft-deleted) and
    EXPIRED entities are excluded from listings but stay addressable by id.
    """

    ACTIVE = "active"
    INACTIVE = "inactive"
    EXPIRED = "expired"

    @property
    def is_visible(self) -> bool:
        return self is EntityState.ACTIVE
