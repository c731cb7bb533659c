"""Ephemeral status entity."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .state import EntityState


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


@dataclass(frozen=True, kw_only=True)
class Status:
    """A status that expires `expires_at`.

    State is derived, never stored: a soft-deleted status is INACTIVE
    even after it would have expired.
    """

    id: str | None = None
    user_id: str
    user_name: str = ""
    user_profile_image: str | None = None
    media_url: str
    caption: str | None = None
    media_type: MediaType = MediaType.IMAGE
    created_at: datetime | None = None
    expires_at: datetime | None = None
    viewed_by: list[str] = field(default_factory=list)
    is_active: bool = True

    def state_at(self, now: datetime) -> EntityState:
        if not self.is_active:
            return EntityState.INACTIVE
        if self.expires_at is not None and now > self.expires_at:
            return EntityState.EXPIRED
        return EntityState.ACTIVE

    def is_viewed_by(self, user_id: str) -> bool:
        return user_id in self.viewed_by
