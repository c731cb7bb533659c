"""Reel, reel like and comment entities."""

from dataclasses import dataclass, field
from datetime import datetime

from .post import ServiceCategory
from .state import EntityState


@dataclass(frozen=True, kw_only=True)
class Reel:
    """A short video. `likes` holds the ids of users who liked it."""

    id: str | None = None
    user_id: str
    user_name: str = ""
    user_profile_image: str | None = None
    video_url: str = ""
    thumbnail_url: str | None = None
    title: str
    description: str = ""
    category: ServiceCategory | None = None
    hashtags: list[str] = field(default_factory=list)
    likes: list[str] = field(default_factory=list)
    comments: int = 0
    shares: int = 0
    views: int = 0
    is_promoted: bool = False
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def state(self) -> EntityState:
        return EntityState.ACTIVE if self.is_active else EntityState.INACTIVE

    @property
    def like_count(self) -> int:
        return len(self.likes)

    @property
    def engagement(self) -> int:
        """Score used to rank trending reels."""
        return self.like_count * 2 + self.comments * 3 + self.shares * 4 + self.views


@dataclass(frozen=True, kw_only=True)
class ReelLike:
    """One like, stored at `reel_likes/{user_id}_{reel_id}`."""

    id: str | None = None
    reel_id: str
    user_id: str
    user_name: str = ""
    user_profile_image: str | None = None
    liked_at: datetime | None = None

    @staticmethod
    def document_id(user_id: str, reel_id: str) -> str:
        return f"{user_id}_{reel_id}"


@dataclass(frozen=True, kw_only=True)
class Comment:
    """A reel comment or, when `parent_comment_id` is set, a reply."""

    id: str | None = None
    reel_id: str
    user_id: str
    user_name: str = ""
    user_profile_image: str | None = None
    text: str
    timestamp: datetime | None = None
    likes: list[str] = field(default_factory=list)
    parent_comment_id: str | None = None
    reply_count: int = 0
    is_deleted: bool = False
    deleted_at: datetime | None = None

    @property
    def state(self) -> EntityState:
        return EntityState.INACTIVE if self.is_deleted else EntityState.ACTIVE

    @property
    def is_reply(self) -> bool:
        return self.parent_comment_id is not None
