"""User profile entity."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True, kw_only=True)
class NotificationSettings:
    """Per-user opt-outs for each notification kind."""

    new_reviews: bool = True
    review_replies: bool = True
    review_edits: bool = True
    helpful_votes: bool = True
    reel_likes: bool = True
    comment_likes: bool = True
    comment_replies: bool = True
    new_messages: bool = True
    message_requests: bool = True


@dataclass(frozen=True, kw_only=True)
class User:
    """A marketplace account. The document id is the auth uid.

    `rating`, `review_count` and `rating_breakdown` are denormalized from
    the user's reviews and recomputed by full rescan.
    """

    id: str | None = None
    email: str = ""
    name: str = ""
    profile_image_url: str | None = None
    bio: str | None = None
    is_service_provider: bool = False
    location: str | None = None
    rating: float = 0.0
    review_count: int = 0
    rating_breakdown: dict[str, int] = field(default_factory=dict)
    following: list[str] = field(default_factory=list)
    followers: list[str] = field(default_factory=list)
    completed_services: int = 0
    times_booked: int = 0
    fcm_token: str | None = None
    notification_settings: NotificationSettings = field(default_factory=NotificationSettings)
    is_deleted: bool = False
    deleted_at: datetime | None = None
    created_at: datetime | None = None
    last_active: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return not self.is_deleted

    @property
    def follower_count(self) -> int:
        return len(self.followers)

    @property
    def following_count(self) -> int:
        return len(self.following)
