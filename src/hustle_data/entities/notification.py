"""In-app notification entity."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class NotificationType(str, Enum):
    NEW_REVIEW = "new_review"
    REVIEW_REPLY = "review_reply"
    REVIEW_EDIT = "review_edit"
    HELPFUL_VOTE = "helpful_vote"
    REEL_LIKE = "reel_like"
    COMMENT_LIKE = "comment_like"
    COMMENT_REPLY = "comment_reply"
    NEW_COMMENT = "new_comment"
    NEW_MESSAGE = "new_message"
    MESSAGE_REQUEST = "message_request"
    NEW_FOLLOWER = "new_follower"


@dataclass(frozen=True, kw_only=True)
class AppNotification:
    id: str | None = None
    user_id: str
    type: NotificationType
    from_user_id: str | None = None
    from_user_name: str | None = None
    from_user_profile_image: str | None = None
    title: str
    body: str
    data: dict[str, str] = field(default_factory=dict)
    is_read: bool = False
    created_at: datetime | None = None
