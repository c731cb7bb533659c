"""Domain entities for internal representation.

These are pure dataclasses (frozen) used internally by services
and repositories. They are NOT used for API contracts - use DTOs
from the dto package for that.

Entities should have:
- No serialization logic (see services.mapping)
- No Pydantic validation
- No external dependencies
"""

from .cache_entry import CacheEntryEntity
from .message import Conversation, Message, MessageContextType
from .notification import AppNotification, NotificationType
from .page import Page
from .portfolio import PortfolioCard
from .post import PostStatus, ServiceCategory, ServicePost
from .reel import Comment, Reel, ReelLike
from .review import Review, ReviewReply, ReviewStats
from .saved_item import SavedItem, SavedItemType
from .state import EntityState
from .status import MediaType, Status
from .tag import TagAnalytics, normalize_tag
from .user import NotificationSettings, User

__all__ = [
    "AppNotification",
    "CacheEntryEntity",
    "Comment",
    "Conversation",
    "EntityState",
    "MediaType",
    "Message",
    "MessageContextType",
    "NotificationSettings",
    "NotificationType",
    "Page",
    "PortfolioCard",
    "PostStatus",
    "Reel",
    "ReelLike",
    "Review",
    "ReviewReply",
    "ReviewStats",
    "SavedItem",
    "SavedItemType",
    "ServiceCategory",
    "ServicePost",
    "Status",
    "TagAnalytics",
    "User",
    "normalize_tag",
]
