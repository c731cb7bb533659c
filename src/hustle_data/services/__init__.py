"""Service layer for business logic.

One repository facade per entity. Every facade depends on protocols
(interfaces), not concrete implementations, and applies the same
read-through cache and invalidate-on-write contract (see `base`).

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Business) -> (Data Access)

Usage:
    ```python
    from hustle_data.services import ServiceContainer

    # Everything in-process (local runs and tests)
    container = ServiceContainer.create_in_memory()

    # Or explicit backends
    container = ServiceContainer.create(documents=store, cache=cache, identity=identity)
    posts = container.posts
    ```
"""

from .base import EntityService
from .comment_service import CommentService
from .container import ServiceContainer
from .message_service import MessageService
from .notification_service import NotificationService
from .portfolio_service import PortfolioService
from .post_service import PostService
from .reel_service import ReelService
from .review_service import ReviewService
from .saved_items_service import SavedItemsService
from .status_service import StatusService
from .tag_service import TagService
from .user_service import UserService

__all__ = [
    "EntityService",
    "CommentService",
    "MessageService",
    "NotificationService",
    "PortfolioService",
    "PostService",
    "ReelService",
    "ReviewService",
    "SavedItemsService",
    "ServiceContainer",
    "StatusService",
    "TagService",
    "UserService",
]
