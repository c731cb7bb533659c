"""Wiring for the full set of entity services.

Every service shares one cache, one document store and one identity
provider, so an invalidation issued by one service is seen by all.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from hustle_data.config import Settings, settings as default_settings
from hustle_data.protocols import BlobStorage, CacheStore, DocumentStore, IdentityProvider, PushDispatcher
from hustle_data.repositories import (
    HttpPushDispatcher,
    LoggingPushDispatcher,
    MemoryBlobRepository,
    MemoryCacheRepository,
    MemoryDocumentRepository,
    StaticIdentityProvider,
)

from .base import EntityService
from .comment_service import CommentService
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

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """All entity services built around shared backends.

    Example:
        ```python
        container = ServiceContainer.create_in_memory(identity=StaticIdentityProvider("u1"))
        post_id = await container.posts.create(post)
        await container.close()
        ```
    """

    documents: DocumentStore
    cache: CacheStore
    identity: IdentityProvider
    blobs: BlobStorage | None
    push: PushDispatcher | None
    notifications: NotificationService
    users: UserService
    posts: PostService
    reels: ReelService
    comments: CommentService
    reviews: ReviewService
    messages: MessageService
    statuses: StatusService
    portfolio: PortfolioService
    saved_items: SavedItemsService
    tags: TagService

    @classmethod
    def create(
        cls,
        documents: DocumentStore,
        cache: CacheStore,
        identity: IdentityProvider,
        blobs: BlobStorage | None = None,
        push: PushDispatcher | None = None,
        settings: Settings | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> "ServiceContainer":
        """Build every service over the given backends.

        Args:
            documents: Document store backend (required).
            cache: Shared TTL cache store (required).
            identity: Source of the caller id (required).
            blobs: Blob storage for media uploads.
            push: Push dispatcher used by notifications.
            settings: Overrides the global settings.
            now: UTC clock shared by every service.

        Returns:
            Configured ServiceContainer instance
        """
        common = dict(
            documents=documents,
            cache=cache,
            identity=identity,
            blobs=blobs,
            settings=settings,
            now=now,
        )
        notifications = NotificationService(push=push, **common)
        users = UserService(**common)
        tags = TagService(**common)
        return cls(
            documents=documents,
            cache=cache,
            identity=identity,
            blobs=blobs,
            push=push,
            notifications=notifications,
            users=users,
            posts=PostService(tags=tags, **common),
            reels=ReelService(notifications=notifications, tags=tags, **common),
            comments=CommentService(notifications=notifications, **common),
            reviews=ReviewService(users=users, notifications=notifications, **common),
            messages=MessageService(notifications=notifications, **common),
            statuses=StatusService(**common),
            portfolio=PortfolioService(**common),
            saved_items=SavedItemsService(**common),
            tags=tags,
        )

    @classmethod
    def create_in_memory(
        cls,
        identity: IdentityProvider | None = None,
        settings: Settings | None = None,
        now: Callable[[], datetime] | None = None,
        clock: Callable[[], float] | None = None,
    ) -> "ServiceContainer":
        """Build a container over the in-process backends.

        Push goes over HTTP when PUSH_ENDPOINT_URL is configured and is
        only logged otherwise.

        Args:
            identity: Defaults to a signed-out StaticIdentityProvider.
            settings: Overrides the global settings.
            now: UTC clock for entity timestamps.
            clock: Monotonic clock for cache ages.
        """
        config = settings or default_settings
        if config.push_endpoint_url:
            push: PushDispatcher = HttpPushDispatcher.create(
                endpoint_url=config.push_endpoint_url,
                server_key=config.push_server_key,
            )
        else:
            push = LoggingPushDispatcher()
        return cls.create(
            documents=MemoryDocumentRepository.create(),
            cache=MemoryCacheRepository.create(clock=clock),
            identity=identity or StaticIdentityProvider(),
            blobs=MemoryBlobRepository.create(base_url=config.media_base_url),
            push=push,
            settings=settings,
            now=now,
        )

    @property
    def services(self) -> list[EntityService]:
        return [
            self.notifications,
            self.users,
            self.posts,
            self.reels,
            self.comments,
            self.reviews,
            self.messages,
            self.statuses,
            self.portfolio,
            self.saved_items,
            self.tags,
        ]

    def remove_all_listeners(self) -> int:
        """Detach every live listener held by any service.

        Returns:
            Number of listeners removed
        """
        removed = sum(service.remove_all_listeners() for service in self.services)
        if removed:
            logger.info(f"removed {removed} live listeners")
        return removed

    async def close(self) -> None:
        self.remove_all_listeners()
        if self.push is not None:
            await self.push.close()
