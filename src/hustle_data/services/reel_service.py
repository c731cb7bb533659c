"""Reel service.

Likes are kept twice: as the `likes` array on the reel and as one
`reel_likes/{user_id}_{reel_id}` document per like. Both are written in
one atomic batch.
"""

import dataclasses
import logging
from datetime import timedelta

from hustle_data.cache_keys import CacheKeys
from hustle_data.documents import ArrayRemove, ArrayUnion, FilterOp, Increment, Query, WriteBatch
from hustle_data.entities import Reel, ReelLike, ServiceCategory
from hustle_data.validation import validate_reel

from .base import REEL_LIKES, REELS, EntityService
from .mapping import to_document
from .notification_service import NotificationService
from .tag_service import TagService

logger = logging.getLogger(__name__)


class ReelService(EntityService[Reel]):
    """Short videos, likes, shares and the trending feed."""

    collection = REELS
    entity_type = Reel
    cache_name = "reel"
    max_age_setting = "reel_cache_max_age"
    active_flag = ("is_active", True)
    protected_fields = (
        "user_name",
        "user_profile_image",
        "likes",
        "comments",
        "shares",
        "views",
        "is_promoted",
    )
    search_fields = ("title", "description", "hashtags")

    def __init__(
        self,
        *args,
        notifications: NotificationService | None = None,
        tags: TagService | None = None,
        **kwargs,
    ) -> None:
        super().__init__(*args, **kwargs)
        self._notifications = notifications
        self._tags = tags

    def _related_keys(self, entity: Reel) -> list[str]:
        return [CacheKeys.trending_reels()]

    async def _prepare_create(self, entity: Reel, user_id: str) -> Reel:
        validate_reel(entity)
        entity = await super()._prepare_create(entity, user_id)
        name, image = await self._profile_of(user_id)
        return dataclasses.replace(
            entity,
            user_name=entity.user_name or name,
            user_profile_image=entity.user_profile_image or image,
            likes=[],
            comments=0,
            shares=0,
            views=0,
            is_active=True,
        )

    async def _prepare_update(self, entity: Reel, stored: Reel, user_id: str) -> Reel:
        validate_reel(entity)
        return await super()._prepare_update(entity, stored, user_id)

    async def _after_create(self, entity: Reel) -> None:
        if self._tags is not None and entity.hashtags:
            await self._best_effort(
                self._tags.record_tags(entity.hashtags, "reel"),
                f"tag analytics for reel {entity.id}",
            )

    async def _after_fetch(self, entity: Reel) -> None:
        # Views are counted on cache misses only
        await self._best_effort(
            self._documents.update(self.collection, entity.id, {"views": Increment(1)}),
            f"view count for reel {entity.id}",
        )

    async def create_reel_with_video(
        self,
        reel: Reel,
        video: bytes,
        thumbnail: bytes | None = None,
    ) -> str:
        """Upload the video (and thumbnail) then create the reel."""
        user_id = self._require_user()
        (video_url,) = await self._upload_media([video], "reels", user_id, "mp4", "video/mp4")
        thumbnail_url = reel.thumbnail_url
        if thumbnail is not None:
            (thumbnail_url,) = await self._upload_media([thumbnail], "reel_thumbnails", user_id)
        return await self.create(
            dataclasses.replace(reel, video_url=video_url, thumbnail_url=thumbnail_url)
        )

    # -------------------------------------------------------------------------
    # Listings
    # -------------------------------------------------------------------------

    async def fetch_by_category(self, category: ServiceCategory, limit: int | None = None) -> list[Reel]:
        query = (
            self._base_query()
            .where("category", FilterOp.EQ, category.value)
            .order("created_at", descending=True)
            .take(limit or self._settings.default_page_size)
        )
        return await self._query_entities(query)

    async def fetch_user_reels(self, user_id: str, limit: int | None = None) -> list[Reel]:
        query = (
            self._base_query()
            .where("user_id", FilterOp.EQ, user_id)
            .order("created_at", descending=True)
            .take(limit or self._settings.default_page_size)
        )
        return await self._query_entities(query)

    async def fetch_trending(self, limit: int = 20) -> list[Reel]:
        """Most engaging active reels created within the trending window."""

        async def load() -> list[Reel]:
            since = self._now() - timedelta(days=self._settings.trending_window_days)
            query = (
                self._base_query()
                .where("created_at", FilterOp.GE, since)
                .order("created_at", descending=True)
                .take(self._settings.search_fetch_cap)
            )
            reels = await self._query_entities(query)
            return sorted(reels, key=lambda reel: reel.engagement, reverse=True)

        ranked = await self._read_through(CacheKeys.trending_reels(), load)
        return ranked[:limit]

    # -------------------------------------------------------------------------
    # Engagement
    # -------------------------------------------------------------------------

    async def like_reel(self, reel_id: str) -> bool:
        """Like a reel as the caller.

        Returns:
            False if the caller had already liked it
        """
        user_id = self._require_user()
        reel = await self._load_for_write(reel_id)
        if user_id in reel.likes:
            return False

        name, image = await self._profile_of(user_id)
        like = ReelLike(
            reel_id=reel_id,
            user_id=user_id,
            user_name=name,
            user_profile_image=image,
            liked_at=self._now(),
        )
        batch = WriteBatch()
        batch.update(self.collection, reel_id, {"likes": ArrayUnion(user_id)})
        batch.set(REEL_LIKES, ReelLike.document_id(user_id, reel_id), to_document(like))
        await self._documents.commit(batch)
        self._invalidate(reel)

        if self._notifications is not None:
            await self._best_effort(
                self._notifications.create_reel_notification(reel, user_id),
                f"like notification for reel {reel_id}",
            )
        return True

    async def unlike_reel(self, reel_id: str) -> bool:
        """Remove the caller's like.

        Returns:
            False if the caller had not liked it
        """
        user_id = self._require_user()
        reel = await self._load_for_write(reel_id)
        if user_id not in reel.likes:
            return False
        batch = WriteBatch()
        batch.update(self.collection, reel_id, {"likes": ArrayRemove(user_id)})
        batch.delete(REEL_LIKES, ReelLike.document_id(user_id, reel_id))
        await self._documents.commit(batch)
        self._invalidate(reel)
        return True

    async def fetch_likes(self, reel_id: str, limit: int | None = None) -> list[ReelLike]:
        query = (
            Query(REEL_LIKES)
            .where("reel_id", FilterOp.EQ, reel_id)
            .order("liked_at", descending=True)
            .take(limit or self._settings.default_page_size)
        )
        return await self._query_entities(query, ReelLike)

    async def increment_share_count(self, reel_id: str) -> None:
        """Add one share. Raises NotFoundError for an unknown reel."""
        await self._documents.update(self.collection, reel_id, {"shares": Increment(1)})
        self._cache.remove(self.entity_key(reel_id))
        self._cache.remove(CacheKeys.trending_reels())
