"""Ephemeral status service.

A status is visible while it is active and `now <= expires_at`. Expiry is
checked every time a listing is served, including listings served from
the cache, so a cached aggregate never shows an expired status.
`cleanup_expired_statuses` only tidies storage.
"""

import dataclasses
import logging
from datetime import timedelta

from hustle_data.cache_keys import CacheKeys
from hustle_data.documents import ArrayUnion, DocumentSnapshot, FilterOp, Query, WriteBatch
from hustle_data.entities import MediaType, Status, User
from hustle_data.errors import NotFoundError
from hustle_data.validation import STATUS_CAPTION_MAX, require_max_length, validate_status

from .base import IN_QUERY_LIMIT, STATUSES, USERS, EntityService, chunked

logger = logging.getLogger(__name__)


class StatusService(EntityService[Status]):
    """24-hour statuses and the per-viewer "following" feed."""

    collection = STATUSES
    entity_type = Status
    cache_name = "status"
    max_age_setting = "status_cache_max_age"
    active_flag = ("is_active", True)
    protected_fields = ("user_name", "user_profile_image", "expires_at", "viewed_by")

    def page_key(self) -> str:
        return CacheKeys.statuses_page()

    def _related_prefixes(self, entity: Status) -> list[str]:
        return [CacheKeys.following_statuses_prefix()]

    def _visible(self, entity: Status) -> bool:
        return entity.state_at(self._now()).is_visible

    def _default_query(self) -> Query:
        return (
            self._base_query()
            .where("expires_at", FilterOp.GE, self._now())
            .order("created_at", descending=True)
        )

    async def _prepare_create(self, entity: Status, user_id: str) -> Status:
        validate_status(entity)
        entity = await super()._prepare_create(entity, user_id)
        name, image = await self._profile_of(user_id)
        lifetime = timedelta(hours=self._settings.status_lifetime_hours)
        return dataclasses.replace(
            entity,
            user_name=entity.user_name or name,
            user_profile_image=entity.user_profile_image or image,
            expires_at=entity.created_at + lifetime,
            viewed_by=[],
            is_active=True,
        )

    async def _prepare_update(self, entity: Status, stored: Status, user_id: str) -> Status:
        validate_status(entity)
        return entity

    async def create_status(
        self,
        media: bytes,
        media_type: MediaType = MediaType.IMAGE,
        caption: str | None = None,
    ) -> str:
        """Upload the media then post it as the caller's status.

        Returns:
            The new status id
        """
        user_id = self._require_user()
        require_max_length("caption", caption, STATUS_CAPTION_MAX)
        if media_type is MediaType.VIDEO:
            (url,) = await self._upload_media([media], "statuses", user_id, "mp4", "video/mp4")
        else:
            (url,) = await self._upload_media([media], "statuses", user_id)
        return await self.create(
            Status(user_id=user_id, media_url=url, media_type=media_type, caption=caption)
        )

    async def _following_of(self, user_id: str) -> list[str]:
        cached: User | None = self._cached(CacheKeys.user(user_id), self._settings.user_cache_max_age)
        if cached is not None:
            return list(cached.following)
        snapshot = await self._documents.get(USERS, user_id)
        if snapshot is None:
            raise NotFoundError(f"user {user_id} not found")
        return list(snapshot.get("following", []))

    async def fetch_statuses_from_following(self, user_ids: list[str] | None = None) -> list[Status]:
        """Active statuses of the users the caller follows, newest first.

        Only the default feed is cached; an explicit author list always
        reads from the store.

        Args:
            user_ids: Authors to include. Defaults to the caller's following list.

        Returns:
            Statuses that have not expired at the time of the call
        """
        viewer_id = self._require_user()
        use_cache = user_ids is None
        if user_ids is None:
            user_ids = await self._following_of(viewer_id)
        authors = list(dict.fromkeys(user_ids))

        async def load() -> list[Status]:
            statuses: list[Status] = []
            for chunk in chunked(authors, IN_QUERY_LIMIT):
                query = (
                    self._base_query()
                    .where("user_id", FilterOp.IN, chunk)
                    .where("expires_at", FilterOp.GE, self._now())
                )
                statuses.extend(await self._query_entities(query))
            return sorted(statuses, key=lambda status: status.created_at, reverse=True)

        if not authors:
            return []
        if use_cache:
            statuses = await self._read_through(CacheKeys.following_statuses(viewer_id), load)
        else:
            statuses = await load()
        return [status for status in statuses if self._visible(status)]

    async def get_user_status(self, user_id: str) -> Status | None:
        """The most recent visible status of `user_id`, if any."""
        query = (
            self._base_query()
            .where("user_id", FilterOp.EQ, user_id)
            .where("expires_at", FilterOp.GE, self._now())
            .order("created_at", descending=True)
            .take(1)
        )
        statuses = [status for status in await self._query_entities(query) if self._visible(status)]
        return statuses[0] if statuses else None

    async def mark_as_viewed(self, status_id: str) -> None:
        """Record that the caller viewed a status."""
        user_id = self._require_user()
        status = await self._load_for_write(status_id)
        if status.is_viewed_by(user_id):
            return
        await self._documents.update(self.collection, status_id, {"viewed_by": ArrayUnion(user_id)})
        self._invalidate(status)

    async def cleanup_expired_statuses(self) -> int:
        """Deactivate every active status past its expiry.

        Returns:
            Number of statuses deactivated
        """
        expired: list[DocumentSnapshot] = await self._documents.query(
            self._base_query().where("expires_at", FilterOp.LT, self._now())
        )

        def write(batch: WriteBatch, snapshot: DocumentSnapshot) -> None:
            batch.update(self.collection, snapshot.id, {"is_active": False})

        count = await self._commit_each(expired, write)
        if count:
            self._invalidate(*self._parse_all(expired))
        logger.info(f"[{self.collection}] deactivated {count} expired statuses")
        return count
