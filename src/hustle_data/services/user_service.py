"""User profile service.

Profiles are keyed by the auth uid. Besides the generic contract this
service owns the follow graph, the denormalized rating aggregate and the
profile-image fan-out across every collection that copies it.
"""

import dataclasses
import logging
from typing import Any

from hustle_data.cache_keys import CacheKeys
from hustle_data.documents import (
    ArrayRemove,
    ArrayUnion,
    DocumentSnapshot,
    FilterOp,
    Query,
    WriteBatch,
    new_document_id,
)
from hustle_data.entities import Review, ReviewStats, User
from hustle_data.errors import NotFoundError, ValidationFailedError
from hustle_data.validation import validate_user

from .base import (
    ACTIVITIES,
    COMMENTS,
    CONVERSATIONS,
    POSTS,
    REELS,
    REVIEWS,
    STATUSES,
    USERS,
    EntityService,
)
from .mapping import to_document

logger = logging.getLogger(__name__)

# (collection, owner field, denormalized image field) rewritten on image change
IMAGE_FANOUT: tuple[tuple[str, str, str], ...] = (
    (POSTS, "user_id", "user_profile_image"),
    (REELS, "user_id", "user_profile_image"),
    (REVIEWS, "reviewer_id", "reviewer_profile_image"),
    (COMMENTS, "user_id", "user_profile_image"),
    (STATUSES, "user_id", "user_profile_image"),
)


class UserService(EntityService[User]):
    """Profiles, follows and rating aggregates."""

    collection = USERS
    entity_type = User
    cache_name = "user"
    max_age_setting = "user_cache_max_age"
    owner_field = "id"
    active_flag = ("is_deleted", False)
    protected_fields = (
        "email",
        "rating",
        "review_count",
        "rating_breakdown",
        "following",
        "followers",
        "completed_services",
        "times_booked",
        "deleted_at",
    )
    search_fields = ("name", "bio", "location")

    def _related_keys(self, entity: User) -> list[str]:
        return [CacheKeys.following_statuses(entity.id)] if entity.id else []

    # -------------------------------------------------------------------------
    # Generic contract
    # -------------------------------------------------------------------------

    async def create(self, entity: User) -> str:
        """Register the caller's profile under their auth uid.

        Raises:
            ValidationFailedError: If the caller already has a profile
        """
        user_id = self._require_user()
        entity = dataclasses.replace(entity, id=user_id)
        return await super().create(entity)

    async def _prepare_create(self, entity: User, user_id: str) -> User:
        validate_user(entity)
        if await self._documents.get(self.collection, user_id) is not None:
            raise ValidationFailedError(f"User {user_id} already has a profile")
        entity = await super()._prepare_create(entity, user_id)
        return dataclasses.replace(entity, last_active=self._now(), is_deleted=False)

    async def _prepare_update(self, entity: User, stored: User, user_id: str) -> User:
        validate_user(entity)
        return await super()._prepare_update(entity, stored, user_id)

    async def _insert(self, entity: User) -> str:
        await self._documents.set(self.collection, entity.id, to_document(entity))
        return entity.id

    # -------------------------------------------------------------------------
    # Profile
    # -------------------------------------------------------------------------

    async def get_current_user(self) -> User | None:
        return await self.fetch_by_id(self._require_user())

    async def update_last_active(self) -> None:
        user_id = self._require_user()
        await self._documents.update(self.collection, user_id, {"last_active": self._now()})
        self._cache.remove(self.entity_key(user_id))

    async def update_profile_image(self, image: bytes, content_type: str = "image/jpeg") -> str:
        """Upload a new profile image and copy its URL everywhere it is denormalized.

        The fan-out touches too many keys to enumerate, so the whole cache
        is cleared afterwards.

        Returns:
            The new image URL
        """
        user_id = self._require_user()
        if await self._documents.get(self.collection, user_id) is None:
            raise NotFoundError(f"user {user_id} not found")
        (url,) = await self._upload_media([image], "profile_images", user_id, "jpg", content_type)
        await self.propagate_profile_image(user_id, url)
        return url

    async def propagate_profile_image(self, user_id: str, url: str) -> int:
        """Write `url` to the profile and every document that copies it.

        Returns:
            Number of documents written
        """
        writes: list[tuple[str, str, dict[str, Any]]] = [
            (self.collection, user_id, {"profile_image_url": url, "updated_at": self._now()})
        ]
        for collection, owner_field, image_field in IMAGE_FANOUT:
            owned = await self._documents.query(
                Query(collection).where(owner_field, FilterOp.EQ, user_id)
            )
            writes.extend((collection, snapshot.id, {image_field: url}) for snapshot in owned)

        conversations = await self._documents.query(
            Query(CONVERSATIONS).where("participant_ids", FilterOp.ARRAY_CONTAINS, user_id)
        )
        writes.extend(
            (CONVERSATIONS, snapshot.id, {f"participant_images.{user_id}": url})
            for snapshot in conversations
        )

        def write(batch: WriteBatch, item: tuple[str, str, dict[str, Any]]) -> None:
            collection, doc_id, data = item
            batch.update(collection, doc_id, data)

        count = await self._commit_each(writes, write)
        self._cache.clear_all()
        logger.info(f"profile image of {user_id} propagated to {count} documents")
        return count

    # -------------------------------------------------------------------------
    # Follow graph
    # -------------------------------------------------------------------------

    async def follow_user(self, target_id: str) -> None:
        await self._set_following(target_id, follow=True)

    async def unfollow_user(self, target_id: str) -> None:
        await self._set_following(target_id, follow=False)

    async def _set_following(self, target_id: str, follow: bool) -> None:
        user_id = self._require_user()
        if target_id == user_id:
            raise ValidationFailedError("Users cannot follow themselves")
        if await self._documents.get(self.collection, target_id) is None:
            raise NotFoundError(f"user {target_id} not found")

        transform = ArrayUnion if follow else ArrayRemove
        batch = WriteBatch()
        batch.update(self.collection, user_id, {"following": transform(target_id)})
        batch.update(self.collection, target_id, {"followers": transform(user_id)})
        batch.set(
            ACTIVITIES,
            new_document_id(),
            {
                "type": "follow" if follow else "unfollow",
                "from_user_id": user_id,
                "to_user_id": target_id,
                "created_at": self._now(),
            },
        )
        await self._documents.commit(batch)

        self._cache.remove(self.entity_key(user_id))
        self._cache.remove(self.entity_key(target_id))
        self._cache.remove(CacheKeys.following_statuses(user_id))
        logger.info(f"{user_id} {'followed' if follow else 'unfollowed'} {target_id}")

    async def fetch_followers(self, user_id: str) -> list[User]:
        user = await self.fetch_by_id(user_id)
        if user is None:
            raise NotFoundError(f"user {user_id} not found")
        return await self._fetch_users(user.followers)

    async def fetch_following(self, user_id: str) -> list[User]:
        user = await self.fetch_by_id(user_id)
        if user is None:
            raise NotFoundError(f"user {user_id} not found")
        return await self._fetch_users(user.following)

    async def _fetch_users(self, ids: list[str]) -> list[User]:
        found = await self._fetch_by_ids(self.collection, ids, User)
        return [found[uid] for uid in dict.fromkeys(ids) if uid in found and not found[uid].is_deleted]

    # -------------------------------------------------------------------------
    # Discovery
    # -------------------------------------------------------------------------

    async def search_users(self, query: str, limit: int | None = None) -> list[User]:
        """Case-insensitive match on name, bio and location."""
        return await self.search(query, limit)

    async def fetch_service_providers(self, limit: int | None = None) -> list[User]:
        query = (
            self._base_query()
            .where("is_service_provider", FilterOp.EQ, True)
            .order("rating", descending=True)
            .take(limit or self._settings.default_page_size)
        )
        return await self._query_entities(query)

    # -------------------------------------------------------------------------
    # Rating aggregate
    # -------------------------------------------------------------------------

    async def compute_review_stats(self, user_id: str) -> ReviewStats:
        """Aggregate every review of `user_id` by full rescan."""
        snapshots: list[DocumentSnapshot] = await self._documents.query(
            Query(REVIEWS).where("reviewed_user_id", FilterOp.EQ, user_id)
        )
        reviews: list[Review] = self._parse_all(snapshots, Review)
        return ReviewStats.from_ratings([review.rating for review in reviews])

    async def update_user_rating(self, user_id: str) -> ReviewStats:
        """Recompute and store the rating aggregate of `user_id`.

        Never adjusted incrementally; a user with no reviews is reset to zero.
        """
        stats = await self.compute_review_stats(user_id)
        await self._documents.update(
            self.collection,
            user_id,
            {
                "rating": stats.average,
                "review_count": stats.count,
                "rating_breakdown": stats.breakdown,
            },
        )
        self._cache.remove(self.entity_key(user_id))
        logger.debug(f"rating of {user_id} recomputed: {stats.average} over {stats.count}")
        return stats
