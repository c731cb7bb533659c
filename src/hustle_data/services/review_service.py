"""Review service.

Reviews are hard-deleted. Every create, update or delete is followed by a
full recount of the reviewed user's rating and by a notification; both
are best-effort and never fail the review write itself.
"""

import dataclasses
import logging
from collections.abc import Callable, Iterable

from hustle_data.cache_keys import CacheKeys
from hustle_data.documents import ArrayRemove, ArrayUnion, DocumentSnapshot, FilterOp, Query
from hustle_data.entities import NotificationType, Page, Review, ReviewReply, ReviewStats
from hustle_data.errors import BackendUnavailableError, UnauthorizedError, ValidationFailedError
from hustle_data.validation import REPLY_TEXT, require_length, validate_review

from .base import REVIEWS, EntityService
from .mapping import to_document
from .notification_service import NotificationService
from .user_service import UserService

logger = logging.getLogger(__name__)


class ReviewService(EntityService[Review]):
    """Reviews between users, replies, helpful votes and rating stats.

    Example:
        ```python
        reviews = ReviewService(documents, cache, identity, users=users, notifications=notifications)
        review_id = await reviews.create(
            Review(reviewer_id="", reviewed_user_id="u2", rating=5, text="Fast and friendly work")
        )
        stats = await reviews.get_review_stats("u2")
        ```
    """

    collection = REVIEWS
    entity_type = Review
    cache_name = "review"
    max_age_setting = "review_cache_max_age"
    owner_field = "reviewer_id"
    protected_fields = (
        "reviewed_user_id",
        "reviewer_name",
        "reviewer_profile_image",
        "reply",
        "helpful_votes",
        "review_number",
        "service_post_id",
    )

    def __init__(
        self,
        *args,
        users: UserService | None = None,
        notifications: NotificationService | None = None,
        **kwargs,
    ) -> None:
        super().__init__(*args, **kwargs)
        self._users = users
        self._notifications = notifications

    def _related_keys(self, entity: Review) -> list[str]:
        return [
            CacheKeys.reviews_for_user(entity.reviewed_user_id),
            CacheKeys.user(entity.reviewed_user_id),
        ]

    # -------------------------------------------------------------------------
    # Generic contract hooks
    # -------------------------------------------------------------------------

    async def _prepare_create(self, entity: Review, user_id: str) -> Review:
        if entity.reviewed_user_id == user_id:
            raise ValidationFailedError("Users cannot review themselves")
        validate_review(entity)

        existing = await self._documents.count(
            Query(self.collection)
            .where("reviewer_id", FilterOp.EQ, user_id)
            .where("reviewed_user_id", FilterOp.EQ, entity.reviewed_user_id)
        )
        limit = self._settings.review_max_per_pair
        if limit and existing >= limit:
            raise ValidationFailedError(
                f"Maximum of {limit} reviews per user reached for {entity.reviewed_user_id}"
            )

        entity = await super()._prepare_create(entity, user_id)
        name, image = await self._profile_of(user_id)
        return dataclasses.replace(
            entity,
            text=entity.text.strip(),
            reviewer_name=entity.reviewer_name or name,
            reviewer_profile_image=entity.reviewer_profile_image or image,
            helpful_votes=[],
            reply=None,
            is_edited=False,
            review_number=existing + 1,
        )

    async def _prepare_update(self, entity: Review, stored: Review, user_id: str) -> Review:
        validate_review(entity)
        entity = await super()._prepare_update(entity, stored, user_id)
        return dataclasses.replace(entity, text=entity.text.strip(), is_edited=True)

    async def _after_create(self, entity: Review) -> None:
        await self._recount(entity.reviewed_user_id)
        if self._notifications is not None:
            await self._best_effort(
                self._notifications.create_review_notification(entity),
                f"review notification for {entity.id}",
            )

    async def _after_update(self, entity: Review, previous: Review) -> None:
        await self._recount(entity.reviewed_user_id)
        if self._notifications is not None:
            await self._best_effort(
                self._notifications.create_review_notification(entity, NotificationType.REVIEW_EDIT),
                f"review edit notification for {entity.id}",
            )

    async def _after_delete(self, entity: Review) -> None:
        await self._recount(entity.reviewed_user_id)

    async def _recount(self, user_id: str) -> None:
        if self._users is not None:
            await self._best_effort(self._users.update_user_rating(user_id), f"rating recount for {user_id}")

    # -------------------------------------------------------------------------
    # Review operations
    # -------------------------------------------------------------------------

    async def create_review(
        self,
        reviewed_user_id: str,
        rating: int,
        text: str,
        images: Iterable[bytes] = (),
        service_post_id: str | None = None,
    ) -> str:
        """Upload review images, then create the review.

        Returns:
            The new review id
        """
        user_id = self._require_user()
        review = Review(
            reviewer_id=user_id,
            reviewed_user_id=reviewed_user_id,
            rating=rating,
            text=text,
            service_post_id=service_post_id,
        )
        if reviewed_user_id == user_id:
            raise ValidationFailedError("Users cannot review themselves")
        validate_review(review)
        urls = await self._upload_media(images, "review_images", user_id) if images else []
        return await self.create(dataclasses.replace(review, media_urls=urls))

    def _user_reviews_query(self, user_id: str) -> Query:
        return (
            Query(self.collection)
            .where("reviewed_user_id", FilterOp.EQ, user_id)
            .order("created_at", descending=True)
        )

    async def fetch_user_reviews(
        self,
        user_id: str,
        limit: int | None = None,
        cursor: DocumentSnapshot | None = None,
    ) -> Page[Review]:
        """Reviews about `user_id`, newest first; page 1 is cached."""
        return await self._cached_page(
            CacheKeys.reviews_for_user(user_id), self._user_reviews_query(user_id), limit, cursor
        )

    async def fetch_reviews_by_reviewer(self, reviewer_id: str, limit: int | None = None) -> list[Review]:
        query = (
            Query(self.collection)
            .where("reviewer_id", FilterOp.EQ, reviewer_id)
            .order("created_at", descending=True)
            .take(limit or self._settings.default_page_size)
        )
        return await self._query_entities(query)

    async def reply_to_review(self, review_id: str, text: str) -> None:
        """Reply as the reviewed user. Replying again replaces the reply.

        Raises:
            UnauthorizedError: If the caller is not the reviewed user
        """
        user_id = self._require_user()
        review = await self._load_for_write(review_id)
        if review.reviewed_user_id != user_id:
            raise UnauthorizedError(f"Only the reviewed user can reply to review {review_id}")
        body = require_length("reply", text, REPLY_TEXT)

        now = self._now()
        created_at = review.reply.created_at if review.reply else now
        reply = ReviewReply(text=body, created_at=created_at, updated_at=now)
        await self._documents.update(self.collection, review_id, {"reply": to_document(reply)})
        self._invalidate(review)
        if self._notifications is not None:
            await self._best_effort(
                self._notifications.create_review_notification(review, NotificationType.REVIEW_REPLY),
                f"reply notification for review {review_id}",
            )

    async def toggle_helpful_vote(self, review_id: str) -> bool:
        """Add or remove the caller's helpful vote.

        Returns:
            True if the caller's vote is now present

        Raises:
            ValidationFailedError: If the caller wrote the review
        """
        user_id = self._require_user()
        review = await self._load_for_write(review_id)
        if review.reviewer_id == user_id:
            raise ValidationFailedError("Users cannot vote on their own review")

        voted = user_id not in review.helpful_votes
        transform = ArrayUnion(user_id) if voted else ArrayRemove(user_id)
        await self._documents.update(self.collection, review_id, {"helpful_votes": transform})
        self._invalidate(review)
        if voted and self._notifications is not None:
            await self._best_effort(
                self._notifications.create_review_notification(
                    review, NotificationType.HELPFUL_VOTE, actor_id=user_id
                ),
                f"helpful vote notification for review {review_id}",
            )
        return voted

    async def get_review_stats(self, user_id: str) -> ReviewStats:
        """Rating aggregate for `user_id` by full rescan.

        Returns a zero aggregate when the store is unavailable.
        """
        query = Query(self.collection).where("reviewed_user_id", FilterOp.EQ, user_id)
        try:
            reviews = await self._query_entities(query)
        except BackendUnavailableError:
            logger.warning(f"review stats unavailable for {user_id}", exc_info=True)
            return ReviewStats()
        return ReviewStats.from_ratings([review.rating for review in reviews])

    def listen_to_user_reviews(self, user_id: str, on_change: Callable[[list[Review]], None]) -> None:
        self._listen(
            CacheKeys.reviews_for_user(user_id),
            self._user_reviews_query(user_id).take(100),
            on_change,
        )

    def stop_listening_to_user_reviews(self, user_id: str) -> bool:
        return self.stop_listening(CacheKeys.reviews_for_user(user_id))
