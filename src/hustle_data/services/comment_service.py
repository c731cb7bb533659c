"""Reel comment service.

A comment write and the counters it affects (the reel's `comments`, the
parent comment's `reply_count`) go out in one atomic batch.
"""

import dataclasses
import logging
from collections.abc import Callable

from hustle_data.cache_keys import CacheKeys
from hustle_data.documents import (
    ArrayRemove,
    ArrayUnion,
    DocumentSnapshot,
    FilterOp,
    Increment,
    Query,
    WriteBatch,
    new_document_id,
)
from hustle_data.entities import Comment, NotificationType, Page, Reel
from hustle_data.errors import NotFoundError, UnauthorizedError
from hustle_data.validation import validate_comment

from .base import COMMENTS, REELS, EntityService
from .mapping import from_snapshot, to_document
from .notification_service import NotificationService

logger = logging.getLogger(__name__)


class CommentService(EntityService[Comment]):
    """Comments and replies on reels, with live listeners per reel."""

    collection = COMMENTS
    entity_type = Comment
    cache_name = "comment"
    max_age_setting = "reel_cache_max_age"
    order_field = "timestamp"
    active_flag = ("is_deleted", False)
    protected_fields = (
        "reel_id",
        "user_name",
        "user_profile_image",
        "timestamp",
        "likes",
        "parent_comment_id",
        "reply_count",
        "deleted_at",
    )

    def __init__(self, *args, notifications: NotificationService | None = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._notifications = notifications

    def _related_keys(self, entity: Comment) -> list[str]:
        keys = [
            CacheKeys.reel_comments(entity.reel_id),
            CacheKeys.reel(entity.reel_id),
            CacheKeys.reels_page(),
            CacheKeys.trending_reels(),
        ]
        if entity.parent_comment_id:
            keys.append(CacheKeys.comment(entity.parent_comment_id))
        return keys

    async def _load_reel(self, reel_id: str) -> Reel:
        snapshot = await self._documents.get(REELS, reel_id)
        if snapshot is None:
            raise NotFoundError(f"reel {reel_id} not found")
        return from_snapshot(Reel, snapshot)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def create(self, entity: Comment) -> str:
        return await self.post_comment(entity.reel_id, entity.text, entity.parent_comment_id)

    async def post_comment(self, reel_id: str, text: str, parent_comment_id: str | None = None) -> str:
        """Comment on a reel, or reply to `parent_comment_id`.

        Returns:
            The new comment id

        Raises:
            NotFoundError: If the reel or parent comment does not exist
        """
        user_id = self._require_user()
        reel = await self._load_reel(reel_id)
        parent: Comment | None = None
        if parent_comment_id:
            parent = await self._load_for_write(parent_comment_id)
            if parent.reel_id != reel_id:
                raise NotFoundError(f"comment {parent_comment_id} is not on reel {reel_id}")

        name, image = await self._profile_of(user_id)
        comment = Comment(
            reel_id=reel_id,
            user_id=user_id,
            user_name=name,
            user_profile_image=image,
            text=text.strip(),
            timestamp=self._now(),
            parent_comment_id=parent_comment_id,
        )
        validate_comment(comment)

        comment_id = new_document_id()
        batch = WriteBatch()
        batch.set(self.collection, comment_id, to_document(comment))
        batch.update(REELS, reel_id, {"comments": Increment(1)})
        if parent is not None:
            batch.update(self.collection, parent.id, {"reply_count": Increment(1)})
        await self._documents.commit(batch)

        comment = dataclasses.replace(comment, id=comment_id)
        self._invalidate(comment)
        logger.info(f"[{self.collection}] created {comment_id} on reel {reel_id}")

        if self._notifications is not None:
            await self._best_effort(
                self._notifications.create_comment_notification(comment, reel.user_id),
                f"comment notification for reel {reel_id}",
            )
            if parent is not None and parent.user_id != reel.user_id:
                await self._best_effort(
                    self._notifications.create_comment_notification(
                        comment, parent.user_id, NotificationType.COMMENT_REPLY
                    ),
                    f"reply notification for comment {parent.id}",
                )
        return comment_id

    async def _authorize(self, stored: Comment, user_id: str, action: str) -> None:
        """Authors may edit; authors and the reel's owner may delete."""
        if stored.user_id == user_id:
            return
        if action == "delete":
            reel = await self._load_reel(stored.reel_id)
            if reel.user_id == user_id:
                return
        raise UnauthorizedError(f"User {user_id} cannot {action} comment {stored.id}")

    async def _prepare_update(self, entity: Comment, stored: Comment, user_id: str) -> Comment:
        validate_comment(entity)
        return entity

    async def _remove(self, stored: Comment) -> None:
        batch = WriteBatch()
        batch.update(self.collection, stored.id, {"is_deleted": True, "deleted_at": self._now()})
        batch.update(REELS, stored.reel_id, {"comments": Increment(-1)})
        if stored.is_reply:
            batch.update(self.collection, stored.parent_comment_id, {"reply_count": Increment(-1)})
        await self._documents.commit(batch)

    async def delete_comment(self, comment_id: str) -> None:
        await self.delete(comment_id)

    async def like_comment(self, comment_id: str) -> bool:
        """Like a comment as the caller.

        Returns:
            False if the caller had already liked it
        """
        user_id = self._require_user()
        comment = await self._load_for_write(comment_id)
        if user_id in comment.likes:
            return False
        await self._documents.update(self.collection, comment_id, {"likes": ArrayUnion(user_id)})
        self._invalidate(comment)
        if self._notifications is not None:
            await self._best_effort(
                self._notifications.create_comment_notification(
                    comment, comment.user_id, NotificationType.COMMENT_LIKE, actor_id=user_id
                ),
                f"like notification for comment {comment_id}",
            )
        return True

    async def unlike_comment(self, comment_id: str) -> bool:
        user_id = self._require_user()
        comment = await self._load_for_write(comment_id)
        if user_id not in comment.likes:
            return False
        await self._documents.update(self.collection, comment_id, {"likes": ArrayRemove(user_id)})
        self._invalidate(comment)
        return True

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def _thread_query(self, reel_id: str) -> Query:
        return (
            self._base_query()
            .where("reel_id", FilterOp.EQ, reel_id)
            .where("parent_comment_id", FilterOp.EQ, None)
            .order("timestamp", descending=True)
        )

    async def fetch_comments(
        self,
        reel_id: str,
        limit: int | None = None,
        cursor: DocumentSnapshot | None = None,
    ) -> Page[Comment]:
        """Top-level comments on a reel, newest first; page 1 is cached."""
        return await self._cached_page(
            CacheKeys.reel_comments(reel_id), self._thread_query(reel_id), limit, cursor
        )

    async def fetch_replies(self, comment_id: str) -> list[Comment]:
        """Replies to a comment, oldest first."""
        query = (
            self._base_query()
            .where("parent_comment_id", FilterOp.EQ, comment_id)
            .order("timestamp")
        )
        return await self._query_entities(query)

    def listen_to_comments(self, reel_id: str, on_change: Callable[[list[Comment]], None]) -> None:
        """Deliver the reel's top-level comments now and on every change.

        Listening again to the same reel replaces the previous listener.
        """
        self._listen(CacheKeys.reel_comments(reel_id), self._thread_query(reel_id).take(100), on_change)

    def stop_listening_to_comments(self, reel_id: str) -> bool:
        return self.stop_listening(CacheKeys.reel_comments(reel_id))
