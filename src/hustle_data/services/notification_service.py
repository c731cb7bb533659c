"""Notification service.

Creates in-app notifications as side effects of other writes, delivers
them as pushes when the recipient has a device token, and manages the
recipient's inbox. The `create_*` methods never raise.
"""

import logging
from collections.abc import Callable
from datetime import timedelta

from hustle_data.cache_keys import CacheKeys
from hustle_data.documents import FilterOp, Query, WriteBatch
from hustle_data.entities import (
    AppNotification,
    Comment,
    Message,
    NotificationType,
    Reel,
    Review,
    User,
)
from hustle_data.errors import BackendUnavailableError
from hustle_data.protocols import PushDispatcher

from .base import NOTIFICATIONS, USERS, EntityService
from .mapping import from_snapshot, to_document

logger = logging.getLogger(__name__)

# NotificationSettings flag consulted for each notification type
SETTING_FOR_TYPE: dict[NotificationType, str] = {
    NotificationType.NEW_REVIEW: "new_reviews",
    NotificationType.REVIEW_REPLY: "review_replies",
    NotificationType.REVIEW_EDIT: "review_edits",
    NotificationType.HELPFUL_VOTE: "helpful_votes",
    NotificationType.REEL_LIKE: "reel_likes",
    NotificationType.COMMENT_LIKE: "comment_likes",
    NotificationType.COMMENT_REPLY: "comment_replies",
    NotificationType.NEW_COMMENT: "comment_replies",
    NotificationType.NEW_MESSAGE: "new_messages",
    NotificationType.MESSAGE_REQUEST: "message_requests",
}


class NotificationService(EntityService[AppNotification]):
    """Inbox and fan-out of notifications.

    Example:
        ```python
        notifications = NotificationService(documents, cache, identity, push=dispatcher)
        await notifications.create_review_notification(review)
        unread = await notifications.get_unread_count()
        ```
    """

    collection = NOTIFICATIONS
    entity_type = AppNotification
    cache_name = "notification"
    max_age_setting = "message_cache_max_age"

    def __init__(self, *args, push: PushDispatcher | None = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._push = push

    def _related_keys(self, entity: AppNotification) -> list[str]:
        return [CacheKeys.user_notifications(entity.user_id)]

    # -------------------------------------------------------------------------
    # Creation (best-effort)
    # -------------------------------------------------------------------------

    async def notify(
        self,
        recipient_id: str,
        notification_type: NotificationType,
        title: str,
        body: str,
        from_user_id: str | None = None,
        data: dict[str, str] | None = None,
    ) -> str | None:
        """Create one notification and push it. Never raises.

        Skipped when the recipient is the actor, does not exist, or has
        turned this notification type off.

        Returns:
            The notification id, or None if skipped or failed
        """
        return await self._best_effort(
            self._notify(recipient_id, notification_type, title, body, from_user_id, data or {}),
            f"{notification_type.value} notification to {recipient_id}",
        )

    async def _notify(
        self,
        recipient_id: str,
        notification_type: NotificationType,
        title: str,
        body: str,
        from_user_id: str | None,
        data: dict[str, str],
    ) -> str | None:
        if from_user_id and from_user_id == recipient_id:
            return None

        snapshot = await self._documents.get(USERS, recipient_id)
        if snapshot is None:
            logger.debug(f"no notification: recipient {recipient_id} not found")
            return None
        recipient = from_snapshot(User, snapshot)
        setting = SETTING_FOR_TYPE.get(notification_type)
        if setting and not getattr(recipient.notification_settings, setting):
            logger.debug(f"no notification: {recipient_id} disabled {setting}")
            return None

        from_name, from_image = (None, None)
        if from_user_id:
            from_name, from_image = await self._profile_of(from_user_id)

        notification = AppNotification(
            user_id=recipient_id,
            type=notification_type,
            from_user_id=from_user_id,
            from_user_name=from_name or None,
            from_user_profile_image=from_image,
            title=title,
            body=body,
            data={"type": notification_type.value, **data},
            created_at=self._now(),
        )
        notification_id = await self._documents.add(self.collection, to_document(notification))
        self._cache.remove(CacheKeys.user_notifications(recipient_id))

        if recipient.fcm_token and self._push is not None:
            await self._best_effort(
                self._push.send(
                    recipient.fcm_token,
                    title,
                    body,
                    {**notification.data, "notification_id": notification_id},
                ),
                f"push to {recipient_id}",
            )
        return notification_id

    async def create_review_notification(
        self,
        review: Review,
        notification_type: NotificationType = NotificationType.NEW_REVIEW,
        actor_id: str | None = None,
    ) -> str | None:
        """Notify about a new, edited, replied-to or upvoted review.

        New reviews and edits go to the reviewed user; replies and helpful
        votes go to the reviewer.
        """
        data = {"review_id": review.id or "", "user_id": review.reviewed_user_id}
        stars = "★" * review.rating
        if notification_type is NotificationType.NEW_REVIEW:
            return await self.notify(
                review.reviewed_user_id,
                notification_type,
                "New Review",
                f"{review.reviewer_name or 'Someone'} left you a {stars} review",
                review.reviewer_id,
                data,
            )
        if notification_type is NotificationType.REVIEW_EDIT:
            return await self.notify(
                review.reviewed_user_id,
                notification_type,
                "Review Updated",
                f"{review.reviewer_name or 'Someone'} updated their review",
                review.reviewer_id,
                data,
            )
        if notification_type is NotificationType.REVIEW_REPLY:
            return await self.notify(
                review.reviewer_id,
                notification_type,
                "Reply to Your Review",
                "Your review received a reply",
                review.reviewed_user_id,
                data,
            )
        return await self.notify(
            review.reviewer_id,
            NotificationType.HELPFUL_VOTE,
            "Helpful Review",
            "Someone found your review helpful",
            actor_id,
            data,
        )

    async def create_reel_notification(self, reel: Reel, actor_id: str) -> str | None:
        """Notify a reel's owner that `actor_id` liked it."""
        name, _ = await self._best_effort(self._profile_of(actor_id), "actor lookup") or ("", None)
        return await self.notify(
            reel.user_id,
            NotificationType.REEL_LIKE,
            "New Like",
            f"{name or 'Someone'} liked your reel",
            actor_id,
            {"reel_id": reel.id or ""},
        )

    async def create_comment_notification(
        self,
        comment: Comment,
        recipient_id: str,
        notification_type: NotificationType = NotificationType.NEW_COMMENT,
        actor_id: str | None = None,
    ) -> str | None:
        """Notify about a comment, a reply, or a like on a comment."""
        actor = actor_id or comment.user_id
        if notification_type is NotificationType.COMMENT_LIKE:
            title, body = "Comment Liked", "Someone liked your comment"
        elif notification_type is NotificationType.COMMENT_REPLY:
            title, body = "New Reply", f"{comment.user_name or 'Someone'} replied: {comment.text[:80]}"
        else:
            title, body = "New Comment", f"{comment.user_name or 'Someone'} commented: {comment.text[:80]}"
        return await self.notify(
            recipient_id,
            notification_type,
            title,
            body,
            actor,
            {"reel_id": comment.reel_id, "comment_id": comment.id or ""},
        )

    async def create_message_notification(
        self,
        message: Message,
        recipient_id: str,
        is_request: bool = False,
    ) -> str | None:
        notification_type = (
            NotificationType.MESSAGE_REQUEST if is_request else NotificationType.NEW_MESSAGE
        )
        return await self.notify(
            recipient_id,
            notification_type,
            message.sender_name or "New Message",
            message.text[:100],
            message.sender_id,
            {"conversation_id": message.conversation_id, "message_id": message.id or ""},
        )

    # -------------------------------------------------------------------------
    # Inbox
    # -------------------------------------------------------------------------

    def _inbox_query(self, user_id: str) -> Query:
        return (
            Query(self.collection)
            .where("user_id", FilterOp.EQ, user_id)
            .order("created_at", descending=True)
        )

    async def fetch_notifications(self, limit: int | None = None) -> list[AppNotification]:
        """Newest notifications for the caller; the first page is cached."""
        user_id = self._require_user()
        page = await self._cached_page(
            CacheKeys.user_notifications(user_id), self._inbox_query(user_id), limit, None
        )
        return list(page.items)

    async def mark_as_read(self, notification_id: str) -> None:
        user_id = self._require_user()
        stored = await self._load_for_write(notification_id)
        await self._authorize(stored, user_id, "read")
        await self._documents.update(self.collection, notification_id, {"is_read": True})
        self._invalidate(stored)

    async def mark_all_as_read(self) -> int:
        """Mark every unread notification of the caller as read.

        Returns:
            Number of notifications updated
        """
        user_id = self._require_user()
        unread = await self._documents.query(
            Query(self.collection)
            .where("user_id", FilterOp.EQ, user_id)
            .where("is_read", FilterOp.EQ, False)
        )

        def write(batch: WriteBatch, snapshot) -> None:
            batch.update(self.collection, snapshot.id, {"is_read": True})

        count = await self._commit_each(unread, write)
        self._cache.remove(CacheKeys.user_notifications(user_id))
        return count

    async def delete_notification(self, notification_id: str) -> None:
        await self.delete(notification_id)

    async def delete_old_notifications(self, days: int | None = None) -> int:
        """Hard-delete the caller's notifications older than `days`.

        Returns:
            Number of notifications deleted
        """
        user_id = self._require_user()
        retention = days if days is not None else self._settings.notification_retention_days
        cutoff = self._now() - timedelta(days=retention)
        old = await self._documents.query(
            Query(self.collection)
            .where("user_id", FilterOp.EQ, user_id)
            .where("created_at", FilterOp.LT, cutoff)
        )

        def write(batch: WriteBatch, snapshot) -> None:
            batch.delete(self.collection, snapshot.id)

        count = await self._commit_each(old, write)
        self._cache.remove(CacheKeys.user_notifications(user_id))
        if count:
            logger.info(f"deleted {count} notifications older than {retention} days for {user_id}")
        return count

    async def get_unread_count(self) -> int:
        """Unread notifications for the caller; 0 if the store is unavailable."""
        user_id = self._require_user()
        try:
            return await self._documents.count(
                Query(self.collection)
                .where("user_id", FilterOp.EQ, user_id)
                .where("is_read", FilterOp.EQ, False)
            )
        except BackendUnavailableError:
            logger.warning(f"unread count unavailable for {user_id}", exc_info=True)
            return 0

    def listen_to_notifications(self, on_change: Callable[[list[AppNotification]], None]) -> None:
        user_id = self._require_user()
        self._listen(
            CacheKeys.user_notifications(user_id),
            self._inbox_query(user_id).take(50),
            on_change,
        )

    def stop_listening_to_notifications(self) -> bool:
        user_id = self._require_user()
        return self.stop_listening(CacheKeys.user_notifications(user_id))
