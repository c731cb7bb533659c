"""Message and conversation service.

Messages live in one flat `messages` collection and are filtered by
`conversation_id`. Sending a message and bumping the conversation's last
message and unread counter are one atomic batch.
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
from hustle_data.entities import Conversation, Message, MessageContextType, Page
from hustle_data.errors import NotFoundError, UnauthorizedError, ValidationFailedError
from hustle_data.validation import validate_message

from .base import CONVERSATIONS, MESSAGES, USERS, EntityService
from .mapping import from_snapshot, to_document
from .notification_service import NotificationService

logger = logging.getLogger(__name__)


class MessageService(EntityService[Message]):
    """Direct messages between two users."""

    collection = MESSAGES
    entity_type = Message
    cache_name = "message"
    max_age_setting = "message_cache_max_age"
    owner_field = "sender_id"
    order_field = "timestamp"
    active_flag = ("is_deleted", False)
    protected_fields = (
        "conversation_id",
        "sender_name",
        "sender_profile_image",
        "timestamp",
        "is_delivered",
        "delivered_at",
        "is_read",
        "read_at",
        "context_type",
        "context_id",
        "context_title",
        "context_image",
        "context_user_id",
        "deleted_at",
    )

    def __init__(self, *args, notifications: NotificationService | None = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._notifications = notifications

    def _related_keys(self, entity: Message) -> list[str]:
        return [CacheKeys.conversation_messages(entity.conversation_id)]

    # -------------------------------------------------------------------------
    # Conversations
    # -------------------------------------------------------------------------

    async def _load_conversation(self, conversation_id: str) -> Conversation:
        snapshot = await self._documents.get(CONVERSATIONS, conversation_id)
        if snapshot is None:
            raise NotFoundError(f"conversation {conversation_id} not found")
        return from_snapshot(Conversation, snapshot)

    async def _load_participating(self, conversation_id: str, user_id: str) -> Conversation:
        conversation = await self._load_conversation(conversation_id)
        if user_id not in conversation.participant_ids:
            raise UnauthorizedError(f"User {user_id} is not in conversation {conversation_id}")
        return conversation

    def _invalidate_conversation(self, conversation: Conversation) -> None:
        self._cache.remove(CacheKeys.conversation(conversation.id))
        self._cache.remove(CacheKeys.conversation_messages(conversation.id))
        for participant in conversation.participant_ids:
            self._cache.remove(CacheKeys.user_conversations(participant))

    async def find_or_create_conversation(self, other_user_id: str) -> str:
        """Return the caller's conversation with `other_user_id`, creating it if needed.

        Returns:
            The conversation id
        """
        user_id = self._require_user()
        if other_user_id == user_id:
            raise ValidationFailedError("Users cannot message themselves")

        existing = await self._documents.query(
            Query(CONVERSATIONS).where("participant_ids", FilterOp.ARRAY_CONTAINS, user_id)
        )
        for snapshot in existing:
            if other_user_id in snapshot.get("participant_ids", []):
                await self._best_effort(
                    self.refresh_participant_info(snapshot.id),
                    f"participant refresh for conversation {snapshot.id}",
                )
                return snapshot.id

        if await self._documents.get(USERS, other_user_id) is None:
            raise NotFoundError(f"user {other_user_id} not found")

        now = self._now()
        names: dict[str, str] = {}
        images: dict[str, str] = {}
        for participant in (user_id, other_user_id):
            name, image = await self._profile_of(participant)
            names[participant] = name
            if image:
                images[participant] = image
        conversation = Conversation(
            participant_ids=[user_id, other_user_id],
            participant_names=names,
            participant_images=images,
            unread_counts={user_id: 0, other_user_id: 0},
            created_at=now,
            updated_at=now,
        )
        conversation_id = await self._documents.add(CONVERSATIONS, to_document(conversation))
        self._invalidate_conversation(dataclasses.replace(conversation, id=conversation_id))
        logger.info(f"[{CONVERSATIONS}] created {conversation_id}")
        return conversation_id

    async def refresh_participant_info(self, conversation_id: str) -> None:
        """Re-copy participant names and images from their profiles."""
        conversation = await self._load_conversation(conversation_id)
        changes = {}
        for participant in conversation.participant_ids:
            name, image = await self._profile_of(participant)
            if name and conversation.participant_names.get(participant) != name:
                changes[f"participant_names.{participant}"] = name
            if image and conversation.participant_images.get(participant) != image:
                changes[f"participant_images.{participant}"] = image
        if changes:
            await self._documents.update(CONVERSATIONS, conversation_id, changes)
            self._invalidate_conversation(conversation)

    async def fetch_conversation(self, conversation_id: str) -> Conversation:
        """Read a conversation the caller takes part in.

        Participation is checked on every call, whether the conversation
        came from the cache or the store.

        Raises:
            NotFoundError: If the conversation does not exist
            UnauthorizedError: If the caller is not a participant
        """
        user_id = self._require_user()
        conversation = await self._read_through(
            CacheKeys.conversation(conversation_id),
            lambda: self._load_conversation(conversation_id),
        )
        if user_id not in conversation.participant_ids:
            raise UnauthorizedError(f"User {user_id} is not in conversation {conversation_id}")
        return conversation

    def _conversations_query(self, user_id: str) -> Query:
        return (
            Query(CONVERSATIONS)
            .where("participant_ids", FilterOp.ARRAY_CONTAINS, user_id)
            .order("updated_at", descending=True)
        )

    async def fetch_conversations(self, limit: int | None = None) -> list[Conversation]:
        """The caller's conversations, most recently active first."""
        user_id = self._require_user()
        page = await self._cached_page(
            CacheKeys.user_conversations(user_id),
            self._conversations_query(user_id),
            limit,
            None,
            entity_type=Conversation,
        )
        return list(page.items)

    async def delete_conversation(self, conversation_id: str) -> int:
        """Hard-delete a conversation and all of its messages.

        Returns:
            Number of messages deleted
        """
        user_id = self._require_user()
        conversation = await self._load_participating(conversation_id, user_id)
        messages = await self._documents.query(
            Query(self.collection).where("conversation_id", FilterOp.EQ, conversation_id)
        )

        def write(batch: WriteBatch, snapshot: DocumentSnapshot) -> None:
            batch.delete(self.collection, snapshot.id)

        count = await self._commit_each(messages, write)
        await self._documents.delete(CONVERSATIONS, conversation_id)
        self._invalidate_conversation(conversation)
        for snapshot in messages:
            self._cache.remove(self.entity_key(snapshot.id))
        logger.info(f"[{CONVERSATIONS}] deleted {conversation_id} with {count} messages")
        return count

    async def block_user(self, conversation_id: str, user_id: str) -> None:
        """Stop `user_id` from sending in this conversation."""
        await self._set_blocked(conversation_id, user_id, blocked=True)

    async def unblock_user(self, conversation_id: str, user_id: str) -> None:
        await self._set_blocked(conversation_id, user_id, blocked=False)

    async def _set_blocked(self, conversation_id: str, target_id: str, blocked: bool) -> None:
        caller = self._require_user()
        conversation = await self._load_participating(conversation_id, caller)
        if target_id == caller or target_id not in conversation.participant_ids:
            raise ValidationFailedError(f"{target_id} cannot be blocked in {conversation_id}")
        transform = ArrayUnion(target_id) if blocked else ArrayRemove(target_id)
        await self._documents.update(
            CONVERSATIONS,
            conversation_id,
            {"blocked_users": transform, "updated_at": self._now()},
        )
        self._invalidate_conversation(conversation)

    # -------------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------------

    async def fetch_by_id(self, entity_id: str, allow_stale: bool = False) -> Message | None:
        """Fetch one message; only participants of its conversation may read it.

        Raises:
            UnauthorizedError: If the caller is not in the message's conversation
        """
        message = await super().fetch_by_id(entity_id, allow_stale)
        if message is not None:
            await self.fetch_conversation(message.conversation_id)
        return message

    async def create(self, entity: Message) -> str:
        """Send a message into an existing conversation.

        Raises:
            NotFoundError: If the conversation does not exist
            UnauthorizedError: If the caller is not a participant or is blocked
            ValidationFailedError: If the text is empty or too long
        """
        user_id = self._require_user()
        if entity.sender_id and entity.sender_id != user_id:
            raise UnauthorizedError(f"User {user_id} cannot send as {entity.sender_id}")
        conversation = await self._load_participating(entity.conversation_id, user_id)
        if conversation.is_blocked_by(user_id):
            raise UnauthorizedError(f"User {user_id} is blocked in {conversation.id}")

        name, image = await self._profile_of(user_id)
        now = self._now()
        message = dataclasses.replace(
            entity,
            sender_id=user_id,
            sender_name=entity.sender_name or name,
            sender_profile_image=entity.sender_profile_image or image,
            text=entity.text.strip(),
            timestamp=now,
            is_delivered=True,
            delivered_at=now,
            is_read=False,
            is_deleted=False,
        )
        validate_message(message)

        message_id = new_document_id()
        conversation_update = {
            "last_message": message.text,
            "last_message_timestamp": now,
            "last_message_sender_id": user_id,
            "updated_at": now,
        }
        recipients = [p for p in conversation.participant_ids if p != user_id]
        for recipient in recipients:
            conversation_update[f"unread_counts.{recipient}"] = Increment(1)

        batch = WriteBatch()
        batch.set(self.collection, message_id, to_document(message))
        batch.update(CONVERSATIONS, conversation.id, conversation_update)
        await self._documents.commit(batch)

        message = dataclasses.replace(message, id=message_id)
        self._invalidate(message)
        self._invalidate_conversation(conversation)

        if self._notifications is not None:
            for recipient in recipients:
                await self._best_effort(
                    self._notifications.create_message_notification(message, recipient),
                    f"message notification to {recipient}",
                )
        return message_id

    async def send_message(
        self,
        conversation_id: str,
        text: str,
        context_type: MessageContextType | None = None,
        context_id: str | None = None,
        context_title: str | None = None,
        context_image: str | None = None,
        context_user_id: str | None = None,
    ) -> str:
        """Send `text`, optionally about a post, reel or profile."""
        return await self.create(
            Message(
                sender_id="",
                conversation_id=conversation_id,
                text=text,
                context_type=context_type,
                context_id=context_id,
                context_title=context_title,
                context_image=context_image,
                context_user_id=context_user_id,
            )
        )

    async def _prepare_update(self, entity: Message, stored: Message, user_id: str) -> Message:
        validate_message(entity)
        return dataclasses.replace(entity, text=entity.text.strip(), is_edited=True, edited_at=self._now())

    def _messages_query(self, conversation_id: str) -> Query:
        return (
            self._base_query()
            .where("conversation_id", FilterOp.EQ, conversation_id)
            .order("timestamp", descending=True)
        )

    async def fetch_conversation_messages(
        self,
        conversation_id: str,
        limit: int | None = None,
        cursor: DocumentSnapshot | None = None,
    ) -> Page[Message]:
        """Messages of a conversation, newest first; page 1 is cached."""
        user_id = self._require_user()
        await self._load_participating(conversation_id, user_id)
        return await self._cached_page(
            CacheKeys.conversation_messages(conversation_id),
            self._messages_query(conversation_id),
            limit,
            cursor,
        )

    async def mark_messages_as_read(self, conversation_id: str) -> int:
        """Mark every message sent to the caller as read and reset their unread count.

        Returns:
            Number of messages updated
        """
        user_id = self._require_user()
        conversation = await self._load_participating(conversation_id, user_id)
        unread = await self._documents.query(
            Query(self.collection)
            .where("conversation_id", FilterOp.EQ, conversation_id)
            .where("is_read", FilterOp.EQ, False)
        )
        incoming = [snapshot for snapshot in unread if snapshot.get("sender_id") != user_id]
        now = self._now()

        def write(batch: WriteBatch, snapshot: DocumentSnapshot) -> None:
            batch.update(self.collection, snapshot.id, {"is_read": True, "read_at": now})

        count = await self._commit_each(incoming, write)
        await self._documents.update(
            CONVERSATIONS,
            conversation_id,
            {f"unread_counts.{user_id}": 0, f"last_read_timestamps.{user_id}": now},
        )
        for snapshot in incoming:
            self._cache.remove(self.entity_key(snapshot.id))
        self._invalidate_conversation(conversation)
        return count

    # -------------------------------------------------------------------------
    # Live listeners
    # -------------------------------------------------------------------------

    def listen_to_conversation(self, conversation_id: str, on_change: Callable[[list[Message]], None]) -> None:
        self._listen(
            CacheKeys.conversation_messages(conversation_id),
            self._messages_query(conversation_id).take(100),
            on_change,
        )

    def stop_listening_to_conversation(self, conversation_id: str) -> bool:
        return self.stop_listening(CacheKeys.conversation_messages(conversation_id))

    def listen_to_conversations(self, on_change: Callable[[list[Conversation]], None]) -> None:
        user_id = self._require_user()
        self._listen(
            CacheKeys.user_conversations(user_id),
            self._conversations_query(user_id).take(50),
            on_change,
            entity_type=Conversation,
        )

    def stop_listening_to_conversations(self) -> bool:
        return self.stop_listening(CacheKeys.user_conversations(self._require_user()))
