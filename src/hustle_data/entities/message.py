"""Message and conversation entities."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .state import EntityState


class MessageContextType(str, Enum):
    """What a message was sent about, if anything."""

    POST = "post"
    REEL = "reel"
    PROFILE = "profile"


@dataclass(frozen=True, kw_only=True)
class Message:
    """A chat message in the flat `messages` collection."""

    id: str | None = None
    sender_id: str
    sender_name: str = ""
    sender_profile_image: str | None = None
    conversation_id: str
    text: str
    timestamp: datetime | None = None
    is_delivered: bool = False
    delivered_at: datetime | None = None
    is_read: bool = False
    read_at: datetime | None = None
    context_type: MessageContextType | None = None
    context_id: str | None = None
    context_title: str | None = None
    context_image: str | None = None
    context_user_id: str | None = None
    is_edited: bool = False
    edited_at: datetime | None = None
    is_deleted: bool = False
    deleted_at: datetime | None = None

    @property
    def state(self) -> EntityState:
        return EntityState.INACTIVE if self.is_deleted else EntityState.ACTIVE


@dataclass(frozen=True, kw_only=True)
class Conversation:
    """A two-party conversation with denormalized participant info."""

    id: str | None = None
    participant_ids: list[str] = field(default_factory=list)
    participant_names: dict[str, str] = field(default_factory=dict)
    participant_images: dict[str, str] = field(default_factory=dict)
    last_message: str | None = None
    last_message_timestamp: datetime | None = None
    last_message_sender_id: str | None = None
    unread_counts: dict[str, int] = field(default_factory=dict)
    last_read_timestamps: dict[str, datetime] = field(default_factory=dict)
    blocked_users: list[str] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def unread_count(self, user_id: str) -> int:
        return self.unread_counts.get(user_id, 0)

    def is_blocked_by(self, user_id: str) -> bool:
        return user_id in self.blocked_users
