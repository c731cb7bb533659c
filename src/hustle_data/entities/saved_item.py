"""Saved (bookmarked) item entity."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class SavedItemType(str, Enum):
    REEL = "reel"
    POST = "post"


@dataclass(frozen=True, kw_only=True)
class SavedItem:
    """A bookmark, stored at `saved_items/{user_id}_{item_id}`."""

    id: str | None = None
    user_id: str
    item_id: str
    item_type: SavedItemType
    saved_at: datetime | None = None

    @staticmethod
    def document_id(user_id: str, item_id: str) -> str:
        return f"{user_id}_{item_id}"
