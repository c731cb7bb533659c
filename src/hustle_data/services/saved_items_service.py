"""Saved items (bookmarks) service.

One document per bookmark at `saved_items/{user_id}_{item_id}`, so saving
the same item twice is a no-op overwrite.
"""

import dataclasses
import logging

from hustle_data.cache_keys import CacheKeys
from hustle_data.documents import FilterOp, Query
from hustle_data.entities import Reel, SavedItem, SavedItemType, ServicePost
from hustle_data.errors import BackendUnavailableError

from .base import POSTS, REELS, SAVED_ITEMS, EntityService
from .mapping import to_document

logger = logging.getLogger(__name__)


class SavedItemsService(EntityService[SavedItem]):
    """The caller's saved reels and posts."""

    collection = SAVED_ITEMS
    entity_type = SavedItem
    cache_name = "saved_item"
    max_age_setting = "saved_cache_max_age"
    order_field = "saved_at"

    def _related_keys(self, entity: SavedItem) -> list[str]:
        return [CacheKeys.saved(entity.item_type.value, entity.user_id)]

    async def _prepare_create(self, entity: SavedItem, user_id: str) -> SavedItem:
        entity = await super()._prepare_create(entity, user_id)
        return entity if entity.saved_at else dataclasses.replace(entity, saved_at=self._now())

    async def _insert(self, entity: SavedItem) -> str:
        doc_id = SavedItem.document_id(entity.user_id, entity.item_id)
        await self._documents.set(self.collection, doc_id, to_document(entity))
        return doc_id

    async def save_item(self, item_id: str, item_type: SavedItemType) -> None:
        user_id = self._require_user()
        await self.create(SavedItem(user_id=user_id, item_id=item_id, item_type=item_type))

    async def unsave_item(self, item_id: str, item_type: SavedItemType) -> None:
        """Remove a bookmark. Unsaving an item that is not saved is a no-op."""
        user_id = self._require_user()
        item = SavedItem(
            id=SavedItem.document_id(user_id, item_id),
            user_id=user_id,
            item_id=item_id,
            item_type=item_type,
        )
        await self._documents.delete(self.collection, item.id)
        self._invalidate(item)
        logger.info(f"[{self.collection}] deleted {item.id}")

    async def is_item_saved(self, item_id: str) -> bool:
        """Whether the caller saved `item_id`. False when signed out or the store fails."""
        user_id = self._identity.current_user_id()
        if not user_id:
            return False
        try:
            snapshot = await self._documents.get(
                self.collection, SavedItem.document_id(user_id, item_id)
            )
        except BackendUnavailableError:
            logger.warning(f"saved check unavailable for {item_id}", exc_info=True)
            return False
        return snapshot is not None

    async def toggle_save(self, item_id: str, item_type: SavedItemType) -> bool:
        """Save or unsave `item_id`.

        Returns:
            True if the item is saved afterwards
        """
        if await self.is_item_saved(item_id):
            await self.unsave_item(item_id, item_type)
            return False
        await self.save_item(item_id, item_type)
        return True

    async def _saved_ids(self, user_id: str, item_type: SavedItemType) -> list[str]:
        query = (
            Query(self.collection)
            .where("user_id", FilterOp.EQ, user_id)
            .where("item_type", FilterOp.EQ, item_type.value)
            .order("saved_at", descending=True)
        )
        items: list[SavedItem] = await self._query_entities(query)
        return list(dict.fromkeys(item.item_id for item in items))

    async def fetch_saved_reels(self) -> list[Reel]:
        """Saved reels, most recently saved first. Deleted reels are left out."""
        user_id = self._require_user()

        async def load() -> list[Reel]:
            ids = await self._saved_ids(user_id, SavedItemType.REEL)
            found = await self._fetch_by_ids(REELS, ids, Reel)
            return [found[item_id] for item_id in ids if item_id in found and found[item_id].is_active]

        return await self._read_through(CacheKeys.saved(SavedItemType.REEL.value, user_id), load)

    async def fetch_saved_posts(self) -> list[ServicePost]:
        """Saved posts, most recently saved first. Deleted posts are left out."""
        user_id = self._require_user()

        async def load() -> list[ServicePost]:
            ids = await self._saved_ids(user_id, SavedItemType.POST)
            found = await self._fetch_by_ids(POSTS, ids, ServicePost)
            return [found[item_id] for item_id in ids if item_id in found and found[item_id].is_active]

        return await self._read_through(CacheKeys.saved(SavedItemType.POST.value, user_id), load)

