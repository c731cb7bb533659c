"""Tag analytics service.

Usage counters live in `tag_analytics/{name}`, one document per tag,
bumped by posts and reels as they are created. Tags are not written
through the generic create/update/delete contract.
"""

import logging
from collections.abc import Iterable
from datetime import timedelta

from hustle_data.cache_keys import CacheKeys
from hustle_data.documents import DocumentSnapshot, FilterOp, Increment, Query, WriteBatch
from hustle_data.entities import Reel, ServicePost, TagAnalytics, normalize_tag
from hustle_data.errors import BackendUnavailableError, ValidationFailedError

from .base import POSTS, REELS, EntityService

logger = logging.getLogger(__name__)

TAG_ANALYTICS = "tag_analytics"

# Recent posts and reels scanned per user for recent tags
RECENT_SCAN_LIMIT = 20
# Below this many search hits, suggestions are appended
MIN_SEARCH_RESULTS = 5
# Tags used fewer times than this are dropped by cleanup once stale
CLEANUP_MAX_USAGE = 5

SUGGESTED_TAGS = (
    "#cleaning", "#housecleaning", "#deepclean", "#moveoutclean",
    "#tutoring", "#mathtutoring", "#englishtutor", "#testprep",
    "#plumbing", "#plumber", "#leakrepair", "#emergency",
    "#electrical", "#electrician", "#wiring", "#lighting",
    "#moving", "#movers", "#packinghelp", "#delivery",
    "#landscaping", "#lawncare", "#gardening", "#treeservice",
    "#painting", "#interiorpainting", "#exteriorpainting",
    "#handyman", "#repairs", "#maintenance", "#assembly",
    "#dogwalking", "#petsitting", "#petcare", "#dogtraining",
    "#photography", "#photoshoot", "#eventphotography",
)


class TagService(EntityService[TagAnalytics]):
    """Trending, popular, recent and autocomplete tags."""

    collection = TAG_ANALYTICS
    entity_type = TagAnalytics
    cache_name = "tag"
    max_age_setting = "tag_cache_max_age"
    order_field = "trending_score"
    search_fields = ("tag",)

    async def create(self, entity: TagAnalytics) -> str:
        raise ValidationFailedError("Tag analytics are only written by record_tags")

    async def update(self, entity: TagAnalytics) -> None:
        raise ValidationFailedError("Tag analytics are only written by record_tags")

    async def delete(self, entity_id: str) -> None:
        raise ValidationFailedError("Tag analytics are only removed by cleanup_old_analytics")

    async def record_tags(self, tags: Iterable[str], kind: str) -> int:
        """Count one use of each tag, in one batch.

        Args:
            tags: Tags as typed, with or without "#"
            kind: Where they were used ("post" or "reel")

        Returns:
            Number of distinct tags recorded
        """
        names = [name for name in dict.fromkeys(normalize_tag(tag) for tag in tags) if name]
        if not names:
            return 0
        now = self._now()
        batch = WriteBatch()
        for name in names:
            batch.set(
                self.collection,
                TagAnalytics.document_id(name),
                {
                    "tag": name,
                    "usage_count": Increment(1),
                    f"{kind}_count": Increment(1),
                    "trending_score": Increment(1.0),
                    "last_used": now,
                },
                merge=True,
            )
        await self._documents.commit(batch)
        self._cache.remove(CacheKeys.trending_tags())
        for name in names:
            self._cache.remove(self.entity_key(TagAnalytics.document_id(name)))
        logger.debug(f"[{self.collection}] recorded {names} from {kind}")
        return len(names)

    async def fetch_trending_tags(self, limit: int = 20) -> list[str]:
        """Tags with the highest trending score, highest first."""

        async def load() -> list[str]:
            query = (
                Query(self.collection)
                .order("trending_score", descending=True)
                .take(self._settings.search_fetch_cap)
            )
            return [analytics.tag for analytics in await self._query_entities(query)]

        ranked = await self._read_through(CacheKeys.trending_tags(), load)
        return ranked[:limit]

    async def fetch_popular_tags(self, days: int = 7, limit: int = 20) -> list[str]:
        """Most used tags among those used in the last `days` days."""
        since = self._now() - timedelta(days=days)
        query = Query(self.collection).where("last_used", FilterOp.GE, since)
        recent = await self._query_entities(query)
        recent.sort(key=lambda analytics: analytics.usage_count, reverse=True)
        return [analytics.tag for analytics in recent[:limit]]

    async def fetch_user_recent_tags(self, user_id: str, limit: int = 10) -> list[str]:
        """Tags from the user's latest posts, then their latest reels."""
        tags: list[str] = []
        sources = ((POSTS, ServicePost, "tags"), (REELS, Reel, "hashtags"))
        for collection, entity_type, field_name in sources:
            query = (
                Query(collection)
                .where("user_id", FilterOp.EQ, user_id)
                .where("is_active", FilterOp.EQ, True)
                .order("created_at", descending=True)
                .take(RECENT_SCAN_LIMIT)
            )
            for entity in await self._query_entities(query, entity_type):
                tags.extend(normalize_tag(tag) for tag in getattr(entity, field_name))
        return [tag for tag in dict.fromkeys(tags) if tag][:limit]

    async def search_tags(self, query: str, limit: int = 10) -> list[str]:
        """Autocomplete tags starting with `query`.

        Fewer than five hits are topped up from built-in suggestions, and
        only suggestions are returned while the store is unavailable.
        Queries shorter than two characters return nothing.
        """
        prefix = normalize_tag(query)
        if len(prefix) < 3:
            return []
        try:
            hits = await self._query_entities(
                Query(self.collection)
                .where("tag", FilterOp.GE, prefix)
                .where("tag", FilterOp.LE, prefix + "\uf8ff")
                .order("tag")
                .take(limit)
            )
        except BackendUnavailableError:
            logger.warning(f"tag search for {prefix} served from suggestions", exc_info=True)
            return self._suggestions(prefix)[:limit]

        tags = [analytics.tag for analytics in hits]
        if len(tags) < MIN_SEARCH_RESULTS:
            tags.extend(tag for tag in self._suggestions(prefix) if tag not in tags)
        return tags[:limit]

    def _suggestions(self, prefix: str) -> list[str]:
        term = prefix.lstrip("#")
        return [tag for tag in SUGGESTED_TAGS if term in tag][:MIN_SEARCH_RESULTS]

    async def cleanup_old_analytics(self, days: int | None = None) -> int:
        """Delete rarely used tags not used within `days` days.

        Returns:
            Number of tags deleted
        """
        days = self._settings.tag_retention_days if days is None else days
        cutoff = self._now() - timedelta(days=days)
        stale: list[DocumentSnapshot] = await self._documents.query(
            Query(self.collection)
            .where("last_used", FilterOp.LT, cutoff)
            .where("usage_count", FilterOp.LT, CLEANUP_MAX_USAGE)
        )

        def write(batch: WriteBatch, snapshot: DocumentSnapshot) -> None:
            batch.delete(self.collection, snapshot.id)

        count = await self._commit_each(stale, write)
        if count:
            self._invalidate(*self._parse_all(stale))
            self._cache.remove(CacheKeys.trending_tags())
        logger.info(f"[{self.collection}] removed {count} stale tags")
        return count
