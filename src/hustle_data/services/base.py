"""Generic repository facade.

`EntityService` implements the read-through / invalidate-on-write contract
shared by every entity:

1. Reads check the cache (`is_expired` then `retrieve`), fall back to the
   document store on a miss, and store what they fetched.
2. Writes check identity and ownership, write to the document store, and
   then remove every cache key that could hold a stale copy.
3. Side effects that must not fail the primary write (notifications,
   rating recounts, denormalization refreshes) run through `_best_effort`.

Subclasses describe their entity through class attributes and override
the `_prepare_*`, `_related_keys` and `_after_*` hooks.
"""

import dataclasses
import logging
import uuid
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime, timezone
from typing import Any, ClassVar, Generic, TypeVar

from hustle_data.cache_keys import CacheKeys
from hustle_data.config import Settings, settings as default_settings
from hustle_data.documents import DOCUMENT_ID, DocumentSnapshot, FilterOp, Query, WriteBatch
from hustle_data.entities import Page
from hustle_data.errors import (
    BackendUnavailableError,
    NotFoundError,
    UnauthenticatedError,
    UnauthorizedError,
    ValidationFailedError,
)
from hustle_data.protocols import BlobStorage, CacheStore, DocumentStore, IdentityProvider
from hustle_data.subscriptions import SubscriptionRegistry

from .mapping import from_snapshot, to_document

logger = logging.getLogger(__name__)

E = TypeVar("E")
R = TypeVar("R")

# Max writes per committed batch
BATCH_LIMIT = 500
# Max values in one "in" filter
IN_QUERY_LIMIT = 10

# Collection names shared across services
USERS = "users"
POSTS = "posts"
REELS = "reels"
REEL_LIKES = "reel_likes"
COMMENTS = "comments"
REVIEWS = "reviews"
MESSAGES = "messages"
CONVERSATIONS = "conversations"
NOTIFICATIONS = "notifications"
STATUSES = "statuses"
PORTFOLIO_CARDS = "portfolio_cards"
SAVED_ITEMS = "saved_items"
ACTIVITIES = "activities"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def chunked(values: list[Any], size: int) -> Iterable[list[Any]]:
    for start in range(0, len(values), size):
        yield values[start : start + size]


def media_path(category: str, owner_id: str, index: int, ext: str) -> str:
    """Build a blob path: "{category}/{owner_id}/{uuid}_{index}.{ext}"."""
    return f"{category}/{owner_id}/{uuid.uuid4().hex}_{index}.{ext}"


class EntityService(Generic[E]):
    """Cache-aside facade over one document collection.

    Class attributes:
        collection: Document collection name
        entity_type: Dataclass the documents map to
        cache_name: Entity name used in cache keys ("post" -> post_{id})
        max_age_setting: Settings attribute holding the max-age in seconds
        owner_field: Entity field compared with the caller id ("id" for users)
        order_field: Field default listings are ordered by (descending)
        active_flag: (field, value-when-active) for soft-deletable entities,
            None for hard delete
        protected_fields: Fields an update never overwrites
        search_fields: Text fields matched by `search`
    """

    collection: ClassVar[str]
    entity_type: ClassVar[type]
    cache_name: ClassVar[str]
    max_age_setting: ClassVar[str]
    owner_field: ClassVar[str] = "user_id"
    order_field: ClassVar[str] = "created_at"
    active_flag: ClassVar[tuple[str, bool] | None] = None
    protected_fields: ClassVar[tuple[str, ...]] = ()
    search_fields: ClassVar[tuple[str, ...]] = ()

    def __init__(
        self,
        documents: DocumentStore,
        cache: CacheStore,
        identity: IdentityProvider,
        blobs: BlobStorage | None = None,
        settings: Settings | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            documents: Document store backend (required).
            cache: Shared TTL cache store (required).
            identity: Source of the caller id (required).
            blobs: Blob storage for media uploads.
            settings: Overrides the global settings.
            now: UTC clock. Defaults to datetime.now(timezone.utc).
        """
        self._documents = documents
        self._cache = cache
        self._identity = identity
        self._blobs = blobs
        self._settings = settings or default_settings
        self._now = now or utc_now
        self._subscriptions = SubscriptionRegistry(self.collection)

    @property
    def max_age(self) -> float:
        return getattr(self._settings, self.max_age_setting)

    # -------------------------------------------------------------------------
    # Keys
    # -------------------------------------------------------------------------

    def entity_key(self, entity_id: str) -> str:
        return CacheKeys.entity(self.cache_name, entity_id)

    def page_key(self) -> str:
        return CacheKeys.first_page(self.cache_name)

    def _related_keys(self, entity: E) -> list[str]:
        """Relation and aggregate keys that may hold `entity`."""
        return []

    def _related_prefixes(self, entity: E) -> list[str]:
        return []

    def _invalidate(self, *entities: E) -> None:
        keys: set[str] = {self.page_key()}
        prefixes: set[str] = set()
        for entity in entities:
            entity_id = getattr(entity, "id", None)
            if entity_id:
                keys.add(self.entity_key(entity_id))
            keys.update(self._related_keys(entity))
            prefixes.update(self._related_prefixes(entity))
        for key in sorted(keys):
            self._cache.remove(key)
        for prefix in sorted(prefixes):
            self._cache.remove_prefix(prefix)
        logger.debug(f"[{self.collection}] invalidated {sorted(keys)} {sorted(prefixes)}")

    # -------------------------------------------------------------------------
    # Cache helpers
    # -------------------------------------------------------------------------

    def _cached(self, key: str, max_age: float | None = None) -> Any | None:
        """Return the cached value for `key` if it is still fresh."""
        if self._cache.is_expired(key, self.max_age if max_age is None else max_age):
            logger.debug(f"cache miss {key}")
            return None
        value = self._cache.retrieve(key)
        if value is not None:
            logger.debug(f"cache hit {key}")
        return value

    async def _read_through(
        self,
        key: str,
        loader: Callable[[], Awaitable[R]],
        max_age: float | None = None,
    ) -> R:
        cached = self._cached(key, max_age)
        if cached is not None:
            return cached
        value = await loader()
        if value is not None:
            self._cache.store(key, value)
        return value

    # -------------------------------------------------------------------------
    # Identity
    # -------------------------------------------------------------------------

    def _require_user(self) -> str:
        user_id = self._identity.current_user_id()
        if not user_id:
            raise UnauthenticatedError()
        return user_id

    def _owner_of(self, entity: E) -> str | None:
        return getattr(entity, self.owner_field)

    async def _authorize(self, stored: E, user_id: str, action: str) -> None:
        """Raise UnauthorizedError unless `user_id` may `action` the stored entity."""
        if self._owner_of(stored) != user_id:
            raise UnauthorizedError(
                f"User {user_id} cannot {action} {self.cache_name} {getattr(stored, 'id', None)}"
            )

    async def _profile_of(self, user_id: str) -> tuple[str, str | None]:
        """Name and image of `user_id`, for denormalized author fields."""
        cached = self._cached(CacheKeys.user(user_id), self._settings.user_cache_max_age)
        if cached is not None:
            return cached.name, cached.profile_image_url
        snapshot = await self._documents.get(USERS, user_id)
        if snapshot is None:
            return "", None
        return snapshot.get("name", ""), snapshot.get("profile_image_url")

    # -------------------------------------------------------------------------
    # Mapping
    # -------------------------------------------------------------------------

    def _from_snapshot(self, snapshot: DocumentSnapshot) -> E:
        return from_snapshot(self.entity_type, snapshot)

    def _parse_all(self, snapshots: list[DocumentSnapshot], entity_type: type | None = None) -> list:
        """Map snapshots to entities, skipping documents that do not parse."""
        target = entity_type or self.entity_type
        entities = []
        for snapshot in snapshots:
            try:
                entities.append(from_snapshot(target, snapshot))
            except ValueError:
                logger.warning(
                    f"skipping malformed document {snapshot.collection}/{snapshot.id}",
                    exc_info=True,
                )
        return entities

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def _base_query(self) -> Query:
        query = Query(self.collection)
        if self.active_flag is not None:
            field_name, active_value = self.active_flag
            query = query.where(field_name, FilterOp.EQ, active_value)
        return query

    def _default_query(self) -> Query:
        return self._base_query().order(self.order_field, descending=True)

    def _visible(self, entity: E) -> bool:
        """Read-time filter applied to every listing, cached or not."""
        return True

    async def _run_page(
        self,
        query: Query,
        limit: int,
        cursor: DocumentSnapshot | None,
        entity_type: type | None = None,
    ) -> Page:
        snapshots = await self._documents.query(query.take(limit).after(cursor))
        items = tuple(self._parse_all(snapshots, entity_type))
        return Page(
            items=items,
            next_cursor=snapshots[-1] if snapshots else None,
            has_more=len(snapshots) == limit,
            limit=limit,
        )

    async def _cached_page(
        self,
        key: str,
        query: Query,
        limit: int | None,
        cursor: DocumentSnapshot | None,
        max_age: float | None = None,
        entity_type: type | None = None,
    ) -> Page:
        """Serve page 1 from `key` when fresh; cursor pages always hit the store."""
        limit = limit or self._settings.default_page_size
        if cursor is None:
            cached = self._cached(key, max_age)
            if cached is not None and cached.limit == limit:
                return self._filter_page(cached)
        page = await self._run_page(query, limit, cursor, entity_type)
        if cursor is None:
            self._cache.store(key, page)
        return self._filter_page(page)

    async def cursor_for(self, entity_id: str) -> DocumentSnapshot | None:
        """Resolve an entity id into a cursor for `fetch_page`-style listings."""
        return await self._documents.get(self.collection, entity_id)

    def _filter_page(self, page: Page[E]) -> Page[E]:
        items = tuple(item for item in page.items if self._visible(item))
        if len(items) == len(page.items):
            return page
        return dataclasses.replace(page, items=items)

    async def _query_entities(self, query: Query, entity_type: type | None = None) -> list:
        return self._parse_all(await self._documents.query(query), entity_type)

    async def _fetch_by_ids(self, collection: str, ids: list[str], entity_type: type) -> dict[str, Any]:
        """Load documents by id with chunked "in" queries."""
        found: dict[str, Any] = {}
        unique = list(dict.fromkeys(ids))
        for chunk in chunked(unique, IN_QUERY_LIMIT):
            query = Query(collection).where(DOCUMENT_ID, FilterOp.IN, chunk)
            for entity in await self._query_entities(query, entity_type):
                found[entity.id] = entity
        return found

    # -------------------------------------------------------------------------
    # Generic contract
    # -------------------------------------------------------------------------

    async def fetch_by_id(self, entity_id: str, allow_stale: bool = False) -> E | None:
        """Fetch one entity, reading through the cache.

        Soft-deleted and expired entities are still returned.

        Args:
            entity_id: Document id
            allow_stale: Return an expired cached copy if the store is unavailable

        Returns:
            The entity, or None if no such document exists

        Raises:
            BackendUnavailableError: If the store fails and no stale copy is allowed
        """
        key = self.entity_key(entity_id)
        cached = self._cached(key)
        if cached is not None:
            return cached

        try:
            snapshot = await self._documents.get(self.collection, entity_id)
        except BackendUnavailableError:
            stale = self._cache.retrieve(key) if allow_stale else None
            if stale is None:
                raise
            logger.warning(f"serving stale {key}, document store unavailable")
            return stale

        if snapshot is None:
            return None
        entity = self._from_snapshot(snapshot)
        self._cache.store(key, entity)
        await self._after_fetch(entity)
        return entity

    async def fetch_page(
        self,
        limit: int | None = None,
        cursor: DocumentSnapshot | None = None,
    ) -> Page[E]:
        """Fetch one page of the default listing (newest first, active only).

        Only the first page is cached, and only reused for the same limit.
        """
        return await self._cached_page(self.page_key(), self._default_query(), limit, cursor)

    async def create(self, entity: E) -> str:
        """Create an entity owned by the caller.

        Returns:
            The new document id

        Raises:
            UnauthenticatedError: If no caller is signed in
            UnauthorizedError: If the entity names another owner
            ValidationFailedError: If a field rule or domain precondition fails
        """
        user_id = self._require_user()
        owner = self._owner_of(entity)
        if owner and owner != user_id:
            raise UnauthorizedError(f"User {user_id} cannot create {self.cache_name} for {owner}")

        entity = await self._prepare_create(entity, user_id)
        entity_id = await self._insert(entity)
        entity = dataclasses.replace(entity, id=entity_id)
        self._invalidate(entity)
        logger.info(f"[{self.collection}] created {entity_id}")
        await self._after_create(entity)
        return entity_id

    async def update(self, entity: E) -> None:
        """Update an entity the caller owns.

        Server-managed fields (`protected_fields`, owner, created_at) keep
        their stored values.

        Raises:
            ValidationFailedError: If the entity has no id or fails a field rule
            NotFoundError: If the id does not resolve to a document
            UnauthorizedError: If the caller does not own it
        """
        entity_id = getattr(entity, "id", None)
        if not entity_id:
            raise ValidationFailedError(f"{self.cache_name} id is required for update")
        user_id = self._require_user()
        stored = await self._load_for_write(entity_id)
        await self._authorize(stored, user_id, "update")

        entity = self._keep_protected(entity, stored)
        entity = await self._prepare_update(entity, stored, user_id)
        await self._documents.set(self.collection, entity_id, to_document(entity))
        self._invalidate(stored, entity)
        logger.info(f"[{self.collection}] updated {entity_id}")
        await self._after_update(entity, stored)

    async def update_fields(self, entity_id: str, **changes: Any) -> None:
        """Apply `changes` to the stored document and save it through `update`.

        Fields not named in `changes` keep the values in the store, not
        those of a cached copy.
        """
        self._require_user()
        stored = await self._load_for_write(entity_id)
        await self.update(dataclasses.replace(stored, **changes))

    async def delete(self, entity_id: str) -> None:
        """Delete an entity the caller owns (soft or hard per `active_flag`).

        Raises:
            NotFoundError: If the id does not resolve to a document
            UnauthorizedError: If the caller may not delete it
        """
        user_id = self._require_user()
        stored = await self._load_for_write(entity_id)
        await self._authorize(stored, user_id, "delete")
        await self._remove(stored)
        self._invalidate(stored)
        logger.info(f"[{self.collection}] deleted {entity_id}")
        await self._after_delete(stored)

    async def search(self, query: str, limit: int | None = None) -> list[E]:
        """Case-insensitive substring match over the most recent documents.

        Fetches at most `search_fetch_cap` documents, filters them in memory
        on `search_fields`, and truncates to `limit`.
        """
        term = query.strip().lower()
        if not term:
            return []
        limit = limit or self._settings.default_page_size
        candidates = await self._query_entities(
            self._default_query().take(self._settings.search_fetch_cap)
        )
        matches = [
            entity
            for entity in candidates
            if self._visible(entity) and term in self._search_text(entity)
        ]
        return matches[:limit]

    def _search_text(self, entity: E) -> str:
        parts: list[str] = []
        for name in self.search_fields:
            value = getattr(entity, name, None)
            if isinstance(value, (list, tuple)):
                parts.extend(str(item) for item in value)
            elif value:
                parts.append(str(value))
        return " ".join(parts).lower()

    # -------------------------------------------------------------------------
    # Write helpers and hooks
    # -------------------------------------------------------------------------

    async def _load_for_write(self, entity_id: str) -> E:
        """Read the current document, bypassing the cache."""
        snapshot = await self._documents.get(self.collection, entity_id)
        if snapshot is None:
            raise NotFoundError(f"{self.cache_name} {entity_id} not found")
        return self._from_snapshot(snapshot)

    def _keep_protected(self, entity: E, stored: E) -> E:
        names = {self.owner_field, "created_at", *self.protected_fields} - {"id"}
        if self.active_flag is not None:
            names.add(self.active_flag[0])
        present = {f.name for f in dataclasses.fields(entity)}
        return dataclasses.replace(
            entity, **{name: getattr(stored, name) for name in names if name in present}
        )

    async def _prepare_create(self, entity: E, user_id: str) -> E:
        """Validate and stamp a new entity. Must set the owner field."""
        changes: dict[str, Any] = {self.owner_field: user_id}
        now = self._now()
        present = {f.name for f in dataclasses.fields(entity)}
        for stamp in ("created_at", "updated_at"):
            if stamp in present:
                changes[stamp] = now
        return dataclasses.replace(entity, **changes)

    async def _prepare_update(self, entity: E, stored: E, user_id: str) -> E:
        if "updated_at" in {f.name for f in dataclasses.fields(entity)}:
            return dataclasses.replace(entity, updated_at=self._now())
        return entity

    async def _insert(self, entity: E) -> str:
        return await self._documents.add(self.collection, to_document(entity))

    async def _remove(self, stored: E) -> None:
        if self.active_flag is None:
            await self._documents.delete(self.collection, stored.id)
            return
        field_name, active_value = self.active_flag
        changes: dict[str, Any] = {field_name: not active_value}
        if "deleted_at" in {f.name for f in dataclasses.fields(stored)}:
            changes["deleted_at"] = self._now()
        await self._documents.update(self.collection, stored.id, changes)

    async def _after_fetch(self, entity: E) -> None:
        return None

    async def _after_create(self, entity: E) -> None:
        return None

    async def _after_update(self, entity: E, previous: E) -> None:
        return None

    async def _after_delete(self, entity: E) -> None:
        return None

    async def _best_effort(self, awaitable: Awaitable[R], description: str) -> R | None:
        """Await a side effect whose failure must not fail the caller.

        Returns:
            The result, or None if it raised (the error is logged)
        """
        try:
            return await awaitable
        except Exception:
            logger.warning(f"{description} failed", exc_info=True)
            return None

    async def _commit_each(
        self,
        items: Iterable[R],
        write: Callable[[WriteBatch, R], None],
    ) -> int:
        """Apply `write` for every item, committing at most BATCH_LIMIT writes per batch.

        Each batch is atomic; a failure leaves earlier batches applied.

        Returns:
            Number of items written
        """
        count = 0
        for chunk in chunked(list(items), BATCH_LIMIT):
            batch = WriteBatch()
            for item in chunk:
                write(batch, item)
            await self._documents.commit(batch)
            count += len(chunk)
        return count

    # -------------------------------------------------------------------------
    # Media
    # -------------------------------------------------------------------------

    async def _upload_media(
        self,
        items: Iterable[bytes],
        category: str,
        owner_id: str,
        ext: str = "jpg",
        content_type: str = "image/jpeg",
    ) -> list[str]:
        """Upload each item and return the URLs in order.

        Raises:
            ValidationFailedError: If no blob storage is configured
            BackendUnavailableError: If an upload fails
        """
        if self._blobs is None:
            raise ValidationFailedError("Media upload requires blob storage")
        urls = []
        for index, data in enumerate(items):
            path = media_path(category, owner_id, index, ext)
            urls.append(await self._blobs.upload(data, path, content_type))
        return urls

    # -------------------------------------------------------------------------
    # Live listeners
    # -------------------------------------------------------------------------

    def _listen(
        self,
        key: str,
        query: Query,
        on_change: Callable[[list], None],
        entity_type: type | None = None,
    ) -> None:
        """Replace any listener under `key` with one delivering parsed entities."""

        def deliver(snapshots: list[DocumentSnapshot]) -> None:
            on_change(self._parse_all(snapshots, entity_type))

        self._subscriptions.subscribe(key, lambda: self._documents.listen(query, deliver))

    def stop_listening(self, key: str) -> bool:
        return self._subscriptions.unsubscribe(key)

    def remove_all_listeners(self) -> int:
        return self._subscriptions.unsubscribe_all()

    @property
    def subscriptions(self) -> SubscriptionRegistry:
        return self._subscriptions
