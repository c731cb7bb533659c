"""Service post service."""

import dataclasses
from collections.abc import Iterable

from hustle_data.documents import DocumentSnapshot, FilterOp
from hustle_data.entities import Page, ServiceCategory, ServicePost
from hustle_data.validation import validate_post

from .base import POSTS, EntityService
from .tag_service import TagService


class PostService(EntityService[ServicePost]):
    """Offers and requests for services.

    Listings are newest-updated first and exclude soft-deleted posts.

    Example:
        ```python
        posts = PostService(documents, cache, identity)
        post_id = await posts.create(ServicePost(user_id="", title="Lawn care", description="..."))
        page = await posts.fetch_page(limit=20)
        more = await posts.fetch_page(limit=20, cursor=page.next_cursor)
        ```
    """

    collection = POSTS
    entity_type = ServicePost
    cache_name = "post"
    max_age_setting = "post_cache_max_age"
    order_field = "updated_at"
    active_flag = ("is_active", True)
    protected_fields = ("user_name", "user_profile_image")
    search_fields = ("title", "description", "tags")

    def __init__(self, *args, tags: TagService | None = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._tags = tags

    async def _prepare_create(self, entity: ServicePost, user_id: str) -> ServicePost:
        validate_post(entity)
        entity = await super()._prepare_create(entity, user_id)
        name, image = await self._profile_of(user_id)
        return dataclasses.replace(
            entity,
            title=entity.title.strip(),
            description=entity.description.strip(),
            user_name=entity.user_name or name,
            user_profile_image=entity.user_profile_image or image,
            is_active=True,
        )

    async def _prepare_update(self, entity: ServicePost, stored: ServicePost, user_id: str) -> ServicePost:
        validate_post(entity)
        return await super()._prepare_update(entity, stored, user_id)

    async def _after_create(self, entity: ServicePost) -> None:
        if self._tags is not None and entity.tags:
            await self._best_effort(
                self._tags.record_tags(entity.tags, "post"),
                f"tag analytics for post {entity.id}",
            )

    async def create_post_with_images(self, post: ServicePost, images: Iterable[bytes]) -> str:
        """Upload images to "post_images/{owner}/..." then create the post.

        Returns:
            The new post id
        """
        user_id = self._require_user()
        validate_post(post)
        urls = await self._upload_media(images, "post_images", user_id)
        return await self.create(dataclasses.replace(post, image_urls=[*post.image_urls, *urls]))

    async def fetch_by_category(
        self,
        category: ServiceCategory,
        limit: int | None = None,
        cursor: DocumentSnapshot | None = None,
    ) -> Page[ServicePost]:
        query = self._base_query().where("category", FilterOp.EQ, category.value)
        return await self._run_page(
            query.order(self.order_field, descending=True),
            limit or self._settings.default_page_size,
            cursor,
        )

    async def fetch_offers(self, limit: int | None = None) -> list[ServicePost]:
        return await self._fetch_kind(is_request=False, limit=limit)

    async def fetch_requests(self, limit: int | None = None) -> list[ServicePost]:
        return await self._fetch_kind(is_request=True, limit=limit)

    async def _fetch_kind(self, is_request: bool, limit: int | None) -> list[ServicePost]:
        query = (
            self._base_query()
            .where("is_request", FilterOp.EQ, is_request)
            .order(self.order_field, descending=True)
            .take(limit or self._settings.default_page_size)
        )
        return await self._query_entities(query)

    async def fetch_user_posts(self, user_id: str, limit: int | None = None) -> list[ServicePost]:
        query = (
            self._base_query()
            .where("user_id", FilterOp.EQ, user_id)
            .order(self.order_field, descending=True)
            .take(limit or self._settings.default_page_size)
        )
        return await self._query_entities(query)
