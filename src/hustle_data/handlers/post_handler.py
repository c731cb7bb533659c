"""HTTP handlers for service posts.

Handlers convert between DTOs (API contracts) and service calls.
They handle HTTP concerns like status codes, validation, and error handling.
"""

from hustle_data.dto import (
    CreatedResponse,
    CreatePostRequest,
    PostPageResponse,
    PostResponse,
    UpdatePostRequest,
)
from hustle_data.entities import ServicePost
from hustle_data.errors import HustleDataError
from hustle_data.services import PostService

from .errors import http_error, not_found


def to_post_response(post: ServicePost) -> PostResponse:
    return PostResponse.model_validate(post, from_attributes=True)


class PostHandler:
    """HTTP handlers for post operations.

    Example:
        ```python
        handler = PostHandler(post_service=container.posts)

        @app.get("/posts/{post_id}", response_model=PostResponse)
        async def get_post(post_id: str):
            return await handler.get_post(post_id)
        ```
    """

    def __init__(self, post_service: PostService) -> None:
        """Initialize the post handler.

        Args:
            post_service: The post service for business logic (required).
        """
        self._posts = post_service

    async def list_posts(self, limit: int | None = None, after: str | None = None) -> PostPageResponse:
        """Handle GET /posts requests.

        Args:
            limit: Page size (defaults to settings)
            after: Id of the last post of the previous page

        Returns:
            PostPageResponse with active posts, newest-updated first
        """
        try:
            cursor = None
            if after:
                cursor = await self._posts.cursor_for(after)
                if cursor is None:
                    raise not_found(f"post {after}")
            page = await self._posts.fetch_page(limit=limit, cursor=cursor)
        except HustleDataError as e:
            raise http_error(e, "list posts") from e

        return PostPageResponse(
            items=[to_post_response(post) for post in page],
            next_cursor=page.next_cursor.id if page.next_cursor and page.has_more else None,
            has_more=page.has_more,
        )

    async def search_posts(self, query: str, limit: int | None = None) -> list[PostResponse]:
        """Handle GET /posts/search requests."""
        try:
            posts = await self._posts.search(query, limit)
        except HustleDataError as e:
            raise http_error(e, "search posts") from e
        return [to_post_response(post) for post in posts]

    async def get_post(self, post_id: str) -> PostResponse:
        """Handle GET /posts/{id} requests.

        Deleted posts are still returned, with `is_active` false.

        Raises:
            HTTPException: 404 if no such post exists
        """
        try:
            post = await self._posts.fetch_by_id(post_id)
        except HustleDataError as e:
            raise http_error(e, "get post") from e
        if post is None:
            raise not_found(f"post {post_id}")
        return to_post_response(post)

    async def create_post(self, request: CreatePostRequest) -> CreatedResponse:
        """Handle POST /posts requests as the calling user."""
        post = ServicePost(
            user_id="",
            title=request.title,
            description=request.description,
            category=request.category,
            price=request.price,
            location=request.location,
            tags=list(request.tags),
            is_request=request.is_request,
        )
        try:
            post_id = await self._posts.create(post)
        except HustleDataError as e:
            raise http_error(e, "create post") from e
        return CreatedResponse(id=post_id)

    async def update_post(self, post_id: str, request: UpdatePostRequest) -> PostResponse:
        """Handle PUT /posts/{id} requests.

        Only the author may update; images and server-managed fields keep
        their stored values.
        """
        try:
            await self._posts.update_fields(
                post_id,
                title=request.title,
                description=request.description,
                category=request.category,
                price=request.price,
                location=request.location,
                tags=list(request.tags),
                is_request=request.is_request,
                status=request.status,
            )
            post = await self._posts.fetch_by_id(post_id)
        except HustleDataError as e:
            raise http_error(e, "update post") from e
        return to_post_response(post)

    async def delete_post(self, post_id: str) -> dict:
        """Handle DELETE /posts/{id} requests (soft delete)."""
        try:
            await self._posts.delete(post_id)
        except HustleDataError as e:
            raise http_error(e, "delete post") from e
        return {"success": True, "message": f"Post {post_id} deleted"}
