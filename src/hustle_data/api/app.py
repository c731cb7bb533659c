from typing import Any

from fastapi import FastAPI, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware

from hustle_data.api.dependencies import (
    CacheHandlerDep,
    PostHandlerDep,
    ReviewHandlerDep,
    UserHandlerDep,
    lifespan,
)
from hustle_data.config import settings
from hustle_data.dto import (
    CacheStatsResponse,
    ClearCacheResponse,
    CreatedResponse,
    CreatePostRequest,
    CreateReviewRequest,
    HealthCheckResponse,
    PostPageResponse,
    PostResponse,
    ReviewPageResponse,
    ReviewStatsResponse,
    UpdatePostRequest,
    UserResponse,
)

# Header carrying the caller's uid; authentication happens upstream
USER_ID_HEADER = "X-User-Id"

app = FastAPI(
    title="Hustle Data API",
    description="Cached repository layer for a local services marketplace",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,  # type: ignore[arg-type]
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def bind_caller(request: Request, call_next):
    """Expose the X-User-Id header to the services as the current user."""
    identity = getattr(request.app.state, "identity", None)
    if identity is None:
        return await call_next(request)
    token = identity.bind(request.headers.get(USER_ID_HEADER) or None)
    try:
        return await call_next(request)
    finally:
        identity.reset(token)


@app.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint with API information."""
    return {
        "name": "Hustle Data API",
        "version": "0.1.0",
        "description": "Cached repository layer for a local services marketplace",
        "endpoints": {
            "posts": "/posts",
            "users": "/users/{id}",
            "reviews": "/users/{id}/reviews",
            "cache": "/cache/stats",
            "health": "/health",
            "docs": "/docs",
        },
    }


@app.get("/health", response_model=HealthCheckResponse)
async def health(handler: CacheHandlerDep) -> HealthCheckResponse:
    """Health check endpoint."""
    return await handler.health_check()


# -----------------------------------------------------------------------------
# Posts
# -----------------------------------------------------------------------------


@app.get("/posts", response_model=PostPageResponse)
async def list_posts(
    handler: PostHandlerDep,
    limit: int | None = Query(None, ge=1, le=100),
    after: str | None = Query(None, description="Id of the last post of the previous page"),
) -> PostPageResponse:
    """List active posts, newest-updated first."""
    return await handler.list_posts(limit=limit, after=after)


@app.get("/posts/search", response_model=list[PostResponse])
async def search_posts(
    handler: PostHandlerDep,
    q: str = Query(..., min_length=1),
    limit: int | None = Query(None, ge=1, le=100),
) -> list[PostResponse]:
    """Case-insensitive search over title, description and tags."""
    return await handler.search_posts(q, limit)


@app.get("/posts/{post_id}", response_model=PostResponse)
async def get_post(post_id: str, handler: PostHandlerDep) -> PostResponse:
    return await handler.get_post(post_id)


@app.post("/posts", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_post(request: CreatePostRequest, handler: PostHandlerDep) -> CreatedResponse:
    """Create a post owned by the caller."""
    return await handler.create_post(request)


@app.put("/posts/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: str,
    request: UpdatePostRequest,
    handler: PostHandlerDep,
) -> PostResponse:
    """Replace the editable fields of a post the caller owns."""
    return await handler.update_post(post_id, request)


@app.delete("/posts/{post_id}")
async def delete_post(post_id: str, handler: PostHandlerDep) -> dict:
    return await handler.delete_post(post_id)


# -----------------------------------------------------------------------------
# Users and reviews
# -----------------------------------------------------------------------------


@app.get("/users/{user_id}", response_model=UserResponse)
async def get_user(user_id: str, handler: UserHandlerDep) -> UserResponse:
    return await handler.get_user(user_id)


@app.get("/users/{user_id}/reviews", response_model=ReviewPageResponse)
async def list_user_reviews(
    user_id: str,
    handler: ReviewHandlerDep,
    limit: int | None = Query(None, ge=1, le=100),
    after: str | None = Query(None, description="Id of the last review of the previous page"),
) -> ReviewPageResponse:
    """Reviews about a user, newest first."""
    return await handler.list_user_reviews(user_id, limit=limit, after=after)


@app.get("/users/{user_id}/reviews/stats", response_model=ReviewStatsResponse)
async def get_review_stats(user_id: str, handler: ReviewHandlerDep) -> ReviewStatsResponse:
    return await handler.get_stats(user_id)


@app.post(
    "/users/{user_id}/reviews",
    response_model=CreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_review(
    user_id: str,
    request: CreateReviewRequest,
    handler: ReviewHandlerDep,
) -> CreatedResponse:
    """Review a user as the caller."""
    return await handler.create_review(user_id, request)


@app.delete("/reviews/{review_id}")
async def delete_review(review_id: str, handler: ReviewHandlerDep) -> dict:
    return await handler.delete_review(review_id)


# -----------------------------------------------------------------------------
# Cache
# -----------------------------------------------------------------------------


@app.get("/cache/stats", response_model=CacheStatsResponse)
async def get_cache_stats(handler: CacheHandlerDep) -> CacheStatsResponse:
    """Get cache statistics."""
    return await handler.get_stats()


@app.delete("/cache", response_model=ClearCacheResponse)
async def clear_cache(handler: CacheHandlerDep) -> ClearCacheResponse:
    """Clear all entries from the cache."""
    return await handler.clear_cache()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "hustle_data.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
