"""Response DTOs for API endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field

from hustle_data.entities import PostStatus, ServiceCategory


class PostResponse(BaseModel):
    """Response DTO for a single service post."""

    id: str = Field(..., description="Post id")
    user_id: str = Field(..., description="Author id")
    user_name: str = Field("", description="Author name at the time of posting")
    user_profile_image: str | None = Field(None, description="Author image URL")
    title: str
    description: str
    category: ServiceCategory
    price: float | None = None
    location: str | None = None
    image_urls: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    is_request: bool
    status: PostStatus
    is_active: bool = Field(..., description="False once the post is deleted")
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PostPageResponse(BaseModel):
    """Response DTO for one page of posts."""

    items: list[PostResponse] = Field(default_factory=list)
    next_cursor: str | None = Field(
        None,
        description="Pass as `after` to fetch the next page",
    )
    has_more: bool = Field(..., description="Whether the page was full")


class UserResponse(BaseModel):
    """Response DTO for a public user profile."""

    id: str
    name: str
    profile_image_url: str | None = None
    bio: str | None = None
    location: str | None = None
    is_service_provider: bool
    rating: float = Field(..., description="Average star rating", ge=0.0, le=5.0)
    review_count: int = Field(..., ge=0)
    follower_count: int = Field(..., ge=0)
    following_count: int = Field(..., ge=0)
    completed_services: int = Field(0, ge=0)
    is_active: bool = Field(..., description="False once the account is deleted")


class ReviewReplyResponse(BaseModel):
    text: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ReviewResponse(BaseModel):
    """Response DTO for a single review."""

    id: str
    reviewer_id: str
    reviewed_user_id: str
    reviewer_name: str = ""
    reviewer_profile_image: str | None = None
    rating: int = Field(..., ge=1, le=5)
    text: str
    media_urls: list[str] = Field(default_factory=list)
    reply: ReviewReplyResponse | None = None
    helpful_count: int = Field(0, ge=0)
    is_edited: bool = False
    review_number: int = Field(1, ge=1, description="Nth review by this reviewer of this user")
    service_post_id: str | None = None
    created_at: datetime | None = None


class ReviewPageResponse(BaseModel):
    """Response DTO for one page of reviews."""

    items: list[ReviewResponse] = Field(default_factory=list)
    next_cursor: str | None = None
    has_more: bool


class ReviewStatsResponse(BaseModel):
    """Response DTO for a user's rating aggregate."""

    user_id: str
    average: float = Field(..., description="Average rating, 0 when there are no reviews", ge=0.0, le=5.0)
    count: int = Field(..., ge=0)
    breakdown: dict[str, int] = Field(..., description="Review count per star value 1-5")


class CreatedResponse(BaseModel):
    """Response DTO for a successful create."""

    id: str = Field(..., description="Id of the created document")


class CacheStatsResponse(BaseModel):
    """Response DTO for cache statistics."""

    total_entries: int = Field(..., description="Total number of cached entries", ge=0)
    hits: int = Field(..., description="Fresh reads served from the cache", ge=0)
    misses: int = Field(..., description="Reads that found no entry", ge=0)
    hit_rate: float = Field(..., description="hits / (hits + misses)", ge=0.0, le=1.0)
    oldest_entry_age: float | None = Field(
        None,
        description="Age of the oldest entry in seconds",
    )


class ClearCacheResponse(BaseModel):
    """Response DTO for clearing the cache."""

    success: bool = Field(..., description="Whether the operation succeeded")
    deleted_count: int = Field(..., description="Number of entries removed", ge=0)
    message: str = Field(..., description="Human-readable status message")


class HealthCheckResponse(BaseModel):
    """Response DTO for health check."""

    status: str = Field(..., description="Health status: 'healthy' or 'unhealthy'")
    cache_healthy: bool = Field(..., description="Whether the cache store is reachable")
    documents_healthy: bool = Field(..., description="Whether the document store is reachable")
