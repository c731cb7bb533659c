"""Data Transfer Objects for API contracts.

These Pydantic models define the external API contract.
They are used for request/response validation and serialization.

Internal domain logic should use entities from the entities package.
"""

from .requests import CreatePostRequest, CreateReviewRequest, UpdatePostRequest
from .responses import (
    CacheStatsResponse,
    ClearCacheResponse,
    CreatedResponse,
    HealthCheckResponse,
    PostPageResponse,
    PostResponse,
    ReviewPageResponse,
    ReviewReplyResponse,
    ReviewResponse,
    ReviewStatsResponse,
    UserResponse,
)

__all__ = [
    "CreatePostRequest",
    "UpdatePostRequest",
    "CreateReviewRequest",
    "PostResponse",
    "PostPageResponse",
    "UserResponse",
    "ReviewReplyResponse",
    "ReviewResponse",
    "ReviewPageResponse",
    "ReviewStatsResponse",
    "CreatedResponse",
    "CacheStatsResponse",
    "ClearCacheResponse",
    "HealthCheckResponse",
]
