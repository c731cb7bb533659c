"""Request DTOs for API endpoints."""

from pydantic import BaseModel, Field

from hustle_data.entities import PostStatus, ServiceCategory


class CreatePostRequest(BaseModel):
    """Request DTO for creating a service post.

    Field rules (title 3-100, description 10-1000, price 0-100000) are
    enforced by the service layer and reported as 422.
    """

    title: str = Field(..., description="Short headline of the offer or request")
    description: str = Field(..., description="Full description of the service")
    category: ServiceCategory = Field(ServiceCategory.OTHER, description="Service category")
    price: float | None = Field(None, description="Asking or offered price")
    location: str | None = Field(None, description="Free-text location")
    tags: list[str] = Field(default_factory=list, description="Search tags")
    is_request: bool = Field(False, description="True for a request, False for an offer")


class UpdatePostRequest(CreatePostRequest):
    """Request DTO for replacing a post's editable fields."""

    status: PostStatus = Field(PostStatus.ACTIVE, description="Lifecycle status of the post")


class CreateReviewRequest(BaseModel):
    """Request DTO for reviewing a user."""

    rating: int = Field(..., description="Star rating", ge=1, le=5)
    text: str = Field(..., description="Review text (10-500 characters)")
    service_post_id: str | None = Field(None, description="Post the review relates to")
