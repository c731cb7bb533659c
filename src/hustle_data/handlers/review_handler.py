"""HTTP handlers for reviews and rating stats."""

from hustle_data.dto import (
    CreatedResponse,
    CreateReviewRequest,
    ReviewPageResponse,
    ReviewResponse,
    ReviewStatsResponse,
)
from hustle_data.entities import Review
from hustle_data.errors import HustleDataError
from hustle_data.services import ReviewService

from .errors import http_error, not_found


def to_review_response(review: Review) -> ReviewResponse:
    return ReviewResponse.model_validate(review, from_attributes=True)


class ReviewHandler:
    """HTTP handlers for review operations."""

    def __init__(self, review_service: ReviewService) -> None:
        """Initialize the review handler.

        Args:
            review_service: The review service for business logic (required).
        """
        self._reviews = review_service

    async def list_user_reviews(
        self,
        user_id: str,
        limit: int | None = None,
        after: str | None = None,
    ) -> ReviewPageResponse:
        """Handle GET /users/{id}/reviews requests."""
        try:
            cursor = None
            if after:
                cursor = await self._reviews.cursor_for(after)
                if cursor is None:
                    raise not_found(f"review {after}")
            page = await self._reviews.fetch_user_reviews(user_id, limit=limit, cursor=cursor)
        except HustleDataError as e:
            raise http_error(e, "list reviews") from e

        return ReviewPageResponse(
            items=[to_review_response(review) for review in page],
            next_cursor=page.next_cursor.id if page.next_cursor and page.has_more else None,
            has_more=page.has_more,
        )

    async def get_stats(self, user_id: str) -> ReviewStatsResponse:
        """Handle GET /users/{id}/reviews/stats requests.

        A store outage yields a zero aggregate rather than an error.
        """
        stats = await self._reviews.get_review_stats(user_id)
        return ReviewStatsResponse(
            user_id=user_id,
            average=stats.average,
            count=stats.count,
            breakdown=stats.breakdown,
        )

    async def create_review(self, user_id: str, request: CreateReviewRequest) -> CreatedResponse:
        """Handle POST /users/{id}/reviews requests.

        Raises:
            HTTPException: 401 when signed out, 422 for a self-review, a
                field rule or the per-pair limit
        """
        try:
            review_id = await self._reviews.create_review(
                reviewed_user_id=user_id,
                rating=request.rating,
                text=request.text,
                service_post_id=request.service_post_id,
            )
        except HustleDataError as e:
            raise http_error(e, "create review") from e
        return CreatedResponse(id=review_id)

    async def delete_review(self, review_id: str) -> dict:
        """Handle DELETE /reviews/{id} requests (reviewer only, hard delete)."""
        try:
            await self._reviews.delete(review_id)
        except HustleDataError as e:
            raise http_error(e, "delete review") from e
        return {"success": True, "message": f"Review {review_id} deleted"}
