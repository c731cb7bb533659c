"""Review entities and the rating aggregate."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True, kw_only=True)
class ReviewReply:
    """The reviewed user's answer to a review."""

    text: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True, kw_only=True)
class Review:
    """A review written by `reviewer_id` about `reviewed_user_id`.

    Reviews are hard-deleted. `review_number` counts this reviewer's
    reviews of the same user, starting at 1.
    """

    id: str | None = None
    reviewer_id: str
    reviewed_user_id: str
    reviewer_name: str = ""
    reviewer_profile_image: str | None = None
    rating: int
    text: str
    media_urls: list[str] = field(default_factory=list)
    reply: ReviewReply | None = None
    helpful_votes: list[str] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    is_edited: bool = False
    service_post_id: str | None = None
    review_number: int = 1

    @property
    def helpful_count(self) -> int:
        return len(self.helpful_votes)


def empty_breakdown() -> dict[str, int]:
    return {str(stars): 0 for stars in range(1, 6)}


@dataclass(frozen=True)
class ReviewStats:
    """Rating aggregate for one user."""

    average: float = 0.0
    count: int = 0
    breakdown: dict[str, int] = field(default_factory=empty_breakdown)

    @classmethod
    def from_ratings(cls, ratings: list[int]) -> "ReviewStats":
        breakdown = empty_breakdown()
        for rating in ratings:
            breakdown[str(rating)] = breakdown.get(str(rating), 0) + 1
        if not ratings:
            return cls(breakdown=breakdown)
        return cls(
            average=round(sum(ratings) / len(ratings), 2),
            count=len(ratings),
            breakdown=breakdown,
        )
