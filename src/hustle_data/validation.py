"""Field rules shared by create and update paths.

Each validator raises ValidationFailedError on the first violated rule.
"""

from hustle_data.entities import Comment, Message, PortfolioCard, Reel, Review, ServicePost, Status, User
from hustle_data.errors import ValidationFailedError

POST_TITLE = (3, 100)
POST_DESCRIPTION = (10, 1000)
POST_PRICE = (0, 100_000)
REVIEW_TEXT = (10, 500)
REVIEW_RATING = (1, 5)
REPLY_TEXT = (1, 500)
COMMENT_TEXT = (1, 500)
MESSAGE_TEXT = (1, 1000)
USER_NAME = (2, 50)
USER_BIO_MAX = 500
REEL_TITLE = (1, 200)
STATUS_CAPTION_MAX = 200
PORTFOLIO_TITLE = (1, 100)


def require_length(field: str, value: str | None, bounds: tuple[int, int]) -> str:
    """Check that the stripped value has a length within `bounds` (inclusive).

    Returns:
        The stripped value
    """
    low, high = bounds
    text = (value or "").strip()
    if len(text) < low:
        if low == 1:
            raise ValidationFailedError(f"{field} is required")
        raise ValidationFailedError(f"{field} must be at least {low} characters")
    if len(text) > high:
        raise ValidationFailedError(f"{field} must be at most {high} characters")
    return text


def require_max_length(field: str, value: str | None, maximum: int) -> None:
    if value is not None and len(value.strip()) > maximum:
        raise ValidationFailedError(f"{field} must be at most {maximum} characters")


def require_range(field: str, value: float | None, bounds: tuple[float, float]) -> None:
    low, high = bounds
    if value is None or not low <= value <= high:
        raise ValidationFailedError(f"{field} must be between {low} and {high}")


def validate_post(post: ServicePost) -> None:
    require_length("title", post.title, POST_TITLE)
    require_length("description", post.description, POST_DESCRIPTION)
    if post.price is not None:
        require_range("price", post.price, POST_PRICE)


def validate_review(review: Review) -> None:
    require_range("rating", review.rating, REVIEW_RATING)
    require_length("review text", review.text, REVIEW_TEXT)


def validate_comment(comment: Comment) -> None:
    require_length("comment", comment.text, COMMENT_TEXT)


def validate_message(message: Message) -> None:
    require_length("message", message.text, MESSAGE_TEXT)


def validate_user(user: User) -> None:
    require_length("name", user.name, USER_NAME)
    require_max_length("bio", user.bio, USER_BIO_MAX)


def validate_reel(reel: Reel) -> None:
    require_length("title", reel.title, REEL_TITLE)
    if not reel.video_url:
        raise ValidationFailedError("video_url is required")


def validate_status(status: Status) -> None:
    require_max_length("caption", status.caption, STATUS_CAPTION_MAX)
    if not status.media_url:
        raise ValidationFailedError("media_url is required")


def validate_portfolio_card(card: PortfolioCard) -> None:
    require_length("title", card.title, PORTFOLIO_TITLE)
