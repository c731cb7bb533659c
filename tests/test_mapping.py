"""Tests for entity mapping, derived entity state and field validation."""

from datetime import datetime, timedelta, timezone

import pytest

from hustle_data.documents import DocumentSnapshot
from hustle_data.entities import (
    EntityState,
    NotificationSettings,
    PortfolioCard,
    Reel,
    Review,
    ReviewReply,
    ReviewStats,
    ServiceCategory,
    ServicePost,
    Status,
    User,
)
from hustle_data.errors import ValidationFailedError
from hustle_data.services.mapping import from_dict, from_snapshot, to_document
from hustle_data.validation import (
    validate_portfolio_card,
    validate_post,
    validate_review,
    validate_status,
    validate_user,
)

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


def test_document_round_trip_keeps_nested_and_enum_fields():
    review = Review(
        id="r1",
        reviewer_id="u1",
        reviewed_user_id="u2",
        rating=4,
        text="Great work, on time",
        reply=ReviewReply(text="Thanks!", created_at=NOW),
        created_at=NOW,
    )
    document = to_document(review)

    assert "id" not in document
    assert document["reply"] == {"text": "Thanks!", "created_at": NOW, "updated_at": None}
    assert from_snapshot(Review, DocumentSnapshot("r1", "reviews", document)) == review


def test_enum_values_are_stored_as_strings():
    post = ServicePost(user_id="u1", title="Deep clean", description="Whole apartment", category=ServiceCategory.CLEANING)
    assert to_document(post)["category"] == "Cleaning"
    assert from_dict(ServicePost, to_document(post)).category is ServiceCategory.CLEANING


def test_from_dict_defaults_missing_optional_fields():
    user = from_dict(User, {"name": "Ana"}, "u1")
    assert user.id == "u1"
    assert user.notification_settings == NotificationSettings()
    assert user.following == []


def test_from_dict_parses_iso_timestamps_and_int_prices():
    post = from_dict(
        ServicePost,
        {"user_id": "u1", "title": "t", "description": "d", "price": 20, "created_at": "2026-03-01T00:00:00+00:00"},
    )
    assert post.price == 20.0
    assert isinstance(post.price, float)
    assert post.created_at == NOW


def test_from_dict_missing_required_field_raises_value_error():
    with pytest.raises(ValueError):
        from_dict(Review, {"reviewer_id": "u1"}, "r1")


def test_status_state_is_derived():
    status = Status(user_id="u1", media_url="m", expires_at=NOW + timedelta(hours=1))

    assert status.state_at(NOW) is EntityState.ACTIVE
    assert status.state_at(NOW + timedelta(hours=1)) is EntityState.ACTIVE
    assert status.state_at(NOW + timedelta(hours=1, seconds=1)) is EntityState.EXPIRED


def test_deleted_status_is_inactive_even_after_expiry():
    status = Status(user_id="u1", media_url="m", expires_at=NOW, is_active=False)
    assert status.state_at(NOW + timedelta(days=2)) is EntityState.INACTIVE


def test_reel_engagement():
    reel = Reel(user_id="u1", title="t", likes=["a", "b"], comments=1, shares=1, views=10)
    assert reel.engagement == 2 * 2 + 3 + 4 + 10


def test_review_stats_from_ratings():
    stats = ReviewStats.from_ratings([5, 4, 4])
    assert stats.average == 4.33
    assert stats.count == 3
    assert stats.breakdown == {"1": 0, "2": 0, "3": 0, "4": 2, "5": 1}


def test_review_stats_empty():
    stats = ReviewStats.from_ratings([])
    assert (stats.average, stats.count) == (0.0, 0)
    assert sum(stats.breakdown.values()) == 0


@pytest.mark.parametrize(
    ("title", "description", "price"),
    [
        ("ab", "long enough description", None),
        ("x" * 101, "long enough description", None),
        ("Lawn care", "too short", None),
        ("Lawn care", "long enough description", -1),
        ("Lawn care", "long enough description", 100_001),
    ],
)
def test_invalid_posts(title, description, price):
    post = ServicePost(user_id="u1", title=title, description=description, price=price)
    with pytest.raises(ValidationFailedError):
        validate_post(post)


def test_post_lengths_are_checked_after_trimming():
    with pytest.raises(ValidationFailedError):
        validate_post(ServicePost(user_id="u1", title="  ab  ", description="long enough description"))
    validate_post(ServicePost(user_id="u1", title="abc", description="0123456789", price=0))


@pytest.mark.parametrize(("rating", "text"), [(0, "Great work overall"), (6, "Great work overall"), (5, "short")])
def test_invalid_reviews(rating, text):
    with pytest.raises(ValidationFailedError):
        validate_review(Review(reviewer_id="a", reviewed_user_id="b", rating=rating, text=text))


def test_user_status_and_portfolio_rules():
    with pytest.raises(ValidationFailedError):
        validate_user(User(name="A"))
    with pytest.raises(ValidationFailedError):
        validate_user(User(name="Ana", bio="x" * 501))
    with pytest.raises(ValidationFailedError):
        validate_status(Status(user_id="u1", media_url="m", caption="x" * 201))
    with pytest.raises(ValidationFailedError):
        validate_status(Status(user_id="u1", media_url=""))
    with pytest.raises(ValidationFailedError):
        validate_portfolio_card(PortfolioCard(user_id="u1", title=" "))
