"""Tests for reviews: limits, rating recounts and best-effort side effects."""

import dataclasses

import pytest

from hustle_data.entities import NotificationType
from hustle_data.errors import UnauthorizedError, ValidationFailedError
from hustle_data.services import ServiceContainer
from hustle_data.services.base import NOTIFICATIONS, REVIEWS


@pytest.fixture
async def reviews(container, add_user):
    await add_user("alice", "Alice")
    await add_user("bob", "Bob", fcm_token="bob-device-token")
    await add_user("carol", "Carol")
    return container.reviews


async def test_create_review_recounts_and_notifies(reviews, container, documents, push):
    review_id = await reviews.create_review("bob", 5, "Fast and friendly work")

    review = await reviews.fetch_by_id(review_id)
    bob = await container.users.fetch_by_id("bob")
    assert review.reviewer_name == "Alice"
    assert review.review_number == 1
    assert (bob.rating, bob.review_count) == (5.0, 1)
    assert documents.document_count(NOTIFICATIONS) == 1
    token, title, _, data = push.sent[0]
    assert (token, title) == ("bob-device-token", "New Review")
    assert data["type"] == NotificationType.NEW_REVIEW.value
    assert data["review_id"] == review_id


async def test_self_review_is_rejected(reviews, documents):
    with pytest.raises(ValidationFailedError):
        await reviews.create_review("alice", 5, "I am the best at this")
    assert documents.document_count(REVIEWS) == 0


async def test_review_rules_are_checked(reviews):
    with pytest.raises(ValidationFailedError):
        await reviews.create_review("bob", 6, "Fast and friendly work")
    with pytest.raises(ValidationFailedError):
        await reviews.create_review("bob", 4, "Meh")


async def test_review_number_counts_per_pair(reviews, clock):
    await reviews.create_review("bob", 4, "Good first job done")
    clock.advance(1)
    second_id = await reviews.create_review("bob", 5, "Even better the second time")

    assert (await reviews.fetch_by_id(second_id)).review_number == 2


async def test_per_pair_limit(documents, cache, identity, blobs, push, settings, clock, add_user):
    await add_user("alice")
    await add_user("bob")
    limited = ServiceContainer.create(
        documents=documents,
        cache=cache,
        identity=identity,
        blobs=blobs,
        push=push,
        settings=dataclasses.replace(settings, review_max_per_pair=1),
        now=clock.now,
    )

    await limited.reviews.create_review("bob", 4, "Good first job done")
    with pytest.raises(ValidationFailedError):
        await limited.reviews.create_review("bob", 5, "Trying to review again")


async def test_failed_notification_does_not_fail_the_review(reviews, documents):
    documents.fail_next("add", NOTIFICATIONS)

    review_id = await reviews.create_review("bob", 5, "Fast and friendly work")

    assert await reviews.fetch_by_id(review_id) is not None
    assert documents.document_count(NOTIFICATIONS) == 0


async def test_failed_recount_does_not_fail_the_review(reviews, container, documents):
    documents.fail_next("query", REVIEWS)

    review_id = await reviews.create_review("bob", 5, "Fast and friendly work")

    assert await reviews.fetch_by_id(review_id) is not None
    assert (await container.users.fetch_by_id("bob")).review_count == 0


async def test_delete_recounts(reviews, container):
    review_id = await reviews.create_review("bob", 2, "Showed up very late")
    await reviews.delete(review_id)

    assert await reviews.fetch_by_id(review_id) is None
    assert (await container.users.fetch_by_id("bob")).review_count == 0


async def test_edit_marks_review_edited(reviews):
    review_id = await reviews.create_review("bob", 3, "Okay job overall")
    stored = await reviews.fetch_by_id(review_id)

    await reviews.update(dataclasses.replace(stored, rating=4, text="  Better than I thought  "))

    edited = await reviews.fetch_by_id(review_id)
    assert edited.is_edited is True
    assert edited.text == "Better than I thought"


async def test_only_the_reviewed_user_can_reply(reviews, identity, documents):
    review_id = await reviews.create_review("bob", 5, "Fast and friendly work")

    with pytest.raises(UnauthorizedError):
        await reviews.reply_to_review(review_id, "Thanks")

    identity.sign_in("bob")
    await reviews.fetch_by_id(review_id)
    await reviews.reply_to_review(review_id, "Thanks for the kind words!")

    review = await reviews.fetch_by_id(review_id)
    assert review.reply.text == "Thanks for the kind words!"
    assert documents.document_count(NOTIFICATIONS) == 2


async def test_helpful_vote_toggles(reviews, identity):
    review_id = await reviews.create_review("bob", 5, "Fast and friendly work")

    with pytest.raises(ValidationFailedError):
        await reviews.toggle_helpful_vote(review_id)

    identity.sign_in("carol")
    assert await reviews.toggle_helpful_vote(review_id) is True
    assert (await reviews.fetch_by_id(review_id)).helpful_count == 1
    assert await reviews.toggle_helpful_vote(review_id) is False
    assert (await reviews.fetch_by_id(review_id)).helpful_count == 0


async def test_user_reviews_page_is_invalidated_by_new_review(reviews, identity, clock):
    await reviews.create_review("bob", 5, "Fast and friendly work")
    assert len(await reviews.fetch_user_reviews("bob")) == 1

    identity.sign_in("carol")
    clock.advance(1)
    await reviews.create_review("bob", 3, "Decent but a little slow")

    assert [r.reviewer_id for r in await reviews.fetch_user_reviews("bob")] == ["carol", "alice"]


async def test_review_stats(reviews, identity, documents):
    await reviews.create_review("bob", 5, "Fast and friendly work")
    identity.sign_in("carol")
    await reviews.create_review("bob", 4, "Good job, would rehire")

    stats = await reviews.get_review_stats("bob")
    assert (stats.average, stats.count) == (4.5, 2)

    documents.fail_next("query", REVIEWS)
    assert (await reviews.get_review_stats("bob")).count == 0


async def test_review_listener_is_replaced_not_stacked(reviews, documents):
    received = []
    reviews.listen_to_user_reviews("bob", received.append)
    reviews.listen_to_user_reviews("bob", received.append)

    assert documents.active_listener_count == 1

    await reviews.create_review("bob", 5, "Fast and friendly work")
    assert len(received[-1]) == 1

    assert reviews.stop_listening_to_user_reviews("bob") is True
    assert documents.active_listener_count == 0
