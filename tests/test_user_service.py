"""Tests for profiles, the follow graph and the rating aggregate."""

import dataclasses

import pytest

from hustle_data.cache_keys import CacheKeys
from hustle_data.entities import Review, ServicePost, User
from hustle_data.errors import NotFoundError, UnauthorizedError, ValidationFailedError
from hustle_data.services.base import ACTIVITIES, REVIEWS
from hustle_data.services.mapping import to_document


async def test_create_registers_the_callers_profile(container, clock):
    user_id = await container.users.create(User(name="Alice", email="alice@example.com"))

    user = await container.users.get_current_user()
    assert user_id == "alice"
    assert user.name == "Alice"
    assert user.created_at == clock.now()


async def test_duplicate_profile_is_rejected(container):
    await container.users.create(User(name="Alice"))
    with pytest.raises(ValidationFailedError):
        await container.users.create(User(name="Alice again"))


async def test_profile_name_is_validated(container):
    with pytest.raises(ValidationFailedError):
        await container.users.create(User(name="A"))


async def test_only_the_owner_updates_a_profile(container, add_user, identity):
    bob = await add_user("bob")
    with pytest.raises(UnauthorizedError):
        await container.users.update(dataclasses.replace(bob, bio="not mine"))


async def test_update_keeps_rating_fields(container, add_user):
    alice = await add_user("alice", rating=4.5, review_count=2)
    await container.users.update(dataclasses.replace(alice, rating=5.0, review_count=99, bio="Handy"))

    stored = await container.users.fetch_by_id("alice")
    assert (stored.rating, stored.review_count, stored.bio) == (4.5, 2, "Handy")


async def test_follow_updates_both_users_and_logs_activity(container, add_user, documents):
    await add_user("alice")
    await add_user("bob")
    await container.users.fetch_by_id("bob")

    await container.users.follow_user("bob")

    alice = await container.users.fetch_by_id("alice")
    bob = await container.users.fetch_by_id("bob")
    assert alice.following == ["bob"]
    assert bob.followers == ["alice"]
    assert documents.document_count(ACTIVITIES) == 1

    await container.users.unfollow_user("bob")
    assert (await container.users.fetch_by_id("bob")).followers == []


async def test_follow_self_is_rejected(container, add_user):
    await add_user("alice")
    with pytest.raises(ValidationFailedError):
        await container.users.follow_user("alice")


async def test_follow_unknown_user_is_not_found(container, add_user):
    await add_user("alice")
    with pytest.raises(NotFoundError):
        await container.users.follow_user("ghost")


async def test_fetch_followers_uses_chunked_in_queries(container, add_user, documents):
    follower_ids = [f"f{index:02d}" for index in range(12)]
    await add_user("alice", followers=follower_ids)
    for follower_id in follower_ids:
        await add_user(follower_id)
    documents.operation_counts.clear()

    followers = await container.users.fetch_followers("alice")

    assert [user.id for user in followers] == follower_ids
    assert documents.operation_counts["query"] == 2


async def test_deleted_users_are_left_out_of_follow_lists(container, add_user):
    await add_user("alice", following=["bob", "carol"])
    await add_user("bob")
    await add_user("carol", is_deleted=True)

    following = await container.users.fetch_following("alice")

    assert [user.id for user in following] == ["bob"]


async def test_search_and_providers(container, add_user):
    await add_user("alice", "Alice", bio="Licensed electrician", is_service_provider=True, rating=4.8)
    await add_user("bob", "Bob", location="Springfield", is_service_provider=True, rating=4.1)
    await add_user("carol", "Carol")

    assert [u.id for u in await container.users.search_users("electric")] == ["alice"]
    assert [u.id for u in await container.users.search_users("springfield")] == ["bob"]
    assert [u.id for u in await container.users.fetch_service_providers()] == ["alice", "bob"]


async def test_update_user_rating_rescans_reviews(container, add_user, documents):
    await add_user("bob")
    for index, rating in enumerate([5, 3]):
        review = Review(reviewer_id=f"r{index}", reviewed_user_id="bob", rating=rating, text="Did a good job")
        await documents.set(REVIEWS, f"rev{index}", to_document(review))

    stats = await container.users.update_user_rating("bob")

    bob = await container.users.fetch_by_id("bob")
    assert stats.average == 4.0
    assert (bob.rating, bob.review_count) == (4.0, 2)
    assert bob.rating_breakdown["5"] == 1


async def test_update_user_rating_with_no_reviews_resets_to_zero(container, add_user):
    await add_user("bob", rating=4.0, review_count=3)
    await container.users.update_user_rating("bob")
    bob = await container.users.fetch_by_id("bob")
    assert (bob.rating, bob.review_count) == (0.0, 0)


async def test_profile_image_fans_out_and_clears_cache(container, add_user, documents, cache):
    await add_user("alice")
    post_id = await container.posts.create(
        ServicePost(user_id="", title="Lawn care", description="Mowing and edging")
    )
    await container.posts.fetch_by_id(post_id)

    url = await container.users.update_profile_image(b"jpeg-bytes")

    assert url.startswith("https://media.test/profile_images/alice/")
    assert (await documents.get("users", "alice")).get("profile_image_url") == url
    assert (await documents.get("posts", post_id)).get("user_profile_image") == url
    assert CacheKeys.post(post_id) not in cache.keys()


async def test_update_last_active(container, add_user, clock):
    await add_user("alice")
    clock.advance(hours=1)
    await container.users.update_last_active()
    assert (await container.users.fetch_by_id("alice")).last_active == clock.now()
