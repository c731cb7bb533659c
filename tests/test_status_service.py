"""Tests for ephemeral statuses and the per-viewer following feed."""

from datetime import timedelta

import pytest

from hustle_data.cache_keys import CacheKeys
from hustle_data.entities import EntityState, MediaType
from hustle_data.errors import NotFoundError
from hustle_data.services.base import STATUSES


@pytest.fixture
async def statuses(container, add_user):
    await add_user("alice", "Alice", following=["bob", "carol"])
    await add_user("bob", "Bob", profile_image_url="https://img/bob.jpg")
    await add_user("carol", "Carol", following=["bob"])
    return container.statuses


async def post_as(statuses, identity, user_id, caption=None):
    identity.sign_in(user_id)
    status_id = await statuses.create_status(b"image", caption=caption)
    identity.sign_in("alice")
    return status_id


async def test_create_status_sets_expiry_and_author(statuses, identity, clock, settings):
    status_id = await post_as(statuses, identity, "bob", "On a job today")

    status = await statuses.fetch_by_id(status_id)
    assert status.user_name == "Bob"
    assert status.user_profile_image == "https://img/bob.jpg"
    assert status.expires_at == clock.now() + timedelta(hours=settings.status_lifetime_hours)
    assert status.media_url.startswith("https://media.test/statuses/bob/")


async def test_video_status_is_uploaded_as_mp4(statuses, blobs):
    await statuses.create_status(b"video", MediaType.VIDEO)
    assert blobs.paths[0].endswith(".mp4")


async def test_following_feed_is_newest_first(statuses, identity, clock):
    bob_id = await post_as(statuses, identity, "bob")
    clock.advance(60)
    carol_id = await post_as(statuses, identity, "carol")
    await post_as(statuses, identity, "alice")

    feed = await statuses.fetch_statuses_from_following()

    assert [status.id for status in feed] == [carol_id, bob_id]


async def test_status_is_listed_until_its_expiry_instant(statuses, identity, clock, settings):
    status_id = await post_as(statuses, identity, "bob")
    clock.advance(hours=settings.status_lifetime_hours)

    status = await statuses.fetch_by_id(status_id)
    assert status.state_at(clock.now()) is EntityState.ACTIVE
    assert [s.id for s in await statuses.fetch_page()] == [status_id]
    assert [s.id for s in await statuses.fetch_statuses_from_following()] == [status_id]
    assert (await statuses.get_user_status("bob")).id == status_id

    clock.advance(1)
    assert list(await statuses.fetch_page()) == []
    assert await statuses.fetch_statuses_from_following() == []
    assert await statuses.get_user_status("bob") is None


async def test_expired_status_is_hidden_even_when_cached(statuses, identity, clock, documents, settings):
    await post_as(statuses, identity, "bob")
    clock.advance(hours=settings.status_lifetime_hours, seconds=-100)
    assert len(await statuses.fetch_statuses_from_following()) == 1

    clock.advance(200)
    documents.operation_counts.clear()
    feed = await statuses.fetch_statuses_from_following()

    assert feed == []
    assert documents.operation_counts["query"] == 0


async def test_feeds_are_cached_per_viewer(statuses, identity, cache):
    await post_as(statuses, identity, "bob")
    await statuses.fetch_statuses_from_following()
    identity.sign_in("carol")
    await statuses.fetch_statuses_from_following()

    assert CacheKeys.following_statuses("alice") in cache.keys()
    assert CacheKeys.following_statuses("carol") in cache.keys()


async def test_new_status_invalidates_every_feed(statuses, identity):
    assert await statuses.fetch_statuses_from_following() == []

    status_id = await post_as(statuses, identity, "carol")

    assert [s.id for s in await statuses.fetch_statuses_from_following()] == [status_id]


async def test_feed_for_explicit_and_empty_author_lists(statuses, identity, documents):
    bob_id = await post_as(statuses, identity, "bob")
    await post_as(statuses, identity, "carol")

    assert [s.id for s in await statuses.fetch_statuses_from_following(["bob", "bob"])] == [bob_id]
    documents.operation_counts.clear()
    assert await statuses.fetch_statuses_from_following([]) == []
    assert documents.operation_counts["query"] == 0


async def test_feed_for_unknown_viewer(statuses, identity):
    identity.sign_in("ghost")
    with pytest.raises(NotFoundError):
        await statuses.fetch_statuses_from_following()


async def test_user_status_and_page_skip_expired(statuses, identity, clock, settings):
    old_id = await post_as(statuses, identity, "bob")
    clock.advance(hours=settings.status_lifetime_hours - 1)
    new_id = await post_as(statuses, identity, "carol")

    assert (await statuses.get_user_status("bob")).id == old_id
    clock.advance(hours=2)

    assert await statuses.get_user_status("bob") is None
    assert [status.id for status in await statuses.fetch_page()] == [new_id]


async def test_mark_as_viewed_is_idempotent(statuses, identity, documents):
    status_id = await post_as(statuses, identity, "bob")

    await statuses.mark_as_viewed(status_id)
    await statuses.mark_as_viewed(status_id)

    assert (await documents.get(STATUSES, status_id)).get("viewed_by") == ["alice"]


async def test_deleted_status_is_inactive(statuses, identity, clock):
    identity.sign_in("bob")
    status_id = await statuses.create_status(b"image")
    await statuses.delete(status_id)

    status = await statuses.fetch_by_id(status_id)
    assert status.state_at(clock.now()) is EntityState.INACTIVE
    identity.sign_in("alice")
    assert await statuses.fetch_statuses_from_following() == []


async def test_cleanup_deactivates_expired(statuses, identity, clock, documents):
    expired_id = await post_as(statuses, identity, "bob")
    clock.advance(hours=25)
    live_id = await post_as(statuses, identity, "carol")

    assert await statuses.cleanup_expired_statuses() == 1

    assert (await documents.get(STATUSES, expired_id)).get("is_active") is False
    assert (await documents.get(STATUSES, live_id)).get("is_active") is True
    assert await statuses.cleanup_expired_statuses() == 0
