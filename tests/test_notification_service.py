"""Tests for notification fan-out and the inbox."""

from datetime import timedelta

import pytest

from hustle_data.entities import NotificationSettings, NotificationType, Review
from hustle_data.errors import UnauthorizedError
from hustle_data.services.base import NOTIFICATIONS


@pytest.fixture
async def notifications(container, add_user):
    await add_user("alice", "Alice", fcm_token="alice-device")
    await add_user("bob", "Bob", notification_settings=NotificationSettings(new_reviews=False))
    return container.notifications


def review_by(reviewer_id, reviewed_user_id, review_id="rev1") -> Review:
    return Review(
        id=review_id,
        reviewer_id=reviewer_id,
        reviewed_user_id=reviewed_user_id,
        reviewer_name=reviewer_id.title(),
        rating=4,
        text="Solid work, fair price",
    )


async def test_notify_stores_and_pushes(notifications, documents, push):
    notification_id = await notifications.notify(
        "alice", NotificationType.NEW_MESSAGE, "Bob", "Hi there", from_user_id="bob"
    )

    snapshot = await documents.get(NOTIFICATIONS, notification_id)
    assert snapshot.get("from_user_name") == "Bob"
    assert snapshot.get("is_read") is False
    assert push.sent == [
        ("alice-device", "Bob", "Hi there", {"type": "new_message", "notification_id": notification_id})
    ]


async def test_no_notification_to_self(notifications, documents):
    assert await notifications.notify("alice", NotificationType.REEL_LIKE, "t", "b", "alice") is None
    assert documents.document_count(NOTIFICATIONS) == 0


async def test_recipient_opt_out_is_respected(notifications, documents):
    assert await notifications.create_review_notification(review_by("alice", "bob")) is None
    assert documents.document_count(NOTIFICATIONS) == 0


async def test_unknown_recipient_is_skipped(notifications):
    assert await notifications.notify("ghost", NotificationType.NEW_MESSAGE, "t", "b", "alice") is None


async def test_reply_notification_goes_to_the_reviewer(notifications, documents):
    notification_id = await notifications.create_review_notification(
        review_by("alice", "bob"), NotificationType.REVIEW_REPLY
    )

    snapshot = await documents.get(NOTIFICATIONS, notification_id)
    assert snapshot.get("user_id") == "alice"
    assert snapshot.get("data") == {"type": "review_reply", "review_id": "rev1", "user_id": "bob"}


async def test_push_failure_keeps_the_notification(notifications, documents, push):
    async def broken_send(*args):
        raise RuntimeError("push gateway down")

    push.send = broken_send

    notification_id = await notifications.notify("alice", NotificationType.NEW_MESSAGE, "t", "b", "bob")

    assert notification_id is not None
    assert documents.document_count(NOTIFICATIONS) == 1


async def test_store_failure_is_swallowed(notifications, documents):
    documents.fail_next("get", "users")
    assert await notifications.notify("alice", NotificationType.NEW_MESSAGE, "t", "b", "bob") is None


async def test_inbox_read_state(notifications, clock):
    first = await notifications.notify("alice", NotificationType.NEW_MESSAGE, "t", "one", "bob")
    clock.advance(1)
    await notifications.notify("alice", NotificationType.NEW_MESSAGE, "t", "two", "bob")

    inbox = await notifications.fetch_notifications()
    assert [n.body for n in inbox] == ["two", "one"]
    assert await notifications.get_unread_count() == 2

    await notifications.mark_as_read(first)
    assert await notifications.get_unread_count() == 1
    assert [n.is_read for n in await notifications.fetch_notifications()] == [False, True]

    assert await notifications.mark_all_as_read() == 1
    assert await notifications.get_unread_count() == 0


async def test_new_notification_refreshes_cached_inbox(notifications):
    assert await notifications.fetch_notifications() == []
    await notifications.notify("alice", NotificationType.NEW_MESSAGE, "t", "hello", "bob")
    assert len(await notifications.fetch_notifications()) == 1


async def test_cannot_read_someone_elses_notification(notifications, identity):
    bobs = await notifications.notify("bob", NotificationType.NEW_MESSAGE, "t", "b", "alice")
    with pytest.raises(UnauthorizedError):
        await notifications.mark_as_read(bobs)
    with pytest.raises(UnauthorizedError):
        await notifications.delete_notification(bobs)


async def test_delete_old_notifications(notifications, clock, settings):
    await notifications.notify("alice", NotificationType.NEW_MESSAGE, "t", "old", "bob")
    clock.advance(timedelta(days=settings.notification_retention_days + 1).total_seconds())
    await notifications.notify("alice", NotificationType.NEW_MESSAGE, "t", "recent", "bob")

    assert await notifications.delete_old_notifications() == 1
    assert [n.body for n in await notifications.fetch_notifications()] == ["recent"]


async def test_unread_count_is_zero_when_store_fails(notifications, documents):
    await notifications.notify("alice", NotificationType.NEW_MESSAGE, "t", "b", "bob")
    documents.fail_next("count", NOTIFICATIONS)
    assert await notifications.get_unread_count() == 0


async def test_inbox_listener(notifications, documents):
    received = []
    notifications.listen_to_notifications(received.append)

    await notifications.notify("alice", NotificationType.NEW_MESSAGE, "t", "live", "bob")

    assert [n.body for n in received[-1]] == ["live"]
    assert notifications.stop_listening_to_notifications() is True
    assert documents.active_listener_count == 0
