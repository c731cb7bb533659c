"""Tests for conversations and messages."""

import dataclasses

import pytest

from hustle_data.cache_keys import CacheKeys
from hustle_data.entities import MessageContextType
from hustle_data.errors import NotFoundError, UnauthorizedError, ValidationFailedError
from hustle_data.services.base import CONVERSATIONS, MESSAGES, NOTIFICATIONS


@pytest.fixture
async def messages(container, add_user):
    await add_user("alice", "Alice", profile_image_url="https://img/alice.jpg")
    await add_user("bob", "Bob")
    await add_user("carol", "Carol")
    return container.messages


@pytest.fixture
async def conversation_id(messages):
    return await messages.find_or_create_conversation("bob")


async def test_conversation_is_created_once(messages, conversation_id, documents):
    assert await messages.find_or_create_conversation("bob") == conversation_id
    assert documents.document_count(CONVERSATIONS) == 1

    conversation = await messages.fetch_conversation(conversation_id)
    assert conversation.participant_ids == ["alice", "bob"]
    assert conversation.participant_names == {"alice": "Alice", "bob": "Bob"}
    assert conversation.participant_images == {"alice": "https://img/alice.jpg"}


async def test_conversation_with_self_or_unknown_user(messages):
    with pytest.raises(ValidationFailedError):
        await messages.find_or_create_conversation("alice")
    with pytest.raises(NotFoundError):
        await messages.find_or_create_conversation("ghost")


async def test_send_updates_conversation_in_the_same_write(messages, conversation_id, documents):
    documents.operation_counts.clear()

    await messages.send_message(conversation_id, "  Are you free Saturday?  ")

    assert documents.operation_counts["commit"] == 1
    conversation = await messages.fetch_conversation(conversation_id)
    assert conversation.last_message == "Are you free Saturday?"
    assert conversation.last_message_sender_id == "alice"
    assert conversation.unread_count("bob") == 1
    assert conversation.unread_count("alice") == 0
    assert documents.document_count(NOTIFICATIONS) == 1


async def test_message_context(messages, conversation_id):
    message_id = await messages.send_message(
        conversation_id,
        "About your lawn post",
        context_type=MessageContextType.POST,
        context_id="p1",
        context_title="Lawn care",
    )

    message = await messages.fetch_by_id(message_id)
    assert message.context_type is MessageContextType.POST
    assert message.sender_name == "Alice"
    assert message.is_delivered is True


async def test_outsider_cannot_read_or_send(messages, conversation_id, identity):
    identity.sign_in("carol")
    with pytest.raises(UnauthorizedError):
        await messages.fetch_conversation(conversation_id)
    with pytest.raises(UnauthorizedError):
        await messages.send_message(conversation_id, "Hi both")


async def test_cached_conversation_is_still_private(messages, conversation_id, identity, cache):
    await messages.fetch_conversation(conversation_id)
    assert CacheKeys.conversation(conversation_id) in cache.keys()

    identity.sign_in("carol")
    with pytest.raises(UnauthorizedError):
        await messages.fetch_conversation(conversation_id)


async def test_outsider_cannot_read_a_cached_message(messages, conversation_id, identity):
    message_id = await messages.send_message(conversation_id, "Gate code is 4821")
    assert (await messages.fetch_by_id(message_id)).text == "Gate code is 4821"

    identity.sign_in("carol")
    with pytest.raises(UnauthorizedError):
        await messages.fetch_by_id(message_id)


async def test_send_to_missing_conversation(messages):
    with pytest.raises(NotFoundError):
        await messages.send_message("nope", "Hello")


async def test_blocked_sender_is_unauthorized(messages, conversation_id, identity, documents):
    identity.sign_in("bob")
    await messages.block_user(conversation_id, "alice")

    identity.sign_in("alice")
    with pytest.raises(UnauthorizedError):
        await messages.send_message(conversation_id, "Please reply")
    assert documents.document_count(MESSAGES) == 0

    identity.sign_in("bob")
    await messages.unblock_user(conversation_id, "alice")
    identity.sign_in("alice")
    await messages.send_message(conversation_id, "Thanks for unblocking")


async def test_cannot_block_self(messages, conversation_id):
    with pytest.raises(ValidationFailedError):
        await messages.block_user(conversation_id, "alice")


async def test_mark_as_read_only_touches_incoming(messages, conversation_id, identity, clock):
    await messages.send_message(conversation_id, "First")
    clock.advance(1)
    await messages.send_message(conversation_id, "Second")
    identity.sign_in("bob")
    clock.advance(1)
    await messages.send_message(conversation_id, "Reply")

    assert await messages.mark_messages_as_read(conversation_id) == 2

    conversation = await messages.fetch_conversation(conversation_id)
    assert conversation.unread_count("bob") == 0
    assert conversation.unread_count("alice") == 1
    page = await messages.fetch_conversation_messages(conversation_id)
    assert [(m.text, m.is_read) for m in page] == [("Reply", False), ("Second", True), ("First", True)]


async def test_conversation_list_is_refreshed_by_new_messages(messages, conversation_id, identity, clock):
    clock.advance(1)
    identity.sign_in("carol")
    other_id = await messages.find_or_create_conversation("alice")
    identity.sign_in("alice")

    first = await messages.fetch_conversations()
    assert [c.id for c in first] == [other_id, conversation_id]

    clock.advance(1)
    await messages.send_message(conversation_id, "Bumping this one")

    assert [c.id for c in await messages.fetch_conversations()] == [conversation_id, other_id]


async def test_edit_message(messages, conversation_id, identity):
    message_id = await messages.send_message(conversation_id, "See you at 5")
    message = await messages.fetch_by_id(message_id)

    await messages.update(dataclasses.replace(message, text="See you at 6"))
    edited = await messages.fetch_by_id(message_id)
    assert (edited.text, edited.is_edited) == ("See you at 6", True)

    identity.sign_in("bob")
    with pytest.raises(UnauthorizedError):
        await messages.update(dataclasses.replace(edited, text="Bob was here"))


async def test_delete_conversation_removes_messages(messages, conversation_id, documents):
    await messages.send_message(conversation_id, "One")
    await messages.send_message(conversation_id, "Two")

    assert await messages.delete_conversation(conversation_id) == 2
    assert documents.document_count(MESSAGES) == 0
    assert documents.document_count(CONVERSATIONS) == 0
    with pytest.raises(NotFoundError):
        await messages.fetch_conversation(conversation_id)


async def test_conversation_listeners(messages, conversation_id, documents):
    received = []
    messages.listen_to_conversation(conversation_id, received.append)
    messages.listen_to_conversations(lambda conversations: None)
    assert documents.active_listener_count == 2

    await messages.send_message(conversation_id, "Live message")
    assert [m.text for m in received[-1]] == ["Live message"]

    assert messages.remove_all_listeners() == 2
    assert documents.active_listener_count == 0
