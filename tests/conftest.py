"""Shared fixtures: a fake clock and an in-process service container."""

import dataclasses
from datetime import datetime, timedelta, timezone

import pytest

from hustle_data.config import Settings
from hustle_data.entities import User
from hustle_data.repositories import (
    LoggingPushDispatcher,
    MemoryBlobRepository,
    MemoryCacheRepository,
    MemoryDocumentRepository,
    StaticIdentityProvider,
)
from hustle_data.services import ServiceContainer
from hustle_data.services.base import USERS
from hustle_data.services.mapping import to_document

START = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Drives both the cache's monotonic clock and the services' UTC clock."""

    def __init__(self, start: datetime = START) -> None:
        self._now = start
        self._seconds = 1000.0

    def now(self) -> datetime:
        return self._now

    def monotonic(self) -> float:
        return self._seconds

    def advance(self, seconds: float = 0, **kwargs) -> None:
        delta = timedelta(seconds=seconds, **kwargs)
        self._now += delta
        self._seconds += delta.total_seconds()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return dataclasses.replace(
        Settings(),
        post_cache_max_age=300,
        user_cache_max_age=600,
        review_cache_max_age=300,
        status_cache_max_age=300,
        default_page_size=20,
        review_max_per_pair=0,
        status_lifetime_hours=24,
        push_endpoint_url=None,
    )


@pytest.fixture
def identity():
    return StaticIdentityProvider("alice")


@pytest.fixture
def documents():
    return MemoryDocumentRepository()


@pytest.fixture
def cache(clock):
    return MemoryCacheRepository(clock=clock.monotonic)


@pytest.fixture
def blobs():
    return MemoryBlobRepository(base_url="https://media.test")


@pytest.fixture
def push():
    return LoggingPushDispatcher()


@pytest.fixture
def container(documents, cache, identity, blobs, push, settings, clock):
    built = ServiceContainer.create(
        documents=documents,
        cache=cache,
        identity=identity,
        blobs=blobs,
        push=push,
        settings=settings,
        now=clock.now,
    )
    yield built
    built.remove_all_listeners()


@pytest.fixture
def add_user(documents, clock):
    """Write a user profile straight into the document store."""

    async def add(user_id: str, name: str | None = None, **fields) -> User:
        user = User(
            id=user_id,
            name=name or user_id.title(),
            email=f"{user_id}@example.com",
            created_at=clock.now(),
            **fields,
        )
        await documents.set(USERS, user_id, to_document(user))
        return user

    return add
