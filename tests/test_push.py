"""Tests for the HTTP push dispatcher."""

import json

import httpx
import pytest

from hustle_data.errors import BackendUnavailableError
from hustle_data.repositories import HttpPushDispatcher, push_dispatchers


def dispatcher_with(handler, server_key="secret") -> HttpPushDispatcher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpPushDispatcher("https://push.test/send", server_key=server_key, client=client)


async def test_send_posts_fcm_payload():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"success": 1})

    dispatcher = dispatcher_with(handler)
    await dispatcher.send("device-token", "New Review", "Bob left you a review", {"type": "new_review"})
    await dispatcher.close()

    (request,) = requests
    assert str(request.url) == "https://push.test/send"
    assert request.headers["Authorization"] == "key=secret"
    assert json.loads(request.content) == {
        "to": "device-token",
        "notification": {"title": "New Review", "body": "Bob left you a review", "sound": "default"},
        "data": {"type": "new_review"},
    }


async def test_no_authorization_header_without_key():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers.get("Authorization"))
        return httpx.Response(200)

    dispatcher = dispatcher_with(handler, server_key=None)
    await dispatcher.send("t", "title", "body", {})

    assert seen == [None]


async def test_error_status_raises_backend_unavailable():
    dispatcher = dispatcher_with(lambda request: httpx.Response(500))
    with pytest.raises(BackendUnavailableError):
        await dispatcher.send("t", "title", "body", {})


async def test_transport_error_raises_backend_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    dispatcher = dispatcher_with(handler)
    with pytest.raises(BackendUnavailableError):
        await dispatcher.send("t", "title", "body", {})


def test_create_requires_an_endpoint(monkeypatch, settings):
    monkeypatch.setattr(push_dispatchers, "settings", settings)
    with pytest.raises(ValueError):
        HttpPushDispatcher.create()
