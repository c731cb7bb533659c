"""PushDispatcher implementations.

- LoggingPushDispatcher: records pushes and logs them (default)
- HttpPushDispatcher: posts each push to an HTTP endpoint with httpx
"""

import logging

import httpx

from hustle_data.config import settings
from hustle_data.errors import BackendUnavailableError

logger = logging.getLogger(__name__)


class LoggingPushDispatcher:
    """Logs pushes instead of delivering them.

    Sent pushes are kept in `sent` as (token, title, body, data) tuples.
    """

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str, dict[str, str]]] = []

    async def send(self, token: str, title: str, body: str, data: dict[str, str]) -> None:
        self.sent.append((token, title, body, dict(data)))
        logger.info(f"push to {token[:8]}...: {title}")

    async def close(self) -> None:
        return None


class HttpPushDispatcher:
    """Sends pushes to a legacy-FCM-style HTTP endpoint.

    This class satisfies the PushDispatcher protocol through structural
    typing - no explicit inheritance needed.

    Example:
        ```python
        dispatcher = HttpPushDispatcher.create(
            endpoint_url="https://push.example.com/send",
            server_key="secret",
        )
        await dispatcher.send(token, "New review", "Alex left you 5 stars", {"type": "new_review"})
        await dispatcher.close()
        ```
    """

    def __init__(
        self,
        endpoint_url: str,
        server_key: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            endpoint_url: URL that accepts push payloads via POST.
            server_key: Sent as "Authorization: key=<server_key>" when set.
            timeout: Request timeout in seconds. Defaults to settings.push_timeout.
            client: Preconfigured client (e.g. with a mock transport).
        """
        self._endpoint_url = endpoint_url
        self._server_key = server_key
        self._timeout = timeout or settings.push_timeout
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client.

        Returns:
            The httpx.AsyncClient instance
        """
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                limits=httpx.Limits(max_connections=20, max_keepalive_connections=5),
            )
        return self._client

    @classmethod
    def create(
        cls,
        endpoint_url: str | None = None,
        server_key: str | None = None,
    ) -> "HttpPushDispatcher":
        """Factory method to create HttpPushDispatcher from settings.

        Raises:
            ValueError: If no endpoint URL is given or configured
        """
        url = endpoint_url or settings.push_endpoint_url
        if not url:
            raise ValueError("PUSH_ENDPOINT_URL is not configured")
        return cls(endpoint_url=url, server_key=server_key or settings.push_server_key)

    async def send(self, token: str, title: str, body: str, data: dict[str, str]) -> None:
        """POST one push payload.

        Raises:
            BackendUnavailableError: If the request fails or returns an error status
        """
        headers = {"Content-Type": "application/json"}
        if self._server_key:
            headers["Authorization"] = f"key={self._server_key}"
        payload = {
            "to": token,
            "notification": {"title": title, "body": body, "sound": "default"},
            "data": data,
        }

        try:
            response = await self.client.post(self._endpoint_url, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise BackendUnavailableError(f"Push dispatch failed: {e}") from e

    async def close(self) -> None:
        """Close the async HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
