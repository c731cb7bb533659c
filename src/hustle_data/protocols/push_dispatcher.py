"""Push notification dispatch protocol.

Delivery is best-effort and fire-and-forget from the caller's point of view.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class PushDispatcher(Protocol):
    """Protocol for push notification backends."""

    async def send(
        self,
        token: str,
        title: str,
        body: str,
        data: dict[str, str],
    ) -> None:
        """Send one push notification.

        Args:
            token: Device token of the recipient
            title: Notification title
            body: Notification body
            data: Small key-value payload used for deep-linking

        Raises:
            BackendUnavailableError: If the push backend rejects or fails
        """
        ...

    async def close(self) -> None:
        """Release any held connections."""
        ...
