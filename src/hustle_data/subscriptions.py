"""Registry of live query listeners keyed by subscription key.

At most one listener is active per key: subscribing again cancels the
previous handle before installing the new one.
"""

import logging
import threading
from collections.abc import Callable

from hustle_data.protocols import ListenerHandle

logger = logging.getLogger(__name__)


class SubscriptionRegistry:
    """Maps subscription keys to cancellation handles."""

    def __init__(self, name: str = "subscriptions") -> None:
        self._name = name
        self._handles: dict[str, ListenerHandle] = {}
        self._lock = threading.Lock()

    def subscribe(self, key: str, install: Callable[[], ListenerHandle]) -> ListenerHandle:
        """Cancel any listener under `key`, then install a new one.

        Args:
            key: Subscription key (e.g. "comments_reel_r1")
            install: Zero-argument callable registering the listener

        Returns:
            The handle of the newly installed listener
        """
        self.unsubscribe(key)
        handle = install()
        with self._lock:
            previous = self._handles.pop(key, None)
            self._handles[key] = handle
        # A concurrent subscribe raced us between unsubscribe and here
        if previous is not None:
            previous.remove()
        logger.info(f"[{self._name}] listening on {key}")
        return handle

    def unsubscribe(self, key: str) -> bool:
        """Stop the listener under `key`.

        Returns:
            True if a listener was removed, False otherwise
        """
        with self._lock:
            handle = self._handles.pop(key, None)
        if handle is None:
            return False
        handle.remove()
        logger.info(f"[{self._name}] stopped listening on {key}")
        return True

    def unsubscribe_all(self) -> int:
        """Stop every listener. Used on teardown.

        Returns:
            Number of listeners removed
        """
        with self._lock:
            handles = list(self._handles.values())
            self._handles.clear()
        for handle in handles:
            handle.remove()
        if handles:
            logger.info(f"[{self._name}] removed {len(handles)} listeners")
        return len(handles)

    def is_active(self, key: str) -> bool:
        with self._lock:
            return key in self._handles

    @property
    def active_keys(self) -> list[str]:
        with self._lock:
            return sorted(self._handles)

    def __len__(self) -> int:
        with self._lock:
            return len(self._handles)
