"""In-memory implementation of BlobStorage."""

import logging
import threading

from hustle_data.config import settings
from hustle_data.errors import BackendUnavailableError

logger = logging.getLogger(__name__)


class MemoryBlobRepository:
    """Keeps uploaded objects in a dict and returns `{base_url}/{path}` URLs.

    This class satisfies the BlobStorage protocol through structural
    typing - no explicit inheritance needed.
    """

    def __init__(self, base_url: str | None = None) -> None:
        """Initialize the blob store.

        Args:
            base_url: URL prefix for stored objects. Defaults to settings.media_base_url.
        """
        self._base_url = (base_url or settings.media_base_url).rstrip("/")
        self._objects: dict[str, tuple[bytes, str]] = {}
        self._lock = threading.Lock()
        self.available = True

    @classmethod
    def create(cls, base_url: str | None = None) -> "MemoryBlobRepository":
        return cls(base_url=base_url)

    async def upload(self, data: bytes, path: str, content_type: str = "image/jpeg") -> str:
        """Store `data` at `path`.

        Returns:
            The object URL

        Raises:
            BackendUnavailableError: If the store is marked unavailable
        """
        if not self.available:
            raise BackendUnavailableError(f"Blob storage unavailable, cannot upload {path}")
        with self._lock:
            self._objects[path] = (bytes(data), content_type)
        logger.debug(f"uploaded {len(data)} bytes to {path}")
        return self.url_for(path)

    async def delete(self, path: str) -> None:
        if not self.available:
            raise BackendUnavailableError(f"Blob storage unavailable, cannot delete {path}")
        with self._lock:
            self._objects.pop(path, None)

    def url_for(self, path: str) -> str:
        return f"{self._base_url}/{path}"

    def read(self, path: str) -> bytes | None:
        with self._lock:
            stored = self._objects.get(path)
        return stored[0] if stored else None

    @property
    def paths(self) -> list[str]:
        with self._lock:
            return sorted(self._objects)
