"""Blob storage protocol.

Uploads images and video bytes and hands back a public URL. Paths follow
"{category}/{owner_id}/{uuid}_{index}.{ext}".
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class BlobStorage(Protocol):
    """Protocol for object storage backends."""

    async def upload(self, data: bytes, path: str, content_type: str = "image/jpeg") -> str:
        """Upload bytes at `path`.

        Args:
            data: Raw object bytes
            path: Object path inside the bucket
            content_type: MIME type stored with the object

        Returns:
            The URL of the stored object

        Raises:
            BackendUnavailableError: If the upload fails
        """
        ...

    async def delete(self, path: str) -> None:
        """Delete the object at `path` if present."""
        ...
