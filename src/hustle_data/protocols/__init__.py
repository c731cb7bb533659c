"""Protocol interfaces for swappable implementations.

This package contains protocol definitions using structural typing.
Protocols enable:
- Swapping the in-process document store for a hosted one
- Unit testing with fake or failing implementations
- Clear separation between facades and the collaborators they call

Usage:
    ```python
    from hustle_data.protocols import CacheStore, DocumentStore

    cache: CacheStore = MemoryCacheRepository()
    store: DocumentStore = MemoryDocumentRepository()
    ```
"""

from .blob_storage import BlobStorage
from .cache_store import CacheStore
from .document_store import DocumentStore, ListenerHandle, SnapshotCallback
from .identity_provider import IdentityProvider
from .push_dispatcher import PushDispatcher

__all__ = [
    "BlobStorage",
    "CacheStore",
    "DocumentStore",
    "IdentityProvider",
    "ListenerHandle",
    "PushDispatcher",
    "SnapshotCallback",
]
