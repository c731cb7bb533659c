"""Repository layer for data access.

This layer puts external collaborators (cache, document store, blob
storage, auth identity, push delivery) behind protocol-based interfaces.
This enables:
- Swapping the in-process implementations for hosted backends
- Unit testing without network access
- Clear separation of concerns

The repositories are protocol-based (structural typing), not inheritance-based.
Any class implementing the required methods will satisfy the protocol.
"""

from hustle_data.protocols import (
    BlobStorage,
    CacheStore,
    DocumentStore,
    IdentityProvider,
    PushDispatcher,
)

from .identity_providers import ContextIdentityProvider, StaticIdentityProvider
from .memory_blob_repository import MemoryBlobRepository
from .memory_cache_repository import MemoryCacheRepository
from .memory_document_repository import MemoryDocumentRepository
from .push_dispatchers import HttpPushDispatcher, LoggingPushDispatcher

__all__ = [
    "BlobStorage",
    "CacheStore",
    "DocumentStore",
    "IdentityProvider",
    "PushDispatcher",
    "ContextIdentityProvider",
    "StaticIdentityProvider",
    "MemoryBlobRepository",
    "MemoryCacheRepository",
    "MemoryDocumentRepository",
    "HttpPushDispatcher",
    "LoggingPushDispatcher",
]
