"""Hustle Data - cached repository layer for a local services marketplace.

This package provides a layered architecture around a document store and
a shared TTL cache:

Layers:
    - protocols: Interface contracts (CacheStore, DocumentStore, BlobStorage, ...)
    - repositories: In-process and HTTP implementations
    - services: One cache-aside facade per entity
    - handlers: HTTP endpoint handlers
    - dto: Data transfer objects (API contracts)
    - entities: Domain models (internal)

Usage:
    ```python
    from hustle_data.repositories import StaticIdentityProvider
    from hustle_data.services import ServiceContainer

    container = ServiceContainer.create_in_memory(identity=StaticIdentityProvider("u1"))
    page = await container.posts.fetch_page(limit=20)
    ```

For HTTP API:
    ```python
    from hustle_data.api.app import app
    ```
"""

from hustle_data.cache_keys import CacheKeys
from hustle_data.config import settings
from hustle_data.entities import Page, Review, ServicePost, User
from hustle_data.errors import (
    BackendUnavailableError,
    HustleDataError,
    NotFoundError,
    UnauthenticatedError,
    UnauthorizedError,
    ValidationFailedError,
)
from hustle_data.protocols import BlobStorage, CacheStore, DocumentStore, IdentityProvider, PushDispatcher
from hustle_data.repositories import MemoryCacheRepository, MemoryDocumentRepository, StaticIdentityProvider
from hustle_data.services import EntityService, ServiceContainer

__all__ = [
    # Configuration
    "settings",
    "CacheKeys",
    # Protocols (interfaces)
    "BlobStorage",
    "CacheStore",
    "DocumentStore",
    "IdentityProvider",
    "PushDispatcher",
    # Services (business logic)
    "EntityService",
    "ServiceContainer",
    # Repositories (data access)
    "MemoryCacheRepository",
    "MemoryDocumentRepository",
    "StaticIdentityProvider",
    # Entities (domain models)
    "Page",
    "Review",
    "ServicePost",
    "User",
    # Errors
    "HustleDataError",
    "UnauthenticatedError",
    "UnauthorizedError",
    "NotFoundError",
    "ValidationFailedError",
    "BackendUnavailableError",
]
