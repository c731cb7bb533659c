"""Document store protocol.

Defines the interface for the hosted document database the facades
delegate persistence to: collection/document CRUD, compound queries
with ordering and cursors, atomic batches, atomic field transforms and
real-time query listeners.

Implementations can include:
- MemoryDocumentRepository (in-process, default for local runs and tests)
- A hosted document database client wrapped to this interface
"""

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from hustle_data.documents import DocumentSnapshot, Query, WriteBatch

SnapshotCallback = Callable[[list[DocumentSnapshot]], None]


@runtime_checkable
class ListenerHandle(Protocol):
    """Cancellation handle for a live query listener."""

    def remove(self) -> None:
        """Stop delivering snapshots. Idempotent."""
        ...


@runtime_checkable
class DocumentStore(Protocol):
    """Protocol for document store backends.

    Every call is a suspension point. Infrastructure failures surface as
    BackendUnavailableError; updates to missing documents raise
    NotFoundError.
    """

    async def get(self, collection: str, doc_id: str) -> DocumentSnapshot | None:
        """Read one document.

        Returns:
            The snapshot, or None if the document does not exist
        """
        ...

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        """Create a document with a store-assigned id.

        Returns:
            The new document id
        """
        ...

    async def set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        merge: bool = False,
    ) -> None:
        """Create or overwrite a document (or merge fields into it)."""
        ...

    async def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Update fields of an existing document.

        Keys may be dotted paths ("unread_counts.u1") and values may be
        field transforms (Increment, ArrayUnion, ArrayRemove).

        Raises:
            NotFoundError: If the document does not exist
        """
        ...

    async def delete(self, collection: str, doc_id: str) -> None:
        """Delete a document. No-op if it does not exist."""
        ...

    async def query(self, query: Query) -> list[DocumentSnapshot]:
        """Run a compound query.

        Returns:
            Matching snapshots in query order
        """
        ...

    async def count(self, query: Query) -> int:
        """Count documents matching a query (ignores limit and cursor)."""
        ...

    async def commit(self, batch: WriteBatch) -> None:
        """Apply every write in the batch atomically."""
        ...

    def listen(self, query: Query, callback: SnapshotCallback) -> ListenerHandle:
        """Register a live listener.

        The callback receives the full result set once on registration
        and again after every change to the queried collection.

        Returns:
            Handle whose remove() stops delivery
        """
        ...

    def health_check(self) -> bool:
        """Check if the store is reachable."""
        ...
