"""In-memory implementation of DocumentStore.

Mirrors the query semantics of a hosted document database closely enough
for local runs and tests:

- filters and orderings skip documents that lack the referenced field
- results are ordered by the order-by clauses, ties broken by document id
- `start_after` resumes strictly after the cursor document's position
- batches apply every write or none
- listeners receive the full result set on registration and after every
  write to the queried collection
"""

import copy
import functools
import itertools
import logging
import threading
from collections import Counter
from datetime import datetime
from typing import Any

from hustle_data.documents import (
    DOCUMENT_ID,
    ArrayRemove,
    ArrayUnion,
    DocumentSnapshot,
    Filter,
    FilterOp,
    Increment,
    Query,
    WriteBatch,
    WriteKind,
    WriteOp,
    new_document_id,
)
from hustle_data.errors import BackendUnavailableError, NotFoundError
from hustle_data.protocols import SnapshotCallback

logger = logging.getLogger(__name__)

_MISSING = object()

Documents = dict[str, dict[str, dict[str, Any]]]


def _type_rank(value: Any) -> int:
    """Cross-type ordering: null < bool < number < timestamp < string < array < map."""
    if value is None:
        return 0
    if isinstance(value, bool):
        return 1
    if isinstance(value, (int, float)):
        return 2
    if isinstance(value, datetime):
        return 3
    if isinstance(value, str):
        return 4
    if isinstance(value, (bytes, bytearray)):
        return 5
    if isinstance(value, (list, tuple)):
        return 6
    return 7


def _compare_values(left: Any, right: Any) -> int:
    left_rank, right_rank = _type_rank(left), _type_rank(right)
    if left_rank != right_rank:
        return -1 if left_rank < right_rank else 1
    if left_rank == 0:
        return 0
    if left_rank == 6:
        for a, b in zip(left, right):
            result = _compare_values(a, b)
            if result:
                return result
        return (len(left) > len(right)) - (len(left) < len(right))
    if left_rank == 7:
        return 0
    return (left > right) - (left < right)


def _read_field(doc_id: str, data: dict[str, Any], path: str) -> Any:
    if path == DOCUMENT_ID:
        return doc_id
    current: Any = data
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _matches(doc_id: str, data: dict[str, Any], flt: Filter) -> bool:
    value = _read_field(doc_id, data, flt.field)
    if value is _MISSING:
        return False
    op = flt.op
    if op is FilterOp.EQ:
        return _type_rank(value) == _type_rank(flt.value) and value == flt.value
    if op is FilterOp.NE:
        return value is not None and value != flt.value
    if op is FilterOp.ARRAY_CONTAINS:
        return isinstance(value, list) and flt.value in value
    if op is FilterOp.IN:
        return value in list(flt.value)
    # Range filters only match values of the same type as the operand
    if _type_rank(value) != _type_rank(flt.value) or value is None:
        return False
    result = _compare_values(value, flt.value)
    if op is FilterOp.LT:
        return result < 0
    if op is FilterOp.LE:
        return result <= 0
    if op is FilterOp.GT:
        return result > 0
    if op is FilterOp.GE:
        return result >= 0
    raise ValueError(f"Unsupported filter operator: {op}")


def _apply_transform(current: Any, value: Any) -> Any:
    if isinstance(value, Increment):
        base = current if isinstance(current, (int, float)) and not isinstance(current, bool) else 0
        return base + value.amount
    if isinstance(value, ArrayUnion):
        result = list(current) if isinstance(current, list) else []
        for item in value.values:
            if item not in result:
                result.append(item)
        return result
    if isinstance(value, ArrayRemove):
        if not isinstance(current, list):
            return []
        return [item for item in current if item not in value.values]
    if isinstance(value, dict):
        return {key: _apply_transform(_MISSING, item) for key, item in value.items()}
    return copy.deepcopy(value)


def _merge_into(target: dict[str, Any], data: dict[str, Any]) -> None:
    for key, value in data.items():
        current = target.get(key, _MISSING)
        if isinstance(value, dict) and isinstance(current, dict):
            _merge_into(current, value)
        else:
            target[key] = _apply_transform(current, value)


def _update_path(target: dict[str, Any], path: str, value: Any) -> None:
    *parents, leaf = path.split(".")
    current = target
    for part in parents:
        child = current.get(part)
        if not isinstance(child, dict):
            child = {}
            current[part] = child
        current = child
    current[leaf] = _apply_transform(current.get(leaf, _MISSING), value)


class _Listener:
    """Cancellation handle returned by `listen`."""

    def __init__(self, repository: "MemoryDocumentRepository", listener_id: int) -> None:
        self._repository = repository
        self._listener_id = listener_id

    def remove(self) -> None:
        self._repository._remove_listener(self._listener_id)


class MemoryDocumentRepository:
    """In-process document store.

    This class satisfies the DocumentStore protocol through structural
    typing - no explicit inheritance needed.

    Test helpers:
    - `operation_counts` counts calls per operation ("get", "query", ...)
    - `fail_next(operation, collection=None)` makes the next matching call
      raise BackendUnavailableError
    - `available = False` makes every call raise BackendUnavailableError
    """

    def __init__(self) -> None:
        self._collections: Documents = {}
        self._lock = threading.RLock()
        self._listeners: dict[int, tuple[Query, SnapshotCallback]] = {}
        self._listener_ids = itertools.count(1)
        self._failures: list[tuple[str, str | None]] = []
        self.operation_counts: Counter[str] = Counter()
        self.available = True

    @classmethod
    def create(cls) -> "MemoryDocumentRepository":
        """Factory method to create an empty MemoryDocumentRepository."""
        return cls()

    # -------------------------------------------------------------------------
    # Failure injection
    # -------------------------------------------------------------------------

    def fail_next(self, operation: str, collection: str | None = None) -> None:
        """Make the next `operation` call (optionally on `collection`) fail."""
        with self._lock:
            self._failures.append((operation, collection))

    def _begin(self, operation: str, collection: str | None) -> None:
        self.operation_counts[operation] += 1
        if not self.available:
            raise BackendUnavailableError(f"Document store unavailable ({operation})")
        with self._lock:
            for index, (failing_op, failing_collection) in enumerate(self._failures):
                if failing_op != operation:
                    continue
                if failing_collection is not None and failing_collection != collection:
                    continue
                del self._failures[index]
                raise BackendUnavailableError(
                    f"Document store call failed ({operation} on {collection})"
                )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get(self, collection: str, doc_id: str) -> DocumentSnapshot | None:
        self._begin("get", collection)
        with self._lock:
            data = self._collections.get(collection, {}).get(doc_id)
            if data is None:
                return None
            return DocumentSnapshot(doc_id, collection, copy.deepcopy(data))

    async def query(self, query: Query) -> list[DocumentSnapshot]:
        self._begin("query", query.collection)
        with self._lock:
            return self._run_query(query)

    async def count(self, query: Query) -> int:
        self._begin("count", query.collection)
        with self._lock:
            return len(self._run_query(query.take(None).after(None)))

    def _run_query(self, query: Query) -> list[DocumentSnapshot]:
        documents = self._collections.get(query.collection, {})
        rows = [
            (doc_id, data)
            for doc_id, data in documents.items()
            if all(_matches(doc_id, data, flt) for flt in query.filters)
            and all(
                _read_field(doc_id, data, order.field) is not _MISSING for order in query.order_by
            )
        ]

        def compare(left: tuple[str, dict], right: tuple[str, dict]) -> int:
            for order in query.order_by:
                result = _compare_values(
                    _read_field(left[0], left[1], order.field),
                    _read_field(right[0], right[1], order.field),
                )
                if result:
                    return -result if order.descending else result
            return (left[0] > right[0]) - (left[0] < right[0])

        rows.sort(key=functools.cmp_to_key(compare))

        cursor = query.start_after
        if cursor is not None:
            position = (cursor.id, cursor.data)
            rows = [row for row in rows if compare(row, position) > 0]

        if query.limit is not None:
            rows = rows[: query.limit]

        return [
            DocumentSnapshot(doc_id, query.collection, copy.deepcopy(data)) for doc_id, data in rows
        ]

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        self._begin("add", collection)
        doc_id = new_document_id()
        self._apply([WriteOp(WriteKind.SET, collection, doc_id, data)])
        return doc_id

    async def set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        merge: bool = False,
    ) -> None:
        self._begin("set", collection)
        self._apply([WriteOp(WriteKind.SET, collection, doc_id, data, merge)])

    async def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        self._begin("update", collection)
        self._apply([WriteOp(WriteKind.UPDATE, collection, doc_id, data)])

    async def delete(self, collection: str, doc_id: str) -> None:
        self._begin("delete", collection)
        self._apply([WriteOp(WriteKind.DELETE, collection, doc_id)])

    async def commit(self, batch: WriteBatch) -> None:
        """Apply every write in the batch atomically.

        Raises:
            NotFoundError: If an update targets a missing document (nothing is applied)
        """
        collections = {op.collection for op in batch.operations}
        self._begin("commit", next(iter(collections)) if len(collections) == 1 else None)
        if batch.operations:
            self._apply(list(batch.operations))

    def _apply(self, operations: list[WriteOp]) -> None:
        with self._lock:
            touched = {op.collection for op in operations}
            staged = {name: copy.deepcopy(self._collections.get(name, {})) for name in touched}
            for op in operations:
                documents = staged[op.collection]
                if op.kind is WriteKind.SET:
                    target = documents.get(op.doc_id) if op.merge else None
                    if target is None:
                        target = {}
                    _merge_into(target, op.data)
                    documents[op.doc_id] = target
                elif op.kind is WriteKind.UPDATE:
                    target = documents.get(op.doc_id)
                    if target is None:
                        raise NotFoundError(f"No document {op.collection}/{op.doc_id}")
                    for path, value in op.data.items():
                        _update_path(target, path, value)
                else:
                    documents.pop(op.doc_id, None)
            self._collections.update(staged)
            deliveries = [
                (callback, self._run_query(query))
                for query, callback in self._listeners.values()
                if query.collection in touched
            ]
        self._deliver(deliveries)

    # -------------------------------------------------------------------------
    # Listeners
    # -------------------------------------------------------------------------

    def listen(self, query: Query, callback: SnapshotCallback) -> _Listener:
        """Register a live listener and deliver the current result set."""
        self._begin("listen", query.collection)
        with self._lock:
            listener_id = next(self._listener_ids)
            self._listeners[listener_id] = (query, callback)
            initial = self._run_query(query)
        self._deliver([(callback, initial)])
        return _Listener(self, listener_id)

    def _remove_listener(self, listener_id: int) -> None:
        with self._lock:
            self._listeners.pop(listener_id, None)

    @property
    def active_listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def _deliver(self, deliveries: list[tuple[SnapshotCallback, list[DocumentSnapshot]]]) -> None:
        for callback, snapshots in deliveries:
            try:
                callback(snapshots)
            except Exception:
                logger.warning("snapshot listener raised", exc_info=True)

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    def document_count(self, collection: str) -> int:
        with self._lock:
            return len(self._collections.get(collection, {}))

    def health_check(self) -> bool:
        return self.available
