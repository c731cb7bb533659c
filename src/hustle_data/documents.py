"""Value types exchanged with a document store.

These describe queries, snapshots, batched writes and atomic field
transforms independently of any vendor client. A DocumentStore
implementation interprets them; services only build them.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# Pseudo field name that filters/orders on the document id itself
DOCUMENT_ID = "__id__"


def new_document_id() -> str:
    """Generate a store-style random document id."""
    return uuid.uuid4().hex[:20]


class FilterOp(str, Enum):
    """Comparison operators supported in query predicates."""

    EQ = "=="
    NE = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    ARRAY_CONTAINS = "array_contains"
    IN = "in"


@dataclass(frozen=True)
class Filter:
    """A single field predicate."""

    field: str
    op: FilterOp
    value: Any


@dataclass(frozen=True)
class OrderBy:
    """Sort clause."""

    field: str
    descending: bool = False


@dataclass(frozen=True)
class DocumentSnapshot:
    """A read-only copy of a stored document."""

    id: str
    collection: str
    data: dict[str, Any]

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)


@dataclass(frozen=True)
class Query:
    """A compound query against one collection.

    Builder methods return new queries, so a base query can be shared:

        ```python
        base = Query("posts").where("is_active", FilterOp.EQ, True)
        page = base.order("updated_at", descending=True).take(20)
        ```
    """

    collection: str
    filters: tuple[Filter, ...] = ()
    order_by: tuple[OrderBy, ...] = ()
    limit: int | None = None
    start_after: DocumentSnapshot | None = None

    def where(self, field_name: str, op: FilterOp, value: Any) -> "Query":
        return Query(
            self.collection,
            self.filters + (Filter(field_name, op, value),),
            self.order_by,
            self.limit,
            self.start_after,
        )

    def order(self, field_name: str, descending: bool = False) -> "Query":
        return Query(
            self.collection,
            self.filters,
            self.order_by + (OrderBy(field_name, descending),),
            self.limit,
            self.start_after,
        )

    def take(self, limit: int | None) -> "Query":
        return Query(self.collection, self.filters, self.order_by, limit, self.start_after)

    def after(self, cursor: DocumentSnapshot | None) -> "Query":
        return Query(self.collection, self.filters, self.order_by, self.limit, cursor)


# -------------------------------------------------------------------------
# Atomic field transforms (usable in update/set-merge and in batches)
# -------------------------------------------------------------------------


@dataclass(frozen=True)
class Increment:
    """Add `amount` to a numeric field (missing fields count as 0)."""

    amount: int | float = 1


@dataclass(frozen=True)
class ArrayUnion:
    """Append values not already present in an array field."""

    values: tuple[Any, ...]

    def __init__(self, *values: Any) -> None:
        object.__setattr__(self, "values", tuple(values))


@dataclass(frozen=True)
class ArrayRemove:
    """Remove every occurrence of the values from an array field."""

    values: tuple[Any, ...]

    def __init__(self, *values: Any) -> None:
        object.__setattr__(self, "values", tuple(values))


class WriteKind(str, Enum):
    SET = "set"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class WriteOp:
    """One write inside a batch."""

    kind: WriteKind
    collection: str
    doc_id: str
    data: dict[str, Any] = field(default_factory=dict)
    merge: bool = False


class WriteBatch:
    """Collects writes that a store commits atomically.

    Either every write applies or none does.
    """

    def __init__(self) -> None:
        self._ops: list[WriteOp] = []

    def set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        merge: bool = False,
    ) -> "WriteBatch":
        self._ops.append(WriteOp(WriteKind.SET, collection, doc_id, dict(data), merge))
        return self

    def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> "WriteBatch":
        self._ops.append(WriteOp(WriteKind.UPDATE, collection, doc_id, dict(data)))
        return self

    def delete(self, collection: str, doc_id: str) -> "WriteBatch":
        self._ops.append(WriteOp(WriteKind.DELETE, collection, doc_id))
        return self

    @property
    def operations(self) -> tuple[WriteOp, ...]:
        return tuple(self._ops)

    def __len__(self) -> int:
        return len(self._ops)
