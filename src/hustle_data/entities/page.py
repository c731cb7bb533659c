"""Cursor-paginated result page."""

from dataclasses import dataclass
from typing import Generic, TypeVar

from hustle_data.documents import DocumentSnapshot

E = TypeVar("E")


@dataclass(frozen=True)
class Page(Generic[E]):
    """One page of a listing.

    Attributes:
        items: Entities on this page, in query order
        next_cursor: Snapshot of the last item; pass back to fetch the next page
        has_more: Whether the page was full (another page may exist)
        limit: Requested page size
    """

    items: tuple[E, ...]
    next_cursor: DocumentSnapshot | None
    has_more: bool
    limit: int

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    @classmethod
    def empty(cls, limit: int) -> "Page[E]":
        return cls(items=(), next_cursor=None, has_more=False, limit=limit)
