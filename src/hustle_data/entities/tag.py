"""Tag usage analytics entity."""

from dataclasses import dataclass
from datetime import datetime


def normalize_tag(tag: str) -> str:
    """Canonical form of a tag: lowercase, hyphenated, with one leading "#"."""
    name = "-".join(tag.strip().lstrip("#").lower().split())
    return f"#{name}" if name else ""


@dataclass(frozen=True, kw_only=True)
class TagAnalytics:
    """Usage counters for one tag, stored at `tag_analytics/{name}` (no "#").

    `trending_score` grows by one per use; `post_count` and `reel_count`
    split `usage_count` by where the tag was used.
    """

    id: str | None = None
    tag: str
    usage_count: int = 0
    post_count: int = 0
    reel_count: int = 0
    trending_score: float = 0.0
    last_used: datetime | None = None

    @staticmethod
    def document_id(tag: str) -> str:
        return normalize_tag(tag).lstrip("#")
