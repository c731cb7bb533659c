"""Portfolio card entity."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True, kw_only=True)
class PortfolioCard:
    """A showcase card on a provider's profile. Hard-deleted."""

    id: str | None = None
    user_id: str
    title: str
    cover_image_url: str | None = None
    media_urls: list[str] = field(default_factory=list)
    description: str | None = None
    display_order: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
