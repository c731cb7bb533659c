"""Service post entity."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .state import EntityState


class ServiceCategory(str, Enum):
    CLEANING = "Cleaning"
    TUTORING = "Tutoring"
    DELIVERY = "Delivery"
    ELECTRICAL = "Electrical"
    PLUMBING = "Plumbing"
    CARPENTRY = "Carpentry"
    PAINTING = "Painting"
    LANDSCAPING = "Landscaping"
    MOVING = "Moving"
    PET_CARE = "Pet Care"
    TECH_SUPPORT = "Tech Support"
    PHOTOGRAPHY = "Photography"
    OTHER = "Other"


class PostStatus(str, Enum):
    ACTIVE = "active"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True, kw_only=True)
class ServicePost:
    """An offer (`is_request=False`) or request for a service.

    Soft-deleted by clearing `is_active`.
    """

    id: str | None = None
    user_id: str
    user_name: str = ""
    user_profile_image: str | None = None
    title: str
    description: str
    category: ServiceCategory = ServiceCategory.OTHER
    price: float | None = None
    location: str | None = None
    image_urls: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    is_request: bool = False
    status: PostStatus = PostStatus.ACTIVE
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def state(self) -> EntityState:
        return EntityState.ACTIVE if self.is_active else EntityState.INACTIVE
