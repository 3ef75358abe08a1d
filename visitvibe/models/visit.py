from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from visitvibe.models.enums import DishType


def _new_id() -> str:
    return str(uuid4())


def _now_iso() -> str:
    return datetime.now(tz=UTC).isoformat()


class DishRating(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=_new_id)
    name: str
    photo: str | None = None
    price: float | None = Field(default=None, ge=0)
    rating: float = Field(ge=1, le=5)
    tags: list[str] = []
    notes: str | None = None
    type: DishType = DishType.DISH


class VisitRating(BaseModel):
    """Sub-ratings on a 0-5 scale where 0 means "not rated"."""

    food: float = Field(default=0, ge=0, le=5)
    service: float = Field(default=0, ge=0, le=5)
    ambiance: float = Field(default=0, ge=0, le=5)
    value: float = Field(default=0, ge=0, le=5)
    facilities: float = Field(default=0, ge=0, le=5)
    cleanliness: float = Field(default=0, ge=0, le=5)
    overall: float = Field(default=0, ge=0, le=5)


class Visit(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=_new_id)
    venue_id: str
    venue_name: str
    timestamp: str = Field(default_factory=_now_iso)
    rating: VisitRating
    dishes: list[DishRating] = []
    photos: list[str] = []
    notes: str | None = None
    tags: list[str] = []
    would_visit_again: bool | None = None
    total_bill: float | None = Field(default=None, ge=0)

    @property
    def visit_date(self) -> str:
        """The YYYY-MM-DD part of the timestamp."""
        return self.timestamp[:10]


class VisitedVenue(BaseModel):
    """A venue with its most recent visit, as listed on the ratings page."""

    venue_id: str
    venue_name: str
    category: list[str] = []
    last_visit: Visit
    visit_count: int = 1
