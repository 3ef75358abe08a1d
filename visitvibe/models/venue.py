from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from visitvibe.models.enums import PlacesProvider


class Coordinates(BaseModel):
    lat: float
    lng: float

    @property
    def is_unknown(self) -> bool:
        """Autocomplete results carry 0,0 until their details are fetched."""
        return self.lat == 0.0 and self.lng == 0.0


class Venue(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    address: str = ""
    coordinates: Coordinates
    photos: list[str] = []
    website: str | None = None
    hours: str | None = None
    phone_number: str | None = None
    price_level: int | None = Field(default=None, ge=1, le=4)
    category: list[str] = []
    rating: float | None = None
    source: PlacesProvider | None = None
    distance_m: float | None = None
    cached_at: datetime | None = None


class VenueSearchResult(BaseModel):
    venues: list[Venue] = []
    next_page_token: str | None = None
    provider: str | None = None
    used_fallback: bool = False


class SavedLocation(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    address: str
    lat: float
    lng: float
