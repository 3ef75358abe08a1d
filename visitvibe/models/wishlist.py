from pydantic import BaseModel, ConfigDict

from visitvibe.models.enums import WishlistPriority


class WishlistItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    venue_id: str
    venue_name: str
    added_at: str | None = None
    category: str | None = None
    tags: list[str] = []
    notes: str | None = None
    priority: WishlistPriority | None = None
