from visitvibe.models.enums import (
    DishType,
    PlacesProvider,
    RatingCategory,
    RatingLevel,
    VisitFilter,
    WishlistPriority,
)
from visitvibe.models.profile import ProfilePreferences, UserProfile
from visitvibe.models.venue import Coordinates, SavedLocation, Venue, VenueSearchResult
from visitvibe.models.visit import DishRating, Visit, VisitedVenue, VisitRating
from visitvibe.models.wishlist import WishlistItem

__all__ = [
    "Coordinates",
    "DishRating",
    "DishType",
    "PlacesProvider",
    "ProfilePreferences",
    "RatingCategory",
    "RatingLevel",
    "SavedLocation",
    "UserProfile",
    "Venue",
    "VenueSearchResult",
    "Visit",
    "VisitFilter",
    "VisitRating",
    "VisitedVenue",
    "WishlistItem",
    "WishlistPriority",
]
