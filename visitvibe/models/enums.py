from enum import StrEnum


class RatingLevel(StrEnum):
    GOOD = "good"
    MID = "mid"
    BAD = "bad"


class RatingCategory(StrEnum):
    OVERALL = "overall"
    FOOD = "food"
    SERVICE = "service"
    AMBIANCE = "ambiance"
    VALUE = "value"
    FACILITIES = "facilities"
    CLEANLINESS = "cleanliness"


class DishType(StrEnum):
    DISH = "dish"
    DRINK = "drink"


class WishlistPriority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class PlacesProvider(StrEnum):
    FOURSQUARE = "foursquare"
    GOOGLE = "google"
    MAPBOX = "mapbox"
    FALLBACK = "fallback"


class VisitFilter(StrEnum):
    ALL = "all"
    RECENT = "recent"
    HIGHEST_RATED = "highest rated"
    LOWEST_RATED = "lowest rated"
