"""Map provider place types and categories to display categories."""

# Google place types that count as food venues
FOOD_PLACE_TYPES = [
    "restaurant",
    "cafe",
    "bakery",
    "bar",
    "food",
    "meal_takeaway",
    "meal_delivery",
]

# Types that are never food venues, whatever else they are tagged with
NON_FOOD_PLACE_TYPES = [
    "lodging",
    "hotel",
    "travel_agency",
    "real_estate_agency",
    "store",
    "gas_station",
    "car_dealer",
    "car_rental",
]

# Generic Google types carrying no useful category information
_GENERIC_GOOGLE_TYPES = {"point_of_interest", "establishment"}

# Foursquare category IDs for food places
FOURSQUARE_FOOD_CATEGORY_IDS = [
    "13000",  # Food
    "13065",  # Restaurant
    "13032",  # Café
    "13003",  # Bar
    "13034",  # Coffee Shop
    "13035",  # Dessert Shop
    "13040",  # Fast Food Restaurant
    "13046",  # Food Truck
    "13145",  # Bakery
]

# Substrings of a Mapbox POI category that mark it as a food venue
_MAPBOX_FOOD_HINTS = ("food", "restaurant", "cafe", "bar")

_NON_FOOD_LABELS = {t.replace("_", " ") for t in NON_FOOD_PLACE_TYPES}


def title_case_type(place_type: str) -> str:
    """Convert ``meal_takeaway`` to ``Meal Takeaway``."""
    return " ".join(word[:1].upper() + word[1:] for word in place_type.split("_") if word)


def google_categories(types: list[str] | None, food_only: bool = False) -> list[str]:
    """Turn a Google ``types`` array into display categories.

    Args:
        types: Raw types from a Places result.
        food_only: Keep only :data:`FOOD_PLACE_TYPES` (nearby search). When
            False, only the generic ``point_of_interest``/``establishment``
            types are dropped (details, text search).
    """
    if not types:
        return []
    if food_only:
        kept = [t for t in types if t in FOOD_PLACE_TYPES]
    else:
        kept = [t for t in types if t not in _GENERIC_GOOGLE_TYPES]
    return [title_case_type(t) for t in kept]


def foursquare_categories(categories: list[dict] | None) -> list[str]:
    """Extract category names from Foursquare category objects."""
    return [c["name"] for c in categories or [] if c.get("name")]


def mapbox_category(properties: dict | None) -> list[str]:
    """First segment of a Mapbox ``properties.category`` string, else ``Place``."""
    raw = (properties or {}).get("category")
    if raw:
        first = raw.split(",")[0].strip()
        if first:
            return [first]
    return ["Place"]


def is_mapbox_food_feature(feature: dict) -> bool:
    """Keep features whose category looks like food, or that have none."""
    raw = (feature.get("properties") or {}).get("category")
    if not raw:
        return True
    lowered = raw.lower()
    return any(hint in lowered for hint in _MAPBOX_FOOD_HINTS)


def is_non_food(categories: list[str]) -> bool:
    """True if any category is on the non-food exclusion list."""
    return any(c.lower() in _NON_FOOD_LABELS for c in categories)


def has_non_food_type(types: list[str] | None) -> bool:
    """True if a raw Google ``types`` array marks a place as non-food.

    Google lists the primary type first; a place whose primary type is a
    food type (a cafe also tagged ``store``) is kept.
    """
    if not types or types[0] in FOOD_PLACE_TYPES:
        return False
    return any(t in NON_FOOD_PLACE_TYPES for t in types)
