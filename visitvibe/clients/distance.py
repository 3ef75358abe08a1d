"""Great-circle distances and proximity queries over venues."""

import math

from visitvibe.models.venue import Coordinates, Venue

# Earth radius in km
_EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Calculate straight-line distance between two points in km.

    Args:
        lat1, lng1: First point coordinates (degrees).
        lat2, lng2: Second point coordinates (degrees).

    Returns:
        Distance in kilometres.
    """
    lat1_r, lng1_r = math.radians(lat1), math.radians(lng1)
    lat2_r, lng2_r = math.radians(lat2), math.radians(lng2)

    dlat = lat2_r - lat1_r
    dlng = lng2_r - lng1_r

    a = math.sin(dlat / 2) ** 2 + (
        math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return _EARTH_RADIUS_KM * c


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Same as :func:`haversine_km`, in metres."""
    return haversine_km(lat1, lng1, lat2, lng2) * 1000


def distance_between(a: Coordinates, b: Coordinates) -> float:
    """Distance in metres between two coordinate pairs."""
    return haversine_m(a.lat, a.lng, b.lat, b.lng)


def sort_by_distance(center: Coordinates, venues: list[Venue]) -> list[Venue]:
    """Return copies of *venues* with ``distance_m`` set, nearest first."""
    annotated = [
        v.model_copy(update={"distance_m": round(distance_between(center, v.coordinates), 1)})
        for v in venues
    ]
    annotated.sort(key=lambda v: v.distance_m or 0.0)
    return annotated


def surrounding_venues(
    center: Coordinates,
    venues: list[Venue],
    radius_m: float = 500,
    limit: int = 5,
    exclude_id: str | None = None,
) -> list[Venue]:
    """Venues within *radius_m* of *center*, nearest first, at most *limit*.

    Args:
        center: Point to measure from (usually the selected venue).
        venues: Candidate venues.
        radius_m: Inclusive radius in metres.
        limit: Maximum venues to return.
        exclude_id: Venue id to skip (the selected venue itself).
    """
    candidates = [
        v for v in venues
        if v.id != exclude_id and distance_between(center, v.coordinates) <= radius_m
    ]
    return sort_by_distance(center, candidates)[:limit]


def has_moved_significantly(
    previous: Coordinates, current: Coordinates, threshold_km: float = 1.0
) -> bool:
    """True when the search centre moved more than *threshold_km*."""
    return haversine_km(previous.lat, previous.lng, current.lat, current.lng) > threshold_km
