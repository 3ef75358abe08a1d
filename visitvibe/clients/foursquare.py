"""Foursquare Places API (v3) client."""

import logging

import httpx

from visitvibe.clients.categories import FOURSQUARE_FOOD_CATEGORY_IDS, foursquare_categories
from visitvibe.clients.resilience import (
    TransientAPIError,
    classify_response,
    foursquare_breaker,
    require_keys,
    resilient_request,
)
from visitvibe.models.enums import PlacesProvider
from visitvibe.models.venue import Coordinates, Venue

logger = logging.getLogger(__name__)

BASE_URL = "https://api.foursquare.com/v3"

DETAILS_FIELDS = ",".join([
    "fsq_id",
    "name",
    "categories",
    "location",
    "geocodes",
    "website",
    "tel",
    "hours",
    "rating",
    "stats",
    "price",
    "photos",
    "tastes",
    "features",
])

DEFAULT_SEARCH_RADIUS = 5000
MAX_RESULTS = 50
AUTOCOMPLETE_RADIUS = 50000
AUTOCOMPLETE_LIMIT = 10
THUMBNAIL_SIZE = "300x300"


def generate_photo_urls(photos: list[dict], size: str = THUMBNAIL_SIZE) -> list[str]:
    """Foursquare photo URLs are ``prefix + size + suffix``."""
    return [
        f"{p['prefix']}{size}{p['suffix']}"
        for p in photos
        if p.get("prefix") and p.get("suffix")
    ]


def _address(location: dict) -> str:
    return location.get("formatted_address") or location.get("address") or ""


def _coordinates(place: dict) -> Coordinates:
    main = place.get("geocodes", {}).get("main", {})
    return Coordinates(lat=main.get("latitude", 0.0), lng=main.get("longitude", 0.0))


def _price_tier(price: object) -> int | None:
    """``price`` is an int on search results and ``{"tier": n}`` on some details."""
    if isinstance(price, dict):
        price = price.get("tier")
    if isinstance(price, int) and 1 <= price <= 4:
        return price
    return None


def parse_place(place: dict) -> Venue:
    """Convert a Foursquare search result into a Venue."""
    distance = place.get("distance")
    return Venue(
        id=place.get("fsq_id", ""),
        name=place.get("name", "Unknown"),
        address=_address(place.get("location", {})),
        coordinates=_coordinates(place),
        category=foursquare_categories(place.get("categories")),
        source=PlacesProvider.FOURSQUARE,
        distance_m=float(distance) if distance is not None else None,
    )


def parse_details(details: dict) -> Venue:
    """Convert a Foursquare place-details response into a Venue."""
    hours_data = details.get("hours") or {}
    if hours_data.get("display"):
        hours = hours_data["display"]
    elif hours_data.get("open_now"):
        hours = "Open now"
    else:
        hours = "Hours not available"

    venue = parse_place(details)
    return venue.model_copy(update={
        "photos": generate_photo_urls(details.get("photos") or []),
        "website": details.get("website"),
        "hours": hours,
        "phone_number": details.get("tel"),
        "price_level": _price_tier(details.get("price")),
        "rating": details.get("rating"),
    })


class FoursquareClient:
    """Async client for the Foursquare Places API.

    Args:
        api_key: Foursquare v3 API key (sent as the Authorization header).
        timeout: Per-request timeout in seconds.
    """

    def __init__(self, api_key: str, timeout: float = 10.0) -> None:
        self.api_key = api_key
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        return {"Accept": "application/json", "Authorization": self.api_key}

    @resilient_request
    async def _get(self, path: str, params: dict | None = None) -> dict:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    f"{BASE_URL}{path}", headers=self._headers(), params=params
                )
        except httpx.TransportError as exc:
            raise TransientAPIError(f"Foursquare unreachable: {exc}", "Foursquare") from exc
        classify_response(response, "Foursquare")
        return response.json()

    async def search_nearby(
        self,
        lat: float,
        lng: float,
        radius_m: int = DEFAULT_SEARCH_RADIUS,
        query: str | None = None,
    ) -> list[Venue]:
        """Food venues around a point, closest first.

        Args:
            lat: Centre latitude.
            lng: Centre longitude.
            radius_m: Search radius in metres.
            query: Optional free-text filter. The generic ``restaurant``
                query is not sent since the category filter already covers it.
        """
        params: dict = {
            "ll": f"{lat},{lng}",
            "radius": radius_m,
            "categories": ",".join(FOURSQUARE_FOOD_CATEGORY_IDS),
            "limit": MAX_RESULTS,
            "sort": "DISTANCE",
        }
        if query and query.strip().lower() != "restaurant":
            params["query"] = query

        data = await foursquare_breaker.call_async(self._get("/places/search", params))
        data = require_keys(data, {"results"}, "Foursquare search response", "Foursquare")
        venues = [parse_place(p) for p in data["results"] if p.get("fsq_id")]
        logger.info("Foursquare nearby search returned %d venues", len(venues))
        return venues

    async def autocomplete(self, query: str, lat: float, lng: float) -> list[Venue]:
        """Place suggestions for a partial query.

        Suggestions carry no coordinates; they are returned as 0,0 and
        resolved through :meth:`get_details` once selected.
        """
        params = {
            "query": query,
            "ll": f"{lat},{lng}",
            "radius": AUTOCOMPLETE_RADIUS,
            "types": "place",
            "limit": AUTOCOMPLETE_LIMIT,
        }
        data = await foursquare_breaker.call_async(self._get("/autocomplete", params))
        data = require_keys(data, {"results"}, "Foursquare autocomplete response", "Foursquare")

        venues: list[Venue] = []
        for result in data["results"]:
            place = result.get("place") or {}
            fsq_id = result.get("fsq_id") or place.get("fsq_id")
            if not fsq_id:
                continue
            text = result.get("text", {})
            venues.append(
                Venue(
                    id=fsq_id,
                    name=text.get("primary") or place.get("name", "Unknown"),
                    address=text.get("secondary") or "",
                    coordinates=Coordinates(lat=0.0, lng=0.0),
                    source=PlacesProvider.FOURSQUARE,
                )
            )
        return venues

    async def get_details(self, fsq_id: str) -> Venue | None:
        """Full venue details including photos, hours and price tier."""
        data = await foursquare_breaker.call_async(
            self._get(f"/places/{fsq_id}", {"fields": DETAILS_FIELDS})
        )
        if not data or not data.get("fsq_id"):
            return None
        return parse_details(data)
