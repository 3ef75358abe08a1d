"""Google Places web service client (Nearby Search, Text Search, Details)."""

import logging

import httpx

from visitvibe.clients.categories import google_categories, has_non_food_type
from visitvibe.clients.resilience import (
    AuthError,
    PermanentAPIError,
    TransientAPIError,
    classify_response,
    google_places_breaker,
    require_keys,
    resilient_request,
)
from visitvibe.models.enums import PlacesProvider
from visitvibe.models.venue import Coordinates, Venue, VenueSearchResult

logger = logging.getLogger(__name__)

PROVIDER_NAME = "Google Places"
BASE_URL = "https://maps.googleapis.com/maps/api/place"

# Keyword sent with nearby searches so bars and cafes are not dropped by
# the single ``type`` filter the API accepts.
NEARBY_KEYWORD = "food,cafe,restaurant,bar"

DETAILS_FIELDS = ",".join([
    "place_id",
    "name",
    "formatted_address",
    "vicinity",
    "geometry",
    "photos",
    "opening_hours",
    "formatted_phone_number",
    "website",
    "price_level",
    "types",
    "rating",
])

# Body-level statuses that are not errors
_OK_STATUSES = {"OK", "ZERO_RESULTS", "NOT_FOUND"}


def photo_url(photo_reference: str, api_key: str, max_width: int = 400) -> str:
    """Build a Place Photo URL for a photo reference."""
    return (
        f"{BASE_URL}/photo?maxwidth={max_width}"
        f"&photoreference={photo_reference}&key={api_key}"
    )


def _hours(place: dict) -> str | None:
    opening = place.get("opening_hours")
    if not opening:
        return None
    return "Currently open" if opening.get("open_now") else "Currently closed"


def parse_place(place: dict, api_key: str = "", food_only: bool = False) -> Venue:
    """Parse a Google Places result object into a Venue.

    Args:
        place: Raw result dict (nearby, text search or details).
        api_key: Key embedded in generated photo URLs.
        food_only: Restrict categories to food place types (nearby search).
    """
    location = place.get("geometry", {}).get("location", {})
    photos = [
        photo_url(p["photo_reference"], api_key)
        for p in place.get("photos", [])
        if p.get("photo_reference")
    ]
    return Venue(
        id=place.get("place_id", ""),
        name=place.get("name", "Unknown"),
        address=place.get("formatted_address") or place.get("vicinity") or "",
        coordinates=Coordinates(
            lat=location.get("lat", 0.0), lng=location.get("lng", 0.0)
        ),
        photos=photos,
        hours=_hours(place),
        phone_number=place.get("formatted_phone_number"),
        website=place.get("website"),
        price_level=place.get("price_level") or None,
        category=google_categories(place.get("types"), food_only=food_only),
        rating=place.get("rating"),
        source=PlacesProvider.GOOGLE,
    )


class GooglePlacesClient:
    """Async client for the Google Places web service.

    Args:
        api_key: Google API key.
        timeout: Per-request timeout in seconds.
    """

    def __init__(self, api_key: str, timeout: float = 10.0) -> None:
        self.api_key = api_key
        self.timeout = timeout

    @resilient_request
    async def _get(self, endpoint: str, params: dict) -> dict:
        """GET ``/<endpoint>/json`` and return the decoded body.

        Raises:
            AuthError: Request denied (bad or restricted key).
            TransientAPIError: Quota exceeded, 5xx, or network failure.
            PermanentAPIError: Any other error status.
        """
        query = {**params, "key": self.api_key}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(f"{BASE_URL}/{endpoint}/json", params=query)
        except httpx.TransportError as exc:
            raise TransientAPIError(f"Google Places unreachable: {exc}", PROVIDER_NAME) from exc

        classify_response(response, PROVIDER_NAME)
        data = require_keys(
            response.json(), {"status"}, f"Google {endpoint} response", PROVIDER_NAME
        )
        status = data["status"]
        if status in _OK_STATUSES:
            return data

        message = data.get("error_message", status)
        logger.warning("Google %s failed (%s): %s", endpoint, status, message)
        if status == "REQUEST_DENIED":
            raise AuthError(f"Google Places denied the request: {message}", PROVIDER_NAME)
        if status == "OVER_QUERY_LIMIT":
            raise TransientAPIError(f"Google Places quota exceeded: {message}", PROVIDER_NAME)
        raise PermanentAPIError(f"Google Places error {status}: {message}", PROVIDER_NAME)

    async def search_nearby(
        self,
        lat: float,
        lng: float,
        radius_m: int = 2000,
        place_type: str | None = "restaurant",
        page_token: str | None = None,
    ) -> VenueSearchResult:
        """Search food venues around a point.

        Args:
            lat: Centre latitude.
            lng: Centre longitude.
            radius_m: Search radius in metres.
            place_type: Google place type filter (one per request).
            page_token: ``next_page_token`` from a previous call.

        Returns:
            VenueSearchResult with the page token for the next page, if any.
        """
        params: dict = {
            "location": f"{lat},{lng}",
            "radius": radius_m,
            "type": place_type or "restaurant",
            "keyword": NEARBY_KEYWORD,
        }
        if page_token:
            params["pagetoken"] = page_token

        data = await google_places_breaker.call_async(self._get("nearbysearch", params))
        # Categories are narrowed to food types, so exclusions are checked on raw types
        venues = [
            parse_place(p, self.api_key, food_only=True)
            for p in data.get("results", [])
            if not has_non_food_type(p.get("types"))
        ]
        logger.info("Google nearby search returned %d venues", len(venues))
        return VenueSearchResult(
            venues=venues,
            next_page_token=data.get("next_page_token"),
            provider=PlacesProvider.GOOGLE.value,
        )

    async def text_search(
        self, query: str, lat: float, lng: float, radius_m: int = 50000
    ) -> list[Venue]:
        """Find places by free text, biased towards a location."""
        params = {"query": query, "location": f"{lat},{lng}", "radius": radius_m}
        data = await google_places_breaker.call_async(self._get("textsearch", params))
        return [parse_place(p, self.api_key) for p in data.get("results", [])]

    async def get_details(self, place_id: str) -> Venue | None:
        """Fetch full details for one place. Returns None if it does not exist."""
        params = {"place_id": place_id, "fields": DETAILS_FIELDS}
        data = await google_places_breaker.call_async(self._get("details", params))
        result = data.get("result")
        if data.get("status") == "NOT_FOUND" or not result:
            return None
        return parse_place(result, self.api_key)

    async def geocode(self, address: str) -> Coordinates | None:
        """Geocode an address with the Geocoding API (shares the Places key)."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    "https://maps.googleapis.com/maps/api/geocode/json",
                    params={"address": address, "key": self.api_key},
                )
        except httpx.TransportError as exc:
            raise TransientAPIError(f"Geocoding unreachable: {exc}", PROVIDER_NAME) from exc
        classify_response(response, PROVIDER_NAME)
        data = response.json()
        if data.get("status") != "OK" or not data.get("results"):
            logger.warning("Geocoding failed for '%s': %s", address, data.get("status"))
            return None
        location = data["results"][0]["geometry"]["location"]
        return Coordinates(lat=location["lat"], lng=location["lng"])
