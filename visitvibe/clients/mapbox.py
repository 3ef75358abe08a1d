"""Mapbox geocoding client: POI search, reverse lookups and static images."""

import logging
from urllib.parse import quote

import httpx

from visitvibe.clients.categories import is_mapbox_food_feature, mapbox_category
from visitvibe.clients.resilience import (
    PermanentAPIError,
    TransientAPIError,
    classify_response,
    mapbox_breaker,
    require_keys,
    resilient_request,
)
from visitvibe.models.enums import PlacesProvider
from visitvibe.models.venue import Coordinates, Venue

logger = logging.getLogger(__name__)

GEOCODING_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places"
STATIC_URL = "https://api.mapbox.com/styles/v1/mapbox/streets-v11/static"

SEARCH_LIMIT = 10
NEARBY_LIMIT = 15


def _strip_name(place_name: str, name: str) -> str:
    """``place_name`` repeats the POI name up front; drop it."""
    return place_name.replace(f"{name}, ", "", 1)


class MapboxClient:
    """Async client for the Mapbox Geocoding API.

    Args:
        token: Mapbox access token.
        timeout: Per-request timeout in seconds.
    """

    def __init__(self, token: str, timeout: float = 10.0) -> None:
        self.token = token
        self.timeout = timeout

    def static_image_url(self, lat: float, lng: float, zoom: int = 15) -> str:
        """A 300x200 street-map thumbnail centred on a point."""
        return f"{STATIC_URL}/{lng},{lat},{zoom},0/300x200?access_token={self.token}"

    def parse_feature(self, feature: dict, with_image: bool = False) -> Venue:
        """Convert a GeoJSON feature into a Venue."""
        name = feature.get("text", "Unknown")
        center = feature.get("center") or [0.0, 0.0]
        lng, lat = center[0], center[1]
        photos = [self.static_image_url(lat, lng)] if with_image else []
        return Venue(
            id=feature.get("id", ""),
            name=name,
            address=_strip_name(feature.get("place_name", ""), name),
            coordinates=Coordinates(lat=lat, lng=lng),
            category=mapbox_category(feature.get("properties")),
            photos=photos,
            source=PlacesProvider.MAPBOX,
        )

    @resilient_request
    async def _geocode(self, search_text: str, params: dict) -> list[dict]:
        """Call the geocoding endpoint and return its features."""
        url = f"{GEOCODING_URL}/{quote(search_text, safe=',.-')}.json"
        query = {**params, "access_token": self.token}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url, params=query)
        except httpx.TransportError as exc:
            raise TransientAPIError(f"Mapbox unreachable: {exc}", "Mapbox") from exc
        classify_response(response, "Mapbox")
        data = require_keys(response.json(), {"features"}, "Mapbox geocoding response", "Mapbox")
        return data["features"]

    async def search_places(self, query: str, lat: float, lng: float) -> list[Venue]:
        """POIs matching *query*, ranked by proximity to a point."""
        features = await mapbox_breaker.call_async(
            self._geocode(
                query,
                {"proximity": f"{lng},{lat}", "types": "poi", "limit": SEARCH_LIMIT},
            )
        )
        return [self.parse_feature(f) for f in features]

    async def search_nearby(self, lat: float, lng: float) -> list[Venue]:
        """Food POIs at a point via reverse geocoding, each with a map thumbnail."""
        features = await mapbox_breaker.call_async(
            self._geocode(f"{lng},{lat}", {"types": "poi", "limit": NEARBY_LIMIT})
        )
        venues = [
            self.parse_feature(f, with_image=True)
            for f in features
            if is_mapbox_food_feature(f)
        ]
        logger.info("Mapbox nearby search returned %d venues", len(venues))
        return venues

    async def get_place_details(self, place_id: str) -> Venue | None:
        """Look up a POI by its ``poi.<n>`` id.

        Raises:
            PermanentAPIError: If *place_id* is not a Mapbox POI id.
        """
        if not is_mapbox_id(place_id):
            raise PermanentAPIError(f"Invalid Mapbox place id: {place_id}", "Mapbox")
        features = await mapbox_breaker.call_async(
            self._geocode(place_id, {"types": "poi"})
        )
        if not features:
            return None
        venue = self.parse_feature(features[0], with_image=True)
        # Details keep the full place_name as the address
        return venue.model_copy(update={
            "id": place_id,
            "address": features[0].get("place_name") or "Address unavailable",
        })

    async def geocode(self, address: str) -> Coordinates | None:
        """Forward geocode an address to coordinates."""
        features = await mapbox_breaker.call_async(self._geocode(address, {"limit": 1}))
        if not features:
            logger.warning("No geocoding result for '%s'", address)
            return None
        lng, lat = features[0]["center"][0], features[0]["center"][1]
        return Coordinates(lat=lat, lng=lng)

    async def reverse_geocode(self, lat: float, lng: float) -> str | None:
        """Human-readable address for a point."""
        features = await mapbox_breaker.call_async(
            self._geocode(f"{lng},{lat}", {"limit": 1})
        )
        if not features:
            return None
        return features[0].get("place_name")


def is_mapbox_id(place_id: str) -> bool:
    """Mapbox POI ids look like ``poi.123456789``."""
    parts = place_id.split(".")
    return len(parts) == 2 and parts[0] == "poi" and bool(parts[1])
