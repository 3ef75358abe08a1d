"""Venue search across the configured place providers.

Each provider is queried in the configured order. Results are merged so
the same venue reported by two providers appears once, non-food places
are dropped, and the list is sorted nearest first. When no provider can
answer, the bundled sample venues stand in so the app stays usable
without API keys.
"""

import json
import logging
import re
from functools import lru_cache
from pathlib import Path

from visitvibe.clients.cache import InMemoryCache, search_cache_key
from visitvibe.clients.categories import is_non_food
from visitvibe.clients.distance import distance_between, sort_by_distance
from visitvibe.clients.foursquare import FoursquareClient
from visitvibe.clients.google_places import GooglePlacesClient
from visitvibe.clients.mapbox import MapboxClient, is_mapbox_id
from visitvibe.clients.resilience import APIError
from visitvibe.models.enums import PlacesProvider
from visitvibe.models.venue import Coordinates, Venue, VenueSearchResult
from visitvibe.storage.database import DatabaseManager

logger = logging.getLogger(__name__)

# Two records with matching names closer than this are one venue
SAME_VENUE_DISTANCE_M = 75.0

_FALLBACK_PATH = Path(__file__).parent / "fallback_venues.json"
_FOURSQUARE_ID = re.compile(r"^[0-9a-f]{24}$")
_STRIP_WORDS = {"the", "restaurant", "cafe", "café"}

# Scalar fields a later provider may fill in when the first left them empty
_FILLABLE_FIELDS = (
    "address",
    "website",
    "hours",
    "phone_number",
    "price_level",
    "rating",
    "distance_m",
)


@lru_cache(maxsize=1)
def _load_fallback() -> tuple[Venue, ...]:
    raw = json.loads(_FALLBACK_PATH.read_text(encoding="utf-8"))
    return tuple(
        Venue.model_validate({**v, "source": PlacesProvider.FALLBACK}) for v in raw
    )


def fallback_venues() -> list[Venue]:
    """The bundled sample venues."""
    return list(_load_fallback())


def normalise_name(name: str) -> str:
    """Lowercase, drop punctuation and filler words like ``the``."""
    name = name.lower().replace("'s", "").replace("’s", "")
    words = re.split(r"[^\w]+", name)
    return " ".join(w for w in words if w and w not in _STRIP_WORDS)


def is_same_venue(a: Venue, b: Venue) -> bool:
    """True when two provider records describe the same place."""
    if a.id == b.id:
        return True
    name_a, name_b = normalise_name(a.name), normalise_name(b.name)
    if not name_a or not name_b:
        return False
    if not (name_a == name_b or name_a in name_b or name_b in name_a):
        return False
    if a.coordinates.is_unknown or b.coordinates.is_unknown:
        return False
    return distance_between(a.coordinates, b.coordinates) <= SAME_VENUE_DISTANCE_M


def merge_pair(primary: Venue, other: Venue) -> Venue:
    """Fill gaps in *primary* from *other*; photos and categories are unioned."""
    updates: dict = {}
    for field in _FILLABLE_FIELDS:
        if not getattr(primary, field) and getattr(other, field):
            updates[field] = getattr(other, field)
    if primary.coordinates.is_unknown and not other.coordinates.is_unknown:
        updates["coordinates"] = other.coordinates
    updates["photos"] = list(dict.fromkeys([*primary.photos, *other.photos]))
    updates["category"] = list(dict.fromkeys([*primary.category, *other.category]))
    return primary.model_copy(update=updates)


def merge_venues(batches: list[list[Venue]]) -> list[Venue]:
    """Merge provider result lists, earlier batches taking precedence."""
    merged: list[Venue] = []
    for batch in batches:
        for venue in batch:
            for i, existing in enumerate(merged):
                if is_same_venue(existing, venue):
                    merged[i] = merge_pair(existing, venue)
                    break
            else:
                merged.append(venue)
    return merged


def matches_text(venue: Venue, text: str) -> bool:
    """Case-insensitive substring match on name, address or any category."""
    needle = text.strip().lower()
    if not needle:
        return True
    haystack = [venue.name, venue.address, *venue.category]
    return any(needle in h.lower() for h in haystack)


def provider_for_id(venue_id: str) -> PlacesProvider:
    """Infer which provider issued a venue id from its format."""
    if is_mapbox_id(venue_id):
        return PlacesProvider.MAPBOX
    if _FOURSQUARE_ID.match(venue_id):
        return PlacesProvider.FOURSQUARE
    return PlacesProvider.GOOGLE


def _sort_known_first(center: Coordinates, venues: list[Venue]) -> list[Venue]:
    """Nearest first; venues without coordinates keep their order at the end."""
    known = [v for v in venues if not v.coordinates.is_unknown]
    unknown = [v for v in venues if v.coordinates.is_unknown]
    return sort_by_distance(center, known) + unknown


class VenueSearchService:
    """Aggregate venue search over Foursquare, Google Places and Mapbox.

    Args:
        clients: Provider name to client, only for providers with a key.
        order: Provider names in query order. Defaults to the order of
            *clients*. Names without a client are skipped.
        db: Optional database used as a venue cache.
        cache: Optional result cache for repeated searches.
        use_fallback: Return bundled sample venues when no provider answers.
    """

    def __init__(
        self,
        clients: dict[str, FoursquareClient | GooglePlacesClient | MapboxClient],
        order: list[str] | None = None,
        db: DatabaseManager | None = None,
        cache: InMemoryCache | None = None,
        use_fallback: bool = True,
    ) -> None:
        self.clients = clients
        self.order = [p for p in (order or list(clients)) if p in clients]
        self.db = db
        self.cache = cache
        self.use_fallback = use_fallback

    async def _remember(self, venues: list[Venue]) -> None:
        if self.db is None:
            return
        for venue in venues:
            if venue.source != PlacesProvider.FALLBACK:
                await self.db.cache_venue(venue)

    def _fallback_result(
        self,
        center: Coordinates,
        query: str | None,
        errors: list[APIError],
        radius_m: int | None = None,
    ) -> VenueSearchResult:
        if not self.use_fallback:
            if errors:
                raise errors[-1]
            return VenueSearchResult()
        venues = sort_by_distance(
            center, [v for v in fallback_venues() if matches_text(v, query or "")]
        )
        if radius_m is not None:
            venues = [v for v in venues if (v.distance_m or 0.0) <= radius_m]
        logger.info("Using %d bundled fallback venues", len(venues))
        return VenueSearchResult(
            venues=venues,
            provider=PlacesProvider.FALLBACK.value,
            used_fallback=True,
        )

    async def _nearby_from(
        self,
        provider: str,
        lat: float,
        lng: float,
        radius_m: int,
        query: str | None,
        page_token: str | None,
    ) -> tuple[list[Venue], str | None]:
        client = self.clients[provider]
        if isinstance(client, GooglePlacesClient):
            result = await client.search_nearby(lat, lng, radius_m, page_token=page_token)
            return result.venues, result.next_page_token
        if isinstance(client, FoursquareClient):
            return await client.search_nearby(lat, lng, radius_m, query=query), None
        return await client.search_nearby(lat, lng), None

    async def search_nearby(
        self,
        lat: float,
        lng: float,
        radius_m: int = 2000,
        query: str | None = None,
        page_token: str | None = None,
    ) -> VenueSearchResult:
        """Food venues around a point from every configured provider.

        A *page_token* continues a previous Google search, so only Google
        is queried for it. A failing provider is logged and skipped.

        Raises:
            APIError: Every provider failed and fallback venues are disabled.
        """
        providers = ["google"] if page_token else self.order
        providers = [p for p in providers if p in self.clients]
        key = search_cache_key(providers, lat, lng, radius_m, query, page_token)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug("Search cache hit for %s", key)
                return cached  # type: ignore[return-value]

        center = Coordinates(lat=lat, lng=lng)
        batches: list[list[Venue]] = []
        answered: list[str] = []
        errors: list[APIError] = []
        next_page_token: str | None = None
        for provider in providers:
            try:
                venues, token = await self._nearby_from(
                    provider, lat, lng, radius_m, query, page_token
                )
            except APIError as exc:
                logger.warning("Nearby search via %s failed: %s", provider, exc)
                errors.append(exc)
                continue
            batches.append(venues)
            answered.append(provider)
            next_page_token = next_page_token or token

        if not answered:
            return self._fallback_result(center, query, errors, radius_m)

        merged = [v for v in merge_venues(batches) if not is_non_food(v.category)]
        if query and query.strip().lower() != "restaurant":
            # Google and Mapbox nearby searches ignore free text
            merged = [v for v in merged if matches_text(v, query)]
        result = VenueSearchResult(
            venues=sort_by_distance(center, merged),
            next_page_token=next_page_token,
            provider="+".join(answered),
        )
        await self._remember(result.venues)
        if self.cache is not None:
            self.cache.set(key, result)
        return result

    async def _text_from(self, provider: str, query: str, lat: float, lng: float) -> list[Venue]:
        client = self.clients[provider]
        if isinstance(client, GooglePlacesClient):
            return await client.text_search(query, lat, lng)
        if isinstance(client, FoursquareClient):
            return await client.autocomplete(query, lat, lng)
        return await client.search_places(query, lat, lng)

    async def search_places(self, query: str, lat: float, lng: float) -> VenueSearchResult:
        """Free-text place search biased towards a point.

        Raises:
            APIError: Every provider failed and fallback venues are disabled.
        """
        center = Coordinates(lat=lat, lng=lng)
        key = search_cache_key(self.order, lat, lng, 0, query)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return cached  # type: ignore[return-value]

        batches: list[list[Venue]] = []
        answered: list[str] = []
        errors: list[APIError] = []
        for provider in self.order:
            try:
                batches.append(await self._text_from(provider, query, lat, lng))
            except APIError as exc:
                logger.warning("Place search via %s failed: %s", provider, exc)
                errors.append(exc)
                continue
            answered.append(provider)

        if not answered:
            return self._fallback_result(center, query, errors)

        result = VenueSearchResult(
            venues=_sort_known_first(center, merge_venues(batches)),
            provider="+".join(answered),
        )
        await self._remember(result.venues)
        if self.cache is not None:
            self.cache.set(key, result)
        return result

    async def get_venue(self, venue_id: str) -> Venue | None:
        """Venue by id from the cache, the bundled venues, or its provider.

        Cached records without coordinates (autocomplete suggestions) are
        refreshed through the provider's details endpoint. Returns None when
        no source knows the id.
        """
        cached = await self.db.get_cached_venue(venue_id) if self.db else None
        if cached is not None and not cached.coordinates.is_unknown:
            return cached

        for venue in fallback_venues():
            if venue.id == venue_id:
                return venue

        provider = provider_for_id(venue_id)
        client = self.clients.get(provider.value)
        if client is None:
            logger.info("No %s client to resolve venue %s", provider.value, venue_id)
            return cached

        try:
            if isinstance(client, MapboxClient):
                venue = await client.get_place_details(venue_id)
            else:
                venue = await client.get_details(venue_id)
        except APIError as exc:
            logger.warning("Details lookup for %s failed: %s", venue_id, exc)
            return cached

        if venue is None:
            return cached
        if self.db is not None:
            await self.db.cache_venue(venue)
        return venue
