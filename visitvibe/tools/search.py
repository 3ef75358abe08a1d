import logging
import re

from fastmcp import FastMCP

from visitvibe.clients.cache import InMemoryCache
from visitvibe.clients.distance import surrounding_venues as venues_around
from visitvibe.clients.foursquare import FoursquareClient
from visitvibe.clients.google_places import GooglePlacesClient
from visitvibe.clients.mapbox import MapboxClient
from visitvibe.clients.resilience import APIError
from visitvibe.models.venue import Coordinates, SavedLocation, Venue
from visitvibe.search.venue_search import VenueSearchService, fallback_venues, normalise_name
from visitvibe.server import get_db, resolve_credential
from visitvibe.tools.error_messages import get_user_message
from visitvibe.tools.rating_utils import get_rating_level

logger = logging.getLogger(__name__)

# Price level display symbols
_PRICE_SYMBOLS = {1: "$", 2: "$$", 3: "$$$", 4: "$$$$"}

_LAT_LNG = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*,\s*(-?\d+(?:\.\d+)?)\s*$")

# Shared across tool calls so repeated searches skip the providers
_search_cache = InMemoryCache(max_size=100, ttl_seconds=300)


def _clear_search_cache() -> None:
    """Drop cached search results. Used in tests."""
    _search_cache.clear()


async def build_search_service() -> VenueSearchService:
    """Search service over every provider that has a key configured."""
    from visitvibe.config import get_settings

    settings = get_settings()
    clients: dict = {}
    foursquare_key = await resolve_credential("foursquare_api_key")
    if foursquare_key:
        clients["foursquare"] = FoursquareClient(foursquare_key)
    google_key = await resolve_credential("google_api_key")
    if google_key:
        clients["google"] = GooglePlacesClient(google_key)
    mapbox_token = await resolve_credential("mapbox_token")
    if mapbox_token:
        clients["mapbox"] = MapboxClient(mapbox_token)

    return VenueSearchService(
        clients,
        order=settings.provider_order,
        db=get_db(),
        cache=_search_cache,
        use_fallback=settings.use_fallback_venues,
    )


def parse_lat_lng(text: str) -> Coordinates | None:
    """Parse ``"37.77,-122.41"`` into coordinates."""
    match = _LAT_LNG.match(text)
    if not match:
        return None
    lat, lng = float(match.group(1)), float(match.group(2))
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        return None
    return Coordinates(lat=lat, lng=lng)


async def geocode(address: str) -> Coordinates | None:
    """Geocode through Mapbox, then Google, whichever is configured."""
    mapbox_token = await resolve_credential("mapbox_token")
    if mapbox_token:
        try:
            coords = await MapboxClient(mapbox_token).geocode(address)
            if coords:
                return coords
        except APIError as exc:
            logger.warning("Mapbox geocoding failed for '%s': %s", address, exc)

    google_key = await resolve_credential("google_api_key")
    if google_key:
        try:
            return await GooglePlacesClient(google_key).geocode(address)
        except APIError as exc:
            logger.warning("Google geocoding failed for '%s': %s", address, exc)
    return None


async def resolve_location(location: str) -> Coordinates | None:
    """A saved location name, a ``"lat,lng"`` pair, or a geocodable address."""
    saved = await get_db().get_location(location)
    if saved:
        return Coordinates(lat=saved.lat, lng=saved.lng)
    coords = parse_lat_lng(location)
    if coords:
        return coords
    return await geocode(location)


async def resolve_venue(venue: str, service: VenueSearchService) -> Venue | None:
    """Find a venue by id or by (partial) name.

    Looks in the venue cache first, then the bundled venues, and finally
    asks the provider that owns the id format.
    """
    db = get_db()
    venue = venue.strip()
    if not venue:
        return None

    cached = await db.get_cached_venue(venue)
    if cached and not cached.coordinates.is_unknown:
        return cached

    matches = await db.search_cached_venues(venue)
    if matches:
        match = matches[0]
        if match.coordinates.is_unknown:
            return await service.get_venue(match.id) or match
        return match

    wanted = normalise_name(venue)
    for candidate in fallback_venues():
        name = normalise_name(candidate.name)
        if candidate.id == venue or (wanted and (wanted == name or wanted in name)):
            return candidate

    if " " in venue:
        return None
    return await service.get_venue(venue)


def _format_distance(distance_m: float | None) -> str:
    if distance_m is None:
        return ""
    if distance_m >= 1000:
        return f" - {distance_m / 1000:.1f} km"
    return f" - {distance_m:.0f} m"


def format_venue_line(idx: int, v: Venue) -> str:
    """Format a single venue for a result list."""
    price = _PRICE_SYMBOLS.get(v.price_level or 0, "")
    details = [f"{v.rating:.1f}★" if v.rating else None, price or None]
    detail_str = ", ".join(d for d in details if d)
    lines = [f"{idx}. {v.name}" + (f" ({detail_str})" if detail_str else "")
             + _format_distance(v.distance_m)]
    if v.address:
        lines.append(f"   {v.address}")
    if v.category:
        lines.append(f"   Category: {', '.join(v.category)}")
    lines.append(f"   ID: {v.id}")
    return "\n".join(lines)


def register_search_tools(mcp: FastMCP) -> None:
    """Register venue discovery tools on the MCP server."""

    @mcp.tool
    async def find_nearby_venues(
        location: str,
        radius_meters: int | None = None,
        query: str | None = None,
        page_token: str | None = None,
        max_results: int = 10,
    ) -> str:
        """Find restaurants, cafes and bars near a location, nearest first.

        Args:
            location: A saved location name (e.g. "home"), a "lat,lng" pair,
                      or an address.
            radius_meters: Search radius (default from settings, 2000 m).
            query: Optional text filter, e.g. "pizza" or "coffee".
            page_token: Token from a previous search to load more results.
            max_results: Maximum venues to list (default 10, max 50).

        Returns:
            Numbered list of venues with distance, category and venue ID.
        """
        from visitvibe.config import get_settings

        settings = get_settings()
        max_results = max(1, min(max_results, 50))
        radius = radius_meters or settings.search_radius_meters

        center = await resolve_location(location)
        if center is None:
            return (
                f"Could not resolve location '{location}'. "
                "Use a saved location, a 'lat,lng' pair, or an address."
            )

        service = await build_search_service()
        try:
            result = await service.search_nearby(
                center.lat, center.lng, radius, query=query, page_token=page_token
            )
        except APIError as exc:
            return get_user_message(exc)

        if not result.venues:
            message = f"No venues found within {radius} m of {location}."
            if result.used_fallback:
                message += (
                    " Live venue data is unavailable and the sample venues only"
                    " cover central San Francisco."
                )
            return message

        db = get_db()
        venues = result.venues[:max_results]
        lines = [f"Found {len(venues)} venue{'s' if len(venues) != 1 else ''} near {location}:"]
        if result.used_fallback:
            lines.append("(Live venue data is unavailable, showing sample venues.)")
        for i, v in enumerate(venues, 1):
            entry = format_venue_line(i, v)
            last = await db.get_latest_visit(v.id)
            if last and last.rating.overall:
                level = get_rating_level(last.rating.overall)
                entry += f"\n   Visited: last rated {last.rating.overall:.1f} ({level})"
            if await db.is_on_wishlist(v.id):
                entry += "\n   On your wishlist"
            lines.append(entry)
        if result.next_page_token:
            lines.append(f"More results available: page_token={result.next_page_token}")
        return "\n\n".join(lines)

    @mcp.tool
    async def search_places(query: str, location: str) -> str:
        """Search venues by name or keyword, biased towards a location.

        Args:
            query: Venue name or keyword, e.g. "Blue Bottle".
            location: Saved location name, "lat,lng" pair, or address.

        Returns:
            Numbered list of matching venues with their IDs.
        """
        if not query.strip():
            return "Please provide something to search for."
        center = await resolve_location(location)
        if center is None:
            return f"Could not resolve location '{location}'."

        service = await build_search_service()
        try:
            result = await service.search_places(query, center.lat, center.lng)
        except APIError as exc:
            return get_user_message(exc)

        if not result.venues:
            return f"No places found matching '{query}'."
        lines = [f"Places matching '{query}':"]
        if result.used_fallback:
            lines.append("(Live venue data is unavailable, showing sample venues.)")
        lines.extend(format_venue_line(i, v) for i, v in enumerate(result.venues, 1))
        return "\n\n".join(lines)

    @mcp.tool
    async def venue_details(venue: str) -> str:
        """Show full details for a venue, plus your visits and wishlist status.

        Args:
            venue: Venue ID or name (search first if it is new to you).

        Returns:
            Address, hours, contact details, categories and your history.
        """
        service = await build_search_service()
        found = await resolve_venue(venue, service)
        if found is None:
            return f"Venue '{venue}' not found. Try find_nearby_venues or search_places first."

        db = get_db()
        lines = [found.name]
        if found.address:
            lines.append(f"Address: {found.address}")
        if found.category:
            lines.append(f"Category: {', '.join(found.category)}")
        if found.hours:
            lines.append(f"Hours: {found.hours}")
        if found.phone_number:
            lines.append(f"Phone: {found.phone_number}")
        if found.website:
            lines.append(f"Website: {found.website}")
        if found.price_level:
            lines.append(f"Price: {_PRICE_SYMBOLS[found.price_level]}")
        if found.rating:
            lines.append(f"Rating: {found.rating:.1f}★")
        if found.photos:
            lines.append(f"Photos: {len(found.photos)}")

        visits = await db.get_visits(found.id)
        if visits:
            last = visits[0]
            lines.append(
                f"Your visits: {len(visits)} (last on {last.visit_date}, "
                f"rated {last.rating.overall:.1f}, {get_rating_level(last.rating.overall)})"
            )
        else:
            lines.append("You haven't visited yet.")
        if await db.is_on_wishlist(found.id):
            lines.append("On your wishlist")
        lines.append(f"ID: {found.id}")
        return "\n".join(lines)

    @mcp.tool
    async def surrounding_venues(
        venue: str,
        radius_meters: int | None = None,
        limit: int = 5,
    ) -> str:
        """List other venues close to a venue, nearest first.

        Args:
            venue: Venue ID or name.
            radius_meters: How far to look (default 500 m).
            limit: Maximum venues to list (default 5).

        Returns:
            Numbered list of nearby venues with distances.
        """
        from visitvibe.config import get_settings

        radius = radius_meters or get_settings().surrounding_radius_meters
        service = await build_search_service()
        found = await resolve_venue(venue, service)
        if found is None or found.coordinates.is_unknown:
            return f"Venue '{venue}' not found."

        try:
            result = await service.search_nearby(
                found.coordinates.lat, found.coordinates.lng, radius
            )
        except APIError as exc:
            return get_user_message(exc)

        nearby = venues_around(
            found.coordinates, result.venues, radius, max(1, limit), exclude_id=found.id
        )
        if not nearby:
            return f"No other venues within {radius} m of {found.name}."
        lines = [f"Near {found.name}:"]
        lines.extend(format_venue_line(i, v) for i, v in enumerate(nearby, 1))
        return "\n\n".join(lines)

    @mcp.tool
    async def save_location(name: str, address: str) -> str:
        """Save a named location (e.g. "home", "work") to search from.

        Args:
            name: Short name for the location.
            address: Street address or a "lat,lng" pair.

        Returns:
            Confirmation with the resolved coordinates.
        """
        if not name.strip():
            return "Please give the location a name."
        coords = parse_lat_lng(address) or await geocode(address)
        if coords is None:
            return (
                f"Could not find coordinates for '{address}'. "
                "Configure a Mapbox or Google key, or pass 'lat,lng'."
            )
        await get_db().save_location(
            SavedLocation(name=name.strip(), address=address, lat=coords.lat, lng=coords.lng)
        )
        return f"Saved '{name.strip()}' at {coords.lat:.5f}, {coords.lng:.5f}."
