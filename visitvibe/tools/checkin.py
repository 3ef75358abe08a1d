"""MCP tool for checking in at a venue with ratings."""

import logging
from datetime import UTC, date, datetime

from fastmcp import FastMCP
from pydantic import ValidationError

from visitvibe.models.enums import PlacesProvider
from visitvibe.models.visit import DishRating, Visit, VisitRating
from visitvibe.server import get_db
from visitvibe.tools.date_utils import parse_visit_date
from visitvibe.tools.rating_utils import SUB_RATINGS, get_rating_level, with_overall
from visitvibe.tools.search import build_search_service, resolve_venue

logger = logging.getLogger(__name__)


def split_tags(tags: str | None) -> list[str]:
    """Comma-separated tags to a list, blanks dropped, first spelling kept."""
    if not tags:
        return []
    seen: dict[str, str] = {}
    for tag in tags.split(","):
        tag = tag.strip()
        if tag and tag.lower() not in seen:
            seen[tag.lower()] = tag
    return list(seen.values())


def _visit_timestamp(date_str: str | None, today: date | None = None) -> str:
    """ISO timestamp for the visit: now, or noon UTC on a past date.

    Relative dates ("yesterday", "last friday") resolve against the local
    calendar date.
    """
    now = datetime.now(tz=UTC)
    if not date_str:
        return now.isoformat()
    local_today = today or date.today()
    day = parse_visit_date(date_str, today=local_today)
    if day == local_today.isoformat():
        return now.isoformat()
    return f"{day}T12:00:00+00:00"


def register_checkin_tools(mcp: FastMCP) -> None:
    """Register the check-in tool on the MCP server."""

    @mcp.tool
    async def check_in(
        venue: str,
        food: float = 0,
        service: float = 0,
        ambiance: float = 0,
        value: float = 0,
        facilities: float = 0,
        cleanliness: float = 0,
        dishes: list[dict] | None = None,
        photos: list[str] | None = None,
        notes: str | None = None,
        tags: str | None = None,
        would_visit_again: bool | None = None,
        total_bill: float | None = None,
        date: str | None = None,
    ) -> str:
        """Check in at a venue and rate your visit.

        Rate any of the categories from 1 to 5 (half points allowed); leave
        a category at 0 to skip it. The overall score is the average of the
        categories you rated.

        Args:
            venue: Venue ID or name (search first if it is new to you).
            food: Food quality.
            service: Service.
            ambiance: Atmosphere and decor.
            value: Value for money.
            facilities: Seating, restrooms, accessibility.
            cleanliness: Cleanliness.
            dishes: Dishes or drinks you had, e.g.
                    [{"name": "Latte", "rating": 5, "type": "drink", "price": 4.5,
                      "tags": ["creamy"]}].
            photos: Photo URLs.
            notes: Free-text notes about the visit.
            tags: Comma-separated tags, e.g. "date night, brunch".
            would_visit_again: Whether you would go back.
            total_bill: What you spent.
            date: When you went, e.g. "yesterday", "last Friday", "2026-03-14"
                  (default: now).

        Returns:
            Confirmation with the overall score and the visit ID.
        """
        scores = {
            "food": food,
            "service": service,
            "ambiance": ambiance,
            "value": value,
            "facilities": facilities,
            "cleanliness": cleanliness,
        }
        out_of_range = [name for name, score in scores.items() if not 0 <= score <= 5]
        if out_of_range:
            return f"Ratings must be between 0 and 5 (check: {', '.join(out_of_range)})."
        if not any(scores[name] > 0 for name in SUB_RATINGS):
            return "Please rate at least one category (food, service, ambiance, ...)."
        if total_bill is not None and total_bill < 0:
            return "total_bill cannot be negative."

        try:
            timestamp = _visit_timestamp(date)
        except ValueError:
            return f"Could not understand the date '{date}'. Try 'yesterday' or YYYY-MM-DD."

        try:
            dish_ratings = [DishRating.model_validate(d) for d in dishes or []]
        except ValidationError as exc:
            return f"Invalid dish: {exc.errors()[0]['msg']}. Dishes need a name and a 1-5 rating."

        db = get_db()
        searcher = await build_search_service()
        found = await resolve_venue(venue, searcher)
        if found is None:
            return (
                f"Venue '{venue}' not found. "
                "Find it with find_nearby_venues or search_places first."
            )
        if found.source == PlacesProvider.FALLBACK:
            await db.cache_venue(found)

        visit = Visit(
            venue_id=found.id,
            venue_name=found.name,
            timestamp=timestamp,
            rating=with_overall(VisitRating(**scores)),
            dishes=dish_ratings,
            photos=photos or [],
            notes=notes,
            tags=split_tags(tags),
            would_visit_again=would_visit_again,
            total_bill=total_bill,
        )
        visit_id = await db.save_visit(visit)
        logger.info("Checked in at %s (%s)", found.name, visit_id)

        overall = visit.rating.overall
        lines = [
            f"Checked in at {found.name} on {visit.visit_date}!",
            f"Overall: {overall:.1f} ({get_rating_level(overall)})",
        ]
        if dish_ratings:
            lines.append(f"Dishes rated: {len(dish_ratings)}")
        if await db.is_on_wishlist(found.id):
            lines.append("This venue is on your wishlist. Remove it with manage_wishlist if you're done.")
        lines.append(f"Visit ID: {visit_id}")
        return "\n".join(lines)
