"""MCP tools for rating rankings and filtering visited venues."""

import logging

from fastmcp import FastMCP

from visitvibe.models.enums import RatingCategory, RatingLevel
from visitvibe.models.visit import VisitedVenue
from visitvibe.server import get_db
from visitvibe.storage.database import DatabaseManager
from visitvibe.tools.checkin import split_tags
from visitvibe.tools.filter_utils import extract_categories, extract_tags, filter_venues
from visitvibe.tools.rating_utils import (
    get_rating_level,
    latest_visit_per_venue,
    rank_by_category,
    top_rated,
)

logger = logging.getLogger(__name__)

_CATEGORY_NAMES = ", ".join(c.value for c in RatingCategory)
_LEVEL_NAMES = ", ".join(level.value for level in RatingLevel)


async def visited_venues(db: DatabaseManager) -> list[VisitedVenue]:
    """Latest visit per venue, with categories from the venue cache."""
    visits = await db.get_visits()
    categories: dict[str, list[str]] = {}
    for venue_id in {v.venue_id for v in visits}:
        cached = await db.get_cached_venue(venue_id)
        if cached:
            categories[venue_id] = cached.category
    return latest_visit_per_venue(visits, categories)


def _entry_line(idx: int, entry: VisitedVenue, field: str = "overall") -> str:
    score = getattr(entry.last_visit.rating, field)
    line = f"{idx}. {entry.venue_name}: {score:.1f}"
    if field == "overall" and score:
        line += f" ({get_rating_level(score)})"
    if entry.visit_count > 1:
        line += f", {entry.visit_count} visits"
    return line


def register_rating_tools(mcp: FastMCP) -> None:
    """Register rating and venue-filter tools on the MCP server."""

    @mcp.tool
    async def my_ratings(category: str = "overall") -> str:
        """Rank the venues you've visited by one rating category.

        Each venue is scored by its most recent visit.

        Args:
            category: overall, food, service, ambiance, value, facilities
                      or cleanliness.

        Returns:
            Your top two venues followed by the full ranking.
        """
        try:
            field = RatingCategory(category.strip().lower()).value
        except ValueError:
            return f"Unknown rating category '{category}'. Choose from: {_CATEGORY_NAMES}."

        visits = await get_db().get_visits()
        ranked = rank_by_category(visits, field)
        if not ranked:
            return "No ratings yet. Check in somewhere to start your rankings."

        lines = [f"Top {field} picks:"]
        lines.extend(_entry_line(i, e, field) for i, e in enumerate(ranked[:2], 1))
        lines.append("")
        lines.append(f"All venues by {field}:")
        lines.extend(_entry_line(i, e, field) for i, e in enumerate(ranked, 1))
        return "\n".join(lines)

    @mcp.tool
    async def top_rated_venues(limit: int = 5) -> str:
        """Your best venues by average overall rating across all visits.

        Args:
            limit: How many venues to list (default 5).
        """
        visits = await get_db().get_visits()
        ranked = top_rated(visits, max(1, limit))
        if not ranked:
            return "No rated visits yet."
        lines = ["Your top-rated venues:"]
        for i, (_, name, score, count) in enumerate(ranked, 1):
            lines.append(
                f"{i}. {name}: {score:.1f} ({get_rating_level(score)}) "
                f"from {count} visit{'s' if count != 1 else ''}"
            )
        return "\n".join(lines)

    @mcp.tool
    async def filter_visited_venues(
        rating_level: str | None = None,
        category: str | None = None,
        tags: str | None = None,
    ) -> str:
        """Filter the venues you've visited.

        Args:
            rating_level: "good" (4+), "mid" (3 to 4), "bad" (under 3) or "all".
            category: A venue category such as "Cafe" (see venue_filter_options).
            tags: Comma-separated visit tags; a venue matches if its latest
                  visit has any of them.

        Returns:
            Matching venues with their latest rating.
        """
        level = rating_level.strip().lower() if rating_level else None
        if level and level != "all" and level not in {lv.value for lv in RatingLevel}:
            return f"Unknown rating level '{rating_level}'. Choose from: {_LEVEL_NAMES}, all."

        entries = await visited_venues(get_db())
        matches = filter_venues(entries, level, category, split_tags(tags))
        if not entries:
            return "You haven't visited any venues yet."
        if not matches:
            return "No visited venues match those filters."

        lines = [f"{len(matches)} matching venue{'s' if len(matches) != 1 else ''}:"]
        for i, entry in enumerate(matches, 1):
            line = _entry_line(i, entry)
            if entry.category:
                line += f"\n   Category: {', '.join(entry.category)}"
            if entry.last_visit.tags:
                line += f"\n   Tags: {', '.join(entry.last_visit.tags)}"
            lines.append(line)
        return "\n".join(lines)

    @mcp.tool
    async def venue_filter_options() -> str:
        """List the categories and tags you can filter visited venues by."""
        entries = await visited_venues(get_db())
        if not entries:
            return "You haven't visited any venues yet."
        categories = extract_categories(entries)
        tags = extract_tags(entries)
        return "\n".join([
            f"Rating levels: {_LEVEL_NAMES}",
            f"Categories: {', '.join(categories) if categories else 'none'}",
            f"Tags: {', '.join(tags) if tags else 'none'}",
        ])
