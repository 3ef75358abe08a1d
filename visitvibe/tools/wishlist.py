import logging

from fastmcp import FastMCP

from visitvibe.models.enums import PlacesProvider, WishlistPriority
from visitvibe.models.wishlist import WishlistItem
from visitvibe.server import get_db
from visitvibe.tools.checkin import split_tags
from visitvibe.tools.search import build_search_service, resolve_venue

logger = logging.getLogger(__name__)

_PRIORITIES = {p.value for p in WishlistPriority}


def register_wishlist_tools(mcp: FastMCP) -> None:
    """Register wishlist management tools on the MCP server."""

    @mcp.tool
    async def manage_wishlist(
        venue: str,
        action: str = "add",
        category: str | None = None,
        tags: str | None = None,
        notes: str | None = None,
        priority: str | None = None,
    ) -> str:
        """Add, update or remove a venue on your wishlist of places to try.

        Args:
            venue: Venue ID or name (search first if it is new to you).
            action: "add", "update" or "remove".
            category: Your own grouping, e.g. "Brunch" or "Date night".
            tags: Comma-separated tags, e.g. "outdoor, cheap eats".
            notes: Free-text notes, e.g. "try the tasting menu".
            priority: "high", "medium" or "low".

        Returns:
            Confirmation of the action.
        """
        action = action.strip().lower()
        if action not in {"add", "update", "remove"}:
            return f"Unknown action '{action}'. Use 'add', 'update' or 'remove'."
        level = priority.strip().lower() if priority else None
        if level and level not in _PRIORITIES:
            return f"Unknown priority '{priority}'. Use 'high', 'medium' or 'low'."

        db = get_db()
        found = await resolve_venue(venue, await build_search_service())
        venue_id = found.id if found else venue.strip()
        venue_name = found.name if found else venue.strip()

        if action == "remove":
            if await db.remove_from_wishlist(venue_id):
                return f"Removed '{venue_name}' from your wishlist."
            return f"'{venue_name}' was not on your wishlist."

        parsed_tags = split_tags(tags) if tags is not None else None
        if action == "update":
            updated = await db.update_wishlist_item(
                venue_id,
                category=category,
                tags=parsed_tags,
                notes=notes,
                priority=level,
            )
            if not updated:
                return f"'{venue_name}' is not on your wishlist. Add it first."
            return f"Updated '{venue_name}' on your wishlist."

        if found is None:
            return (
                f"Venue '{venue}' not found. "
                "Find it with find_nearby_venues or search_places first."
            )
        if found.source == PlacesProvider.FALLBACK:
            await db.cache_venue(found)
        added = await db.add_to_wishlist(
            WishlistItem(
                venue_id=found.id,
                venue_name=found.name,
                category=category,
                tags=parsed_tags or [],
                notes=notes,
                priority=level,
            )
        )
        if not added:
            return (
                f"'{found.name}' is already on your wishlist. "
                "Use action='update' to change it."
            )
        return f"Added '{found.name}' to your wishlist."

    @mcp.tool
    async def my_wishlist(category: str | None = None, tag: str | None = None) -> str:
        """Show your wishlist in the order you added venues.

        Args:
            category: Only venues in this wishlist category.
            tag: Only venues with this tag.

        Returns:
            Numbered list of wishlist venues with their labels.
        """
        db = get_db()
        items = await db.get_wishlist(category=category, tag=tag)
        if not items:
            if category or tag:
                return "No wishlist venues match that filter."
            return "Your wishlist is empty."

        lines = ["Your wishlist:"]
        for i, item in enumerate(items, 1):
            line = f"{i}. {item.venue_name}"
            if item.priority:
                line += f" ({item.priority} priority)"
            cached = await db.get_cached_venue(item.venue_id)
            if cached and cached.address:
                line += f"\n   {cached.address}"
            if item.category:
                line += f"\n   Category: {item.category}"
            if item.tags:
                line += f"\n   Tags: {', '.join(item.tags)}"
            if item.notes:
                line += f"\n   Notes: {item.notes}"
            if item.added_at:
                line += f"\n   Added: {item.added_at[:10]}"
            lines.append(line)
        return "\n\n".join(lines)

    @mcp.tool
    async def wishlist_labels() -> str:
        """List the categories and tags used on your wishlist."""
        db = get_db()
        categories = await db.get_wishlist_categories()
        tags = await db.get_wishlist_tags()
        if not categories and not tags:
            return "Your wishlist has no categories or tags yet."
        return "\n".join([
            f"Categories: {', '.join(categories) if categories else 'none'}",
            f"Tags: {', '.join(tags) if tags else 'none'}",
        ])
