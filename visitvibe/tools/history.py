"""MCP tools for visit history: browsing, details, deletion, export/import."""

import logging

import aiosqlite
from fastmcp import FastMCP

from visitvibe.models.enums import DishType, VisitFilter
from visitvibe.models.visit import Visit
from visitvibe.server import get_db
from visitvibe.storage.archive import (
    DEFAULT_MAX_BYTES,
    ArchiveError,
    export_visits,
    import_visits,
)
from visitvibe.tools.error_messages import get_user_message
from visitvibe.tools.filter_utils import filter_visits, group_by_month
from visitvibe.tools.rating_utils import SUB_RATINGS, get_rating_level

logger = logging.getLogger(__name__)

_FILTER_NAMES = ", ".join(f"'{f.value}'" for f in VisitFilter)


def _summary_line(visit: Visit) -> str:
    overall = visit.rating.overall
    line = f"- {visit.visit_date}  {visit.venue_name}"
    if overall:
        line += f"  {overall:.1f} ({get_rating_level(overall)})"
    if visit.tags:
        line += f"  [{', '.join(visit.tags)}]"
    return line + f"\n  ID: {visit.id}"


def register_history_tools(mcp: FastMCP) -> None:  # noqa: C901
    """Register visit history tools on the MCP server."""

    @mcp.tool
    async def visit_history(
        filter: str = "all",
        date_from: str | None = None,
        date_to: str | None = None,
    ) -> str:
        """Show your visits grouped by month, newest first.

        Args:
            filter: "all", "recent" (last 30 days), "highest rated"
                    (4 and up) or "lowest rated" (2 and below).
            date_from: Only visits on or after this date (YYYY-MM-DD).
            date_to: Only visits on or before this date (YYYY-MM-DD).

        Returns:
            Visits under month headings with their overall scores.
        """
        visits = await get_db().get_visits()
        try:
            shown = filter_visits(visits, filter.strip().lower(), date_from, date_to)
        except ValueError:
            return (
                f"Unknown filter '{filter}' or bad date. "
                f"Filters: {_FILTER_NAMES}; dates as YYYY-MM-DD."
            )

        if not visits:
            return "You haven't checked in anywhere yet."
        if not shown:
            return "No visits match that filter."

        sections = [f"{len(shown)} visit{'s' if len(shown) != 1 else ''}:"]
        for month, month_visits in group_by_month(shown).items():
            body = "\n".join(_summary_line(v) for v in month_visits)
            sections.append(f"{month}\n{body}")
        return "\n\n".join(sections)

    @mcp.tool
    async def visit_details(visit_id: str) -> str:
        """Show everything recorded for one visit.

        Args:
            visit_id: The visit ID (from visit_history or check_in).

        Returns:
            Ratings per category, dishes, notes, photos and tags.
        """
        visit = await get_db().get_visit(visit_id.strip())
        if visit is None:
            return f"No visit found with ID '{visit_id}'."

        overall = visit.rating.overall
        lines = [
            f"{visit.venue_name} on {visit.visit_date}",
            f"Overall: {overall:.1f} ({get_rating_level(overall)})",
        ]
        for name in SUB_RATINGS:
            score = getattr(visit.rating, name)
            if score:
                lines.append(f"  {name.capitalize()}: {score:.1f}")
        if visit.dishes:
            lines.append("Dishes:")
            for dish in visit.dishes:
                label = "drink" if dish.type == DishType.DRINK else "dish"
                entry = f"  - {dish.name} ({label}) {dish.rating:.1f}★"
                if dish.price is not None:
                    entry += f", ${dish.price:.2f}"
                if dish.tags:
                    entry += f" [{', '.join(dish.tags)}]"
                if dish.notes:
                    entry += f"\n    {dish.notes}"
                lines.append(entry)
        if visit.notes:
            lines.append(f"Notes: {visit.notes}")
        if visit.tags:
            lines.append(f"Tags: {', '.join(visit.tags)}")
        if visit.photos:
            lines.append(f"Photos: {len(visit.photos)}")
        if visit.would_visit_again is not None:
            lines.append(f"Would visit again: {'yes' if visit.would_visit_again else 'no'}")
        if visit.total_bill is not None:
            lines.append(f"Total bill: ${visit.total_bill:.2f}")
        return "\n".join(lines)

    @mcp.tool
    async def delete_visit(visit_id: str) -> str:
        """Delete a visit and its dish ratings.

        Args:
            visit_id: The visit ID to delete.
        """
        deleted = await get_db().delete_visit(visit_id.strip())
        if not deleted:
            return f"No visit found with ID '{visit_id}'."
        return "Visit deleted."

    @mcp.tool
    async def export_visit_history(max_bytes: int | None = None) -> str:
        """Export all visits as a JSON archive you can keep or import later.

        Large histories are gzip-compressed and base64-encoded inside the
        archive automatically.

        Args:
            max_bytes: Size limit for the archive (default 1 MiB).

        Returns:
            The archive text.
        """
        visits = await get_db().get_visits()
        try:
            return export_visits(visits, max_bytes or DEFAULT_MAX_BYTES)
        except ArchiveError as exc:
            return get_user_message(exc)

    @mcp.tool
    async def import_visit_history(payload: str) -> str:
        """Import visits from an archive made by export_visit_history.

        Visits with an ID that already exists are overwritten.

        Args:
            payload: The archive text.
        """
        try:
            visits = import_visits(payload)
        except ArchiveError as exc:
            return get_user_message(exc)

        try:
            await get_db().save_visits(visits)
        except aiosqlite.Error as exc:
            logger.warning("Visit import rolled back: %s", exc)
            return f"Import failed, no visits were imported: {exc}"
        logger.info("Imported %d visits", len(visits))
        return f"Imported {len(visits)} visit{'s' if len(visits) != 1 else ''}."
