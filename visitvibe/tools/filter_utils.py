"""Filtering for visited venues and visit history."""

from collections import OrderedDict
from datetime import UTC, date, datetime, timedelta

from visitvibe.models.enums import RatingLevel, VisitFilter
from visitvibe.models.visit import Visit, VisitedVenue
from visitvibe.tools.rating_utils import get_rating_level

RECENT_DAYS = 30
HIGH_RATING = 4
LOW_RATING = 2

_ALL = "all"


def filter_venues(
    entries: list[VisitedVenue],
    rating_level: RatingLevel | str | None = None,
    category: str | None = None,
    tags: list[str] | None = None,
) -> list[VisitedVenue]:
    """Apply the ratings-page filters. ``"all"`` or None disables a filter.

    - rating level: matched against the latest visit's overall score;
      venues whose latest visit has no overall score are dropped.
    - category: must be one of the venue's categories.
    - tags: at least one selected tag must be on the latest visit.
    """
    result: list[VisitedVenue] = []
    for entry in entries:
        if rating_level and rating_level != _ALL:
            overall = entry.last_visit.rating.overall
            if not overall or get_rating_level(overall) != RatingLevel(rating_level):
                continue
        if category and category != _ALL and category not in entry.category:
            continue
        if tags and not any(t in entry.last_visit.tags for t in tags):
            continue
        result.append(entry)
    return result


def extract_categories(entries: list[VisitedVenue]) -> list[str]:
    """Unique categories across venues in first-seen order."""
    seen: dict[str, None] = {}
    for entry in entries:
        for cat in entry.category:
            seen.setdefault(cat, None)
    return list(seen)


def extract_tags(entries: list[VisitedVenue]) -> list[str]:
    """Unique tags from each venue's latest visit in first-seen order."""
    seen: dict[str, None] = {}
    for entry in entries:
        for tag in entry.last_visit.tags:
            seen.setdefault(tag, None)
    return list(seen)


def _visit_day(visit: Visit) -> date:
    return date.fromisoformat(visit.visit_date)


def filter_visits(
    visits: list[Visit],
    mode: VisitFilter | str = VisitFilter.ALL,
    date_from: str | None = None,
    date_to: str | None = None,
    now: datetime | None = None,
) -> list[Visit]:
    """Filter visit history by mode and an inclusive day range.

    Raises:
        ValueError: For an unknown *mode* or a malformed date bound.
    """
    mode = VisitFilter(mode)
    now = now or datetime.now(tz=UTC)
    result = list(visits)

    if mode is VisitFilter.RECENT:
        cutoff = (now - timedelta(days=RECENT_DAYS)).date()
        result = [v for v in result if _visit_day(v) >= cutoff]
    elif mode is VisitFilter.HIGHEST_RATED:
        result = [v for v in result if v.rating.overall >= HIGH_RATING]
    elif mode is VisitFilter.LOWEST_RATED:
        result = [v for v in result if v.rating.overall <= LOW_RATING]

    if date_from:
        start = date.fromisoformat(date_from)
        result = [v for v in result if _visit_day(v) >= start]
    if date_to:
        end = date.fromisoformat(date_to)
        result = [v for v in result if _visit_day(v) <= end]
    return result


def group_by_month(visits: list[Visit]) -> "OrderedDict[str, list[Visit]]":
    """Group visits under ``"Month YYYY"`` headings, newest month first."""
    groups: OrderedDict[str, list[Visit]] = OrderedDict()
    for visit in sorted(visits, key=lambda v: v.timestamp, reverse=True):
        label = _visit_day(visit).strftime("%B %Y")
        groups.setdefault(label, []).append(visit)
    return groups
