"""Rating arithmetic: overall scores, rating levels and venue rankings."""

from visitvibe.models.enums import RatingCategory, RatingLevel
from visitvibe.models.visit import Visit, VisitedVenue, VisitRating

# Sub-ratings that feed the overall score
SUB_RATINGS = ("food", "service", "ambiance", "value", "facilities", "cleanliness")


def compute_overall(rating: VisitRating) -> float:
    """Mean of the sub-ratings that were given (non-zero), to one decimal.

    Returns 0.0 when nothing was rated.
    """
    given = [getattr(rating, name) for name in SUB_RATINGS if getattr(rating, name) > 0]
    if not given:
        return 0.0
    return round(sum(given) / len(given), 1)


def with_overall(rating: VisitRating) -> VisitRating:
    """Copy of *rating* with ``overall`` recomputed from its sub-ratings."""
    return rating.model_copy(update={"overall": compute_overall(rating)})


def get_rating_level(score: float) -> RatingLevel:
    if score >= 4:
        return RatingLevel.GOOD
    if score >= 3:
        return RatingLevel.MID
    return RatingLevel.BAD


def average_overall(visits: list[Visit]) -> float:
    """Mean overall rating across visits, 0.0 for none."""
    if not visits:
        return 0.0
    return round(sum(v.rating.overall for v in visits) / len(visits), 1)


def rating_breakdown(visits: list[Visit]) -> dict[str, float]:
    """Per-category mean, counting only visits that rated the category."""
    breakdown: dict[str, float] = {}
    for name in SUB_RATINGS:
        given = [getattr(v.rating, name) for v in visits if getattr(v.rating, name) > 0]
        if given:
            breakdown[name] = round(sum(given) / len(given), 1)
    return breakdown


def latest_visit_per_venue(
    visits: list[Visit], categories: dict[str, list[str]] | None = None
) -> list[VisitedVenue]:
    """One entry per venue with its most recent visit, newest first.

    Args:
        visits: Visits in any order.
        categories: Optional venue id → categories, from the venue cache.
    """
    categories = categories or {}
    entries: dict[str, VisitedVenue] = {}
    for visit in sorted(visits, key=lambda v: v.timestamp, reverse=True):
        entry = entries.get(visit.venue_id)
        if entry is None:
            entries[visit.venue_id] = VisitedVenue(
                venue_id=visit.venue_id,
                venue_name=visit.venue_name,
                category=categories.get(visit.venue_id, []),
                last_visit=visit,
            )
        else:
            entry.visit_count += 1
    return list(entries.values())


def rank_by_category(
    visits: list[Visit], category: RatingCategory | str = RatingCategory.OVERALL
) -> list[VisitedVenue]:
    """Venues ordered by their latest visit's score in *category*, best first.

    Raises:
        ValueError: If *category* is not a rating category.
    """
    field = RatingCategory(category).value
    entries = latest_visit_per_venue(visits)
    return sorted(entries, key=lambda e: getattr(e.last_visit.rating, field), reverse=True)


def top_rated(visits: list[Visit], limit: int = 5) -> list[tuple[str, str, float, int]]:
    """Venues by mean overall rating across all their visits.

    Returns:
        ``(venue_id, venue_name, mean_overall, visit_count)`` tuples, best first.
    """
    scores: dict[str, list[float]] = {}
    names: dict[str, str] = {}
    for visit in visits:
        if visit.rating.overall <= 0:
            continue
        scores.setdefault(visit.venue_id, []).append(visit.rating.overall)
        names.setdefault(visit.venue_id, visit.venue_name)
    ranked = [
        (venue_id, names[venue_id], round(sum(s) / len(s), 1), len(s))
        for venue_id, s in scores.items()
    ]
    ranked.sort(key=lambda r: (-r[2], -r[3], r[1]))
    return ranked[:limit]
