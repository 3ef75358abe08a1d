import pytest

from tests.factories import make_rating, make_visit
from visitvibe.models.enums import RatingCategory, RatingLevel
from visitvibe.models.visit import VisitRating
from visitvibe.tools.rating_utils import (
    average_overall,
    compute_overall,
    get_rating_level,
    latest_visit_per_venue,
    rank_by_category,
    rating_breakdown,
    top_rated,
    with_overall,
)


class TestComputeOverall:
    def test_mean_of_given_ratings(self):
        assert compute_overall(VisitRating(food=5, service=4, ambiance=3)) == 4.0

    def test_zero_means_not_rated(self):
        assert compute_overall(VisitRating(food=5, value=0, cleanliness=4)) == 4.5

    def test_rounds_to_one_decimal(self):
        assert compute_overall(VisitRating(food=5, service=4, ambiance=4)) == 4.3

    def test_nothing_rated(self):
        assert compute_overall(VisitRating()) == 0.0

    def test_ignores_existing_overall(self):
        assert compute_overall(VisitRating(food=2, overall=5)) == 2.0

    def test_with_overall(self):
        rating = with_overall(VisitRating(food=4, service=2))
        assert rating.overall == 3.0
        assert rating.food == 4


class TestGetRatingLevel:
    @pytest.mark.parametrize("score,level", [
        (5, RatingLevel.GOOD),
        (4, RatingLevel.GOOD),
        (3.9, RatingLevel.MID),
        (3, RatingLevel.MID),
        (2.9, RatingLevel.BAD),
        (0, RatingLevel.BAD),
    ])
    def test_thresholds(self, score, level):
        assert get_rating_level(score) == level


class TestAggregates:
    def test_average_overall(self):
        visits = [make_visit(rating=make_rating(overall=4)), make_visit(rating=make_rating(overall=3))]
        assert average_overall(visits) == 3.5
        assert average_overall([]) == 0.0

    def test_rating_breakdown_skips_unrated(self):
        visits = [
            make_visit(rating=VisitRating(food=5, service=3)),
            make_visit(rating=VisitRating(food=3)),
        ]
        assert rating_breakdown(visits) == {"food": 4.0, "service": 3.0}


class TestLatestVisitPerVenue:
    def test_one_entry_per_venue_newest_first(self):
        old = make_visit(venue_id="a", timestamp="2026-01-01T12:00:00+00:00")
        new = make_visit(venue_id="a", timestamp="2026-02-01T12:00:00+00:00")
        other = make_visit(venue_id="b", timestamp="2026-01-15T12:00:00+00:00")
        entries = latest_visit_per_venue([old, other, new], {"a": ["Cafe"]})
        assert [e.venue_id for e in entries] == ["a", "b"]
        assert entries[0].last_visit.id == new.id
        assert entries[0].visit_count == 2
        assert entries[0].category == ["Cafe"]
        assert entries[1].category == []


class TestRankByCategory:
    def test_orders_by_latest_visit_value(self):
        visits = [
            make_visit(venue_id="a", rating=make_rating(food=3)),
            make_visit(venue_id="b", rating=make_rating(food=5)),
            make_visit(venue_id="c", rating=make_rating(food=4)),
        ]
        ranked = rank_by_category(visits, RatingCategory.FOOD)
        assert [e.venue_id for e in ranked] == ["b", "c", "a"]

    def test_string_category(self):
        visits = [make_visit(venue_id="a", rating=make_rating(service=2))]
        assert rank_by_category(visits, "service")[0].venue_id == "a"

    def test_unknown_category(self):
        with pytest.raises(ValueError):
            rank_by_category([], "vibes")


class TestTopRated:
    def test_mean_across_visits(self):
        visits = [
            make_visit(venue_id="a", venue_name="A", rating=make_rating(overall=5)),
            make_visit(venue_id="a", venue_name="A", rating=make_rating(overall=3)),
            make_visit(venue_id="b", venue_name="B", rating=make_rating(overall=4.5)),
            make_visit(venue_id="c", venue_name="C", rating=make_rating(overall=0)),
        ]
        assert top_rated(visits) == [("b", "B", 4.5, 1), ("a", "A", 4.0, 2)]

    def test_ties_prefer_more_visits_then_name(self):
        visits = [
            make_visit(venue_id="z", venue_name="Zed", rating=make_rating(overall=4)),
            make_visit(venue_id="y", venue_name="Yam", rating=make_rating(overall=4)),
            make_visit(venue_id="x", venue_name="Xo", rating=make_rating(overall=4)),
            make_visit(venue_id="x", venue_name="Xo", rating=make_rating(overall=4)),
        ]
        assert [r[0] for r in top_rated(visits)] == ["x", "y", "z"]

    def test_limit(self):
        visits = [make_visit(venue_id=str(i)) for i in range(8)]
        assert len(top_rated(visits, limit=3)) == 3
