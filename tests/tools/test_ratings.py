from unittest.mock import patch

from fastmcp import Client, FastMCP

from tests.factories import make_rating, make_venue, make_visit
from visitvibe.tools.ratings import register_rating_tools, visited_venues


async def _call(db, name: str, args: dict | None = None) -> str:
    test_mcp = FastMCP("test")
    register_rating_tools(test_mcp)
    with patch("visitvibe.tools.ratings.get_db", return_value=db):
        async with Client(test_mcp) as client:
            result = await client.call_tool(name, args or {})
    return result.content[0].text


async def _seed(db):
    await db.cache_venue(make_venue(id="a", name="Alpha", category=["Cafe", "Bakery"]))
    await db.cache_venue(make_venue(id="b", name="Bravo", category=["Bar"]))
    await db.save_visit(make_visit(
        venue_id="a", venue_name="Alpha", timestamp="2026-01-01T12:00:00+00:00",
        rating=make_rating(food=2, overall=2.5), tags=["old"],
    ))
    await db.save_visit(make_visit(
        venue_id="a", venue_name="Alpha", timestamp="2026-02-01T12:00:00+00:00",
        rating=make_rating(food=5, service=3, overall=4.5), tags=["brunch"],
    ))
    await db.save_visit(make_visit(
        venue_id="b", venue_name="Bravo", timestamp="2026-01-15T12:00:00+00:00",
        rating=make_rating(food=3, service=5, overall=3.2), tags=["late night"],
    ))
    await db.save_visit(make_visit(
        venue_id="c", venue_name="Charlie", timestamp="2026-01-20T12:00:00+00:00",
        rating=make_rating(food=1, service=1, overall=1.5),
    ))


class TestRegisterRatingTools:
    def test_registration_succeeds(self):
        test_mcp = FastMCP("test")
        register_rating_tools(test_mcp)


class TestVisitedVenues:
    async def test_categories_from_cache(self, db):
        await _seed(db)
        entries = {e.venue_id: e for e in await visited_venues(db)}
        assert entries["a"].category == ["Cafe", "Bakery"]
        assert entries["a"].visit_count == 2
        assert entries["c"].category == []


class TestMyRatings:
    async def test_overall(self, db):
        await _seed(db)
        lines = (await _call(db, "my_ratings")).splitlines()
        assert lines[0] == "Top overall picks:"
        assert lines[1] == "1. Alpha: 4.5 (good), 2 visits"
        assert lines[2] == "2. Bravo: 3.2 (mid)"
        assert lines[4] == "All venues by overall:"
        assert lines[7] == "3. Charlie: 1.5 (bad)"

    async def test_by_category_uses_latest_visit(self, db):
        await _seed(db)
        lines = (await _call(db, "my_ratings", {"category": "Service"})).splitlines()
        assert lines[0] == "Top service picks:"
        assert lines[1] == "1. Bravo: 5.0"
        assert lines[2] == "2. Alpha: 3.0, 2 visits"

    async def test_unknown_category(self, db):
        text = await _call(db, "my_ratings", {"category": "vibes"})
        assert text.startswith("Unknown rating category 'vibes'.")

    async def test_no_visits(self, db):
        assert (await _call(db, "my_ratings")).startswith("No ratings yet.")


class TestTopRatedVenues:
    async def test_average_across_visits(self, db):
        await _seed(db)
        lines = (await _call(db, "top_rated_venues", {"limit": 2})).splitlines()
        assert lines == [
            "Your top-rated venues:",
            "1. Alpha: 3.5 (mid) from 2 visits",
            "2. Bravo: 3.2 (mid) from 1 visit",
        ]

    async def test_none(self, db):
        assert await _call(db, "top_rated_venues") == "No rated visits yet."


class TestFilterVisitedVenues:
    async def test_by_level(self, db):
        await _seed(db)
        text = await _call(db, "filter_visited_venues", {"rating_level": "good"})
        assert text.startswith("1 matching venue:")
        assert "Alpha" in text
        assert "Category: Cafe, Bakery" in text
        assert "Tags: brunch" in text

    async def test_by_category_and_tags(self, db):
        await _seed(db)
        text = await _call(db, "filter_visited_venues", {"category": "Bar", "tags": "late night, x"})
        assert text.startswith("1 matching venue:")
        assert "Bravo" in text

    async def test_tags_use_latest_visit(self, db):
        await _seed(db)
        text = await _call(db, "filter_visited_venues", {"tags": "old"})
        assert text == "No visited venues match those filters."

    async def test_all_level(self, db):
        await _seed(db)
        assert (await _call(db, "filter_visited_venues", {"rating_level": "all"})).startswith(
            "3 matching venues:"
        )

    async def test_unknown_level(self, db):
        text = await _call(db, "filter_visited_venues", {"rating_level": "great"})
        assert text.startswith("Unknown rating level 'great'.")

    async def test_no_visits(self, db):
        assert await _call(db, "filter_visited_venues") == "You haven't visited any venues yet."


class TestVenueFilterOptions:
    async def test_options(self, db):
        await _seed(db)
        lines = (await _call(db, "venue_filter_options")).splitlines()
        assert lines == [
            "Rating levels: good, mid, bad",
            "Categories: Cafe, Bakery, Bar",
            "Tags: brunch, late night",
        ]

    async def test_no_visits(self, db):
        assert await _call(db, "venue_filter_options") == "You haven't visited any venues yet."
