import json
from unittest.mock import patch

from fastmcp import Client, FastMCP

from tests.factories import make_dish, make_rating, make_visit
from visitvibe.models.enums import DishType
from visitvibe.storage.archive import export_visits
from visitvibe.storage.database import DatabaseManager
from visitvibe.tools.history import register_history_tools


async def _call(db, name: str, args: dict | None = None) -> str:
    test_mcp = FastMCP("test")
    register_history_tools(test_mcp)
    with patch("visitvibe.tools.history.get_db", return_value=db):
        async with Client(test_mcp) as client:
            result = await client.call_tool(name, args or {})
    return result.content[0].text


async def _seed(db):
    jan = make_visit(
        venue_id="v1", venue_name="Café Delicious",
        timestamp="2026-01-12T12:00:00+00:00", rating=make_rating(overall=2), tags=["brunch"],
    )
    feb = make_visit(
        venue_id="v2", venue_name="Sushi Paradise",
        timestamp="2026-02-14T19:30:00+00:00", rating=make_rating(overall=4.5),
    )
    await db.save_visit(jan)
    await db.save_visit(feb)
    return jan, feb


class TestRegisterHistoryTools:
    def test_registration_succeeds(self):
        test_mcp = FastMCP("test")
        register_history_tools(test_mcp)


class TestVisitHistory:
    async def test_empty(self, db):
        assert await _call(db, "visit_history") == "You haven't checked in anywhere yet."

    async def test_grouped_by_month(self, db):
        jan, feb = await _seed(db)
        text = await _call(db, "visit_history")
        assert text.startswith("2 visits:")
        assert text.index("February 2026") < text.index("January 2026")
        assert "- 2026-02-14  Sushi Paradise  4.5 (good)" in text
        assert "- 2026-01-12  Café Delicious  2.0 (bad)  [brunch]" in text
        assert f"ID: {jan.id}" in text

    async def test_filter_mode(self, db):
        await _seed(db)
        text = await _call(db, "visit_history", {"filter": "Highest Rated"})
        assert text.startswith("1 visit:")
        assert "Sushi Paradise" in text
        assert "Café Delicious" not in text

    async def test_date_range(self, db):
        await _seed(db)
        text = await _call(db, "visit_history", {"date_from": "2026-02-01"})
        assert "January 2026" not in text

    async def test_no_match(self, db):
        await _seed(db)
        text = await _call(db, "visit_history", {"date_to": "2025-12-31"})
        assert text == "No visits match that filter."

    async def test_unknown_filter(self, db):
        text = await _call(db, "visit_history", {"filter": "best"})
        assert text.startswith("Unknown filter 'best'")
        assert "'highest rated'" in text


class TestVisitDetails:
    async def test_full_details(self, db):
        visit = make_visit(
            venue_name="Pizza Corner",
            rating=make_rating(food=5, service=3, ambiance=0, overall=4),
            dishes=[
                make_dish(name="Margherita", rating=5, price=14, tags=["classic"], notes="Thin"),
                make_dish(name="Lemonade", rating=3, price=None, type=DishType.DRINK),
            ],
            notes="Busy on Fridays",
            tags=["casual"],
            photos=["a.jpg", "b.jpg"],
            would_visit_again=False,
            total_bill=31.5,
        )
        await db.save_visit(visit)
        text = await _call(db, "visit_details", {"visit_id": visit.id})
        lines = text.splitlines()
        assert lines[0] == "Pizza Corner on 2026-02-14"
        assert lines[1] == "Overall: 4.0 (good)"
        assert "  Food: 5.0" in lines
        assert "  Service: 3.0" in lines
        assert not any(line.startswith("  Ambiance") for line in lines)
        assert "  - Margherita (dish) 5.0★, $14.00 [classic]" in lines
        assert "    Thin" in lines
        assert "  - Lemonade (drink) 3.0★" in lines
        assert "Notes: Busy on Fridays" in lines
        assert "Tags: casual" in lines
        assert "Photos: 2" in lines
        assert "Would visit again: no" in lines
        assert "Total bill: $31.50" in lines

    async def test_missing(self, db):
        assert await _call(db, "visit_details", {"visit_id": "nope"}) == (
            "No visit found with ID 'nope'."
        )


class TestDeleteVisit:
    async def test_delete(self, db):
        visit = make_visit(dishes=[make_dish()])
        await db.save_visit(visit)
        assert await _call(db, "delete_visit", {"visit_id": visit.id}) == "Visit deleted."
        assert await db.get_visit(visit.id) is None

    async def test_missing(self, db):
        assert await _call(db, "delete_visit", {"visit_id": "nope"}) == (
            "No visit found with ID 'nope'."
        )


class TestExportImport:
    async def test_round_trip_into_new_database(self, db):
        jan, feb = await _seed(db)
        payload = await _call(db, "export_visit_history")
        assert json.loads(payload)["compressed"] is False

        async with DatabaseManager(":memory:") as other:
            text = await _call(other, "import_visit_history", {"payload": payload})
            assert text == "Imported 2 visits."
            assert {v.id for v in await other.get_visits()} == {jan.id, feb.id}

    async def test_import_overwrites_same_id(self, db):
        visit = make_visit(notes="before")
        await db.save_visit(visit)
        payload = await _call(db, "export_visit_history")
        await db.save_visit(visit.model_copy(update={"notes": "edited"}))

        assert await _call(db, "import_visit_history", {"payload": payload}) == (
            "Imported 1 visit."
        )
        assert (await db.get_visit(visit.id)).notes == "before"
        assert len(await db.get_visits()) == 1

    async def test_export_too_large(self, db):
        await _seed(db)
        text = await _call(db, "export_visit_history", {"max_bytes": 10})
        assert "over the 10 byte limit" in text
        assert "Raise max_bytes" in text

    async def test_import_is_all_or_nothing(self, db):
        dish = make_dish()
        payload = export_visits([make_visit(dishes=[dish]), make_visit(dishes=[dish])])
        text = await _call(db, "import_visit_history", {"payload": payload})
        assert text.startswith("Import failed, no visits were imported:")
        assert await db.get_visits() == []

    async def test_import_bad_payload(self, db):
        text = await _call(db, "import_visit_history", {"payload": "{nope"})
        assert text.startswith("Could not read that visit archive:")
        assert await db.get_visits() == []
