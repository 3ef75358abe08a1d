import json
import logging
from datetime import UTC, datetime
from pathlib import Path

import aiosqlite

from visitvibe.models.enums import DishType, PlacesProvider, WishlistPriority
from visitvibe.models.profile import ProfilePreferences, UserProfile
from visitvibe.models.venue import Coordinates, SavedLocation, Venue
from visitvibe.models.visit import DishRating, Visit, VisitRating
from visitvibe.models.wishlist import WishlistItem

logger = logging.getLogger(__name__)

_RATING_COLUMNS = ("food", "service", "ambiance", "value", "facilities", "cleanliness", "overall")


class DatabaseManager:
    """Async SQLite database manager with typed repository methods.

    All SQL in the application lives in this class. Other layers
    call typed methods that accept and return Pydantic models.
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = str(db_path)
        self.connection: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """Open connection, enable WAL mode and foreign keys, execute schema."""
        self.connection = await aiosqlite.connect(self.db_path)
        self.connection.row_factory = aiosqlite.Row
        schema_path = Path(__file__).parent / "schema.sql"
        await self.connection.executescript(schema_path.read_text())
        await self.connection.execute("PRAGMA journal_mode=WAL")
        await self.connection.execute("PRAGMA foreign_keys=ON")
        await self.connection.commit()
        logger.info("Database initialized at %s", self.db_path)

    async def close(self) -> None:
        """Close the database connection."""
        if self.connection:
            await self.connection.close()
            self.connection = None

    async def __aenter__(self) -> "DatabaseManager":
        await self.initialize()
        return self

    async def __aexit__(
        self, exc_type: type | None, exc_val: Exception | None, exc_tb: object
    ) -> None:
        await self.close()

    async def execute(self, sql: str, params: tuple = ()) -> aiosqlite.Cursor:
        """Execute a single SQL statement and commit."""
        assert self.connection is not None
        cursor = await self.connection.execute(sql, params)
        await self.connection.commit()
        return cursor

    async def fetch_one(self, sql: str, params: tuple = ()) -> dict | None:
        """Execute a query and return a single row as a dict, or None."""
        assert self.connection is not None
        cursor = await self.connection.execute(sql, params)
        row = await cursor.fetchone()
        if row is None:
            return None
        return dict(row)

    async def fetch_all(self, sql: str, params: tuple = ()) -> list[dict]:
        """Execute a query and return all rows as list of dicts."""
        assert self.connection is not None
        cursor = await self.connection.execute(sql, params)
        rows = await cursor.fetchall()
        return [dict(r) for r in rows]

    # ── Profile ───────────────────────────────────────────────────────────

    async def get_profile(self) -> UserProfile | None:
        row = await self.fetch_one("SELECT * FROM user_profile WHERE id = 1")
        if not row:
            return None
        return UserProfile(
            name=row["name"],
            email=row["email"],
            display_name=row["display_name"],
            bio=row["bio"],
            photo=row["photo"],
            tags=json.loads(row["tags"]),
            preferences=ProfilePreferences(**json.loads(row["preferences"])),
        )

    async def save_profile(self, profile: UserProfile) -> None:
        await self.execute(
            """INSERT OR REPLACE INTO user_profile
               (id, name, email, display_name, bio, photo, tags, preferences, updated_at)
               VALUES (1, ?, ?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)""",
            (
                profile.name,
                profile.email,
                profile.display_name,
                profile.bio,
                profile.photo,
                json.dumps(profile.tags),
                profile.preferences.model_dump_json(),
            ),
        )

    # ── Saved Locations ───────────────────────────────────────────────────

    async def save_location(self, location: SavedLocation) -> None:
        await self.execute(
            """INSERT INTO saved_locations (name, address, lat, lng)
               VALUES (?, ?, ?, ?)
               ON CONFLICT(name) DO UPDATE SET
                   address = excluded.address,
                   lat = excluded.lat,
                   lng = excluded.lng""",
            (location.name, location.address, location.lat, location.lng),
        )

    async def get_location(self, name: str) -> SavedLocation | None:
        row = await self.fetch_one(
            "SELECT * FROM saved_locations WHERE name = ?", (name.strip(),)
        )
        if not row:
            return None
        return SavedLocation(**row)

    async def get_locations(self) -> list[SavedLocation]:
        rows = await self.fetch_all("SELECT * FROM saved_locations ORDER BY name")
        return [SavedLocation(**r) for r in rows]

    # ── Venue Cache ───────────────────────────────────────────────────────

    def _row_to_venue(self, row: dict) -> Venue:
        """Convert a database row dict to a Venue model."""
        return Venue(
            id=row["id"],
            name=row["name"],
            address=row["address"],
            coordinates=Coordinates(lat=row["lat"], lng=row["lng"]),
            photos=json.loads(row["photos"]),
            website=row["website"],
            hours=row["hours"],
            phone_number=row["phone_number"],
            price_level=row["price_level"],
            category=json.loads(row["category"]),
            rating=row["rating"],
            source=PlacesProvider(row["source"]) if row["source"] else None,
            cached_at=row["cached_at"],
        )

    async def cache_venue(self, venue: Venue) -> None:
        await self.execute(
            """INSERT OR REPLACE INTO venue_cache
               (id, name, address, lat, lng, photos, website, hours,
                phone_number, price_level, category, rating, source, cached_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)""",
            (
                venue.id,
                venue.name,
                venue.address,
                venue.coordinates.lat,
                venue.coordinates.lng,
                json.dumps(venue.photos),
                venue.website,
                venue.hours,
                venue.phone_number,
                venue.price_level,
                json.dumps(venue.category),
                venue.rating,
                venue.source.value if venue.source else None,
            ),
        )

    async def get_cached_venue(self, venue_id: str) -> Venue | None:
        row = await self.fetch_one("SELECT * FROM venue_cache WHERE id = ?", (venue_id,))
        if not row:
            return None
        return self._row_to_venue(row)

    async def search_cached_venues(self, name: str) -> list[Venue]:
        """Case-insensitive substring match on venue name, exact matches first."""
        rows = await self.fetch_all(
            """SELECT * FROM venue_cache
               WHERE LOWER(name) LIKE LOWER(?)
               ORDER BY LOWER(name) = LOWER(?) DESC, name""",
            (f"%{name.strip()}%", name.strip()),
        )
        return [self._row_to_venue(r) for r in rows]

    # ── Visits ────────────────────────────────────────────────────────────

    def _row_to_dish(self, row: dict) -> DishRating:
        return DishRating(
            id=row["id"],
            name=row["name"],
            photo=row["photo"],
            price=row["price"],
            rating=row["rating"],
            tags=json.loads(row["tags"]),
            notes=row["notes"],
            type=DishType(row["type"]),
        )

    def _row_to_visit(self, row: dict, dishes: list[DishRating]) -> Visit:
        """Convert a database row dict (plus its dishes) to a Visit model."""
        rating = VisitRating(**{c: row[f"{c}_rating"] for c in _RATING_COLUMNS})
        would_visit_again = row["would_visit_again"]
        return Visit(
            id=row["id"],
            venue_id=row["venue_id"],
            venue_name=row["venue_name"],
            timestamp=row["timestamp"],
            rating=rating,
            dishes=dishes,
            photos=json.loads(row["photos"]),
            notes=row["notes"],
            tags=json.loads(row["tags"]),
            would_visit_again=None if would_visit_again is None else bool(would_visit_again),
            total_bill=row["total_bill"],
        )

    async def _load_visits(self, rows: list[dict]) -> list[Visit]:
        visits = []
        for row in rows:
            dish_rows = await self.fetch_all(
                "SELECT * FROM visit_dishes WHERE visit_id = ? ORDER BY position",
                (row["id"],),
            )
            visits.append(self._row_to_visit(row, [self._row_to_dish(d) for d in dish_rows]))
        return visits

    async def save_visit(self, visit: Visit) -> str:
        """Insert or replace a visit and its dishes in one transaction."""
        await self.save_visits([visit])
        return visit.id

    async def save_visits(self, visits: list[Visit]) -> None:
        """Insert or replace several visits; all are written or none are."""
        assert self.connection is not None
        try:
            for visit in visits:
                await self._write_visit(visit)
        except Exception:
            await self.connection.rollback()
            raise
        await self.connection.commit()

    async def _write_visit(self, visit: Visit) -> None:
        assert self.connection is not None
        rating = visit.rating
        await self.connection.execute(
            """INSERT OR REPLACE INTO visits
               (id, venue_id, venue_name, timestamp, food_rating, service_rating,
                ambiance_rating, value_rating, facilities_rating,
                cleanliness_rating, overall_rating, photos, notes, tags,
                would_visit_again, total_bill)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                visit.id,
                visit.venue_id,
                visit.venue_name,
                visit.timestamp,
                *(getattr(rating, c) for c in _RATING_COLUMNS),
                json.dumps(visit.photos),
                visit.notes,
                json.dumps(visit.tags),
                visit.would_visit_again,
                visit.total_bill,
            ),
        )
        await self.connection.execute(
            "DELETE FROM visit_dishes WHERE visit_id = ?", (visit.id,)
        )
        for position, dish in enumerate(visit.dishes):
            await self.connection.execute(
                """INSERT INTO visit_dishes
                   (id, visit_id, position, name, photo, price, rating, tags, notes, type)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    dish.id,
                    visit.id,
                    position,
                    dish.name,
                    dish.photo,
                    dish.price,
                    dish.rating,
                    json.dumps(dish.tags),
                    dish.notes,
                    dish.type.value,
                ),
            )

    async def get_visit(self, visit_id: str) -> Visit | None:
        row = await self.fetch_one("SELECT * FROM visits WHERE id = ?", (visit_id,))
        if not row:
            return None
        visits = await self._load_visits([row])
        return visits[0]

    async def get_visits(self, venue_id: str | None = None) -> list[Visit]:
        """All visits (optionally for one venue), newest first."""
        if venue_id is None:
            rows = await self.fetch_all("SELECT * FROM visits ORDER BY timestamp DESC")
        else:
            rows = await self.fetch_all(
                "SELECT * FROM visits WHERE venue_id = ? ORDER BY timestamp DESC",
                (venue_id,),
            )
        return await self._load_visits(rows)

    async def get_latest_visit(self, venue_id: str) -> Visit | None:
        row = await self.fetch_one(
            "SELECT * FROM visits WHERE venue_id = ? ORDER BY timestamp DESC LIMIT 1",
            (venue_id,),
        )
        if not row:
            return None
        visits = await self._load_visits([row])
        return visits[0]

    async def find_latest_visit_by_venue_name(self, name: str) -> Visit | None:
        """Most recent visit whose venue name contains *name*."""
        row = await self.fetch_one(
            """SELECT * FROM visits
               WHERE LOWER(venue_name) LIKE LOWER(?)
               ORDER BY timestamp DESC LIMIT 1""",
            (f"%{name.strip()}%",),
        )
        if not row:
            return None
        visits = await self._load_visits([row])
        return visits[0]

    async def delete_visit(self, visit_id: str) -> bool:
        cursor = await self.execute("DELETE FROM visits WHERE id = ?", (visit_id,))
        return cursor.rowcount > 0

    # ── Wishlist ──────────────────────────────────────────────────────────

    def _row_to_wishlist_item(self, row: dict) -> WishlistItem:
        return WishlistItem(
            venue_id=row["venue_id"],
            venue_name=row["venue_name"],
            added_at=row["added_at"],
            category=row["category"],
            tags=json.loads(row["tags"]),
            notes=row["notes"],
            priority=WishlistPriority(row["priority"]) if row["priority"] else None,
        )

    async def add_to_wishlist(self, item: WishlistItem) -> bool:
        """Add a venue to the wishlist.

        Returns:
            False if the venue was already on the wishlist (left unchanged).
        """
        added_at = item.added_at or datetime.now(tz=UTC).isoformat()
        cursor = await self.execute(
            """INSERT OR IGNORE INTO wishlist
               (venue_id, venue_name, added_at, category, tags, notes, priority)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                item.venue_id,
                item.venue_name,
                added_at,
                item.category,
                json.dumps(item.tags),
                item.notes,
                item.priority.value if item.priority else None,
            ),
        )
        return cursor.rowcount > 0

    async def update_wishlist_item(self, venue_id: str, **updates: object) -> bool:
        """Apply partial updates (category, tags, notes, priority) to an item.

        Returns:
            False if the venue is not on the wishlist.
        """
        current = await self.get_wishlist_item(venue_id)
        if current is None:
            return False
        allowed = {"category", "tags", "notes", "priority"}
        changes = {k: v for k, v in updates.items() if k in allowed and v is not None}
        merged = current.model_copy(update=changes)
        # Re-validate so string priorities become the enum
        merged = WishlistItem.model_validate(merged.model_dump())
        await self.execute(
            """UPDATE wishlist
               SET category = ?, tags = ?, notes = ?, priority = ?
               WHERE venue_id = ?""",
            (
                merged.category,
                json.dumps(merged.tags),
                merged.notes,
                merged.priority.value if merged.priority else None,
                venue_id,
            ),
        )
        return True

    async def remove_from_wishlist(self, venue_id: str) -> bool:
        cursor = await self.execute("DELETE FROM wishlist WHERE venue_id = ?", (venue_id,))
        return cursor.rowcount > 0

    async def is_on_wishlist(self, venue_id: str) -> bool:
        row = await self.fetch_one("SELECT 1 FROM wishlist WHERE venue_id = ?", (venue_id,))
        return row is not None

    async def get_wishlist_item(self, venue_id: str) -> WishlistItem | None:
        row = await self.fetch_one("SELECT * FROM wishlist WHERE venue_id = ?", (venue_id,))
        if not row:
            return None
        return self._row_to_wishlist_item(row)

    async def get_wishlist(
        self, category: str | None = None, tag: str | None = None
    ) -> list[WishlistItem]:
        """Wishlist items in the order they were added, optionally filtered."""
        rows = await self.fetch_all("SELECT * FROM wishlist ORDER BY added_at, rowid")
        items = [self._row_to_wishlist_item(r) for r in rows]
        if category:
            items = [
                i for i in items
                if i.category and i.category.lower() == category.strip().lower()
            ]
        if tag:
            wanted = tag.strip().lower()
            items = [i for i in items if wanted in (t.lower() for t in i.tags)]
        return items

    async def get_wishlist_categories(self) -> list[str]:
        """Unique wishlist categories, first seen first."""
        categories: list[str] = []
        for item in await self.get_wishlist():
            if item.category and item.category not in categories:
                categories.append(item.category)
        return categories

    async def get_wishlist_tags(self) -> list[str]:
        """Unique wishlist tags, first seen first."""
        tags: list[str] = []
        for item in await self.get_wishlist():
            for tag in item.tags:
                if tag not in tags:
                    tags.append(tag)
        return tags
