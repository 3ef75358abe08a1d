import pytest

from visitvibe.clients.resilience import foursquare_breaker, google_places_breaker, mapbox_breaker
from visitvibe.config import reset_settings
from visitvibe.storage.database import DatabaseManager
from visitvibe.tools.search import _clear_search_cache


@pytest.fixture(autouse=True)
def _set_test_env(monkeypatch: pytest.MonkeyPatch):
    """No provider keys by default, so searches use the bundled venues."""
    for name in (
        "GOOGLE_API_KEY",
        "FOURSQUARE_API_KEY",
        "MAPBOX_TOKEN",
        "VISITVIBE_MASTER_KEY",
        "MCP_AUTH_TOKEN",
        "PLACES_PROVIDERS",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture(autouse=True)
def _reset_shared_state():
    """Breakers and the search cache are module-level; start each test clean."""
    for breaker in (google_places_breaker, foursquare_breaker, mapbox_breaker):
        breaker.reset()
    _clear_search_cache()
    yield
    _clear_search_cache()


@pytest.fixture
def tmp_data_dir(tmp_path):
    """Provide a temporary data directory for tests that touch the filesystem."""
    return tmp_path / "data"


@pytest.fixture
async def db():
    """In-memory SQLite database with schema applied."""
    manager = DatabaseManager(":memory:")
    await manager.initialize()
    yield manager
    await manager.close()
