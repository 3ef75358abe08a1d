from pathlib import Path

import pytest

from visitvibe.config import Settings, get_settings, reset_settings


class TestSettings:
    """Test Settings field defaults and computed properties."""

    def test_provider_keys_default_empty(self):
        s = Settings(_env_file=None)
        assert s.google_api_key == ""
        assert s.foursquare_api_key == ""
        assert s.mapbox_token == ""

    def test_provider_keys_from_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("FOURSQUARE_API_KEY", "fsq-key")
        monkeypatch.setenv("MAPBOX_TOKEN", "pk.test")
        s = Settings(_env_file=None)
        assert s.foursquare_api_key == "fsq-key"
        assert s.mapbox_token == "pk.test"

    def test_search_defaults(self):
        s = Settings(_env_file=None)
        assert s.search_radius_meters == 2000
        assert s.surrounding_radius_meters == 500
        assert s.use_fallback_venues is True

    def test_fallback_can_be_disabled(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("USE_FALLBACK_VENUES", "false")
        s = Settings(_env_file=None)
        assert s.use_fallback_venues is False

    def test_default_data_dir_is_project_relative(self):
        s = Settings(_env_file=None)
        expected = Path(__file__).resolve().parent.parent / "data"
        assert s.data_dir == expected

    def test_db_path_computed(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("DATA_DIR", "/srv/data")
        s = Settings(_env_file=None)
        assert s.db_path == Path("/srv/data/visitvibe.db")

    def test_default_transport_is_stdio(self):
        s = Settings(_env_file=None)
        assert s.mcp_transport == "stdio"
        assert s.mcp_auth_token is None


class TestProviderOrder:
    def test_default_order(self):
        s = Settings(_env_file=None)
        assert s.provider_order == ["foursquare", "google", "mapbox"]

    def test_custom_order_normalised(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("PLACES_PROVIDERS", " Mapbox, google ")
        s = Settings(_env_file=None)
        assert s.provider_order == ["mapbox", "google"]

    def test_unknown_and_duplicate_names_dropped(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("PLACES_PROVIDERS", "yelp,google,google,,foursquare")
        s = Settings(_env_file=None)
        assert s.provider_order == ["google", "foursquare"]

    def test_empty_string_gives_no_providers(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("PLACES_PROVIDERS", "")
        s = Settings(_env_file=None)
        assert s.provider_order == []


class TestMasterKey:
    def test_default_none(self):
        s = Settings(_env_file=None)
        assert s.visitvibe_master_key is None
        assert s.uses_master_key is False

    def test_set_from_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("VISITVIBE_MASTER_KEY", "master")
        s = Settings(_env_file=None)
        assert s.uses_master_key is True

    def test_empty_string_is_not_master_key_mode(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("VISITVIBE_MASTER_KEY", "")
        s = Settings(_env_file=None)
        assert s.uses_master_key is False


class TestGetSettings:
    """Test the lazy singleton get_settings / reset_settings."""

    def test_returns_same_instance(self):
        assert get_settings() is get_settings()

    def test_reset_creates_new_instance(self):
        first = get_settings()
        reset_settings()
        assert get_settings() is not first
