from pathlib import Path

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

KNOWN_PROVIDERS = ("foursquare", "google", "mapbox")


class Settings(BaseSettings):
    """Application configuration loaded from environment variables and .env file.

    Provider keys are all optional: a provider without a key is skipped by
    venue search, and with no provider configured searches fall back to the
    bundled sample venues.

    When ``VISITVIBE_MASTER_KEY`` is set, provider keys may instead live in
    the encrypted ``app_config`` table (see ``python -m visitvibe.configure``).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Master key: when set, provider keys can come from the encrypted DB
    visitvibe_master_key: str | None = None

    # Place providers
    google_api_key: str = ""
    foursquare_api_key: str = ""
    mapbox_token: str = ""
    places_providers: str = "foursquare,google,mapbox"

    # Search behaviour
    search_radius_meters: int = 2000
    surrounding_radius_meters: int = 500
    use_fallback_venues: bool = True

    # Remote hosting: transport, bind address, and auth
    mcp_transport: str = "stdio"
    mcp_host: str = "0.0.0.0"
    mcp_port: int = 8000
    mcp_auth_token: str | None = None

    # Paths & logging: project-relative so the server works regardless of
    # the process working directory.
    data_dir: Path = Path(__file__).resolve().parent.parent / "data"
    log_level: str = "INFO"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def db_path(self) -> Path:
        return self.data_dir / "visitvibe.db"

    @property
    def provider_order(self) -> list[str]:
        """Configured providers in search order, unknown names dropped."""
        order: list[str] = []
        for name in self.places_providers.split(","):
            name = name.strip().lower()
            if name in KNOWN_PROVIDERS and name not in order:
                order.append(name)
        return order

    @property
    def uses_master_key(self) -> bool:
        """Return True when running in master-key (encrypted DB) mode."""
        return bool(self.visitvibe_master_key)


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the cached Settings singleton. Created on first call."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Clear the cached settings. Used in tests."""
    global _settings  # noqa: PLW0603
    _settings = None
