"""The VisitVibe MCP server: lifespan-managed storage, logging and tool wiring."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from visitvibe.storage.config_store import ConfigStore
from visitvibe.storage.database import DatabaseManager

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 3

_db: DatabaseManager | None = None
_config_store: ConfigStore | None = None


def get_db() -> DatabaseManager:
    """The open DatabaseManager; only available while the server runs."""
    if _db is None:
        raise RuntimeError("Database not initialized. Server lifespan has not started.")
    return _db


def get_config_store() -> ConfigStore | None:
    return _config_store


def _reset_db() -> None:
    global _db  # noqa: PLW0603
    _db = None


def _reset_config_store() -> None:
    global _config_store  # noqa: PLW0603
    _config_store = None


async def resolve_credential(key: str) -> str | None:
    """Look up a provider key by its settings name.

    The encrypted config store wins when the server runs with a master
    key; otherwise (or when the store has no entry) the value comes from
    the environment / ``.env`` settings. Blank values count as missing.
    """
    if _config_store is not None:
        stored = await _config_store.get(key)
        if stored:
            return stored

    from visitvibe.config import get_settings

    return getattr(get_settings(), key, None) or None


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[dict]:
    global _db, _config_store  # noqa: PLW0603
    from visitvibe.config import get_settings

    settings = get_settings()
    db = DatabaseManager(settings.db_path)
    await db.initialize()
    _db = db

    if settings.uses_master_key and db.connection is not None:
        _config_store = ConfigStore(db.connection, settings.visitvibe_master_key)  # type: ignore[arg-type]
        logger.info("Provider keys will be read from the encrypted store")

    try:
        yield {"db": db}
    finally:
        _config_store = None
        _db = None
        await db.close()
        logger.info("Database closed")


mcp = FastMCP("visitvibe", lifespan=app_lifespan)


@mcp.custom_route("/health", methods=["GET"])
async def health_check(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


def setup_logging(log_level: str, data_dir: Path) -> None:
    """Send logs to stderr and to a rotating ``<data_dir>/logs/server.log``.

    Safe to call twice: handlers already on the root logger are not added
    again. Unknown level names fall back to INFO.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    handlers: list[logging.Handler] = []
    # RotatingFileHandler is a StreamHandler subclass, hence the exact type check
    if not any(type(h) is logging.StreamHandler for h in root.handlers):
        handlers.append(logging.StreamHandler())

    log_dir = data_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    if not any(isinstance(h, RotatingFileHandler) for h in root.handlers):
        handlers.append(
            RotatingFileHandler(
                log_dir / "server.log",
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_FILE_BACKUPS,
            )
        )

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root.addHandler(handler)


def _register_tools(server: FastMCP) -> None:
    from visitvibe.tools.checkin import register_checkin_tools
    from visitvibe.tools.history import register_history_tools
    from visitvibe.tools.profile import register_profile_tools
    from visitvibe.tools.ratings import register_rating_tools
    from visitvibe.tools.search import register_search_tools
    from visitvibe.tools.wishlist import register_wishlist_tools

    for register in (
        register_search_tools,
        register_checkin_tools,
        register_history_tools,
        register_rating_tools,
        register_wishlist_tools,
        register_profile_tools,
    ):
        register(server)


def initialize() -> FastMCP:
    """Prepare the data directory, logging, auth and tools; return the server."""
    from visitvibe.config import get_settings

    settings = get_settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    setup_logging(settings.log_level, settings.data_dir)

    if settings.mcp_auth_token:
        from visitvibe.auth import BearerTokenVerifier

        mcp.auth = BearerTokenVerifier(settings.mcp_auth_token)
        logger.info("Bearer token auth enabled")

    _register_tools(mcp)
    logger.info(
        "VisitVibe ready (providers: %s)",
        ", ".join(settings.provider_order) or "none, sample venues only",
    )
    return mcp


def run() -> None:
    """Initialize and serve over the configured transport."""
    app = initialize()

    from visitvibe.config import get_settings

    settings = get_settings()
    if settings.mcp_transport == "streamable-http":
        logger.info("Serving over HTTP on %s:%d", settings.mcp_host, settings.mcp_port)
        app.run(transport="streamable-http", host=settings.mcp_host, port=settings.mcp_port)
    else:
        app.run()
