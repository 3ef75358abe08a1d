"""User-friendly error messages and safe tool wrapper."""

import logging

from visitvibe.clients.resilience import (
    AuthError,
    CircuitOpenError,
    PermanentAPIError,
    SchemaChangeError,
    TransientAPIError,
)
from visitvibe.storage.archive import ArchiveFormatError, ArchiveTooLargeError

logger = logging.getLogger(__name__)


def get_user_message(error: Exception, context: dict | None = None) -> str:
    """Translate an exception into a message fit to show the user.

    Args:
        error: The exception raised by a tool.
        context: Optional extra info, e.g. ``{"provider": "Foursquare"}``.
            Without it, the provider named on the error is used.
    """
    provider = (context or {}).get("provider") or getattr(error, "provider", None)
    provider = provider or "the places service"

    if isinstance(error, AuthError):
        return (
            f"The API key for {provider} was rejected. "
            "Check it with `python -m visitvibe.configure` or your .env file."
        )
    if isinstance(error, SchemaChangeError):
        return f"{provider} returned data in an unexpected format. Please try again later."
    if isinstance(error, CircuitOpenError):
        return f"{provider} is temporarily unavailable. Please try again in a few minutes."
    if isinstance(error, TransientAPIError):
        return f"There was a temporary issue reaching {provider}. Please try again shortly."
    if isinstance(error, PermanentAPIError):
        return f"Could not complete the request to {provider}. {error}"
    if isinstance(error, ArchiveTooLargeError):
        return f"{error}. Raise max_bytes or delete old visits first."
    if isinstance(error, ArchiveFormatError):
        return f"Could not read that visit archive: {error}"
    return "Something went wrong. Please try again."


async def safe_tool_wrapper(
    func,  # type: ignore[no-untyped-def]
    *args: object,
    context: dict | None = None,
    **kwargs: object,
) -> str:
    """Await *func* and return its result, or a friendly message on error."""
    try:
        return await func(*args, **kwargs)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Tool error in %s", func.__name__)
        return get_user_message(exc, context)
