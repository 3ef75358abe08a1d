"""Failure handling shared by the place-provider clients.

Every provider call is wrapped twice: :data:`resilient_request` retries
transient failures with backoff, and a per-provider :class:`CircuitBreaker`
stops hammering a provider that keeps failing so venue search can move on
to the next one (or to the bundled venues) straight away.
"""

import logging
import time
from enum import StrEnum

from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)


# ── Errors ───────────────────────────────────────────────────────────────────


class APIError(Exception):
    """A place provider could not answer.

    Args:
        message: Human-readable description.
        provider: Display name of the provider, when known.
        status_code: HTTP status that caused the error, when there was one.
    """

    def __init__(
        self, message: str, provider: str | None = None, status_code: int | None = None
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class TransientAPIError(APIError):
    """Worth retrying: rate limits, 5xx responses, network failures."""


class PermanentAPIError(APIError):
    """Retrying will not help: 4xx responses and provider error bodies."""


class AuthError(PermanentAPIError):
    """The provider key is missing, invalid or not allowed this API."""


class SchemaChangeError(PermanentAPIError):
    """The payload no longer has the shape the parser expects."""


class CircuitOpenError(APIError):
    """The provider's breaker is open, so the call was not made."""


TRANSIENT_STATUS_CODES = {429, 500, 502, 503, 504}


# ── Response checks ──────────────────────────────────────────────────────────


def classify_response(response: object, provider: str | None = None) -> None:
    """Raise the matching :class:`APIError` for a failed HTTP status.

    Args:
        response: Anything with a ``status_code`` (e.g. httpx.Response).
            Objects without one, and 2xx/3xx statuses, pass silently.
        provider: Display name carried on the raised error.
    """
    status = getattr(response, "status_code", None)
    if status is None or status < 400:
        return

    label = provider or "Provider"
    if status == 401:
        raise AuthError(f"{label} rejected the credentials (HTTP 401)", provider, status)
    if status in TRANSIENT_STATUS_CODES or status >= 500:
        raise TransientAPIError(f"{label} is struggling (HTTP {status})", provider, status)
    raise PermanentAPIError(f"{label} refused the request (HTTP {status})", provider, status)


def require_keys(
    data: object, required: set[str], label: str, provider: str | None = None
) -> dict:
    """Return *data* as a dict once it is known to carry *required* keys.

    Raises:
        SchemaChangeError: If the payload is not a dict or keys are missing.
    """
    if not isinstance(data, dict):
        raise SchemaChangeError(f"Expected JSON object for {label}", provider)
    missing = required - data.keys()
    if missing:
        raise SchemaChangeError(f"Missing keys in {label}: {sorted(missing)}", provider)
    return data


# ── Retry ────────────────────────────────────────────────────────────────────


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "Retrying %s (attempt %d failed: %s)",
        getattr(retry_state.fn, "__qualname__", "request"),
        retry_state.attempt_number,
        exc,
    )


resilient_request = retry(
    retry=retry_if_exception_type(TransientAPIError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    before_sleep=_log_retry,
    reraise=True,
)
"""Retry a coroutine up to three times on :class:`TransientAPIError`."""


# ── Circuit breaker ──────────────────────────────────────────────────────────


class CircuitState(StrEnum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Stop calling a provider after repeated failures.

    After ``fail_max`` consecutive failures the breaker opens and sheds
    calls. Once ``reset_timeout`` seconds have passed one trial call is let
    through (half-open): success closes the breaker, failure re-opens it.

    Args:
        name: Breaker name, used in logs and in the shed-call message.
        fail_max: Consecutive failures before opening.
        reset_timeout: Seconds to stay open before the trial call.
    """

    def __init__(self, name: str, fail_max: int = 5, reset_timeout: float = 60.0) -> None:
        self.name = name
        self.fail_max = fail_max
        self.reset_timeout = reset_timeout
        self.reset()

    def reset(self) -> None:
        """Close the breaker and forget past failures."""
        self._state = CircuitState.CLOSED
        self._fail_count = 0
        self._last_failure_time = 0.0

    @property
    def state(self) -> CircuitState:
        if (
            self._state == CircuitState.OPEN
            and time.monotonic() - self._last_failure_time >= self.reset_timeout
        ):
            self._state = CircuitState.HALF_OPEN
        return self._state

    def _record_failure(self, was_half_open: bool) -> None:
        self._fail_count += 1
        self._last_failure_time = time.monotonic()
        if was_half_open or self._fail_count >= self.fail_max:
            if self._state != CircuitState.OPEN:
                logger.warning(
                    "Circuit '%s' opened after %d consecutive failures",
                    self.name,
                    self._fail_count,
                )
            self._state = CircuitState.OPEN

    def _record_success(self) -> None:
        if self._state != CircuitState.CLOSED:
            logger.info("Circuit '%s' closed", self.name)
        self._fail_count = 0
        self._state = CircuitState.CLOSED

    async def call_async(self, coro):  # type: ignore[no-untyped-def]
        """Await *coro* unless the breaker is open.

        Raises:
            CircuitOpenError: If the breaker is open. *coro* is closed
                without running.
        """
        current = self.state
        if current == CircuitState.OPEN:
            coro.close()
            raise CircuitOpenError(f"Circuit '{self.name}' is open")

        try:
            result = await coro
        except Exception:
            self._record_failure(was_half_open=current == CircuitState.HALF_OPEN)
            raise
        self._record_success()
        return result


google_places_breaker = CircuitBreaker("google_places")
foursquare_breaker = CircuitBreaker("foursquare")
mapbox_breaker = CircuitBreaker("mapbox")
