"""Tests for visitvibe.auth: BearerTokenVerifier."""

import pytest

from visitvibe.auth import OWNER_CLIENT_ID, BearerTokenVerifier

VALID_TOKEN = "v" * 48


class TestBearerTokenVerifier:
    """BearerTokenVerifier unit tests."""

    def test_short_token_raises(self):
        with pytest.raises(ValueError, match="at least 32 characters"):
            BearerTokenVerifier("short")

    def test_empty_token_raises(self):
        with pytest.raises(ValueError, match="got 0"):
            BearerTokenVerifier("")

    def test_exactly_32_chars_accepted(self):
        BearerTokenVerifier("x" * 32)

    async def test_valid_token_returns_owner_access_token(self):
        verifier = BearerTokenVerifier(VALID_TOKEN)
        result = await verifier.verify_token(VALID_TOKEN)
        assert result is not None
        assert result.client_id == OWNER_CLIENT_ID
        assert result.scopes == []

    async def test_invalid_token_returns_none(self):
        verifier = BearerTokenVerifier(VALID_TOKEN)
        assert await verifier.verify_token("not-the-token-not-the-token-not-it") is None

    async def test_prefix_of_token_rejected(self):
        verifier = BearerTokenVerifier(VALID_TOKEN)
        assert await verifier.verify_token(VALID_TOKEN[:-1]) is None
