"""Bearer token authentication for the streamable-http transport.

VisitVibe serves a single owner, so one pre-shared token is enough. Setting
``auth=`` on the FastMCP instance makes the library enforce it on the MCP
endpoint.
"""

import hmac

from fastmcp.server.auth import AccessToken, TokenVerifier

MIN_TOKEN_LENGTH = 32
OWNER_CLIENT_ID = "visitvibe-owner"


class BearerTokenVerifier(TokenVerifier):
    """Accept exactly one bearer token.

    Raises:
        ValueError: If *token* is missing or shorter than 32 characters.
    """

    def __init__(self, token: str) -> None:
        if not token or len(token) < MIN_TOKEN_LENGTH:
            raise ValueError(
                f"MCP auth token must be at least {MIN_TOKEN_LENGTH} characters, "
                f"got {len(token) if token else 0}"
            )
        super().__init__()
        self._token = token

    async def verify_token(self, token: str) -> AccessToken | None:
        # Constant-time comparison
        if hmac.compare_digest(token.encode(), self._token.encode()):
            return AccessToken(token=token, client_id=OWNER_CLIENT_ID, scopes=[])
        return None
