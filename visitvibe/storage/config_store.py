"""Provider keys kept encrypted in the ``app_config`` table.

In master-key mode the server reads place-provider credentials from here
rather than from the environment. Values are Fernet tokens whose key is
derived from the master key with PBKDF2.
"""

import base64
import hashlib
import logging

import aiosqlite
from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)

_SALT = b"visitvibe-config-v1"
_ITERATIONS = 100_000

# Settings attribute names that may be stored encrypted
PROVIDER_KEY_NAMES = ("google_api_key", "foursquare_api_key", "mapbox_token")


def derive_fernet_key(master_key: str) -> bytes:
    """PBKDF2-SHA256 of the master key, encoded for Fernet."""
    raw = hashlib.pbkdf2_hmac("sha256", master_key.encode(), _SALT, _ITERATIONS)
    return base64.urlsafe_b64encode(raw)


class ConfigStore:
    """Encrypted key/value access over a shared aiosqlite connection."""

    def __init__(self, connection: aiosqlite.Connection, master_key: str) -> None:
        self.connection = connection
        self._fernet = Fernet(derive_fernet_key(master_key))

    def _decrypt(self, key: str, token: bytes) -> str | None:
        try:
            return self._fernet.decrypt(token).decode()
        except InvalidToken:
            logger.warning("Could not decrypt config value %s (wrong master key?)", key)
            return None

    async def get(self, key: str) -> str | None:
        cursor = await self.connection.execute(
            "SELECT value FROM app_config WHERE key = ?", (key,)
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._decrypt(key, row[0])

    async def set(self, key: str, value: str) -> None:
        token = self._fernet.encrypt(value.encode())
        await self.connection.execute(
            "INSERT INTO app_config (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, token),
        )
        await self.connection.commit()

    async def delete(self, key: str) -> None:
        await self.connection.execute("DELETE FROM app_config WHERE key = ?", (key,))
        await self.connection.commit()

    async def has(self, key: str) -> bool:
        cursor = await self.connection.execute(
            "SELECT 1 FROM app_config WHERE key = ?", (key,)
        )
        return await cursor.fetchone() is not None

    async def get_all(self) -> dict[str, str]:
        """Every entry that decrypts cleanly; undecryptable ones are skipped."""
        cursor = await self.connection.execute("SELECT key, value FROM app_config")
        values: dict[str, str] = {}
        for key, token in await cursor.fetchall():
            value = self._decrypt(key, token)
            if value is not None:
                values[key] = value
        return values

    async def configured_providers(self) -> list[str]:
        """Names of the provider keys that have a stored value."""
        stored = await self.get_all()
        return [name for name in PROVIDER_KEY_NAMES if stored.get(name)]
