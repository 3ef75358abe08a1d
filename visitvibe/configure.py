"""Interactive key setup: ``python -m visitvibe.configure``

Prompts for place-provider keys, stores them encrypted in the SQLite
database under a freshly generated master key, and prints the MCP client
config snippet that passes that master key to the server.
"""

import asyncio
import base64
import getpass
import json
import os
from pathlib import Path

import aiosqlite

from visitvibe.storage.config_store import ConfigStore

_PROVIDER_PROMPTS = (
    ("foursquare_api_key", "Foursquare API key"),
    ("google_api_key", "Google Places API key"),
    ("mapbox_token", "Mapbox access token"),
)


def _prompt(label: str, *, secret: bool = False, required: bool = True) -> str:
    """Prompt until a value is entered (or once, if not *required*)."""
    suffix = "" if required else " (optional, press Enter to skip)"
    while True:
        prompt_text = f"{label}{suffix}: "
        value = (getpass.getpass(prompt_text) if secret else input(prompt_text)).strip()
        if value or not required:
            return value
        print(f"  {label} is required.")


def _generate_master_key() -> str:
    """Random 32-byte master key, base64-encoded."""
    return base64.urlsafe_b64encode(os.urandom(32)).decode()


def client_config(master_key: str, project_dir: Path) -> dict:
    """MCP client config block that launches the server with *master_key*."""
    return {
        "mcpServers": {
            "visitvibe": {
                "command": str(project_dir / ".venv" / "bin" / "python"),
                "args": ["-m", "visitvibe"],
                "cwd": str(project_dir),
                "env": {"VISITVIBE_MASTER_KEY": master_key},
            }
        }
    }


async def _run_configure(data_dir: Path) -> dict[str, str]:
    """Collect keys, store them encrypted and print the client config.

    Returns:
        The keys that were stored, by settings name.
    """
    print()
    print("VisitVibe - provider setup")
    print("=" * 40)
    print("Venue search uses every provider you configure, in the order")
    print("Foursquare, Google, Mapbox. With none, sample venues are shown.")
    print()

    keys: dict[str, str] = {}
    for name, label in _PROVIDER_PROMPTS:
        value = _prompt(label, secret=True, required=False)
        if value:
            keys[name] = value

    if not keys:
        print()
        print("No keys entered; nothing stored.")
        return keys

    master_key = _generate_master_key()
    data_dir.mkdir(parents=True, exist_ok=True)
    db_path = data_dir / "visitvibe.db"
    schema_sql = (Path(__file__).parent / "storage" / "schema.sql").read_text()

    async with aiosqlite.connect(str(db_path)) as conn:
        await conn.executescript(schema_sql)
        await conn.commit()
        store = ConfigStore(conn, master_key)
        for name, value in keys.items():
            await store.set(name, value)

    print()
    print(f"Stored {len(keys)} key(s) encrypted in {db_path}")
    print()
    print("Add this to your MCP client config:")
    print()
    project_dir = Path(__file__).resolve().parent.parent
    print(json.dumps(client_config(master_key, project_dir), indent=2))
    print()
    return keys


def main() -> None:
    """Entry point for ``python -m visitvibe.configure``."""
    data_dir = Path(os.environ.get("DATA_DIR", "./data"))
    asyncio.run(_run_configure(data_dir))


if __name__ == "__main__":  # pragma: no cover
    main()
