"""Export and import of visit history as a portable JSON document.

Small histories are written as plain JSON. When the plain document would
exceed ``max_bytes`` the visit list is gzipped and base64-encoded inside
the envelope instead, so large histories with many photo URLs and notes
still fit a single payload.
"""

import base64
import gzip
import json
import logging

from pydantic import TypeAdapter, ValidationError

from visitvibe.models.visit import Visit

logger = logging.getLogger(__name__)

ARCHIVE_VERSION = 1
DEFAULT_MAX_BYTES = 1024 * 1024

_visits_adapter = TypeAdapter(list[Visit])


class ArchiveError(Exception):
    """Base error for visit archive problems."""


class ArchiveTooLargeError(ArchiveError):
    """The history does not fit the size limit even when compressed."""


class ArchiveFormatError(ArchiveError):
    """The payload is not a visit archive this version can read."""


def _dump_visits(visits: list[Visit]) -> str:
    return _visits_adapter.dump_json(visits).decode()


def export_visits(visits: list[Visit], max_bytes: int = DEFAULT_MAX_BYTES) -> str:
    """Serialize *visits* into an archive envelope.

    Raises:
        ArchiveTooLargeError: If even the compressed envelope exceeds *max_bytes*.
    """
    visits_json = _dump_visits(visits)
    plain = (
        f'{{"version":{ARCHIVE_VERSION},"compressed":false,"visits":{visits_json}}}'
    )
    if len(plain.encode()) <= max_bytes:
        return plain

    packed = base64.b64encode(gzip.compress(visits_json.encode())).decode()
    compressed = json.dumps(
        {"version": ARCHIVE_VERSION, "compressed": True, "data": packed},
        separators=(",", ":"),
    )
    size = len(compressed.encode())
    if size > max_bytes:
        raise ArchiveTooLargeError(
            f"Visit history is {size} bytes compressed, over the {max_bytes} byte limit"
        )
    logger.info(
        "Compressed visit archive from %d to %d bytes", len(plain.encode()), size
    )
    return compressed


def import_visits(payload: str) -> list[Visit]:
    """Parse an archive produced by :func:`export_visits`.

    Raises:
        ArchiveFormatError: On invalid JSON, an unknown version, a corrupt
            compressed block, or visits that fail validation.
    """
    try:
        envelope = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise ArchiveFormatError(f"Archive is not valid JSON: {exc}") from exc
    if not isinstance(envelope, dict):
        raise ArchiveFormatError("Archive must be a JSON object")
    if envelope.get("version") != ARCHIVE_VERSION:
        raise ArchiveFormatError(f"Unsupported archive version: {envelope.get('version')}")

    if envelope.get("compressed"):
        data = envelope.get("data")
        if not isinstance(data, str):
            raise ArchiveFormatError("Compressed archive has no data block")
        try:
            raw_visits = json.loads(gzip.decompress(base64.b64decode(data, validate=True)))
        # ValueError covers bad base64, JSON and UTF-8
        except (ValueError, OSError, EOFError) as exc:
            raise ArchiveFormatError(f"Compressed archive is corrupt: {exc}") from exc
    else:
        raw_visits = envelope.get("visits")
        if raw_visits is None:
            raise ArchiveFormatError("Archive has no visits")

    try:
        return _visits_adapter.validate_python(raw_visits)
    except ValidationError as exc:
        raise ArchiveFormatError(f"Archive contains invalid visits: {exc}") from exc
