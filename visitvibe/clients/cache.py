"""In-memory TTL cache for venue search results."""

import time
from collections import OrderedDict


def search_cache_key(
    providers: list[str],
    lat: float,
    lng: float,
    radius_m: int,
    query: str | None = None,
    page_token: str | None = None,
) -> str:
    """Build a cache key for a nearby/text search.

    Coordinates are rounded to ~10 m (4 decimals) so small GPS jitter
    reuses the same entry.
    """
    parts = [
        "+".join(providers),
        f"{lat:.4f},{lng:.4f}",
        str(radius_m),
        (query or "").strip().lower(),
        page_token or "",
    ]
    return "|".join(parts)


class CacheMetrics:
    """Tracks cache hit/miss statistics."""

    def __init__(self) -> None:
        self.hits = 0
        self.misses = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total


class InMemoryCache:
    """TTL cache with LRU eviction.

    Each entry expires ``ttl_seconds`` after it was written.

    Args:
        max_size: Maximum number of entries before the least recently
            used one is evicted.
        ttl_seconds: Lifetime of an entry.
    """

    def __init__(self, max_size: int = 100, ttl_seconds: float = 300) -> None:
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._store: OrderedDict[str, tuple[float, object]] = OrderedDict()
        self.metrics = CacheMetrics()

    def get(self, key: str) -> object | None:
        """Return the cached value, or None if absent or expired."""
        entry = self._store.get(key)
        if entry is None:
            self.metrics.misses += 1
            return None

        expires_at, value = entry
        if time.monotonic() >= expires_at:
            del self._store[key]
            self.metrics.misses += 1
            return None

        self._store.move_to_end(key)
        self.metrics.hits += 1
        return value

    def set(self, key: str, value: object) -> None:
        """Store a value, evicting the least recently used entry if full."""
        expires_at = time.monotonic() + self.ttl_seconds
        if key in self._store:
            self._store.move_to_end(key)
        elif len(self._store) >= self.max_size:
            self._store.popitem(last=False)
        self._store[key] = (expires_at, value)

    def invalidate(self, key: str) -> bool:
        """Remove a specific key. Returns True if the key existed."""
        return self._store.pop(key, None) is not None

    def clear(self) -> None:
        self._store.clear()

    @property
    def size(self) -> int:
        return len(self._store)
