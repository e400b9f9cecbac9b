"""
TTLCache - Memoizes slow-changing reference collections with expiration.

Features:
- Entries keyed by resource name, servable while younger than the TTL
- Wholesale replacement on set, never merged
- No background eviction: expired entries stay until overwritten or invalidated
- Injectable clock for deterministic expiry
"""

import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Generic, TypeVar

from loguru import logger

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """A single cache entry with metadata."""

    key: str
    value: T
    fetched_at: float

    def age(self, now: float) -> float:
        return now - self.fetched_at

    def is_valid(self, now: float, ttl: float) -> bool:
        """Check if entry can be served without a network call."""
        return self.age(now) < ttl


class TTLCache:
    """
    Cache for reference data with a fixed time-to-live.

    Shared by every controller of a data provider. There is no lock: two
    readers missing on the same key may both fetch and both set, and the
    last write wins.

    Usage:
        cache = TTLCache(ttl=timedelta(minutes=5))

        positions = cache.get("positions")
        if positions is None:
            positions = await fetch_positions()
            cache.set("positions", positions)
    """

    def __init__(
        self,
        ttl: timedelta | float = timedelta(minutes=5),
        clock: Callable[[], float] = time.monotonic,
        debug: bool = False,
    ):
        if isinstance(ttl, timedelta):
            ttl = ttl.total_seconds()
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self._ttl = float(ttl)
        self._clock = clock
        self._entries: dict[str, CacheEntry[Any]] = {}
        self._debug = debug
        self._stats = CacheStats()

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, key: str) -> Any | None:
        """Return the cached value if still valid, None otherwise."""
        entry = self._entries.get(key)
        if entry is None:
            self._stats.misses += 1
            self._log(f"MISS: {key}")
            return None

        if not entry.is_valid(self._clock(), self._ttl):
            self._stats.expired += 1
            self._log(f"EXPIRED: {key}")
            return None

        self._stats.hits += 1
        self._log(f"HIT: {key}")
        return entry.value

    def get_entry(self, key: str) -> CacheEntry[Any] | None:
        """Return the raw entry, valid or not."""
        return self._entries.get(key)

    def set(self, key: str, value: Any) -> None:
        """Store value under key, replacing any prior entry."""
        self._entries[key] = CacheEntry(key=key, value=value, fetched_at=self._clock())
        self._log(f"SET: {key} (TTL: {self._ttl}s)")

    def invalidate(self, key: str) -> bool:
        """Drop a single entry."""
        if key in self._entries:
            del self._entries[key]
            self._log(f"INVALIDATE: {key}")
            return True
        return False

    def clear(self) -> None:
        """Clear all cache entries."""
        count = len(self._entries)
        self._entries.clear()
        self._log(f"CLEAR: {count} entries removed")

    def __contains__(self, key: object) -> bool:
        entry = self._entries.get(key)  # type: ignore[arg-type]
        return entry is not None and entry.is_valid(self._clock(), self._ttl)

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> "CacheStats":
        """Get cache statistics."""
        self._stats.size = len(self._entries)
        return self._stats

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[TTLCache] {message}")


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    expired: int = 0
    size: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses + self.expired
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "expired": self.expired,
            "size": self.size,
            "hit_rate": f"{self.hit_rate:.2%}",
        }
