"""
In-memory response cache with TTL expiry and oldest-first eviction.

Expired entries are dropped lazily when touched. A miss or an expiry is
never an error.
"""

from __future__ import annotations

import asyncio
import os
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ai_call_orchestrator.errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import Callable


@dataclass
class CacheConfig:
    """Cache configuration.

    Attributes:
        enabled: Whether caching is enabled
        max_entries: Maximum number of entries
        ttl_seconds: Time-to-live of an entry
    """

    enabled: bool = True
    max_entries: int = 100
    ttl_seconds: float = 3600.0

    def __post_init__(self) -> None:
        if self.max_entries < 1:
            raise ConfigError("max_entries must be >= 1", key="max_entries")
        if self.ttl_seconds <= 0:
            raise ConfigError("ttl_seconds must be positive", key="ttl_seconds")

    @classmethod
    def disabled(cls) -> CacheConfig:
        """Create disabled cache config."""
        return cls(enabled=False)

    @classmethod
    def from_env(cls) -> CacheConfig:
        """Create configuration from environment variables."""
        return cls(
            max_entries=int(os.getenv("AI_ORCH_CACHE_MAX_ENTRIES", "100")),
            ttl_seconds=float(os.getenv("AI_ORCH_CACHE_TTL_SECS", "3600")),
        )


@dataclass
class CacheEntry:
    """A cache entry.

    Attributes:
        key: Fingerprint of the request
        value: Cached value
        created_at: Monotonic creation timestamp
    """

    key: str
    value: Any
    created_at: float

    def is_expired(self, now: float, ttl: float) -> bool:
        return now - self.created_at >= ttl


@dataclass
class CacheStats:
    """Cache statistics.

    Attributes:
        hits: Number of cache hits
        misses: Number of cache misses (expired entries included)
        sets: Number of cache sets
        evictions: Entries removed for capacity or expiry
    """

    hits: int = 0
    misses: int = 0
    sets: int = 0
    evictions: int = 0

    @property
    def total_requests(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Get cache hit rate (0.0 to 1.0)."""
        total = self.total_requests
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "evictions": self.evictions,
            "total_requests": self.total_requests,
            "hit_rate": self.hit_rate,
        }

    def reset(self) -> None:
        """Reset statistics."""
        self.hits = 0
        self.misses = 0
        self.sets = 0
        self.evictions = 0


class ResponseCache:
    """Bounded TTL cache keyed by request fingerprint.

    Example:
        >>> cache = ResponseCache(CacheConfig(max_entries=100, ttl_seconds=3600))
        >>> await cache.put(key, {"summary": "..."})
        >>> entry = await cache.get(key)
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or CacheConfig()
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()
        self._stats = CacheStats()

    @property
    def config(self) -> CacheConfig:
        return self._config

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    @property
    def size(self) -> int:
        return len(self._entries)

    @property
    def stats(self) -> CacheStats:
        return self._stats

    async def get(self, key: str) -> CacheEntry | None:
        """Look up a live entry.

        Returns:
            The entry, or None when missing, expired or caching is disabled
        """
        if not self._config.enabled:
            return None

        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._stats.misses += 1
                return None

            if entry.is_expired(self._clock(), self._config.ttl_seconds):
                del self._entries[key]
                self._stats.misses += 1
                self._stats.evictions += 1
                return None

            self._stats.hits += 1
            return entry

    async def put(self, key: str, value: Any) -> None:
        """Store a value, evicting the oldest entry when full.

        Replacing an existing key never evicts another entry.
        """
        if not self._config.enabled:
            return

        async with self._lock:
            if key not in self._entries and len(self._entries) >= self._config.max_entries:
                oldest = min(self._entries.values(), key=lambda e: e.created_at)
                del self._entries[oldest.key]
                self._stats.evictions += 1

            self._entries[key] = CacheEntry(key=key, value=value, created_at=self._clock())
            self._stats.sets += 1

    async def invalidate(self, key: str) -> bool:
        """Remove an entry.

        Returns:
            True if an entry was removed
        """
        async with self._lock:
            return self._entries.pop(key, None) is not None

    async def clear(self) -> None:
        """Remove all entries."""
        async with self._lock:
            self._entries.clear()

    def get_stats(self) -> dict[str, Any]:
        return {
            **self._stats.to_dict(),
            "size": self.size,
            "max_entries": self._config.max_entries,
            "ttl_seconds": self._config.ttl_seconds,
            "enabled": self._config.enabled,
        }

    def __repr__(self) -> str:
        return f"ResponseCache(size={self.size}/{self._config.max_entries})"
