"""Response caching keyed by request fingerprint."""

from ai_call_orchestrator.cache.key import FingerprintGenerator
from ai_call_orchestrator.cache.store import (
    CacheConfig,
    CacheEntry,
    CacheStats,
    ResponseCache,
)

__all__ = [
    "CacheConfig",
    "CacheEntry",
    "CacheStats",
    "FingerprintGenerator",
    "ResponseCache",
]
