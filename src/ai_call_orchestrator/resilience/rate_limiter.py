"""
Sliding-window rate limiter.

Keeps the timestamps of requests made within the trailing window and admits a
new request only while fewer than ``max_per_minute`` are inside it. Rejected
requests are not queued or retried; the caller surfaces RATE_LIMIT.
"""

from __future__ import annotations

import asyncio
import os
import time
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ai_call_orchestrator.errors import ConfigError
from ai_call_orchestrator.telemetry import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

logger = get_logger(__name__)


@dataclass
class RateLimiterConfig:
    """Configuration for the rate limiter.

    Attributes:
        max_per_minute: Requests admitted within one window (0 = unlimited)
        window_seconds: Length of the trailing window
        record_rejected: Whether a rejected request also occupies the window
    """

    max_per_minute: int = 60
    window_seconds: float = 60.0
    record_rejected: bool = True

    def __post_init__(self) -> None:
        if self.max_per_minute < 0:
            raise ConfigError("max_per_minute must be >= 0", key="max_per_minute")
        if self.window_seconds <= 0:
            raise ConfigError("window_seconds must be positive", key="window_seconds")

    @classmethod
    def unlimited(cls) -> RateLimiterConfig:
        """Create an unlimited rate limiter config."""
        return cls(max_per_minute=0)

    @classmethod
    def from_env(cls) -> RateLimiterConfig:
        """Create configuration from environment variables."""
        return cls(
            max_per_minute=int(os.getenv("AI_ORCH_REQUESTS_PER_MINUTE", "60")),
        )

    @property
    def is_unlimited(self) -> bool:
        return self.max_per_minute == 0


@dataclass
class RateLimiterStats:
    """Counters for the rate limiter."""

    allowed: int = 0
    rejected: int = 0
    recorded: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "allowed": self.allowed,
            "rejected": self.rejected,
            "recorded": self.recorded,
        }


class RateLimiter:
    """Sliding-window request limiter.

    ``check()`` and ``record()`` are separate steps: the executor checks before
    a call and records after it succeeds, so two concurrent callers may both
    pass the check near the limit. The window is advisory and tolerates that.

    Example:
        >>> limiter = RateLimiter(RateLimiterConfig(max_per_minute=60))
        >>> if await limiter.check():
        ...     result = await call()
        ...     await limiter.record()
    """

    def __init__(
        self,
        config: RateLimiterConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or RateLimiterConfig()
        self._clock = clock
        self._window: deque[float] = deque()
        self._lock = asyncio.Lock()
        self._stats = RateLimiterStats()

    @property
    def config(self) -> RateLimiterConfig:
        return self._config

    def _prune(self, now: float) -> None:
        horizon = self._config.window_seconds
        while self._window and now - self._window[0] > horizon:
            self._window.popleft()

    @property
    def current_count(self) -> int:
        """Requests currently inside the window."""
        self._prune(self._clock())
        return len(self._window)

    @property
    def is_throttled(self) -> bool:
        if self._config.is_unlimited:
            return False
        return self.current_count >= self._config.max_per_minute

    async def check(self) -> bool:
        """Return True if a request may be made now."""
        if self._config.is_unlimited:
            self._stats.allowed += 1
            return True

        async with self._lock:
            self._prune(self._clock())
            allowed = len(self._window) < self._config.max_per_minute
            if allowed:
                self._stats.allowed += 1
            return allowed

    async def record(self) -> None:
        """Record a request at the current time."""
        async with self._lock:
            now = self._clock()
            self._prune(now)
            self._window.append(now)
            self._stats.recorded += 1

    async def reject(self) -> None:
        """Account for a request that failed ``check()``."""
        self._stats.rejected += 1
        logger.warning(
            "Rate limit exceeded",
            in_window=len(self._window),
            limit=self._config.max_per_minute,
        )
        if self._config.record_rejected:
            await self.record()

    def time_until_available(self) -> float:
        """Seconds until the oldest timestamp leaves the window (0 if free)."""
        if self._config.is_unlimited:
            return 0.0
        now = self._clock()
        self._prune(now)
        if len(self._window) < self._config.max_per_minute:
            return 0.0
        # The slot frees once the oldest of the surplus timestamps expires.
        index = len(self._window) - self._config.max_per_minute
        expires_at = self._window[index] + self._config.window_seconds
        return max(0.0, expires_at - now)

    def reset(self) -> None:
        """Forget all recorded timestamps."""
        self._window.clear()
        self._stats = RateLimiterStats()

    def get_stats(self) -> dict[str, Any]:
        """Get rate limiter statistics."""
        return {
            **self._stats.to_dict(),
            "current_count": self.current_count,
            "max_per_minute": self._config.max_per_minute,
            "window_seconds": self._config.window_seconds,
            "time_until_available": self.time_until_available(),
        }

    def __repr__(self) -> str:
        return (
            f"RateLimiter(count={self.current_count}, "
            f"max_per_minute={self._config.max_per_minute})"
        )
