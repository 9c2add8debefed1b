"""
Circuit breaker for fault isolation.

Two states:
- Closed: calls pass through
- Open: calls are rejected until the cooldown elapses

The transition back to closed is evaluated lazily on the next ``allow()``.
The breaker only observes outcomes; the retry executor decides what counts
as a failure.
"""

from __future__ import annotations

import asyncio
import os
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from ai_call_orchestrator.errors import ConfigError
from ai_call_orchestrator.telemetry import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

logger = get_logger(__name__)


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"


@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breaker.

    Attributes:
        failure_threshold: Consecutive failed calls that trip the circuit
        cooldown_seconds: Time the circuit stays open
    """

    failure_threshold: int = 5
    cooldown_seconds: float = 300.0

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            raise ConfigError("failure_threshold must be >= 1", key="failure_threshold")
        if self.cooldown_seconds < 0:
            raise ConfigError("cooldown_seconds must be >= 0", key="cooldown_seconds")

    @classmethod
    def default(cls) -> CircuitBreakerConfig:
        """Create default configuration."""
        return cls()

    @classmethod
    def from_env(cls) -> CircuitBreakerConfig:
        """Create configuration from environment variables."""
        return cls(
            failure_threshold=int(os.getenv("AI_ORCH_BREAKER_THRESHOLD", "5")),
            cooldown_seconds=float(os.getenv("AI_ORCH_BREAKER_COOLDOWN_SECS", "300")),
        )


@dataclass
class CircuitStats:
    """Statistics for circuit breaker."""

    successes: int = 0
    failures: int = 0
    rejected: int = 0
    trips: int = 0
    last_failure_time: float | None = None
    last_success_time: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "successes": self.successes,
            "failures": self.failures,
            "rejected": self.rejected,
            "trips": self.trips,
            "last_failure_time": self.last_failure_time,
            "last_success_time": self.last_success_time,
        }


class CircuitBreaker:
    """Consecutive-failure circuit breaker.

    Example:
        >>> breaker = CircuitBreaker(CircuitBreakerConfig(failure_threshold=3))
        >>> if await breaker.allow():
        ...     try:
        ...         value = await call()
        ...         await breaker.record_success()
        ...     except Exception:
        ...         await breaker.record_failure()
    """

    def __init__(
        self,
        config: CircuitBreakerConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or CircuitBreakerConfig()
        self._clock = clock
        self._lock = asyncio.Lock()
        self._consecutive_failures = 0
        self._tripped_at: float | None = None
        self._stats = CircuitStats()

    @property
    def config(self) -> CircuitBreakerConfig:
        return self._config

    @property
    def state(self) -> CircuitState:
        """Current state.

        A circuit whose cooldown has elapsed reads as closed; the transition
        itself happens on the next ``allow()``.
        """
        return CircuitState.OPEN if self.is_open else CircuitState.CLOSED

    @property
    def is_open(self) -> bool:
        return self._tripped_at is not None and not self._cooldown_elapsed(self._clock())

    def _cooldown_elapsed(self, now: float) -> bool:
        return (
            self._tripped_at is not None
            and now - self._tripped_at > self._config.cooldown_seconds
        )

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    def _maybe_close(self, now: float) -> None:
        if self._cooldown_elapsed(now):
            self._tripped_at = None
            self._consecutive_failures = 0
            logger.info("Circuit breaker closed after cooldown")

    async def allow(self) -> bool:
        """Return True if a call may proceed."""
        async with self._lock:
            self._maybe_close(self._clock())
            if self._tripped_at is not None:
                self._stats.rejected += 1
                return False
            return True

    async def record_success(self) -> None:
        """Reset the failure streak."""
        async with self._lock:
            self._consecutive_failures = 0
            self._stats.successes += 1
            self._stats.last_success_time = self._clock()

    async def record_failure(self) -> None:
        """Count a failed logical call, tripping at the threshold."""
        async with self._lock:
            now = self._clock()
            self._maybe_close(now)
            self._consecutive_failures += 1
            self._stats.failures += 1
            self._stats.last_failure_time = now

            if (
                self._tripped_at is None
                and self._consecutive_failures >= self._config.failure_threshold
            ):
                self._tripped_at = now
                self._stats.trips += 1
                logger.warning(
                    "Circuit breaker opened",
                    failures=self._consecutive_failures,
                    cooldown_seconds=self._config.cooldown_seconds,
                )

    def time_until_retry(self) -> float | None:
        """Seconds until the circuit closes, or None if not open."""
        if not self.is_open:
            return None
        elapsed = self._clock() - self._tripped_at  # type: ignore[operator]
        return max(0.0, self._config.cooldown_seconds - elapsed)

    def reset(self) -> None:
        """Reset circuit breaker to closed state."""
        self._consecutive_failures = 0
        self._tripped_at = None

    def get_stats(self) -> dict[str, Any]:
        """Get circuit breaker statistics."""
        return {
            **self._stats.to_dict(),
            "state": self.state.value,
            "consecutive_failures": self._consecutive_failures,
            "failure_threshold": self._config.failure_threshold,
            "time_until_retry": self.time_until_retry(),
        }

    def __repr__(self) -> str:
        return (
            f"CircuitBreaker(state={self.state.value}, "
            f"failures={self._consecutive_failures}/{self._config.failure_threshold})"
        )
