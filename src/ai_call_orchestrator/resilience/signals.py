"""
Resilience signals and snapshots.

Aggregates admission, rate limiter and circuit breaker state into one
health view.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ai_call_orchestrator.resilience.admission import AdmissionController
    from ai_call_orchestrator.resilience.circuit_breaker import CircuitBreaker
    from ai_call_orchestrator.resilience.rate_limiter import RateLimiter


@dataclass
class AdmissionSnapshot:
    """Snapshot of admission state.

    Attributes:
        max_concurrent: Maximum allowed concurrent calls
        active: Slots currently held
        waiting: Callers queued for a slot
    """

    max_concurrent: int
    active: int
    waiting: int = 0

    @property
    def available(self) -> int:
        return self.max_concurrent - self.active

    @property
    def utilization(self) -> float:
        """Get utilization ratio (0.0 to 1.0)."""
        if self.max_concurrent == 0:
            return 0.0
        return self.active / self.max_concurrent

    def to_dict(self) -> dict[str, Any]:
        return {
            "max_concurrent": self.max_concurrent,
            "active": self.active,
            "waiting": self.waiting,
            "available": self.available,
            "utilization": self.utilization,
        }


@dataclass
class RateLimiterSnapshot:
    """Snapshot of rate limiter state.

    Attributes:
        in_window: Requests inside the trailing window
        max_per_minute: Window capacity (0 = unlimited)
        seconds_until_available: Wait before the next request is admitted
    """

    in_window: int
    max_per_minute: int
    seconds_until_available: float = 0.0

    @property
    def is_throttled(self) -> bool:
        return self.max_per_minute > 0 and self.in_window >= self.max_per_minute

    @property
    def utilization(self) -> float:
        if self.max_per_minute == 0:
            return 0.0
        return min(1.0, self.in_window / self.max_per_minute)

    def to_dict(self) -> dict[str, Any]:
        return {
            "in_window": self.in_window,
            "max_per_minute": self.max_per_minute,
            "seconds_until_available": self.seconds_until_available,
            "is_throttled": self.is_throttled,
            "utilization": self.utilization,
        }


@dataclass
class CircuitBreakerSnapshot:
    """Snapshot of circuit breaker state.

    Attributes:
        state: Current state (closed, open)
        consecutive_failures: Current failure streak
        failure_threshold: Threshold for opening
        seconds_until_retry: Remaining cooldown while open
    """

    state: str
    consecutive_failures: int
    failure_threshold: int
    seconds_until_retry: float | None = None

    @property
    def is_open(self) -> bool:
        return self.state == "open"

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state,
            "consecutive_failures": self.consecutive_failures,
            "failure_threshold": self.failure_threshold,
            "seconds_until_retry": self.seconds_until_retry,
            "is_open": self.is_open,
        }


@dataclass
class SignalsSnapshot:
    """Unified snapshot of all resilience signals.

    Attributes:
        admission: Admission state
        rate_limiter: Rate limiter state
        circuit_breaker: Circuit breaker state
        timestamp: Wall-clock time of the snapshot
    """

    admission: AdmissionSnapshot | None = None
    rate_limiter: RateLimiterSnapshot | None = None
    circuit_breaker: CircuitBreakerSnapshot | None = None
    timestamp: float = field(default_factory=time.time)

    @property
    def is_healthy(self) -> bool:
        """True unless the breaker is open or the limiter is saturated."""
        if self.circuit_breaker and self.circuit_breaker.is_open:
            return False
        return not (self.rate_limiter and self.rate_limiter.is_throttled)

    @property
    def health_score(self) -> float:
        """Average of per-component scores (0.0 to 1.0), higher is better."""
        scores: list[float] = []
        if self.circuit_breaker:
            scores.append(0.0 if self.circuit_breaker.is_open else 1.0)
        if self.rate_limiter:
            scores.append(1.0 - self.rate_limiter.utilization)
        if self.admission:
            scores.append(1.0 - self.admission.utilization)
        if not scores:
            return 1.0
        return sum(scores) / len(scores)

    def to_dict(self) -> dict[str, Any]:
        return {
            "admission": self.admission.to_dict() if self.admission else None,
            "rate_limiter": self.rate_limiter.to_dict() if self.rate_limiter else None,
            "circuit_breaker": (
                self.circuit_breaker.to_dict() if self.circuit_breaker else None
            ),
            "timestamp": self.timestamp,
            "is_healthy": self.is_healthy,
            "health_score": self.health_score,
        }

    @classmethod
    def from_components(
        cls,
        admission: AdmissionController | None = None,
        rate_limiter: RateLimiter | None = None,
        circuit_breaker: CircuitBreaker | None = None,
    ) -> SignalsSnapshot:
        """Create snapshot from resilience components."""
        admission_snap = None
        if admission is not None:
            admission_snap = AdmissionSnapshot(
                max_concurrent=admission.max_concurrent,
                active=admission.active_count,
                waiting=admission.waiting_count,
            )

        rate_snap = None
        if rate_limiter is not None:
            rate_snap = RateLimiterSnapshot(
                in_window=rate_limiter.current_count,
                max_per_minute=rate_limiter.config.max_per_minute,
                seconds_until_available=rate_limiter.time_until_available(),
            )

        breaker_snap = None
        if circuit_breaker is not None:
            breaker_snap = CircuitBreakerSnapshot(
                state=circuit_breaker.state.value,
                consecutive_failures=circuit_breaker.consecutive_failures,
                failure_threshold=circuit_breaker.config.failure_threshold,
                seconds_until_retry=circuit_breaker.time_until_retry(),
            )

        return cls(
            admission=admission_snap,
            rate_limiter=rate_snap,
            circuit_breaker=breaker_snap,
        )
