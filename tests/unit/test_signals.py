"""Tests for resilience signal snapshots."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from ai_call_orchestrator.resilience.admission import AdmissionConfig, AdmissionController
from ai_call_orchestrator.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
)
from ai_call_orchestrator.resilience.rate_limiter import RateLimiter, RateLimiterConfig
from ai_call_orchestrator.resilience.signals import (
    AdmissionSnapshot,
    CircuitBreakerSnapshot,
    RateLimiterSnapshot,
    SignalsSnapshot,
)

if TYPE_CHECKING:
    from tests.conftest import FakeClock


class TestSnapshots:
    """Tests for the per-component snapshots."""

    def test_admission_utilization(self) -> None:
        """Test available slots and utilization."""
        snap = AdmissionSnapshot(max_concurrent=4, active=1, waiting=2)
        assert snap.available == 3
        assert snap.utilization == 0.25
        assert snap.to_dict()["waiting"] == 2

    def test_rate_limiter_throttled(self) -> None:
        """Test throttling at capacity and unlimited windows."""
        assert RateLimiterSnapshot(in_window=5, max_per_minute=5).is_throttled
        assert not RateLimiterSnapshot(in_window=4, max_per_minute=5).is_throttled
        unlimited = RateLimiterSnapshot(in_window=100, max_per_minute=0)
        assert not unlimited.is_throttled
        assert unlimited.utilization == 0.0

    def test_empty_snapshot_is_healthy(self) -> None:
        """Test a snapshot without components scores 1.0."""
        snap = SignalsSnapshot()
        assert snap.is_healthy
        assert snap.health_score == 1.0

    def test_open_breaker_is_unhealthy(self) -> None:
        """Test an open circuit marks the snapshot unhealthy."""
        snap = SignalsSnapshot(
            circuit_breaker=CircuitBreakerSnapshot(
                state="open",
                consecutive_failures=5,
                failure_threshold=5,
                seconds_until_retry=120.0,
            ),
            admission=AdmissionSnapshot(max_concurrent=2, active=0),
        )
        assert not snap.is_healthy
        assert snap.health_score == 0.5
        assert snap.to_dict()["circuit_breaker"]["is_open"] is True


class TestFromComponents:
    """Tests for building a snapshot from live components."""

    @pytest.mark.asyncio
    async def test_reflects_component_state(self, clock: FakeClock) -> None:
        """Test live counts flow into the snapshot."""
        admission = AdmissionController(AdmissionConfig(max_concurrent=2))
        limiter = RateLimiter(RateLimiterConfig(max_per_minute=2), clock=clock)
        breaker = CircuitBreaker(
            CircuitBreakerConfig(failure_threshold=1, cooldown_seconds=60.0), clock=clock
        )

        await admission.acquire()
        await limiter.record()
        await limiter.record()
        await breaker.record_failure()
        clock.advance(15.0)

        snap = SignalsSnapshot.from_components(admission, limiter, breaker)
        assert snap.admission is not None
        assert snap.admission.active == 1
        assert snap.rate_limiter is not None
        assert snap.rate_limiter.in_window == 2
        assert snap.rate_limiter.is_throttled
        assert snap.rate_limiter.seconds_until_available == pytest.approx(45.0)
        assert snap.circuit_breaker is not None
        assert snap.circuit_breaker.state == "open"
        assert snap.circuit_breaker.seconds_until_retry == pytest.approx(45.0)
        assert not snap.is_healthy

        admission.release()

    @pytest.mark.asyncio
    async def test_breaker_recovered_after_cooldown(self, clock: FakeClock) -> None:
        """Test an elapsed cooldown shows as closed without a new call."""
        breaker = CircuitBreaker(
            CircuitBreakerConfig(failure_threshold=1, cooldown_seconds=60.0), clock=clock
        )
        await breaker.record_failure()
        clock.advance(61.0)

        snap = SignalsSnapshot.from_components(circuit_breaker=breaker)
        assert snap.circuit_breaker is not None
        assert snap.circuit_breaker.state == "closed"
        assert snap.circuit_breaker.seconds_until_retry is None
        assert snap.is_healthy

    def test_partial_components(self) -> None:
        """Test omitted components stay None."""
        snap = SignalsSnapshot.from_components(circuit_breaker=CircuitBreaker())
        assert snap.admission is None
        assert snap.rate_limiter is None
        assert snap.circuit_breaker is not None
        assert snap.circuit_breaker.state == "closed"
        assert snap.circuit_breaker.seconds_until_retry is None
