"""Tests for the sliding-window rate limiter."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from ai_call_orchestrator.errors import ConfigError
from ai_call_orchestrator.resilience import RateLimiter, RateLimiterConfig

if TYPE_CHECKING:
    from tests.conftest import FakeClock


class TestRateLimiterConfig:
    """Tests for RateLimiterConfig."""

    def test_defaults(self) -> None:
        """Test default configuration."""
        config = RateLimiterConfig()
        assert config.max_per_minute == 60
        assert config.window_seconds == 60.0
        assert config.record_rejected is True
        assert not config.is_unlimited

    def test_unlimited(self) -> None:
        """Test unlimited profile."""
        assert RateLimiterConfig.unlimited().is_unlimited

    def test_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test env override."""
        monkeypatch.setenv("AI_ORCH_REQUESTS_PER_MINUTE", "12")
        assert RateLimiterConfig.from_env().max_per_minute == 12

    def test_invalid(self) -> None:
        """Test invalid values."""
        with pytest.raises(ConfigError):
            RateLimiterConfig(max_per_minute=-1)
        with pytest.raises(ConfigError):
            RateLimiterConfig(window_seconds=0)


class TestRateLimiter:
    """Tests for RateLimiter."""

    @pytest.mark.asyncio
    async def test_allows_exactly_max(self, clock: FakeClock) -> None:
        """Test max_per_minute requests pass and the next is rejected."""
        limiter = RateLimiter(RateLimiterConfig(max_per_minute=3), clock)
        for _ in range(3):
            assert await limiter.check()
            await limiter.record()
            clock.advance(1)
        assert not await limiter.check()
        assert limiter.is_throttled

    @pytest.mark.asyncio
    async def test_window_slides(self, clock: FakeClock) -> None:
        """Test timestamps older than the window stop counting."""
        limiter = RateLimiter(RateLimiterConfig(max_per_minute=2), clock)
        await limiter.record()
        clock.advance(30)
        await limiter.record()
        assert not await limiter.check()

        clock.advance(30.5)
        assert limiter.current_count == 1
        assert await limiter.check()

    @pytest.mark.asyncio
    async def test_time_until_available(self, clock: FakeClock) -> None:
        """Test the wait until the oldest timestamp expires."""
        limiter = RateLimiter(RateLimiterConfig(max_per_minute=2), clock)
        assert limiter.time_until_available() == 0.0
        await limiter.record()
        clock.advance(10)
        await limiter.record()
        assert limiter.time_until_available() == pytest.approx(50.0)

    @pytest.mark.asyncio
    async def test_reject_records_by_default(self, clock: FakeClock) -> None:
        """Test rejected requests occupy the window when configured."""
        limiter = RateLimiter(RateLimiterConfig(max_per_minute=1), clock)
        await limiter.record()
        await limiter.reject()
        assert limiter.current_count == 2
        assert limiter.get_stats()["rejected"] == 1

    @pytest.mark.asyncio
    async def test_reject_without_recording(self, clock: FakeClock) -> None:
        """Test record_rejected=False leaves the window alone."""
        limiter = RateLimiter(
            RateLimiterConfig(max_per_minute=1, record_rejected=False), clock
        )
        await limiter.record()
        await limiter.reject()
        assert limiter.current_count == 1

    @pytest.mark.asyncio
    async def test_unlimited_never_throttles(self, clock: FakeClock) -> None:
        """Test the unlimited limiter admits everything."""
        limiter = RateLimiter(RateLimiterConfig.unlimited(), clock)
        for _ in range(100):
            await limiter.record()
        assert await limiter.check()
        assert not limiter.is_throttled
        assert limiter.time_until_available() == 0.0

    @pytest.mark.asyncio
    async def test_reset(self, clock: FakeClock) -> None:
        """Test reset clears the window and counters."""
        limiter = RateLimiter(RateLimiterConfig(max_per_minute=1), clock)
        await limiter.record()
        limiter.reset()
        assert limiter.current_count == 0
        assert limiter.get_stats()["recorded"] == 0
