"""Tests for backoff delays."""

from __future__ import annotations

import random

import pytest

from ai_call_orchestrator.errors import ConfigError
from ai_call_orchestrator.resilience import BackoffConfig, BackoffPolicy


class TestBackoffConfig:
    """Tests for BackoffConfig."""

    def test_retry_profile(self) -> None:
        """Test the retry profile constants."""
        config = BackoffConfig.retry()
        assert (config.base_delay, config.factor, config.max_delay, config.jitter_max) == (
            1.0,
            2.0,
            10.0,
            0.3,
        )

    def test_polling_profile(self) -> None:
        """Test the polling profile constants."""
        config = BackoffConfig.polling()
        assert (config.base_delay, config.factor, config.max_delay, config.jitter_max) == (
            3.0,
            1.2,
            10.0,
            0.0,
        )

    @pytest.mark.parametrize(
        "kwargs",
        [{"base_delay": 0}, {"max_delay": -1}, {"factor": 0.5}, {"jitter_max": -0.1}],
    )
    def test_invalid_values(self, kwargs: dict[str, float]) -> None:
        """Test invalid values are rejected."""
        with pytest.raises(ConfigError):
            BackoffConfig(**kwargs)


class TestBackoffPolicy:
    """Tests for BackoffPolicy."""

    def test_exponential_without_jitter(self) -> None:
        """Test the exponential curve and the cap."""
        policy = BackoffPolicy(BackoffConfig(jitter_max=0.0))
        assert policy.delays(5) == [1.0, 2.0, 4.0, 8.0, 10.0]

    def test_polling_curve(self) -> None:
        """Test polling delays grow by 1.2x from 3s."""
        policy = BackoffPolicy(BackoffConfig.polling())
        assert policy.delay(1) == pytest.approx(3.0)
        assert policy.delay(2) == pytest.approx(3.6)
        assert policy.delay(3) == pytest.approx(4.32)
        assert policy.delay(50) == 10.0

    def test_jitter_bounds(self, rng: random.Random) -> None:
        """Test jitter stays within [d, d * (1 + jitter_max))."""
        policy = BackoffPolicy(BackoffConfig.retry(), rng=rng)
        for _ in range(200):
            assert 1.0 <= policy.delay(1) < 1.3
            assert 2.0 <= policy.delay(2) < 2.6

    def test_never_exceeds_cap(self, rng: random.Random) -> None:
        """Test jittered delays are capped."""
        policy = BackoffPolicy(BackoffConfig.retry(), rng=rng)
        assert all(d <= 10.0 for d in policy.delays(30))

    def test_non_decreasing(self, rng: random.Random) -> None:
        """Test the sequence never shrinks."""
        for config in (BackoffConfig.retry(), BackoffConfig.polling()):
            delays = BackoffPolicy(config, rng=rng).delays(20)
            assert delays == sorted(delays)

    def test_huge_attempt_does_not_overflow(self) -> None:
        """Test very large attempt numbers return the cap."""
        policy = BackoffPolicy(BackoffConfig(jitter_max=0.0))
        assert policy.delay(10_000) == 10.0

    def test_seeded_rng_is_reproducible(self) -> None:
        """Test equal seeds give equal delays."""
        a = BackoffPolicy(rng=random.Random(1)).delays(4)
        b = BackoffPolicy(rng=random.Random(1)).delays(4)
        assert a == b

    def test_attempt_must_be_positive(self) -> None:
        """Test attempt numbering starts at 1."""
        with pytest.raises(ValueError):
            BackoffPolicy().delay(0)
