"""
Exponential backoff with bounded multiplicative jitter.

Two profiles are provided: one for retrying failed calls and one for
spacing out job status polls.
"""

from __future__ import annotations

import random
from dataclasses import dataclass

from ai_call_orchestrator.errors import ConfigError


@dataclass(frozen=True)
class BackoffConfig:
    """Configuration for backoff delays.

    Attributes:
        base_delay: Delay before the first retry, in seconds
        factor: Growth factor applied per attempt (>= 1)
        max_delay: Upper bound for any delay, in seconds
        jitter_max: Upper bound of the multiplicative jitter fraction
    """

    base_delay: float = 1.0
    factor: float = 2.0
    max_delay: float = 10.0
    jitter_max: float = 0.3

    def __post_init__(self) -> None:
        if self.base_delay <= 0:
            raise ConfigError("base_delay must be positive", key="base_delay")
        if self.max_delay <= 0:
            raise ConfigError("max_delay must be positive", key="max_delay")
        if self.factor < 1:
            raise ConfigError("factor must be >= 1", key="factor")
        if self.jitter_max < 0:
            raise ConfigError("jitter_max must be >= 0", key="jitter_max")

    @classmethod
    def retry(cls) -> BackoffConfig:
        """Profile for retrying failed calls: 1s, 2s, 4s ... capped at 10s."""
        return cls(base_delay=1.0, factor=2.0, max_delay=10.0, jitter_max=0.3)

    @classmethod
    def polling(cls) -> BackoffConfig:
        """Profile for job status polls: 3s growing by 1.2x, capped at 10s."""
        return cls(base_delay=3.0, factor=1.2, max_delay=10.0, jitter_max=0.0)


class BackoffPolicy:
    """Computes the delay before retry or poll attempt ``n``.

    Example:
        >>> policy = BackoffPolicy(BackoffConfig.retry(), rng=random.Random(7))
        >>> policy.delay(1)  # between 1.0 and 1.3
    """

    def __init__(
        self,
        config: BackoffConfig | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._config = config or BackoffConfig.retry()
        self._rng = rng or random.Random()

    @property
    def config(self) -> BackoffConfig:
        return self._config

    def delay(self, attempt: int) -> float:
        """Delay in seconds before attempt ``attempt`` (1-based).

        Raises:
            ValueError: If attempt < 1
        """
        if attempt < 1:
            raise ValueError(f"attempt must be >= 1, got {attempt}")

        cfg = self._config
        jitter = self._rng.random() * cfg.jitter_max
        # Bound the exponent so huge attempt numbers cannot overflow.
        exponent = min(attempt - 1, 64)
        try:
            raw = cfg.base_delay * (cfg.factor**exponent) * (1 + jitter)
        except OverflowError:
            raw = cfg.max_delay
        return min(raw, cfg.max_delay)

    def delays(self, count: int) -> list[float]:
        """Delays for attempts 1..count."""
        return [self.delay(n) for n in range(1, count + 1)]

    def __repr__(self) -> str:
        cfg = self._config
        return (
            f"BackoffPolicy(base={cfg.base_delay}, factor={cfg.factor}, "
            f"cap={cfg.max_delay}, jitter={cfg.jitter_max})"
        )
