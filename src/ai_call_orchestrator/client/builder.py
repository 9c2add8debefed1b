"""
Builder for fluent Orchestrator construction.
"""

from __future__ import annotations

import dataclasses
import time
from typing import TYPE_CHECKING

from ai_call_orchestrator.cache.store import CacheConfig
from ai_call_orchestrator.config import OrchestratorConfig
from ai_call_orchestrator.errors import ConfigError
from ai_call_orchestrator.resilience.rate_limiter import RateLimiterConfig

if TYPE_CHECKING:
    import random
    from collections.abc import Callable

    from ai_call_orchestrator.client.core import Orchestrator
    from ai_call_orchestrator.providers.base import (
        TextGenerationProvider,
        TranscriptionProvider,
    )


class OrchestratorBuilder:
    """Builder for creating Orchestrator instances with custom configuration.

    Each setter validates immediately, so a bad value raises ``ConfigError``
    at the call that introduced it.

    Example:
        >>> orch = (
        ...     OrchestratorBuilder()
        ...     .text_provider(GeminiTextProvider())
        ...     .max_retries(2)
        ...     .requests_per_minute(30)
        ...     .build()
        ... )
    """

    def __init__(self) -> None:
        self._config = OrchestratorConfig()
        self._text_provider: TextGenerationProvider | None = None
        self._transcription_provider: TranscriptionProvider | None = None
        self._rng: random.Random | None = None
        self._clock: Callable[[], float] | None = None

    def config(self, config: OrchestratorConfig) -> OrchestratorBuilder:
        """Start from a complete configuration.

        Setters called afterwards override individual values.
        """
        self._config = dataclasses.replace(config)
        return self

    def text_provider(self, provider: TextGenerationProvider) -> OrchestratorBuilder:
        self._text_provider = provider
        return self

    def transcription_provider(self, provider: TranscriptionProvider) -> OrchestratorBuilder:
        self._transcription_provider = provider
        return self

    def max_retries(self, n: int) -> OrchestratorBuilder:
        """Set retries after the first attempt.

        Args:
            n: Number of retries (0 disables retrying)

        Returns:
            Self for chaining
        """
        self._config.retry = dataclasses.replace(self._config.retry, max_retries=n)
        return self

    def attempt_timeout(self, seconds: float | None) -> OrchestratorBuilder:
        """Set the per-attempt deadline (None = no limit)."""
        self._config.retry = dataclasses.replace(self._config.retry, attempt_timeout=seconds)
        return self

    def requests_per_minute(self, n: int) -> OrchestratorBuilder:
        """Set the sliding-window request budget.

        Args:
            n: Requests admitted per window (0 = unlimited)

        Returns:
            Self for chaining
        """
        self._config.rate_limit = dataclasses.replace(self._config.rate_limit, max_per_minute=n)
        return self

    def unlimited_rate(self) -> OrchestratorBuilder:
        self._config.rate_limit = RateLimiterConfig.unlimited()
        return self

    def max_concurrent(self, n: int) -> OrchestratorBuilder:
        """Set the number of calls allowed in flight at once."""
        self._config.admission = dataclasses.replace(self._config.admission, max_concurrent=n)
        return self

    def circuit_breaker(
        self, failure_threshold: int, cooldown_seconds: float | None = None
    ) -> OrchestratorBuilder:
        """Configure the circuit breaker.

        Args:
            failure_threshold: Consecutive failed calls that open the circuit
            cooldown_seconds: How long the circuit stays open

        Returns:
            Self for chaining
        """
        changes: dict[str, float] = {"failure_threshold": failure_threshold}
        if cooldown_seconds is not None:
            changes["cooldown_seconds"] = cooldown_seconds
        self._config.circuit_breaker = dataclasses.replace(
            self._config.circuit_breaker, **changes
        )
        return self

    def cache(self, max_entries: int = 100, ttl_seconds: float = 3600.0) -> OrchestratorBuilder:
        self._config.cache = CacheConfig(max_entries=max_entries, ttl_seconds=ttl_seconds)
        return self

    def no_cache(self) -> OrchestratorBuilder:
        self._config.cache = CacheConfig.disabled()
        return self

    def max_poll_attempts(self, n: int) -> OrchestratorBuilder:
        self._config.poller = dataclasses.replace(self._config.poller, max_poll_attempts=n)
        return self

    def delete_on_cancel(self, enable: bool = True) -> OrchestratorBuilder:
        """Delete the remote transcription job when it is cancelled."""
        self._config.poller = dataclasses.replace(self._config.poller, delete_on_cancel=enable)
        return self

    def rng(self, rng: random.Random) -> OrchestratorBuilder:
        """Set the random source for backoff jitter, e.g. a seeded one."""
        self._rng = rng
        return self

    def clock(self, clock: Callable[[], float]) -> OrchestratorBuilder:
        self._clock = clock
        return self

    def build(self) -> Orchestrator:
        """Build the Orchestrator instance.

        Raises:
            ConfigError: If no provider was set
        """
        from ai_call_orchestrator.client.core import Orchestrator

        if self._text_provider is None and self._transcription_provider is None:
            raise ConfigError("At least one provider must be set before building")

        return Orchestrator(
            self._text_provider,
            self._transcription_provider,
            self._config,
            rng=self._rng,
            clock=self._clock or time.monotonic,
        )
