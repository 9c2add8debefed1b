"""
Retry executor: the single entry point for guarded external calls.

Each call passes, in order, through the response cache, the circuit breaker,
the rate limiter and admission control, then runs under a per-attempt
timeout. Failures are classified; retryable ones are retried with backoff,
everything else is returned immediately as a ``Failure`` value.
"""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeVar

from ai_call_orchestrator.client.cancel import RequestContext
from ai_call_orchestrator.errors import (
    Classification,
    ConfigError,
    ErrorCode,
    classify_failure,
)
from ai_call_orchestrator.resilience.backoff import BackoffConfig, BackoffPolicy
from ai_call_orchestrator.telemetry import get_logger, log_context
from ai_call_orchestrator.types.result import Failure, Result, Success

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ai_call_orchestrator.cache.store import ResponseCache
    from ai_call_orchestrator.resilience.admission import AdmissionController
    from ai_call_orchestrator.resilience.circuit_breaker import CircuitBreaker
    from ai_call_orchestrator.resilience.rate_limiter import RateLimiter

T = TypeVar("T")

logger = get_logger(__name__)


@dataclass
class RetryConfig:
    """Configuration for the retry loop.

    Attributes:
        max_retries: Retries after the first attempt (0 = single shot)
        attempt_timeout: Deadline for each attempt in seconds (None = no limit)
        fatal_codes: Extra codes that end the call even if normally retryable
    """

    max_retries: int = 3
    attempt_timeout: float | None = 30.0
    fatal_codes: frozenset[ErrorCode] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ConfigError("max_retries must be >= 0", key="max_retries")
        if self.attempt_timeout is not None and self.attempt_timeout <= 0:
            raise ConfigError("attempt_timeout must be positive", key="attempt_timeout")
        self.fatal_codes = frozenset(self.fatal_codes)

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    @classmethod
    def no_retry(cls, attempt_timeout: float | None = 30.0) -> RetryConfig:
        """Create a config that disables retries."""
        return cls(max_retries=0, attempt_timeout=attempt_timeout)

    @classmethod
    def from_env(cls) -> RetryConfig:
        """Create configuration from environment variables."""
        return cls(
            max_retries=int(os.getenv("AI_ORCH_MAX_RETRIES", "3")),
            attempt_timeout=float(os.getenv("AI_ORCH_ATTEMPT_TIMEOUT_SECS", "30")),
        )


@dataclass
class ExecutorStats:
    """Counters for executed calls."""

    calls: int = 0
    successes: int = 0
    cache_hits: int = 0
    retries: int = 0
    failures: dict[str, int] = field(default_factory=dict)

    def count_failure(self, code: ErrorCode) -> None:
        self.failures[code.value] = self.failures.get(code.value, 0) + 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "calls": self.calls,
            "successes": self.successes,
            "cache_hits": self.cache_hits,
            "retries": self.retries,
            "failures": dict(self.failures),
        }


class RetryExecutor:
    """Runs external calls under the resilience policies.

    All collaborators are optional; a bare executor only retries.

    Example:
        >>> executor = RetryExecutor(
        ...     RetryConfig(max_retries=3),
        ...     circuit_breaker=CircuitBreaker(),
        ...     admission=AdmissionController(),
        ... )
        >>> result = await executor.execute(lambda: provider.generate(prompt))
        >>> if result.ok:
        ...     print(result.value)
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        *,
        backoff: BackoffPolicy | None = None,
        circuit_breaker: CircuitBreaker | None = None,
        rate_limiter: RateLimiter | None = None,
        admission: AdmissionController | None = None,
        cache: ResponseCache | None = None,
        name: str = "default",
    ) -> None:
        self._config = config or RetryConfig()
        self._backoff = backoff or BackoffPolicy(BackoffConfig.retry())
        self._circuit_breaker = circuit_breaker
        self._rate_limiter = rate_limiter
        self._admission = admission
        self._cache = cache
        self._name = name
        self._stats = ExecutorStats()

    @property
    def name(self) -> str:
        return self._name

    @property
    def config(self) -> RetryConfig:
        return self._config

    @property
    def circuit_breaker(self) -> CircuitBreaker | None:
        return self._circuit_breaker

    @property
    def rate_limiter(self) -> RateLimiter | None:
        return self._rate_limiter

    @property
    def admission(self) -> AdmissionController | None:
        return self._admission

    @property
    def cache(self) -> ResponseCache | None:
        return self._cache

    async def execute(
        self,
        call: Callable[[], Awaitable[T]],
        context: RequestContext | None = None,
        *,
        fingerprint: str | None = None,
        on_retry: Callable[[int, Classification, float], Any] | None = None,
    ) -> Result[T]:
        """Execute a call with caching, breaking, limiting, admission and retry.

        Args:
            call: Zero-argument coroutine function performing the external call
            context: Request scope carrying the cancel token
            fingerprint: Cache key; the cache is bypassed when None
            on_retry: Called with (attempt, classification, delay) before
                each backoff wait

        Returns:
            Success with the value, or Failure with the taxonomy code
        """
        ctx = context or RequestContext()
        self._stats.calls += 1

        with log_context(request_id=ctx.request_id, operation=ctx.operation):
            if ctx.is_cancelled:
                return self._fail(ctx, ErrorCode.CANCELLED, "Operation cancelled", 0)

            if fingerprint is not None and self._cache is not None:
                entry = await self._cache.get(fingerprint)
                if entry is not None:
                    self._stats.cache_hits += 1
                    logger.debug("Cache hit", fingerprint=fingerprint)
                    return Success(
                        value=entry.value,
                        attempts=0,
                        cached=True,
                        request_id=ctx.request_id,
                    )

            if self._circuit_breaker is not None and not await self._circuit_breaker.allow():
                return self._fail(
                    ctx,
                    ErrorCode.CIRCUIT_BREAKER_OPEN,
                    "Service temporarily unavailable",
                    0,
                    retry_in=self._circuit_breaker.time_until_retry(),
                )

            if self._rate_limiter is not None and not await self._rate_limiter.check():
                await self._rate_limiter.reject()
                return self._fail(
                    ctx,
                    ErrorCode.RATE_LIMIT,
                    "Rate limit exceeded, try again later",
                    0,
                    retry_in=self._rate_limiter.time_until_available(),
                )

            if self._admission is not None:
                if not await self._admission.acquire(ctx.token):
                    return self._fail(
                        ctx, ErrorCode.CANCELLED, "Cancelled while waiting for a slot", 0
                    )
                try:
                    return await self._attempt_loop(call, ctx, fingerprint, on_retry)
                finally:
                    self._admission.release()

            return await self._attempt_loop(call, ctx, fingerprint, on_retry)

    async def _run_attempt(self, call: Callable[[], Awaitable[T]]) -> T:
        timeout = self._config.attempt_timeout
        if timeout is None:
            return await call()
        return await asyncio.wait_for(call(), timeout=timeout)

    async def _attempt_loop(
        self,
        call: Callable[[], Awaitable[T]],
        ctx: RequestContext,
        fingerprint: str | None,
        on_retry: Callable[[int, Classification, float], Any] | None,
    ) -> Result[T]:
        max_attempts = self._config.max_attempts
        attempt = 0

        while True:
            if ctx.is_cancelled:
                return self._fail(ctx, ErrorCode.CANCELLED, "Operation cancelled", attempt)

            attempt += 1
            try:
                value = await self._run_attempt(call)
            except Exception as exc:
                verdict = classify_failure(exc)
                fatal = not verdict.retryable or verdict.code in self._config.fatal_codes

                if fatal:
                    logger.warning(
                        "Call failed",
                        code=verdict.code.value,
                        attempt=attempt,
                        error=verdict.message,
                    )
                    return self._fail(ctx, verdict.code, verdict.message, attempt)

                if attempt >= max_attempts:
                    logger.error(
                        "Call failed after retries",
                        code=verdict.code.value,
                        attempts=attempt,
                        error=verdict.message,
                    )
                    if self._circuit_breaker is not None:
                        await self._circuit_breaker.record_failure()
                    return self._fail(
                        ctx, verdict.code, verdict.message, attempt, retryable=True
                    )

                delay = self._backoff.delay(attempt)
                self._stats.retries += 1
                logger.info(
                    "Retrying call",
                    code=verdict.code.value,
                    attempt=attempt,
                    delay=round(delay, 3),
                )
                if on_retry is not None:
                    on_retry(attempt, verdict, delay)

                if await ctx.token.sleep(delay):
                    return self._fail(ctx, ErrorCode.CANCELLED, "Operation cancelled", attempt)
                continue

            if self._circuit_breaker is not None:
                await self._circuit_breaker.record_success()
            if self._rate_limiter is not None:
                await self._rate_limiter.record()
            if fingerprint is not None and self._cache is not None:
                await self._cache.put(fingerprint, value)

            self._stats.successes += 1
            return Success(value=value, attempts=attempt, request_id=ctx.request_id)

    def _fail(
        self,
        ctx: RequestContext,
        code: ErrorCode,
        message: str,
        attempts: int,
        *,
        retryable: bool = False,
        **details: Any,
    ) -> Failure:
        self._stats.count_failure(code)
        return Failure(
            code=code,
            message=message,
            attempts=attempts,
            retryable=retryable,
            request_id=ctx.request_id,
            details={k: v for k, v in details.items() if v is not None},
        )

    def get_stats(self) -> dict[str, Any]:
        """Get current statistics from the executor and its components."""
        stats: dict[str, Any] = {"name": self._name, **self._stats.to_dict()}
        if self._circuit_breaker is not None:
            stats["circuit_breaker"] = self._circuit_breaker.get_stats()
        if self._rate_limiter is not None:
            stats["rate_limiter"] = self._rate_limiter.get_stats()
        if self._admission is not None:
            stats["admission"] = self._admission.get_stats()
        if self._cache is not None:
            stats["cache"] = self._cache.get_stats()
        return stats

    def reset_stats(self) -> None:
        self._stats = ExecutorStats()

    def __repr__(self) -> str:
        return (
            f"RetryExecutor(name={self._name!r}, "
            f"max_retries={self._config.max_retries})"
        )
