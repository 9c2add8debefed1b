"""
Orchestrator: the public entry point for guarded AI calls.

One orchestrator owns the circuit breaker, rate limiter, admission controller
and response cache shared by every call it makes, plus the providers those
calls go to.
"""

from __future__ import annotations

import random
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, TypeVar

from ai_call_orchestrator.cache import FingerprintGenerator, ResponseCache
from ai_call_orchestrator.client.builder import OrchestratorBuilder
from ai_call_orchestrator.client.cancel import CancelReason, RequestContext
from ai_call_orchestrator.config import OrchestratorConfig
from ai_call_orchestrator.errors import ConfigError
from ai_call_orchestrator.jobs.poller import JobPoller
from ai_call_orchestrator.resilience import (
    AdmissionController,
    BackoffPolicy,
    CircuitBreaker,
    RateLimiter,
    RetryExecutor,
    SignalsSnapshot,
)
from ai_call_orchestrator.services import TextService, Transcriber
from ai_call_orchestrator.telemetry import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterator
    from pathlib import Path

    from ai_call_orchestrator.jobs.progress import ProgressReporter
    from ai_call_orchestrator.providers.base import (
        TextGenerationProvider,
        TranscriptionProvider,
    )
    from ai_call_orchestrator.types import (
        GenerationOptions,
        ProgressEvent,
        Result,
        Transcript,
        TranscriptionOptions,
        TranscriptionResult,
    )

T = TypeVar("T")

logger = get_logger(__name__)


class Orchestrator:
    """Unified client for resilient text generation and transcription.

    Every operation returns a ``Result`` value; provider exceptions never
    escape. Operations without an explicit ``RequestContext`` get a fresh one,
    and every in-flight context can be cancelled through ``cancel()``.

    Example:
        >>> async with Orchestrator.create() as orch:
        ...     result = await orch.summarize("Long meeting notes ...")
        ...     if result.ok:
        ...         print(result.value["summary"])

        >>> orch = (
        ...     Orchestrator.builder()
        ...     .text_provider(MockTextProvider(['{"summary": "ok"}']))
        ...     .max_concurrent(5)
        ...     .requests_per_minute(30)
        ...     .build()
        ... )
    """

    def __init__(
        self,
        text_provider: TextGenerationProvider | None = None,
        transcription_provider: TranscriptionProvider | None = None,
        config: OrchestratorConfig | None = None,
        *,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            text_provider: Provider for text operations
            transcription_provider: Provider for transcription operations
            config: Resilience configuration
            rng: Random source for backoff jitter
            clock: Monotonic clock for the breaker, limiter and cache
        """
        self._config = config or OrchestratorConfig()
        self._text_provider = text_provider
        self._transcription_provider = transcription_provider
        self._closed = False
        self._active: dict[str, RequestContext] = {}

        self._circuit_breaker = CircuitBreaker(self._config.circuit_breaker, clock)
        self._rate_limiter = RateLimiter(self._config.rate_limit, clock)
        self._admission = AdmissionController(self._config.admission)
        self._cache = ResponseCache(self._config.cache, clock)
        self._fingerprints = FingerprintGenerator()
        self._executor = RetryExecutor(
            self._config.retry,
            backoff=BackoffPolicy(self._config.backoff, rng),
            circuit_breaker=self._circuit_breaker,
            rate_limiter=self._rate_limiter,
            admission=self._admission,
            cache=self._cache,
            name="orchestrator",
        )

        self._text: TextService | None = None
        if text_provider is not None:
            self._text = TextService(
                text_provider, self._executor, fingerprints=self._fingerprints
            )

        self._poller: JobPoller | None = None
        self._transcriber: Transcriber | None = None
        if transcription_provider is not None:
            self._poller = JobPoller(
                transcription_provider,
                self._config.poller,
                admission=self._admission,
                rng=rng,
            )
            self._transcriber = Transcriber(
                transcription_provider, self._poller, self._executor
            )

    @classmethod
    def create(
        cls,
        config: OrchestratorConfig | None = None,
        *,
        gemini_api_key: str | None = None,
        assemblyai_api_key: str | None = None,
        gemini_model: str | None = None,
    ) -> Orchestrator:
        """Create an orchestrator backed by the Gemini and AssemblyAI APIs.

        Keys fall back to the GEMINI_API_KEY and ASSEMBLYAI_API_KEY
        environment variables.

        Raises:
            ValueError: If either API key cannot be resolved
        """
        from ai_call_orchestrator.providers import (
            AssemblyAITranscriptionProvider,
            GeminiTextProvider,
        )

        text_kwargs: dict[str, Any] = {"api_key": gemini_api_key}
        if gemini_model:
            text_kwargs["model"] = gemini_model
        return cls(
            GeminiTextProvider(**text_kwargs),
            AssemblyAITranscriptionProvider(api_key=assemblyai_api_key),
            config,
        )

    @classmethod
    def builder(cls) -> OrchestratorBuilder:
        """Get a builder for fluent configuration."""
        return OrchestratorBuilder()

    @property
    def config(self) -> OrchestratorConfig:
        return self._config

    @property
    def executor(self) -> RetryExecutor:
        return self._executor

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._circuit_breaker

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    @property
    def admission(self) -> AdmissionController:
        return self._admission

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    @property
    def active_requests(self) -> list[str]:
        """Request ids of operations currently in flight."""
        return list(self._active)

    @property
    def closed(self) -> bool:
        return self._closed

    def new_context(self, operation: str | None = None) -> RequestContext:
        """Create a request context to pass to an operation.

        Holding the context lets the caller cancel that one operation.
        """
        return RequestContext(operation=operation)

    @contextmanager
    def _scope(
        self, context: RequestContext | None, operation: str
    ) -> Iterator[RequestContext]:
        if self._closed:
            raise RuntimeError("Orchestrator is closed")
        ctx = context or RequestContext(operation=operation)
        self._active[ctx.request_id] = ctx
        try:
            yield ctx
        finally:
            self._active.pop(ctx.request_id, None)

    def _text_service(self) -> TextService:
        if self._text is None:
            raise ConfigError("No text provider configured", key="text_provider")
        return self._text

    def _transcription_service(self) -> Transcriber:
        if self._transcriber is None:
            raise ConfigError(
                "No transcription provider configured", key="transcription_provider"
            )
        return self._transcriber

    async def execute(
        self,
        call: Callable[[], Awaitable[T]],
        context: RequestContext | None = None,
        *,
        fingerprint: str | None = None,
    ) -> Result[T]:
        """Run an arbitrary async call under the shared resilience policies.

        Args:
            call: Zero-argument coroutine factory, invoked once per attempt
            context: Request scope carrying the cancel token
            fingerprint: Cache key; the result is cached when given

        Returns:
            Success with the call's value, or Failure
        """
        with self._scope(context, "execute") as ctx:
            return await self._executor.execute(call, ctx, fingerprint=fingerprint)

    async def generate_reply(
        self,
        prompt: str,
        options: GenerationOptions | None = None,
        context: RequestContext | None = None,
    ) -> Result[str]:
        """Generate free-form text for a prompt."""
        service = self._text_service()
        with self._scope(context, "generate_reply") as ctx:
            return await service.generate_reply(prompt, options, context=ctx)

    async def analyze_intent(
        self,
        transcript: str,
        context_data: dict[str, Any] | None = None,
        *,
        context: RequestContext | None = None,
    ) -> Result[dict[str, Any]]:
        """Classify the intent of a transcript.

        The value holds at least ``intent`` and ``summary``.
        """
        service = self._text_service()
        with self._scope(context, "analyze_intent") as ctx:
            return await service.analyze_intent(transcript, context_data, context=ctx)

    async def summarize(
        self,
        text: str,
        *,
        style: str = "concise",
        max_words: int = 100,
        context: RequestContext | None = None,
    ) -> Result[dict[str, Any]]:
        """Summarize text. The value holds at least ``summary``."""
        service = self._text_service()
        with self._scope(context, "summarize") as ctx:
            return await service.summarize(
                text, style=style, max_words=max_words, context=ctx
            )

    async def extract_entities(
        self,
        text: str,
        *,
        entity_types: list[str] | None = None,
        context: RequestContext | None = None,
    ) -> Result[dict[str, Any]]:
        """Extract named entities. The value holds at least ``entities``."""
        service = self._text_service()
        with self._scope(context, "extract_entities") as ctx:
            return await service.extract_entities(
                text, entity_types=entity_types, context=ctx
            )

    async def transcribe(
        self,
        source: str | Path | bytes,
        options: TranscriptionOptions | None = None,
        *,
        on_progress: Callable[[ProgressEvent], object] | None = None,
        progress: ProgressReporter | None = None,
        context: RequestContext | None = None,
    ) -> Result[TranscriptionResult]:
        """Transcribe an audio file or audio bytes.

        Args:
            source: Audio file path or raw bytes
            options: Job creation options
            on_progress: Callback receiving each ProgressEvent
            progress: Reporter to publish to; a finished one is reset first
            context: Request scope carrying the cancel token

        Returns:
            Success with the transcript and action keywords, or Failure
        """
        service = self._transcription_service()
        with self._scope(context, "transcribe") as ctx:
            return await service.transcribe(
                source, options, on_progress=on_progress, progress=progress, context=ctx
            )

    async def get_transcription(
        self, job_id: str, context: RequestContext | None = None
    ) -> Result[Transcript]:
        """Fetch a completed transcript by job id."""
        service = self._transcription_service()
        with self._scope(context, "get_transcription") as ctx:
            return await service.get_transcription(job_id, ctx)

    async def delete_transcription(
        self, job_id: str, context: RequestContext | None = None
    ) -> Result[bool]:
        """Delete a transcription job and its data."""
        service = self._transcription_service()
        with self._scope(context, "delete_transcription") as ctx:
            return await service.delete_transcription(job_id, ctx)

    async def warmup(self) -> bool:
        """Probe the text provider. Never raises."""
        if self._text is None:
            return False
        return await self._text.warmup()

    def cancel(
        self,
        request_id: str | None = None,
        reason: CancelReason = CancelReason.USER_REQUEST,
    ) -> int:
        """Cancel one in-flight operation, or all of them.

        Args:
            request_id: Operation to cancel; None cancels every one
            reason: Reason recorded on the cancel token

        Returns:
            Number of operations newly cancelled
        """
        if request_id is not None:
            ctx = self._active.get(request_id)
            targets = [ctx] if ctx is not None else []
        else:
            targets = list(self._active.values())

        cancelled = sum(1 for ctx in targets if ctx.cancel(reason))
        if cancelled:
            logger.info("Cancelled operations", count=cancelled, reason=reason.value)
        return cancelled

    def snapshot(self) -> SignalsSnapshot:
        """Point-in-time health of admission, limiter and breaker."""
        return SignalsSnapshot.from_components(
            admission=self._admission,
            rate_limiter=self._rate_limiter,
            circuit_breaker=self._circuit_breaker,
        )

    def get_stats(self) -> dict[str, Any]:
        """Statistics from every resilience component."""
        stats: dict[str, Any] = {
            "executor": self._executor.get_stats(),
            "circuit_breaker": self._circuit_breaker.get_stats(),
            "rate_limiter": self._rate_limiter.get_stats(),
            "admission": self._admission.get_stats(),
            "cache": self._cache.get_stats(),
            "active_requests": len(self._active),
        }
        if self._poller is not None:
            stats["poller"] = self._poller.get_stats()
        return stats

    async def reset(self) -> None:
        """Reset breaker, limiter, cache and counters to their initial state."""
        self._circuit_breaker.reset()
        self._rate_limiter.reset()
        await self._cache.clear()
        self._cache.stats.reset()
        self._executor.reset_stats()

    async def close(self) -> None:
        """Cancel in-flight operations and close the providers."""
        if self._closed:
            return
        self._closed = True
        self.cancel(reason=CancelReason.SHUTDOWN)
        for provider in (self._text_provider, self._transcription_provider):
            if provider is not None:
                await provider.close()
        logger.debug("Orchestrator closed")

    async def __aenter__(self) -> Orchestrator:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        text = type(self._text_provider).__name__ if self._text_provider else None
        transcription = (
            type(self._transcription_provider).__name__
            if self._transcription_provider
            else None
        )
        return f"Orchestrator(text={text}, transcription={transcription})"
