"""Tests for the Orchestrator facade."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from ai_call_orchestrator import (
    ConfigError,
    ErrorCode,
    Failure,
    JobPhase,
    Orchestrator,
    OrchestratorConfig,
    ProgressEvent,
    ProgressReporter,
    RequestContext,
    Success,
)
from ai_call_orchestrator.errors import RemoteError
from ai_call_orchestrator.jobs import PollerConfig
from ai_call_orchestrator.providers import MockTextProvider, MockTranscriptionProvider
from ai_call_orchestrator.resilience import BackoffConfig, RetryConfig

if TYPE_CHECKING:
    from pathlib import Path

    from tests.conftest import FakeClock

FAST = BackoffConfig(base_delay=0.001, factor=1.0, max_delay=0.001, jitter_max=0.0)
SLOW = BackoffConfig(base_delay=30.0, factor=1.0, max_delay=30.0, jitter_max=0.0)

INTENT = '{"intent": "reminder", "summary": "Call mom", "actions": []}'
SUMMARY = '{"summary": "Short", "tldr": "S", "bulletPoints": []}'
ENTITIES = '{"entities": [{"type": "person", "value": "Bob"}]}'


def fast_config(**overrides: object) -> OrchestratorConfig:
    config = OrchestratorConfig(
        retry=RetryConfig(max_retries=2),
        backoff=FAST,
        poller=PollerConfig(poll_backoff=FAST, upload_backoff=FAST),
    )
    for name, value in overrides.items():
        setattr(config, name, value)
    return config


def server_error() -> RemoteError:
    return RemoteError("upstream down", status_code=503)


@pytest.fixture
def audio_file(tmp_path: Path) -> Path:
    path = tmp_path / "voicemail.wav"
    path.write_bytes(b"RIFF" + b"\x00" * 60)
    return path


class TestConstruction:
    """Tests for building orchestrators."""

    def test_builder(self, clock: FakeClock) -> None:
        """Test builder settings reach the components."""
        orch = (
            Orchestrator.builder()
            .text_provider(MockTextProvider())
            .max_retries(1)
            .requests_per_minute(30)
            .max_concurrent(5)
            .circuit_breaker(2, cooldown_seconds=10.0)
            .cache(max_entries=10, ttl_seconds=60.0)
            .clock(clock)
            .build()
        )
        assert orch.config.retry.max_retries == 1
        assert orch.rate_limiter.config.max_per_minute == 30
        assert orch.admission.max_concurrent == 5
        assert orch.circuit_breaker.config.failure_threshold == 2
        assert orch.circuit_breaker.config.cooldown_seconds == 10.0
        assert orch.cache.config.max_entries == 10

    def test_builder_validates_eagerly(self) -> None:
        """Test invalid values fail at the setter."""
        with pytest.raises(ConfigError):
            Orchestrator.builder().max_concurrent(0)
        with pytest.raises(ConfigError):
            Orchestrator.builder().max_retries(-1)

    def test_builder_requires_provider(self) -> None:
        """Test build without providers fails."""
        with pytest.raises(ConfigError, match="provider"):
            Orchestrator.builder().build()

    def test_create_requires_keys(self) -> None:
        """Test create without credentials raises ValueError."""
        with pytest.raises(ValueError, match="API key"):
            Orchestrator.create()

    def test_create_with_keys(self) -> None:
        """Test create wires the HTTP providers."""
        orch = Orchestrator.create(
            gemini_api_key="g" * 32,
            assemblyai_api_key="a" * 32,
            gemini_model="gemini-1.5-pro",
        )
        assert "GeminiTextProvider" in repr(orch)
        assert "AssemblyAITranscriptionProvider" in repr(orch)

    def test_create_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test keys fall back to the environment."""
        monkeypatch.setenv("GEMINI_API_KEY", "g" * 32)
        monkeypatch.setenv("ASSEMBLYAI_API_KEY", "a" * 32)
        orch = Orchestrator.create()
        assert "GeminiTextProvider" in repr(orch)


class TestTextOperations:
    """Tests for the text operations."""

    @pytest.mark.asyncio
    async def test_analyze_intent(self) -> None:
        """Test intent analysis through the facade."""
        orch = Orchestrator(MockTextProvider([INTENT]), config=fast_config())
        result = await orch.analyze_intent("Remind me to call mom", {"timezone": "UTC"})
        assert isinstance(result, Success)
        assert result.value["intent"] == "reminder"
        assert orch.active_requests == []

    @pytest.mark.asyncio
    async def test_summarize_is_cached(self) -> None:
        """Test identical requests are served from the cache."""
        provider = MockTextProvider([SUMMARY])
        orch = Orchestrator(provider, config=fast_config())

        first = await orch.summarize("Long meeting notes", max_words=50)
        second = await orch.summarize("Long meeting notes", max_words=50)

        assert isinstance(first, Success)
        assert isinstance(second, Success)
        assert second.cached
        assert second.attempts == 0
        assert provider.call_count == 1

    @pytest.mark.asyncio
    async def test_extract_entities(self) -> None:
        """Test entity extraction."""
        orch = Orchestrator(MockTextProvider([ENTITIES]), config=fast_config())
        result = await orch.extract_entities("Call Bob", entity_types=["person"])
        assert isinstance(result, Success)
        assert result.value["entities"][0]["value"] == "Bob"

    @pytest.mark.asyncio
    async def test_generate_reply_retries(self) -> None:
        """Test a transient failure is retried."""
        provider = MockTextProvider([server_error(), "Sure, I'll call back."])
        orch = Orchestrator(provider, config=fast_config())
        result = await orch.generate_reply("Draft a reply")
        assert isinstance(result, Success)
        assert result.value == "Sure, I'll call back."
        assert result.attempts == 2

    @pytest.mark.asyncio
    async def test_empty_input(self) -> None:
        """Test empty input fails without calling the provider."""
        provider = MockTextProvider()
        orch = Orchestrator(provider, config=fast_config())
        result = await orch.summarize("   ")
        assert isinstance(result, Failure)
        assert result.code is ErrorCode.INVALID_INPUT
        assert provider.call_count == 0

    @pytest.mark.asyncio
    async def test_breaker_opens_across_operations(self) -> None:
        """Test exhausted failures trip the shared circuit breaker."""
        provider = MockTextProvider([server_error()])
        config = fast_config()
        config.retry = RetryConfig(max_retries=0)
        orch = Orchestrator(provider, config=config)
        for _ in range(config.circuit_breaker.failure_threshold):
            result = await orch.generate_reply("hello")
            assert isinstance(result, Failure)
            assert result.code is ErrorCode.SERVER_ERROR

        blocked = await orch.summarize("notes")
        assert isinstance(blocked, Failure)
        assert blocked.code is ErrorCode.CIRCUIT_BREAKER_OPEN
        assert not orch.snapshot().is_healthy

    @pytest.mark.asyncio
    async def test_missing_text_provider(self) -> None:
        """Test text operations need a text provider."""
        orch = Orchestrator(transcription_provider=MockTranscriptionProvider())
        with pytest.raises(ConfigError) as exc_info:
            await orch.summarize("notes")
        assert exc_info.value.key == "text_provider"
        assert await orch.warmup() is False

    @pytest.mark.asyncio
    async def test_warmup(self) -> None:
        """Test warmup reports provider reachability."""
        assert await Orchestrator(MockTextProvider(["hi"])).warmup() is True
        assert await Orchestrator(MockTextProvider([server_error()])).warmup() is False


class TestExecute:
    """Tests for running arbitrary calls."""

    @pytest.mark.asyncio
    async def test_execute_custom_call(self) -> None:
        """Test custom calls share the resilience policies."""
        orch = Orchestrator(MockTextProvider(), config=fast_config())
        calls = 0

        async def lookup() -> int:
            nonlocal calls
            calls += 1
            if calls == 1:
                raise server_error()
            return 42

        result = await orch.execute(lookup, fingerprint="lookup:1")
        cached = await orch.execute(lookup, fingerprint="lookup:1")
        assert isinstance(result, Success)
        assert result.value == 42
        assert result.attempts == 2
        assert isinstance(cached, Success)
        assert cached.cached
        assert calls == 2


class TestTranscription:
    """Tests for the transcription operations."""

    @pytest.mark.asyncio
    async def test_transcribe_file(self, audio_file: Path) -> None:
        """Test a file is uploaded, polled and annotated."""
        provider = MockTranscriptionProvider(
            ["queued", "processing", {"status": "completed", "text": "Remind me to call Bob"}]
        )
        orch = Orchestrator(transcription_provider=provider, config=fast_config())
        events: list[ProgressEvent] = []

        result = await orch.transcribe(audio_file, on_progress=events.append)

        assert isinstance(result, Success)
        assert result.value.text == "Remind me to call Bob"
        assert result.value.job_id == "job-1"
        assert result.value.keywords["calls"]
        assert provider.uploads == [64]
        assert events[-1].phase is JobPhase.COMPLETED
        assert "poller" in orch.get_stats()

    @pytest.mark.asyncio
    async def test_transcribe_missing_file(self, tmp_path: Path) -> None:
        """Test a missing file fails before any upload."""
        provider = MockTranscriptionProvider()
        orch = Orchestrator(transcription_provider=provider, config=fast_config())
        result = await orch.transcribe(tmp_path / "absent.mp3")
        assert isinstance(result, Failure)
        assert result.code is ErrorCode.INVALID_INPUT
        assert provider.uploads == []

    @pytest.mark.asyncio
    async def test_invalid_input_ends_progress_stream(self) -> None:
        """Test a stream consumer finishes when validation rejects the audio."""
        orch = Orchestrator(
            transcription_provider=MockTranscriptionProvider(), config=fast_config()
        )
        reporter = ProgressReporter()
        received: list[JobPhase] = []

        async def consume() -> None:
            async for event in reporter.stream():
                received.append(event.phase)

        consumer = asyncio.create_task(consume())
        await asyncio.sleep(0)
        result = await orch.transcribe(b"", progress=reporter)
        await asyncio.wait_for(consumer, timeout=1)

        assert isinstance(result, Failure)
        assert result.code is ErrorCode.INVALID_INPUT
        assert received == [JobPhase.FAILED]
        assert reporter.closed

    @pytest.mark.asyncio
    async def test_reporter_reused_across_transcriptions(self, audio_file: Path) -> None:
        """Test one reporter can follow several transcriptions in turn."""
        orch = Orchestrator(
            transcription_provider=MockTranscriptionProvider(), config=fast_config()
        )
        reporter = ProgressReporter()
        first: list[ProgressEvent] = []
        second: list[ProgressEvent] = []

        assert (await orch.transcribe(audio_file, progress=reporter, on_progress=first.append)).ok
        assert (await orch.transcribe(b"", progress=reporter)).code is ErrorCode.INVALID_INPUT
        assert (await orch.transcribe(audio_file, progress=reporter, on_progress=second.append)).ok

        assert [e.phase for e in second] == [e.phase for e in first]
        assert reporter.events[0].phase is JobPhase.VALIDATING
        assert reporter.last is not None
        assert reporter.last.phase is JobPhase.COMPLETED

    @pytest.mark.asyncio
    async def test_concurrent_transcriptions_tracked_per_request(self) -> None:
        """Test each running transcription keeps its own job entry."""
        orch = Orchestrator(
            transcription_provider=MockTranscriptionProvider(["processing"]),
            config=fast_config(
                poller=PollerConfig(
                    poll_backoff=FAST, upload_backoff=FAST, max_poll_attempts=10_000
                )
            ),
        )
        first, second = orch.new_context("transcribe"), orch.new_context("transcribe")
        tasks = [
            asyncio.create_task(orch.transcribe(b"one", context=first)),
            asyncio.create_task(orch.transcribe(b"two", context=second)),
        ]

        async def both_polling() -> None:
            while len(orch.get_stats()["poller"]["active_jobs"]) < 2:
                await asyncio.sleep(0.001)

        await asyncio.wait_for(both_polling(), timeout=1)
        first.cancel()
        assert (await tasks[0]).code is ErrorCode.CANCELLED

        assert orch.get_stats()["poller"]["active_jobs"] == ["job-1"]
        second.cancel()
        assert (await tasks[1]).code is ErrorCode.CANCELLED
        assert orch.get_stats()["poller"]["active_jobs"] == []

    @pytest.mark.asyncio
    async def test_get_and_delete_transcription(self) -> None:
        """Test fetching and deleting a job by id."""
        provider = MockTranscriptionProvider(["completed"])
        orch = Orchestrator(transcription_provider=provider, config=fast_config())

        fetched = await orch.get_transcription("job-9")
        deleted = await orch.delete_transcription("job-9")

        assert isinstance(fetched, Success)
        assert fetched.value.id == "job-9"
        assert fetched.value.text == "Mock transcript"
        assert isinstance(deleted, Success)
        assert deleted.value is True
        assert provider.deleted == ["job-9"]

    @pytest.mark.asyncio
    async def test_missing_transcription_provider(self) -> None:
        """Test transcription needs a transcription provider."""
        orch = Orchestrator(MockTextProvider())
        with pytest.raises(ConfigError) as exc_info:
            await orch.get_transcription("job-1")
        assert exc_info.value.key == "transcription_provider"


class TestCancellation:
    """Tests for cancelling in-flight operations."""

    @pytest.mark.asyncio
    async def test_cancel_by_request_id(self) -> None:
        """Test cancelling one operation during its backoff wait."""
        provider = MockTextProvider([server_error(), "late"])
        config = fast_config(backoff=SLOW)
        orch = Orchestrator(provider, config=config)
        ctx = orch.new_context("generate_reply")

        task = asyncio.create_task(orch.generate_reply("hello", context=ctx))
        while provider.call_count < 1:
            await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert orch.active_requests == [ctx.request_id]
        assert orch.cancel(ctx.request_id) == 1
        assert orch.cancel(ctx.request_id) == 0

        result = await asyncio.wait_for(task, timeout=5.0)
        assert isinstance(result, Failure)
        assert result.code is ErrorCode.CANCELLED
        assert result.request_id == ctx.request_id
        assert provider.call_count == 1
        assert orch.active_requests == []

    @pytest.mark.asyncio
    async def test_cancel_all(self) -> None:
        """Test cancelling every in-flight operation."""
        provider = MockTextProvider([server_error()])
        orch = Orchestrator(provider, config=fast_config(backoff=SLOW))

        tasks = [
            asyncio.create_task(orch.generate_reply(f"prompt {i}")) for i in range(2)
        ]
        while provider.call_count < 2:
            await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert orch.cancel() == 2
        results = await asyncio.wait_for(asyncio.gather(*tasks), timeout=5.0)
        assert all(isinstance(r, Failure) and r.code is ErrorCode.CANCELLED for r in results)

    @pytest.mark.asyncio
    async def test_pre_cancelled_context(self) -> None:
        """Test a cancelled context never reaches the provider."""
        provider = MockTextProvider(["unused"])
        orch = Orchestrator(provider, config=fast_config())
        ctx = RequestContext()
        ctx.cancel()

        result = await orch.generate_reply("hello", context=ctx)
        assert isinstance(result, Failure)
        assert result.code is ErrorCode.CANCELLED
        assert provider.call_count == 0

    def test_cancel_unknown_id(self) -> None:
        """Test an unknown id cancels nothing."""
        assert Orchestrator(MockTextProvider()).cancel("nope") == 0


class TestLifecycle:
    """Tests for stats, reset and close."""

    @pytest.mark.asyncio
    async def test_stats_and_reset(self) -> None:
        """Test counters accumulate and reset clears them."""
        orch = Orchestrator(MockTextProvider([SUMMARY]), config=fast_config())
        await orch.summarize("notes")
        await orch.summarize("notes")

        stats = orch.get_stats()
        assert stats["executor"]["calls"] == 2
        assert stats["executor"]["cache_hits"] == 1
        assert stats["cache"]["size"] == 1
        assert stats["active_requests"] == 0
        assert "poller" not in stats

        await orch.reset()
        stats = orch.get_stats()
        assert stats["executor"]["calls"] == 0
        assert stats["cache"]["size"] == 0
        assert stats["rate_limiter"]["current_count"] == 0

    @pytest.mark.asyncio
    async def test_snapshot(self) -> None:
        """Test the snapshot reflects configured limits."""
        orch = Orchestrator(
            MockTextProvider(["ok"]), config=fast_config()
        )
        await orch.generate_reply("hello")
        snap = orch.snapshot()
        assert snap.is_healthy
        assert snap.rate_limiter is not None
        assert snap.rate_limiter.in_window == 1
        assert snap.admission is not None
        assert snap.admission.max_concurrent == 3

    @pytest.mark.asyncio
    async def test_close(self) -> None:
        """Test close shuts providers and rejects new work."""
        text = MockTextProvider()
        transcription = MockTranscriptionProvider()
        async with Orchestrator(text, transcription) as orch:
            assert not orch.closed

        assert orch.closed
        assert text.closed
        assert transcription.closed
        await orch.close()
        with pytest.raises(RuntimeError, match="closed"):
            await orch.generate_reply("hello")

    def test_repr(self) -> None:
        """Test repr names the configured providers."""
        orch = Orchestrator(transcription_provider=MockTranscriptionProvider())
        assert repr(orch) == "Orchestrator(text=None, transcription=MockTranscriptionProvider)"
