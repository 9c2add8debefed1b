"""Tests for the structured text operations."""

from __future__ import annotations

import pytest

from ai_call_orchestrator.cache import CacheConfig, ResponseCache
from ai_call_orchestrator.errors import ErrorCode, RemoteError, ResponseParseError
from ai_call_orchestrator.providers import MockTextProvider
from ai_call_orchestrator.resilience import (
    BackoffConfig,
    BackoffPolicy,
    RetryConfig,
    RetryExecutor,
)
from ai_call_orchestrator.services import TextService, extract_json, require_keys
from ai_call_orchestrator.types import Failure, GenerationOptions, Success

FAST = BackoffPolicy(BackoffConfig(base_delay=0.001, max_delay=0.001, jitter_max=0.0))


def make_service(provider: MockTextProvider, **kwargs: object) -> TextService:
    executor = RetryExecutor(
        RetryConfig(max_retries=2), backoff=FAST, cache=ResponseCache(CacheConfig())
    )
    return TextService(provider, executor, **kwargs)  # type: ignore[arg-type]


class TestExtractJson:
    """Tests for extract_json."""

    def test_plain_object(self) -> None:
        """Test a bare JSON object."""
        assert extract_json('{"a": 1}') == {"a": 1}

    def test_markdown_fence(self) -> None:
        """Test a ```json fenced block."""
        assert extract_json('```json\n{"summary": "s"}\n```') == {"summary": "s"}

    def test_plain_fence(self) -> None:
        """Test a bare ``` fenced block."""
        assert extract_json('```\n{"summary": "s"}\n```') == {"summary": "s"}

    def test_surrounding_prose(self) -> None:
        """Test text around the object is ignored."""
        assert extract_json('Here you go: {"a": {"b": 2}} Hope it helps!') == {"a": {"b": 2}}

    @pytest.mark.parametrize("text", ["no json here", "{broken", '["a", "b"]', "} {"])
    def test_unparseable(self, text: str) -> None:
        """Test responses without a JSON object."""
        with pytest.raises(ResponseParseError):
            extract_json(text)

    def test_require_keys(self) -> None:
        """Test missing keys are reported."""
        assert require_keys({"a": 1, "b": 2}, ("a",)) == {"a": 1, "b": 2}
        with pytest.raises(ResponseParseError, match="summary"):
            require_keys({"intent": "x"}, ("intent", "summary"))


class TestTextService:
    """Tests for TextService."""

    @pytest.mark.asyncio
    async def test_analyze_intent(self) -> None:
        """Test intent analysis returns the parsed object."""
        provider = MockTextProvider(
            ['{"intent": "reminder", "summary": "Call mom", "confidence": 0.9}']
        )
        result = await make_service(provider).analyze_intent(
            "Remind me to call mom tomorrow", {"timezone": "UTC"}
        )
        assert isinstance(result, Success)
        assert result.value["intent"] == "reminder"
        assert "Remind me to call mom tomorrow" in provider.prompts[0]
        assert '"timezone": "UTC"' in provider.prompts[0]

    @pytest.mark.asyncio
    async def test_fallback_extraction(self) -> None:
        """Test one extraction call repairs a non-JSON reply."""
        provider = MockTextProvider(
            ["Sure! The intent is a reminder.", '{"intent": "reminder", "summary": "s"}']
        )
        result = await make_service(provider).analyze_intent("Remind me")
        assert result.ok
        assert provider.call_count == 2
        assert "Extract only the JSON object" in provider.prompts[1]
        assert "Sure! The intent is a reminder." in provider.prompts[1]

    @pytest.mark.asyncio
    async def test_fallback_failure_is_parse_error(self) -> None:
        """Test PARSE_ERROR when the fallback also fails."""
        provider = MockTextProvider(["not json", "still not json"])
        result = await make_service(provider).summarize("Some text")
        assert isinstance(result, Failure)
        assert result.code is ErrorCode.PARSE_ERROR
        assert result.attempts == 1
        assert provider.call_count == 2

    @pytest.mark.asyncio
    async def test_missing_required_key(self) -> None:
        """Test a parsed object without required keys is a parse error."""
        provider = MockTextProvider(['{"intent": "reminder"}'])
        result = await make_service(provider).analyze_intent("Remind me")
        assert isinstance(result, Failure)
        assert result.code is ErrorCode.PARSE_ERROR
        assert provider.call_count == 1

    @pytest.mark.asyncio
    async def test_empty_input(self) -> None:
        """Test empty input is rejected without a call."""
        provider = MockTextProvider()
        service = make_service(provider)
        for result in (
            await service.analyze_intent("   "),
            await service.summarize(""),
            await service.extract_entities(""),
            await service.generate_reply(""),
        ):
            assert isinstance(result, Failure)
            assert result.code is ErrorCode.INVALID_INPUT
        assert provider.call_count == 0

    @pytest.mark.asyncio
    async def test_transcript_too_long(self) -> None:
        """Test over-long transcripts are rejected."""
        provider = MockTextProvider()
        result = await make_service(provider, max_transcript_length=10).analyze_intent(
            "x" * 11
        )
        assert isinstance(result, Failure)
        assert result.code is ErrorCode.INVALID_INPUT
        assert provider.call_count == 0

    @pytest.mark.asyncio
    async def test_retry_on_timeout(self) -> None:
        """Test transient provider failures are retried."""
        provider = MockTextProvider([TimeoutError(), '{"summary": "s"}'])
        result = await make_service(provider).summarize("Some text")
        assert isinstance(result, Success)
        assert result.attempts == 2

    @pytest.mark.asyncio
    async def test_invalid_key_not_retried(self) -> None:
        """Test a rejected credential fails on the first attempt."""
        provider = MockTextProvider([RemoteError("API key not valid", status_code=401)])
        result = await make_service(provider).summarize("Some text")
        assert isinstance(result, Failure)
        assert provider.call_count == 1

    @pytest.mark.asyncio
    async def test_results_are_cached(self) -> None:
        """Test identical requests are served from cache."""
        provider = MockTextProvider(['{"summary": "s"}'])
        service = make_service(provider)
        first = await service.summarize("Some text", max_words=50)
        second = await service.summarize("Some text", max_words=50)
        third = await service.summarize("Some text", max_words=20)

        assert first.ok and not first.cached
        assert isinstance(second, Success) and second.cached
        assert isinstance(third, Success) and not third.cached
        assert provider.call_count == 2

    @pytest.mark.asyncio
    async def test_entities(self) -> None:
        """Test entity extraction with custom types."""
        provider = MockTextProvider(['{"entities": [{"type": "person", "value": "Ann"}]}'])
        result = await make_service(provider).extract_entities(
            "Meet Ann", entity_types=["person"]
        )
        assert isinstance(result, Success)
        assert result.value["entities"][0]["value"] == "Ann"
        assert "Extract entities of these types: person" in provider.prompts[0]

    @pytest.mark.asyncio
    async def test_replies_are_not_cached(self) -> None:
        """Test free-form replies always call the provider."""
        provider = MockTextProvider(["Hello!"])
        service = make_service(provider)
        first = await service.generate_reply("Hi", GenerationOptions(temperature=0.7))
        second = await service.generate_reply("Hi", GenerationOptions(temperature=0.7))
        assert isinstance(first, Success)
        assert first.value == "Hello!"
        assert not second.cached
        assert provider.call_count == 2

    @pytest.mark.asyncio
    async def test_warmup(self) -> None:
        """Test warmup reports reachability and never raises."""
        assert await make_service(MockTextProvider(["pong"])).warmup() is True
        broken = MockTextProvider([RemoteError("down", status_code=503)])
        assert await make_service(broken).warmup() is False
