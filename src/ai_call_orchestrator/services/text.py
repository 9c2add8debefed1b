"""
Structured text operations over a text-generation provider.

Every operation validates its input locally, then runs through the shared
retry executor. JSON operations tolerate markdown fences and surrounding
prose; when no JSON object can be parsed, one fallback extraction call is
made before giving up with PARSE_ERROR.
"""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING, Any

from ai_call_orchestrator.cache import FingerprintGenerator
from ai_call_orchestrator.client.cancel import RequestContext
from ai_call_orchestrator.errors import ErrorCode, ResponseParseError
from ai_call_orchestrator.services import prompts
from ai_call_orchestrator.telemetry import get_logger
from ai_call_orchestrator.types import Failure, GenerationOptions, Result

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ai_call_orchestrator.providers.base import TextGenerationProvider
    from ai_call_orchestrator.resilience.executor import RetryExecutor

logger = get_logger(__name__)

MAX_TRANSCRIPT_LENGTH = 50_000
DEFAULT_ENTITY_TYPES = ("person", "datetime", "location", "phone", "email")
_WARMUP_TIMEOUT = 10.0


def extract_json(text: str) -> dict[str, Any]:
    """Parse the JSON object embedded in a model response.

    Strips a leading ```json (or ```) fence and a trailing ``` fence, then
    decodes the span from the first ``{`` to the last ``}``.

    Raises:
        ResponseParseError: If no JSON object can be decoded
    """
    body = text.strip()
    if body.startswith("```json"):
        body = body[7:]
    elif body.startswith("```"):
        body = body[3:]
    if body.endswith("```"):
        body = body[:-3]
    body = body.strip()

    start = body.find("{")
    end = body.rfind("}")
    if start == -1 or end < start:
        raise ResponseParseError("No JSON object found in response", raw=text)

    try:
        data = json.loads(body[start : end + 1])
    except json.JSONDecodeError as e:
        raise ResponseParseError(f"Invalid JSON in response: {e.msg}", raw=text) from e
    if not isinstance(data, dict):
        raise ResponseParseError("Response JSON is not an object", raw=text)
    return data


def require_keys(data: dict[str, Any], keys: Sequence[str]) -> dict[str, Any]:
    """Check that the top-level keys are present.

    Raises:
        ResponseParseError: If any key is missing
    """
    missing = [key for key in keys if key not in data]
    if missing:
        raise ResponseParseError(f"Response missing required fields: {', '.join(missing)}")
    return data


class TextService:
    """Intent analysis, summarization, entity extraction and replies.

    Example:
        >>> service = TextService(provider, executor)
        >>> result = await service.summarize("Long meeting notes ...")
        >>> if result.ok:
        ...     print(result.value["summary"])
    """

    def __init__(
        self,
        provider: TextGenerationProvider,
        executor: RetryExecutor,
        *,
        fingerprints: FingerprintGenerator | None = None,
        options: GenerationOptions | None = None,
        max_transcript_length: int = MAX_TRANSCRIPT_LENGTH,
    ) -> None:
        self._provider = provider
        self._executor = executor
        self._fingerprints = fingerprints or FingerprintGenerator()
        self._options = options or GenerationOptions()
        self._max_transcript_length = max_transcript_length

    @property
    def provider(self) -> TextGenerationProvider:
        return self._provider

    def _invalid(self, ctx: RequestContext, message: str) -> Failure:
        return Failure(code=ErrorCode.INVALID_INPUT, message=message, request_id=ctx.request_id)

    async def _structured(
        self,
        operation: str,
        prompt: str,
        required: Sequence[str],
        fingerprint: str,
        ctx: RequestContext,
    ) -> Result[dict[str, Any]]:
        options = self._options

        async def call() -> dict[str, Any]:
            text = await self._provider.generate(prompt, options)
            try:
                data = extract_json(text)
            except ResponseParseError:
                logger.info("Falling back to JSON extraction", response_length=len(text))
                repaired = await self._provider.generate(
                    prompts.render_json_extraction(text), options
                )
                data = extract_json(repaired)
            return require_keys(data, required)

        logger.debug("Sending request", operation=operation, prompt_length=len(prompt))
        return await self._executor.execute(call, ctx, fingerprint=fingerprint)

    async def analyze_intent(
        self,
        transcript: str,
        context_data: dict[str, Any] | None = None,
        *,
        context: RequestContext | None = None,
    ) -> Result[dict[str, Any]]:
        """Extract intent, entities, summary and actions from a transcript."""
        ctx = context or RequestContext(operation="analyze_intent")
        if not transcript or not transcript.strip():
            return self._invalid(ctx, "Transcript cannot be empty")
        if len(transcript) > self._max_transcript_length:
            return self._invalid(
                ctx,
                f"Transcript exceeds maximum length of {self._max_transcript_length} characters",
            )

        return await self._structured(
            "analyze_intent",
            prompts.render_intent(transcript, context_data),
            ("intent", "summary"),
            self._fingerprints.fingerprint("analyze_intent", transcript, context_data),
            ctx,
        )

    async def summarize(
        self,
        text: str,
        *,
        style: str = "concise",
        max_words: int = 100,
        context: RequestContext | None = None,
    ) -> Result[dict[str, Any]]:
        """Summarize text into ``summary``, ``tldr`` and ``bulletPoints``."""
        ctx = context or RequestContext(operation="summarize")
        if not text or not text.strip():
            return self._invalid(ctx, "Text cannot be empty")

        return await self._structured(
            "summarize",
            prompts.render_summary(text, style, max_words),
            ("summary",),
            self._fingerprints.fingerprint(
                "summarize", text, {"style": style, "max_words": max_words}
            ),
            ctx,
        )

    async def extract_entities(
        self,
        text: str,
        *,
        entity_types: Sequence[str] | None = None,
        context: RequestContext | None = None,
    ) -> Result[dict[str, Any]]:
        """Extract typed entities from text."""
        ctx = context or RequestContext(operation="extract_entities")
        if not text or not text.strip():
            return self._invalid(ctx, "Text cannot be empty")

        types = list(entity_types or DEFAULT_ENTITY_TYPES)
        return await self._structured(
            "extract_entities",
            prompts.render_entities(text, types),
            ("entities",),
            self._fingerprints.fingerprint("extract_entities", text, {"entity_types": types}),
            ctx,
        )

    async def generate_reply(
        self,
        prompt: str,
        options: GenerationOptions | None = None,
        *,
        context: RequestContext | None = None,
    ) -> Result[str]:
        """Free-form generation. Replies are never cached."""
        ctx = context or RequestContext(operation="generate_reply")
        if not prompt or not prompt.strip():
            return self._invalid(ctx, "Prompt cannot be empty")

        opts = options or self._options
        return await self._executor.execute(
            lambda: self._provider.generate(prompt, opts), ctx
        )

    async def warmup(self) -> bool:
        """Probe connectivity with a tiny request.

        Returns:
            True if the provider answered; never raises
        """
        try:
            await asyncio.wait_for(
                self._provider.generate("Hello", self._options), timeout=_WARMUP_TIMEOUT
            )
        except Exception as e:
            logger.warning("Warmup failed", error=str(e))
            return False
        logger.info("Warmup successful")
        return True
