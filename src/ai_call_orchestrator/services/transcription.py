"""
Audio transcription on top of the job poller.

Validates the audio source locally, runs the upload/poll lifecycle and
annotates the finished transcript with action keywords.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING

import pydantic

from ai_call_orchestrator.client.cancel import RequestContext
from ai_call_orchestrator.errors import ErrorCode
from ai_call_orchestrator.jobs.progress import ProgressReporter
from ai_call_orchestrator.telemetry import get_logger
from ai_call_orchestrator.types import (
    Failure,
    JobPhase,
    JobStatus,
    KeywordMatch,
    Result,
    Success,
    Transcript,
    TranscriptionResult,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from ai_call_orchestrator.jobs.poller import JobPoller
    from ai_call_orchestrator.providers.base import TranscriptionProvider
    from ai_call_orchestrator.resilience.executor import RetryExecutor
    from ai_call_orchestrator.types import ProgressEvent, TranscriptionOptions

logger = get_logger(__name__)

SUPPORTED_FORMATS = frozenset({".wav", ".mp3", ".m4a", ".aac", ".flac", ".ogg", ".opus"})
MAX_FILE_BYTES = 500 * 1024 * 1024

KEYWORD_PATTERNS: dict[str, tuple[str, ...]] = {
    "reminders": (
        "remind me",
        "reminder",
        "don't forget",
        "remember to",
        "set a reminder",
        "remind",
    ),
    "calls": ("call", "phone", "ring", "contact", "dial"),
    "emails": ("email", "send message", "write to", "mail", "send to"),
    "tasks": ("todo", "to do", "task", "need to", "have to", "must"),
    "meetings": ("meeting", "appointment", "schedule", "book", "meet with"),
}
_CONTEXT_BEFORE = 20
_CONTEXT_AFTER = 30


def extract_keywords(text: str) -> dict[str, list[KeywordMatch]]:
    """Find action keywords with a little surrounding context.

    Matching is case-insensitive substring search; every occurrence of every
    pattern is reported, so overlapping patterns ("remind me", "remind") each
    produce a match.
    """
    found: dict[str, list[KeywordMatch]] = {category: [] for category in KEYWORD_PATTERNS}
    if not text:
        return found

    lowered = text.lower()
    for category, patterns in KEYWORD_PATTERNS.items():
        for pattern in patterns:
            index = lowered.find(pattern)
            while index != -1:
                start = max(0, index - _CONTEXT_BEFORE)
                end = min(len(text), index + len(pattern) + _CONTEXT_AFTER)
                found[category].append(
                    KeywordMatch(keyword=pattern, position=index, context=text[start:end].strip())
                )
                index = lowered.find(pattern, index + 1)
    return found


class Transcriber:
    """Transcribes audio files or bytes.

    Example:
        >>> transcriber = Transcriber(provider, poller, executor)
        >>> result = await transcriber.transcribe("note.m4a", on_progress=print)
    """

    def __init__(
        self,
        provider: TranscriptionProvider,
        poller: JobPoller,
        executor: RetryExecutor,
        *,
        max_file_bytes: int = MAX_FILE_BYTES,
        supported_formats: frozenset[str] = SUPPORTED_FORMATS,
    ) -> None:
        self._provider = provider
        self._poller = poller
        self._executor = executor
        self._max_file_bytes = max_file_bytes
        self._supported_formats = supported_formats

    @property
    def poller(self) -> JobPoller:
        return self._poller

    @property
    def active_jobs(self) -> dict[str, str]:
        """Job ids being polled, keyed by request id."""
        return self._poller.active_jobs

    def validate_file(self, path: Path, ctx: RequestContext) -> Failure | None:
        """Check existence, format and size of an audio file."""

        def invalid(code: ErrorCode, message: str, **details: object) -> Failure:
            return Failure(
                code=code,
                message=message,
                request_id=ctx.request_id,
                details={"path": str(path), **details},
            )

        if not path.is_file():
            return invalid(ErrorCode.INVALID_INPUT, f"Audio file not found at: {path}")

        suffix = path.suffix.lower()
        if suffix not in self._supported_formats:
            supported = ", ".join(sorted(self._supported_formats))
            return invalid(
                ErrorCode.INVALID_INPUT,
                f"Unsupported audio format: {suffix or '(none)'}. Supported formats: {supported}",
            )

        size = path.stat().st_size
        if size == 0:
            return invalid(ErrorCode.INVALID_INPUT, "Audio file is empty (0 bytes)")
        if size > self._max_file_bytes:
            return invalid(
                ErrorCode.PAYLOAD_TOO_LARGE,
                f"Audio file too large ({size / (1024 * 1024):.2f} MB)",
                size=size,
            )
        return None

    def validate_bytes(self, data: bytes, ctx: RequestContext) -> Failure | None:
        if not data:
            return Failure(
                code=ErrorCode.INVALID_INPUT,
                message="Audio data is empty",
                request_id=ctx.request_id,
            )
        if len(data) > self._max_file_bytes:
            return Failure(
                code=ErrorCode.PAYLOAD_TOO_LARGE,
                message=f"Audio data too large ({len(data) / (1024 * 1024):.2f} MB)",
                request_id=ctx.request_id,
                details={"size": len(data)},
            )
        return None

    async def transcribe(
        self,
        source: str | Path | bytes,
        options: TranscriptionOptions | None = None,
        *,
        on_progress: Callable[[ProgressEvent], object] | None = None,
        progress: ProgressReporter | None = None,
        context: RequestContext | None = None,
    ) -> Result[TranscriptionResult]:
        """Transcribe an audio file path or raw audio bytes.

        Args:
            source: Path to an audio file, or the audio bytes
            options: Job creation options
            on_progress: Callback receiving ProgressEvent values
            progress: Reporter to publish to, for stream consumers; a finished one is reset
            context: Request scope carrying the cancel token

        Returns:
            Success with the transcript and keywords, or Failure
        """
        ctx = context or RequestContext(operation="transcribe")
        reporter = progress or ProgressReporter()
        if reporter.closed:
            reporter.reset()
        unsubscribe = reporter.subscribe(on_progress) if on_progress is not None else None
        try:
            result = await self._run(source, ctx, options, reporter)
        finally:
            if unsubscribe is not None:
                unsubscribe()
        if not isinstance(result, Success):
            return result

        transcript = result.value
        return Success(
            value=TranscriptionResult(
                transcript=transcript,
                keywords=extract_keywords(transcript.text),
                job_id=transcript.id,
                poll_attempts=result.attempts,
            ),
            attempts=result.attempts,
            request_id=ctx.request_id,
        )

    async def _run(
        self,
        source: str | Path | bytes,
        ctx: RequestContext,
        options: TranscriptionOptions | None,
        reporter: ProgressReporter,
    ) -> Result[Transcript]:
        if isinstance(source, (bytes, bytearray)):
            data = bytes(source)
            failure = self.validate_bytes(data, ctx)
        else:
            path = Path(source)
            failure = self.validate_file(path, ctx)
            data = b""
            if failure is None:
                try:
                    data = await asyncio.to_thread(path.read_bytes)
                except OSError as e:
                    failure = Failure(
                        code=ErrorCode.INVALID_INPUT,
                        message=f"Cannot read audio file: {e}",
                        request_id=ctx.request_id,
                        details={"path": str(path)},
                    )

        if failure is not None:
            logger.warning(
                "Audio validation failed", code=failure.code.value, error=failure.message
            )
            reporter.emit(JobPhase.FAILED, 0.0, failure.message)
            return failure

        return await self._poller.run(data, ctx, options, progress=reporter)

    async def get_transcription(
        self, job_id: str, context: RequestContext | None = None
    ) -> Result[Transcript]:
        """Fetch a previously created job by id."""
        ctx = context or RequestContext(operation="get_transcription")
        if not job_id:
            return Failure(
                code=ErrorCode.INVALID_INPUT,
                message="Job id cannot be empty",
                request_id=ctx.request_id,
            )

        fetched = await self._executor.execute(
            lambda: self._provider.get_job_status(job_id), ctx
        )
        if not isinstance(fetched, Success):
            return fetched

        response = fetched.value
        status = response.job_status
        if status is JobStatus.COMPLETED:
            try:
                return fetched.map(lambda r: r.to_transcript())
            except pydantic.ValidationError as e:
                return Failure(
                    code=ErrorCode.PARSE_ERROR,
                    message=f"Invalid transcript payload: {e.error_count()} error(s)",
                    attempts=fetched.attempts,
                    request_id=ctx.request_id,
                    details={"job_id": job_id},
                )
        if status is JobStatus.ERROR:
            return Failure(
                code=ErrorCode.JOB_FAILED,
                message=response.error or "Transcription failed",
                attempts=fetched.attempts,
                request_id=ctx.request_id,
                details={"job_id": job_id},
            )
        return Failure(
            code=ErrorCode.INVALID_INPUT,
            message=f"Transcription not completed. Status: {response.status}",
            attempts=fetched.attempts,
            request_id=ctx.request_id,
            details={"job_id": job_id, "status": response.status},
        )

    async def delete_transcription(
        self, job_id: str, context: RequestContext | None = None
    ) -> Result[bool]:
        """Delete a job and its data from the provider."""
        ctx = context or RequestContext(operation="delete_transcription")
        if not job_id:
            return Failure(
                code=ErrorCode.INVALID_INPUT,
                message="Job id cannot be empty",
                request_id=ctx.request_id,
            )

        async def call() -> bool:
            await self._provider.delete_job(job_id)
            return True

        return await self._executor.execute(call, ctx)
