"""
Submit/poll lifecycle for asynchronous transcription jobs.

    validating -> uploading -> uploaded -> submitting -> processing* ->
    finalizing -> completed

Upload is retried; job creation and each status fetch are single attempts.
A status fetch that times out counts as a poll attempt and polling goes on;
any other infrastructure failure ends the job. Cancellation is observed
before every poll and during every wait.
"""

from __future__ import annotations

import dataclasses
import os
import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import pydantic

from ai_call_orchestrator.client.cancel import RequestContext
from ai_call_orchestrator.errors import ConfigError, ErrorCode
from ai_call_orchestrator.jobs.progress import ProgressReporter
from ai_call_orchestrator.resilience.backoff import BackoffConfig, BackoffPolicy
from ai_call_orchestrator.resilience.executor import RetryConfig, RetryExecutor
from ai_call_orchestrator.telemetry import get_logger, log_context
from ai_call_orchestrator.types import (
    Failure,
    JobPhase,
    JobStatus,
    Result,
    Success,
    Transcript,
)

if TYPE_CHECKING:
    from ai_call_orchestrator.providers.base import TranscriptionProvider
    from ai_call_orchestrator.resilience.admission import AdmissionController
    from ai_call_orchestrator.types import TranscriptionOptions

logger = get_logger(__name__)

PROGRESS_UPLOADING = 0.05
PROGRESS_UPLOADED = 0.25
PROGRESS_SUBMITTING = 0.30
PROGRESS_PROCESSING = 0.35
PROGRESS_PROCESSING_SPAN = 0.60
PROGRESS_FINALIZING = 0.95


def _default_upload_retry() -> RetryConfig:
    return RetryConfig(
        max_retries=3,
        attempt_timeout=120.0,
        fatal_codes=frozenset({ErrorCode.INVALID_API_KEY, ErrorCode.PAYLOAD_TOO_LARGE}),
    )


@dataclass
class PollerConfig:
    """Configuration for the job poller.

    Attributes:
        max_poll_attempts: Polls before giving up with POLLING_TIMEOUT
        poll_backoff: Spacing between polls
        upload_retry: Retry policy for the upload step
        upload_backoff: Delay between upload retries
        request_timeout: Deadline for job creation
        status_timeout: Deadline for each status fetch
        delete_on_cancel: Delete the remote job when cancelled
    """

    max_poll_attempts: int = 120
    poll_backoff: BackoffConfig = field(default_factory=BackoffConfig.polling)
    upload_retry: RetryConfig = field(default_factory=_default_upload_retry)
    upload_backoff: BackoffConfig = field(default_factory=BackoffConfig.retry)
    request_timeout: float = 30.0
    status_timeout: float = 30.0
    delete_on_cancel: bool = False

    def __post_init__(self) -> None:
        if self.max_poll_attempts < 1:
            raise ConfigError("max_poll_attempts must be >= 1", key="max_poll_attempts")

    @classmethod
    def from_env(cls) -> PollerConfig:
        """Create configuration from environment variables."""
        return cls(
            max_poll_attempts=int(os.getenv("AI_ORCH_MAX_POLL_ATTEMPTS", "120")),
        )


class JobPoller:
    """Drives one transcription job from upload to a terminal state.

    Example:
        >>> poller = JobPoller(provider, PollerConfig(), admission=admission)
        >>> result = await poller.run(audio_bytes, RequestContext())
        >>> if result.ok:
        ...     print(result.value.text)
    """

    def __init__(
        self,
        provider: TranscriptionProvider,
        config: PollerConfig | None = None,
        *,
        admission: AdmissionController | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._provider = provider
        self._config = config or PollerConfig()
        self._poll_backoff = BackoffPolicy(self._config.poll_backoff, rng)
        self._active_jobs: dict[str, str] = {}

        self._upload = RetryExecutor(
            self._config.upload_retry,
            backoff=BackoffPolicy(self._config.upload_backoff, rng),
            admission=admission,
            name="upload",
        )
        self._submit = RetryExecutor(
            RetryConfig.no_retry(self._config.request_timeout),
            admission=admission,
            name="submit",
        )
        self._status = RetryExecutor(
            RetryConfig.no_retry(self._config.status_timeout),
            admission=admission,
            name="status",
        )

    @property
    def config(self) -> PollerConfig:
        return self._config

    @property
    def active_jobs(self) -> dict[str, str]:
        """Job ids being polled, keyed by request id."""
        return dict(self._active_jobs)

    async def run(
        self,
        payload: bytes,
        context: RequestContext | None = None,
        options: TranscriptionOptions | None = None,
        *,
        progress: ProgressReporter | None = None,
    ) -> Result[Transcript]:
        """Upload ``payload``, create a job and poll it to completion.

        Args:
            payload: Audio bytes
            context: Request scope carrying the cancel token
            options: Job creation options
            progress: Reporter for this run; a finished one is reset first

        Returns:
            Success with the Transcript (``attempts`` = polls made), or Failure
        """
        ctx = context or RequestContext(operation="transcribe")
        reporter = progress or ProgressReporter()
        if reporter.closed:
            reporter.reset()

        with log_context(request_id=ctx.request_id, operation=ctx.operation):
            reporter.emit(JobPhase.VALIDATING, 0.0, "Preparing audio")
            if ctx.is_cancelled:
                return self._cancelled(reporter, ctx, 0)

            reporter.emit(JobPhase.UPLOADING, PROGRESS_UPLOADING, "Uploading audio")
            logger.info("Uploading audio", size=len(payload))
            uploaded = await self._upload.execute(
                lambda: self._provider.upload(payload), ctx
            )
            if not isinstance(uploaded, Success):
                return self._terminal(reporter, uploaded)

            reporter.emit(JobPhase.UPLOADED, PROGRESS_UPLOADED, "Upload complete")
            if ctx.is_cancelled:
                return self._cancelled(reporter, ctx, 0)

            reporter.emit(
                JobPhase.SUBMITTING, PROGRESS_SUBMITTING, "Requesting transcription"
            )
            handle = uploaded.value
            created = await self._submit.execute(
                lambda: self._provider.create_job(handle, options), ctx
            )
            if not isinstance(created, Success):
                return self._terminal(reporter, created)

            job_id = created.value
            self._active_jobs[ctx.request_id] = job_id
            logger.info("Transcription job created", job_id=job_id)
            try:
                return await self._poll(job_id, ctx, reporter)
            finally:
                self._active_jobs.pop(ctx.request_id, None)

    async def _poll(
        self, job_id: str, ctx: RequestContext, reporter: ProgressReporter
    ) -> Result[Transcript]:
        max_attempts = self._config.max_poll_attempts
        attempts = 0
        reporter.emit(
            JobPhase.PROCESSING,
            PROGRESS_PROCESSING,
            "Waiting for transcription",
            job_id=job_id,
            attempt=0,
        )

        while attempts < max_attempts:
            if ctx.is_cancelled:
                return await self._on_cancel(job_id, ctx, reporter, attempts)

            if await ctx.token.sleep(self._poll_backoff.delay(attempts + 1)):
                return await self._on_cancel(job_id, ctx, reporter, attempts)

            fetched = await self._status.execute(
                lambda: self._provider.get_job_status(job_id), ctx
            )

            if not isinstance(fetched, Success):
                if fetched.code is ErrorCode.TIMEOUT:
                    attempts += 1
                    logger.warning("Status poll timed out", job_id=job_id, attempt=attempts)
                    self._report_processing(reporter, job_id, attempts, "Status check timed out")
                    continue
                if fetched.code is ErrorCode.CANCELLED:
                    return await self._on_cancel(job_id, ctx, reporter, attempts)
                return self._terminal(
                    reporter,
                    dataclasses.replace(
                        fetched,
                        attempts=attempts + 1,
                        details={**fetched.details, "job_id": job_id},
                    ),
                )

            response = fetched.value
            status = response.job_status
            attempts += 1

            if status is JobStatus.COMPLETED:
                reporter.emit(
                    JobPhase.FINALIZING, PROGRESS_FINALIZING, "Processing results", job_id=job_id
                )
                try:
                    transcript = response.to_transcript()
                except pydantic.ValidationError as e:
                    return self._terminal(
                        reporter,
                        Failure(
                            code=ErrorCode.PARSE_ERROR,
                            message=f"Invalid transcript payload: {e.error_count()} error(s)",
                            attempts=attempts,
                            request_id=ctx.request_id,
                            details={"job_id": job_id},
                        ),
                    )
                reporter.emit(JobPhase.COMPLETED, 1.0, "Transcription complete", job_id=job_id)
                logger.info("Transcription completed", job_id=job_id, polls=attempts)
                return Success(value=transcript, attempts=attempts, request_id=ctx.request_id)

            if status is JobStatus.ERROR:
                return self._terminal(
                    reporter,
                    Failure(
                        code=ErrorCode.JOB_FAILED,
                        message=response.error or "Transcription failed",
                        attempts=attempts,
                        request_id=ctx.request_id,
                        details={"job_id": job_id},
                    ),
                )

            self._report_processing(
                reporter, job_id, attempts, f"Transcription {response.status}"
            )

        logger.warning("Transcription polling timed out", job_id=job_id, polls=attempts)
        return self._terminal(
            reporter,
            Failure(
                code=ErrorCode.POLLING_TIMEOUT,
                message="Transcription timed out",
                attempts=attempts,
                request_id=ctx.request_id,
                details={"job_id": job_id},
            ),
        )

    def _report_processing(
        self, reporter: ProgressReporter, job_id: str, attempts: int, message: str
    ) -> None:
        fraction = PROGRESS_PROCESSING + PROGRESS_PROCESSING_SPAN * (
            attempts / self._config.max_poll_attempts
        )
        reporter.emit(
            JobPhase.PROCESSING, fraction, message, job_id=job_id, attempt=attempts
        )

    async def _on_cancel(
        self,
        job_id: str,
        ctx: RequestContext,
        reporter: ProgressReporter,
        attempts: int,
    ) -> Failure:
        logger.info("Transcription cancelled", job_id=job_id, polls=attempts)
        if self._config.delete_on_cancel:
            await self.delete_job(job_id)
        return self._cancelled(reporter, ctx, attempts, job_id=job_id)

    def _cancelled(
        self,
        reporter: ProgressReporter,
        ctx: RequestContext,
        attempts: int,
        job_id: str | None = None,
    ) -> Failure:
        return self._terminal(
            reporter,
            Failure(
                code=ErrorCode.CANCELLED,
                message="Transcription cancelled",
                attempts=attempts,
                request_id=ctx.request_id,
                details={"job_id": job_id} if job_id else {},
            ),
        )

    def _terminal(self, reporter: ProgressReporter, failure: Failure) -> Failure:
        phase = JobPhase.CANCELLED if failure.code is ErrorCode.CANCELLED else JobPhase.FAILED
        if not reporter.closed:
            reporter.emit(phase, reporter.fraction, failure.message)
        if phase is JobPhase.FAILED:
            logger.warning("Transcription failed", code=failure.code.value, error=failure.message)
        return failure

    async def delete_job(self, job_id: str) -> bool:
        """Delete a remote job, best effort.

        Returns:
            True if the provider accepted the deletion
        """
        try:
            await self._provider.delete_job(job_id)
        except Exception as e:
            logger.warning("Failed to delete transcription job", job_id=job_id, error=str(e))
            return False
        return True

    def get_stats(self) -> dict[str, object]:
        return {
            "active_jobs": sorted(self._active_jobs.values()),
            "upload": self._upload.get_stats(),
            "submit": self._submit.get_stats(),
            "status": self._status.get_stats(),
        }
