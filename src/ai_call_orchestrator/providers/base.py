"""
Provider protocols for the external services.

Providers raise exceptions on failure; the orchestration layer classifies
them and returns ``Failure`` values to callers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ai_call_orchestrator.types import (
        GenerationOptions,
        JobStatusResponse,
        TranscriptionOptions,
    )


@runtime_checkable
class TextGenerationProvider(Protocol):
    """A text-generation service."""

    name: str

    async def generate(
        self, prompt: str, options: GenerationOptions | None = None
    ) -> str:
        """Generate text for a prompt."""
        ...

    async def close(self) -> None: ...


@runtime_checkable
class TranscriptionProvider(Protocol):
    """An asynchronous speech-to-text job service."""

    name: str

    async def upload(self, data: bytes) -> str:
        """Upload audio and return a handle (URL) for job creation."""
        ...

    async def create_job(
        self, handle: str, options: TranscriptionOptions | None = None
    ) -> str:
        """Create a transcription job and return its id."""
        ...

    async def get_job_status(self, job_id: str) -> JobStatusResponse:
        """Fetch the current status of a job."""
        ...

    async def delete_job(self, job_id: str) -> None:
        """Delete a job and its data."""
        ...

    async def close(self) -> None: ...
