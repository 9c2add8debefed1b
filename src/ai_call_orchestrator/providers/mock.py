"""
Scripted in-memory providers for offline runs and tests.

Each provider replays a script of outcomes. An entry that is an exception
instance is raised; anything else is returned. When the script runs out the
last entry is repeated.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import TYPE_CHECKING, Any

from ai_call_orchestrator.types import JobStatusResponse

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ai_call_orchestrator.types import GenerationOptions, TranscriptionOptions


class _Script:
    def __init__(self, entries: Iterable[Any], default: Any) -> None:
        self._entries: deque[Any] = deque(entries)
        self._last = default

    def push(self, *entries: Any) -> None:
        self._entries.extend(entries)

    def next(self) -> Any:
        if self._entries:
            self._last = self._entries.popleft()
        entry = self._last
        if isinstance(entry, BaseException):
            raise entry
        return entry


class MockTextProvider:
    """Text provider replaying scripted responses.

    Example:
        >>> provider = MockTextProvider([TimeoutError(), '{"intent": "reminder"}'])
        >>> await provider.generate("...")  # raises TimeoutError
        >>> await provider.generate("...")  # returns the JSON text
    """

    name = "mock-text"

    def __init__(
        self,
        responses: Iterable[Any] = (),
        *,
        default: str = "{}",
        delay: float = 0.0,
    ) -> None:
        self._script = _Script(responses, default)
        self._delay = delay
        self.prompts: list[str] = []
        self.in_flight = 0
        self.peak_in_flight = 0
        self.closed = False

    @property
    def call_count(self) -> int:
        return len(self.prompts)

    def queue(self, *responses: Any) -> None:
        """Append responses to the script."""
        self._script.push(*responses)

    async def generate(
        self, prompt: str, options: GenerationOptions | None = None
    ) -> str:
        self.prompts.append(prompt)
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            if self._delay:
                await asyncio.sleep(self._delay)
            return self._script.next()
        finally:
            self.in_flight -= 1

    async def close(self) -> None:
        self.closed = True


def _status(job_id: str, entry: Any) -> Any:
    if isinstance(entry, str):
        if entry == "completed":
            return JobStatusResponse(
                id=job_id, status="completed", text="Mock transcript", confidence=0.9
            )
        return JobStatusResponse(id=job_id, status=entry)
    if isinstance(entry, dict):
        return JobStatusResponse.model_validate({"id": job_id, **entry})
    return entry


class MockTranscriptionProvider:
    """Transcription provider replaying scripted job statuses.

    ``statuses`` entries may be status strings ("queued", "processing",
    "completed", "error"), dicts merged into a status payload,
    ``JobStatusResponse`` objects or exceptions.
    """

    name = "mock-transcription"

    def __init__(
        self,
        statuses: Iterable[Any] = ("completed",),
        *,
        job_id: str = "job-1",
        upload_url: str = "https://cdn.example.invalid/upload/1",
        upload_errors: Iterable[BaseException] = (),
        create_errors: Iterable[BaseException] = (),
        delay: float = 0.0,
    ) -> None:
        self._statuses = _Script(statuses, "completed")
        self._job_id = job_id
        self._upload_url = upload_url
        self._upload_errors: deque[BaseException] = deque(upload_errors)
        self._create_errors: deque[BaseException] = deque(create_errors)
        self._delay = delay

        self.uploads: list[int] = []
        self.created: list[tuple[str, TranscriptionOptions | None]] = []
        self.status_calls: list[str] = []
        self.deleted: list[str] = []
        self.closed = False

    async def _pause(self) -> None:
        if self._delay:
            await asyncio.sleep(self._delay)

    async def upload(self, data: bytes) -> str:
        self.uploads.append(len(data))
        await self._pause()
        if self._upload_errors:
            raise self._upload_errors.popleft()
        return self._upload_url

    async def create_job(
        self, handle: str, options: TranscriptionOptions | None = None
    ) -> str:
        self.created.append((handle, options))
        await self._pause()
        if self._create_errors:
            raise self._create_errors.popleft()
        return self._job_id

    async def get_job_status(self, job_id: str) -> JobStatusResponse:
        self.status_calls.append(job_id)
        await self._pause()
        return _status(job_id, self._statuses.next())

    async def delete_job(self, job_id: str) -> None:
        self.deleted.append(job_id)

    async def close(self) -> None:
        self.closed = True
