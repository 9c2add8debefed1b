"""AssemblyAI transcription provider.

Lifecycle: ``POST /upload`` (raw bytes) returns ``upload_url``;
``POST /transcript`` with ``audio_url`` returns the job ``id``;
``GET /transcript/{id}`` reports ``status``; ``DELETE /transcript/{id}``
removes the job.
"""

from __future__ import annotations

from typing import Any

from ai_call_orchestrator.errors import ResponseParseError
from ai_call_orchestrator.transport import ASSEMBLYAI_AUTH, HttpTransport, get_auth_header
from ai_call_orchestrator.types import JobStatusResponse, TranscriptionOptions

DEFAULT_BASE_URL = "https://api.assemblyai.com/v2"


def _json_object(response: Any) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError as e:
        raise ResponseParseError("Response is not JSON", raw=response.text) from e
    if not isinstance(body, dict):
        raise ResponseParseError("Unexpected response shape", raw=response.text)
    return body


class AssemblyAITranscriptionProvider:
    """Transcription jobs over the AssemblyAI REST API."""

    name = "assemblyai"

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 60.0,
        transport: HttpTransport | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            api_key: API key; falls back to ASSEMBLYAI_API_KEY
            base_url: API base URL
            timeout: HTTP timeout in seconds (uploads can be large)
            transport: Pre-built transport, mainly for tests

        Raises:
            ValueError: If no API key can be resolved
        """
        self._transport = transport or HttpTransport(
            base_url,
            headers=get_auth_header("assemblyai", api_key, ASSEMBLYAI_AUTH),
            timeout=timeout,
        )

    async def upload(self, data: bytes) -> str:
        body = _json_object(await self._transport.post_bytes("/upload", data))
        upload_url = body.get("upload_url")
        if not isinstance(upload_url, str) or not upload_url:
            raise ResponseParseError("Upload response has no upload_url")
        return upload_url

    async def create_job(
        self, handle: str, options: TranscriptionOptions | None = None
    ) -> str:
        payload = {"audio_url": handle, **(options or TranscriptionOptions()).to_payload()}
        if not payload.get("word_boost"):
            payload.pop("word_boost", None)
        body = _json_object(await self._transport.post("/transcript", payload))
        job_id = body.get("id")
        if not isinstance(job_id, str) or not job_id:
            raise ResponseParseError("Job creation response has no id")
        return job_id

    async def get_job_status(self, job_id: str) -> JobStatusResponse:
        body = _json_object(await self._transport.get(f"/transcript/{job_id}"))
        return JobStatusResponse.model_validate(body)

    async def delete_job(self, job_id: str) -> None:
        await self._transport.delete(f"/transcript/{job_id}")

    async def close(self) -> None:
        await self._transport.close()

    def __repr__(self) -> str:
        return f"AssemblyAITranscriptionProvider(base_url={self._transport.base_url!r})"
