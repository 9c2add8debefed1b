"""
Transcription job types.

Wire models are pydantic so provider payloads are validated on the way in;
a payload that fails validation surfaces as PARSE_ERROR.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class JobStatus(str, Enum):
    """Remote transcription job status."""

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str | None) -> JobStatus:
        try:
            return cls((value or "").lower())
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_pending(self) -> bool:
        return self in (JobStatus.QUEUED, JobStatus.PROCESSING)


class TranscriptWord(BaseModel):
    """A word with timing, in milliseconds."""

    model_config = ConfigDict(extra="ignore")

    text: str
    start: int = 0
    end: int = 0
    confidence: float = 0.0
    speaker: str | None = None


class Transcript(BaseModel):
    """Completed transcript."""

    model_config = ConfigDict(extra="ignore")

    id: str
    text: str
    confidence: float = 0.0
    language_code: str | None = None
    audio_duration: float | None = Field(default=None, description="Seconds")
    words: list[TranscriptWord] = Field(default_factory=list)


class JobStatusResponse(BaseModel):
    """Status payload returned by a poll."""

    model_config = ConfigDict(extra="allow")

    id: str
    status: str
    text: str | None = None
    error: str | None = None
    confidence: float | None = None
    language_code: str | None = None
    audio_duration: float | None = None
    words: list[dict[str, Any]] | None = None

    @property
    def job_status(self) -> JobStatus:
        return JobStatus.parse(self.status)

    def to_transcript(self) -> Transcript:
        """Build the Transcript for a completed job.

        Raises:
            pydantic.ValidationError: If the completed payload is incomplete
        """
        return Transcript.model_validate(
            {
                "id": self.id,
                "text": self.text,
                "confidence": self.confidence or 0.0,
                "language_code": self.language_code,
                "audio_duration": self.audio_duration,
                "words": self.words or [],
            }
        )


class TranscriptionOptions(BaseModel):
    """Job creation options."""

    model_config = ConfigDict(extra="forbid")

    language_code: str | None = "en"
    punctuate: bool = True
    format_text: bool = True
    speaker_labels: bool = False
    auto_highlights: bool = False
    word_boost: list[str] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


@dataclass(frozen=True)
class KeywordMatch:
    """A keyword occurrence with surrounding context."""

    keyword: str
    position: int
    context: str


@dataclass
class TranscriptionResult:
    """Transcript plus keyword annotations.

    Attributes:
        transcript: Completed transcript
        keywords: Matches per category (reminders, calls, ...)
        job_id: Remote job identifier
        poll_attempts: Number of status polls made
    """

    transcript: Transcript
    keywords: dict[str, list[KeywordMatch]] = field(default_factory=dict)
    job_id: str | None = None
    poll_attempts: int = 0

    @property
    def text(self) -> str:
        return self.transcript.text

    @property
    def has_action_items(self) -> bool:
        return any(self.keywords.values())

