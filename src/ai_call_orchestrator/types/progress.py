"""
Progress events for long-running jobs.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class JobPhase(str, Enum):
    """Lifecycle phases reported to progress observers."""

    VALIDATING = "validating"
    UPLOADING = "uploading"
    UPLOADED = "uploaded"
    SUBMITTING = "submitting"
    PROCESSING = "processing"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (JobPhase.COMPLETED, JobPhase.FAILED, JobPhase.CANCELLED)


class ProgressEvent(BaseModel):
    """A single progress notification."""

    model_config = ConfigDict(frozen=True)

    phase: JobPhase = Field(description="Current lifecycle phase")
    fraction: float = Field(ge=0.0, le=1.0, description="Overall progress in [0, 1]")
    message: str = Field(default="", description="Human-readable status")
    job_id: str | None = Field(default=None, description="Remote job identifier")
    attempt: int | None = Field(default=None, description="Poll attempt, when polling")

    @property
    def percent(self) -> int:
        """Progress as an integer percentage."""
        return round(self.fraction * 100)
