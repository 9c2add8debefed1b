"""
Types layer: result values, progress events and provider payloads.
"""

from ai_call_orchestrator.types.generation import GenerationOptions
from ai_call_orchestrator.types.progress import JobPhase, ProgressEvent
from ai_call_orchestrator.types.result import Failure, Result, Success
from ai_call_orchestrator.types.transcription import (
    JobStatus,
    JobStatusResponse,
    KeywordMatch,
    Transcript,
    TranscriptionOptions,
    TranscriptionResult,
    TranscriptWord,
)

__all__ = [
    "Failure",
    "GenerationOptions",
    "JobPhase",
    "JobStatus",
    "JobStatusResponse",
    "KeywordMatch",
    "ProgressEvent",
    "Result",
    "Success",
    "Transcript",
    "TranscriptWord",
    "TranscriptionOptions",
    "TranscriptionResult",
]
