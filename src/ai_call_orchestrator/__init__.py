"""
ai-call-orchestrator: resilient orchestration of external AI service calls.

Retries with backoff, a sliding-window rate limiter, a circuit breaker,
admission control and a response cache around text generation and
asynchronous transcription jobs. Every operation returns a ``Result`` value.
"""
from __future__ import annotations

from ai_call_orchestrator.client import (
    CancelReason,
    CancelToken,
    Orchestrator,
    OrchestratorBuilder,
    RequestContext,
)
from ai_call_orchestrator.config import OrchestratorConfig
from ai_call_orchestrator.errors import (
    ConfigError,
    ErrorCode,
    OrchestratorError,
    RemoteError,
    ResponseParseError,
    TransportError,
)
from ai_call_orchestrator.jobs import ProgressReporter
from ai_call_orchestrator.types import (
    Failure,
    GenerationOptions,
    JobPhase,
    ProgressEvent,
    Result,
    Success,
    TranscriptionOptions,
    TranscriptionResult,
)

__version__ = "0.1.0"

__all__ = [
    # Client
    "CancelReason",
    "CancelToken",
    "Orchestrator",
    "OrchestratorBuilder",
    "OrchestratorConfig",
    "RequestContext",
    # Errors
    "ConfigError",
    "ErrorCode",
    "OrchestratorError",
    "RemoteError",
    "ResponseParseError",
    "TransportError",
    # Results
    "Failure",
    "Result",
    "Success",
    # Types
    "GenerationOptions",
    "JobPhase",
    "ProgressEvent",
    "ProgressReporter",
    "TranscriptionOptions",
    "TranscriptionResult",
    # Version
    "__version__",
]
