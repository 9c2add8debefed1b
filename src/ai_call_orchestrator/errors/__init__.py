"""Error hierarchy and failure taxonomy for ai-call-orchestrator."""

from ai_call_orchestrator.errors.base import (
    ConfigError,
    ErrorContext,
    OrchestratorError,
    RemoteError,
    ResponseParseError,
    TransportError,
    extract_error_message,
)
from ai_call_orchestrator.errors.classification import (
    Classification,
    ErrorCode,
    classify_failure,
    classify_status,
    is_retryable,
)

__all__ = [
    "Classification",
    "ConfigError",
    "ErrorCode",
    "ErrorContext",
    "OrchestratorError",
    "RemoteError",
    "ResponseParseError",
    "TransportError",
    "classify_failure",
    "classify_status",
    "extract_error_message",
    "is_retryable",
]
