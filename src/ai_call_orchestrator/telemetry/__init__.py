"""Structured logging for ai-call-orchestrator."""

from ai_call_orchestrator.telemetry.logger import (
    JsonFormatter,
    LogContext,
    LogLevel,
    OrchestratorLogger,
    SensitiveDataMasker,
    TextFormatter,
    clear_log_context,
    get_log_context,
    get_logger,
    log_context,
    set_log_context,
)

__all__ = [
    "JsonFormatter",
    "LogContext",
    "LogLevel",
    "OrchestratorLogger",
    "SensitiveDataMasker",
    "TextFormatter",
    "clear_log_context",
    "get_log_context",
    "get_logger",
    "log_context",
    "set_log_context",
]
