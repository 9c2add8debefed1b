"""Base error classes for ai-call-orchestrator.

Provides a layered error hierarchy used at the provider/transport boundary:
- OrchestratorError: Base class for all library errors
- TransportError: HTTP/network errors (connection failures, timeouts)
- RemoteError: Error responses returned by a provider API
- ResponseParseError: Malformed or empty provider payloads
- ConfigError: Invalid configuration values

These exceptions never escape orchestrator operations; the retry executor
turns them into Failure values.
"""

from __future__ import annotations

import contextlib
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ai_call_orchestrator.errors.classification import ErrorCode


@dataclass
class ErrorContext:
    """Structured error context for diagnostics."""

    details: dict[str, Any] = field(default_factory=dict)
    """Additional details about the error"""

    source: str | None = None
    """Error source (e.g., 'transport', 'remote', 'config')"""

    hint: str | None = None
    """Actionable hint for resolving the error"""

    def __str__(self) -> str:
        parts = []
        if self.source:
            parts.append(f"[{self.source}]")
        if self.hint:
            parts.append(f"(hint: {self.hint})")
        return " ".join(parts)


class OrchestratorError(Exception):
    """Base class for all ai-call-orchestrator errors.

    Attributes:
        message: Human-readable error message
        context: Structured error context
        code: Taxonomy code, when the error was produced from a Failure
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        *,
        code: ErrorCode | None = None,
    ) -> None:
        self.message = message
        self.context = context or ErrorContext()
        self.code = code
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the full error message."""
        ctx_str = str(self.context)
        if ctx_str:
            return f"{self.message} {ctx_str}"
        return self.message

    def with_hint(self, hint: str) -> OrchestratorError:
        """Add a hint to this error."""
        self.context.hint = hint
        return self


class TransportError(OrchestratorError):
    """Error during HTTP transport.

    Raised when:
    - Network connection failure
    - Timeout
    - SSL/TLS or proxy errors
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        *,
        url: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or ErrorContext(source="transport")
        if url:
            ctx.details["url"] = url
        super().__init__(message, ctx)
        self.url = url
        self.__cause__ = cause


class RemoteError(OrchestratorError):
    """Error response from a provider API.

    Attributes:
        status_code: HTTP status code
        body: Parsed error body, if any
        retry_after: Suggested retry delay in seconds (from header)
        request_id: Provider request identifier, if reported
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        body: dict[str, Any] | None = None,
        retry_after: float | None = None,
        request_id: str | None = None,
    ) -> None:
        ctx = ErrorContext(source="remote")
        ctx.details["status_code"] = status_code
        if request_id:
            ctx.details["request_id"] = request_id
        super().__init__(message, ctx)
        self.status_code = status_code
        self.body = body or {}
        self.retry_after = retry_after
        self.request_id = request_id

    @classmethod
    def from_response(
        cls,
        status_code: int,
        body: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> RemoteError:
        """Create RemoteError from an HTTP error response.

        Args:
            status_code: HTTP status code
            body: Response body (parsed JSON)
            headers: Response headers

        Returns:
            RemoteError carrying the extracted message
        """
        message = extract_error_message(body) or f"HTTP {status_code}"

        retry_after = None
        if headers:
            retry_after_str = headers.get("retry-after") or headers.get("Retry-After")
            if retry_after_str:
                with contextlib.suppress(ValueError):
                    retry_after = float(retry_after_str)

        request_id = None
        if headers:
            request_id = headers.get("x-request-id") or headers.get("X-Request-Id")

        return cls(
            message=message,
            status_code=status_code,
            body=body,
            retry_after=retry_after,
            request_id=request_id,
        )


class ResponseParseError(OrchestratorError):
    """A provider returned a payload that could not be parsed."""

    def __init__(self, message: str, *, raw: str | None = None) -> None:
        ctx = ErrorContext(source="parse")
        if raw is not None:
            ctx.details["raw_length"] = len(raw)
        super().__init__(message, ctx)
        self.raw = raw


class ConfigError(OrchestratorError):
    """Invalid configuration value."""

    def __init__(self, message: str, *, key: str | None = None) -> None:
        ctx = ErrorContext(source="config")
        if key:
            ctx.details["key"] = key
        super().__init__(message, ctx)
        self.key = key


def extract_error_message(body: dict[str, Any] | None) -> str | None:
    """Extract an error message from a provider error body.

    Supports ``{"error": {"message": ...}}``, ``{"error": "..."}`` and
    ``{"message": ...}`` envelopes.
    """
    if not body:
        return None

    error = body.get("error")
    if isinstance(error, dict):
        msg = error.get("message")
        if isinstance(msg, str):
            return msg
    elif isinstance(error, str):
        return error

    msg = body.get("message")
    if isinstance(msg, str):
        return msg
    return None
