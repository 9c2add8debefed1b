"""Error classification: maps raw failures onto the orchestration taxonomy.

A failure may be an exception raised by a provider or the transport, a bare
HTTP status code, or ``None``. Classification is pure and side-effect free.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from enum import Enum

import httpx
import pydantic

from ai_call_orchestrator.errors.base import (
    RemoteError,
    ResponseParseError,
    TransportError,
)


class ErrorCode(str, Enum):
    """Failure taxonomy surfaced to callers."""

    INVALID_API_KEY = "INVALID_API_KEY"
    """Credential rejected by the provider."""

    RATE_LIMIT = "RATE_LIMIT"
    """Request budget exceeded; caller must resubmit later."""

    CIRCUIT_BREAKER_OPEN = "CIRCUIT_BREAKER_OPEN"
    """Recent failure streak; service presumed unavailable."""

    TIMEOUT = "TIMEOUT"
    """Per-attempt deadline exceeded."""

    NETWORK_ERROR = "NETWORK_ERROR"
    """Connectivity failure."""

    SERVER_ERROR = "SERVER_ERROR"
    """Remote 5xx-class failure."""

    PARSE_ERROR = "PARSE_ERROR"
    """Malformed response."""

    POLLING_TIMEOUT = "POLLING_TIMEOUT"
    """Job exceeded the maximum number of poll attempts."""

    CANCELLED = "CANCELLED"
    """Cooperative cancellation observed."""

    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    """Unclassified failure."""

    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    """Upload or input exceeds the provider's size limit."""

    JOB_FAILED = "JOB_FAILED"
    """Remote job finished but reported an error."""

    INVALID_INPUT = "INVALID_INPUT"
    """Local validation failed before any call was made."""

    @property
    def retryable(self) -> bool:
        """Whether failures with this code are retried within a call."""
        return self in _RETRYABLE_CODES


_RETRYABLE_CODES: frozenset[ErrorCode] = frozenset(
    {
        ErrorCode.TIMEOUT,
        ErrorCode.NETWORK_ERROR,
        ErrorCode.SERVER_ERROR,
        ErrorCode.UNKNOWN_ERROR,
    }
)

_STATUS_MAPPING: dict[int, ErrorCode] = {
    401: ErrorCode.INVALID_API_KEY,
    403: ErrorCode.INVALID_API_KEY,
    408: ErrorCode.TIMEOUT,
    413: ErrorCode.PAYLOAD_TOO_LARGE,
    429: ErrorCode.RATE_LIMIT,
    504: ErrorCode.TIMEOUT,
}

# Last-resort heuristics for exceptions that carry no structure.
_MESSAGE_HINTS: tuple[tuple[tuple[str, ...], ErrorCode], ...] = (
    (("api key", "api_key", "unauthorized"), ErrorCode.INVALID_API_KEY),
    (("timeout", "timed out"), ErrorCode.TIMEOUT),
    (("network", "socket", "connection"), ErrorCode.NETWORK_ERROR),
)


@dataclass(frozen=True)
class Classification:
    """Verdict for a single failure.

    Attributes:
        code: Taxonomy code
        retryable: Whether the failure may be retried within the same call
        message: Human-readable description of the failure
    """

    code: ErrorCode
    retryable: bool
    message: str

    @classmethod
    def of(cls, code: ErrorCode, message: str) -> Classification:
        return cls(code=code, retryable=code.retryable, message=message)


def is_retryable(code: ErrorCode) -> bool:
    """Check if a taxonomy code is retryable."""
    return code.retryable


def classify_status(status_code: int) -> ErrorCode:
    """Map an HTTP status code to a taxonomy code.

    Args:
        status_code: HTTP status code

    Returns:
        ErrorCode for the status
    """
    if status_code in _STATUS_MAPPING:
        return _STATUS_MAPPING[status_code]
    if 500 <= status_code < 600:
        return ErrorCode.SERVER_ERROR
    return ErrorCode.UNKNOWN_ERROR


def classify_failure(failure: BaseException | int | None) -> Classification:
    """Classify a raw failure.

    Args:
        failure: Exception from the external call, an HTTP status code,
            or None when no detail is available

    Returns:
        Classification with code and retry verdict
    """
    if failure is None:
        return Classification.of(ErrorCode.UNKNOWN_ERROR, "Unknown failure")

    if isinstance(failure, int):
        return Classification.of(classify_status(failure), f"HTTP {failure}")

    text = str(failure)
    message = text or type(failure).__name__

    if isinstance(failure, RemoteError):
        return Classification.of(classify_status(failure.status_code), message)

    if isinstance(failure, TransportError):
        cause = failure.__cause__
        if cause is not None and cause is not failure:
            verdict = classify_failure(cause)
            return Classification(verdict.code, verdict.retryable, message)
        return Classification.of(ErrorCode.NETWORK_ERROR, message)

    if isinstance(
        failure, (ResponseParseError, json.JSONDecodeError, pydantic.ValidationError)
    ):
        return Classification.of(ErrorCode.PARSE_ERROR, message)

    # TimeoutError is an OSError subclass, so timeouts are checked first
    if isinstance(failure, (asyncio.TimeoutError, TimeoutError, httpx.TimeoutException)):
        return Classification.of(ErrorCode.TIMEOUT, text or "Request timed out")

    if isinstance(failure, (httpx.TransportError, ConnectionError, OSError)):
        return Classification.of(ErrorCode.NETWORK_ERROR, message)

    lowered = message.lower()
    for needles, code in _MESSAGE_HINTS:
        if any(needle in lowered for needle in needles):
            return Classification.of(code, message)

    return Classification.of(ErrorCode.UNKNOWN_ERROR, message)
