"""
Tagged result type returned by every orchestrated operation.

Operations never raise for external-call failures; they return either a
``Success`` carrying the value or a ``Failure`` carrying a taxonomy code.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar, Union

from ai_call_orchestrator.errors import ErrorCode, OrchestratorError

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    """Successful outcome.

    Attributes:
        value: The produced value
        attempts: Attempts made (0 when served from cache)
        cached: Whether the value came from the response cache
        request_id: Identifier of the logical operation
    """

    value: T
    attempts: int = 1
    cached: bool = False
    request_id: str | None = None

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Return the value."""
        return self.value

    def map(self, fn: Any) -> Success[Any]:
        """Apply ``fn`` to the value, keeping the metadata."""
        return Success(
            value=fn(self.value),
            attempts=self.attempts,
            cached=self.cached,
            request_id=self.request_id,
        )


@dataclass(frozen=True)
class Failure:
    """Failed outcome.

    Attributes:
        code: Taxonomy code
        message: Human-readable description
        attempts: Attempts made before giving up
        retryable: Whether the last failure was classified retryable
        request_id: Identifier of the logical operation
        details: Extra diagnostic fields
    """

    code: ErrorCode
    message: str
    attempts: int = 0
    retryable: bool = False
    request_id: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return False

    def unwrap(self) -> Any:
        """Raise the failure as an OrchestratorError."""
        raise self.to_error()

    def map(self, fn: Any) -> Failure:
        return self

    def to_error(self) -> OrchestratorError:
        """Convert to an exception carrying the code."""
        error = OrchestratorError(self.message, code=self.code)
        error.context.details.update(self.details)
        error.context.details["attempts"] = self.attempts
        if self.request_id:
            error.context.details["request_id"] = self.request_id
        return error

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "attempts": self.attempts,
            "retryable": self.retryable,
            "request_id": self.request_id,
            "details": dict(self.details),
        }


Result = Union[Success[T], Failure]
