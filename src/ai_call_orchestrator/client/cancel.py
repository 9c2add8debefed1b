"""
Cooperative cancellation.

A ``CancelToken`` is checked at every suspension point of an orchestrated
operation: before each attempt, during backoff and poll waits, and while
queued for admission. In-flight external calls are never interrupted.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from ai_call_orchestrator.telemetry import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

logger = get_logger(__name__)


class CancelReason(str, Enum):
    """Reasons for cancellation."""

    USER_REQUEST = "user_request"
    TIMEOUT = "timeout"
    SHUTDOWN = "shutdown"


@dataclass
class CancelState:
    """State of a cancellation token.

    Attributes:
        cancelled: Whether cancellation was requested
        reason: Reason for cancellation
        timestamp: Time of cancellation
    """

    cancelled: bool = False
    reason: CancelReason | None = None
    timestamp: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class CancelToken:
    """Cancellation token for cooperative cancellation.

    Example:
        >>> token = CancelToken()
        >>> # From another task
        >>> token.cancel()
        >>> # Inside the operation
        >>> if await token.sleep(2.0):
        ...     return Failure(ErrorCode.CANCELLED, "Cancelled")
    """

    def __init__(self) -> None:
        self._state = CancelState()
        self._event = asyncio.Event()
        self._callbacks: list[Callable[[CancelReason], Any]] = []

    def cancel(
        self,
        reason: CancelReason = CancelReason.USER_REQUEST,
        **metadata: Any,
    ) -> bool:
        """Request cancellation.

        Returns:
            True if cancellation was newly requested, False if already cancelled
        """
        if self._state.cancelled:
            return False

        self._state.cancelled = True
        self._state.reason = reason
        self._state.timestamp = time.time()
        self._state.metadata.update(metadata)
        self._event.set()

        for callback in self._callbacks:
            self._invoke(callback, reason)
        return True

    @staticmethod
    def _invoke(callback: Callable[[CancelReason], Any], reason: CancelReason) -> None:
        try:
            callback(reason)
        except Exception:
            logger.exception("Cancel callback failed")

    @property
    def is_cancelled(self) -> bool:
        """Check if cancellation was requested."""
        return self._state.cancelled

    @property
    def reason(self) -> CancelReason | None:
        return self._state.reason

    @property
    def state(self) -> CancelState:
        return self._state

    async def wait(self) -> CancelReason:
        """Wait until cancellation is requested."""
        await self._event.wait()
        return self._state.reason or CancelReason.USER_REQUEST

    async def wait_with_timeout(self, timeout: float) -> bool:
        """Wait for cancellation with a timeout.

        Returns:
            True if cancelled, False if timeout occurred
        """
        if self._state.cancelled:
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            return False

    async def sleep(self, delay: float) -> bool:
        """Sleep for ``delay`` seconds, waking early on cancellation.

        Returns:
            True if cancelled before or during the sleep
        """
        if delay <= 0:
            return self._state.cancelled
        return await self.wait_with_timeout(delay)

    def on_cancel(self, callback: Callable[[CancelReason], Any]) -> CancelToken:
        """Register a callback to be called on cancellation."""
        self._callbacks.append(callback)
        if self._state.cancelled and self._state.reason:
            self._invoke(callback, self._state.reason)
        return self


def _new_request_id() -> str:
    return uuid.uuid4().hex[:16]


@dataclass
class RequestContext:
    """Scope of one logical operation.

    Attributes:
        request_id: Identifier used in logs and results
        token: Cancellation token checked at every suspension point
        operation: Operation name, for logging
    """

    request_id: str = field(default_factory=_new_request_id)
    token: CancelToken = field(default_factory=CancelToken)
    operation: str | None = None

    @property
    def is_cancelled(self) -> bool:
        return self.token.is_cancelled

    def cancel(self, reason: CancelReason = CancelReason.USER_REQUEST) -> bool:
        """Request cancellation of this operation."""
        return self.token.cancel(reason)

    def child(self, operation: str) -> RequestContext:
        """Same request and token, different operation name."""
        return RequestContext(
            request_id=self.request_id, token=self.token, operation=operation
        )
