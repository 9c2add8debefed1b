"""
Progress reporting for long-running jobs.

The reporter is an observer decoupled from the poller: callbacks are invoked
synchronously on every event, and any number of consumers can iterate
``stream()``. Reported fractions never decrease.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from ai_call_orchestrator.telemetry import get_logger
from ai_call_orchestrator.types import JobPhase, ProgressEvent

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    ProgressCallback = Callable[[ProgressEvent], object]

logger = get_logger(__name__)


class ProgressReporter:
    """Publishes monotonic progress events.

    Example:
        >>> reporter = ProgressReporter()
        >>> reporter.subscribe(lambda e: print(e.phase, e.percent))
        >>> async for event in reporter.stream():
        ...     render(event)
    """

    def __init__(self, callbacks: list[ProgressCallback] | None = None) -> None:
        self._callbacks: list[ProgressCallback] = list(callbacks or [])
        self._queues: list[asyncio.Queue[ProgressEvent | None]] = []
        self._history: list[ProgressEvent] = []
        self._closed = False

    @property
    def events(self) -> list[ProgressEvent]:
        """Events emitted so far."""
        return list(self._history)

    @property
    def last(self) -> ProgressEvent | None:
        return self._history[-1] if self._history else None

    @property
    def fraction(self) -> float:
        return self._history[-1].fraction if self._history else 0.0

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, callback: ProgressCallback) -> Callable[[], None]:
        """Register a callback; returns a function that unregisters it."""
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def emit(
        self,
        phase: JobPhase,
        fraction: float,
        message: str = "",
        *,
        job_id: str | None = None,
        attempt: int | None = None,
    ) -> ProgressEvent:
        """Publish an event, clamping the fraction to stay monotonic."""
        if self._closed:
            raise RuntimeError("ProgressReporter is closed")

        fraction = min(1.0, max(0.0, fraction, self.fraction))
        event = ProgressEvent(
            phase=phase,
            fraction=fraction,
            message=message,
            job_id=job_id,
            attempt=attempt,
        )
        self._history.append(event)

        for callback in list(self._callbacks):
            try:
                callback(event)
            except Exception:
                logger.exception("Progress callback failed", phase=phase.value)

        for queue in self._queues:
            queue.put_nowait(event)

        if phase.is_terminal:
            self.close()
        return event

    def close(self) -> None:
        """End all streams."""
        if self._closed:
            return
        self._closed = True
        for queue in self._queues:
            queue.put_nowait(None)

    def reset(self) -> None:
        """Reopen the reporter for another run.

        Streams of the previous run are ended and the history is cleared, so
        fractions start again from zero. Callbacks stay subscribed.
        """
        self.close()
        self._queues.clear()
        self._history.clear()
        self._closed = False

    async def stream(self) -> AsyncIterator[ProgressEvent]:
        """Yield events emitted once iteration has started, until a terminal event."""
        if self._closed:
            return
        queue: asyncio.Queue[ProgressEvent | None] = asyncio.Queue()
        self._queues.append(queue)
        try:
            while True:
                event = await queue.get()
                if event is None:
                    return
                yield event
        finally:
            if queue in self._queues:
                self._queues.remove(queue)
