"""
FIFO admission control for concurrent external calls.

Unlike a bare semaphore, a released slot is handed directly to the
longest-waiting caller, so a newcomer can never overtake the queue.
"""

from __future__ import annotations

import asyncio
import os
from collections import deque
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ai_call_orchestrator.errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from ai_call_orchestrator.client.cancel import CancelToken


@dataclass
class AdmissionConfig:
    """Configuration for admission control.

    Attributes:
        max_concurrent: Maximum calls in flight at once
    """

    max_concurrent: int = 3

    def __post_init__(self) -> None:
        if self.max_concurrent < 1:
            raise ConfigError("max_concurrent must be >= 1", key="max_concurrent")

    @classmethod
    def from_env(cls) -> AdmissionConfig:
        """Create configuration from environment variables."""
        return cls(max_concurrent=int(os.getenv("AI_ORCH_MAX_CONCURRENT", "3")))


class AdmissionController:
    """Bounded, strictly FIFO admission.

    Example:
        >>> admission = AdmissionController(AdmissionConfig(max_concurrent=3))
        >>> async with admission.slot(token) as granted:
        ...     if granted:
        ...         await make_request()
    """

    def __init__(self, config: AdmissionConfig | None = None) -> None:
        self._config = config or AdmissionConfig()
        self._active = 0
        self._waiters: deque[asyncio.Future[bool]] = deque()

        self._peak_active = 0
        self._total_acquired = 0
        self._total_withdrawn = 0

    @property
    def config(self) -> AdmissionConfig:
        return self._config

    @property
    def max_concurrent(self) -> int:
        return self._config.max_concurrent

    @property
    def active_count(self) -> int:
        """Slots currently held."""
        return self._active

    @property
    def waiting_count(self) -> int:
        """Callers queued for a slot."""
        return sum(1 for fut in self._waiters if not fut.done())

    @property
    def peak_active(self) -> int:
        """Highest number of slots held at once."""
        return self._peak_active

    @property
    def available(self) -> int:
        return self._config.max_concurrent - self._active

    def _grant(self) -> None:
        self._total_acquired += 1
        self._peak_active = max(self._peak_active, self._active)

    async def acquire(self, token: CancelToken | None = None) -> bool:
        """Acquire a slot, waiting in FIFO order if none is free.

        Args:
            token: Optional cancel token; firing it while queued withdraws
                the caller

        Returns:
            True if a slot was granted, False if cancelled before that
        """
        if token is not None and token.is_cancelled:
            return False

        if self._active < self._config.max_concurrent and not self.waiting_count:
            self._active += 1
            self._grant()
            return True

        waiter: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)

        try:
            if token is None:
                await waiter
            else:
                cancelled = asyncio.ensure_future(token.wait())
                try:
                    await asyncio.wait(
                        {waiter, cancelled}, return_when=asyncio.FIRST_COMPLETED
                    )
                finally:
                    cancelled.cancel()

                if token.is_cancelled:
                    self._withdraw(waiter)
                    return False
        except asyncio.CancelledError:
            self._withdraw(waiter)
            raise

        self._grant()
        return True

    def _withdraw(self, waiter: asyncio.Future[bool]) -> None:
        self._total_withdrawn += 1
        if waiter.done() and not waiter.cancelled():
            # Slot was already handed to us; pass it on.
            self.release()
            return
        try:
            self._waiters.remove(waiter)
        except ValueError:
            pass
        if not waiter.done():
            waiter.cancel()

    def release(self) -> None:
        """Release a held slot.

        Raises:
            RuntimeError: If no slot is held
        """
        if self._active <= 0:
            raise RuntimeError("release() called with no slot held")

        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(True)
                return

        self._active -= 1

    @asynccontextmanager
    async def slot(self, token: CancelToken | None = None) -> AsyncIterator[bool]:
        """Hold a slot for the duration of the block.

        Yields:
            Whether a slot was granted; when False nothing is held
        """
        granted = await self.acquire(token)
        try:
            yield granted
        finally:
            if granted:
                self.release()

    def get_stats(self) -> dict[str, Any]:
        """Get admission statistics."""
        return {
            "max_concurrent": self._config.max_concurrent,
            "active": self._active,
            "waiting": self.waiting_count,
            "peak_active": self._peak_active,
            "total_acquired": self._total_acquired,
            "total_withdrawn": self._total_withdrawn,
        }

    def __repr__(self) -> str:
        return (
            f"AdmissionController(active={self._active}/"
            f"{self._config.max_concurrent}, waiting={self.waiting_count})"
        )
