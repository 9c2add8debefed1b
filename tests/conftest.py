"""Root pytest fixtures for ai-call-orchestrator tests."""

from __future__ import annotations

import random

import pytest


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """A fake clock starting at t=1000."""
    return FakeClock()


@pytest.fixture
def rng() -> random.Random:
    """Seeded random source for reproducible jitter."""
    return random.Random(42)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep real credentials and overrides out of the tests."""
    for name in (
        "GEMINI_API_KEY",
        "ASSEMBLYAI_API_KEY",
        "AI_ORCH_MAX_CONCURRENT",
        "AI_ORCH_REQUESTS_PER_MINUTE",
        "AI_ORCH_BREAKER_THRESHOLD",
        "AI_ORCH_BREAKER_COOLDOWN_SECS",
        "AI_ORCH_CACHE_TTL_SECS",
        "AI_ORCH_CACHE_MAX_ENTRIES",
        "AI_ORCH_MAX_RETRIES",
        "AI_ORCH_ATTEMPT_TIMEOUT_SECS",
        "AI_ORCH_MAX_POLL_ATTEMPTS",
        "AI_ORCH_HTTP_TIMEOUT_SECS",
        "AI_ORCH_HTTP_TRUST_ENV",
    ):
        monkeypatch.delenv(name, raising=False)
