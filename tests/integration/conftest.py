"""
Integration test fixtures.

Providers talk to pytest-httpx mocks; every response registered by a test
must be requested exactly once.
"""

from __future__ import annotations

from typing import Any

import pytest

from ai_call_orchestrator import Orchestrator, OrchestratorConfig
from ai_call_orchestrator.jobs import PollerConfig
from ai_call_orchestrator.providers import AssemblyAITranscriptionProvider, GeminiTextProvider
from ai_call_orchestrator.resilience import BackoffConfig, RetryConfig

GEMINI_KEY = "gemini-test-key-0123456789"
ASSEMBLYAI_KEY = "assemblyai-test-key-0123456789"

GEMINI_URL = (
    "https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-flash:generateContent"
)
ASSEMBLYAI_URL = "https://api.assemblyai.com/v2"

FAST = BackoffConfig(base_delay=0.001, factor=1.0, max_delay=0.001, jitter_max=0.0)


def gemini_body(text: str) -> dict[str, Any]:
    """A generateContent response carrying ``text``."""
    return {
        "candidates": [
            {
                "content": {"role": "model", "parts": [{"text": text}]},
                "finishReason": "STOP",
            }
        ],
        "usageMetadata": {"promptTokenCount": 12, "candidatesTokenCount": 8},
    }


def assemblyai_status(job_id: str, status: str, **fields: Any) -> dict[str, Any]:
    """A transcript status payload."""
    return {"id": job_id, "status": status, **fields}


@pytest.fixture
def gemini() -> GeminiTextProvider:
    return GeminiTextProvider(api_key=GEMINI_KEY)


@pytest.fixture
def assemblyai() -> AssemblyAITranscriptionProvider:
    return AssemblyAITranscriptionProvider(api_key=ASSEMBLYAI_KEY)


@pytest.fixture
def fast_config() -> OrchestratorConfig:
    """Millisecond backoff everywhere, two retries."""
    return OrchestratorConfig(
        retry=RetryConfig(max_retries=2),
        backoff=FAST,
        poller=PollerConfig(
            max_poll_attempts=5,
            poll_backoff=FAST,
            upload_backoff=FAST,
        ),
    )


@pytest.fixture
def orchestrator(
    gemini: GeminiTextProvider,
    assemblyai: AssemblyAITranscriptionProvider,
    fast_config: OrchestratorConfig,
) -> Orchestrator:
    return Orchestrator(gemini, assemblyai, fast_config)
