"""External service providers."""

from ai_call_orchestrator.providers.assemblyai import AssemblyAITranscriptionProvider
from ai_call_orchestrator.providers.base import (
    TextGenerationProvider,
    TranscriptionProvider,
)
from ai_call_orchestrator.providers.gemini import GeminiTextProvider
from ai_call_orchestrator.providers.mock import MockTextProvider, MockTranscriptionProvider

__all__ = [
    "AssemblyAITranscriptionProvider",
    "GeminiTextProvider",
    "MockTextProvider",
    "MockTranscriptionProvider",
    "TextGenerationProvider",
    "TranscriptionProvider",
]
