"""Text and transcription services built on the orchestration layer."""

from ai_call_orchestrator.services.text import TextService, extract_json, require_keys
from ai_call_orchestrator.services.transcription import Transcriber, extract_keywords

__all__ = [
    "TextService",
    "Transcriber",
    "extract_json",
    "extract_keywords",
    "require_keys",
]
