"""Transport layer: httpx client and credential resolution."""

from ai_call_orchestrator.transport.auth import (
    ASSEMBLYAI_AUTH,
    GEMINI_AUTH,
    AuthScheme,
    get_auth_header,
    resolve_api_key,
    validate_api_key,
)
from ai_call_orchestrator.transport.http import HttpTransport

__all__ = [
    "ASSEMBLYAI_AUTH",
    "GEMINI_AUTH",
    "AuthScheme",
    "HttpTransport",
    "get_auth_header",
    "resolve_api_key",
    "validate_api_key",
]
