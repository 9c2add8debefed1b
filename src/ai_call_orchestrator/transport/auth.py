"""
API key resolution utilities.

Resolves API keys from:
1. Explicit value
2. Environment variables ({PROVIDER}_API_KEY)
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from ai_call_orchestrator.telemetry import get_logger

logger = get_logger(__name__)

_MIN_KEY_LENGTH = 20


@dataclass(frozen=True)
class AuthScheme:
    """How a provider expects its credential.

    Attributes:
        header_name: Header carrying the key
        prefix: Text placed before the key (e.g. "Bearer ")
    """

    header_name: str = "Authorization"
    prefix: str = "Bearer "


GEMINI_AUTH = AuthScheme(header_name="x-goog-api-key", prefix="")
ASSEMBLYAI_AUTH = AuthScheme(header_name="authorization", prefix="")


def resolve_api_key(provider_id: str, explicit_key: str | None = None) -> str | None:
    """Resolve API key for a provider.

    Args:
        provider_id: Provider identifier (e.g., "gemini", "assemblyai")
        explicit_key: Explicitly provided API key

    Returns:
        Resolved API key or None if not found
    """
    if explicit_key:
        return explicit_key

    env_var = f"{provider_id.upper().replace('-', '_')}_API_KEY"
    key = os.getenv(env_var)
    if key:
        return key
    return None


def validate_api_key(provider_id: str, key: str | None) -> str:
    """Check a resolved key before it is used.

    Raises:
        ValueError: If the key is missing or blank
    """
    if key is None or not key.strip():
        raise ValueError(f"{provider_id} API key cannot be empty")
    key = key.strip()
    if len(key) < _MIN_KEY_LENGTH:
        logger.warning("API key looks unusually short", provider=provider_id)
    return key


def get_auth_header(
    provider_id: str,
    api_key: str | None = None,
    scheme: AuthScheme | None = None,
) -> dict[str, str]:
    """Build the authentication header for a provider.

    Raises:
        ValueError: If no key can be resolved
    """
    key = validate_api_key(provider_id, resolve_api_key(provider_id, api_key))
    scheme = scheme or AuthScheme()
    return {scheme.header_name: f"{scheme.prefix}{key}"}
