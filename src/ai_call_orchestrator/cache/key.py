"""
Request fingerprinting for the response cache.

A fingerprint identifies a request by operation, payload and options so that
identical requests map to the same cache entry.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

from pydantic import BaseModel


class FingerprintGenerator:
    """Generates deterministic fingerprints for requests.

    Example:
        >>> generator = FingerprintGenerator()
        >>> generator.fingerprint("summarize", "meeting notes ...")
        'orch:summarize:3f1c...'
    """

    def __init__(self, prefix: str = "orch") -> None:
        self._prefix = prefix

    def fingerprint(
        self,
        operation: str,
        payload: Any,
        options: Any = None,
    ) -> str:
        """Build the fingerprint of a request.

        Args:
            operation: Operation name
            payload: Request payload (text, dict, list or pydantic model)
            options: Optional request options

        Returns:
            ``"<prefix>:<operation>:<sha256 hex>"``
        """
        content = json.dumps(
            {
                "payload": self._normalize(payload),
                "options": self._normalize(options),
            },
            sort_keys=True,
            ensure_ascii=True,
            default=str,
        )
        return f"{self._prefix}:{operation}:{self._hash_string(content)}"

    def _normalize(self, value: Any) -> Any:
        if isinstance(value, BaseModel):
            return value.model_dump(mode="json", exclude_none=True)
        if isinstance(value, dict):
            return {str(k): self._normalize(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self._normalize(v) for v in value]
        return value

    def _hash_string(self, content: str) -> str:
        return hashlib.sha256(content.encode()).hexdigest()
