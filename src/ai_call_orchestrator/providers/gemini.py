"""Gemini ``generateContent`` text provider.

Request: ``contents[].parts[].text`` with an optional ``generationConfig``.
Response: ``candidates[0].content.parts[*].text``.
"""

from __future__ import annotations

from typing import Any

from ai_call_orchestrator.errors import ResponseParseError
from ai_call_orchestrator.transport import GEMINI_AUTH, HttpTransport, get_auth_header
from ai_call_orchestrator.types import GenerationOptions

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-1.5-flash"


class GeminiTextProvider:
    """Text generation over the Gemini REST API.

    Example:
        >>> provider = GeminiTextProvider(api_key="...")
        >>> text = await provider.generate("Summarize: ...")
    """

    name = "gemini"

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        default_options: GenerationOptions | None = None,
        transport: HttpTransport | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            api_key: API key; falls back to GEMINI_API_KEY
            model: Model identifier
            base_url: API base URL
            default_options: Options used when a call passes none
            transport: Pre-built transport, mainly for tests

        Raises:
            ValueError: If no API key can be resolved
        """
        self._model = model
        self._default_options = default_options or GenerationOptions()
        self._transport = transport or HttpTransport(
            base_url,
            headers=get_auth_header("gemini", api_key, GEMINI_AUTH),
        )

    @property
    def model(self) -> str:
        return self._model

    def build_request(
        self, prompt: str, options: GenerationOptions | None = None
    ) -> dict[str, Any]:
        opts = options or self._default_options
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": opts.to_generation_config(),
        }

    @staticmethod
    def parse_response(body: dict[str, Any]) -> str:
        """Extract the generated text.

        Raises:
            ResponseParseError: If the body carries no text
        """
        candidates = body.get("candidates") or []
        if not candidates:
            feedback = body.get("promptFeedback") or {}
            reason = feedback.get("blockReason")
            raise ResponseParseError(
                f"Empty response from model (blocked: {reason})"
                if reason
                else "Empty response from model"
            )

        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(p["text"] for p in parts if isinstance(p.get("text"), str))
        if not text.strip():
            raise ResponseParseError("Empty response from model")
        return text

    async def generate(
        self, prompt: str, options: GenerationOptions | None = None
    ) -> str:
        response = await self._transport.post(
            f"/models/{self._model}:generateContent",
            self.build_request(prompt, options),
        )
        try:
            body = response.json()
        except ValueError as e:
            raise ResponseParseError("Response is not JSON", raw=response.text) from e
        if not isinstance(body, dict):
            raise ResponseParseError("Unexpected response shape", raw=response.text)
        return self.parse_response(body)

    async def close(self) -> None:
        await self._transport.close()

    def __repr__(self) -> str:
        return f"GeminiTextProvider(model={self._model!r})"
