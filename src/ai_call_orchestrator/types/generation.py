"""
Text generation options.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class GenerationOptions(BaseModel):
    """Sampling options forwarded to the text-generation provider."""

    model_config = ConfigDict(extra="forbid")

    temperature: float = Field(default=0.0, ge=0.0, le=2.0)
    max_output_tokens: int = Field(default=1024, gt=0)
    top_p: float | None = Field(default=0.95, ge=0.0, le=1.0)
    top_k: int | None = Field(default=40, gt=0)
    response_mime_type: str | None = None

    @classmethod
    def json_mode(cls, **kwargs: Any) -> GenerationOptions:
        """Options asking the provider for a JSON body."""
        return cls(response_mime_type="application/json", **kwargs)

    def to_generation_config(self) -> dict[str, Any]:
        """Render as a ``generationConfig`` object."""
        config: dict[str, Any] = {
            "temperature": self.temperature,
            "maxOutputTokens": self.max_output_tokens,
        }
        if self.top_p is not None:
            config["topP"] = self.top_p
        if self.top_k is not None:
            config["topK"] = self.top_k
        if self.response_mime_type:
            config["responseMimeType"] = self.response_mime_type
        return config
