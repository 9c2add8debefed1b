"""
Minimal prompt templates for the structured text operations.

Placeholders use ``string.Template`` syntax. The templates only pin down the
top-level JSON keys the text service checks for.
"""

from __future__ import annotations

import json
from string import Template
from typing import Any

INTENT_TEMPLATE = Template(
    """Analyze the following voice note transcript and extract its intent.

Transcript:
$transcript

Context:
$context

Return ONLY valid JSON with the keys "intent", "entities", "summary",
"confidence" (0.0 to 1.0) and "actions". Use ISO 8601 for datetimes.
"""
)

SUMMARY_TEMPLATE = Template(
    """Summarize the following text.

Text:
$text

Style: $style
Max length: $max_words words

Return ONLY valid JSON with the keys "summary", "tldr" and "bulletPoints".
"""
)

ENTITY_TEMPLATE = Template(
    """Extract entities of these types: $entity_types

Text:
$text

Return ONLY valid JSON: {"entities": [{"type": ..., "value": ..., "confidence": ...}]}
"""
)

JSON_EXTRACTION_TEMPLATE = Template(
    """Extract only the JSON object from the following text. Remove any markdown,
commentary or extra text.

Text:
$text
"""
)


def render_intent(transcript: str, context: dict[str, Any] | None = None) -> str:
    return INTENT_TEMPLATE.substitute(
        transcript=transcript,
        context=json.dumps(context or {}, sort_keys=True, default=str),
    )


def render_summary(text: str, style: str, max_words: int) -> str:
    return SUMMARY_TEMPLATE.substitute(text=text, style=style, max_words=max_words)


def render_entities(text: str, entity_types: list[str]) -> str:
    return ENTITY_TEMPLATE.substitute(text=text, entity_types=", ".join(entity_types))


def render_json_extraction(text: str) -> str:
    return JSON_EXTRACTION_TEMPLATE.substitute(text=text)
