#!/usr/bin/env python3
"""
Transcription example.

Uploads audio, polls the job to completion while reporting progress, then
analyzes the transcript.

Runs against mock providers by default. Set both API keys to use the real
AssemblyAI and Gemini services with your own audio file.

Usage:
    python examples/transcribe.py
    export ASSEMBLYAI_API_KEY="your-api-key"
    export GEMINI_API_KEY="your-api-key"
    python examples/transcribe.py path/to/voicemail.m4a
"""

import asyncio
import os
import sys

from ai_call_orchestrator import (
    Orchestrator,
    OrchestratorConfig,
    ProgressEvent,
    ProgressReporter,
    TranscriptionOptions,
)
from ai_call_orchestrator.jobs import PollerConfig
from ai_call_orchestrator.providers import MockTextProvider, MockTranscriptionProvider
from ai_call_orchestrator.resilience import BackoffConfig

TRANSCRIPT = (
    "Hi, it's Dana. Please remind me to call the dentist tomorrow, "
    "and schedule a meeting with the design team on Friday."
)
INTENT = (
    '{"intent": "reminder", "summary": "Dana asks for a dentist reminder and a meeting", '
    '"entities": {"people": ["Dana"]}, "actions": ["call dentist", "schedule meeting"]}'
)


def mock_orchestrator() -> Orchestrator:
    """Scripted providers: the job is queued, processes for a while, then completes."""
    transcription = MockTranscriptionProvider(
        ["queued", "processing", "processing", {"status": "completed", "text": TRANSCRIPT}],
        delay=0.05,
    )
    polling = BackoffConfig(base_delay=0.2, factor=1.0, max_delay=0.2, jitter_max=0.0)
    config = OrchestratorConfig(poller=PollerConfig(poll_backoff=polling))
    return Orchestrator(MockTextProvider([INTENT]), transcription, config)


def print_progress(event: ProgressEvent) -> None:
    bar = "#" * (event.percent // 5)
    print(f"  [{bar:<20}] {event.percent:3d}% {event.phase.value}: {event.message}")


async def watch(reporter: ProgressReporter) -> None:
    """Consume progress as a stream, e.g. to forward it to a UI."""
    async for event in reporter.stream():
        if event.phase.is_terminal:
            print(f"  stream: finished ({event.phase.value})")


async def main() -> None:
    if len(sys.argv) > 1 and os.getenv("ASSEMBLYAI_API_KEY") and os.getenv("GEMINI_API_KEY"):
        orch = Orchestrator.create()
        source: str | bytes = sys.argv[1]
    else:
        orch = mock_orchestrator()
        source = b"\x00" * 4096

    async with orch:
        print("Transcribing...")
        reporter = ProgressReporter()
        watcher = asyncio.create_task(watch(reporter))
        await asyncio.sleep(0)

        result = await orch.transcribe(
            source,
            TranscriptionOptions(speaker_labels=True),
            on_progress=print_progress,
            progress=reporter,
        )
        reporter.close()
        await watcher

        if not result.ok:
            print(f"Transcription failed: {result.code.value}: {result.message}")
            return

        transcription = result.value
        print()
        print(f"Job: {transcription.job_id} ({transcription.poll_attempts} polls)")
        print(f"Text: {transcription.text}")
        for category, matches in transcription.keywords.items():
            if matches:
                print(f"  {category}: {', '.join(m.keyword for m in matches)}")

        if transcription.has_action_items:
            analysis = await orch.analyze_intent(transcription.text)
            if analysis.ok:
                print()
                print(f"Intent: {analysis.value['intent']}")
                print(f"Summary: {analysis.value['summary']}")


if __name__ == "__main__":
    asyncio.run(main())
