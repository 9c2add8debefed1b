"""Asynchronous job lifecycle: polling and progress reporting."""

from ai_call_orchestrator.jobs.poller import JobPoller, PollerConfig
from ai_call_orchestrator.jobs.progress import ProgressReporter

__all__ = ["JobPoller", "PollerConfig", "ProgressReporter"]
