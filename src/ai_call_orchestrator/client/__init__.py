"""Client layer: the Orchestrator entry point, its builder and cancellation."""

from ai_call_orchestrator.client.cancel import (
    CancelReason,
    CancelState,
    CancelToken,
    RequestContext,
)
from ai_call_orchestrator.client.builder import OrchestratorBuilder
from ai_call_orchestrator.client.core import Orchestrator

__all__ = [
    "CancelReason",
    "CancelState",
    "CancelToken",
    "Orchestrator",
    "OrchestratorBuilder",
    "RequestContext",
]
