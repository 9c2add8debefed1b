"""
Resilience layer: backoff, rate limiting, circuit breaking, admission
control and the retry executor that composes them.
"""

from ai_call_orchestrator.resilience.admission import AdmissionConfig, AdmissionController
from ai_call_orchestrator.resilience.backoff import BackoffConfig, BackoffPolicy
from ai_call_orchestrator.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
)
from ai_call_orchestrator.resilience.executor import RetryConfig, RetryExecutor
from ai_call_orchestrator.resilience.rate_limiter import RateLimiter, RateLimiterConfig
from ai_call_orchestrator.resilience.signals import SignalsSnapshot

__all__ = [
    "AdmissionConfig",
    "AdmissionController",
    "BackoffConfig",
    "BackoffPolicy",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitState",
    "RateLimiter",
    "RateLimiterConfig",
    "RetryConfig",
    "RetryExecutor",
    "SignalsSnapshot",
]
