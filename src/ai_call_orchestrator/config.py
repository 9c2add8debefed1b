"""
Aggregate configuration for the orchestrator.

Each component keeps its own dataclass config; ``OrchestratorConfig`` bundles
them and loads them from the environment, a mapping or a YAML file::

    retry:
      max_retries: 2
      attempt_timeout: 20
    rate_limit:
      max_per_minute: 30
    circuit_breaker:
      failure_threshold: 3
    poller:
      max_poll_attempts: 60
      poll_backoff: {base_delay: 2.0}
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar

import yaml

from ai_call_orchestrator.cache.store import CacheConfig
from ai_call_orchestrator.errors import ConfigError, ErrorCode
from ai_call_orchestrator.jobs.poller import PollerConfig
from ai_call_orchestrator.resilience.admission import AdmissionConfig
from ai_call_orchestrator.resilience.backoff import BackoffConfig
from ai_call_orchestrator.resilience.circuit_breaker import CircuitBreakerConfig
from ai_call_orchestrator.resilience.executor import RetryConfig
from ai_call_orchestrator.resilience.rate_limiter import RateLimiterConfig

C = TypeVar("C")


def _build(cls: type[C], section: str, data: Any) -> C:
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ConfigError(f"Section '{section}' must be a mapping", key=section)

    known = {f.name for f in dataclasses.fields(cls)}  # type: ignore[arg-type]
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(
            f"Unknown option(s) in '{section}': {', '.join(unknown)}", key=section
        )
    try:
        return cls(**data)
    except ConfigError:
        raise
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid '{section}' configuration: {e}", key=section) from e


def _retry_config(section: str, data: Any) -> RetryConfig:
    if isinstance(data, dict) and "fatal_codes" in data:
        try:
            codes = frozenset(ErrorCode(c) for c in data["fatal_codes"])
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid fatal_codes in '{section}': {e}", key=section) from e
        data = {**data, "fatal_codes": codes}
    return _build(RetryConfig, section, data)


def _poller_config(data: Any) -> PollerConfig:
    if data is None:
        return PollerConfig()
    if not isinstance(data, dict):
        raise ConfigError("Section 'poller' must be a mapping", key="poller")

    data = dict(data)
    for name in ("poll_backoff", "upload_backoff"):
        if name in data:
            data[name] = _build(BackoffConfig, f"poller.{name}", data[name])
    if "upload_retry" in data:
        data["upload_retry"] = _retry_config("poller.upload_retry", data["upload_retry"])
    return _build(PollerConfig, "poller", data)


@dataclass
class OrchestratorConfig:
    """Configuration for every resilience component of an orchestrator.

    Attributes:
        retry: Retry loop settings for provider calls
        backoff: Delay schedule between retries
        rate_limit: Sliding-window request budget
        circuit_breaker: Failure streak handling
        admission: Concurrency cap
        cache: Response cache
        poller: Transcription job polling
    """

    retry: RetryConfig = field(default_factory=RetryConfig)
    backoff: BackoffConfig = field(default_factory=BackoffConfig.retry)
    rate_limit: RateLimiterConfig = field(default_factory=RateLimiterConfig)
    circuit_breaker: CircuitBreakerConfig = field(default_factory=CircuitBreakerConfig)
    admission: AdmissionConfig = field(default_factory=AdmissionConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    poller: PollerConfig = field(default_factory=PollerConfig)

    @classmethod
    def default(cls) -> OrchestratorConfig:
        """Create the default configuration."""
        return cls()

    @classmethod
    def from_env(cls) -> OrchestratorConfig:
        """Create configuration from ``AI_ORCH_*`` environment variables.

        Raises:
            ConfigError: If a variable does not hold a valid value
        """
        try:
            return cls(
                retry=RetryConfig.from_env(),
                rate_limit=RateLimiterConfig.from_env(),
                circuit_breaker=CircuitBreakerConfig.from_env(),
                admission=AdmissionConfig.from_env(),
                cache=CacheConfig.from_env(),
                poller=PollerConfig.from_env(),
            )
        except ConfigError:
            raise
        except ValueError as e:
            raise ConfigError(f"Invalid environment configuration: {e}") from e

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> OrchestratorConfig:
        """Create configuration from a mapping of sections.

        Missing sections keep their defaults.

        Raises:
            ConfigError: On unknown sections or options, or invalid values
        """
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a mapping")

        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration section(s): {', '.join(unknown)}")

        return cls(
            retry=_retry_config("retry", data.get("retry")),
            backoff=_build(BackoffConfig, "backoff", data.get("backoff")),
            rate_limit=_build(RateLimiterConfig, "rate_limit", data.get("rate_limit")),
            circuit_breaker=_build(
                CircuitBreakerConfig, "circuit_breaker", data.get("circuit_breaker")
            ),
            admission=_build(AdmissionConfig, "admission", data.get("admission")),
            cache=_build(CacheConfig, "cache", data.get("cache")),
            poller=_poller_config(data.get("poller")),
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> OrchestratorConfig:
        """Load configuration from a YAML file.

        Args:
            path: Path to the YAML document

        Raises:
            ConfigError: If the file cannot be read or parsed, or holds invalid values
        """
        path = Path(path)
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot read configuration file {path}: {e}") from e
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        return cls.from_dict(data)
