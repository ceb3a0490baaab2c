"""
Monitoring signals for pipeline orchestration.

Emits structured signals at every stage boundary of a tick.

Signals:
- pipeline.tick.started / pipeline.tick.completed
- pipeline.stage.started
- pipeline.stage.succeeded
- pipeline.stage.failed
- duration metrics (stage and tick timing)

Tags on every signal:
- trace_id/run_id
- stage (claim|fold|hypothesize|assess|decide|act|learn)
- trigger (manual|scheduled|api|simulation)
- observation_id and fingerprint for per-observation stages
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from typing import Any

import statsd
from django.conf import settings

logger = logging.getLogger("apps.orchestration.signals")


@dataclass
class SignalTags:
    """Required tags for all monitoring signals."""

    trace_id: str
    run_id: str
    stage: str
    trigger: str = "manual"
    observation_id: int | None = None
    fingerprint: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    def for_stage(self, stage: str, observation=None) -> "SignalTags":
        return replace(
            self,
            stage=stage,
            observation_id=getattr(observation, "pk", None),
            fingerprint=getattr(observation, "fingerprint", ""),
            extra=dict(self.extra),
        )

    def to_dict(self) -> dict[str, Any]:
        base = {
            "trace_id": self.trace_id,
            "run_id": self.run_id,
            "stage": self.stage,
            "trigger": self.trigger,
            "observation_id": self.observation_id,
            "fingerprint": self.fingerprint,
        }
        base.update(self.extra)
        return base


class MonitoringBackend:
    """
    Abstract monitoring backend.

    Override emit() to send signals to your preferred monitoring system.
    """

    def emit(
        self,
        signal_name: str,
        tags: SignalTags,
        value: float | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Emit a monitoring signal."""
        raise NotImplementedError


class LoggingBackend(MonitoringBackend):
    """Default backend: structured logging."""

    def emit(
        self,
        signal_name: str,
        tags: SignalTags,
        value: float | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        data = {
            "signal": signal_name,
            "value": value,
            **tags.to_dict(),
            **(extra or {}),
        }
        logger.info(f"[SIGNAL] {signal_name}", extra={"signal_data": data})


class StatsdBackend(MonitoringBackend):
    """StatsD backend for metrics collection."""

    def __init__(self, host: str = "localhost", port: int = 8125, prefix: str = "pipeline"):
        self.host = host
        self.port = port
        self.prefix = prefix
        self._client: statsd.StatsClient | None = None

    @property
    def client(self) -> statsd.StatsClient:
        if self._client is None:
            self._client = statsd.StatsClient(self.host, self.port, prefix=self.prefix)
        return self._client

    def emit(
        self,
        signal_name: str,
        tags: SignalTags,
        value: float | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        # Format: prefix.signal_name.stage.trigger
        metric_name = f"{signal_name}.{tags.stage}.{tags.trigger}"

        if value is not None:
            if "duration" in signal_name:
                self.client.timing(metric_name, value)
            else:
                self.client.gauge(metric_name, value)
        else:
            self.client.incr(metric_name)


def get_monitoring_backend() -> MonitoringBackend:
    """Get configured monitoring backend."""
    backend_name = getattr(settings, "ORCHESTRATION_METRICS_BACKEND", "logging")

    if backend_name == "statsd":
        host = getattr(settings, "STATSD_HOST", "localhost")
        port = getattr(settings, "STATSD_PORT", 8125)
        prefix = getattr(settings, "STATSD_PREFIX", "pipeline")
        return StatsdBackend(host=host, port=port, prefix=prefix)

    return LoggingBackend()


# Global backend instance (lazy initialized)
_backend: MonitoringBackend | None = None


def _get_backend() -> MonitoringBackend:
    global _backend
    if _backend is None:
        _backend = get_monitoring_backend()
    return _backend


def reset_backend() -> None:
    """Drop the cached backend so the next signal re-reads settings."""
    global _backend
    _backend = None


def emit_stage_started(tags: SignalTags) -> None:
    _get_backend().emit("pipeline.stage.started", tags)


def emit_stage_succeeded(tags: SignalTags, duration_ms: float) -> None:
    _get_backend().emit("pipeline.stage.succeeded", tags, extra={"duration_ms": duration_ms})
    _get_backend().emit("pipeline.stage.duration", tags, value=duration_ms)


def emit_stage_failed(
    tags: SignalTags,
    error_type: str,
    error_message: str,
    duration_ms: float,
) -> None:
    _get_backend().emit(
        "pipeline.stage.failed",
        tags,
        extra={
            "error_type": error_type,
            "error_message": error_message,
            "duration_ms": duration_ms,
        },
    )
    _get_backend().emit("pipeline.stage.duration", tags, value=duration_ms)
    _get_backend().emit("pipeline.stage.failure_count", tags, value=1)


def emit_tick_started(tags: SignalTags) -> None:
    _get_backend().emit("pipeline.tick.started", tags)


def emit_tick_completed(tags: SignalTags, duration_ms: float, status: str, **counters) -> None:
    _get_backend().emit(
        "pipeline.tick.completed",
        tags,
        extra={"duration_ms": duration_ms, "final_status": status, **counters},
    )
    _get_backend().emit("pipeline.tick.duration", tags, value=duration_ms)


class StageTimer:
    """
    Context manager for timing one stage.

    Emits started on enter and succeeded or failed on exit. Exceptions are
    never suppressed.
    """

    def __init__(self, tags: SignalTags):
        self.tags = tags
        self.start_time: float = 0.0
        self.duration_ms: float = 0.0

    def __enter__(self) -> "StageTimer":
        self.start_time = time.perf_counter()
        emit_stage_started(self.tags)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration_ms = (time.perf_counter() - self.start_time) * 1000

        if exc_type is None:
            emit_stage_succeeded(self.tags, self.duration_ms)
        else:
            emit_stage_failed(
                self.tags,
                error_type=exc_type.__name__,
                error_message=str(exc_val),
                duration_ms=self.duration_ms,
            )
        return False
