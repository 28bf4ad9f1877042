"""
Monitoring signals for site generation.

Emits structured signals at every stage boundary:

- generation.stage.started
- generation.stage.succeeded
- generation.stage.failed (with fatal flag)
- generation.stage.duration
- generation.pass.started / generation.pass.completed

Every signal carries record_id, run_id, stage and trigger.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from django.conf import settings

logger = logging.getLogger("apps.generation.signals")


@dataclass
class SignalTags:
    """Required tags for all monitoring signals."""

    record_id: str
    run_id: str
    stage: str
    trigger: str = "manual"
    worker: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        base = {
            "record_id": self.record_id,
            "run_id": self.run_id,
            "stage": self.stage,
            "trigger": self.trigger,
            "worker": self.worker,
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


BACKENDS: dict[str, type[MonitoringBackend]] = {
    "logging": LoggingBackend,
}


def get_monitoring_backend() -> MonitoringBackend:
    """Get configured monitoring backend."""
    backend_name = getattr(settings, "GENERATION_METRICS_BACKEND", "logging")
    backend_class = BACKENDS.get(backend_name)
    if backend_class is None:
        logger.warning(f"Unknown metrics backend {backend_name!r}, using logging")
        backend_class = LoggingBackend
    return backend_class()


# Global backend instance (lazy initialized)
_backend: MonitoringBackend | None = None


def _get_backend() -> MonitoringBackend:
    global _backend
    if _backend is None:
        _backend = get_monitoring_backend()
    return _backend


def set_monitoring_backend(backend: MonitoringBackend | None) -> None:
    """Swap the backend (None re-reads settings on next use)."""
    global _backend
    _backend = backend


def emit_stage_started(tags: SignalTags) -> None:
    _get_backend().emit("generation.stage.started", tags)


def emit_stage_succeeded(tags: SignalTags, duration_ms: float, warnings: int = 0) -> None:
    _get_backend().emit(
        "generation.stage.succeeded",
        tags,
        extra={"duration_ms": duration_ms, "warnings": warnings},
    )
    _get_backend().emit("generation.stage.duration", tags, value=duration_ms)


def emit_stage_failed(
    tags: SignalTags,
    error_type: str,
    error_message: str,
    fatal: bool,
    duration_ms: float,
) -> None:
    """Emit signal when a stage fails."""
    _get_backend().emit(
        "generation.stage.failed",
        tags,
        extra={
            "error_type": error_type,
            "error_message": error_message,
            "fatal": fatal,
            "duration_ms": duration_ms,
        },
    )
    _get_backend().emit("generation.stage.duration", tags, value=duration_ms)


def emit_pass_started(tags: SignalTags) -> None:
    _get_backend().emit("generation.pass.started", tags)


def emit_pass_completed(tags: SignalTags, duration_ms: float, status: str) -> None:
    """Emit signal when a pass finishes, whatever the outcome."""
    _get_backend().emit(
        "generation.pass.completed",
        tags,
        value=duration_ms,
        extra={"status": status},
    )
