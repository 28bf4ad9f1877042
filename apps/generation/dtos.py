"""
Data Transfer Objects (DTOs) for generation stage contracts.

Every stage returns a result object derived from ``StageResult``. The
orchestrator stores ``snapshot()`` on the StageExecution row, so anything
that must never be persisted (rendered file bodies, plaintext credentials)
is left out of it.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class GenerationContext:
    """
    Mutable state shared by the stages of one pass.

    ``credential`` holds the plaintext login credential between the
    provisioning and notification stages; it is never written anywhere.
    """

    record: Any
    run_id: str
    trigger: str = "manual"
    worker: str = ""
    content: dict[str, Any] = field(default_factory=dict)
    assets: list[dict[str, Any]] = field(default_factory=list)
    palette: Any = None
    palette_source: str = "default"
    files: dict[str, str] = field(default_factory=dict)
    content_digest: str = ""
    artifact_id: int | None = None
    credential: Any = None
    principal_id: int | None = None
    warnings: list[str] = field(default_factory=list)
    results: dict[str, dict[str, Any]] = field(default_factory=dict)

    @property
    def record_id(self) -> str:
        return str(self.record.pk)


@dataclass
class StageResult:
    """Common fields of every stage result."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    fallback_used: bool = False
    duration_ms: float = 0.0

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def snapshot(self) -> dict[str, Any]:
        """Redacted view persisted on the stage execution row."""
        return self.to_dict()


@dataclass
class AssetOptimizationResult(StageResult):
    optimized: int = 0
    skipped: int = 0
    failed: int = 0
    assets: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class SynthesisResult(StageResult):
    content: dict[str, Any] = field(default_factory=dict)
    provider: str = ""


@dataclass
class PaletteResult(StageResult):
    palette: dict[str, str] = field(default_factory=dict)
    source: str = "default"


@dataclass
class RenderResult(StageResult):
    files: dict[str, str] = field(default_factory=dict)
    file_names: list[str] = field(default_factory=list)
    content_digest: str = ""
    theme: str = ""

    def snapshot(self) -> dict[str, Any]:
        data = self.to_dict()
        data.pop("files")
        return data


@dataclass
class PersistResult(StageResult):
    files_path: str = ""
    persisted: bool = False
    artifact_id: int | None = None
    preview_url: str = ""


@dataclass
class ProvisionResult(StageResult):
    """Only the username is carried; the password stays on the context."""

    principal_id: int | None = None
    username: str = ""


@dataclass
class NotifyResult(StageResult):
    deliveries: list[dict[str, Any]] = field(default_factory=list)
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0


@dataclass
class GenerationResult:
    """
    Outcome of one ``GenerationOrchestrator.process`` call.

    ``status`` is ``generated``, ``failed`` (record returned to pending) or
    ``skipped`` (record missing, not eligible, or claimed elsewhere).
    """

    record_id: str
    run_id: str = ""
    status: str = "skipped"
    trigger: str = "manual"
    stages_completed: list[str] = field(default_factory=list)
    failed_stage: str = ""
    error: str = ""
    warnings: list[str] = field(default_factory=list)
    duration_ms: float = 0.0

    @property
    def generated(self) -> bool:
        return self.status == "generated"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
