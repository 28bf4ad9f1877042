"""
Models for site generation.

GenerationRun and StageExecution are the internal audit trail of processing
passes; SiteArtifact describes the rendered site of a record.
"""

import uuid

from django.db import models
from django.utils import timezone


def new_run_id() -> str:
    return uuid.uuid4().hex


class GenerationStage(models.TextChoices):
    """Pipeline stages in execution order."""

    OPTIMIZE_ASSETS = "optimize_assets", "Optimize assets"
    SYNTHESIZE_CONTENT = "synthesize_content", "Synthesize content"
    RESOLVE_PALETTE = "resolve_palette", "Resolve palette"
    RENDER_ARTIFACT = "render_artifact", "Render artifact"
    PERSIST_ARTIFACT = "persist_artifact", "Persist artifact"
    PROVISION_IDENTITY = "provision_identity", "Provision identity"
    PROMOTE_STATUS = "promote_status", "Promote status"
    NOTIFY = "notify", "Notify"


class RunTrigger(models.TextChoices):
    INLINE = "inline", "Inline"
    SWEEP = "sweep", "Sweep"
    MANUAL = "manual", "Manual"


class RunStatus(models.TextChoices):
    """Outcome of a processing pass."""

    RUNNING = "running", "Running"
    SUCCEEDED = "succeeded", "Succeeded"
    FAILED = "failed", "Failed"
    SKIPPED = "skipped", "Skipped"


class StageStatus(models.TextChoices):
    RUNNING = "running", "Running"
    SUCCEEDED = "succeeded", "Succeeded"
    FAILED = "failed", "Failed"


class PaletteSource(models.TextChoices):
    EXPLICIT = "explicit", "Explicit"
    EXTRACTED = "extracted", "Extracted"
    DEFAULT = "default", "Default"


class GenerationRun(models.Model):
    """
    One processing pass over an intake record.

    Skipped passes (record not eligible, claim lost) are recorded too so the
    dashboard can show trigger contention.
    """

    run_id = models.CharField(
        max_length=64,
        unique=True,
        default=new_run_id,
        editable=False,
    )
    record = models.ForeignKey(
        "intake.IntakeRecord",
        on_delete=models.CASCADE,
        related_name="generation_runs",
    )
    trigger = models.CharField(
        max_length=20,
        choices=RunTrigger.choices,
        default=RunTrigger.MANUAL,
        db_index=True,
    )
    worker = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Lease holder identity for this pass.",
    )
    status = models.CharField(
        max_length=20,
        choices=RunStatus.choices,
        default=RunStatus.RUNNING,
        db_index=True,
    )
    failed_stage = models.CharField(
        max_length=30,
        choices=GenerationStage.choices,
        blank=True,
        default="",
    )
    error_message = models.TextField(blank=True, default="")
    warnings = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    total_duration_ms = models.FloatField(default=0.0)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="genrun_status_created_idx"),
            models.Index(fields=["record", "created_at"], name="genrun_record_created_idx"),
        ]

    def __str__(self):
        return f"Run {self.run_id} ({self.trigger}) [{self.status}]"

    def _finish(self, status: str):
        self.status = status
        self.completed_at = timezone.now()
        if self.started_at:
            delta = self.completed_at - self.started_at
            self.total_duration_ms = delta.total_seconds() * 1000

    def mark_succeeded(self, warnings: list[str] | None = None):
        self._finish(RunStatus.SUCCEEDED)
        self.warnings = list(warnings or [])
        self.save(
            update_fields=["status", "completed_at", "total_duration_ms", "warnings", "updated_at"]
        )

    def mark_failed(self, stage: str, message: str, warnings: list[str] | None = None):
        self._finish(RunStatus.FAILED)
        self.failed_stage = stage
        self.error_message = message
        self.warnings = list(warnings or [])
        self.save(
            update_fields=[
                "status",
                "completed_at",
                "total_duration_ms",
                "failed_stage",
                "error_message",
                "warnings",
                "updated_at",
            ]
        )


class StageExecution(models.Model):
    """Audit row for one stage inside a pass."""

    run = models.ForeignKey(
        GenerationRun,
        on_delete=models.CASCADE,
        related_name="stage_executions",
    )
    stage = models.CharField(max_length=30, choices=GenerationStage.choices, db_index=True)
    status = models.CharField(
        max_length=20,
        choices=StageStatus.choices,
        default=StageStatus.RUNNING,
        db_index=True,
    )
    fatal = models.BooleanField(default=False)

    output_snapshot = models.JSONField(
        default=dict,
        blank=True,
        help_text="Snapshot of stage output (redacted, no credentials).",
    )
    error_type = models.CharField(max_length=255, blank=True, default="")
    error_message = models.TextField(blank=True, default="")

    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    duration_ms = models.FloatField(default=0.0)

    class Meta:
        ordering = ["run", "started_at", "id"]
        indexes = [
            models.Index(fields=["run", "stage"], name="genstage_run_stage_idx"),
        ]

    def __str__(self):
        return f"{self.run.run_id} / {self.stage} [{self.status}]"

    def mark_started(self):
        self.status = StageStatus.RUNNING
        self.started_at = timezone.now()
        self.save(update_fields=["status", "started_at"])

    def _complete(self):
        self.completed_at = timezone.now()
        if self.started_at:
            delta = self.completed_at - self.started_at
            self.duration_ms = delta.total_seconds() * 1000

    def mark_succeeded(self, output_snapshot: dict | None = None):
        self.status = StageStatus.SUCCEEDED
        self._complete()
        if output_snapshot:
            self.output_snapshot = output_snapshot
        self.save(update_fields=["status", "completed_at", "duration_ms", "output_snapshot"])

    def mark_failed(self, error_type: str, error_message: str, output_snapshot: dict | None = None):
        self.status = StageStatus.FAILED
        self._complete()
        self.error_type = error_type
        self.error_message = error_message
        if output_snapshot:
            self.output_snapshot = output_snapshot
        self.save(
            update_fields=[
                "status",
                "completed_at",
                "duration_ms",
                "error_type",
                "error_message",
                "output_snapshot",
            ]
        )


class SiteArtifact(models.Model):
    """
    The rendered site of an intake record.

    Upserted on every successful render; ``files_persisted`` is False when
    the artifact store write failed.
    """

    record = models.OneToOneField(
        "intake.IntakeRecord",
        on_delete=models.CASCADE,
        related_name="artifact",
    )
    files_path = models.CharField(max_length=500, blank=True, default="")
    file_names = models.JSONField(default=list)
    content_digest = models.CharField(max_length=64, help_text="sha256 over the rendered file set.")
    theme = models.CharField(max_length=10)

    primary_color = models.CharField(max_length=7)
    secondary_color = models.CharField(max_length=7)
    accent_color = models.CharField(max_length=7)
    palette_source = models.CharField(
        max_length=20,
        choices=PaletteSource.choices,
        default=PaletteSource.DEFAULT,
    )

    preview_url = models.CharField(max_length=500, blank=True, default="")
    files_persisted = models.BooleanField(default=False)
    principal = models.ForeignKey(
        "accounts.Principal",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="artifacts",
    )

    rendered_at = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-rendered_at"]

    def __str__(self):
        return f"Site for {self.record_id} ({self.theme})"

    @property
    def palette(self) -> dict[str, str]:
        return {
            "primary": self.primary_color,
            "secondary": self.secondary_color,
            "accent": self.accent_color,
        }
