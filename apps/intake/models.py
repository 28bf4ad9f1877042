"""
Models for intake requests.

An IntakeRecord is the unit of work for the generation pipeline. Its uploaded
images are staged as IntakeAsset rows, which double as per-asset checkpoints:
once an asset is optimized it is never processed again.
"""

import uuid

from django.conf import settings
from django.core.files.storage import default_storage
from django.db import models


def public_media_url(name: str) -> str:
    """Absolute URL for a stored file; generated sites are served from another origin."""
    if not name:
        return ""
    url = default_storage.url(name)
    if url.startswith("/"):
        url = getattr(settings, "SITE_BASE_URL", "").rstrip("/") + url
    return url


class RecordStatus(models.TextChoices):
    """Lifecycle of an intake record."""

    PENDING = "pending", "Pending"
    GENERATING = "generating", "Generating"
    GENERATED = "generated", "Generated"


class SiteTheme(models.TextChoices):
    DARK = "dark", "Dark"
    LIGHT = "light", "Light"


class AssetPurpose(models.TextChoices):
    LOGO = "logo", "Logo"
    HERO = "hero", "Hero"
    GALLERY = "gallery", "Gallery"


class AssetStatus(models.TextChoices):
    STAGED = "staged", "Staged"
    OPTIMIZED = "optimized", "Optimized"
    FAILED = "failed", "Failed"


class IntakeRecord(models.Model):
    """
    A business intake request awaiting (or done with) site generation.

    ``business_payload`` is opaque to the pipeline except through the content
    model builder. ``last_error_*`` fields are internal and never exposed by
    the public status endpoint.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    contact_email = models.EmailField(
        db_index=True,
        help_text="Submitter contact address; also the login identity key.",
    )
    business_payload = models.JSONField(
        default=dict,
        help_text="Business details (name, tagline, about, services, contact, social).",
    )
    brand_palette = models.JSONField(
        null=True,
        blank=True,
        help_text="Optional explicit palette: {primary, secondary, accent}.",
    )
    theme = models.CharField(
        max_length=10,
        choices=SiteTheme.choices,
        default=SiteTheme.DARK,
    )

    status = models.CharField(
        max_length=20,
        choices=RecordStatus.choices,
        default=RecordStatus.PENDING,
        db_index=True,
    )
    generated_content = models.JSONField(
        null=True,
        blank=True,
        help_text="Synthesized site content, checkpointed after synthesis.",
    )

    # Failure tracking
    attempts = models.PositiveIntegerField(
        default=0,
        help_text="Number of failed generation passes.",
    )
    last_error_stage = models.CharField(max_length=50, blank=True, default="")
    last_error_message = models.TextField(blank=True, default="")

    # Lease
    claimed_by = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Worker identity holding the generation lease.",
    )
    claimed_at = models.DateTimeField(null=True, blank=True)

    generated_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="intake_status_created_idx"),
            models.Index(fields=["status", "claimed_at"], name="intake_status_claimed_idx"),
        ]

    def __str__(self):
        name = (self.business_payload or {}).get("business_name") or self.contact_email
        return f"{name} [{self.status}]"

    @property
    def business_name(self) -> str:
        return str((self.business_payload or {}).get("business_name", "")).strip()

    @property
    def derived_assets(self) -> list[dict]:
        """Optimized asset references, ordered by purpose then position."""
        return [
            asset.as_reference()
            for asset in self.assets.filter(status=AssetStatus.OPTIMIZED).order_by(
                "purpose", "position"
            )
        ]

    def requeue(self):
        """Reset the record so the sweep picks it up again."""
        self.status = RecordStatus.PENDING
        self.attempts = 0
        self.claimed_by = ""
        self.claimed_at = None
        self.save(update_fields=["status", "attempts", "claimed_by", "claimed_at", "updated_at"])


class IntakeAsset(models.Model):
    """
    One uploaded image belonging to an intake record.

    ``raw_bytes`` is a staging copy kept only until the asset is optimized
    (or discarded after the record is generated).
    """

    record = models.ForeignKey(
        IntakeRecord,
        on_delete=models.CASCADE,
        related_name="assets",
    )
    purpose = models.CharField(max_length=10, choices=AssetPurpose.choices)
    position = models.PositiveIntegerField(default=0)
    filename = models.CharField(max_length=255, blank=True, default="")
    raw_bytes = models.BinaryField(null=True, blank=True, editable=False)

    status = models.CharField(
        max_length=20,
        choices=AssetStatus.choices,
        default=AssetStatus.STAGED,
        db_index=True,
    )
    optimized_ref = models.CharField(max_length=500, blank=True, default="")
    webp_ref = models.CharField(max_length=500, blank=True, default="")
    thumbnail_ref = models.CharField(max_length=500, blank=True, default="")
    width = models.PositiveIntegerField(null=True, blank=True)
    height = models.PositiveIntegerField(null=True, blank=True)
    size = models.PositiveIntegerField(null=True, blank=True)
    error_message = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["record", "purpose", "position"]
        constraints = [
            models.UniqueConstraint(
                fields=["record", "purpose", "position"],
                name="unique_asset_slot",
            ),
        ]

    def __str__(self):
        return f"{self.record_id} / {self.purpose}#{self.position} [{self.status}]"

    def as_reference(self) -> dict:
        """Renderer-facing reference; ``ref`` keeps the storage name."""
        return {
            "purpose": self.purpose,
            "position": self.position,
            "ref": self.optimized_ref,
            "url": public_media_url(self.optimized_ref),
            "webp_url": public_media_url(self.webp_ref),
            "thumbnail_url": public_media_url(self.thumbnail_ref),
            "width": self.width,
            "height": self.height,
        }

    def mark_optimized(self, optimized_ref, webp_ref, thumbnail_ref, width, height, size):
        self.status = AssetStatus.OPTIMIZED
        self.optimized_ref = optimized_ref
        self.webp_ref = webp_ref or ""
        self.thumbnail_ref = thumbnail_ref or ""
        self.width = width
        self.height = height
        self.size = size
        self.error_message = ""
        self.raw_bytes = None
        self.save(
            update_fields=[
                "status",
                "optimized_ref",
                "webp_ref",
                "thumbnail_ref",
                "width",
                "height",
                "size",
                "error_message",
                "raw_bytes",
                "updated_at",
            ]
        )

    def mark_failed(self, message: str):
        self.status = AssetStatus.FAILED
        self.error_message = message
        self.save(update_fields=["status", "error_message", "updated_at"])
