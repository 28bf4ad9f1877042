import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="IntakeRecord",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, primary_key=True, serialize=False
                    ),
                ),
                (
                    "contact_email",
                    models.EmailField(
                        db_index=True,
                        help_text="Submitter contact address; also the login identity key.",
                        max_length=254,
                    ),
                ),
                (
                    "business_payload",
                    models.JSONField(
                        default=dict,
                        help_text="Business details (name, tagline, about, services, contact, social).",
                    ),
                ),
                (
                    "brand_palette",
                    models.JSONField(
                        blank=True,
                        help_text="Optional explicit palette: {primary, secondary, accent}.",
                        null=True,
                    ),
                ),
                (
                    "theme",
                    models.CharField(
                        choices=[("dark", "Dark"), ("light", "Light")],
                        default="dark",
                        max_length=10,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("generating", "Generating"),
                            ("generated", "Generated"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                (
                    "generated_content",
                    models.JSONField(
                        blank=True,
                        help_text="Synthesized site content, checkpointed after synthesis.",
                        null=True,
                    ),
                ),
                (
                    "attempts",
                    models.PositiveIntegerField(
                        default=0, help_text="Number of failed generation passes."
                    ),
                ),
                ("last_error_stage", models.CharField(blank=True, default="", max_length=50)),
                ("last_error_message", models.TextField(blank=True, default="")),
                (
                    "claimed_by",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Worker identity holding the generation lease.",
                        max_length=255,
                    ),
                ),
                ("claimed_at", models.DateTimeField(blank=True, null=True)),
                ("generated_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "created_at"], name="intake_status_created_idx"
                    ),
                    models.Index(
                        fields=["status", "claimed_at"], name="intake_status_claimed_idx"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="IntakeAsset",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                (
                    "purpose",
                    models.CharField(
                        choices=[("logo", "Logo"), ("hero", "Hero"), ("gallery", "Gallery")],
                        max_length=10,
                    ),
                ),
                ("position", models.PositiveIntegerField(default=0)),
                ("filename", models.CharField(blank=True, default="", max_length=255)),
                ("raw_bytes", models.BinaryField(blank=True, editable=False, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("staged", "Staged"),
                            ("optimized", "Optimized"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="staged",
                        max_length=20,
                    ),
                ),
                ("optimized_ref", models.CharField(blank=True, default="", max_length=500)),
                ("webp_ref", models.CharField(blank=True, default="", max_length=500)),
                ("thumbnail_ref", models.CharField(blank=True, default="", max_length=500)),
                ("width", models.PositiveIntegerField(blank=True, null=True)),
                ("height", models.PositiveIntegerField(blank=True, null=True)),
                ("size", models.PositiveIntegerField(blank=True, null=True)),
                ("error_message", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "record",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="assets",
                        to="intake.intakerecord",
                    ),
                ),
            ],
            options={
                "ordering": ["record", "purpose", "position"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("record", "purpose", "position"), name="unique_asset_slot"
                    )
                ],
            },
        ),
    ]
