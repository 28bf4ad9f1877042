import django.db.models.deletion
from django.db import migrations, models

import apps.generation.models

STAGE_CHOICES = [
    ("optimize_assets", "Optimize assets"),
    ("synthesize_content", "Synthesize content"),
    ("resolve_palette", "Resolve palette"),
    ("render_artifact", "Render artifact"),
    ("persist_artifact", "Persist artifact"),
    ("provision_identity", "Provision identity"),
    ("promote_status", "Promote status"),
    ("notify", "Notify"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        ("intake", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="GenerationRun",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                (
                    "run_id",
                    models.CharField(
                        default=apps.generation.models.new_run_id,
                        editable=False,
                        max_length=64,
                        unique=True,
                    ),
                ),
                (
                    "trigger",
                    models.CharField(
                        choices=[("inline", "Inline"), ("sweep", "Sweep"), ("manual", "Manual")],
                        db_index=True,
                        default="manual",
                        max_length=20,
                    ),
                ),
                (
                    "worker",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Lease holder identity for this pass.",
                        max_length=255,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("running", "Running"),
                            ("succeeded", "Succeeded"),
                            ("failed", "Failed"),
                            ("skipped", "Skipped"),
                        ],
                        db_index=True,
                        default="running",
                        max_length=20,
                    ),
                ),
                (
                    "failed_stage",
                    models.CharField(blank=True, choices=STAGE_CHOICES, default="", max_length=30),
                ),
                ("error_message", models.TextField(blank=True, default="")),
                ("warnings", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("started_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("total_duration_ms", models.FloatField(default=0.0)),
                (
                    "record",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="generation_runs",
                        to="intake.intakerecord",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status", "created_at"], name="genrun_status_created_idx"),
                    models.Index(fields=["record", "created_at"], name="genrun_record_created_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="StageExecution",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                ("stage", models.CharField(choices=STAGE_CHOICES, db_index=True, max_length=30)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("running", "Running"),
                            ("succeeded", "Succeeded"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="running",
                        max_length=20,
                    ),
                ),
                ("fatal", models.BooleanField(default=False)),
                (
                    "output_snapshot",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Snapshot of stage output (redacted, no credentials).",
                    ),
                ),
                ("error_type", models.CharField(blank=True, default="", max_length=255)),
                ("error_message", models.TextField(blank=True, default="")),
                ("started_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("duration_ms", models.FloatField(default=0.0)),
                (
                    "run",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="stage_executions",
                        to="generation.generationrun",
                    ),
                ),
            ],
            options={
                "ordering": ["run", "started_at", "id"],
                "indexes": [
                    models.Index(fields=["run", "stage"], name="genstage_run_stage_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="SiteArtifact",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                ("files_path", models.CharField(blank=True, default="", max_length=500)),
                ("file_names", models.JSONField(default=list)),
                (
                    "content_digest",
                    models.CharField(
                        help_text="sha256 over the rendered file set.", max_length=64
                    ),
                ),
                ("theme", models.CharField(max_length=10)),
                ("primary_color", models.CharField(max_length=7)),
                ("secondary_color", models.CharField(max_length=7)),
                ("accent_color", models.CharField(max_length=7)),
                (
                    "palette_source",
                    models.CharField(
                        choices=[
                            ("explicit", "Explicit"),
                            ("extracted", "Extracted"),
                            ("default", "Default"),
                        ],
                        default="default",
                        max_length=20,
                    ),
                ),
                ("preview_url", models.CharField(blank=True, default="", max_length=500)),
                ("files_persisted", models.BooleanField(default=False)),
                ("rendered_at", models.DateTimeField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "principal",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="artifacts",
                        to="accounts.principal",
                    ),
                ),
                (
                    "record",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="artifact",
                        to="intake.intakerecord",
                    ),
                ),
            ],
            options={
                "ordering": ["-rendered_at"],
            },
        ),
    ]
