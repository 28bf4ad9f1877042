"""Admin configuration for generation models."""

from django.contrib import admin
from django.utils.html import format_html
from django.utils.safestring import mark_safe

from apps.generation.models import (
    GenerationRun,
    GenerationStage,
    SiteArtifact,
    StageExecution,
    StageStatus,
)

STAGE_COLORS = {
    StageStatus.SUCCEEDED: ("#28a745", "✓"),
    StageStatus.RUNNING: ("#ffc107", "●"),
    StageStatus.FAILED: ("#dc3545", "✗"),
}


class StageExecutionInline(admin.TabularInline):
    """Inline display of stage executions within a run."""

    model = StageExecution
    extra = 0
    readonly_fields = [
        "stage",
        "status",
        "fatal",
        "started_at",
        "completed_at",
        "duration_ms",
        "error_type",
        "error_message",
    ]
    exclude = ["output_snapshot"]
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(GenerationRun)
class GenerationRunAdmin(admin.ModelAdmin):
    list_display = [
        "run_id",
        "record",
        "trigger",
        "status",
        "failed_stage",
        "created_at",
        "total_duration_ms",
    ]
    list_filter = ["status", "trigger", "failed_stage"]
    search_fields = ["run_id", "record__id", "record__contact_email", "worker"]
    readonly_fields = [
        "run_id",
        "record",
        "trigger",
        "worker",
        "status",
        "failed_stage",
        "error_message",
        "warnings",
        "created_at",
        "updated_at",
        "started_at",
        "completed_at",
        "total_duration_ms",
        "stage_flow",
    ]
    inlines = [StageExecutionInline]

    fieldsets = [
        ("Identification", {"fields": ["stage_flow", "run_id", "record", "trigger", "worker"]}),
        ("Outcome", {"fields": ["status", "failed_stage", "error_message", "warnings"]}),
        (
            "Timestamps",
            {
                "fields": [
                    "created_at",
                    "updated_at",
                    "started_at",
                    "completed_at",
                    "total_duration_ms",
                ]
            },
        ),
    ]

    def get_queryset(self, request):
        return (
            super()
            .get_queryset(request)
            .select_related("record")
            .prefetch_related("stage_executions")
        )

    def has_add_permission(self, request):
        return False

    @admin.display(description="Stage Flow")
    def stage_flow(self, obj):
        """Horizontal stage flow with status indicators. Detail view only."""
        executions = {se.stage: se.status for se in obj.stage_executions.all()}
        parts = []
        for stage in GenerationStage:
            color, icon = STAGE_COLORS.get(executions.get(stage.value), ("#ccc", "○"))
            parts.append(
                format_html(
                    '<span style="display:inline-block;text-align:center;margin:0 4px;">'
                    '<span style="color:{};font-size:18px;">{}</span><br>'
                    '<span style="font-size:11px;">{}</span></span>',
                    color,
                    icon,
                    stage.label,
                )
            )

        arrow = mark_safe('<span style="color:#999;margin:0 2px;">→</span>')
        return format_html(
            '<div style="display:flex;align-items:center;padding:8px 0;">{}</div>',
            mark_safe(arrow.join(parts)),
        )


@admin.register(StageExecution)
class StageExecutionAdmin(admin.ModelAdmin):
    list_display = ["run", "stage", "status", "fatal", "duration_ms", "started_at"]
    list_filter = ["stage", "status", "fatal"]
    search_fields = ["run__run_id", "run__record__id"]
    readonly_fields = [
        "run",
        "stage",
        "status",
        "fatal",
        "output_snapshot",
        "error_type",
        "error_message",
        "started_at",
        "completed_at",
        "duration_ms",
    ]

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("run")

    def has_add_permission(self, request):
        return False


@admin.register(SiteArtifact)
class SiteArtifactAdmin(admin.ModelAdmin):
    list_display = [
        "record",
        "theme",
        "palette_source",
        "files_persisted",
        "principal",
        "rendered_at",
        "preview_link",
    ]
    list_filter = ["theme", "palette_source", "files_persisted"]
    search_fields = ["record__id", "record__contact_email", "content_digest"]
    readonly_fields = [
        "record",
        "files_path",
        "file_names",
        "content_digest",
        "theme",
        "primary_color",
        "secondary_color",
        "accent_color",
        "palette_source",
        "preview_url",
        "files_persisted",
        "principal",
        "rendered_at",
        "created_at",
        "updated_at",
    ]

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("record", "principal")

    def has_add_permission(self, request):
        return False

    @admin.display(description="Preview")
    def preview_link(self, obj):
        if not obj.preview_url:
            return "-"
        return format_html('<a href="{}" target="_blank">open</a>', obj.preview_url)
