"""Admin configuration for intake models."""

from django.contrib import admin
from django.db import models
from django_json_widget.widgets import JSONEditorWidget
from django_object_actions import DjangoObjectActions
from django_object_actions import action as object_action

from apps.intake.models import IntakeAsset, IntakeRecord, RecordStatus


class IntakeAssetInline(admin.TabularInline):
    model = IntakeAsset
    extra = 0
    fields = [
        "purpose",
        "position",
        "filename",
        "status",
        "optimized_ref",
        "width",
        "height",
        "size",
        "error_message",
    ]
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(IntakeRecord)
class IntakeRecordAdmin(DjangoObjectActions, admin.ModelAdmin):
    """Admin for IntakeRecord model."""

    list_display = [
        "id",
        "business_name",
        "contact_email",
        "status",
        "theme",
        "attempts",
        "last_error_stage",
        "created_at",
    ]
    list_filter = ["status", "theme", "last_error_stage"]
    search_fields = ["id", "contact_email"]
    readonly_fields = [
        "id",
        "status",
        "attempts",
        "last_error_stage",
        "last_error_message",
        "claimed_by",
        "claimed_at",
        "generated_at",
        "created_at",
        "updated_at",
    ]
    formfield_overrides = {
        models.JSONField: {"widget": JSONEditorWidget},
    }
    inlines = [IntakeAssetInline]
    actions = ["requeue_selected"]
    change_actions = ["requeue"]

    @admin.action(description="Requeue selected for generation")
    def requeue_selected(self, request, queryset):
        count = 0
        for record in queryset.exclude(status=RecordStatus.GENERATED):
            record.requeue()
            count += 1
        self.message_user(request, f"{count} record(s) requeued.")

    @object_action(label="Requeue", description="Reset attempts and queue for generation")
    def requeue(self, request, obj):
        if obj.status == RecordStatus.GENERATED:
            self.message_user(
                request,
                "Record is already generated; nothing to requeue.",
                level="warning",
            )
            return
        obj.requeue()
        self.message_user(request, f"Record '{obj.id}' requeued.")
