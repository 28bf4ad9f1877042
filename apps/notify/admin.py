"""Admin for notify channels."""

from django.contrib import admin
from django.db import models
from django_json_widget.widgets import JSONEditorWidget

from apps.notify.models import NotificationChannel

SECRET_KEYS = ("password", "token", "secret")


@admin.register(NotificationChannel)
class NotificationChannelAdmin(admin.ModelAdmin):
    list_display = ["name", "driver", "audience", "is_active", "config_keys", "updated_at"]
    list_filter = ["driver", "audience", "is_active"]
    list_editable = ["is_active"]
    search_fields = ["name", "description"]
    readonly_fields = ["created_at", "updated_at"]
    formfield_overrides = {models.JSONField: {"widget": JSONEditorWidget}}
    actions = ["activate", "deactivate"]

    fieldsets = [
        (None, {"fields": ["name", "driver", "audience", "is_active", "description"]}),
        ("Driver settings", {"fields": ["config"]}),
        ("Timestamps", {"fields": ["created_at", "updated_at"], "classes": ["collapse"]}),
    ]

    @admin.display(description="Config")
    def config_keys(self, obj):
        """Configured keys; secret values are never shown in the list."""
        keys = sorted(obj.config or {})
        return ", ".join(f"{k}=***" if k in SECRET_KEYS else k for k in keys) or "-"

    @admin.action(description="Activate selected channels")
    def activate(self, request, queryset):
        count = queryset.update(is_active=True)
        self.message_user(request, f"{count} channel(s) activated.")

    @admin.action(description="Deactivate selected channels")
    def deactivate(self, request, queryset):
        count = queryset.update(is_active=False)
        self.message_user(request, f"{count} channel(s) deactivated.")
