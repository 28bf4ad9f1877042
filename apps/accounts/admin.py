from django.contrib import admin

from apps.accounts.models import Principal


@admin.register(Principal)
class PrincipalAdmin(admin.ModelAdmin):
    list_display = ["username", "contact_address", "credential_rotated_at", "created_at"]
    search_fields = ["username", "contact_address"]
    readonly_fields = ["password_hash", "credential_rotated_at", "created_at", "updated_at"]
