"""Admin configuration for the audit trail (read-only)."""

from django.contrib import admin

from apps.audit.models import AuditLogEntry
from config.admin import prettify_json


@admin.register(AuditLogEntry)
class AuditLogEntryAdmin(admin.ModelAdmin):
    list_display = ["timestamp", "entity_type", "entity_id", "transition", "actor", "actor_name"]
    list_filter = ["entity_type", "actor", "transition"]
    search_fields = ["entity_id", "transition", "actor_name"]
    readonly_fields = [
        "entity_type",
        "entity_id",
        "transition",
        "actor",
        "actor_name",
        "timestamp",
        "detail_pretty",
    ]
    exclude = ["detail"]
    date_hierarchy = "timestamp"

    @admin.display(description="Detail")
    def detail_pretty(self, obj):
        return prettify_json(obj.detail)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
