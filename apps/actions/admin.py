"""Admin configuration for action channels."""

from django.contrib import admin
from django.db import models as db_models
from django_json_widget.widgets import JSONEditorWidget

from apps.actions.models import ActionChannel


@admin.register(ActionChannel)
class ActionChannelAdmin(admin.ModelAdmin):
    """Admin for ActionChannel model."""

    list_display = [
        "name",
        "action_kind",
        "driver",
        "priority",
        "is_active",
        "updated_at",
    ]
    formfield_overrides = {db_models.JSONField: {"widget": JSONEditorWidget}}
    list_filter = ["action_kind", "driver", "is_active"]
    list_editable = ["priority", "is_active"]
    search_fields = ["name", "description"]
    readonly_fields = ["created_at", "updated_at"]

    fieldsets = [
        (
            None,
            {
                "fields": ["name", "action_kind", "driver", "priority", "is_active", "description"],
            },
        ),
        (
            "Configuration",
            {
                "fields": ["config"],
                "classes": ["collapse"],
            },
        ),
        (
            "Timestamps",
            {
                "fields": ["created_at", "updated_at"],
                "classes": ["collapse"],
            },
        ),
    ]
