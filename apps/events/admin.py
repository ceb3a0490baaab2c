"""Admin configuration for raw events and observations."""

from django.contrib import admin
from django.db import models as db_models
from django_json_widget.widgets import JSONEditorWidget

from apps.events.models import Observation, RawEvent


class RawEventInline(admin.TabularInline):
    model = RawEvent
    extra = 0
    fields = ["source", "merchant_id", "processed", "claimed_at", "created_at"]
    readonly_fields = fields
    can_delete = False
    show_change_link = True

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(RawEvent)
class RawEventAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "source",
        "merchant_id",
        "fingerprint",
        "processed",
        "observation",
        "simulation_run",
        "created_at",
    ]
    list_filter = ["source", "processed"]
    search_fields = ["fingerprint", "merchant_id"]
    readonly_fields = ["fingerprint", "processed", "claimed_at", "observation", "created_at"]
    formfield_overrides = {db_models.JSONField: {"widget": JSONEditorWidget}}
    raw_id_fields = ["simulation_run"]


@admin.register(Observation)
class ObservationAdmin(admin.ModelAdmin):
    list_display = [
        "fingerprint",
        "error_code",
        "endpoint",
        "merchant_tier",
        "event_count",
        "first_seen_at",
        "last_seen_at",
    ]
    list_filter = ["merchant_tier"]
    search_fields = ["fingerprint", "error_code", "endpoint", "summary"]
    readonly_fields = [
        "fingerprint",
        "event_count",
        "first_seen_at",
        "last_seen_at",
        "created_at",
        "updated_at",
    ]
    inlines = [RawEventInline]

    def has_add_permission(self, request):
        return False
