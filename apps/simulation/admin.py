"""Admin configuration for simulation runs."""

from django.contrib import admin
from django_object_actions import DjangoObjectActions
from django_object_actions import action as object_action

from apps.simulation.models import SimulationRun, SimulationRunStatus
from apps.simulation.services import SimulationRunner
from config.admin import prettify_json


@admin.register(SimulationRun)
class SimulationRunAdmin(DjangoObjectActions, admin.ModelAdmin):
    list_display = [
        "run_id",
        "status",
        "events_injected",
        "merchants_affected",
        "started_at",
        "completed_at",
    ]
    list_filter = ["status"]
    search_fields = ["run_id"]
    readonly_fields = [
        "run_id",
        "pretty_config",
        "status",
        "events_injected",
        "merchants_affected",
        "error_message",
        "created_at",
        "started_at",
        "completed_at",
    ]
    exclude = ["config"]
    change_actions = ["cleanup_events"]

    def has_add_permission(self, request):
        return False

    @admin.display(description="Config")
    def pretty_config(self, obj):
        return prettify_json(obj.config)

    @object_action(label="Clean Up Events", description="Delete this run's raw events")
    def cleanup_events(self, request, obj):
        if obj.status == SimulationRunStatus.CLEANED:
            self.message_user(request, f"Run '{obj.run_id}' is already cleaned up.", level="warning")
            return
        deleted = SimulationRunner().cleanup(obj.run_id)
        self.message_user(request, f"Deleted {deleted} event(s) from '{obj.run_id}'.")
