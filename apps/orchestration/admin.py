"""Admin configuration for orchestration models."""

from django.contrib import admin
from django.utils.html import format_html
from django.utils.safestring import mark_safe
from django_object_actions import DjangoObjectActions
from django_object_actions import action as object_action

from apps.orchestration.models import (
    Learning,
    PipelineRun,
    PipelineStage,
    PipelineTrigger,
    StageExecution,
    StageStatus,
)


class StageExecutionInline(admin.TabularInline):
    """Inline display of stage executions within a tick."""

    model = StageExecution
    extra = 0
    readonly_fields = [
        "stage",
        "status",
        "observation",
        "idempotency_key",
        "started_at",
        "duration_ms",
        "error_type",
        "error_message",
    ]
    fields = readonly_fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


class LearningInline(admin.TabularInline):
    model = Learning
    extra = 0
    readonly_fields = ["learning_type", "title", "confidence", "observation", "created_at"]
    fields = readonly_fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(PipelineRun)
class PipelineRunAdmin(DjangoObjectActions, admin.ModelAdmin):
    """Admin for ticks. "Run tick" triggers one synchronously from the changelist."""

    list_display = [
        "run_id",
        "trigger",
        "status",
        "current_stage",
        "events_claimed",
        "observations_processed",
        "observations_failed",
        "decisions_created",
        "created_at",
        "total_duration_ms",
    ]
    list_filter = ["status", "trigger", "current_stage"]
    search_fields = ["run_id", "trace_id"]
    readonly_fields = [
        "run_id",
        "trace_id",
        "trigger",
        "status",
        "current_stage",
        "simulation_run",
        "events_claimed",
        "events_reclaimed",
        "events_folded",
        "observations_processed",
        "observations_failed",
        "decisions_created",
        "actions_dispatched",
        "approvals_requested",
        "last_error_type",
        "last_error_message",
        "created_at",
        "updated_at",
        "started_at",
        "completed_at",
        "total_duration_ms",
        "pipeline_flow",
    ]
    inlines = [StageExecutionInline, LearningInline]
    changelist_actions = ["run_tick"]

    fieldsets = [
        (
            "Identification",
            {"fields": ["pipeline_flow", "run_id", "trace_id", "trigger", "simulation_run"]},
        ),
        ("State", {"fields": ["status", "current_stage"]}),
        (
            "Counters",
            {
                "fields": [
                    "events_claimed",
                    "events_reclaimed",
                    "events_folded",
                    "observations_processed",
                    "observations_failed",
                    "decisions_created",
                    "actions_dispatched",
                    "approvals_requested",
                ]
            },
        ),
        (
            "Errors",
            {"fields": ["last_error_type", "last_error_message"], "classes": ["collapse"]},
        ),
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
        return super().get_queryset(request).prefetch_related("stage_executions")

    def has_add_permission(self, request):
        return False

    @object_action(label="Run tick", description="Run one pipeline tick now")
    def run_tick(self, request, queryset):
        from apps.orchestration.orchestrator import PipelineOrchestrator

        result = PipelineOrchestrator().run_tick(trigger=PipelineTrigger.MANUAL)
        self.message_user(
            request,
            f"Tick {result.run_id}: {result.events_claimed} event(s) claimed, "
            f"{result.observations_processed} observation(s) processed, "
            f"{result.observations_failed} failed.",
            level="warning" if result.observations_failed else "info",
        )

    @admin.display(description="Pipeline Flow")
    def pipeline_flow(self, obj):
        """Render a horizontal stage flow with status indicators.

        A stage shows failed if any of its executions failed. Only use in the
        detail view; it reads every stage execution of the tick.
        """
        executions: dict[str, list[str]] = {}
        for se in obj.stage_executions.all():
            executions.setdefault(se.stage, []).append(se.status)

        parts = []
        for stage_value, stage_label in PipelineStage.choices:
            statuses = executions.get(stage_value, [])
            if StageStatus.FAILED in statuses:
                color, icon = "#dc3545", "✗"
            elif StageStatus.RUNNING in statuses:
                color, icon = "#ffc107", "●"
            elif StageStatus.SUCCEEDED in statuses:
                color, icon = "#28a745", "✓"
            elif StageStatus.SKIPPED in statuses:
                color, icon = "#6c757d", "–"
            else:
                color, icon = "#ccc", "○"
            part = format_html(
                '<span style="display:inline-block;text-align:center;margin:0 4px;">'
                '<span style="color:{};font-size:18px;">{}</span><br>'
                '<span style="font-size:11px;">{} ({})</span></span>',
                color,
                icon,
                stage_label.upper(),
                len(statuses),
            )
            parts.append(part)

        # Static separator only; each part is already escaped by format_html.
        arrow = mark_safe('<span style="color:#999;margin:0 2px;">→</span>')
        stages_html = mark_safe(arrow.join(parts))

        return format_html(
            '<div style="display:flex;align-items:center;padding:8px 0;">{}</div>',
            stages_html,
        )


@admin.register(StageExecution)
class StageExecutionAdmin(admin.ModelAdmin):
    """Admin for StageExecution model."""

    list_display = [
        "pipeline_run",
        "stage",
        "status",
        "observation",
        "duration_ms",
        "started_at",
    ]
    list_filter = ["stage", "status"]
    search_fields = ["pipeline_run__run_id", "pipeline_run__trace_id", "idempotency_key"]
    readonly_fields = ["started_at", "completed_at", "duration_ms"]

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("pipeline_run", "observation")

    fieldsets = [
        (
            "Identification",
            {"fields": ["pipeline_run", "stage", "observation", "idempotency_key"]},
        ),
        ("State", {"fields": ["status", "output_snapshot"]}),
        (
            "Errors",
            {
                "fields": ["error_type", "error_message", "error_stack"],
                "classes": ["collapse"],
            },
        ),
        ("Timestamps", {"fields": ["started_at", "completed_at", "duration_ms"]}),
    ]


@admin.register(Learning)
class LearningAdmin(admin.ModelAdmin):
    list_display = ["title", "learning_type", "confidence", "pipeline_run", "created_at"]
    list_filter = ["learning_type", "created_at"]
    search_fields = ["title", "description", "pipeline_run__run_id"]
    readonly_fields = [
        "pipeline_run",
        "observation",
        "simulation_run",
        "learning_type",
        "title",
        "description",
        "confidence",
        "metadata",
        "created_at",
    ]

    def has_add_permission(self, request):
        return False
