"""Admin configuration for intelligence app."""

from django.contrib import admin
from django.utils.html import format_html

from apps.intelligence.models import AnalysisRun, Hypothesis
from config.admin import prettify_json


class HypothesisInline(admin.TabularInline):
    model = Hypothesis
    extra = 0
    fields = ["cause", "confidence", "category", "assumptions"]
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(AnalysisRun)
class AnalysisRunAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "provider",
        "model_name",
        "status",
        "observation",
        "hypotheses_count",
        "dropped_count",
        "duration_ms",
        "created_at",
    ]
    list_filter = ["status", "provider", "created_at"]
    search_fields = ["pipeline_run_id", "observation__fingerprint", "explanation"]
    readonly_fields = [
        "observation",
        "pipeline_run_id",
        "pipeline_run_link",
        "provider",
        "model_name",
        "pretty_provider_config",
        "status",
        "input_summary",
        "hypotheses_count",
        "dropped_count",
        "explanation",
        "error_message",
        "created_at",
        "started_at",
        "completed_at",
        "duration_ms",
    ]
    exclude = ["provider_config"]
    date_hierarchy = "created_at"
    inlines = [HypothesisInline]

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("observation")

    @admin.display(description="Pipeline Run")
    def pipeline_run_link(self, obj):
        if obj.pipeline_run_id:
            return format_html(
                '<a href="/admin/orchestration/pipelinerun/?q={}">View tick ({})</a>',
                obj.pipeline_run_id,
                obj.pipeline_run_id[:12],
            )
        return "-"

    @admin.display(description="Provider Config")
    def pretty_provider_config(self, obj):
        return prettify_json(obj.provider_config)

    def has_add_permission(self, request):
        return False


@admin.register(Hypothesis)
class HypothesisAdmin(admin.ModelAdmin):
    list_display = ["id", "observation", "cause", "confidence", "category", "created_at"]
    list_filter = ["category"]
    search_fields = ["cause", "observation__fingerprint"]
    readonly_fields = [
        "observation",
        "analysis_run",
        "cause",
        "confidence",
        "category",
        "pretty_assumptions",
        "created_at",
    ]
    exclude = ["assumptions"]

    @admin.display(description="Assumptions")
    def pretty_assumptions(self, obj):
        return prettify_json(obj.assumptions)

    def has_add_permission(self, request):
        return False
