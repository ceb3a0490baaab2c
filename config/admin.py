"""Custom admin site for the signal pipeline ops console."""

import json
from datetime import timedelta

from django.contrib.admin import AdminSite
from django.db.models import Count
from django.utils import timezone
from django.utils.html import format_html


def prettify_json(value) -> str:
    """Render a JSON-serializable value as an indented <pre> block."""
    if value in (None, "", {}, []):
        return "-"
    text = json.dumps(value, indent=2, sort_keys=True, default=str)
    return format_html('<pre style="white-space: pre-wrap; margin: 0">{}</pre>', text)


class PipelineAdminSite(AdminSite):
    site_header = "Signal Pipeline"
    site_title = "Signal Pipeline"
    index_title = "Dashboard"
    index_template = "admin/dashboard.html"

    def index(self, request, extra_context=None):
        extra_context = extra_context or {}
        extra_context.update(self._get_dashboard_context())
        return super().index(request, extra_context=extra_context)

    def _get_dashboard_context(self):
        from apps.decisions.models import Decision, DecisionStatus
        from apps.orchestration.models import PipelineRun, PipelineStatus
        from apps.orchestration.stats import StatsService

        last_24h = timezone.now() - timedelta(hours=24)

        status_counts = dict(
            PipelineRun.objects.filter(created_at__gte=last_24h)
            .values_list("status")
            .annotate(count=Count("id"))
            .values_list("status", "count")
        )
        total_runs = sum(status_counts.values())
        completed = status_counts.get(PipelineStatus.COMPLETED, 0)

        awaiting_review = list(
            Decision.objects.filter(status=DecisionStatus.EXPIRED)
            .select_related("risk_assessment__observation")
            .order_by("-updated_at")[:5]
        )
        failed_runs = list(
            PipelineRun.objects.filter(status=PipelineStatus.FAILED)
            .order_by("-created_at")
            .only("run_id", "last_error_message", "created_at")[:5]
        )

        return {
            "pipeline_stats": StatsService().collect(),
            "tick_health": {
                "total": total_runs,
                "completed": completed,
                "failed": status_counts.get(PipelineStatus.FAILED, 0),
                "success_rate": round(completed / total_runs * 100, 1) if total_runs else 0,
            },
            "expired_decisions": awaiting_review,
            "failed_runs": failed_runs,
        }
