"""
Views for the orchestration app.

Provides HTTP endpoints for triggering ticks, inspecting tick runs and
reading live pipeline stats.
"""

import logging
from typing import Any

from django.conf import settings
from django.db import DatabaseError
from django.http import JsonResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from apps.orchestration.models import PipelineRun, PipelineTrigger
from apps.orchestration.orchestrator import PipelineOrchestrator
from apps.orchestration.stats import StatsService
from apps.orchestration.tasks import run_tick_task

logger = logging.getLogger(__name__)


def _iso(value):
    return value.isoformat() if value else None


class JSONResponseMixin:
    """Mixin for JSON responses."""

    def json_response(self, data: Any, status: int = 200) -> JsonResponse:
        return JsonResponse(data, status=status)

    def error_response(self, message: str, status: int = 400) -> JsonResponse:
        return JsonResponse({"status": "error", "message": message}, status=status)


@method_decorator(csrf_exempt, name="dispatch")
class TickView(JSONResponseMixin, View):
    """
    POST /api/pipeline/tick/

    Runs one tick synchronously and returns its result, or enqueues it on
    Celery (202) when ``PIPELINE_TICK_ASYNC`` is enabled.
    """

    def post(self, request):
        if getattr(settings, "PIPELINE_TICK_ASYNC", False):
            task_result = run_tick_task.delay(trigger=PipelineTrigger.API)
            return self.json_response(
                {
                    "status": "queued",
                    "task_id": task_result.id,
                    "message": "Tick queued for execution",
                },
                status=202,
            )

        try:
            result = PipelineOrchestrator().run_tick(trigger=PipelineTrigger.API)
        except DatabaseError as e:
            logger.exception("Event store unavailable during tick")
            return self.error_response(f"Event store error: {e}", status=500)

        return self.json_response(result.to_dict())


@method_decorator(csrf_exempt, name="dispatch")
class TickRunView(JSONResponseMixin, View):
    """
    GET /api/pipeline/runs/<run_id>/

    Status, counters, stage executions and learnings of one tick.
    """

    def get(self, request, run_id: str):
        try:
            pipeline_run = PipelineRun.objects.get(run_id=run_id)
        except PipelineRun.DoesNotExist:
            return self.error_response(f"Tick run not found: {run_id}", status=404)

        stage_executions = [
            {
                "stage": se.stage,
                "status": se.status,
                "observation_id": se.observation_id,
                "idempotency_key": se.idempotency_key,
                "duration_ms": se.duration_ms,
                "error_type": se.error_type,
                "error_message": se.error_message,
                "output_snapshot": se.output_snapshot,
            }
            for se in pipeline_run.stage_executions.all()
        ]
        learnings = [
            {
                "id": learning.pk,
                "type": learning.learning_type,
                "title": learning.title,
                "description": learning.description,
                "confidence": learning.confidence,
                "observation_id": learning.observation_id,
            }
            for learning in pipeline_run.learnings.all()
        ]

        return self.json_response(
            {
                "run_id": pipeline_run.run_id,
                "trace_id": pipeline_run.trace_id,
                "trigger": pipeline_run.trigger,
                "status": pipeline_run.status,
                "current_stage": pipeline_run.current_stage,
                "counters": {
                    "events_claimed": pipeline_run.events_claimed,
                    "events_reclaimed": pipeline_run.events_reclaimed,
                    "events_folded": pipeline_run.events_folded,
                    "observations_processed": pipeline_run.observations_processed,
                    "observations_failed": pipeline_run.observations_failed,
                    "decisions_created": pipeline_run.decisions_created,
                    "actions_dispatched": pipeline_run.actions_dispatched,
                    "approvals_requested": pipeline_run.approvals_requested,
                },
                "created_at": _iso(pipeline_run.created_at),
                "started_at": _iso(pipeline_run.started_at),
                "completed_at": _iso(pipeline_run.completed_at),
                "total_duration_ms": pipeline_run.total_duration_ms,
                "last_error": (
                    {
                        "type": pipeline_run.last_error_type,
                        "message": pipeline_run.last_error_message,
                    }
                    if pipeline_run.last_error_type
                    else None
                ),
                "stage_executions": stage_executions,
                "learnings": learnings,
            }
        )


class StatsView(JSONResponseMixin, View):
    """
    GET /api/pipeline/stats/?run_id=<simulation run id>

    Live counters over persisted state.
    """

    def get(self, request):
        run_id = request.GET.get("run_id") or None
        try:
            stats = StatsService().collect(run_id=run_id)
        except DatabaseError as e:
            logger.exception("Event store unavailable while collecting stats")
            return self.error_response(f"Event store error: {e}", status=500)
        return self.json_response(stats)
