"""
Simulation API.

POST /api/simulation/            run a capped simulation batch
GET  /api/simulation/            limits and accepted values
GET  /api/simulation/<run_id>/   run detail
DELETE /api/simulation/<run_id>/ remove the run's raw events
"""

import json
import logging

from django.conf import settings
from django.db import DatabaseError
from django.http import JsonResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from apps.simulation.generator import (
    DEFAULT_ERROR_TYPES,
    DEFAULT_EVENT_COUNT,
    DEFAULT_MERCHANT_COUNT,
    DEFAULT_RISK_PROFILES,
    ERROR_TYPES,
    RISK_PROFILES,
)
from apps.simulation.models import SimulationRun
from apps.simulation.services import SimulationConfigError, SimulationRequest, SimulationRunner

logger = logging.getLogger(__name__)


@method_decorator(csrf_exempt, name="dispatch")
class SimulateView(View):
    def post(self, request):
        try:
            body = json.loads(request.body) if request.body else {}
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Invalid JSON simulate body: {e}")
            return JsonResponse({"status": "error", "message": "Invalid JSON body"}, status=400)

        try:
            sim_request = SimulationRequest.from_dict(body)
        except SimulationConfigError as e:
            return JsonResponse({"status": "error", "message": str(e)}, status=400)

        try:
            result = SimulationRunner().run(sim_request)
        except DatabaseError as e:
            return JsonResponse(
                {"success": False, "status": "error", "message": f"Event store error: {e}"},
                status=500,
            )
        return JsonResponse(result.to_dict())

    def get(self, request):
        return JsonResponse(
            {
                "limits": {
                    "maxEvents": getattr(settings, "SIMULATION_MAX_EVENTS", 50),
                    "maxMerchants": getattr(settings, "SIMULATION_MAX_MERCHANTS", 10),
                },
                "errorTypes": list(ERROR_TYPES),
                "riskProfiles": list(RISK_PROFILES),
                "defaults": {
                    "errorTypes": DEFAULT_ERROR_TYPES,
                    "riskProfiles": DEFAULT_RISK_PROFILES,
                    "eventCount": DEFAULT_EVENT_COUNT,
                    "merchantCount": DEFAULT_MERCHANT_COUNT,
                    "autoTriggerAgent": True,
                },
            }
        )


@method_decorator(csrf_exempt, name="dispatch")
class SimulationRunView(View):
    def get(self, request, run_id):
        try:
            run = SimulationRun.objects.get(run_id=run_id)
        except SimulationRun.DoesNotExist:
            return JsonResponse(
                {"status": "error", "message": f"Simulation run {run_id} not found"}, status=404
            )
        return JsonResponse(
            {
                "runId": run.run_id,
                "status": run.status,
                "config": run.config,
                "eventsInjected": run.events_injected,
                "merchantsAffected": run.merchants_affected,
                "eventsRemaining": run.events.count(),
                "startedAt": run.started_at.isoformat() if run.started_at else None,
                "completedAt": run.completed_at.isoformat() if run.completed_at else None,
            }
        )

    def delete(self, request, run_id):
        try:
            deleted = SimulationRunner().cleanup(run_id)
        except SimulationRun.DoesNotExist:
            return JsonResponse(
                {"status": "error", "message": f"Simulation run {run_id} not found"}, status=404
            )
        return JsonResponse({"status": "success", "runId": run_id, "eventsDeleted": deleted})
