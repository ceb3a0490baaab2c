"""
Ingest endpoint for raw operational events.
"""

import json
import logging

from django.db import DatabaseError
from django.http import JsonResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from apps.events.models import PUBLIC_SOURCES, EventSource
from apps.events.services import EventIngestor, IngestValidationError

logger = logging.getLogger(__name__)


@method_decorator(csrf_exempt, name="dispatch")
class IngestView(View):
    """
    POST /api/events/ingest/

    Body: {"source": "ticket|log|webhook|migration_state", "payload": {...}}
    """

    def post(self, request):
        try:
            body = json.loads(request.body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Invalid JSON ingest body: {e}")
            return JsonResponse({"status": "error", "message": "Invalid JSON body"}, status=400)

        if not isinstance(body, dict):
            return JsonResponse(
                {"status": "error", "message": "Request body must be a JSON object"}, status=400
            )

        source = body.get("source")
        if source == EventSource.SIMULATION:
            return JsonResponse(
                {"status": "error", "message": "Simulation events are ingested by the simulation endpoint"},
                status=400,
            )

        try:
            raw_event = EventIngestor().ingest(source, body.get("payload"))
        except IngestValidationError as e:
            return JsonResponse({"status": "error", "message": str(e)}, status=400)
        except DatabaseError as e:
            logger.exception("Event store unavailable during ingest")
            return JsonResponse(
                {"status": "error", "message": f"Event store error: {e}"}, status=500
            )

        return JsonResponse(
            {"status": "success", "id": raw_event.pk, "processed": raw_event.processed},
            status=201,
        )

    def get(self, request):
        """Health check endpoint."""
        return JsonResponse(
            {
                "status": "ok",
                "message": "Ingest endpoint is ready",
                "sources": list(PUBLIC_SOURCES),
            }
        )
