"""Celery tasks for pipeline orchestration.

These tasks wrap the PipelineOrchestrator for async execution via Celery.
The beat schedule in ``config/settings.py`` runs ``run_tick_task`` on an
interval; the tick endpoint enqueues it when ``PIPELINE_TICK_ASYNC`` is on.
"""

from __future__ import annotations

from typing import Any

from celery import shared_task

from apps.orchestration.models import PipelineTrigger


@shared_task(bind=True, name="apps.orchestration.tasks.run_tick_task")
def run_tick_task(self, trigger: str = PipelineTrigger.SCHEDULED) -> dict[str, Any]:
    """
    Celery task to run one pipeline tick.

    Args:
        trigger: What started the tick (scheduled for beat, api for the endpoint).

    Returns:
        TickResult as dict.
    """
    from apps.orchestration.orchestrator import PipelineOrchestrator

    orchestrator = PipelineOrchestrator()
    result = orchestrator.run_tick(trigger=trigger)
    return result.to_dict()
