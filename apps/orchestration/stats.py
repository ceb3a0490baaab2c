"""
Live pipeline statistics.

Every counter is a query over persisted rows; nothing is cached between
calls.
"""

from __future__ import annotations

from typing import Any

from django.utils import timezone

from apps.decisions.models import ActionKind, ActionProposal, ActionProposalStatus, Decision
from apps.events.models import Observation, RawEvent
from apps.orchestration.models import Learning

TICKET_KINDS = (ActionKind.CREATE_TICKET, ActionKind.REQUEST_DOC_UPDATE)
EMAIL_KINDS = (ActionKind.DRAFT_RESPONSE,)


class StatsService:
    """Aggregates counts across every pipeline stage."""

    def collect(self, run_id: str | None = None) -> dict[str, Any]:
        """
        Return the current counters.

        ``run_id`` narrows ``eventsIngested`` and ``learningsCount`` to one
        simulation run. The remaining counters are global.
        """
        events = RawEvent.objects.all()
        learnings = Learning.objects.all()
        if run_id:
            events = events.filter(simulation_run__run_id=run_id)
            learnings = learnings.filter(simulation_run__run_id=run_id)

        proposals = ActionProposal.objects.all()
        return {
            "eventsIngested": events.count(),
            "observations": Observation.objects.count(),
            "decisions": Decision.objects.count(),
            "learningsCount": learnings.count(),
            "ticketsDrafted": proposals.filter(action_type__in=TICKET_KINDS).count(),
            "emailsDrafted": proposals.filter(action_type__in=EMAIL_KINDS).count(),
            "pendingApprovals": proposals.filter(
                status=ActionProposalStatus.PENDING_APPROVAL
            ).count(),
            "runId": run_id,
            "timestamp": timezone.now().isoformat(),
        }
