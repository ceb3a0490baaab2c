"""
Simulation harness service.

Generated events enter through ``EventIngestor`` exactly like production
events, tagged with their SimulationRun. Each error type is ingested under the
source that would report it in production (documentation gaps arrive as
tickets, checkout and delivery failures as webhooks).
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from django.db import DatabaseError

from apps.audit.services import AuditLogger
from apps.events.services import EventIngestor
from apps.simulation.generator import (
    DEFAULT_ERROR_TYPES,
    DEFAULT_EVENT_COUNT,
    DEFAULT_MERCHANT_COUNT,
    DEFAULT_RISK_PROFILES,
    ERROR_TYPES,
    RISK_PROFILES,
    clamp_counts,
    generate_batch,
)
from apps.simulation.models import SimulationRun

logger = logging.getLogger(__name__)


class SimulationConfigError(ValueError):
    """Raised for a malformed simulate request. No run is created."""


@dataclass
class SimulationRequest:
    error_types: list[str] = field(default_factory=lambda: list(DEFAULT_ERROR_TYPES))
    risk_profiles: list[str] = field(default_factory=lambda: list(DEFAULT_RISK_PROFILES))
    event_count: int = DEFAULT_EVENT_COUNT
    merchant_count: int = DEFAULT_MERCHANT_COUNT
    auto_trigger_agent: bool = True
    seed: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SimulationRequest":
        """Build from an API body (camelCase, snake_case accepted for the trigger flag)."""
        if not isinstance(data, dict):
            raise SimulationConfigError("Request body must be a JSON object")

        error_types = data.get("errorTypes") or list(DEFAULT_ERROR_TYPES)
        risk_profiles = data.get("riskProfiles") or list(DEFAULT_RISK_PROFILES)
        if not isinstance(error_types, list) or not isinstance(risk_profiles, list):
            raise SimulationConfigError("errorTypes and riskProfiles must be lists")

        unknown = [t for t in error_types if t not in ERROR_TYPES]
        if unknown:
            raise SimulationConfigError(
                f"Unknown error types: {unknown}. Expected any of: {', '.join(ERROR_TYPES)}"
            )
        unknown = [p for p in risk_profiles if p not in RISK_PROFILES]
        if unknown:
            raise SimulationConfigError(
                f"Unknown risk profiles: {unknown}. Expected any of: {', '.join(RISK_PROFILES)}"
            )

        trigger = data.get("autoTriggerAgent", data.get("auto_trigger_agent", True))
        try:
            return cls(
                error_types=error_types,
                risk_profiles=risk_profiles,
                event_count=int(data.get("eventCount") or DEFAULT_EVENT_COUNT),
                merchant_count=int(data.get("merchantCount") or DEFAULT_MERCHANT_COUNT),
                auto_trigger_agent=trigger is not False,
                seed=int(data["seed"]) if data.get("seed") is not None else None,
            )
        except (TypeError, ValueError) as e:
            raise SimulationConfigError(f"Counts and seed must be integers: {e}") from e


@dataclass
class SimulationResult:
    success: bool
    run_id: str
    events_generated: int
    merchants_affected: int
    error_types: list[str]
    risk_profiles: list[str]
    agent_loop: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "runId": self.run_id,
            "eventsGenerated": self.events_generated,
            "merchantsAffected": self.merchants_affected,
            "errorTypes": self.error_types,
            "riskProfiles": self.risk_profiles,
            "agentLoop": self.agent_loop,
        }


class SimulationRunner:
    """Generates, ingests and optionally processes one simulation batch."""

    def __init__(self, ingestor: EventIngestor | None = None):
        self.ingestor = ingestor or EventIngestor()

    def run(self, request: SimulationRequest, now: datetime | None = None) -> SimulationResult:
        """
        Execute one simulation run.

        Raises:
            DatabaseError: the event store failed; the run is marked failed.
        """
        event_count, merchant_count = clamp_counts(request.event_count, request.merchant_count)
        effective = {
            **asdict(request),
            "event_count": event_count,
            "merchant_count": merchant_count,
            "requested_event_count": request.event_count,
            "requested_merchant_count": request.merchant_count,
        }
        run = SimulationRun.objects.create(config=effective)
        run.mark_running()
        logger.info(
            f"Simulation {run.run_id}: {event_count} events, {merchant_count} merchants "
            f"(requested {request.event_count}/{request.merchant_count})"
        )

        events = generate_batch(
            request.error_types,
            request.risk_profiles,
            event_count,
            merchant_count,
            seed=request.seed,
            now=now,
        )
        try:
            for event in events:
                self.ingestor.ingest(event.source, event.to_payload(), simulation_run=run)
        except DatabaseError as e:
            logger.exception(f"Simulation {run.run_id} failed during ingest")
            run.mark_failed(str(e))
            raise

        merchants_affected = len({e.merchant.id for e in events})
        run.mark_completed(events_injected=len(events), merchants_affected=merchants_affected)
        AuditLogger.record(
            run,
            "simulation_completed",
            detail={"events": len(events), "merchants": merchants_affected},
        )

        agent_loop = {"triggered": False}
        if request.auto_trigger_agent:
            agent_loop = self._trigger_tick(run)

        return SimulationResult(
            success=True,
            run_id=run.run_id,
            events_generated=len(events),
            merchants_affected=merchants_affected,
            error_types=list(request.error_types),
            risk_profiles=list(request.risk_profiles),
            agent_loop=agent_loop,
        )

    def _trigger_tick(self, run: SimulationRun) -> dict[str, Any]:
        from apps.orchestration.orchestrator import PipelineOrchestrator

        try:
            tick = PipelineOrchestrator().run_tick(trigger="simulation", simulation_run=run)
        except Exception as e:
            logger.exception(f"Pipeline tick after simulation {run.run_id} failed")
            return {"triggered": False, "error": str(e)}
        logger.info(
            f"Simulation {run.run_id} triggered tick {tick.run_id}, "
            f"processed {tick.observations_processed} observations"
        )
        return {"triggered": True, "processed": tick.observations_processed, **tick.to_dict()}

    def cleanup(self, run_id: str) -> int:
        """
        Delete the RawEvents of one run. Returns the number deleted.

        Raises:
            SimulationRun.DoesNotExist: unknown run id.
        """
        run = SimulationRun.objects.get(run_id=run_id)
        deleted, _ = run.events.all().delete()
        run.mark_cleaned()
        AuditLogger.record(run, "simulation_cleaned", detail={"events_deleted": deleted})
        logger.info(f"Cleaned up simulation {run_id}: {deleted} events deleted")
        return deleted
