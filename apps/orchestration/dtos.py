"""
Data Transfer Objects (DTOs) for pipeline tick results.

The orchestrator returns plain dataclasses so callers (views, tasks, the
simulation harness) never need to reach into ORM rows.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class StageError:
    """Represents an error that occurred during stage execution."""

    stage: str
    error_type: str
    message: str
    observation_id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ObservationOutcome:
    """What one tick did with one observation."""

    observation_id: int
    fingerprint: str
    hypotheses: int | None = None
    risk_assessment_id: int | None = None
    score: float | None = None
    severity: str | None = None
    decision_id: int | None = None
    action_kind: str | None = None
    requires_approval: bool = False
    deferred: bool = False
    action_result: dict[str, Any] | None = None
    error: StageError | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def dispatched(self) -> bool:
        return self.action_result is not None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["error"] = self.error.to_dict() if self.error else None
        return data


@dataclass
class TickResult:
    """Final result of one pipeline tick."""

    run_id: str
    trace_id: str
    trigger: str
    status: str = "running"
    events_claimed: int = 0
    events_reclaimed: int = 0
    events_folded: int = 0
    observations: list[ObservationOutcome] = field(default_factory=list)
    errors: list[StageError] = field(default_factory=list)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    total_duration_ms: float = 0.0

    @property
    def observations_processed(self) -> int:
        return sum(1 for o in self.observations if o.succeeded)

    @property
    def observations_failed(self) -> int:
        return sum(1 for o in self.observations if not o.succeeded)

    @property
    def decisions_created(self) -> int:
        return sum(1 for o in self.observations if o.decision_id is not None)

    @property
    def actions_dispatched(self) -> int:
        return sum(1 for o in self.observations if o.dispatched)

    @property
    def approvals_requested(self) -> int:
        return sum(
            1
            for o in self.observations
            if o.decision_id is not None and o.requires_approval and not o.deferred
        )

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def counters(self) -> dict[str, int]:
        return {
            "events_claimed": self.events_claimed,
            "events_reclaimed": self.events_reclaimed,
            "events_folded": self.events_folded,
            "observations_processed": self.observations_processed,
            "observations_failed": self.observations_failed,
            "decisions_created": self.decisions_created,
            "actions_dispatched": self.actions_dispatched,
            "approvals_requested": self.approvals_requested,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "trace_id": self.trace_id,
            "trigger": self.trigger,
            "status": self.status,
            **self.counters(),
            "observations": [o.to_dict() for o in self.observations],
            "errors": [e.to_dict() for e in self.errors],
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "total_duration_ms": self.total_duration_ms,
        }
