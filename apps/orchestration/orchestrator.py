"""
Pipeline Orchestrator service.

Runs one pipeline tick: raw events -> observations -> hypotheses -> risk ->
decision -> approval gate or dispatch -> learning.

Key responsibilities:
1. Claiming: the RawEvent claim is the only synchronization point, so ticks
   may run concurrently with each other.
2. Ordering: within one observation every stage consumes the previous
   stage's persisted output.
3. Isolation: each observation runs inside its own error boundary; a failure
   is recorded on a StageExecution, audit-logged and counted, and the tick
   moves on to the next observation.
4. Observability: signals at every stage boundary, one PipelineRun per tick.
"""

from __future__ import annotations

import logging
import time
import traceback
import uuid
from typing import Any, Callable

from apps.audit.services import AuditLogger
from apps.decisions.policy import DecisionEngine
from apps.decisions.risk import RiskAssessor
from apps.events.models import Observation
from apps.events.services import ObservationBuilder
from apps.intelligence.services import HypothesisGenerator
from apps.orchestration.dtos import ObservationOutcome, StageError, TickResult
from apps.orchestration.models import (
    Learning,
    LearningType,
    PipelineRun,
    PipelineStage,
    PipelineStatus,
    PipelineTrigger,
    StageExecution,
)
from apps.orchestration.signals import (
    SignalTags,
    StageTimer,
    emit_tick_completed,
    emit_tick_started,
)

logger = logging.getLogger(__name__)


class StageExecutionError(Exception):
    """Exception raised when a stage fails execution."""

    def __init__(self, stage: str, cause: Exception):
        self.stage = stage
        self.cause = cause
        super().__init__(f"Stage {stage} failed: {type(cause).__name__}: {cause}")


class PipelineOrchestrator:
    """
    Main orchestrator service for pipeline ticks.

    Usage:
        orchestrator = PipelineOrchestrator()
        result = orchestrator.run_tick(trigger="manual")
    """

    def __init__(
        self,
        builder: ObservationBuilder | None = None,
        generator: HypothesisGenerator | None = None,
        assessor: RiskAssessor | None = None,
        engine: DecisionEngine | None = None,
    ):
        self.builder = builder or ObservationBuilder()
        self._generator = generator
        self.assessor = assessor or RiskAssessor()
        self.engine = engine or DecisionEngine()

    @property
    def generator(self) -> HypothesisGenerator:
        if self._generator is None:
            self._generator = HypothesisGenerator()
        return self._generator

    def run_tick(
        self,
        trigger: str = PipelineTrigger.MANUAL,
        simulation_run=None,
    ) -> TickResult:
        """
        Run one tick over whatever raw events are pending.

        Raises:
            DatabaseError: the event store failed during claim or fold. The
                tick is marked failed before the error propagates.
        """
        pipeline_run = PipelineRun.objects.create(
            trace_id=uuid.uuid4().hex,
            trigger=trigger,
            simulation_run=simulation_run,
        )
        result = TickResult(
            run_id=pipeline_run.run_id,
            trace_id=pipeline_run.trace_id,
            trigger=trigger,
        )
        tags = SignalTags(
            trace_id=pipeline_run.trace_id,
            run_id=pipeline_run.run_id,
            stage="tick",
            trigger=trigger,
        )

        start_time = time.perf_counter()
        emit_tick_started(tags)
        pipeline_run.mark_started()
        result.started_at = pipeline_run.started_at
        logger.info(
            f"Tick {pipeline_run.run_id} started (trigger={trigger})",
            extra={"trace_id": pipeline_run.trace_id, "run_id": pipeline_run.run_id},
        )

        try:
            claimed = self._run_stage(
                pipeline_run,
                PipelineStage.CLAIM,
                tags,
                lambda: self._claim(result),
                snapshot=lambda events: {"event_ids": [e.pk for e in events]},
            )
            fold = self._run_stage(
                pipeline_run,
                PipelineStage.FOLD,
                tags,
                lambda: self.builder.fold(claimed),
                snapshot=lambda f: {
                    "events_folded": f.events_folded,
                    "observations_created": f.observations_created,
                    "observations_merged": f.observations_merged,
                    "errors": f.errors,
                },
            )
        except StageExecutionError as e:
            result.errors.append(StageError(e.stage, type(e.cause).__name__, str(e.cause)))
            self._finish(pipeline_run, result, tags, start_time, failed=e)
            raise e.cause

        result.events_folded = fold.events_folded
        for message in fold.errors:
            result.errors.append(StageError(PipelineStage.FOLD, "FoldError", message))

        for observation in fold.observations:
            outcome = self._process_observation(pipeline_run, observation, tags)
            result.observations.append(outcome)
            if outcome.error is not None:
                result.errors.append(outcome.error)

        self._finish(pipeline_run, result, tags, start_time)
        return result

    def _claim(self, result: TickResult) -> list:
        reclaimed = self.builder.reclaim_stale()
        claimed = self.builder.claim_pending()
        result.events_reclaimed = len(reclaimed)
        result.events_claimed = len(claimed)
        return reclaimed + claimed

    def _process_observation(
        self, pipeline_run: PipelineRun, observation: Observation, tags: SignalTags
    ) -> ObservationOutcome:
        outcome = ObservationOutcome(
            observation_id=observation.pk, fingerprint=observation.fingerprint
        )
        try:
            hypotheses = self._run_stage(
                pipeline_run,
                PipelineStage.HYPOTHESIZE,
                tags,
                lambda: self.generator.generate(observation, pipeline_run_id=pipeline_run.run_id),
                observation=observation,
                snapshot=lambda hs: {
                    "available": hs is not None,
                    "count": len(hs) if hs is not None else 0,
                },
            )
            outcome.hypotheses = len(hypotheses) if hypotheses is not None else None
            hypotheses = hypotheses or []

            assessment = self._run_stage(
                pipeline_run,
                PipelineStage.ASSESS,
                tags,
                lambda: self.assessor.assess(
                    observation, hypotheses, pipeline_run_id=pipeline_run.run_id
                ),
                observation=observation,
                snapshot=lambda a: {"id": a.pk, "score": a.score, "severity": a.severity},
            )
            outcome.risk_assessment_id = assessment.pk
            outcome.score = assessment.score
            outcome.severity = assessment.severity

            decision = self._run_stage(
                pipeline_run,
                PipelineStage.DECIDE,
                tags,
                lambda: self.engine.decide(assessment, hypotheses),
                observation=observation,
                snapshot=lambda d: (
                    {"id": d.pk, "action_kind": d.action_kind, "requires_approval": d.requires_approval}
                    if d is not None
                    else {"deferred": True}
                ),
            )

            if decision is None:
                outcome.deferred = True
                self._skip_stage(
                    pipeline_run, PipelineStage.ACT, observation, "awaiting approval of an earlier decision"
                )
            else:
                outcome.decision_id = decision.pk
                outcome.action_kind = decision.action_kind
                outcome.requires_approval = decision.requires_approval
                action_result = self._run_stage(
                    pipeline_run,
                    PipelineStage.ACT,
                    tags,
                    lambda: self.engine.hand_off(decision),
                    observation=observation,
                    snapshot=lambda r: r.to_dict() if r is not None else {"awaiting_approval": True},
                )
                outcome.action_result = action_result.to_dict() if action_result else None

            self._run_stage(
                pipeline_run,
                PipelineStage.LEARN,
                tags,
                lambda: self._record_learning(pipeline_run, observation, outcome, hypotheses),
                observation=observation,
                snapshot=lambda learning: {"id": learning.pk, "type": learning.learning_type},
            )
        except StageExecutionError as e:
            outcome.error = StageError(
                stage=e.stage,
                error_type=type(e.cause).__name__,
                message=str(e.cause),
                observation_id=observation.pk,
            )
            logger.error(
                f"Tick {pipeline_run.run_id}: observation {observation.pk} failed at {e.stage}: "
                f"{e.cause}",
                exc_info=e.cause,
            )
            AuditLogger.record(
                observation,
                "stage_failed",
                detail={
                    "run_id": pipeline_run.run_id,
                    "stage": e.stage,
                    "error_type": type(e.cause).__name__,
                    "error": str(e.cause),
                },
            )
        return outcome

    def _run_stage(
        self,
        pipeline_run: PipelineRun,
        stage: str,
        tags: SignalTags,
        func: Callable[[], Any],
        observation: Observation | None = None,
        snapshot: Callable[[Any], dict] | None = None,
    ) -> Any:
        """Run ``func`` as one recorded, timed stage. Wraps failures in StageExecutionError."""
        key = f"{pipeline_run.run_id}:{stage}"
        if observation is not None:
            key = f"{key}:{observation.pk}"
        execution = StageExecution.objects.create(
            pipeline_run=pipeline_run,
            stage=stage,
            observation=observation,
            idempotency_key=key,
        )
        execution.mark_started()
        if pipeline_run.current_stage != stage:
            pipeline_run.advance_to(stage)

        try:
            with StageTimer(tags.for_stage(stage, observation)):
                output = func()
        except Exception as e:
            execution.mark_failed(
                error_type=type(e).__name__,
                error_message=str(e),
                error_stack=traceback.format_exc(),
            )
            raise StageExecutionError(stage, e) from e

        execution.mark_succeeded(output_snapshot=snapshot(output) if snapshot else None)
        return output

    def _skip_stage(
        self, pipeline_run: PipelineRun, stage: str, observation: Observation, reason: str
    ) -> None:
        execution = StageExecution.objects.create(
            pipeline_run=pipeline_run,
            stage=stage,
            observation=observation,
            idempotency_key=f"{pipeline_run.run_id}:{stage}:{observation.pk}",
        )
        execution.mark_skipped(reason)

    def _record_learning(
        self,
        pipeline_run: PipelineRun,
        observation: Observation,
        outcome: ObservationOutcome,
        hypotheses: list,
    ) -> Learning:
        best = max(hypotheses, key=lambda h: h.confidence, default=None)
        learning_type, title = describe_outcome(outcome)

        parts = [
            f"{observation.event_count} event(s) grouped under {observation.fingerprint} "
            f"({observation.error_code or 'unknown'} on {observation.endpoint or 'unknown'}).",
            f"Risk {outcome.score} ({outcome.severity}).",
            f"Most likely cause: {best.cause}." if best else "No hypotheses were available.",
        ]
        if outcome.deferred:
            parts.append("Decision deferred while an earlier one awaits approval.")
        elif outcome.action_result:
            parts.append(
                f"Action {outcome.action_kind}: "
                + (
                    f"reference {outcome.action_result.get('reference_id') or '-'}."
                    if outcome.action_result.get("success")
                    else f"failed ({outcome.action_result.get('error')})."
                )
            )
        elif outcome.requires_approval:
            parts.append(f"Action {outcome.action_kind} awaits human approval.")

        return Learning.objects.create(
            pipeline_run=pipeline_run,
            observation=observation,
            simulation_run=pipeline_run.simulation_run,
            learning_type=learning_type,
            title=title[:255],
            description=" ".join(parts),
            confidence=best.confidence if best else 0.0,
            metadata={
                "score": outcome.score,
                "severity": outcome.severity,
                "decision_id": outcome.decision_id,
                "action_kind": outcome.action_kind,
                "requires_approval": outcome.requires_approval,
                "deferred": outcome.deferred,
                "reference_id": (outcome.action_result or {}).get("reference_id"),
            },
        )

    def _finish(
        self,
        pipeline_run: PipelineRun,
        result: TickResult,
        tags: SignalTags,
        start_time: float,
        failed: StageExecutionError | None = None,
    ) -> None:
        duration_ms = (time.perf_counter() - start_time) * 1000
        counters = result.counters()

        if failed is None:
            pipeline_run.mark_completed(**counters)
            result.status = PipelineStatus.COMPLETED
            logger.info(
                f"Tick {pipeline_run.run_id} completed: {result.events_claimed} claimed, "
                f"{result.observations_processed} observation(s) processed, "
                f"{result.observations_failed} failed",
                extra={"trace_id": pipeline_run.trace_id, "run_id": pipeline_run.run_id},
            )
        else:
            pipeline_run.mark_failed(
                error_type=type(failed.cause).__name__, message=str(failed), **counters
            )
            result.status = PipelineStatus.FAILED
            logger.error(
                f"Tick {pipeline_run.run_id} failed: {failed}",
                extra={"trace_id": pipeline_run.trace_id, "run_id": pipeline_run.run_id},
            )

        result.completed_at = pipeline_run.completed_at
        result.total_duration_ms = duration_ms
        emit_tick_completed(tags, duration_ms, result.status, **counters)


def describe_outcome(outcome: ObservationOutcome) -> tuple[str, str]:
    """Map an observation outcome onto a learning type and title."""
    kind = (outcome.action_kind or "no_action").replace("_", " ")
    if outcome.deferred:
        return LearningType.TREND_IDENTIFIED, (
            f"[{outcome.severity}] Risk re-scored at {outcome.score} for {outcome.fingerprint}"
        )
    if outcome.requires_approval:
        return LearningType.CLASSIFICATION_MADE, (
            f"[{outcome.severity}] {kind} proposed for {outcome.fingerprint}"
        )
    if outcome.action_kind in (None, "no_action"):
        return LearningType.PATTERN_DETECTED, (
            f"[{outcome.severity}] Pattern noted for {outcome.fingerprint}"
        )
    return LearningType.KNOWLEDGE_ENTRY, f"[{outcome.severity}] {kind} for {outcome.fingerprint}"

