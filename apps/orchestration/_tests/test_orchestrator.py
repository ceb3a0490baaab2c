"""Tests for PipelineOrchestrator."""

from unittest.mock import patch

import pytest
from django.db import DatabaseError
from django.test import TestCase, override_settings

from apps.audit.models import AuditLogEntry
from apps.decisions.models import (
    ActionKind,
    ActionProposalStatus,
    Decision,
    DecisionStatus,
    RiskAssessment,
    Severity,
)
from apps.decisions.risk import RiskAssessor
from apps.events.models import Observation, RawEvent
from apps.intelligence.models import Hypothesis
from apps.orchestration._tests.helpers import ingest_webhooks
from apps.orchestration.models import (
    Learning,
    LearningType,
    PipelineRun,
    PipelineStage,
    PipelineStatus,
    PipelineTrigger,
    StageExecution,
    StageStatus,
)
from apps.orchestration.orchestrator import PipelineOrchestrator


class FlakyAssessor(RiskAssessor):
    """Fails for one error code, scores everything else normally."""

    def __init__(self, fail_for: str):
        super().__init__()
        self.fail_for = fail_for

    def assess(self, observation, hypotheses=None, pipeline_run_id=""):
        if observation.error_code == self.fail_for:
            raise RuntimeError("scoring backend exploded")
        return super().assess(observation, hypotheses, pipeline_run_id)


@override_settings(REASONING_PROVIDER="")
class TickEndToEndTests(TestCase):
    """Reasoning unavailable: risk comes from volume and merchant signals only."""

    def test_webhook_burst_becomes_one_dispatched_incident(self):
        ingest_webhooks(5)

        result = PipelineOrchestrator().run_tick()

        assert result.status == PipelineStatus.COMPLETED
        assert result.events_claimed == 5
        assert result.events_folded == 5
        assert not RawEvent.objects.filter(processed=False).exists()

        observation = Observation.objects.get()
        assert observation.event_count == 5
        assert Hypothesis.objects.count() == 0

        assessment = RiskAssessment.objects.get()
        assert assessment.score == 9.2
        assert assessment.severity == Severity.P1
        assert assessment.hypotheses_available is False

        decision = Decision.objects.get()
        assert decision.action_kind == ActionKind.CREATE_INCIDENT
        assert decision.requires_approval is False
        assert decision.status == DecisionStatus.DISPATCHED
        assert decision.proposal.status == ActionProposalStatus.EXECUTED
        assert decision.proposal.reference_id.startswith("INC-")

        outcome = result.observations[0]
        assert outcome.hypotheses is None
        assert outcome.score == 9.2
        assert outcome.action_result["success"] is True
        assert outcome.action_result["reference_id"] == decision.proposal.reference_id

    def test_tick_counters_are_persisted(self):
        ingest_webhooks(5)

        result = PipelineOrchestrator().run_tick(trigger=PipelineTrigger.API)

        run = PipelineRun.objects.get(run_id=result.run_id)
        assert run.status == PipelineStatus.COMPLETED
        assert run.trigger == PipelineTrigger.API
        assert run.events_claimed == 5
        assert run.observations_processed == 1
        assert run.observations_failed == 0
        assert run.decisions_created == 1
        assert run.actions_dispatched == 1
        assert run.approvals_requested == 0
        assert run.completed_at is not None

    def test_every_stage_is_recorded(self):
        ingest_webhooks(5)

        result = PipelineOrchestrator().run_tick()

        executions = StageExecution.objects.filter(pipeline_run__run_id=result.run_id)
        assert [e.stage for e in executions.order_by("id")] == [
            PipelineStage.CLAIM,
            PipelineStage.FOLD,
            PipelineStage.HYPOTHESIZE,
            PipelineStage.ASSESS,
            PipelineStage.DECIDE,
            PipelineStage.ACT,
            PipelineStage.LEARN,
        ]
        assert set(executions.values_list("status", flat=True)) == {StageStatus.SUCCEEDED}
        hypothesize = executions.get(stage=PipelineStage.HYPOTHESIZE)
        assert hypothesize.output_snapshot == {"available": False, "count": 0}
        assert hypothesize.idempotency_key == (
            f"{result.run_id}:hypothesize:{hypothesize.observation_id}"
        )

    def test_learning_recorded_per_observation(self):
        ingest_webhooks(5)

        result = PipelineOrchestrator().run_tick()

        learning = Learning.objects.get()
        assert learning.pipeline_run.run_id == result.run_id
        assert learning.learning_type == LearningType.KNOWLEDGE_ENTRY
        assert learning.metadata["severity"] == Severity.P1
        assert learning.metadata["reference_id"].startswith("INC-")
        assert "No hypotheses were available." in learning.description

    def test_second_tick_finds_nothing_to_claim(self):
        ingest_webhooks(5)
        orchestrator = PipelineOrchestrator()
        orchestrator.run_tick()

        result = orchestrator.run_tick()

        assert result.events_claimed == 0
        assert result.observations == []
        assert Decision.objects.count() == 1

    def test_distinct_signatures_become_separate_observations(self):
        ingest_webhooks(2)
        ingest_webhooks(3, error_code="processing_error", endpoint="/v1/refunds")

        result = PipelineOrchestrator().run_tick()

        assert Observation.objects.count() == 2
        assert len(result.observations) == 2
        assert sorted(Observation.objects.values_list("event_count", flat=True)) == [2, 3]


@override_settings(REASONING_PROVIDER="")
class TickApprovalTests(TestCase):
    def test_p3_waits_for_approval(self):
        # 1 event on enterprise checkout scores 6.8 (p3).
        ingest_webhooks(1)

        result = PipelineOrchestrator().run_tick()

        decision = Decision.objects.get()
        assert decision.requires_approval is True
        assert decision.status == DecisionStatus.PROPOSED
        assert decision.action_kind in (ActionKind.CREATE_TICKET, ActionKind.REQUEST_DOC_UPDATE)
        assert decision.proposal.status == ActionProposalStatus.PENDING_APPROVAL
        assert result.approvals_requested == 1
        assert result.actions_dispatched == 0
        assert Learning.objects.get().learning_type == LearningType.CLASSIFICATION_MADE

    def test_new_events_defer_while_approval_pending(self):
        ingest_webhooks(1)
        orchestrator = PipelineOrchestrator()
        orchestrator.run_tick()

        ingest_webhooks(1)
        result = orchestrator.run_tick()

        outcome = result.observations[0]
        assert outcome.deferred is True
        assert outcome.decision_id is None
        assert Decision.objects.count() == 1
        assert RiskAssessment.objects.count() == 2
        act = StageExecution.objects.get(
            pipeline_run__run_id=result.run_id, stage=PipelineStage.ACT
        )
        assert act.status == StageStatus.SKIPPED
        assert Learning.objects.filter(learning_type=LearningType.TREND_IDENTIFIED).count() == 1


@override_settings(REASONING_PROVIDER="")
class TickFailureTests(TestCase):
    def test_one_observation_failure_does_not_abort_tick(self):
        ingest_webhooks(2, error_code="boom")
        ingest_webhooks(5)

        result = PipelineOrchestrator(assessor=FlakyAssessor("boom")).run_tick()

        assert result.status == PipelineStatus.COMPLETED
        assert result.observations_processed == 1
        assert result.observations_failed == 1
        assert Decision.objects.count() == 1

        failed = next(o for o in result.observations if o.error)
        assert failed.error.stage == PipelineStage.ASSESS
        assert failed.error.error_type == "RuntimeError"
        assert result.errors == [failed.error]

        execution = StageExecution.objects.get(
            pipeline_run__run_id=result.run_id,
            stage=PipelineStage.ASSESS,
            status=StageStatus.FAILED,
        )
        assert execution.observation_id == failed.observation_id
        assert "scoring backend exploded" in execution.error_message
        assert "RuntimeError" in execution.error_stack

        entry = AuditLogEntry.objects.for_entity("observation", failed.observation_id).get(
            transition="stage_failed"
        )
        assert entry.detail["stage"] == PipelineStage.ASSESS
        assert entry.detail["run_id"] == result.run_id

    def test_dispatch_failure_is_an_outcome_not_an_error(self):
        ingest_webhooks(5)

        with override_settings(ACTIONS_LOCAL_FALLBACK=False):
            result = PipelineOrchestrator().run_tick()

        outcome = result.observations[0]
        assert outcome.error is None
        assert outcome.action_result["success"] is False
        assert "No active action channel" in outcome.action_result["error"]
        assert Decision.objects.get().status == DecisionStatus.FAILED

    @override_settings(REASONING_PROVIDER="gemini")
    def test_unknown_reasoning_provider_does_not_block_decisions(self):
        ingest_webhooks(5)

        result = PipelineOrchestrator().run_tick()

        assert result.errors == []
        assert result.observations_processed == 1
        assert result.observations[0].hypotheses is None
        assert Decision.objects.get().action_kind == ActionKind.CREATE_INCIDENT
        hypothesize = StageExecution.objects.get(
            pipeline_run__run_id=result.run_id, stage=PipelineStage.HYPOTHESIZE
        )
        assert hypothesize.status == StageStatus.SUCCEEDED

    def test_claim_failure_marks_tick_failed(self):
        ingest_webhooks(1)

        with patch(
            "apps.events.services.ObservationBuilder.claim_pending",
            side_effect=DatabaseError("event store unavailable"),
        ):
            with pytest.raises(DatabaseError):
                PipelineOrchestrator().run_tick()

        run = PipelineRun.objects.get()
        assert run.status == PipelineStatus.FAILED
        assert run.last_error_type == "DatabaseError"
        assert "event store unavailable" in run.last_error_message
        claim = run.stage_executions.get(stage=PipelineStage.CLAIM)
        assert claim.status == StageStatus.FAILED
        assert not run.stage_executions.filter(stage=PipelineStage.FOLD).exists()


class TickSimulationTests(TestCase):
    @override_settings(
        REASONING_PROVIDER="", SIMULATION_MAX_EVENTS=50, SIMULATION_MAX_MERCHANTS=10
    )
    def test_capped_simulation_runs_one_tick(self):
        from apps.simulation.models import SimulationRun
        from apps.simulation.services import SimulationRequest, SimulationRunner

        result = SimulationRunner().run(
            SimulationRequest.from_dict(
                {"eventCount": 500, "merchantCount": 30, "autoTriggerAgent": True, "seed": 3}
            )
        )

        assert result.events_generated == 50
        assert result.merchants_affected == 10
        assert result.agent_loop["triggered"] is True
        assert result.agent_loop["processed"] >= 1

        run = PipelineRun.objects.get(run_id=result.agent_loop["run_id"])
        assert run.trigger == PipelineTrigger.SIMULATION
        assert run.simulation_run == SimulationRun.objects.get(run_id=result.run_id)
        assert run.events_claimed == 50
        assert Learning.objects.filter(simulation_run__run_id=result.run_id).count() == (
            run.observations_processed
        )

    @override_settings(REASONING_PROVIDER="")
    def test_simulated_documentation_gap_drafts_a_response(self):
        from apps.events.models import EventSource
        from apps.simulation.services import SimulationRequest, SimulationRunner

        result = SimulationRunner().run(
            SimulationRequest.from_dict(
                {
                    "errorTypes": ["documentation_gap"],
                    "riskProfiles": ["low"],
                    "eventCount": 1,
                    "merchantCount": 1,
                    "seed": 4,
                }
            )
        )

        event = RawEvent.objects.get(simulation_run__run_id=result.run_id)
        assert event.source == EventSource.TICKET
        decision = Decision.objects.get()
        assert decision.risk_assessment.severity == Severity.P4
        assert decision.action_kind == ActionKind.DRAFT_RESPONSE
        assert decision.requires_approval is False
        assert decision.status == DecisionStatus.DISPATCHED
        assert decision.proposal.reference_id.startswith("DRAFT-")
