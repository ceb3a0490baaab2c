"""
Decision policy.

Maps a risk assessment onto an action kind and an approval requirement, then
hands the decision to the approval gate or straight to the dispatcher.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from django.conf import settings
from django.utils.module_loading import import_string

from apps.audit.services import AuditLogger
from apps.decisions.models import (
    ActionKind,
    ActionProposal,
    ActionProposalStatus,
    Decision,
    DecisionStatus,
    RiskAssessment,
    Severity,
)
from apps.events.models import EventSource

logger = logging.getLogger(__name__)

AUTO_DISPATCH_SCORE = 9.0

P3_ACTIONS = (ActionKind.CREATE_TICKET, ActionKind.REQUEST_DOC_UPDATE)


class PolicyError(Exception):
    """No policy rule matched. Indicates a programming error."""


@dataclass
class PolicyOutcome:
    action_kind: str
    requires_approval: bool
    reason: str


def classify_by_hypothesis_category(assessment: RiskAssessment, hypotheses: list) -> str:
    """
    Default p3 router: follow the category of the dominant hypothesis.

    Documentation gaps become doc update requests; everything else (including
    no hypotheses at all) is treated as a platform defect.
    """
    if not hypotheses:
        return ActionKind.CREATE_TICKET
    dominant = max(hypotheses, key=lambda h: h.confidence)
    if getattr(dominant, "category", "") == "documentation_gap":
        return ActionKind.REQUEST_DOC_UPDATE
    return ActionKind.CREATE_TICKET


def load_p3_classifier() -> Callable[[RiskAssessment, list], str]:
    path = getattr(
        settings,
        "DECISION_P3_CLASSIFIER",
        "apps.decisions.policy.classify_by_hypothesis_category",
    )
    return import_string(path)


def evaluate_policy(
    assessment: RiskAssessment,
    hypotheses: list,
    has_ticket_source: bool,
    classifier: Callable[[RiskAssessment, list], str],
) -> PolicyOutcome:
    """
    Pure policy table.

    Raises:
        PolicyError: unknown severity or a classifier returning a kind that
            is not a p3 action.
    """
    severity = assessment.severity
    if severity in (Severity.P1, Severity.P2):
        auto = assessment.score >= AUTO_DISPATCH_SCORE
        return PolicyOutcome(
            action_kind=ActionKind.CREATE_INCIDENT,
            requires_approval=not auto,
            reason=f"{severity} score {assessment.score}: "
            + ("auto-dispatch incident" if auto else "incident needs approval"),
        )
    if severity == Severity.P3:
        kind = classifier(assessment, hypotheses)
        if kind not in P3_ACTIONS:
            raise PolicyError(f"p3 classifier returned unsupported action kind {kind!r}")
        return PolicyOutcome(
            action_kind=kind,
            requires_approval=True,
            reason=f"p3 score {assessment.score}: routed to {kind}",
        )
    if severity == Severity.P4:
        if has_ticket_source:
            return PolicyOutcome(
                action_kind=ActionKind.DRAFT_RESPONSE,
                requires_approval=False,
                reason="p4 with merchant ticket: draft response",
            )
        return PolicyOutcome(
            action_kind=ActionKind.NO_ACTION,
            requires_approval=False,
            reason="p4: no action",
        )
    raise PolicyError(f"No policy rule for severity {severity!r}")


def build_action_context(assessment: RiskAssessment, hypotheses: list) -> dict[str, Any]:
    """Plain-data context captured on the proposal for rendering and dispatch."""
    observation = assessment.observation
    return {
        "observation_id": observation.pk,
        "fingerprint": observation.fingerprint,
        "summary": observation.summary,
        "error_code": observation.error_code,
        "endpoint": observation.endpoint,
        "merchant_tier": observation.merchant_tier,
        "event_count": observation.event_count,
        "first_seen_at": observation.first_seen_at.isoformat(),
        "last_seen_at": observation.last_seen_at.isoformat(),
        "risk_assessment_id": assessment.pk,
        "score": assessment.score,
        "severity": assessment.severity,
        "affected_merchants": list(assessment.affected_merchants),
        "evidence": list(assessment.evidence),
        "hypotheses": [
            {
                "cause": h.cause,
                "confidence": h.confidence,
                "assumptions": list(h.assumptions or []),
                "category": getattr(h, "category", "unknown"),
            }
            for h in sorted(hypotheses, key=lambda h: h.confidence, reverse=True)
        ],
    }


class DecisionEngine:
    """Creates decisions from risk assessments and routes them."""

    def __init__(
        self,
        classifier: Callable[[RiskAssessment, list], str] | None = None,
        dispatcher=None,
        gate=None,
    ):
        self.classifier = classifier or load_p3_classifier()
        self._dispatcher = dispatcher
        self._gate = gate

    @property
    def dispatcher(self):
        if self._dispatcher is None:
            from apps.actions.services import ActionDispatcher

            self._dispatcher = ActionDispatcher()
        return self._dispatcher

    @property
    def gate(self):
        if self._gate is None:
            from apps.decisions.approvals import ApprovalGate

            self._gate = ApprovalGate(dispatcher=self.dispatcher)
        return self._gate

    def decide(
        self, assessment: RiskAssessment, hypotheses: Iterable | None = None
    ) -> Decision | None:
        """
        Create a ``proposed`` Decision and its ActionProposal.

        Returns None (and audits the deferral) while the observation already
        has a decision awaiting approval.
        """
        hypotheses = list(hypotheses or [])
        observation = assessment.observation

        pending = (
            Decision.objects.filter(
                risk_assessment__observation=observation,
                status=DecisionStatus.PROPOSED,
                requires_approval=True,
            )
            .order_by("created_at")
            .first()
        )
        if pending is not None:
            AuditLogger.record(
                observation,
                "decision_deferred",
                detail={
                    "pending_decision_id": pending.pk,
                    "risk_assessment_id": assessment.pk,
                    "score": assessment.score,
                },
            )
            logger.info(
                f"Observation {observation.pk} already has decision {pending.pk} "
                "awaiting approval; not creating another"
            )
            return None

        outcome = evaluate_policy(
            assessment,
            hypotheses,
            has_ticket_source=observation.has_source(EventSource.TICKET),
            classifier=self.classifier,
        )
        decision = Decision.objects.create(
            risk_assessment=assessment,
            action_kind=outcome.action_kind,
            requires_approval=outcome.requires_approval,
            status=DecisionStatus.PROPOSED,
            reason=outcome.reason,
        )
        ActionProposal.objects.create(
            decision=decision,
            action_type=outcome.action_kind,
            status=(
                ActionProposalStatus.PENDING_APPROVAL
                if outcome.requires_approval
                else ActionProposalStatus.PENDING
            ),
            payload=build_action_context(assessment, hypotheses),
        )
        AuditLogger.record(
            decision,
            DecisionStatus.PROPOSED,
            detail={
                "risk_assessment_id": assessment.pk,
                "action_kind": outcome.action_kind,
                "requires_approval": outcome.requires_approval,
                "reason": outcome.reason,
            },
        )
        logger.info(
            f"Decision {decision.pk}: {outcome.action_kind} "
            f"(approval {'required' if outcome.requires_approval else 'not required'})"
        )
        return decision

    def hand_off(self, decision: Decision):
        """
        Route a fresh decision.

        Returns the ActionResult when dispatched immediately, None when the
        decision now waits on the approval gate.
        """
        if decision.requires_approval:
            self.gate.request(decision)
            return None
        return self.dispatcher.dispatch(decision)
