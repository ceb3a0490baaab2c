"""Model builders shared by the decisions and actions tests."""

from itertools import count

from django.utils import timezone

from apps.decisions.models import (
    ActionKind,
    ActionProposal,
    ActionProposalStatus,
    Decision,
    RiskAssessment,
    Severity,
)
from apps.decisions.policy import build_action_context
from apps.events.models import Observation

_seq = count(1)


def make_observation(**kwargs) -> Observation:
    now = timezone.now()
    defaults = {
        "fingerprint": f"fp{next(_seq):014d}",
        "summary": "card_declined on /v1/checkout",
        "error_code": "card_declined",
        "endpoint": "/v1/checkout",
        "merchant_tier": "enterprise",
        "event_count": 5,
        "first_seen_at": now,
        "last_seen_at": now,
    }
    defaults.update(kwargs)
    return Observation.objects.create(**defaults)


def make_assessment(observation=None, score=9.2, severity=Severity.P1, **kwargs) -> RiskAssessment:
    return RiskAssessment.objects.create(
        observation=observation or make_observation(),
        score=score,
        severity=severity,
        **kwargs,
    )


def make_decision(
    action_kind=ActionKind.CREATE_INCIDENT,
    requires_approval=False,
    assessment=None,
    **kwargs,
) -> Decision:
    """Create a proposed decision with its proposal."""
    assessment = assessment or make_assessment()
    decision = Decision.objects.create(
        risk_assessment=assessment,
        action_kind=action_kind,
        requires_approval=requires_approval,
        **kwargs,
    )
    ActionProposal.objects.create(
        decision=decision,
        action_type=action_kind,
        status=(
            ActionProposalStatus.PENDING_APPROVAL
            if requires_approval
            else ActionProposalStatus.PENDING
        ),
        payload=build_action_context(assessment, []),
    )
    return decision
