"""
Deterministic risk scoring.

The score only depends on persisted signals: event volume, merchant breadth,
the best hypothesis confidence (0 when reasoning was unavailable), whether the
failure touches the payment path, and the merchant tier.
"""

import logging
from typing import Any, Iterable

from django.conf import settings

from apps.audit.services import AuditLogger
from apps.decisions.models import RiskAssessment, Severity
from apps.events.models import Observation

logger = logging.getLogger(__name__)

SCORE_MIN = 0.0
SCORE_MAX = 10.0
EVIDENCE_SAMPLE_SIZE = 5

# (lower bound, severity), checked top-down.
SEVERITY_THRESHOLDS = (
    (9.0, Severity.P1),
    (7.0, Severity.P2),
    (5.0, Severity.P3),
)

DEFAULT_WEIGHTS: dict[str, Any] = {
    "base": 1.0,
    "volume_per_event": 0.6,
    "volume_cap": 3.0,
    "breadth_per_merchant": 0.5,
    "breadth_cap": 2.0,
    "confidence": 2.0,
    "payment_impact": 4.0,
    "tier": {
        "enterprise": 1.2,
        "mid-market": 0.6,
        "smb": 0.2,
        "startup": 0.0,
        "unknown": 0.0,
    },
}

PAYMENT_KEYWORDS = ("checkout", "payment", "charge")


def severity_of(score: float) -> str:
    """Map a 0-10 score onto p1..p4. Total and monotonic."""
    for lower_bound, severity in SEVERITY_THRESHOLDS:
        if score >= lower_bound:
            return severity
    return Severity.P4


def get_weights(overrides: dict[str, Any] | None = None) -> dict[str, Any]:
    """Default weights merged with ``RISK_WEIGHTS`` and explicit overrides."""
    weights = {**DEFAULT_WEIGHTS, "tier": dict(DEFAULT_WEIGHTS["tier"])}
    for source in (getattr(settings, "RISK_WEIGHTS", None) or {}, overrides or {}):
        for key, value in source.items():
            if key == "tier" and isinstance(value, dict):
                weights["tier"].update(value)
            else:
                weights[key] = value
    return weights


def is_payment_related(*texts: str) -> bool:
    haystack = " ".join(t for t in texts if t).lower()
    return any(keyword in haystack for keyword in PAYMENT_KEYWORDS)


def compute_score(
    event_count: int,
    merchant_count: int,
    max_confidence: float = 0.0,
    payment_impact: bool = False,
    merchant_tier: str = "unknown",
    weights: dict[str, Any] | None = None,
) -> tuple[float, dict[str, float]]:
    """
    Return ``(score, factors)``.

    The score is clamped to [0, 10] and rounded to two decimals; ``factors``
    is the unclamped per-signal breakdown.
    """
    w = weights or get_weights()
    factors = {
        "base": float(w["base"]),
        "volume": min(float(w["volume_cap"]), float(w["volume_per_event"]) * event_count),
        "breadth": min(
            float(w["breadth_cap"]),
            float(w["breadth_per_merchant"]) * max(0, merchant_count - 1),
        ),
        "confidence": float(w["confidence"]) * max(0.0, min(1.0, max_confidence)),
        "payment_impact": float(w["payment_impact"]) if payment_impact else 0.0,
        "tier": float(w["tier"].get(merchant_tier or "unknown", 0.0)),
    }
    raw = sum(factors.values())
    score = round(max(SCORE_MIN, min(SCORE_MAX, raw)), 2)
    return score, {k: round(v, 4) for k, v in factors.items()}


class RiskAssessor:
    """Scores observations and records an append-only RiskAssessment."""

    def __init__(self, weights: dict[str, Any] | None = None):
        self.weights = get_weights(weights)

    def assess(
        self,
        observation: Observation,
        hypotheses: Iterable | None = None,
        pipeline_run_id: str = "",
    ) -> RiskAssessment:
        hypotheses = list(hypotheses or [])
        merchants = observation.affected_merchants()
        max_confidence = max((h.confidence for h in hypotheses), default=0.0)
        payment = is_payment_related(
            observation.error_code, observation.endpoint, observation.summary
        )

        score, factors = compute_score(
            event_count=observation.event_count,
            merchant_count=len(merchants),
            max_confidence=max_confidence,
            payment_impact=payment,
            merchant_tier=observation.merchant_tier,
            weights=self.weights,
        )
        severity = severity_of(score)
        evidence = list(
            observation.events.order_by("-created_at", "-id").values_list("id", flat=True)[
                :EVIDENCE_SAMPLE_SIZE
            ]
        )

        assessment = RiskAssessment.objects.create(
            observation=observation,
            pipeline_run_id=pipeline_run_id,
            score=score,
            severity=severity,
            affected_merchants=merchants,
            evidence=evidence,
            factors=factors,
            event_count=observation.event_count,
            max_confidence=max_confidence,
            hypotheses_available=bool(hypotheses),
        )
        AuditLogger.record(
            assessment,
            "assessed",
            detail={"observation_id": observation.pk, "score": score, "severity": severity},
        )
        logger.info(
            f"Observation {observation.pk} scored {score} ({severity}) "
            f"from {observation.event_count} events, {len(merchants)} merchants"
        )
        return assessment
