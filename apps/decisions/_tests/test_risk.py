"""Tests for risk scoring."""

from types import SimpleNamespace

import pytest
from django.test import TestCase, override_settings
from django.utils import timezone

from apps.audit.models import AuditLogEntry
from apps.decisions.models import Severity
from apps.decisions.risk import (
    RiskAssessor,
    compute_score,
    get_weights,
    is_payment_related,
    severity_of,
)
from apps.events.models import EventSource, Observation, RawEvent


@pytest.mark.parametrize(
    "score,expected",
    [
        (0.0, Severity.P4),
        (4.9, Severity.P4),
        (5.0, Severity.P3),
        (6.9, Severity.P3),
        (7.0, Severity.P2),
        (8.9, Severity.P2),
        (9.0, Severity.P1),
        (10.0, Severity.P1),
    ],
)
def test_severity_thresholds(score, expected):
    assert severity_of(score) == expected


def test_severity_is_monotonic():
    order = [Severity.P4, Severity.P3, Severity.P2, Severity.P1]
    ranks = [order.index(severity_of(s / 10)) for s in range(0, 101)]
    assert ranks == sorted(ranks)


def test_payment_keywords():
    assert is_payment_related("card_declined", "/v1/checkout")
    assert is_payment_related("PAYMENT_FAILED")
    assert not is_payment_related("rate_limited", "/v1/customers", "")


def test_single_merchant_enterprise_checkout_scores_9_2():
    score, factors = compute_score(
        event_count=5, merchant_count=1, payment_impact=True, merchant_tier="enterprise"
    )
    assert score == 9.2
    assert factors == {
        "base": 1.0,
        "volume": 3.0,
        "breadth": 0.0,
        "confidence": 0.0,
        "payment_impact": 4.0,
        "tier": 1.2,
    }


def test_score_is_clamped():
    score, _ = compute_score(
        event_count=100,
        merchant_count=20,
        max_confidence=1.0,
        payment_impact=True,
        merchant_tier="enterprise",
    )
    assert score == 10.0


def test_confidence_contributes():
    low, _ = compute_score(event_count=1, merchant_count=1, max_confidence=0.0)
    high, _ = compute_score(event_count=1, merchant_count=1, max_confidence=0.75)
    assert round(high - low, 2) == 1.5


@override_settings(RISK_WEIGHTS={"payment_impact": 2.0, "tier": {"smb": 1.0}})
def test_weights_from_settings_merge_with_defaults():
    weights = get_weights({"base": 0.5})
    assert weights["payment_impact"] == 2.0
    assert weights["base"] == 0.5
    assert weights["tier"]["smb"] == 1.0
    assert weights["tier"]["enterprise"] == 1.2


class RiskAssessorTests(TestCase):
    def setUp(self):
        now = timezone.now()
        self.observation = Observation.objects.create(
            fingerprint="f" * 16,
            summary="card_declined on /v1/checkout",
            error_code="card_declined",
            endpoint="/v1/checkout",
            merchant_tier="enterprise",
            event_count=5,
            first_seen_at=now,
            last_seen_at=now,
        )
        self.events = [
            RawEvent.objects.create(
                source=EventSource.WEBHOOK,
                payload={"n": i},
                merchant_id="m1",
                processed=True,
                observation=self.observation,
            )
            for i in range(6)
        ]

    def test_assess_without_hypotheses(self):
        assessment = RiskAssessor().assess(self.observation, None, pipeline_run_id="run-1")

        assert assessment.score == 9.2
        assert assessment.severity == Severity.P1
        assert assessment.affected_merchants == ["m1"]
        assert assessment.hypotheses_available is False
        assert assessment.pipeline_run_id == "run-1"
        assert len(assessment.evidence) == 5
        assert set(assessment.evidence) <= {e.pk for e in self.events}
        assert AuditLogEntry.objects.for_entity("riskassessment", assessment.pk).exists()

    def test_assess_uses_best_confidence(self):
        hypotheses = [SimpleNamespace(confidence=0.2), SimpleNamespace(confidence=0.4)]
        assessment = RiskAssessor(weights={"payment_impact": 0.0}).assess(
            self.observation, hypotheses
        )
        assert assessment.max_confidence == 0.4
        assert assessment.score == 6.0
        assert assessment.severity == Severity.P3

    def test_assessments_are_append_only(self):
        assessment = RiskAssessor().assess(self.observation)
        assessment.score = 1.0
        with self.assertRaises(ValueError):
            assessment.save()
