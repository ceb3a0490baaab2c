"""Tests for intelligence models."""

import pytest
from django.test import TestCase
from django.utils import timezone

from apps.events.models import Observation
from apps.intelligence.models import AnalysisRun, AnalysisRunStatus, Hypothesis


def make_observation(fingerprint="fp-models"):
    now = timezone.now()
    return Observation.objects.create(
        fingerprint=fingerprint,
        summary="PMT001 on /v1/charges (smb tier)",
        error_code="PMT001",
        endpoint="/v1/charges",
        merchant_tier="smb",
        first_seen_at=now,
        last_seen_at=now,
    )


class AnalysisRunTests(TestCase):
    def test_lifecycle(self):
        run = AnalysisRun.objects.create(provider="local")
        run.mark_started()
        assert run.status == AnalysisRunStatus.RUNNING

        run.mark_succeeded(hypotheses_count=2, dropped_count=1, explanation="ok")
        run.refresh_from_db()

        assert run.status == AnalysisRunStatus.SUCCEEDED
        assert run.hypotheses_count == 2
        assert run.dropped_count == 1
        assert run.completed_at is not None
        assert run.duration_ms >= 0

    def test_mark_failed(self):
        run = AnalysisRun.objects.create(provider="claude")
        run.mark_failed("timeout")
        run.refresh_from_db()

        assert run.status == AnalysisRunStatus.FAILED
        assert run.error_message == "timeout"


class HypothesisTests(TestCase):
    def test_ordered_by_confidence(self):
        observation = make_observation()
        Hypothesis.objects.create(observation=observation, cause="low", confidence=0.2)
        Hypothesis.objects.create(observation=observation, cause="high", confidence=0.9)

        assert [h.cause for h in observation.hypotheses.all()] == ["high", "low"]

    def test_immutable(self):
        hypothesis = Hypothesis.objects.create(
            observation=make_observation(), cause="x", confidence=0.5
        )
        hypothesis.cause = "changed"

        with pytest.raises(ValueError, match="immutable"):
            hypothesis.save()
