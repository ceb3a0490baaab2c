"""Tests for hypothesis document parsing."""

import pytest
from django.test import SimpleTestCase

from apps.intelligence.providers import HypothesisCandidate, ReasoningError, ReasoningResult
from apps.intelligence.providers.base import BaseReasoningProvider


class HypothesisCandidateTests(SimpleTestCase):
    def test_valid_entry(self):
        candidate = HypothesisCandidate.from_dict(
            {
                "cause": " Gateway timeout ",
                "confidence": "0.7",
                "assumptions": ["gateway up"],
                "category": "Platform_Defect",
            }
        )

        assert candidate.cause == "Gateway timeout"
        assert candidate.confidence == 0.7
        assert candidate.category == "platform_defect"

    def test_boundaries_are_inclusive(self):
        assert HypothesisCandidate.from_dict({"cause": "x", "confidence": 0}) is not None
        assert HypothesisCandidate.from_dict({"cause": "x", "confidence": 1}) is not None

    def test_out_of_range_confidence_dropped(self):
        assert HypothesisCandidate.from_dict({"cause": "x", "confidence": 1.2}) is None
        assert HypothesisCandidate.from_dict({"cause": "x", "confidence": -0.1}) is None
        assert HypothesisCandidate.from_dict({"cause": "x", "confidence": "high"}) is None
        assert HypothesisCandidate.from_dict({"cause": "x", "confidence": float("nan")}) is None
        assert HypothesisCandidate.from_dict({"cause": "x"}) is None

    def test_missing_cause_dropped(self):
        assert HypothesisCandidate.from_dict({"confidence": 0.5}) is None
        assert HypothesisCandidate.from_dict({"cause": "  ", "confidence": 0.5}) is None
        assert HypothesisCandidate.from_dict("not a dict") is None

    def test_unknown_category_normalized(self):
        candidate = HypothesisCandidate.from_dict(
            {"cause": "x", "confidence": 0.5, "category": "cosmic rays"}
        )
        assert candidate.category == "unknown"

    def test_scalar_assumption_wrapped(self):
        candidate = HypothesisCandidate.from_dict(
            {"cause": "x", "confidence": 0.5, "assumptions": "single"}
        )
        assert candidate.assumptions == ["single"]


class ReasoningResultTests(SimpleTestCase):
    def test_drops_bad_entries_and_counts_them(self):
        result = ReasoningResult.from_document(
            {
                "hypotheses": [
                    {"cause": "good", "confidence": 0.9},
                    {"cause": "too sure", "confidence": 3},
                    {"confidence": 0.4},
                ],
                "explanation": "because",
            }
        )

        assert [h.cause for h in result.hypotheses] == ["good"]
        assert result.dropped == 2
        assert result.explanation == "because"

    def test_malformed_document_raises(self):
        with pytest.raises(ReasoningError):
            ReasoningResult.from_document([{"cause": "x", "confidence": 0.5}])
        with pytest.raises(ReasoningError):
            ReasoningResult.from_document({"explanation": "no list"})


class RedactConfigTests(SimpleTestCase):
    def test_redacts_sensitive_keys(self):
        redacted = BaseReasoningProvider._redact_config(
            {"api_key": "sk-123", "model": "m", "client_secret": "s"}
        )
        assert redacted == {"api_key": "***", "model": "m", "client_secret": "***"}
