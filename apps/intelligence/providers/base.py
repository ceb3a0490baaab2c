"""
Base provider interface for reasoning providers.

A reasoning provider receives a snapshot of one Observation and returns
candidate root causes. Providers never touch the database: the generator
runs them in a worker thread with a timeout and persists their output itself.
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

SENSITIVE_PATTERNS = {"key", "secret", "token", "password", "api"}

HYPOTHESIS_CATEGORIES = (
    "platform_defect",
    "documentation_gap",
    "merchant_misconfiguration",
    "unknown",
)


class ReasoningError(Exception):
    """Raised by a provider when it cannot produce a hypothesis document."""


@dataclass
class ObservationSnapshot:
    """Plain-data view of an Observation, safe to hand to a worker thread."""

    observation_id: int | None
    fingerprint: str
    summary: str
    error_code: str = ""
    endpoint: str = ""
    merchant_tier: str = ""
    event_count: int = 1
    merchant_count: int = 0
    sources: list[str] = field(default_factory=list)

    @classmethod
    def from_observation(cls, observation) -> "ObservationSnapshot":
        return cls(
            observation_id=observation.pk,
            fingerprint=observation.fingerprint,
            summary=observation.summary,
            error_code=observation.error_code,
            endpoint=observation.endpoint,
            merchant_tier=observation.merchant_tier,
            event_count=observation.event_count,
            merchant_count=len(observation.affected_merchants()),
            sources=sorted(set(observation.events.values_list("source", flat=True))),
        )

    def search_text(self) -> str:
        return f"{self.error_code} {self.endpoint} {self.summary}".lower()


@dataclass
class HypothesisCandidate:
    """A validated hypothesis entry from a provider response."""

    cause: str
    confidence: float
    assumptions: list[str] = field(default_factory=list)
    category: str = "unknown"

    @classmethod
    def from_dict(cls, item: Any) -> "HypothesisCandidate | None":
        """Return a candidate, or None when the entry must be dropped."""
        if not isinstance(item, dict):
            return None

        cause = item.get("cause")
        if not isinstance(cause, str) or not cause.strip():
            return None

        confidence = item.get("confidence")
        if isinstance(confidence, bool):
            return None
        try:
            confidence = float(confidence)
        except (TypeError, ValueError):
            return None
        if math.isnan(confidence) or not 0.0 <= confidence <= 1.0:
            return None

        assumptions = item.get("assumptions") or []
        if not isinstance(assumptions, list):
            assumptions = [assumptions]

        category = str(item.get("category") or "unknown").lower()
        if category not in HYPOTHESIS_CATEGORIES:
            category = "unknown"

        return cls(
            cause=cause.strip(),
            confidence=confidence,
            assumptions=[str(a) for a in assumptions],
            category=category,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "cause": self.cause,
            "confidence": self.confidence,
            "assumptions": self.assumptions,
            "category": self.category,
        }


@dataclass
class ReasoningResult:
    """Parsed ``{hypotheses, explanation}`` document."""

    hypotheses: list[HypothesisCandidate] = field(default_factory=list)
    explanation: str = ""
    dropped: int = 0

    @classmethod
    def from_document(cls, data: Any) -> "ReasoningResult":
        """
        Validate a hypothesis document.

        Malformed entries are dropped and counted. A document without a
        ``hypotheses`` list is malformed as a whole.
        """
        if not isinstance(data, dict) or not isinstance(data.get("hypotheses"), list):
            raise ReasoningError("Response is not a {hypotheses: [...]} document")

        result = cls(explanation=str(data.get("explanation") or ""))
        for item in data["hypotheses"]:
            candidate = HypothesisCandidate.from_dict(item)
            if candidate is None:
                result.dropped += 1
                logger.warning("Dropping malformed hypothesis entry: %r", item)
                continue
            result.hypotheses.append(candidate)
        return result

    def to_dict(self) -> dict[str, Any]:
        return {
            "hypotheses": [h.to_dict() for h in self.hypotheses],
            "explanation": self.explanation,
            "dropped": self.dropped,
        }


class BaseReasoningProvider(ABC):
    """Abstract base class for reasoning providers."""

    name: str = "base"
    description: str = "Base reasoning provider"
    model: str = ""

    def is_configured(self) -> bool:
        """Whether the provider has what it needs (credentials) to be called."""
        return True

    @abstractmethod
    def reason(self, snapshot: ObservationSnapshot) -> ReasoningResult:
        """
        Produce hypotheses for one observation.

        Raises:
            ReasoningError: on missing credentials, SDK failure or a malformed
                response.
        """

    def describe_input(self, snapshot: ObservationSnapshot) -> str:
        return f"{snapshot.summary} [{snapshot.fingerprint}]"

    def get_config(self) -> dict[str, Any]:
        """JSON-safe settings recorded on each AnalysisRun (before redaction)."""
        return {"model": self.model} if self.model else {}

    @staticmethod
    def _redact_config(config: dict[str, Any]) -> dict[str, Any]:
        """Replace values whose key looks like a credential."""
        redacted = {}
        for key, value in config.items():
            if any(pattern in key.lower() for pattern in SENSITIVE_PATTERNS):
                redacted[key] = "***"
            else:
                redacted[key] = value
        return redacted
