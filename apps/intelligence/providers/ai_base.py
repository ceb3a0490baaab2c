"""
Base class for all LLM-backed reasoning providers.

Prompt building and response parsing are shared; subclasses only implement
the SDK call.
"""

import json
import logging
from abc import abstractmethod
from typing import Any

from apps.intelligence.providers.base import (
    BaseReasoningProvider,
    ObservationSnapshot,
    ReasoningError,
    ReasoningResult,
)

logger = logging.getLogger(__name__)


class BaseAIProvider(BaseReasoningProvider):
    """Base class for all LLM-backed reasoning providers.

    Subclasses only need to implement ``_call_api``.
    """

    default_model: str = ""
    default_max_tokens: int = 1024
    default_timeout_s: int = 30

    SYSTEM_PROMPT = (
        "You are an expert reliability engineer for a payments platform.\n"
        "Analyze the observation (a group of deduplicated operational events) and "
        "generate plausible root cause hypotheses.\n\n"
        "For each hypothesis provide:\n"
        "1. cause: one sentence naming the probable root cause\n"
        "2. confidence: a number between 0.0 and 1.0\n"
        "3. assumptions: the facts that must hold for the cause to be right\n"
        "4. category: one of platform_defect, documentation_gap, "
        "merchant_misconfiguration, unknown\n\n"
        "Respond ONLY with a JSON object of this shape:\n"
        '{\n    "hypotheses": [\n'
        '        {"cause": "...", "confidence": 0.8, "assumptions": ["..."], '
        '"category": "platform_defect"}\n'
        "    ],\n"
        '    "explanation": "..."\n}'
    )

    def __init__(
        self,
        api_key: str = "",
        model: str = "",
        max_tokens: int = 0,
        timeout_s: int = 0,
        **kwargs: Any,
    ) -> None:
        self.api_key = api_key
        self.model = model or self.default_model
        self.max_tokens = max_tokens or self.default_max_tokens
        self.timeout_s = timeout_s or self.default_timeout_s

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def get_config(self) -> dict[str, Any]:
        return {
            "api_key": self.api_key,
            "model": self.model,
            "max_tokens": self.max_tokens,
            "timeout_s": self.timeout_s,
        }

    def reason(self, snapshot: ObservationSnapshot) -> ReasoningResult:
        if not self.api_key:
            raise ReasoningError(f"{self.name}: missing API key")

        prompt = self._build_prompt(snapshot)
        try:
            response = self._call_api(prompt)
        except Exception as e:
            raise ReasoningError(f"{self.name} API error: {e}") from e
        return self._parse_response(response)

    @abstractmethod
    def _call_api(self, prompt: str) -> str:
        """Make the API call and return the response text."""
        ...  # pragma: no cover

    def _build_prompt(self, snapshot: ObservationSnapshot) -> str:
        parts = [
            f"Observation: {snapshot.summary}",
            f"Fingerprint: {snapshot.fingerprint}",
        ]
        if snapshot.error_code:
            parts.append(f"Error code: {snapshot.error_code}")
        if snapshot.endpoint:
            parts.append(f"Endpoint: {snapshot.endpoint}")
        if snapshot.merchant_tier:
            parts.append(f"Merchant tier: {snapshot.merchant_tier}")
        parts.append(f"Events: {snapshot.event_count}")
        parts.append(f"Affected merchants: {snapshot.merchant_count}")
        if snapshot.sources:
            parts.append(f"Sources: {', '.join(snapshot.sources)}")
        return "\n".join(parts)

    def _parse_response(self, response: str) -> ReasoningResult:
        content = (response or "").strip()
        if content.startswith("```"):
            lines = content.split("\n")
            content = "\n".join(lines[1:-1] if lines[-1].strip() == "```" else lines[1:])

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.warning("Failed to parse %s response as JSON: %s", self.name, e)
            raise ReasoningError(f"{self.name} returned malformed JSON: {e}") from e

        return ReasoningResult.from_document(data)
