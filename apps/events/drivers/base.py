"""Base driver and data structures for raw event normalization.

Every event source (support tickets, logs, webhooks, migration state,
simulation) ships payloads with its own field names. Drivers map them onto a
common ParsedEvent so fingerprinting and risk scoring see one shape.

Public API:
- ParsedEvent
- BaseEventDriver
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from apps.events.fingerprint import compute_fingerprint, normalize_endpoint, normalize_message

MERCHANT_TIERS = ("enterprise", "mid-market", "smb", "startup")


@dataclass
class ParsedEvent:
    """Normalized identifying fields of one raw event."""

    source: str
    error_code: str = ""
    endpoint: str = ""
    merchant_id: str = ""
    merchant_tier: str = "unknown"
    message: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.error_code = str(self.error_code or "").strip() or "unknown"
        self.endpoint = normalize_endpoint(self.endpoint)
        self.merchant_id = str(self.merchant_id or "").strip()

        tier = str(self.merchant_tier or "").strip().lower().replace("_", "-")
        if tier == "midmarket":
            tier = "mid-market"
        self.merchant_tier = tier if tier in MERCHANT_TIERS else "unknown"

        self.message = str(self.message or "").strip()

    @property
    def fingerprint(self) -> str:
        return compute_fingerprint(self.error_code, self.endpoint, self.merchant_tier)

    def summary(self) -> str:
        where = self.endpoint or "unknown endpoint"
        text = f"{self.error_code} on {where} ({self.merchant_tier} tier)"
        if self.message:
            text = f"{text}: {self.message[:200]}"
        return text


class BaseEventDriver(ABC):
    """Abstract base class for event source drivers."""

    name: str = "base"

    def validate(self, payload: Any) -> bool:
        """Payloads must be JSON objects; their content is otherwise opaque."""
        return isinstance(payload, dict)

    @abstractmethod
    def parse(self, payload: dict[str, Any]) -> ParsedEvent:
        """Normalize a payload. Must not raise on missing or odd fields."""

    @staticmethod
    def _first(payload: dict[str, Any], *keys: str) -> Any:
        """Return the first non-empty value among ``keys`` (dotted paths allowed)."""
        for key in keys:
            value: Any = payload
            for part in key.split("."):
                if not isinstance(value, dict):
                    value = None
                    break
                value = value.get(part)
            if value not in (None, "", [], {}):
                return value
        return None

    def _merchant(self, payload: dict[str, Any]) -> tuple[str, str]:
        merchant_id = self._first(payload, "merchant_id", "merchant.id", "account_id", "account")
        tier = self._first(payload, "merchant_tier", "tier", "merchant.size", "merchant.tier")
        return str(merchant_id or ""), str(tier or "")

    def _error_code(self, payload: dict[str, Any], message: str, *extra_keys: str) -> str:
        code = self._first(
            payload,
            "error_code",
            "code",
            "error_type",
            *extra_keys,
            "reason",
            "status_code",
            "http_status",
        )
        if code is not None:
            return str(code)
        token = normalize_message(message)
        return f"msg:{token}" if token else "unknown"
