"""Base driver and data structures for action execution.

Drivers call one downstream tool (paging, ticketing, email) and normalize the
outcome into an ActionResult. They receive plain data only and never touch
the database, so the dispatcher can run them under a timeout.

Public API:
- ActionRequest
- ActionResult
- ActionDriverError
- BaseActionDriver
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


class ActionDriverError(Exception):
    """Raised inside a driver when the tool call cannot be completed."""


@dataclass
class ActionRequest:
    """Everything a driver needs to execute one proposal."""

    decision_id: int
    action_kind: str
    title: str
    body: str
    severity: str = "p4"
    score: float = 0.0
    context: dict[str, Any] = field(default_factory=dict)

    @property
    def idempotency_key(self) -> str:
        return f"decision-{self.decision_id}"

    @property
    def is_urgent(self) -> bool:
        return self.score >= 7.0


@dataclass
class ActionResult:
    """Uniform outcome of a tool call."""

    success: bool
    tool: str
    reference_id: str = ""
    error: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "tool": self.tool,
            "reference_id": self.reference_id,
            "error": self.error,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ActionResult":
        return cls(
            success=bool(data.get("success")),
            tool=data.get("tool") or "",
            reference_id=data.get("reference_id") or "",
            error=data.get("error") or "",
            metadata=data.get("metadata") or {},
        )

    @classmethod
    def failure(cls, tool: str, error: str, **metadata: Any) -> "ActionResult":
        return cls(success=False, tool=tool, error=error, metadata=metadata)


class BaseActionDriver(ABC):
    """Abstract base class for action drivers."""

    name: str = "base"
    supported_kinds: tuple[str, ...] = ()

    def supports(self, action_kind: str) -> bool:
        return action_kind in self.supported_kinds

    @abstractmethod
    def validate_config(self, config: dict[str, Any]) -> bool:
        """Validate that the driver configuration is valid."""

    @abstractmethod
    def _execute(self, request: ActionRequest, config: dict[str, Any]) -> ActionResult:
        """Perform the tool call. May raise ActionDriverError."""

    def execute(self, request: ActionRequest, config: dict[str, Any] | None = None) -> ActionResult:
        """Execute a request; never raises for tool failures."""
        config = config or {}
        if not self.supports(request.action_kind):
            return ActionResult.failure(
                self.name, f"{self.name} driver does not handle {request.action_kind}"
            )
        if not self.validate_config(config):
            return ActionResult.failure(self.name, f"Invalid {self.name} configuration")
        try:
            return self._execute(request, config)
        except ActionDriverError as e:
            logger.warning(f"{self.name} failed for decision {request.decision_id}: {e}")
            return ActionResult.failure(self.name, str(e))
        except urllib.error.HTTPError as e:
            return self._handle_http_error(e, self.name)
        except urllib.error.URLError as e:
            logger.error(f"{self.name} URL error: {e.reason}")
            return ActionResult.failure(self.name, f"Failed to connect to {self.name}: {e.reason}")

    def _post_json(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
        timeout: float = 30,
        method: str = "POST",
    ) -> tuple[int, dict[str, Any]]:
        request_headers = {
            "Content-Type": "application/json",
            "User-Agent": "SignalPipeline/1.0",
        }
        request_headers.update(headers or {})
        request = urllib.request.Request(
            url,
            data=json.dumps(payload).encode("utf-8"),
            headers=request_headers,
            method=method,
        )
        with urllib.request.urlopen(request, timeout=timeout) as response:
            body = response.read().decode("utf-8")
            status = response.getcode()
        try:
            data = json.loads(body) if body else {}
        except json.JSONDecodeError:
            data = {"raw": body}
        if not isinstance(data, dict):
            data = {"raw": data}
        return status, data

    def _handle_http_error(self, e: urllib.error.HTTPError, service_name: str) -> ActionResult:
        """Handle HTTP errors consistently across drivers."""
        error_body = e.read().decode("utf-8") if e.fp else str(e)
        logger.error(f"{service_name} HTTP error {e.code}: {error_body}")
        return ActionResult.failure(
            service_name, f"{service_name} API error ({e.code}): {error_body}", status_code=e.code
        )
