"""PagerDuty incident driver."""

import logging
from typing import Any

from apps.actions.drivers.base import (
    ActionDriverError,
    ActionRequest,
    ActionResult,
    BaseActionDriver,
)

logger = logging.getLogger(__name__)


class PagerDutyActionDriver(BaseActionDriver):
    """
    Opens incidents through the PagerDuty Events API v2.

    Configuration:
    {
        "integration_key": "your-pagerduty-integration-key",
        "client": "Signal Pipeline",
        "client_url": "https://your-dashboard.com",
        "timeout": 30
    }

    The dedup key is derived from the decision id, so a repeated trigger for
    the same decision folds into the same PagerDuty incident.
    """

    name = "pagerduty"
    supported_kinds = ("create_incident",)

    EVENTS_API_URL = "https://events.pagerduty.com/v2/enqueue"

    SEVERITY_MAP = {
        "p1": "critical",
        "p2": "error",
        "p3": "warning",
        "p4": "info",
    }

    def validate_config(self, config: dict[str, Any]) -> bool:
        key = config.get("integration_key")
        return isinstance(key, str) and len(key) >= 20

    def _build_payload(self, request: ActionRequest, config: dict[str, Any]) -> dict[str, Any]:
        ctx = request.context
        payload: dict[str, Any] = {
            "routing_key": config["integration_key"],
            "event_action": "trigger",
            "dedup_key": request.idempotency_key,
            "payload": {
                "summary": request.title[:1024],
                "severity": self.SEVERITY_MAP.get(request.severity, "info"),
                "source": config.get("source", "signal-pipeline"),
                "component": ctx.get("endpoint") or "unknown",
                "group": ctx.get("merchant_tier") or "unknown",
                "class": ctx.get("error_code") or "unknown",
                "custom_details": {
                    "body": request.body,
                    "score": request.score,
                    "severity": request.severity,
                    "fingerprint": ctx.get("fingerprint"),
                    "affected_merchants": ctx.get("affected_merchants", []),
                    "evidence": ctx.get("evidence", []),
                },
            },
        }
        if config.get("client"):
            payload["client"] = config["client"]
        if config.get("client_url"):
            payload["client_url"] = config["client_url"]
        return payload

    def _execute(self, request: ActionRequest, config: dict[str, Any]) -> ActionResult:
        payload = self._build_payload(request, config)
        _, data = self._post_json(
            config.get("events_url", self.EVENTS_API_URL),
            payload,
            timeout=config.get("timeout", 30),
        )
        if data.get("status") != "success":
            raise ActionDriverError(f"PagerDuty error: {data.get('message', 'Unknown error')}")

        dedup_key = data.get("dedup_key") or payload["dedup_key"]
        logger.info(f"PagerDuty incident triggered: {request.title} (dedup_key: {dedup_key})")
        return ActionResult(
            success=True,
            tool=self.name,
            reference_id=dedup_key,
            metadata={
                "severity": payload["payload"]["severity"],
                "message": data.get("message", ""),
            },
        )
