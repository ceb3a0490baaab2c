"""Issue tracker driver for engineering tickets and documentation requests."""

import logging
from typing import Any

from apps.actions.drivers.base import (
    ActionDriverError,
    ActionRequest,
    ActionResult,
    BaseActionDriver,
)

logger = logging.getLogger(__name__)


class TicketActionDriver(BaseActionDriver):
    """
    Files tickets by POSTing JSON to a tracker webhook.

    Configuration:
    {
        "endpoint": "https://tracker.example.com/api/issues",
        "headers": {"Authorization": "Bearer ..."},
        "project": "ENG",
        "labels": ["signal-pipeline"],
        "timeout": 30
    }

    The reference id is read from the response's ``key``, ``id`` or
    ``number`` field.
    """

    name = "ticket"
    supported_kinds = ("create_ticket", "request_doc_update")

    KIND_LABELS = {
        "create_ticket": "platform-defect",
        "request_doc_update": "documentation",
    }

    def validate_config(self, config: dict[str, Any]) -> bool:
        url = config.get("endpoint") or config.get("webhook_url") or ""
        return url.startswith("http://") or url.startswith("https://")

    def _build_payload(self, request: ActionRequest, config: dict[str, Any]) -> dict[str, Any]:
        labels = list(config.get("labels", []))
        labels.append(self.KIND_LABELS[request.action_kind])
        labels.append(request.severity)
        return {
            "title": request.title,
            "body": request.body,
            "project": config.get("project", ""),
            "labels": labels,
            "kind": request.action_kind,
            "external_id": request.idempotency_key,
            "metadata": {
                "score": request.score,
                "fingerprint": request.context.get("fingerprint"),
                "observation_id": request.context.get("observation_id"),
            },
        }

    def _execute(self, request: ActionRequest, config: dict[str, Any]) -> ActionResult:
        endpoint = config.get("endpoint") or config.get("webhook_url")
        headers = {"Idempotency-Key": request.idempotency_key, **config.get("headers", {})}
        status, data = self._post_json(
            endpoint,
            self._build_payload(request, config),
            headers=headers,
            timeout=config.get("timeout", 30),
            method=config.get("method", "POST").upper(),
        )

        reference = data.get("key") or data.get("id") or data.get("number")
        if not reference:
            raise ActionDriverError(f"Tracker response ({status}) carried no ticket id")

        logger.info(f"Ticket {reference} filed for decision {request.decision_id}")
        return ActionResult(
            success=True,
            tool=self.name,
            reference_id=str(reference),
            metadata={"endpoint": endpoint, "status_code": status, "url": data.get("url", "")},
        )
