"""Built-in driver that records actions without calling an external tool."""

import logging
import uuid
from typing import Any

from apps.actions.drivers.base import ActionRequest, ActionResult, BaseActionDriver

logger = logging.getLogger(__name__)


class LocalActionDriver(BaseActionDriver):
    """
    Issues a local reference id for every action kind.

    Used when no ActionChannel serves a kind (and the local fallback is on),
    and in development.
    """

    name = "local"
    supported_kinds = ("create_incident", "create_ticket", "request_doc_update", "draft_response")

    REFERENCE_PREFIXES = {
        "create_incident": "INC",
        "create_ticket": "ENG",
        "request_doc_update": "DOC",
        "draft_response": "DRAFT",
    }

    def validate_config(self, config: dict[str, Any]) -> bool:
        return True

    def _execute(self, request: ActionRequest, config: dict[str, Any]) -> ActionResult:
        prefix = self.REFERENCE_PREFIXES[request.action_kind]
        reference_id = f"{prefix}-{uuid.uuid4().hex[:8].upper()}"
        logger.info(f"Recorded {request.action_kind} {reference_id}: {request.title}")
        return ActionResult(
            success=True,
            tool=self.name,
            reference_id=reference_id,
            metadata={"title": request.title, "urgent": request.is_urgent},
        )
