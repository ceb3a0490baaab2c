"""
Migration state driver.

Migration events are keyed by the stage they failed in, so a failure in
``schema_upgrade`` never merges with the same error code in ``cutover``.
"""

from typing import Any

from apps.events.drivers.base import BaseEventDriver, ParsedEvent


class MigrationStateDriver(BaseEventDriver):
    name = "migration_state"

    def parse(self, payload: dict[str, Any]) -> ParsedEvent:
        stage = str(self._first(payload, "migration_stage", "stage") or "unknown")
        message = str(self._first(payload, "message", "error_message", "detail") or "")
        merchant_id, tier = self._merchant(payload)
        code = self._error_code(payload, message, "status")
        return ParsedEvent(
            source=self.name,
            error_code=f"migration:{stage}:{code}",
            endpoint=self._first(payload, "endpoint", "api_endpoint") or "",
            merchant_id=merchant_id,
            merchant_tier=tier,
            message=message,
            extra={
                "api_version": self._first(payload, "api_version", "to_version"),
                "migration_stage": stage,
            },
        )
