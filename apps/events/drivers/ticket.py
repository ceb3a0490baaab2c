"""
Support ticket driver.

Tickets rarely carry structured error codes, so the subject line is the
fallback identifying token when no code is present.
"""

from typing import Any

from apps.events.drivers.base import BaseEventDriver, ParsedEvent


class TicketDriver(BaseEventDriver):
    name = "ticket"

    def parse(self, payload: dict[str, Any]) -> ParsedEvent:
        subject = str(self._first(payload, "subject", "title") or "")
        body = str(self._first(payload, "description", "body", "message") or "")
        merchant_id, tier = self._merchant(payload)
        return ParsedEvent(
            source=self.name,
            error_code=self._error_code(payload, subject or body),
            endpoint=self._first(payload, "endpoint", "api_endpoint") or "",
            merchant_id=merchant_id,
            merchant_tier=tier,
            message=subject or body,
            extra={"ticket_id": self._first(payload, "ticket_id", "id")},
        )
