"""Structured log line driver."""

from typing import Any

from apps.events.drivers.base import BaseEventDriver, ParsedEvent


class LogDriver(BaseEventDriver):
    name = "log"

    def parse(self, payload: dict[str, Any]) -> ParsedEvent:
        message = str(self._first(payload, "message", "msg", "error") or "")
        merchant_id, tier = self._merchant(payload)
        return ParsedEvent(
            source=self.name,
            error_code=self._error_code(payload, message, "exception.type"),
            endpoint=self._first(payload, "endpoint", "path", "route", "http.path") or "",
            merchant_id=merchant_id,
            merchant_tier=tier,
            message=message,
            extra={"level": self._first(payload, "level", "severity")},
        )
