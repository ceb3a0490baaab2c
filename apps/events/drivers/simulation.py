"""Driver for synthetic events produced by the simulation harness."""

from typing import Any

from apps.events.drivers.base import BaseEventDriver, ParsedEvent


class SimulationDriver(BaseEventDriver):
    name = "simulation"

    def parse(self, payload: dict[str, Any]) -> ParsedEvent:
        message = str(payload.get("error_message") or "")
        return ParsedEvent(
            source=self.name,
            error_code=self._error_code(payload, message),
            endpoint=payload.get("endpoint") or "",
            merchant_id=str(payload.get("merchant_id") or ""),
            merchant_tier=str(payload.get("merchant_tier") or ""),
            message=message,
            extra={
                "error_type": payload.get("error_type"),
                "risk_profile": payload.get("risk_profile"),
            },
        )
