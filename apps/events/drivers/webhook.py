"""
Webhook event driver.

Accepts delivery-failure and API-error webhooks, for example:
{
    "type": "payment_intent.payment_failed",
    "error_code": "card_declined",
    "endpoint": "/v1/payment_intents",
    "http_status": 402,
    "merchant_id": "mrc_velvetcart",
    "merchant_tier": "enterprise",
    "message": "Your card was declined."
}
"""

from typing import Any

from apps.events.drivers.base import BaseEventDriver, ParsedEvent


class WebhookDriver(BaseEventDriver):
    name = "webhook"

    def parse(self, payload: dict[str, Any]) -> ParsedEvent:
        message = self._first(
            payload,
            "message",
            "error_message",
            "error.message",
            "data.object.last_payment_error.message",
        )
        message = str(message or "")
        merchant_id, tier = self._merchant(payload)
        code = self._error_code(payload, message, "error.code", "event", "type")
        return ParsedEvent(
            source=self.name,
            error_code=code,
            endpoint=self._first(payload, "endpoint", "url", "path", "request.url") or "",
            merchant_id=merchant_id,
            merchant_tier=tier,
            message=message,
            extra={"http_status": self._first(payload, "http_status", "status_code")},
        )
