"""Event builders shared by the orchestration tests."""

from apps.events.services import EventIngestor


def webhook_payload(**overrides):
    payload = {
        "error_code": "card_declined",
        "endpoint": "/v1/checkout",
        "merchant_id": "m1",
        "merchant_tier": "enterprise",
        "message": "Card declined at checkout",
    }
    payload.update(overrides)
    return payload


def ingest_webhooks(count: int = 5, **overrides) -> list:
    ingestor = EventIngestor()
    return [ingestor.ingest("webhook", webhook_payload(**overrides)) for _ in range(count)]
