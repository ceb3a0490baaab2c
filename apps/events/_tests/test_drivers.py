"""Tests for event source drivers."""

import pytest
from django.test import SimpleTestCase

from apps.events.drivers import (
    LogDriver,
    MigrationStateDriver,
    TicketDriver,
    WebhookDriver,
    get_driver,
)


class RegistryTests(SimpleTestCase):
    def test_get_driver(self):
        assert isinstance(get_driver("webhook"), WebhookDriver)
        assert isinstance(get_driver("migration_state"), MigrationStateDriver)

    def test_unknown_source(self):
        with pytest.raises(ValueError, match="Unknown event source"):
            get_driver("carrier_pigeon")


class WebhookDriverTests(SimpleTestCase):
    def test_parse_nested_fields(self):
        parsed = WebhookDriver().parse(
            {
                "type": "payment_intent.payment_failed",
                "error": {"code": "card_declined"},
                "url": "/v1/payment_intents/pi_123abc456",
                "merchant": {"id": "mrc_velvetcart", "size": "enterprise"},
            }
        )

        assert parsed.error_code == "card_declined"
        assert parsed.endpoint == "/v1/payment_intents/:id"
        assert parsed.merchant_id == "mrc_velvetcart"
        assert parsed.merchant_tier == "enterprise"

    def test_event_type_used_when_no_code(self):
        parsed = WebhookDriver().parse({"type": "charge.failed"})
        assert parsed.error_code == "charge.failed"

    def test_empty_payload_is_lenient(self):
        parsed = WebhookDriver().parse({})
        assert parsed.error_code == "unknown"
        assert parsed.merchant_tier == "unknown"
        assert parsed.endpoint == ""


class TicketDriverTests(SimpleTestCase):
    def test_subject_becomes_token_without_code(self):
        parsed = TicketDriver().parse(
            {"subject": "Checkout fails for 3 customers", "merchant_id": "m9", "tier": "SMB"}
        )

        assert parsed.error_code.startswith("msg:checkout_fails_for_<n>")
        assert parsed.merchant_tier == "smb"
        assert parsed.message == "Checkout fails for 3 customers"


class LogDriverTests(SimpleTestCase):
    def test_parse(self):
        parsed = LogDriver().parse(
            {"level": "error", "msg": "upstream timeout", "status_code": 504, "path": "/v1/charges"}
        )
        assert parsed.error_code == "504"
        assert parsed.endpoint == "/v1/charges"
        assert parsed.extra["level"] == "error"


class MigrationStateDriverTests(SimpleTestCase):
    def test_stage_prefixes_code(self):
        parsed = MigrationStateDriver().parse(
            {"migration_stage": "cutover", "error_code": "LOCK_TIMEOUT", "api_version": "v3.2"}
        )
        assert parsed.error_code == "migration:cutover:LOCK_TIMEOUT"
        assert parsed.extra["api_version"] == "v3.2"

    def test_unknown_tier_is_normalized(self):
        parsed = MigrationStateDriver().parse({"merchant_tier": "platinum"})
        assert parsed.merchant_tier == "unknown"
