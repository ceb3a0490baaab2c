"""Tests for TicketActionDriver."""

import json
from unittest.mock import patch

from django.test import SimpleTestCase

from apps.actions._tests.drivers.helpers import make_request, mock_urlopen
from apps.actions.drivers.ticket import TicketActionDriver

CONFIG = {
    "endpoint": "https://tracker.example.com/api/issues",
    "headers": {"Authorization": "Bearer t0ken"},
    "project": "ENG",
    "labels": ["signal-pipeline"],
}


class TicketValidateConfigTests(SimpleTestCase):
    def test_requires_http_endpoint(self):
        driver = TicketActionDriver()
        assert driver.validate_config(CONFIG)
        assert driver.validate_config({"webhook_url": "http://localhost:9000/hook"})
        assert not driver.validate_config({"endpoint": "ftp://tracker"})
        assert not driver.validate_config({})


class TicketExecuteTests(SimpleTestCase):
    def setUp(self):
        self.driver = TicketActionDriver()

    @patch("apps.actions.drivers.base.urllib.request.urlopen")
    def test_creates_ticket_and_sends_idempotency_key(self, mock_open):
        mock_open.return_value = mock_urlopen(json.dumps({"key": "ENG-101", "url": "https://t/1"}), 201)
        result = self.driver.execute(
            make_request(action_kind="create_ticket", severity="p3", decision_id=5), CONFIG
        )

        assert result.success is True
        assert result.reference_id == "ENG-101"
        req = mock_open.call_args[0][0]
        assert req.get_header("Idempotency-key") == "decision-5"
        assert req.get_header("Authorization") == "Bearer t0ken"
        body = json.loads(req.data.decode("utf-8"))
        assert body["labels"] == ["signal-pipeline", "platform-defect", "p3"]
        assert body["external_id"] == "decision-5"

    @patch("apps.actions.drivers.base.urllib.request.urlopen")
    def test_doc_update_uses_numeric_id(self, mock_open):
        mock_open.return_value = mock_urlopen(json.dumps({"number": 77}))
        result = self.driver.execute(make_request(action_kind="request_doc_update"), CONFIG)
        assert result.reference_id == "77"
        body = json.loads(mock_open.call_args[0][0].data.decode("utf-8"))
        assert "documentation" in body["labels"]

    @patch("apps.actions.drivers.base.urllib.request.urlopen")
    def test_missing_reference_is_failure(self, mock_open):
        mock_open.return_value = mock_urlopen("{}")
        result = self.driver.execute(make_request(action_kind="create_ticket"), CONFIG)
        assert result.success is False
        assert "no ticket id" in result.error
