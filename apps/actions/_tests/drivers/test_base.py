"""Tests for the driver base class and result types."""

import io
import urllib.error
from unittest.mock import patch

from django.test import SimpleTestCase

from apps.actions._tests.drivers.helpers import make_request
from apps.actions._tests.drivers.helpers import mock_urlopen as make_resp
from apps.actions.drivers import DRIVER_REGISTRY, get_driver
from apps.actions.drivers.base import ActionDriverError, ActionResult, BaseActionDriver


class _RaisingDriver(BaseActionDriver):
    name = "raising"
    supported_kinds = ("create_incident",)

    def __init__(self, exc):
        self.exc = exc

    def validate_config(self, config):
        return True

    def _execute(self, request, config):
        raise self.exc


class ActionResultTests(SimpleTestCase):
    def test_from_dict_fills_defaults(self):
        result = ActionResult.from_dict({"success": True, "tool": "local"})
        assert result.success is True
        assert result.reference_id == ""
        assert result.metadata == {}

    def test_failure_carries_metadata(self):
        result = ActionResult.failure("ticket", "boom", status_code=502)
        assert result.success is False
        assert result.error == "boom"
        assert result.metadata == {"status_code": 502}
        assert result.to_dict()["tool"] == "ticket"


class ActionRequestTests(SimpleTestCase):
    def test_idempotency_key_is_per_decision(self):
        assert make_request(decision_id=9).idempotency_key == "decision-9"

    def test_urgent_from_score_seven(self):
        assert make_request(score=7.0).is_urgent
        assert not make_request(score=6.99).is_urgent


class BaseDriverExecuteTests(SimpleTestCase):
    def test_unsupported_kind_fails_without_calling_tool(self):
        driver = _RaisingDriver(AssertionError("should not run"))
        result = driver.execute(make_request(action_kind="draft_response"))
        assert result.success is False
        assert "does not handle draft_response" in result.error

    def test_driver_error_becomes_failed_result(self):
        result = _RaisingDriver(ActionDriverError("tool said no")).execute(make_request())
        assert result.success is False
        assert result.tool == "raising"
        assert result.error == "tool said no"

    def test_http_error_becomes_failed_result(self):
        exc = urllib.error.HTTPError(
            "http://x", 503, "Service Unavailable", {}, io.BytesIO(b"maintenance")
        )
        result = _RaisingDriver(exc).execute(make_request())
        assert result.success is False
        assert "(503)" in result.error
        assert result.metadata["status_code"] == 503

    def test_url_error_becomes_failed_result(self):
        result = _RaisingDriver(urllib.error.URLError("refused")).execute(make_request())
        assert result.success is False
        assert "Failed to connect" in result.error

    def test_unexpected_errors_propagate(self):
        with self.assertRaises(RuntimeError):
            _RaisingDriver(RuntimeError("bug")).execute(make_request())


class RegistryTests(SimpleTestCase):
    def test_registry_lists_all_drivers(self):
        assert set(DRIVER_REGISTRY) == {"pagerduty", "ticket", "email", "local"}

    def test_get_driver_instantiates(self):
        assert get_driver("local").name == "local"

    def test_get_driver_unknown_raises(self):
        with self.assertRaises(KeyError):
            get_driver("carrier-pigeon")

    @patch("apps.actions.drivers.base.urllib.request.urlopen")
    def test_post_json_wraps_non_object_bodies(self, mock_urlopen):
        mock_urlopen.return_value = make_resp("[1, 2]")
        status, data = get_driver("ticket")._post_json("http://x", {})
        assert status == 200
        assert data == {"raw": [1, 2]}
