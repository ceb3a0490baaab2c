"""Tests for LocalActionDriver."""

from django.test import SimpleTestCase

from apps.actions._tests.drivers.helpers import make_request
from apps.actions.drivers.local import LocalActionDriver


class LocalDriverTests(SimpleTestCase):
    def test_reference_prefix_per_kind(self):
        driver = LocalActionDriver()
        for kind, prefix in LocalActionDriver.REFERENCE_PREFIXES.items():
            result = driver.execute(make_request(action_kind=kind))
            assert result.success is True
            assert result.tool == "local"
            assert result.reference_id.startswith(f"{prefix}-")

    def test_references_are_unique(self):
        driver = LocalActionDriver()
        refs = {driver.execute(make_request()).reference_id for _ in range(5)}
        assert len(refs) == 5

    def test_no_action_is_not_a_driver_kind(self):
        result = LocalActionDriver().execute(make_request(action_kind="no_action"))
        assert result.success is False
