"""Shared test fixtures for orchestration app."""

import pytest

from apps.orchestration.signals import reset_backend


@pytest.fixture(autouse=True)
def fresh_signal_backend():
    """Signals re-read ORCHESTRATION_METRICS_BACKEND for every test."""
    reset_backend()
    yield
    reset_backend()
