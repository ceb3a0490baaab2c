"""Shared test fixtures for intelligence app."""

import pytest

from apps.intelligence.providers import LocalReasoningProvider, ObservationSnapshot


@pytest.fixture
def local_provider():
    return LocalReasoningProvider()


@pytest.fixture
def checkout_snapshot():
    return ObservationSnapshot(
        observation_id=1,
        fingerprint="a1b2c3d4e5f60718",
        summary="PMT001 on /v1/payment_intents (enterprise tier): authorization timed out",
        error_code="PMT001",
        endpoint="/v1/payment_intents",
        merchant_tier="enterprise",
        event_count=5,
        merchant_count=2,
        sources=["webhook"],
    )
