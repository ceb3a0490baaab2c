"""Shared helpers for driver tests."""

from unittest.mock import MagicMock

from apps.actions.drivers.base import ActionRequest


def make_request(**kwargs) -> ActionRequest:
    defaults = {
        "decision_id": 42,
        "action_kind": "create_incident",
        "title": "[P1] card_declined on /v1/checkout",
        "body": "5 events across 1 merchant",
        "severity": "p1",
        "score": 9.2,
        "context": {
            "fingerprint": "abc123",
            "endpoint": "/v1/checkout",
            "error_code": "card_declined",
            "merchant_tier": "enterprise",
            "affected_merchants": ["m1"],
            "evidence": [1, 2, 3],
            "observation_id": 7,
        },
    }
    defaults.update(kwargs)
    return ActionRequest(**defaults)


def mock_urlopen(response_body, status_code=200):
    """Create a mock context manager for urllib.request.urlopen."""
    mock_resp = MagicMock()
    mock_resp.read.return_value = response_body.encode("utf-8")
    mock_resp.getcode.return_value = status_code
    mock_resp.__enter__ = MagicMock(return_value=mock_resp)
    mock_resp.__exit__ = MagicMock(return_value=False)
    return mock_resp
