"""Tests for the deterministic local reasoning provider."""

from dataclasses import replace

from apps.intelligence.providers import ObservationSnapshot


def test_checkout_family(local_provider, checkout_snapshot):
    result = local_provider.reason(checkout_snapshot)

    assert result.hypotheses[0].cause == "Payment gateway timeout due to increased latency"
    assert result.hypotheses[0].category == "platform_defect"
    assert result.dropped == 0
    assert "PMT001" in result.explanation


def test_documentation_family_wins_over_endpoint_keywords(local_provider, checkout_snapshot):
    snapshot = replace(
        checkout_snapshot,
        error_code="DOC002",
        endpoint="/docs/webhooks",
        summary="DOC002 on /docs/webhooks (smb tier)",
    )

    result = local_provider.reason(snapshot)

    assert {h.category for h in result.hypotheses} == {"documentation_gap"}


def test_fallback_when_nothing_matches(local_provider):
    snapshot = ObservationSnapshot(observation_id=None, fingerprint="x", summary="zzz")

    result = local_provider.reason(snapshot)

    assert len(result.hypotheses) == 2
    assert result.hypotheses[0].cause.startswith("Configuration mismatch")


def test_is_deterministic(local_provider, checkout_snapshot):
    first = local_provider.reason(checkout_snapshot).to_dict()
    second = local_provider.reason(checkout_snapshot).to_dict()
    assert first == second
