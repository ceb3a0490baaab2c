"""
Deterministic reasoning provider.

Matches the observation's error code, endpoint and summary against keyword
families and returns canned hypotheses. Needs no credentials or network, so
it is the default for development and demos.
"""

from apps.intelligence.providers.base import (
    BaseReasoningProvider,
    HypothesisCandidate,
    ObservationSnapshot,
    ReasoningResult,
)

# (keywords, hypotheses) in match order; first family with a hit wins.
HYPOTHESIS_TEMPLATES: list[tuple[tuple[str, ...], list[dict]]] = [
    (
        ("/docs", "doc0", "unclear_spec", "missing_example", "stale_docs", "documentation"),
        [
            {
                "cause": "Documentation does not describe the behaviour merchants observe",
                "confidence": 0.8,
                "assumptions": ["API behaves as designed", "Docs page predates the change"],
                "category": "documentation_gap",
            },
            {
                "cause": "Code samples omit a required parameter",
                "confidence": 0.6,
                "assumptions": ["Merchants copy the published samples"],
                "category": "documentation_gap",
            },
        ],
    ),
    (
        ("migration",),
        [
            {
                "cause": "Legacy API endpoint being called instead of new version",
                "confidence": 0.82,
                "assumptions": ["Migration incomplete", "Dual-write enabled"],
                "category": "platform_defect",
            },
            {
                "cause": "Data format incompatibility between old and new systems",
                "confidence": 0.75,
                "assumptions": ["Schema changed", "Transformer missing"],
                "category": "platform_defect",
            },
        ],
    ),
    (
        ("checkout", "payment", "pmt", "charge"),
        [
            {
                "cause": "Payment gateway timeout due to increased latency",
                "confidence": 0.85,
                "assumptions": ["Gateway is operational", "Network not partitioned"],
                "category": "platform_defect",
            },
            {
                "cause": "Invalid API credentials or expired token",
                "confidence": 0.75,
                "assumptions": ["Merchant recently rotated keys", "No system-wide outage"],
                "category": "merchant_misconfiguration",
            },
            {
                "cause": "Cart session expired before payment completion",
                "confidence": 0.65,
                "assumptions": ["Session timeout is configured", "User was inactive"],
                "category": "merchant_misconfiguration",
            },
        ],
    ),
    (
        ("auth", "key_", "token", "perm_denied"),
        [
            {
                "cause": "API key mismatch - credentials were recently rotated",
                "confidence": 0.88,
                "assumptions": ["Key rotation occurred", "Old key is cached"],
                "category": "merchant_misconfiguration",
            },
            {
                "cause": "OAuth token expired and refresh failed",
                "confidence": 0.72,
                "assumptions": ["Token lifetime exceeded", "Refresh endpoint accessible"],
                "category": "merchant_misconfiguration",
            },
        ],
    ),
    (
        ("webhook", "wh0", "sig_mismatch"),
        [
            {
                "cause": "Webhook endpoint returning 5xx errors",
                "confidence": 0.82,
                "assumptions": ["Endpoint is deployed", "Backend is overloaded"],
                "category": "merchant_misconfiguration",
            },
            {
                "cause": "Request payload format changed after API upgrade",
                "confidence": 0.7,
                "assumptions": ["Migration in progress", "Breaking change introduced"],
                "category": "platform_defect",
            },
        ],
    ),
    (
        ("rate", "429", "too_many_requests", "quota"),
        [
            {
                "cause": "Burst traffic exceeded per-merchant rate limits",
                "confidence": 0.9,
                "assumptions": ["Traffic spike occurred", "Limits not increased"],
                "category": "merchant_misconfiguration",
            },
            {
                "cause": "Retry storm from failed requests amplifying load",
                "confidence": 0.78,
                "assumptions": ["Retries enabled", "Exponential backoff missing"],
                "category": "merchant_misconfiguration",
            },
        ],
    ),
    (
        ("platform", "plat", "regression", "503", "500"),
        [
            {
                "cause": "Recent deployment introduced regression in shared service",
                "confidence": 0.85,
                "assumptions": ["Deployment occurred", "Rollback available"],
                "category": "platform_defect",
            },
            {
                "cause": "Database connection pool exhausted under load",
                "confidence": 0.8,
                "assumptions": ["Connection limits reached", "Pool not auto-scaling"],
                "category": "platform_defect",
            },
        ],
    ),
]

FALLBACK_HYPOTHESES = [
    {
        "cause": "Configuration mismatch detected in merchant integration",
        "confidence": 0.75,
        "assumptions": ["Recent changes made", "Config not synced"],
        "category": "merchant_misconfiguration",
    },
    {
        "cause": "Transient network issue affecting service communication",
        "confidence": 0.65,
        "assumptions": ["Network healthy", "Retry would succeed"],
        "category": "unknown",
    },
]


class LocalReasoningProvider(BaseReasoningProvider):
    """Keyword-template reasoning provider."""

    name = "local"
    description = "Deterministic keyword-template reasoning (no network)"
    model = "templates"

    def __init__(self, **kwargs):
        pass

    def reason(self, snapshot: ObservationSnapshot) -> ReasoningResult:
        text = snapshot.search_text()
        family = "fallback"
        templates = FALLBACK_HYPOTHESES
        for keywords, candidates in HYPOTHESIS_TEMPLATES:
            hit = next((k for k in keywords if k in text), None)
            if hit:
                family, templates = hit, candidates
                break

        hypotheses = [HypothesisCandidate.from_dict(t) for t in templates]
        return ReasoningResult(
            hypotheses=[h for h in hypotheses if h is not None],
            explanation=(
                f"Generated {len(templates)} hypotheses by pattern matching "
                f"on '{family}' for {snapshot.error_code or 'unknown'} errors."
            ),
        )
