"""
Synthetic event generation.

``generate_batch`` is deterministic for a given seed and ``now``. Field values
(error code, endpoint, merchant tier, HTTP status) follow the requested error
types and risk profiles so downstream scoring reacts the way it would to real
traffic.
"""

import random
import string
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from django.conf import settings
from django.utils import timezone

from apps.simulation.merchants import MERCHANTS, RISK_PROFILE_TIERS, Merchant, merchants_for_profiles


@dataclass(frozen=True)
class ErrorPool:
    messages: tuple[str, ...]
    codes: tuple[str, ...]
    endpoints: tuple[str, ...]
    statuses: tuple[int, ...]
    # Event source the batch is ingested under; realistic sources reach
    # source-specific policy (a ticket enables draft responses).
    source: str = "simulation"


ERROR_POOLS: dict[str, ErrorPool] = {
    "checkout_failure": ErrorPool(
        messages=(
            "Payment authorization timed out after 30s for {name}'s checkout flow",
            "Card network unreachable during {name} transaction processing",
            "3DS verification expired before customer completion at {name}",
            "Idempotency key collision detected in {name}'s retry logic",
            "Payment intent stuck in 'processing' state for {name} order",
            "Partial capture rejected by issuer for {name}'s split payment",
            "Session token expired during {name}'s multi-step checkout",
            "ACH mandate collection timing out for {name}'s subscription",
        ),
        codes=(
            "PMT001",
            "PMT002",
            "PMT003",
            "PMT004",
            "PMT005",
            "AUTH_TIMEOUT",
            "CARD_DECLINED",
            "NETWORK_ERR",
            "3DS_FAIL",
            "INTENT_STUCK",
        ),
        endpoints=(
            "/v1/payment_intents",
            "/v1/checkout/sessions",
            "/v1/charges",
            "/v1/payment_methods",
            "/v1/setup_intents",
        ),
        statuses=(400, 402, 408, 500, 502, 503, 504),
        source="webhook",
    ),
    "documentation_gap": ErrorPool(
        messages=(
            "{contact} from {name} confused about expand[] parameter behavior",
            "{name} dev team asking why metadata field is silently truncated",
            "{name} unable to find documentation for {api_version} versioning behavior",
            "{contact} reports pagination cursor expiration not documented",
            "Webhook event ordering guarantees unclear to {name}",
            "{name} asking about deprecated field migration timeline",
        ),
        codes=("DOC001", "DOC002", "DOC003", "UNCLEAR_SPEC", "MISSING_EXAMPLE", "STALE_DOCS"),
        endpoints=("/docs/api", "/docs/webhooks", "/docs/connect", "/docs/billing", "/docs/radar"),
        statuses=(200, 400, 422),
        source="ticket",
    ),
    "webhook_failure": ErrorPool(
        messages=(
            "Webhook endpoint at {name} returning 502 for payment_intent.succeeded",
            "{name}'s webhook handler timing out after 10s consistently",
            "Signature verification failing for {name} (clock skew suspected)",
            "{name} endpoint SSL certificate expired, webhooks failing",
            "{name}'s webhook queue backed up, 500+ events pending",
            "Webhook retry exhausted for {name}, events dropped",
        ),
        codes=("WH001", "WH002", "WH003", "SIG_MISMATCH", "ENDPOINT_ERROR", "SSL_ERR"),
        endpoints=("/webhooks", "/api/stripe-webhook", "/stripe/events", "/payment-notifications"),
        statuses=(408, 500, 502, 503, 504, 521, 522),
        source="webhook",
    ),
    "auth_failure": ErrorPool(
        messages=(
            "{name}'s API key rejected with 'Invalid API Key provided' error",
            "Restricted key missing required permission for {name}'s operation",
            "OAuth token expired for {name}'s Connect integration",
            "{contact} reports API key rotation broke their integration",
            "{name} calling with a revoked API key",
        ),
        codes=("AUTH001", "AUTH002", "AUTH003", "KEY_INVALID", "KEY_EXPIRED", "PERM_DENIED"),
        endpoints=("/v1/account", "/v1/customers", "/v1/subscriptions", "/oauth/token"),
        statuses=(401, 403),
    ),
    "rate_limit": ErrorPool(
        messages=(
            "{name} hitting rate limit during flash sale event ({volume} account)",
            "{name}'s retry logic not respecting Retry-After header",
            "Concurrent requests from {name} exceeding per-second limit",
            "Search API rate limit exceeded by {name}'s reporting dashboard",
        ),
        codes=("RATE001", "RATE002", "RATE003", "TOO_MANY_REQUESTS", "QUOTA_EXCEEDED"),
        endpoints=("/v1/customers", "/v1/subscriptions", "/v1/invoices/search"),
        statuses=(429,),
    ),
    "merchant_misconfig": ErrorPool(
        messages=(
            "{name} webhook endpoint URL includes localhost reference",
            "Statement descriptor exceeds 22 char limit for {name}",
            "Currency mismatch between {name}'s frontend and backend",
            "{name} passing deprecated parameter 'source' instead of 'payment_method'",
            "{name} creating customers without email, breaking receipts",
        ),
        codes=("CFG001", "CFG002", "CFG003", "INVALID_PARAM", "DEPRECATED", "SCHEMA_ERR"),
        endpoints=("/v1/subscriptions", "/v1/invoices", "/v1/customers", "/v1/prices"),
        statuses=(400, 422),
    ),
    "platform_regression": ErrorPool(
        messages=(
            "API latency spike affecting all {tier} tier merchants including {name}",
            "Service returning 503 for {name} (and others)",
            "Invoice PDF generation timing out systemwide ({name} escalated)",
            "Radar rules not evaluating correctly post-deploy ({name} flagged)",
            "Tax calculation service returning 504 (reported by {name})",
        ),
        codes=("SYS001", "SYS002", "SYS003", "PLATFORM_ERR", "SERVICE_DEGRADED"),
        endpoints=("/v1/invoices", "/v1/radar/rules", "/v1/tax/calculations", "/v1/balance"),
        statuses=(500, 502, 503, 504, 520, 521, 522),
    ),
}

ERROR_TYPES = tuple(ERROR_POOLS)
RISK_PROFILES = tuple(RISK_PROFILE_TIERS)

DEFAULT_ERROR_TYPES = ["checkout_failure"]
DEFAULT_RISK_PROFILES = ["medium"]
DEFAULT_EVENT_COUNT = 25
DEFAULT_MERCHANT_COUNT = 5


@dataclass
class SyntheticEvent:
    error_type: str
    risk_profile: str
    merchant: Merchant
    error_code: str
    error_message: str
    endpoint: str
    http_status: int
    request_id: str
    occurred_at: datetime
    source: str = "simulation"
    extra: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        payload = {
            "error_code": self.error_code,
            "error_message": self.error_message,
            "merchant_id": self.merchant.id,
            "merchant_name": self.merchant.name,
            "merchant_tier": self.merchant.tier,
            "endpoint": self.endpoint,
            "http_status": self.http_status,
            "request_id": self.request_id,
            "affected_feature": self.error_type.replace("_", " "),
            "occurred_at": self.occurred_at.isoformat(),
            "error_type": self.error_type,
            "risk_profile": self.risk_profile,
            **self.extra,
        }
        if self.source == "ticket":
            payload["ticket_id"] = self.request_id.replace("req_", "tkt_", 1)
            payload["subject"] = self.error_message
        return payload


def clamp_counts(
    event_count: int,
    merchant_count: int,
    max_events: int | None = None,
    max_merchants: int | None = None,
) -> tuple[int, int]:
    """Clamp requested counts to ``[1, max]``."""
    if max_events is None:
        max_events = getattr(settings, "SIMULATION_MAX_EVENTS", 50)
    if max_merchants is None:
        max_merchants = getattr(settings, "SIMULATION_MAX_MERCHANTS", 10)
    max_merchants = min(max_merchants, len(MERCHANTS))
    return (
        max(1, min(int(event_count), max_events)),
        max(1, min(int(merchant_count), max_merchants)),
    )


def select_merchants(rng: random.Random, risk_profiles: list[str], count: int) -> list[Merchant]:
    """Pick ``count`` distinct merchants, preferring tiers that fit the profiles."""
    preferred = merchants_for_profiles(risk_profiles)
    others = [m for m in MERCHANTS if m not in preferred]
    chosen = rng.sample(preferred, min(count, len(preferred)))
    if len(chosen) < count:
        chosen += rng.sample(others, count - len(chosen))
    return chosen


def _request_id(rng: random.Random) -> str:
    alphabet = string.ascii_lowercase + string.digits
    return "req_" + "".join(rng.choice(alphabet) for _ in range(24))


def _pick_status(rng: random.Random, pool: ErrorPool, risk_profile: str) -> int:
    if risk_profile == "high":
        server_errors = [s for s in pool.statuses if s >= 500]
        if server_errors:
            return rng.choice(server_errors)
    return rng.choice(pool.statuses)


def generate_event(
    rng: random.Random,
    error_type: str,
    risk_profile: str,
    merchant: Merchant,
    now: datetime,
) -> SyntheticEvent:
    pool = ERROR_POOLS[error_type]
    message = rng.choice(pool.messages).format(
        name=merchant.name,
        contact=merchant.contact_name,
        volume=merchant.monthly_volume,
        api_version=merchant.api_version,
        tier=merchant.tier,
    )
    return SyntheticEvent(
        error_type=error_type,
        risk_profile=risk_profile,
        merchant=merchant,
        error_code=rng.choice(pool.codes),
        error_message=message,
        endpoint=rng.choice(pool.endpoints),
        http_status=_pick_status(rng, pool, risk_profile),
        request_id=_request_id(rng),
        occurred_at=now - timedelta(seconds=rng.randint(0, 900)),
        source=pool.source,
    )


def generate_batch(
    error_types: list[str],
    risk_profiles: list[str],
    event_count: int,
    merchant_count: int,
    seed: int | None = None,
    now: datetime | None = None,
) -> list[SyntheticEvent]:
    """
    Generate a batch of synthetic events.

    Counts are clamped to the configured maxima first. The first
    ``min(merchant_count, event_count)`` events go to distinct merchants so
    every selected merchant is represented.

    Raises:
        ValueError: unknown error type or risk profile.
    """
    error_types = list(error_types or DEFAULT_ERROR_TYPES)
    risk_profiles = list(risk_profiles or DEFAULT_RISK_PROFILES)
    unknown = [t for t in error_types if t not in ERROR_POOLS]
    if unknown:
        raise ValueError(f"Unknown error types: {', '.join(map(str, unknown))}")
    unknown = [p for p in risk_profiles if p not in RISK_PROFILE_TIERS]
    if unknown:
        raise ValueError(f"Unknown risk profiles: {', '.join(map(str, unknown))}")

    event_count, merchant_count = clamp_counts(event_count, merchant_count)
    rng = random.Random(seed)
    now = now or timezone.now()
    merchants = select_merchants(rng, risk_profiles, min(merchant_count, event_count))

    events = []
    for i in range(event_count):
        risk_profile = rng.choice(risk_profiles)
        if i < len(merchants):
            merchant = merchants[i]
        else:
            fitting = [m for m in merchants if m.tier in RISK_PROFILE_TIERS[risk_profile]]
            merchant = rng.choice(fitting or merchants)
        events.append(generate_event(rng, rng.choice(error_types), risk_profile, merchant, now))
    return events
