"""
Stable dedup keys for raw events.

Only non-volatile identifying fields take part in the key: the normalized
error code, endpoint and merchant tier. Request ids, timestamps, merchant ids
and free text never reach the hash, so repeated reports of the same failure
always collapse onto one fingerprint.
"""

from __future__ import annotations

import hashlib
import re
from typing import Any

_UUID_RE = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.I)
_TIMESTAMP_RE = re.compile(r"\d{4}-\d{2}-\d{2}[t ]\d{2}:\d{2}:\d{2}(\.\d+)?(z|[+-]\d{2}:?\d{2})?", re.I)
_IP_RE = re.compile(r"\b\d{1,3}(?:\.\d{1,3}){3}\b")
_DIGITS_RE = re.compile(r"\d+")
_WS_RE = re.compile(r"\s+")
_ID_SEGMENT_RE = re.compile(r"^(?:\d+|[0-9a-f-]{16,}|[a-z]{2,5}_(?=[a-z0-9]*\d)[a-z0-9]{6,})$", re.I)

MESSAGE_TOKEN_LENGTH = 40
FINGERPRINT_LENGTH = 16


def normalize_message(message: Any, max_length: int = MESSAGE_TOKEN_LENGTH) -> str:
    """Reduce free text to a short token with volatile parts masked out."""
    text = str(message or "").strip()
    if not text:
        return ""
    text = _UUID_RE.sub("<uuid>", text)
    text = _TIMESTAMP_RE.sub("<ts>", text)
    text = _IP_RE.sub("<ip>", text)
    text = _DIGITS_RE.sub("<n>", text)
    text = _WS_RE.sub("_", text.lower())
    return text[:max_length]


def normalize_endpoint(endpoint: Any) -> str:
    """Lower-case a path, drop query and host, replace id-like segments with ``:id``."""
    text = str(endpoint or "").strip().lower()
    if not text:
        return ""
    if "://" in text:
        text = "/" + text.split("://", 1)[1].partition("/")[2]
    text = text.split("?", 1)[0].split("#", 1)[0].rstrip("/") or "/"
    segments = [(":id" if _ID_SEGMENT_RE.match(seg) else seg) for seg in text.split("/")]
    return "/".join(segments)


def fingerprint_key(error_code: str, endpoint: str, merchant_tier: str) -> str:
    return f"{error_code or 'unknown'}|{endpoint or '-'}|{merchant_tier or 'unknown'}"


def compute_fingerprint(error_code: str, endpoint: str, merchant_tier: str) -> str:
    """Hash the normalized identifying triple into a short stable key."""
    key = fingerprint_key(error_code, endpoint, merchant_tier)
    return hashlib.sha256(key.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


def fingerprint(event) -> str:
    """
    Fingerprint a raw event (model instance or ``{"source", "payload"}`` dict).

    The source driver normalizes the payload first, so every source resolves
    its own field names before hashing.
    """
    from apps.events.drivers import get_driver

    if isinstance(event, dict):
        source, payload = event.get("source"), event.get("payload")
    else:
        source, payload = event.source, event.payload
    return get_driver(source).parse(payload or {}).fingerprint
