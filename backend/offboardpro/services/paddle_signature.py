"""Paddle webhook signature verification.

Header format: ``Paddle-Signature: ts=1671552777;h1=eb4d0dc8...``. The
signature is HMAC-SHA256 over ``"{ts}:{raw body}"`` keyed with the
notification destination's secret.
"""
from __future__ import annotations

import hashlib
import hmac
import logging
import time

logger = logging.getLogger(__name__)


def parse_signature_header(header: str) -> tuple[int, list[str]] | None:
    timestamp: int | None = None
    signatures: list[str] = []
    for part in header.split(";"):
        key, sep, value = part.strip().partition("=")
        if not sep:
            continue
        if key == "ts":
            try:
                timestamp = int(value)
            except ValueError:
                return None
        elif key == "h1":
            signatures.append(value)
    if timestamp is None or not signatures:
        return None
    return timestamp, signatures


def compute_signature(secret: str, timestamp: int, body: bytes) -> str:
    signed_payload = f"{timestamp}:".encode() + body
    return hmac.new(secret.encode(), signed_payload, hashlib.sha256).hexdigest()


def verify_webhook_signature(
    body: bytes,
    header: str | None,
    *,
    secret: str,
    max_age_seconds: int = 300,
    now: float | None = None,
) -> bool:
    if not header:
        logger.warning("Paddle webhook without signature header")
        return False

    parsed = parse_signature_header(header)
    if parsed is None:
        logger.warning("Paddle webhook with malformed signature header")
        return False
    timestamp, signatures = parsed

    current = int(now if now is not None else time.time())
    if current - timestamp > max_age_seconds:
        logger.warning("Paddle webhook signature too old: %ss", current - timestamp)
        return False

    expected = compute_signature(secret, timestamp, body)
    # Paddle may send several h1 values while a secret is being rotated.
    return any(
        hmac.compare_digest(expected.encode(), candidate.encode("utf-8", "surrogateescape"))
        for candidate in signatures
    )
