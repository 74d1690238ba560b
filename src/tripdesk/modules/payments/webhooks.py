from __future__ import annotations

import hashlib
import hmac
import time

# Stripe's default replay window.
MAX_WEBHOOK_AGE_SECONDS = 300


class WebhookSignatureError(Exception):
    pass


def compute_signature(secret: str, timestamp: str, payload: bytes) -> str:
    signed = timestamp.encode("utf-8") + b"." + payload
    return hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()


def _parse_header(header: str) -> tuple[str | None, list[str]]:
    timestamp: str | None = None
    signatures: list[str] = []
    for part in header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            timestamp = value
        elif key == "v1" and value:
            signatures.append(value)
    return timestamp, signatures


def verify_stripe_signature(
    payload: bytes,
    header: str | None,
    secret: str,
    *,
    tolerance: int = MAX_WEBHOOK_AGE_SECONDS,
    now: float | None = None,
) -> None:
    """Raise WebhookSignatureError unless `header` signs `payload` with `secret`."""
    if not header:
        raise WebhookSignatureError("Missing Stripe-Signature header")
    timestamp, signatures = _parse_header(header)
    if not timestamp or not signatures:
        raise WebhookSignatureError("Malformed Stripe-Signature header")
    try:
        sent_at = int(timestamp)
    except ValueError as e:
        raise WebhookSignatureError("Invalid webhook timestamp") from e

    current = time.time() if now is None else now
    if abs(current - sent_at) > tolerance:
        raise WebhookSignatureError("Webhook timestamp outside tolerance")

    expected = compute_signature(secret, timestamp, payload)
    if not any(hmac.compare_digest(expected, sig) for sig in signatures):
        raise WebhookSignatureError("Webhook signature mismatch")
