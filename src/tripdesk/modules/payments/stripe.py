"""
Minimal Stripe PaymentIntents client over the REST API.

Only the two calls the deposit flow needs are implemented. Keys are resolved per
brand so each brand settles into its own Stripe account.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx

from tripdesk.core.config import settings


class PaymentProviderError(Exception):
    """Stripe rejected the call or could not be reached."""


@dataclass(frozen=True)
class PaymentIntent:
    id: str
    status: str
    amount: int
    currency: str
    metadata: dict[str, str] = field(default_factory=dict)
    client_secret: str | None = None

    @classmethod
    def from_api(cls, obj: dict[str, Any]) -> PaymentIntent:
        metadata = obj.get("metadata") or {}
        return cls(
            id=str(obj.get("id") or ""),
            status=str(obj.get("status") or ""),
            amount=int(obj.get("amount") or 0),
            currency=str(obj.get("currency") or "usd"),
            metadata={str(k): str(v) for k, v in metadata.items()},
            client_secret=obj.get("client_secret"),
        )


def secret_key_for_brand(brand_id: int | None) -> str | None:
    if brand_id is not None and brand_id in settings.stripe_brand_secret_keys:
        return settings.stripe_brand_secret_keys[brand_id]
    return settings.stripe_secret_key


def publishable_key_for_brand(brand_id: int | None) -> str | None:
    if brand_id is not None and brand_id in settings.stripe_brand_publishable_keys:
        return settings.stripe_brand_publishable_keys[brand_id]
    return settings.stripe_publishable_key


def _flatten_form(data: dict[str, Any], prefix: str = "") -> dict[str, str]:
    # Stripe takes nested params as bracketed form keys, e.g. metadata[proposal_number].
    out: dict[str, str] = {}
    for key, value in data.items():
        name = f"{prefix}[{key}]" if prefix else key
        if isinstance(value, dict):
            out.update(_flatten_form(value, name))
        elif isinstance(value, bool):
            out[name] = "true" if value else "false"
        elif value is not None:
            out[name] = str(value)
    return out


class StripeClient:
    def __init__(
        self, secret_key: str, *, api_base: str | None = None, timeout: float | None = None
    ) -> None:
        self._secret_key = secret_key
        self._api_base = (api_base or settings.stripe_api_base).rstrip("/")
        self._timeout = float(timeout or settings.stripe_timeout_seconds)

    @classmethod
    def for_brand(cls, brand_id: int | None) -> StripeClient | None:
        key = secret_key_for_brand(brand_id)
        return cls(key) if key else None

    def _request(
        self,
        method: str,
        path: str,
        *,
        data: dict[str, Any] | None = None,
        idempotency_key: str | None = None,
    ) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self._secret_key}"}
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key
        try:
            resp = httpx.request(
                method,
                f"{self._api_base}{path}",
                headers=headers,
                data=_flatten_form(data) if data else None,
                timeout=self._timeout,
            )
        except httpx.HTTPError as e:
            raise PaymentProviderError(f"Payment provider unreachable: {e}") from e

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if resp.status_code >= 400:
            error = body.get("error") if isinstance(body, dict) else None
            message = error.get("message") if isinstance(error, dict) else None
            raise PaymentProviderError(message or f"Payment provider error ({resp.status_code})")
        if not isinstance(body, dict):
            raise PaymentProviderError("Unexpected payment provider response")
        return body

    def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntent:
        return PaymentIntent.from_api(
            self._request("GET", f"/payment_intents/{payment_intent_id}")
        )

    def create_payment_intent(
        self,
        *,
        amount: int,
        currency: str,
        metadata: dict[str, str],
        description: str | None = None,
        receipt_email: str | None = None,
        idempotency_key: str | None = None,
    ) -> PaymentIntent:
        data: dict[str, Any] = {
            "amount": amount,
            "currency": currency,
            "metadata": metadata,
            "automatic_payment_methods": {"enabled": True},
            "description": description,
            "receipt_email": receipt_email,
        }
        return PaymentIntent.from_api(
            self._request("POST", "/payment_intents", data=data, idempotency_key=idempotency_key)
        )
