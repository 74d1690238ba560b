from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class ConfirmPaymentRequest(BaseModel):
    payment_intent_id: str | None = Field(default=None, max_length=255)


class ConfirmPaymentOut(BaseModel):
    deposit_paid: bool
    deposit_amount: Decimal
    payment_intent_id: str | None
    deposit_paid_at: datetime | None
    already_paid: bool = False


class CreatePaymentOut(BaseModel):
    client_secret: str | None
    payment_intent_id: str
    amount: Decimal
    amount_cents: int
    currency: str
    publishable_key: str | None


class WebhookAck(BaseModel):
    received: bool = True
    handled: bool = False
