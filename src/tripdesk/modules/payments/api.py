from __future__ import annotations

import json

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from tripdesk.core.config import settings
from tripdesk.core.db import db_session
from tripdesk.core.logging import get_logger, log_event, set_actor_context
from tripdesk.modules.notifications.dispatch import Notifier, get_notifier
from tripdesk.modules.payments.schemas import (
    ConfirmPaymentOut,
    ConfirmPaymentRequest,
    CreatePaymentOut,
    WebhookAck,
)
from tripdesk.modules.payments.service import (
    ClientFactory,
    confirm_deposit_payment,
    create_deposit_payment,
    handle_payment_succeeded,
)
from tripdesk.modules.payments.stripe import PaymentIntent, StripeClient
from tripdesk.modules.payments.webhooks import WebhookSignatureError, verify_stripe_signature

logger = get_logger(__name__)

router = APIRouter(tags=["payments"])


def get_payment_client_factory() -> ClientFactory:
    return StripeClient.for_brand


@router.post("/trip-proposals/{proposal_number}/create-payment", response_model=CreatePaymentOut)
def create_payment_endpoint(
    proposal_number: str,
    session: Session = Depends(db_session),
    client_factory: ClientFactory = Depends(get_payment_client_factory),
) -> CreatePaymentOut:
    set_actor_context("customer")
    payment = create_deposit_payment(
        session, proposal_number=proposal_number, client_factory=client_factory
    )
    return CreatePaymentOut.model_validate(payment, from_attributes=True)


@router.post(
    "/trip-proposals/{proposal_number}/confirm-payment", response_model=ConfirmPaymentOut
)
def confirm_payment_endpoint(
    proposal_number: str,
    payload: ConfirmPaymentRequest,
    session: Session = Depends(db_session),
    notifier: Notifier = Depends(get_notifier),
    client_factory: ClientFactory = Depends(get_payment_client_factory),
) -> ConfirmPaymentOut:
    set_actor_context("customer")
    confirmation = confirm_deposit_payment(
        session,
        proposal_number=proposal_number,
        payment_intent_id=payload.payment_intent_id,
        notifier=notifier,
        client_factory=client_factory,
    )
    proposal = confirmation.proposal
    return ConfirmPaymentOut(
        deposit_paid=proposal.deposit_paid,
        deposit_amount=proposal.deposit_amount,
        payment_intent_id=proposal.deposit_payment_intent_id,
        deposit_paid_at=proposal.deposit_paid_at,
        already_paid=confirmation.already_paid,
    )


@router.post("/webhooks/stripe", response_model=WebhookAck)
async def stripe_webhook_endpoint(
    request: Request,
    session: Session = Depends(db_session),
    notifier: Notifier = Depends(get_notifier),
) -> WebhookAck:
    if not settings.stripe_webhook_secret:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Webhook not configured"
        )
    payload = await request.body()
    try:
        verify_stripe_signature(
            payload, request.headers.get("stripe-signature"), settings.stripe_webhook_secret
        )
    except WebhookSignatureError as e:
        log_event(logger, "payment.webhook.rejected", reason=str(e))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    try:
        event = json.loads(payload)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON") from e

    if not isinstance(event, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid event")
    event_type = event.get("type")
    log_event(logger, "payment.webhook.received", event_type=event_type, event_id=event.get("id"))
    if event_type != "payment_intent.succeeded":
        return WebhookAck(handled=False)

    obj = (event.get("data") or {}).get("object") or {}
    intent = PaymentIntent.from_api(obj)
    # Database work is synchronous; keep it off the event loop.
    handled = await run_in_threadpool(
        handle_payment_succeeded, session, intent=intent, notifier=notifier
    )
    return WebhookAck(handled=handled)
