from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

from fastapi import HTTPException, status
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tripdesk.core.logging import get_logger, log_event, log_exception
from tripdesk.modules.notifications.dispatch import Notifier
from tripdesk.modules.payments.models import DEPOSIT_PAYMENT_TYPE, PaymentRecord
from tripdesk.modules.payments.stripe import (
    PaymentIntent,
    PaymentProviderError,
    StripeClient,
    publishable_key_for_brand,
)
from tripdesk.modules.proposals.models import ActorType, ProposalStatus, TripProposal
from tripdesk.modules.proposals.service import (
    get_proposal_by_number,
    log_activity,
    require_proposal_by_number,
    require_valid_proposal_number,
)

logger = get_logger(__name__)


class PaymentClient(Protocol):
    def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntent: ...

    def create_payment_intent(
        self,
        *,
        amount: int,
        currency: str,
        metadata: dict[str, str],
        description: str | None = None,
        receipt_email: str | None = None,
        idempotency_key: str | None = None,
    ) -> PaymentIntent: ...


# Resolves the provider client for a brand; None means the brand has no keys.
ClientFactory = Callable[[int | None], PaymentClient | None]


@dataclass(frozen=True)
class DepositConfirmation:
    proposal: TripProposal
    already_paid: bool


@dataclass(frozen=True)
class DepositPaymentSession:
    payment_intent_id: str
    client_secret: str | None
    amount: Decimal
    amount_cents: int
    currency: str
    publishable_key: str | None


def to_cents(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def intent_amount(intent: PaymentIntent) -> Decimal:
    return (Decimal(intent.amount) / 100).quantize(Decimal("0.01"))


def deposit_idempotency_key(proposal_id: int, amount_cents: int) -> str:
    return f"pi_tp_{proposal_id}_{amount_cents}"


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def _require_client(client_factory: ClientFactory, proposal: TripProposal) -> PaymentClient:
    client = client_factory(proposal.brand_id)
    if client is None:
        raise _bad_request("Payment provider is not configured for this brand")
    return client


def create_deposit_payment(
    session: Session,
    *,
    proposal_number: str,
    client_factory: ClientFactory = StripeClient.for_brand,
) -> DepositPaymentSession:
    proposal = require_proposal_by_number(session, proposal_number=proposal_number)
    if proposal.deposit_paid:
        raise _bad_request("Deposit has already been paid")
    if proposal.status != ProposalStatus.ACCEPTED:
        raise _bad_request("Proposal must be accepted before paying the deposit")
    amount = Decimal(proposal.deposit_amount or 0)
    if amount <= 0:
        raise _bad_request("Proposal has no deposit amount")

    client = _require_client(client_factory, proposal)
    amount_cents = to_cents(amount)
    try:
        intent = client.create_payment_intent(
            amount=amount_cents,
            currency="usd",
            metadata={
                "payment_type": DEPOSIT_PAYMENT_TYPE,
                "trip_proposal_id": str(proposal.id),
                "proposal_number": proposal.proposal_number,
            },
            description=f"Deposit for proposal {proposal.proposal_number}",
            receipt_email=proposal.customer_email,
            idempotency_key=deposit_idempotency_key(proposal.id, amount_cents),
        )
    except PaymentProviderError as e:
        log_exception(logger, "payment.create.error", proposal_id=proposal.id)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e)) from e

    log_event(
        logger,
        "payment.intent_created",
        proposal_id=proposal.id,
        payment_intent_id=intent.id,
        amount_cents=amount_cents,
    )
    return DepositPaymentSession(
        payment_intent_id=intent.id,
        client_secret=intent.client_secret,
        amount=amount,
        amount_cents=amount_cents,
        currency=intent.currency or "usd",
        publishable_key=publishable_key_for_brand(proposal.brand_id),
    )


def intent_matches_proposal(intent: PaymentIntent, proposal: TripProposal) -> bool:
    return (
        intent.metadata.get("trip_proposal_id") == str(proposal.id)
        and intent.metadata.get("payment_type") == DEPOSIT_PAYMENT_TYPE
    )


def record_deposit_payment(
    session: Session, *, proposal: TripProposal, intent: PaymentIntent, source: str
) -> bool:
    """
    Mark the deposit paid and insert its payment row in one transaction.

    Returns False when another request already recorded the deposit; nothing is
    written in that case.
    """
    amount = intent_amount(intent)
    now = datetime.now(UTC)
    result = session.execute(
        update(TripProposal)
        .where(TripProposal.id == proposal.id, TripProposal.deposit_paid.is_(False))
        .values(deposit_paid=True, deposit_paid_at=now, deposit_payment_intent_id=intent.id)
    )
    if not result.rowcount:
        session.rollback()
        return False

    session.add(
        PaymentRecord(
            trip_proposal_id=proposal.id,
            payment_type=DEPOSIT_PAYMENT_TYPE,
            payment_intent_id=intent.id,
            amount=amount,
            currency=intent.currency or "usd",
            status=intent.status,
        )
    )
    log_activity(
        session,
        proposal_id=proposal.id,
        action="deposit_paid",
        description=f"Deposit of ${amount:,.2f} received",
        actor_type=ActorType.CUSTOMER if source == "confirm" else ActorType.SYSTEM,
        metadata={"payment_intent_id": intent.id, "amount": str(amount), "source": source},
    )
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        log_event(
            logger,
            "payment.record_conflict",
            proposal_id=proposal.id,
            payment_intent_id=intent.id,
        )
        return False

    if amount != Decimal(proposal.deposit_amount or 0):
        log_event(
            logger,
            "payment.amount_differs",
            proposal_id=proposal.id,
            charged=str(amount),
            expected=str(proposal.deposit_amount),
        )
    log_event(
        logger,
        "payment.deposit_recorded",
        proposal_id=proposal.id,
        payment_intent_id=intent.id,
        amount=str(amount),
        source=source,
    )
    return True


def _notify_deposit(notifier: Notifier, proposal_id: int, amount: Decimal) -> None:
    try:
        notifier.deposit_received(proposal_id, amount)
    except Exception:
        log_exception(logger, "payment.notify_failed", proposal_id=proposal_id)


def confirm_deposit_payment(
    session: Session,
    *,
    proposal_number: str,
    payment_intent_id: str | None,
    notifier: Notifier,
    client_factory: ClientFactory = StripeClient.for_brand,
) -> DepositConfirmation:
    require_valid_proposal_number(proposal_number)
    proposal = get_proposal_by_number(session, proposal_number=proposal_number)
    if not proposal:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Proposal not found")

    if proposal.deposit_paid:
        return DepositConfirmation(proposal=proposal, already_paid=True)

    payment_intent_id = (payment_intent_id or "").strip()
    if not payment_intent_id:
        raise _bad_request("payment_intent_id is required")

    client = _require_client(client_factory, proposal)
    try:
        intent = client.retrieve_payment_intent(payment_intent_id)
    except PaymentProviderError as e:
        # Confirmation is never retried automatically; the client may try again.
        log_exception(
            logger,
            "payment.confirm.provider_error",
            proposal_id=proposal.id,
            payment_intent_id=payment_intent_id,
        )
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e)) from e

    if intent.status != "succeeded":
        log_event(
            logger,
            "payment.confirm.not_succeeded",
            proposal_id=proposal.id,
            payment_intent_id=intent.id,
            intent_status=intent.status,
        )
        raise _bad_request("Payment has not succeeded")

    if not intent_matches_proposal(intent, proposal):
        log_event(
            logger,
            "payment.confirm.metadata_mismatch",
            proposal_id=proposal.id,
            payment_intent_id=intent.id,
            intent_proposal_id=intent.metadata.get("trip_proposal_id"),
        )
        raise _bad_request("Payment does not match this proposal")

    recorded = record_deposit_payment(session, proposal=proposal, intent=intent, source="confirm")
    session.refresh(proposal)
    if not recorded:
        return DepositConfirmation(proposal=proposal, already_paid=True)

    _notify_deposit(notifier, proposal.id, intent_amount(intent))
    return DepositConfirmation(proposal=proposal, already_paid=False)


def handle_payment_succeeded(
    session: Session, *, intent: PaymentIntent, notifier: Notifier
) -> bool:
    if intent.metadata.get("payment_type") != DEPOSIT_PAYMENT_TYPE:
        return False
    try:
        proposal_id = int(intent.metadata.get("trip_proposal_id") or "")
    except ValueError:
        log_event(logger, "payment.webhook.bad_metadata", payment_intent_id=intent.id)
        return False
    proposal = session.get(TripProposal, proposal_id)
    if not proposal:
        log_event(
            logger,
            "payment.webhook.unknown_proposal",
            payment_intent_id=intent.id,
            proposal_id=proposal_id,
        )
        return False
    if proposal.deposit_paid:
        return False

    recorded = record_deposit_payment(session, proposal=proposal, intent=intent, source="webhook")
    if recorded:
        _notify_deposit(notifier, proposal.id, intent_amount(intent))
    return recorded
