from __future__ import annotations

from decimal import Decimal

import resend
from resend.exceptions import ResendError
from sqlalchemy import select
from sqlalchemy.orm import Session

from tripdesk.core.config import settings
from tripdesk.core.db import SessionLocal
from tripdesk.core.logging import get_logger, log_event, log_exception
from tripdesk.modules.notifications.models import EmailLog, EmailStatus
from tripdesk.modules.proposals.models import TripProposal

logger = get_logger(__name__)

PROPOSAL_SENT = "proposal_sent"
PROPOSAL_ACCEPTED = "proposal_accepted"
DEPOSIT_RECEIVED = "deposit_received"

# A proposal gets each email type at most once; failed sends may be retried.
_FINAL_STATUSES = {EmailStatus.SENT, EmailStatus.SKIPPED}


def email_configured() -> bool:
    return bool(settings.resend_api_key)


def _already_sent(session: Session, *, proposal_id: int, email_type: str) -> EmailLog | None:
    return session.scalar(
        select(EmailLog).where(
            EmailLog.trip_proposal_id == proposal_id,
            EmailLog.email_type == email_type,
            EmailLog.status.in_(_FINAL_STATUSES),
        )
    )


def _post_resend(*, to: str, subject: str, text: str) -> str | None:
    resend.api_key = settings.resend_api_key
    response = resend.Emails.send(
        {
            "from": settings.email_from_address,
            "to": [to],
            "subject": subject,
            "text": text,
        }
    )
    message_id = response.get("id") if response else None
    return str(message_id) if message_id else None


def _deliver(
    session: Session, *, proposal: TripProposal, email_type: str, subject: str, text: str
) -> EmailStatus:
    existing = _already_sent(session, proposal_id=proposal.id, email_type=email_type)
    if existing:
        log_event(
            logger,
            "email.duplicate_suppressed",
            proposal_id=proposal.id,
            email_type=email_type,
            email_log_id=existing.id,
        )
        return existing.status

    recipient = proposal.customer_email
    entry = EmailLog(
        trip_proposal_id=proposal.id,
        email_type=email_type,
        recipient=recipient or "",
        subject=subject,
        status=EmailStatus.SKIPPED,
    )

    if not recipient:
        entry.error_message = "Proposal has no customer email"
    elif not email_configured():
        entry.error_message = "Email provider not configured"
    else:
        try:
            entry.provider_message_id = _post_resend(to=recipient, subject=subject, text=text)
            entry.status = EmailStatus.SENT
        # requests transport errors from the SDK are OSErrors.
        except (ResendError, OSError) as e:
            log_exception(
                logger, "email.send_failed", proposal_id=proposal.id, email_type=email_type
            )
            entry.status = EmailStatus.FAILED
            entry.error_message = str(e)[:500]

    session.add(entry)
    session.commit()
    log_event(
        logger,
        "email.processed",
        proposal_id=proposal.id,
        email_type=email_type,
        status=entry.status.value,
        reason=entry.error_message,
    )
    return entry.status


def _proposal_link(proposal: TripProposal) -> str:
    return f"{settings.base_url.rstrip('/')}/proposals/{proposal.proposal_number}"


def send_proposal_sent_email(
    *, proposal_id: int, custom_message: str | None = None
) -> EmailStatus | None:
    with SessionLocal() as session:
        proposal = session.get(TripProposal, proposal_id)
        if not proposal:
            log_event(logger, "email.proposal_missing", proposal_id=proposal_id)
            return None

        title = proposal.trip_title or "your trip"
        subject = f"Your trip proposal {proposal.proposal_number}"
        lines = [f"Hi {proposal.customer_name},", ""]
        if custom_message and custom_message.strip():
            lines += [custom_message.strip(), ""]
        lines.append(
            f"Your proposal for {title} starting {proposal.start_date.isoformat()} is ready "
            f"to review: {_proposal_link(proposal)}"
        )
        if proposal.valid_until:
            lines += ["", f"This proposal is valid until {proposal.valid_until.isoformat()}."]
        return _deliver(
            session,
            proposal=proposal,
            email_type=PROPOSAL_SENT,
            subject=subject,
            text="\n".join(lines),
        )


def send_proposal_accepted_email(*, proposal_id: int) -> EmailStatus | None:
    with SessionLocal() as session:
        proposal = session.get(TripProposal, proposal_id)
        if not proposal:
            log_event(logger, "email.proposal_missing", proposal_id=proposal_id)
            return None

        title = proposal.trip_title or "your trip"
        subject = f"Proposal {proposal.proposal_number} accepted"
        text = (
            f"Hi {proposal.customer_name},\n\n"
            f"Thank you for accepting proposal {proposal.proposal_number} for {title} "
            f"starting {proposal.start_date.isoformat()}.\n\n"
            f"A deposit of ${proposal.deposit_amount:,.2f} secures your booking. "
            f"You can pay it here: {_proposal_link(proposal)}\n\n"
            "We look forward to hosting you."
        )
        return _deliver(
            session,
            proposal=proposal,
            email_type=PROPOSAL_ACCEPTED,
            subject=subject,
            text=text,
        )


def send_deposit_received_email(*, proposal_id: int, amount: Decimal) -> EmailStatus | None:
    with SessionLocal() as session:
        proposal = session.get(TripProposal, proposal_id)
        if not proposal:
            log_event(logger, "email.proposal_missing", proposal_id=proposal_id)
            return None

        subject = f"Deposit received for {proposal.proposal_number}"
        text = (
            f"Hi {proposal.customer_name},\n\n"
            f"We received your deposit of ${Decimal(amount):,.2f} for proposal "
            f"{proposal.proposal_number}. Your trip is confirmed and our team will be in "
            "touch with final details.\n\n"
            f"Proposal: {_proposal_link(proposal)}"
        )
        return _deliver(
            session,
            proposal=proposal,
            email_type=DEPOSIT_RECEIVED,
            subject=subject,
            text=text,
        )
