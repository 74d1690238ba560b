from __future__ import annotations

from datetime import UTC, datetime

from fastapi import HTTPException, status
from sqlalchemy import update
from sqlalchemy.orm import Session

from tripdesk.core.logging import get_logger, log_event, log_exception
from tripdesk.modules.notifications.dispatch import Notifier
from tripdesk.modules.proposals.models import ActorType, ProposalStatus, TripProposal
from tripdesk.modules.proposals.service import (
    get_proposal_by_number,
    log_activity,
    require_valid_proposal_number,
    today_utc,
)

logger = get_logger(__name__)

_ACCEPTABLE = (ProposalStatus.SENT, ProposalStatus.VIEWED)

_STATUS_REJECTIONS: dict[ProposalStatus, str] = {
    ProposalStatus.DRAFT: "This proposal cannot be accepted until it has been sent",
    ProposalStatus.ACCEPTED: "This proposal has already been accepted",
    ProposalStatus.BOOKED: "This proposal has already been accepted and booked",
    ProposalStatus.EXPIRED: "This proposal has expired",
    ProposalStatus.DECLINED: "This proposal has been declined",
}


def _reject(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def _expire(session: Session, *, proposal: TripProposal) -> None:
    result = session.execute(
        update(TripProposal)
        .where(TripProposal.id == proposal.id, TripProposal.status.in_(_ACCEPTABLE))
        .values(status=ProposalStatus.EXPIRED)
    )
    if not result.rowcount:
        session.rollback()
        return
    log_activity(
        session,
        proposal_id=proposal.id,
        action="expired",
        description="Proposal expired before it was accepted",
        actor_type=ActorType.SYSTEM,
        metadata={"valid_until": proposal.valid_until.isoformat()},
    )
    session.commit()
    log_event(logger, "proposal.expired", proposal_id=proposal.id)


def accept_proposal(
    session: Session,
    *,
    proposal_number: str,
    signature: str,
    agreed_to_terms: bool,
    notifier: Notifier,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> TripProposal:
    require_valid_proposal_number(proposal_number)
    if not agreed_to_terms:
        raise _reject("You must agree to the terms to accept this proposal")
    signature = (signature or "").strip()
    if not signature:
        raise _reject("A signature is required to accept this proposal")

    proposal = get_proposal_by_number(session, proposal_number=proposal_number)
    if not proposal:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Proposal not found")

    if proposal.status not in _ACCEPTABLE:
        raise _reject(
            _STATUS_REJECTIONS.get(proposal.status, "This proposal cannot be accepted")
        )

    if proposal.valid_until and proposal.valid_until < today_utc():
        _expire(session, proposal=proposal)
        raise _reject("This proposal has expired")

    now = datetime.now(UTC)
    result = session.execute(
        update(TripProposal)
        .where(TripProposal.id == proposal.id, TripProposal.status.in_(_ACCEPTABLE))
        .values(
            status=ProposalStatus.ACCEPTED,
            accepted_at=now,
            accepted_signature=signature,
            accepted_ip=ip_address,
        )
    )
    if not result.rowcount:
        # A concurrent request moved the proposal first.
        session.rollback()
        raise _reject(_STATUS_REJECTIONS[ProposalStatus.ACCEPTED])

    log_activity(
        session,
        proposal_id=proposal.id,
        action="accepted",
        description=f"Proposal accepted by {signature}",
        actor_type=ActorType.CUSTOMER,
        actor_name=signature,
        ip_address=ip_address,
        user_agent=user_agent,
        metadata={"signature": signature, "agreed_to_terms": True},
    )
    session.commit()
    session.refresh(proposal)
    log_event(
        logger,
        "proposal.accepted",
        proposal_id=proposal.id,
        proposal_number=proposal.proposal_number,
    )

    try:
        notifier.proposal_accepted(proposal.id)
    except Exception:
        log_exception(logger, "proposal.accepted.notify_failed", proposal_id=proposal.id)
    return proposal
