from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from tripdesk.api.deps import get_client_ip
from tripdesk.core.db import db_session
from tripdesk.core.logging import set_actor_context
from tripdesk.modules.notifications.dispatch import Notifier, get_notifier
from tripdesk.modules.workflow.schemas import AcceptOut, AcceptRequest
from tripdesk.modules.workflow.service import accept_proposal

router = APIRouter(tags=["workflow"])


@router.post("/trip-proposals/{proposal_number}/accept", response_model=AcceptOut)
def accept_proposal_endpoint(
    proposal_number: str,
    payload: AcceptRequest,
    request: Request,
    session: Session = Depends(db_session),
    notifier: Notifier = Depends(get_notifier),
) -> AcceptOut:
    set_actor_context("customer")
    proposal = accept_proposal(
        session,
        proposal_number=proposal_number,
        signature=payload.signature,
        agreed_to_terms=payload.agreed_to_terms,
        notifier=notifier,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return AcceptOut.model_validate(proposal, from_attributes=True)
