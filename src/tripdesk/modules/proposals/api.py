from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from tripdesk.api.deps import get_client_ip, get_current_staff
from tripdesk.core.db import db_session
from tripdesk.modules.notifications.dispatch import Notifier, get_notifier
from tripdesk.modules.proposals.models import ProposalStatus
from tripdesk.modules.proposals.schemas import (
    ActivityOut,
    DayCreate,
    DayOut,
    DayUpdate,
    GuestCreate,
    GuestOut,
    GuestUpdate,
    InclusionCreate,
    InclusionOut,
    InclusionUpdate,
    PricingOut,
    ProposalCreate,
    ProposalDetailOut,
    ProposalOut,
    SendRequest,
    StatusUpdate,
    StopCreate,
    StopOut,
    StopReorder,
    StopUpdate,
)
from tripdesk.modules.proposals.service import (
    add_day,
    add_guest,
    add_inclusion,
    add_stop,
    calculate_pricing,
    create_proposal,
    delete_day,
    delete_guest,
    delete_inclusion,
    delete_stop,
    duplicate_proposal,
    get_day,
    get_guest,
    get_inclusion,
    get_proposal,
    get_stop,
    list_activity,
    list_proposals,
    record_view,
    reorder_stops,
    require_proposal_by_number,
    send_proposal,
    update_day,
    update_guest,
    update_inclusion,
    update_status,
    update_stop,
)

router = APIRouter(tags=["proposals"])


@router.post("/admin/trip-proposals", response_model=ProposalDetailOut)
def create_proposal_endpoint(
    payload: ProposalCreate,
    session: Session = Depends(db_session),
    staff: str = Depends(get_current_staff),
) -> ProposalDetailOut:
    proposal = create_proposal(session, data=payload, created_by=staff)
    return ProposalDetailOut.model_validate(proposal, from_attributes=True)


@router.get("/admin/trip-proposals", response_model=list[ProposalOut])
def list_proposals_endpoint(
    status_filter: ProposalStatus | None = None,
    session: Session = Depends(db_session),
    _staff: str = Depends(get_current_staff),
) -> list[ProposalOut]:
    proposals = list_proposals(session, status_filter=status_filter)
    return [ProposalOut.model_validate(p, from_attributes=True) for p in proposals]


@router.get("/admin/trip-proposals/{proposal_id}", response_model=ProposalDetailOut)
def get_proposal_endpoint(
    proposal_id: int,
    session: Session = Depends(db_session),
    _staff: str = Depends(get_current_staff),
) -> ProposalDetailOut:
    proposal = get_proposal(session, proposal_id=proposal_id)
    return ProposalDetailOut.model_validate(proposal, from_attributes=True)


@router.post("/admin/trip-proposals/{proposal_id}/days", response_model=DayOut)
def add_day_endpoint(
    proposal_id: int,
    payload: DayCreate,
    session: Session = Depends(db_session),
    _staff: str = Depends(get_current_staff),
) -> DayOut:
    proposal = get_proposal(session, proposal_id=proposal_id)
    day = add_day(session, proposal=proposal, data=payload)
    return DayOut.model_validate(day, from_attributes=True)


@router.post("/admin/trip-proposals/{proposal_id}/days/{day_id}/stops", response_model=StopOut)
def add_stop_endpoint(
    proposal_id: int,
    day_id: int,
    payload: StopCreate,
    session: Session = Depends(db_session),
    _staff: str = Depends(get_current_staff),
) -> StopOut:
    proposal = get_proposal(session, proposal_id=proposal_id)
    day = get_day(session, proposal=proposal, day_id=day_id)
    stop = add_stop(session, proposal=proposal, day=day, data=payload)
    return StopOut.model_validate(stop, from_attributes=True)


@router.post("/admin/trip-proposals/{proposal_id}/guests", response_model=GuestOut)
def add_guest_endpoint(
    proposal_id: int,
    payload: GuestCreate,
    session: Session = Depends(db_session),
    _staff: str = Depends(get_current_staff),
) -> GuestOut:
    proposal = get_proposal(session, proposal_id=proposal_id)
    guest = add_guest(session, proposal=proposal, data=payload)
    return GuestOut.model_validate(guest, from_attributes=True)


@router.post("/admin/trip-proposals/{proposal_id}/inclusions", response_model=InclusionOut)
def add_inclusion_endpoint(
    proposal_id: int,
    payload: InclusionCreate,
    session: Session = Depends(db_session),
    _staff: str = Depends(get_current_staff),
) -> InclusionOut:
    proposal = get_proposal(session, proposal_id=proposal_id)
    inclusion = add_inclusion(session, proposal=proposal, data=payload)
    return InclusionOut.model_validate(inclusion, from_attributes=True)


@router.post("/admin/trip-proposals/{proposal_id}/duplicate", response_model=ProposalDetailOut)
def duplicate_proposal_endpoint(
    proposal_id: int,
    session: Session = Depends(db_session),
    staff: str = Depends(get_current_staff),
) -> ProposalDetailOut:
    proposal = get_proposal(session, proposal_id=proposal_id)
    clone = duplicate_proposal(session, proposal=proposal, created_by=staff)
    return ProposalDetailOut.model_validate(clone, from_attributes=True)


@router.patch("/admin/trip-proposals/{proposal_id}/days/{day_id}", response_model=DayOut)
def update_day_endpoint(
    proposal_id: int,
    day_id: int,
    payload: DayUpdate,
    session: Session = Depends(db_session),
    _staff: str = Depends(get_current_staff),
) -> DayOut:
    proposal = get_proposal(session, proposal_id=proposal_id)
    day = get_day(session, proposal=proposal, day_id=day_id)
    updated = update_day(session, proposal=proposal, day=day, data=payload)
    return DayOut.model_validate(updated, from_attributes=True)


@router.delete("/admin/trip-proposals/{proposal_id}/days/{day_id}")
def delete_day_endpoint(
    proposal_id: int,
    day_id: int,
    session: Session = Depends(db_session),
    _staff: str = Depends(get_current_staff),
) -> Response:
    proposal = get_proposal(session, proposal_id=proposal_id)
    day = get_day(session, proposal=proposal, day_id=day_id)
    delete_day(session, proposal=proposal, day=day)
    return Response(status_code=204)


@router.patch(
    "/admin/trip-proposals/{proposal_id}/days/{day_id}/stops/{stop_id}", response_model=StopOut
)
def update_stop_endpoint(
    proposal_id: int,
    day_id: int,
    stop_id: int,
    payload: StopUpdate,
    session: Session = Depends(db_session),
    _staff: str = Depends(get_current_staff),
) -> StopOut:
    proposal = get_proposal(session, proposal_id=proposal_id)
    day = get_day(session, proposal=proposal, day_id=day_id)
    stop = get_stop(session, day=day, stop_id=stop_id)
    updated = update_stop(session, proposal=proposal, stop=stop, data=payload)
    return StopOut.model_validate(updated, from_attributes=True)


@router.delete("/admin/trip-proposals/{proposal_id}/days/{day_id}/stops/{stop_id}")
def delete_stop_endpoint(
    proposal_id: int,
    day_id: int,
    stop_id: int,
    session: Session = Depends(db_session),
    _staff: str = Depends(get_current_staff),
) -> Response:
    proposal = get_proposal(session, proposal_id=proposal_id)
    day = get_day(session, proposal=proposal, day_id=day_id)
    stop = get_stop(session, day=day, stop_id=stop_id)
    delete_stop(session, proposal=proposal, stop=stop)
    return Response(status_code=204)


@router.put(
    "/admin/trip-proposals/{proposal_id}/days/{day_id}/stops/order",
    response_model=list[StopOut],
)
def reorder_stops_endpoint(
    proposal_id: int,
    day_id: int,
    payload: StopReorder,
    session: Session = Depends(db_session),
    _staff: str = Depends(get_current_staff),
) -> list[StopOut]:
    proposal = get_proposal(session, proposal_id=proposal_id)
    day = get_day(session, proposal=proposal, day_id=day_id)
    stops = reorder_stops(session, proposal=proposal, day=day, stop_ids=payload.stop_ids)
    return [StopOut.model_validate(s, from_attributes=True) for s in stops]


@router.patch("/admin/trip-proposals/{proposal_id}/guests/{guest_id}", response_model=GuestOut)
def update_guest_endpoint(
    proposal_id: int,
    guest_id: int,
    payload: GuestUpdate,
    session: Session = Depends(db_session),
    _staff: str = Depends(get_current_staff),
) -> GuestOut:
    proposal = get_proposal(session, proposal_id=proposal_id)
    guest = get_guest(session, proposal=proposal, guest_id=guest_id)
    updated = update_guest(session, proposal=proposal, guest=guest, data=payload)
    return GuestOut.model_validate(updated, from_attributes=True)


@router.delete("/admin/trip-proposals/{proposal_id}/guests/{guest_id}")
def delete_guest_endpoint(
    proposal_id: int,
    guest_id: int,
    session: Session = Depends(db_session),
    _staff: str = Depends(get_current_staff),
) -> Response:
    proposal = get_proposal(session, proposal_id=proposal_id)
    guest = get_guest(session, proposal=proposal, guest_id=guest_id)
    delete_guest(session, proposal=proposal, guest=guest)
    return Response(status_code=204)


@router.patch(
    "/admin/trip-proposals/{proposal_id}/inclusions/{inclusion_id}", response_model=InclusionOut
)
def update_inclusion_endpoint(
    proposal_id: int,
    inclusion_id: int,
    payload: InclusionUpdate,
    session: Session = Depends(db_session),
    _staff: str = Depends(get_current_staff),
) -> InclusionOut:
    proposal = get_proposal(session, proposal_id=proposal_id)
    inclusion = get_inclusion(session, proposal=proposal, inclusion_id=inclusion_id)
    updated = update_inclusion(session, proposal=proposal, inclusion=inclusion, data=payload)
    return InclusionOut.model_validate(updated, from_attributes=True)


@router.delete("/admin/trip-proposals/{proposal_id}/inclusions/{inclusion_id}")
def delete_inclusion_endpoint(
    proposal_id: int,
    inclusion_id: int,
    session: Session = Depends(db_session),
    _staff: str = Depends(get_current_staff),
) -> Response:
    proposal = get_proposal(session, proposal_id=proposal_id)
    inclusion = get_inclusion(session, proposal=proposal, inclusion_id=inclusion_id)
    delete_inclusion(session, proposal=proposal, inclusion=inclusion)
    return Response(status_code=204)


@router.post("/admin/trip-proposals/{proposal_id}/pricing", response_model=PricingOut)
def calculate_pricing_endpoint(
    proposal_id: int,
    session: Session = Depends(db_session),
    _staff: str = Depends(get_current_staff),
) -> PricingOut:
    proposal = get_proposal(session, proposal_id=proposal_id)
    pricing = calculate_pricing(session, proposal=proposal)
    return PricingOut.model_validate(pricing, from_attributes=True)


@router.post("/admin/trip-proposals/{proposal_id}/status", response_model=ProposalOut)
def update_status_endpoint(
    proposal_id: int,
    payload: StatusUpdate,
    request: Request,
    session: Session = Depends(db_session),
    staff: str = Depends(get_current_staff),
) -> ProposalOut:
    proposal = get_proposal(session, proposal_id=proposal_id)
    updated = update_status(
        session,
        proposal=proposal,
        new_status=payload.status,
        actor_name=staff,
        ip_address=get_client_ip(request),
    )
    return ProposalOut.model_validate(updated, from_attributes=True)


@router.post("/admin/trip-proposals/{proposal_id}/send", response_model=ProposalOut)
def send_proposal_endpoint(
    proposal_id: int,
    payload: SendRequest | None = None,
    session: Session = Depends(db_session),
    staff: str = Depends(get_current_staff),
    notifier: Notifier = Depends(get_notifier),
) -> ProposalOut:
    proposal = get_proposal(session, proposal_id=proposal_id)
    sent = send_proposal(
        session,
        proposal=proposal,
        actor_name=staff,
        custom_message=payload.custom_message if payload else None,
        notifier=notifier,
    )
    return ProposalOut.model_validate(sent, from_attributes=True)


@router.get("/admin/trip-proposals/{proposal_id}/activity", response_model=list[ActivityOut])
def list_activity_endpoint(
    proposal_id: int,
    session: Session = Depends(db_session),
    _staff: str = Depends(get_current_staff),
) -> list[ActivityOut]:
    proposal = get_proposal(session, proposal_id=proposal_id)
    rows = list_activity(session, proposal_id=proposal.id)
    return [ActivityOut.model_validate(r, from_attributes=True) for r in rows]


@router.get("/trip-proposals/{proposal_number}", response_model=ProposalDetailOut)
def view_proposal_endpoint(
    proposal_number: str,
    request: Request,
    session: Session = Depends(db_session),
) -> ProposalDetailOut:
    proposal = require_proposal_by_number(session, proposal_number=proposal_number)
    # Drafts are not visible to customers yet.
    if proposal.status == ProposalStatus.DRAFT:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Proposal not found")
    viewed = record_view(
        session,
        proposal=proposal,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return ProposalDetailOut.model_validate(viewed, from_attributes=True)
