from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from fastapi import HTTPException, status
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from tripdesk.core.config import settings
from tripdesk.core.logging import get_logger, log_event, log_exception
from tripdesk.modules.notifications.dispatch import Notifier
from tripdesk.modules.proposals.models import (
    ActorType,
    PricingType,
    ProposalActivity,
    ProposalStatus,
    TripProposal,
    TripProposalDay,
    TripProposalGuest,
    TripProposalInclusion,
    TripProposalStop,
)
from tripdesk.modules.proposals.schemas import (
    DayCreate,
    DayUpdate,
    GuestCreate,
    GuestUpdate,
    InclusionCreate,
    InclusionUpdate,
    ProposalCreate,
    StopCreate,
    StopUpdate,
)
from tripdesk.modules.venues.models import Venue

logger = get_logger(__name__)

PROPOSAL_NUMBER_RE = re.compile(r"^[A-Za-z]+-\d+$")

# Staff-driven moves only. Acceptance goes through the customer accept workflow,
# which checks the signature, expiry and deposit state.
STATUS_TRANSITIONS: dict[ProposalStatus, frozenset[ProposalStatus]] = {
    ProposalStatus.DRAFT: frozenset({ProposalStatus.SENT, ProposalStatus.DECLINED}),
    ProposalStatus.SENT: frozenset(
        {ProposalStatus.VIEWED, ProposalStatus.DECLINED, ProposalStatus.EXPIRED}
    ),
    ProposalStatus.VIEWED: frozenset(
        {ProposalStatus.DECLINED, ProposalStatus.EXPIRED, ProposalStatus.SENT}
    ),
    ProposalStatus.ACCEPTED: frozenset({ProposalStatus.BOOKED}),
    ProposalStatus.DECLINED: frozenset({ProposalStatus.DRAFT}),
    ProposalStatus.EXPIRED: frozenset({ProposalStatus.DRAFT}),
    ProposalStatus.BOOKED: frozenset(),
}

_CENTS = Decimal("0.01")


def today_utc() -> date:
    return datetime.now(UTC).date()


def _money(value: Decimal) -> Decimal:
    return value.quantize(_CENTS, rounding=ROUND_HALF_UP)


def is_valid_proposal_number(value: str | None) -> bool:
    return bool(value) and bool(PROPOSAL_NUMBER_RE.match(value))


def require_valid_proposal_number(value: str | None) -> str:
    if not is_valid_proposal_number(value):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid proposal number format"
        )
    return value  # type: ignore[return-value]


def generate_proposal_number(session: Session, *, year: int | None = None) -> str:
    year = year or today_utc().year
    prefix = f"{settings.proposal_number_prefix}-{year}"
    existing = session.scalars(
        select(TripProposal.proposal_number).where(
            TripProposal.proposal_number.like(f"{prefix}%")
        )
    )
    highest = 0
    for number in existing:
        suffix = number[len(prefix) :]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return f"{prefix}{highest + 1:04d}"


def log_activity(
    session: Session,
    *,
    proposal_id: int,
    action: str,
    description: str | None = None,
    actor_type: ActorType = ActorType.SYSTEM,
    actor_name: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> ProposalActivity:
    """Stage an activity row; the caller's commit persists it with the state change."""
    activity = ProposalActivity(
        trip_proposal_id=proposal_id,
        action=action,
        description=description,
        actor_type=actor_type,
        actor_name=actor_name,
        ip_address=ip_address,
        user_agent=user_agent,
        metadata_json=metadata or {},
    )
    session.add(activity)
    return activity


def list_activity(session: Session, *, proposal_id: int) -> list[ProposalActivity]:
    return list(
        session.scalars(
            select(ProposalActivity)
            .where(ProposalActivity.trip_proposal_id == proposal_id)
            .order_by(ProposalActivity.created_at.asc(), ProposalActivity.id.asc())
        )
    )


def create_proposal(
    session: Session, *, data: ProposalCreate, created_by: str | None = None
) -> TripProposal:
    valid_until = data.valid_until or today_utc() + timedelta(days=settings.proposal_valid_days)
    tax_rate = data.tax_rate if data.tax_rate is not None else Decimal(settings.default_tax_rate)

    proposal = TripProposal(
        proposal_number=generate_proposal_number(session),
        status=ProposalStatus.DRAFT,
        brand_id=data.brand_id,
        customer_name=data.customer_name.strip(),
        customer_email=(data.customer_email or "").strip().lower() or None,
        customer_phone=data.customer_phone,
        trip_type=data.trip_type,
        trip_title=data.trip_title,
        party_size=data.party_size,
        start_date=data.start_date,
        end_date=data.end_date,
        introduction=data.introduction,
        special_notes=data.special_notes,
        internal_notes=data.internal_notes,
        valid_until=valid_until,
        discount_percentage=data.discount_percentage,
        tax_rate=tax_rate,
        gratuity_percentage=data.gratuity_percentage,
        deposit_percentage=data.deposit_percentage,
        created_by=created_by,
    )
    proposal.days.append(
        TripProposalDay(day_number=1, trip_date=data.start_date, title="Day 1")
    )
    session.add(proposal)
    session.flush()
    log_activity(
        session,
        proposal_id=proposal.id,
        action="created",
        description=f"Proposal {proposal.proposal_number} created",
        actor_type=ActorType.STAFF if created_by else ActorType.SYSTEM,
        actor_name=created_by,
    )
    session.commit()
    session.refresh(proposal)
    log_event(
        logger,
        "proposal.created",
        proposal_id=proposal.id,
        proposal_number=proposal.proposal_number,
    )
    return proposal


def get_proposal(session: Session, *, proposal_id: int) -> TripProposal:
    proposal = session.get(TripProposal, proposal_id)
    if not proposal:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Proposal not found")
    return proposal


def get_proposal_by_number(session: Session, *, proposal_number: str) -> TripProposal | None:
    return session.scalar(
        select(TripProposal).where(TripProposal.proposal_number == proposal_number)
    )


def require_proposal_by_number(session: Session, *, proposal_number: str) -> TripProposal:
    require_valid_proposal_number(proposal_number)
    proposal = get_proposal_by_number(session, proposal_number=proposal_number)
    if not proposal:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Proposal not found")
    return proposal


def list_proposals(
    session: Session, *, status_filter: ProposalStatus | None = None
) -> list[TripProposal]:
    stmt = select(TripProposal).order_by(TripProposal.created_at.desc(), TripProposal.id.desc())
    if status_filter is not None:
        stmt = stmt.where(TripProposal.status == status_filter)
    return list(session.scalars(stmt))


def _require_editable(proposal: TripProposal) -> None:
    if proposal.status in {ProposalStatus.ACCEPTED, ProposalStatus.BOOKED}:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Proposal is {proposal.status.value} and can no longer be edited",
        )


def add_day(session: Session, *, proposal: TripProposal, data: DayCreate) -> TripProposalDay:
    _require_editable(proposal)
    next_number = (
        session.scalar(
            select(func.max(TripProposalDay.day_number)).where(
                TripProposalDay.trip_proposal_id == proposal.id
            )
        )
        or 0
    ) + 1
    day = TripProposalDay(
        trip_proposal_id=proposal.id,
        day_number=next_number,
        trip_date=data.trip_date,
        title=data.title or f"Day {next_number}",
        description=data.description,
        notes=data.notes,
    )
    session.add(day)
    session.commit()
    session.refresh(day)
    return day


def get_day(session: Session, *, proposal: TripProposal, day_id: int) -> TripProposalDay:
    day = session.scalar(
        select(TripProposalDay).where(
            TripProposalDay.id == day_id, TripProposalDay.trip_proposal_id == proposal.id
        )
    )
    if not day:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Day not found")
    return day


def add_stop(
    session: Session, *, proposal: TripProposal, day: TripProposalDay, data: StopCreate
) -> TripProposalStop:
    _require_editable(proposal)
    if data.venue_id is not None and not session.get(Venue, data.venue_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unknown venue")
    if data.venue_id is None and not data.custom_name:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A stop needs either a venue or a custom name",
        )

    stop_order = data.stop_order
    if stop_order is None:
        stop_order = (
            session.scalar(
                select(func.max(TripProposalStop.stop_order)).where(
                    TripProposalStop.trip_proposal_day_id == day.id
                )
            )
            or 0
        ) + 1
    stop = TripProposalStop(
        trip_proposal_day_id=day.id,
        **data.model_dump(exclude={"stop_order"}),
        stop_order=stop_order,
    )
    session.add(stop)
    session.commit()
    session.refresh(stop)
    return stop


def add_guest(
    session: Session, *, proposal: TripProposal, data: GuestCreate
) -> TripProposalGuest:
    _require_editable(proposal)
    if data.is_primary:
        for guest in proposal.guests:
            guest.is_primary = False
    guest = TripProposalGuest(trip_proposal_id=proposal.id, **data.model_dump())
    session.add(guest)
    session.commit()
    session.refresh(guest)
    return guest


def _inclusion_total(
    inclusion: TripProposalInclusion, *, party_size: int, day_count: int
) -> Decimal:
    quantity = Decimal(inclusion.quantity or 0)
    unit_price = Decimal(inclusion.unit_price or 0)
    if inclusion.pricing_type == PricingType.PER_PERSON:
        return _money(unit_price * quantity * party_size)
    if inclusion.pricing_type == PricingType.PER_DAY:
        return _money(unit_price * quantity * max(day_count, 1))
    return _money(unit_price * quantity)


def add_inclusion(
    session: Session, *, proposal: TripProposal, data: InclusionCreate
) -> TripProposalInclusion:
    _require_editable(proposal)
    inclusion = TripProposalInclusion(trip_proposal_id=proposal.id, **data.model_dump())
    inclusion.total_price = _inclusion_total(
        inclusion, party_size=proposal.party_size, day_count=len(proposal.days)
    )
    session.add(inclusion)
    session.commit()
    session.refresh(inclusion)
    return inclusion


def _apply_changes(
    target: Any, data: BaseModel, *, clearable: frozenset[str] = frozenset()
) -> None:
    # Partial update: only fields sent by the client; nulls clear optional columns only.
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None and field not in clearable:
            continue
        setattr(target, field, value)


def _renumber_days(session: Session, *, proposal_id: int) -> None:
    days = session.scalars(
        select(TripProposalDay)
        .where(TripProposalDay.trip_proposal_id == proposal_id)
        .order_by(TripProposalDay.day_number.asc())
    )
    # Flush each move so (proposal, day_number) stays unique at every step.
    for number, day in enumerate(days, start=1):
        if day.day_number != number:
            day.day_number = number
            session.flush()


def _renumber_stops(session: Session, *, day_id: int) -> None:
    stops = session.scalars(
        select(TripProposalStop)
        .where(TripProposalStop.trip_proposal_day_id == day_id)
        .order_by(TripProposalStop.stop_order.asc(), TripProposalStop.id.asc())
    )
    for order, stop in enumerate(stops, start=1):
        stop.stop_order = order


def update_day(
    session: Session, *, proposal: TripProposal, day: TripProposalDay, data: DayUpdate
) -> TripProposalDay:
    _require_editable(proposal)
    _apply_changes(day, data, clearable=frozenset({"title", "description", "notes"}))
    session.add(day)
    session.commit()
    session.refresh(day)
    return day


def delete_day(session: Session, *, proposal: TripProposal, day: TripProposalDay) -> None:
    _require_editable(proposal)
    day_number = day.day_number
    session.delete(day)
    session.flush()
    _renumber_days(session, proposal_id=proposal.id)
    session.commit()
    session.refresh(proposal)
    log_event(logger, "proposal.day_deleted", proposal_id=proposal.id, day_number=day_number)


def get_stop(session: Session, *, day: TripProposalDay, stop_id: int) -> TripProposalStop:
    stop = session.scalar(
        select(TripProposalStop).where(
            TripProposalStop.id == stop_id, TripProposalStop.trip_proposal_day_id == day.id
        )
    )
    if not stop:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Stop not found")
    return stop


def update_stop(
    session: Session, *, proposal: TripProposal, stop: TripProposalStop, data: StopUpdate
) -> TripProposalStop:
    _require_editable(proposal)
    changes = data.model_dump(exclude_unset=True)
    venue_id = changes.get("venue_id", stop.venue_id)
    if venue_id is not None and not session.get(Venue, venue_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unknown venue")
    if venue_id is None and not changes.get("custom_name", stop.custom_name):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A stop needs either a venue or a custom name",
        )
    _apply_changes(
        stop,
        data,
        clearable=frozenset(
            {
                "venue_id",
                "custom_name",
                "custom_address",
                "scheduled_time",
                "duration_minutes",
                "client_notes",
                "internal_notes",
            }
        ),
    )
    session.add(stop)
    session.commit()
    session.refresh(stop)
    return stop


def delete_stop(session: Session, *, proposal: TripProposal, stop: TripProposalStop) -> None:
    _require_editable(proposal)
    day_id = stop.trip_proposal_day_id
    session.delete(stop)
    session.flush()
    _renumber_stops(session, day_id=day_id)
    session.commit()


def reorder_stops(
    session: Session, *, proposal: TripProposal, day: TripProposalDay, stop_ids: list[int]
) -> list[TripProposalStop]:
    _require_editable(proposal)
    stops = {
        stop.id: stop
        for stop in session.scalars(
            select(TripProposalStop).where(TripProposalStop.trip_proposal_day_id == day.id)
        )
    }
    if len(stop_ids) != len(set(stop_ids)) or set(stop_ids) != set(stops):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Stop order must list every stop of the day exactly once",
        )
    for order, stop_id in enumerate(stop_ids, start=1):
        stops[stop_id].stop_order = order
    session.commit()
    return [stops[stop_id] for stop_id in stop_ids]


def get_guest(session: Session, *, proposal: TripProposal, guest_id: int) -> TripProposalGuest:
    guest = session.scalar(
        select(TripProposalGuest).where(
            TripProposalGuest.id == guest_id, TripProposalGuest.trip_proposal_id == proposal.id
        )
    )
    if not guest:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Guest not found")
    return guest


def update_guest(
    session: Session, *, proposal: TripProposal, guest: TripProposalGuest, data: GuestUpdate
) -> TripProposalGuest:
    _require_editable(proposal)
    if data.is_primary:
        for other in proposal.guests:
            if other.id != guest.id:
                other.is_primary = False
    _apply_changes(
        guest,
        data,
        clearable=frozenset(
            {"email", "phone", "dietary_restrictions", "accessibility_needs", "special_requests"}
        ),
    )
    session.add(guest)
    session.commit()
    session.refresh(guest)
    return guest


def delete_guest(session: Session, *, proposal: TripProposal, guest: TripProposalGuest) -> None:
    _require_editable(proposal)
    session.delete(guest)
    session.commit()


def get_inclusion(
    session: Session, *, proposal: TripProposal, inclusion_id: int
) -> TripProposalInclusion:
    inclusion = session.scalar(
        select(TripProposalInclusion).where(
            TripProposalInclusion.id == inclusion_id,
            TripProposalInclusion.trip_proposal_id == proposal.id,
        )
    )
    if not inclusion:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Inclusion not found")
    return inclusion


def update_inclusion(
    session: Session,
    *,
    proposal: TripProposal,
    inclusion: TripProposalInclusion,
    data: InclusionUpdate,
) -> TripProposalInclusion:
    _require_editable(proposal)
    _apply_changes(inclusion, data)
    inclusion.total_price = _inclusion_total(
        inclusion, party_size=proposal.party_size, day_count=len(proposal.days)
    )
    session.add(inclusion)
    session.commit()
    session.refresh(inclusion)
    return inclusion


def delete_inclusion(
    session: Session, *, proposal: TripProposal, inclusion: TripProposalInclusion
) -> None:
    _require_editable(proposal)
    session.delete(inclusion)
    session.commit()


def validate_status_transition(current: ProposalStatus, target: ProposalStatus) -> None:
    if target not in STATUS_TRANSITIONS.get(current, frozenset()):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot change proposal status from {current.value} to {target.value}",
        )


def update_status(
    session: Session,
    *,
    proposal: TripProposal,
    new_status: ProposalStatus,
    actor_type: ActorType = ActorType.STAFF,
    actor_name: str | None = None,
    ip_address: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> TripProposal:
    previous = proposal.status
    validate_status_transition(previous, new_status)

    now = datetime.now(UTC)
    proposal.status = new_status
    if new_status == ProposalStatus.SENT:
        proposal.sent_at = now

    log_activity(
        session,
        proposal_id=proposal.id,
        action="status_changed",
        description=f"Status changed from {previous.value} to {new_status.value}",
        actor_type=actor_type,
        actor_name=actor_name,
        ip_address=ip_address,
        metadata={"from": previous.value, "to": new_status.value, **(metadata or {})},
    )
    session.add(proposal)
    session.commit()
    session.refresh(proposal)
    log_event(
        logger,
        "proposal.status_changed",
        proposal_id=proposal.id,
        from_status=previous.value,
        to_status=new_status.value,
    )
    return proposal


def send_proposal(
    session: Session,
    *,
    proposal: TripProposal,
    actor_name: str | None = None,
    custom_message: str | None = None,
    notifier: Notifier | None = None,
) -> TripProposal:
    if proposal.status == ProposalStatus.SENT:
        # Re-sending keeps the status and refreshes the delivery timestamp.
        proposal.sent_at = datetime.now(UTC)
        log_activity(
            session,
            proposal_id=proposal.id,
            action="resent",
            description="Proposal re-sent to customer",
            actor_type=ActorType.STAFF,
            actor_name=actor_name,
        )
        session.add(proposal)
        session.commit()
        session.refresh(proposal)
    else:
        if proposal.status == ProposalStatus.DRAFT and not proposal.customer_email:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Proposal needs a customer email before it can be sent",
            )
        proposal = update_status(
            session,
            proposal=proposal,
            new_status=ProposalStatus.SENT,
            actor_type=ActorType.STAFF,
            actor_name=actor_name,
        )

    if notifier is not None:
        try:
            notifier.proposal_sent(proposal.id, custom_message)
        except Exception:
            log_exception(logger, "proposal.sent.notify_failed", proposal_id=proposal.id)
    return proposal


def record_view(
    session: Session,
    *,
    proposal: TripProposal,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> TripProposal:
    now = datetime.now(UTC)
    first_view = proposal.first_viewed_at is None
    if first_view:
        proposal.first_viewed_at = now
    proposal.last_viewed_at = now
    proposal.view_count = (proposal.view_count or 0) + 1

    if proposal.status == ProposalStatus.SENT:
        proposal.status = ProposalStatus.VIEWED
        log_activity(
            session,
            proposal_id=proposal.id,
            action="viewed",
            description="Customer opened the proposal",
            actor_type=ActorType.CUSTOMER,
            ip_address=ip_address,
            user_agent=user_agent,
            metadata={"first_view": first_view},
        )
    session.add(proposal)
    session.commit()
    session.refresh(proposal)
    return proposal


@dataclass(frozen=True)
class PricingBreakdown:
    stops_subtotal: Decimal
    inclusions_subtotal: Decimal
    subtotal: Decimal
    discount_amount: Decimal
    taxes: Decimal
    gratuity_amount: Decimal
    total: Decimal
    deposit_amount: Decimal


def compute_pricing(proposal: TripProposal) -> PricingBreakdown:
    party_size = proposal.party_size or 0
    stops_subtotal = Decimal("0")
    for day in proposal.days:
        for stop in day.stops:
            stops_subtotal += Decimal(stop.per_person_cost or 0) * party_size
            stops_subtotal += Decimal(stop.flat_cost or 0)
            stops_subtotal += (
                Decimal(stop.room_rate or 0) * (stop.num_rooms or 0) * (stop.nights or 0)
            )

    inclusions_subtotal = Decimal("0")
    for inclusion in proposal.inclusions:
        inclusions_subtotal += _inclusion_total(
            inclusion, party_size=party_size, day_count=len(proposal.days)
        )

    subtotal = _money(stops_subtotal + inclusions_subtotal)
    discount_amount = _money(subtotal * Decimal(proposal.discount_percentage or 0) / 100)
    discounted = subtotal - discount_amount
    taxes = _money(discounted * Decimal(proposal.tax_rate or 0))
    gratuity_amount = _money(discounted * Decimal(proposal.gratuity_percentage or 0) / 100)
    total = _money(discounted + taxes + gratuity_amount)
    deposit_amount = _money(total * Decimal(proposal.deposit_percentage or 0) / 100)
    return PricingBreakdown(
        stops_subtotal=_money(stops_subtotal),
        inclusions_subtotal=_money(inclusions_subtotal),
        subtotal=subtotal,
        discount_amount=discount_amount,
        taxes=taxes,
        gratuity_amount=gratuity_amount,
        total=total,
        deposit_amount=deposit_amount,
    )


def calculate_pricing(session: Session, *, proposal: TripProposal) -> PricingBreakdown:
    pricing = compute_pricing(proposal)
    for inclusion in proposal.inclusions:
        inclusion.total_price = _inclusion_total(
            inclusion, party_size=proposal.party_size, day_count=len(proposal.days)
        )
    proposal.subtotal = pricing.subtotal
    proposal.discount_amount = pricing.discount_amount
    proposal.taxes = pricing.taxes
    proposal.gratuity_amount = pricing.gratuity_amount
    proposal.total = pricing.total
    # A paid deposit is a historical fact; repricing never rewrites it.
    if not proposal.deposit_paid:
        proposal.deposit_amount = pricing.deposit_amount
    session.add(proposal)
    session.commit()
    session.refresh(proposal)
    return pricing


_COPIED_PROPOSAL_FIELDS = (
    "brand_id",
    "customer_name",
    "customer_email",
    "customer_phone",
    "trip_type",
    "party_size",
    "start_date",
    "end_date",
    "introduction",
    "special_notes",
    "internal_notes",
    "discount_percentage",
    "tax_rate",
    "gratuity_percentage",
    "deposit_percentage",
)
_COPIED_STOP_FIELDS = (
    "stop_order",
    "stop_type",
    "venue_id",
    "custom_name",
    "custom_address",
    "scheduled_time",
    "duration_minutes",
    "per_person_cost",
    "flat_cost",
    "room_rate",
    "num_rooms",
    "nights",
    "client_notes",
    "internal_notes",
)
_COPIED_INCLUSION_FIELDS = (
    "inclusion_type",
    "description",
    "pricing_type",
    "quantity",
    "unit_price",
    "total_price",
    "sort_order",
    "show_on_proposal",
)


def duplicate_proposal(
    session: Session, *, proposal: TripProposal, created_by: str | None = None
) -> TripProposal:
    """Copy a proposal's itinerary and line items into a fresh draft.

    Guests, payments and the acceptance record stay with the original.
    """
    clone = TripProposal(
        proposal_number=generate_proposal_number(session),
        status=ProposalStatus.DRAFT,
        trip_title=f"Copy of {proposal.trip_title}" if proposal.trip_title else None,
        valid_until=today_utc() + timedelta(days=settings.proposal_valid_days),
        created_by=created_by,
        **{field: getattr(proposal, field) for field in _COPIED_PROPOSAL_FIELDS},
    )
    for day in proposal.days:
        new_day = TripProposalDay(
            day_number=day.day_number,
            trip_date=day.trip_date,
            title=day.title,
            description=day.description,
            notes=day.notes,
        )
        for stop in day.stops:
            new_day.stops.append(
                TripProposalStop(**{field: getattr(stop, field) for field in _COPIED_STOP_FIELDS})
            )
        clone.days.append(new_day)
    for inclusion in proposal.inclusions:
        clone.inclusions.append(
            TripProposalInclusion(
                **{field: getattr(inclusion, field) for field in _COPIED_INCLUSION_FIELDS}
            )
        )
    session.add(clone)
    session.flush()
    log_activity(
        session,
        proposal_id=clone.id,
        action="created",
        description=f"Duplicated from {proposal.proposal_number}",
        actor_type=ActorType.STAFF if created_by else ActorType.SYSTEM,
        actor_name=created_by,
        metadata={"source_proposal_id": proposal.id},
    )
    session.commit()
    session.refresh(clone)
    calculate_pricing(session, proposal=clone)
    log_event(
        logger,
        "proposal.duplicated",
        proposal_id=clone.id,
        source_proposal_id=proposal.id,
        proposal_number=clone.proposal_number,
    )
    return clone
