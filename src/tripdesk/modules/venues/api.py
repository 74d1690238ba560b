from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from tripdesk.api.deps import get_current_staff
from tripdesk.core.db import db_session
from tripdesk.modules.venues.models import VenueType
from tripdesk.modules.venues.schemas import VenueCreate, VenueMatchOut, VenueOut
from tripdesk.modules.venues.service import create_venue, find_venue, list_venues

router = APIRouter(tags=["venues"])


@router.get("/admin/venues", response_model=list[VenueOut])
def list_venues_endpoint(
    venue_type: VenueType | None = None,
    session: Session = Depends(db_session),
    _staff: str = Depends(get_current_staff),
) -> list[VenueOut]:
    venues = list_venues(session, venue_type=venue_type)
    return [VenueOut.model_validate(v, from_attributes=True) for v in venues]


@router.post("/admin/venues", response_model=VenueOut)
def create_venue_endpoint(
    payload: VenueCreate,
    session: Session = Depends(db_session),
    _staff: str = Depends(get_current_staff),
) -> VenueOut:
    venue = create_venue(
        session, name=payload.name, venue_type=payload.venue_type, city=payload.city
    )
    return VenueOut.model_validate(venue, from_attributes=True)


@router.get("/admin/venues/match", response_model=VenueMatchOut)
def match_venue_endpoint(
    name: str,
    venue_type: VenueType | None = None,
    session: Session = Depends(db_session),
    _staff: str = Depends(get_current_staff),
) -> VenueMatchOut:
    match = find_venue(session, name=name, venue_type=venue_type)
    if not match:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No matching venue")
    return VenueMatchOut(
        venue_id=match.venue.id,
        name=match.venue.name,
        venue_type=match.venue.venue_type,
        confidence=match.confidence,
        match_type=match.match_type,
    )
