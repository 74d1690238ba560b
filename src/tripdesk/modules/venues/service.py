from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from tripdesk.core.config import settings
from tripdesk.modules.venues.matcher import VenueMatch, VenueRecord, match_venue
from tripdesk.modules.venues.models import Venue, VenueType


def create_venue(
    session: Session, *, name: str, venue_type: VenueType, city: str | None = None
) -> Venue:
    venue = Venue(name=name.strip(), venue_type=venue_type, city=city, is_active=True)
    session.add(venue)
    session.commit()
    session.refresh(venue)
    return venue


def list_venues(session: Session, *, venue_type: VenueType | None = None) -> list[Venue]:
    stmt = select(Venue).where(Venue.is_active.is_(True)).order_by(Venue.name.asc())
    if venue_type is not None:
        stmt = stmt.where(Venue.venue_type == venue_type)
    return list(session.scalars(stmt))


def load_venue_records(session: Session) -> list[VenueRecord]:
    return [
        VenueRecord(id=v.id, name=v.name, venue_type=v.venue_type.value)
        for v in list_venues(session)
    ]


def find_venue(
    session: Session, *, name: str, venue_type: VenueType | None = None
) -> VenueMatch | None:
    records = load_venue_records(session)
    if venue_type is not None:
        records = [r for r in records if r.venue_type == venue_type.value]
    return match_venue(name, records, threshold=settings.venue_match_threshold)
