from __future__ import annotations

from pydantic import BaseModel, Field

from tripdesk.modules.venues.models import VenueType


class VenueCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    venue_type: VenueType
    city: str | None = Field(default=None, max_length=120)


class VenueOut(BaseModel):
    id: int
    name: str
    venue_type: VenueType
    city: str | None
    is_active: bool


class VenueMatchOut(BaseModel):
    venue_id: int
    name: str
    venue_type: str
    confidence: float
    match_type: str
