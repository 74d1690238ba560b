from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from tripdesk.modules.proposals.models import (
    ActorType,
    InclusionType,
    PricingType,
    ProposalStatus,
    StopType,
    TripType,
)


class ProposalCreate(BaseModel):
    customer_name: str = Field(min_length=1, max_length=255)
    customer_email: str | None = Field(default=None, max_length=255)
    customer_phone: str | None = Field(default=None, max_length=50)
    trip_type: TripType = TripType.WINE_TOUR
    trip_title: str | None = Field(default=None, max_length=255)
    party_size: int = Field(ge=1, le=100)
    start_date: date
    end_date: date | None = None
    brand_id: int | None = None
    introduction: str | None = None
    special_notes: str | None = None
    internal_notes: str | None = None
    valid_until: date | None = None
    discount_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    tax_rate: Decimal | None = Field(default=None, ge=0, le=1)
    gratuity_percentage: int = Field(default=0, ge=0, le=100)
    deposit_percentage: int = Field(default=50, ge=0, le=100)

    @model_validator(mode="after")
    def _check_dates(self) -> ProposalCreate:
        if self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class DayCreate(BaseModel):
    trip_date: date
    title: str | None = Field(default=None, max_length=255)
    description: str | None = None
    notes: str | None = None


class StopCreate(BaseModel):
    stop_type: StopType
    stop_order: int | None = Field(default=None, ge=0)
    venue_id: int | None = None
    custom_name: str | None = Field(default=None, max_length=255)
    custom_address: str | None = None
    scheduled_time: time | None = None
    duration_minutes: int | None = Field(default=None, ge=0, le=24 * 60)
    per_person_cost: Decimal = Field(default=Decimal("0"), ge=0)
    flat_cost: Decimal = Field(default=Decimal("0"), ge=0)
    room_rate: Decimal = Field(default=Decimal("0"), ge=0)
    num_rooms: int = Field(default=0, ge=0)
    nights: int = Field(default=1, ge=1)
    client_notes: str | None = None
    internal_notes: str | None = None


class GuestCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=50)
    is_primary: bool = False
    dietary_restrictions: str | None = None
    accessibility_needs: str | None = None
    special_requests: str | None = None


class InclusionCreate(BaseModel):
    inclusion_type: InclusionType
    description: str = Field(min_length=1)
    pricing_type: PricingType = PricingType.FLAT
    quantity: Decimal = Field(default=Decimal("1"), gt=0)
    unit_price: Decimal = Field(default=Decimal("0"), ge=0)
    sort_order: int = 0
    show_on_proposal: bool = True

class DayUpdate(BaseModel):
    trip_date: date | None = None
    title: str | None = Field(default=None, max_length=255)
    description: str | None = None
    notes: str | None = None


class StopUpdate(BaseModel):
    stop_type: StopType | None = None
    venue_id: int | None = None
    custom_name: str | None = Field(default=None, max_length=255)
    custom_address: str | None = None
    scheduled_time: time | None = None
    duration_minutes: int | None = Field(default=None, ge=0, le=24 * 60)
    per_person_cost: Decimal | None = Field(default=None, ge=0)
    flat_cost: Decimal | None = Field(default=None, ge=0)
    room_rate: Decimal | None = Field(default=None, ge=0)
    num_rooms: int | None = Field(default=None, ge=0)
    nights: int | None = Field(default=None, ge=1)
    client_notes: str | None = None
    internal_notes: str | None = None


class StopReorder(BaseModel):
    stop_ids: list[int] = Field(min_length=1)


class GuestUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=50)
    is_primary: bool | None = None
    dietary_restrictions: str | None = None
    accessibility_needs: str | None = None
    special_requests: str | None = None


class InclusionUpdate(BaseModel):
    inclusion_type: InclusionType | None = None
    description: str | None = Field(default=None, min_length=1)
    pricing_type: PricingType | None = None
    quantity: Decimal | None = Field(default=None, gt=0)
    unit_price: Decimal | None = Field(default=None, ge=0)
    sort_order: int | None = None
    show_on_proposal: bool | None = None


class StatusUpdate(BaseModel):
    status: ProposalStatus


class SendRequest(BaseModel):
    custom_message: str | None = Field(default=None, max_length=5000)


class StopOut(BaseModel):
    id: int
    stop_order: int
    stop_type: StopType
    venue_id: int | None
    custom_name: str | None
    custom_address: str | None
    scheduled_time: time | None
    duration_minutes: int | None
    per_person_cost: Decimal
    flat_cost: Decimal
    room_rate: Decimal
    num_rooms: int
    nights: int
    client_notes: str | None


class DayOut(BaseModel):
    id: int
    day_number: int
    trip_date: date
    title: str | None
    description: str | None
    notes: str | None
    stops: list[StopOut] = []


class GuestOut(BaseModel):
    id: int
    name: str
    email: str | None
    phone: str | None
    is_primary: bool
    dietary_restrictions: str | None
    accessibility_needs: str | None
    special_requests: str | None


class InclusionOut(BaseModel):
    id: int
    inclusion_type: InclusionType
    description: str
    pricing_type: PricingType
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal
    sort_order: int
    show_on_proposal: bool


class ProposalOut(BaseModel):
    id: int
    proposal_number: str
    status: ProposalStatus
    brand_id: int | None
    customer_name: str
    customer_email: str | None
    customer_phone: str | None
    trip_type: TripType
    trip_title: str | None
    party_size: int
    start_date: date
    end_date: date | None
    subtotal: Decimal
    discount_amount: Decimal
    taxes: Decimal
    gratuity_amount: Decimal
    total: Decimal
    deposit_percentage: int
    deposit_amount: Decimal
    deposit_paid: bool
    deposit_paid_at: datetime | None
    valid_until: date | None
    sent_at: datetime | None
    view_count: int
    accepted_at: datetime | None
    created_at: datetime
    updated_at: datetime


class ProposalDetailOut(ProposalOut):
    introduction: str | None
    special_notes: str | None
    days: list[DayOut] = []
    guests: list[GuestOut] = []
    inclusions: list[InclusionOut] = []


class PricingOut(BaseModel):
    stops_subtotal: Decimal
    inclusions_subtotal: Decimal
    subtotal: Decimal
    discount_amount: Decimal
    taxes: Decimal
    gratuity_amount: Decimal
    total: Decimal
    deposit_amount: Decimal


class ActivityOut(BaseModel):
    id: int
    action: str
    description: str | None
    actor_type: ActorType
    actor_name: str | None
    ip_address: str | None
    metadata_json: dict
    created_at: datetime
