from __future__ import annotations

import enum
from datetime import UTC, date, datetime, time
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tripdesk.core.models import Base, IntegerPrimaryKey, Timestamped


class ProposalStatus(str, enum.Enum):
    DRAFT = "draft"
    SENT = "sent"
    VIEWED = "viewed"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"
    BOOKED = "booked"


class TripType(str, enum.Enum):
    WINE_TOUR = "wine_tour"
    WINE_GROUP = "wine_group"
    CELEBRATION = "celebration"
    CORPORATE = "corporate"
    WEDDING = "wedding"
    ANNIVERSARY = "anniversary"
    FAMILY = "family"
    ROMANTIC = "romantic"
    CUSTOM = "custom"


class StopType(str, enum.Enum):
    PICKUP = "pickup"
    WINERY = "winery"
    RESTAURANT = "restaurant"
    HOTEL_CHECKIN = "hotel_checkin"
    HOTEL_CHECKOUT = "hotel_checkout"
    ACTIVITY = "activity"
    DROPOFF = "dropoff"
    CUSTOM = "custom"


class InclusionType(str, enum.Enum):
    TRANSPORTATION = "transportation"
    CHAUFFEUR = "chauffeur"
    GRATUITY = "gratuity"
    PLANNING_FEE = "planning_fee"
    ARRANGED_TASTING = "arranged_tasting"
    CUSTOM = "custom"


class PricingType(str, enum.Enum):
    FLAT = "flat"
    PER_PERSON = "per_person"
    PER_DAY = "per_day"


class ActorType(str, enum.Enum):
    STAFF = "staff"
    CUSTOMER = "customer"
    SYSTEM = "system"


def _value_enum(enum_cls: type[enum.Enum]) -> Enum:
    return Enum(enum_cls, native_enum=False, values_callable=lambda e: [m.value for m in e])


class TripProposal(IntegerPrimaryKey, Timestamped, Base):
    __tablename__ = "trip_proposals"

    proposal_number: Mapped[str] = mapped_column(String(30), unique=True, index=True)
    status: Mapped[ProposalStatus] = mapped_column(
        _value_enum(ProposalStatus),
        index=True,
        default=ProposalStatus.DRAFT,
    )
    brand_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)

    customer_name: Mapped[str] = mapped_column(String(255))
    customer_email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    customer_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    trip_type: Mapped[TripType] = mapped_column(
        _value_enum(TripType), default=TripType.WINE_TOUR
    )
    trip_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    party_size: Mapped[int] = mapped_column(Integer)
    start_date: Mapped[date] = mapped_column(Date, index=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    introduction: Mapped[str | None] = mapped_column(Text, nullable=True)
    special_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    internal_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    subtotal: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    discount_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("0"))
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(5, 4), default=Decimal("0.091"))
    taxes: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    gratuity_percentage: Mapped[int] = mapped_column(Integer, default=0)
    gratuity_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    total: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))

    deposit_percentage: Mapped[int] = mapped_column(Integer, default=50)
    deposit_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    deposit_paid: Mapped[bool] = mapped_column(Boolean, default=False)
    deposit_paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deposit_payment_intent_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    valid_until: Mapped[date | None] = mapped_column(Date, nullable=True)

    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    first_viewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_viewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    view_count: Mapped[int] = mapped_column(Integer, default=0)

    accepted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    accepted_signature: Mapped[str | None] = mapped_column(Text, nullable=True)
    accepted_ip: Mapped[str | None] = mapped_column(String(50), nullable=True)

    created_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    days: Mapped[list[TripProposalDay]] = relationship(
        back_populates="proposal",
        order_by="TripProposalDay.day_number",
        cascade="all, delete-orphan",
    )
    guests: Mapped[list[TripProposalGuest]] = relationship(
        back_populates="proposal", cascade="all, delete-orphan"
    )
    inclusions: Mapped[list[TripProposalInclusion]] = relationship(
        back_populates="proposal",
        order_by="TripProposalInclusion.sort_order",
        cascade="all, delete-orphan",
    )


class TripProposalDay(IntegerPrimaryKey, Timestamped, Base):
    __tablename__ = "trip_proposal_days"
    __table_args__ = (UniqueConstraint("trip_proposal_id", "day_number"),)

    trip_proposal_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("trip_proposals.id", ondelete="CASCADE"), index=True
    )
    day_number: Mapped[int] = mapped_column(Integer)
    trip_date: Mapped[date] = mapped_column("date", Date)
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    proposal: Mapped[TripProposal] = relationship(back_populates="days")
    stops: Mapped[list[TripProposalStop]] = relationship(
        back_populates="day",
        order_by="TripProposalStop.stop_order",
        cascade="all, delete-orphan",
    )


class TripProposalStop(IntegerPrimaryKey, Timestamped, Base):
    __tablename__ = "trip_proposal_stops"

    trip_proposal_day_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("trip_proposal_days.id", ondelete="CASCADE"), index=True
    )
    stop_order: Mapped[int] = mapped_column(Integer, default=0)
    stop_type: Mapped[StopType] = mapped_column(_value_enum(StopType))
    venue_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("venues.id", ondelete="SET NULL"), nullable=True, index=True
    )
    custom_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    custom_address: Mapped[str | None] = mapped_column(Text, nullable=True)

    scheduled_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)

    per_person_cost: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    flat_cost: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    room_rate: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    num_rooms: Mapped[int] = mapped_column(Integer, default=0)
    nights: Mapped[int] = mapped_column(Integer, default=1)

    client_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    internal_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    day: Mapped[TripProposalDay] = relationship(back_populates="stops")
    venue = relationship("Venue")


class TripProposalGuest(IntegerPrimaryKey, Timestamped, Base):
    __tablename__ = "trip_proposal_guests"

    trip_proposal_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("trip_proposals.id", ondelete="CASCADE"), index=True
    )
    name: Mapped[str] = mapped_column(String(255))
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False)
    dietary_restrictions: Mapped[str | None] = mapped_column(Text, nullable=True)
    accessibility_needs: Mapped[str | None] = mapped_column(Text, nullable=True)
    special_requests: Mapped[str | None] = mapped_column(Text, nullable=True)

    proposal: Mapped[TripProposal] = relationship(back_populates="guests")


class TripProposalInclusion(IntegerPrimaryKey, Timestamped, Base):
    __tablename__ = "trip_proposal_inclusions"

    trip_proposal_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("trip_proposals.id", ondelete="CASCADE"), index=True
    )
    inclusion_type: Mapped[InclusionType] = mapped_column(_value_enum(InclusionType))
    description: Mapped[str] = mapped_column(Text)
    pricing_type: Mapped[PricingType] = mapped_column(
        _value_enum(PricingType), default=PricingType.FLAT
    )
    quantity: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("1"))
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    show_on_proposal: Mapped[bool] = mapped_column(Boolean, default=True)

    proposal: Mapped[TripProposal] = relationship(back_populates="inclusions")


class ProposalActivity(IntegerPrimaryKey, Base):
    __tablename__ = "trip_proposal_activity"

    trip_proposal_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("trip_proposals.id", ondelete="CASCADE"), index=True
    )
    action: Mapped[str] = mapped_column(String(100), index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    actor_type: Mapped[ActorType] = mapped_column(
        _value_enum(ActorType), default=ActorType.SYSTEM
    )
    actor_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(50), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    metadata_json: Mapped[dict] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )
