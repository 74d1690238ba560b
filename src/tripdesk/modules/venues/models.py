from __future__ import annotations

import enum

from sqlalchemy import Boolean, Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from tripdesk.core.models import Base, IntegerPrimaryKey, Timestamped


class VenueType(str, enum.Enum):
    WINERY = "winery"
    RESTAURANT = "restaurant"
    HOTEL = "hotel"


class Venue(IntegerPrimaryKey, Timestamped, Base):
    __tablename__ = "venues"

    name: Mapped[str] = mapped_column(String(255), index=True)
    venue_type: Mapped[VenueType] = mapped_column(
        Enum(VenueType, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        index=True,
    )
    city: Mapped[str | None] = mapped_column(String(120), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
