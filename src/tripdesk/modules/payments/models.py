from __future__ import annotations

from decimal import Decimal

from sqlalchemy import ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tripdesk.core.models import Base, IntegerPrimaryKey, Timestamped

DEPOSIT_PAYMENT_TYPE = "trip_proposal_deposit"


class PaymentRecord(IntegerPrimaryKey, Timestamped, Base):
    __tablename__ = "trip_proposal_payments"
    # One deposit row per proposal, enforced by the database as well as the workflow.
    __table_args__ = (
        UniqueConstraint("trip_proposal_id", "payment_type", name="uq_trip_proposal_payment_type"),
    )

    trip_proposal_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("trip_proposals.id"), index=True
    )
    payment_type: Mapped[str] = mapped_column(String(50), default=DEPOSIT_PAYMENT_TYPE)
    payment_intent_id: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    currency: Mapped[str] = mapped_column(String(3), default="usd")
    status: Mapped[str] = mapped_column(String(30), default="succeeded")

    proposal = relationship("TripProposal")
