from __future__ import annotations

import enum
from datetime import UTC, datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from tripdesk.core.models import Base, IntegerPrimaryKey


class EmailStatus(str, enum.Enum):
    SENT = "SENT"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


class EmailLog(IntegerPrimaryKey, Base):
    __tablename__ = "notification_email_log"

    trip_proposal_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("trip_proposals.id", ondelete="CASCADE"), index=True
    )
    email_type: Mapped[str] = mapped_column(String(80), index=True)
    recipient: Mapped[str] = mapped_column(String(255))
    subject: Mapped[str] = mapped_column(String(300))
    status: Mapped[EmailStatus] = mapped_column(Enum(EmailStatus, native_enum=False), index=True)
    provider_message_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )
