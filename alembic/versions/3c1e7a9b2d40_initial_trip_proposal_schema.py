"""initial trip proposal schema

Revision ID: 3c1e7a9b2d40
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3c1e7a9b2d40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "venues",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("venue_type", sa.String(10), nullable=False),
        sa.Column("city", sa.String(120), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_venues_name", "venues", ["name"])
    op.create_index("ix_venues_venue_type", "venues", ["venue_type"])

    op.create_table(
        "trip_proposals",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("proposal_number", sa.String(30), nullable=False),
        sa.Column("status", sa.String(8), nullable=False),
        sa.Column("brand_id", sa.Integer(), nullable=True),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("customer_email", sa.String(255), nullable=True),
        sa.Column("customer_phone", sa.String(50), nullable=True),
        sa.Column("trip_type", sa.String(11), nullable=False),
        sa.Column("trip_title", sa.String(255), nullable=True),
        sa.Column("party_size", sa.Integer(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("introduction", sa.Text(), nullable=True),
        sa.Column("special_notes", sa.Text(), nullable=True),
        sa.Column("internal_notes", sa.Text(), nullable=True),
        sa.Column("subtotal", sa.Numeric(10, 2), nullable=False),
        sa.Column("discount_percentage", sa.Numeric(5, 2), nullable=False),
        sa.Column("discount_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("tax_rate", sa.Numeric(5, 4), nullable=False),
        sa.Column("taxes", sa.Numeric(10, 2), nullable=False),
        sa.Column("gratuity_percentage", sa.Integer(), nullable=False),
        sa.Column("gratuity_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("total", sa.Numeric(10, 2), nullable=False),
        sa.Column("deposit_percentage", sa.Integer(), nullable=False),
        sa.Column("deposit_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("deposit_paid", sa.Boolean(), nullable=False),
        sa.Column("deposit_paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deposit_payment_intent_id", sa.String(255), nullable=True),
        sa.Column("valid_until", sa.Date(), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("first_viewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_viewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("view_count", sa.Integer(), nullable=False),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("accepted_signature", sa.Text(), nullable=True),
        sa.Column("accepted_ip", sa.String(50), nullable=True),
        sa.Column("created_by", sa.String(255), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_trip_proposals_proposal_number", "trip_proposals", ["proposal_number"], unique=True
    )
    op.create_index("ix_trip_proposals_status", "trip_proposals", ["status"])
    op.create_index("ix_trip_proposals_brand_id", "trip_proposals", ["brand_id"])
    op.create_index("ix_trip_proposals_customer_email", "trip_proposals", ["customer_email"])
    op.create_index("ix_trip_proposals_start_date", "trip_proposals", ["start_date"])

    op.create_table(
        "trip_proposal_days",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "trip_proposal_id",
            sa.Integer(),
            sa.ForeignKey("trip_proposals.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("day_number", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("title", sa.String(255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("trip_proposal_id", "day_number"),
    )
    op.create_index(
        "ix_trip_proposal_days_trip_proposal_id", "trip_proposal_days", ["trip_proposal_id"]
    )

    op.create_table(
        "trip_proposal_stops",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "trip_proposal_day_id",
            sa.Integer(),
            sa.ForeignKey("trip_proposal_days.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("stop_order", sa.Integer(), nullable=False),
        sa.Column("stop_type", sa.String(14), nullable=False),
        sa.Column(
            "venue_id", sa.Integer(), sa.ForeignKey("venues.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("custom_name", sa.String(255), nullable=True),
        sa.Column("custom_address", sa.Text(), nullable=True),
        sa.Column("scheduled_time", sa.Time(), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=True),
        sa.Column("per_person_cost", sa.Numeric(10, 2), nullable=False),
        sa.Column("flat_cost", sa.Numeric(10, 2), nullable=False),
        sa.Column("room_rate", sa.Numeric(10, 2), nullable=False),
        sa.Column("num_rooms", sa.Integer(), nullable=False),
        sa.Column("nights", sa.Integer(), nullable=False),
        sa.Column("client_notes", sa.Text(), nullable=True),
        sa.Column("internal_notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_trip_proposal_stops_trip_proposal_day_id",
        "trip_proposal_stops",
        ["trip_proposal_day_id"],
    )
    op.create_index("ix_trip_proposal_stops_venue_id", "trip_proposal_stops", ["venue_id"])

    op.create_table(
        "trip_proposal_guests",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "trip_proposal_id",
            sa.Integer(),
            sa.ForeignKey("trip_proposals.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("is_primary", sa.Boolean(), nullable=False),
        sa.Column("dietary_restrictions", sa.Text(), nullable=True),
        sa.Column("accessibility_needs", sa.Text(), nullable=True),
        sa.Column("special_requests", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_trip_proposal_guests_trip_proposal_id", "trip_proposal_guests", ["trip_proposal_id"]
    )

    op.create_table(
        "trip_proposal_inclusions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "trip_proposal_id",
            sa.Integer(),
            sa.ForeignKey("trip_proposals.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("inclusion_type", sa.String(16), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("pricing_type", sa.String(10), nullable=False),
        sa.Column("quantity", sa.Numeric(10, 2), nullable=False),
        sa.Column("unit_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("total_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.Column("show_on_proposal", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index(
        "ix_trip_proposal_inclusions_trip_proposal_id",
        "trip_proposal_inclusions",
        ["trip_proposal_id"],
    )

    op.create_table(
        "trip_proposal_activity",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "trip_proposal_id",
            sa.Integer(),
            sa.ForeignKey("trip_proposals.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("actor_type", sa.String(8), nullable=False),
        sa.Column("actor_name", sa.String(255), nullable=True),
        sa.Column("ip_address", sa.String(50), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("metadata_json", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_trip_proposal_activity_trip_proposal_id",
        "trip_proposal_activity",
        ["trip_proposal_id"],
    )
    op.create_index("ix_trip_proposal_activity_action", "trip_proposal_activity", ["action"])

    op.create_table(
        "trip_proposal_payments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "trip_proposal_id", sa.Integer(), sa.ForeignKey("trip_proposals.id"), nullable=False
        ),
        sa.Column("payment_type", sa.String(50), nullable=False),
        sa.Column("payment_intent_id", sa.String(255), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("status", sa.String(30), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint(
            "trip_proposal_id", "payment_type", name="uq_trip_proposal_payment_type"
        ),
    )
    op.create_index(
        "ix_trip_proposal_payments_trip_proposal_id",
        "trip_proposal_payments",
        ["trip_proposal_id"],
    )
    op.create_index(
        "ix_trip_proposal_payments_payment_intent_id",
        "trip_proposal_payments",
        ["payment_intent_id"],
        unique=True,
    )

    op.create_table(
        "notification_email_log",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "trip_proposal_id",
            sa.Integer(),
            sa.ForeignKey("trip_proposals.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("email_type", sa.String(80), nullable=False),
        sa.Column("recipient", sa.String(255), nullable=False),
        sa.Column("subject", sa.String(300), nullable=False),
        sa.Column("status", sa.String(7), nullable=False),
        sa.Column("provider_message_id", sa.String(255), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_notification_email_log_trip_proposal_id",
        "notification_email_log",
        ["trip_proposal_id"],
    )
    op.create_index(
        "ix_notification_email_log_email_type", "notification_email_log", ["email_type"]
    )
    op.create_index("ix_notification_email_log_status", "notification_email_log", ["status"])


def downgrade() -> None:
    op.drop_table("notification_email_log")
    op.drop_table("trip_proposal_payments")
    op.drop_table("trip_proposal_activity")
    op.drop_table("trip_proposal_inclusions")
    op.drop_table("trip_proposal_guests")
    op.drop_table("trip_proposal_stops")
    op.drop_table("trip_proposal_days")
    op.drop_table("trip_proposals")
    op.drop_table("venues")
