# backend/alembic/versions/001_booking_core.py
"""Booking core - service catalog, bookings, add-on snapshots, status history

Revision ID: 001_booking_core
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the catalog tables the pricing calculator reads from and the booking
tables the lifecycle service writes to. Amounts are integer minor units.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_booking_core"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

BOOKING_STATUSES = (
    "'pending_payment', 'authorized', 'confirmed', 'in_progress', "
    "'completed', 'declined', 'canceled'"
)


def upgrade() -> None:
    """Create catalog and booking tables."""
    print("Creating booking core tables...")

    op.create_table(
        "professional_services",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("professional_id", sa.String(64), nullable=False),
        sa.Column("contact_email", sa.String(255), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("base_price", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("currency", sa.String(3), nullable=False, server_default="cop"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("base_price >= 0", name="check_base_price_non_negative"),
    )
    op.create_index(
        "ix_professional_services_professional_id", "professional_services", ["professional_id"]
    )

    op.create_table(
        "service_pricing_tiers",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("service_id", sa.String(26), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["service_id"], ["professional_services.id"], ondelete="CASCADE"
        ),
        sa.CheckConstraint("price >= 0", name="check_tier_price_non_negative"),
    )
    op.create_index("ix_service_pricing_tiers_service_id", "service_pricing_tiers", ["service_id"])

    op.create_table(
        "service_addons",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("service_id", sa.String(26), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["service_id"], ["professional_services.id"], ondelete="CASCADE"
        ),
        sa.CheckConstraint("price >= 0", name="check_addon_price_non_negative"),
    )
    op.create_index("ix_service_addons_service_id", "service_addons", ["service_id"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("customer_id", sa.String(64), nullable=False),
        sa.Column("professional_id", sa.String(64), nullable=False),
        sa.Column("customer_email", sa.String(255), nullable=True),
        sa.Column("professional_email", sa.String(255), nullable=True),
        sa.Column("service_id", sa.String(26), nullable=True),
        sa.Column("pricing_tier_id", sa.String(26), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending_payment"),
        # Schedule
        sa.Column("scheduled_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=True),
        sa.Column("time_extension_minutes", sa.Integer(), nullable=False, server_default="0"),
        # Price breakdown
        sa.Column("base_price", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("tier_price", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("addons_price", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_price", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("extension_amount", sa.Integer(), nullable=False, server_default="0"),
        # Payment state
        sa.Column("currency", sa.String(3), nullable=False, server_default="cop"),
        sa.Column(
            "payment_intent_ref",
            sa.String(255),
            nullable=True,
            comment="Payment gateway reference",
        ),
        sa.Column("amount_authorized", sa.Integer(), nullable=True),
        sa.Column("amount_captured", sa.Integer(), nullable=True),
        sa.Column("amount_refunded", sa.Integer(), nullable=True),
        # Location
        sa.Column("service_address", sa.Text(), nullable=True),
        sa.Column("location_lat", sa.Float(), nullable=True),
        sa.Column("location_lng", sa.Float(), nullable=True),
        # Lifecycle
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("declined_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("decline_reason", sa.Text(), nullable=True),
        sa.Column("canceled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("canceled_by", sa.String(64), nullable=True),
        sa.Column("canceled_reason", sa.Text(), nullable=True),
        sa.Column("refund_percentage", sa.Integer(), nullable=True),
        sa.Column("checked_in_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("check_in_latitude", sa.Float(), nullable=True),
        sa.Column("check_in_longitude", sa.Float(), nullable=True),
        sa.Column("checked_out_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("check_out_latitude", sa.Float(), nullable=True),
        sa.Column("check_out_longitude", sa.Float(), nullable=True),
        sa.Column("completion_notes", sa.Text(), nullable=True),
        sa.Column("actual_duration_minutes", sa.Integer(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["service_id"], ["professional_services.id"]),
        sa.ForeignKeyConstraint(["pricing_tier_id"], ["service_pricing_tiers.id"]),
        sa.CheckConstraint(f"status IN ({BOOKING_STATUSES})", name="ck_bookings_status"),
        sa.CheckConstraint(
            "duration_minutes IS NULL OR duration_minutes >= 0",
            name="check_duration_non_negative",
        ),
        sa.CheckConstraint("time_extension_minutes >= 0", name="check_extension_non_negative"),
        sa.CheckConstraint("total_price >= 0", name="check_price_non_negative"),
        sa.CheckConstraint(
            "refund_percentage IS NULL OR refund_percentage IN (0, 50, 100)",
            name="check_refund_percentage",
        ),
        sa.CheckConstraint(
            "amount_captured IS NULL OR status = 'completed'",
            name="check_capture_only_when_completed",
        ),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_customer_id", "bookings", ["customer_id"])
    op.create_index("ix_bookings_professional_id", "bookings", ["professional_id"])
    op.create_index("ix_bookings_status", "bookings", ["status"])
    op.create_index("ix_bookings_scheduled_start", "bookings", ["scheduled_start"])
    op.create_index("ix_bookings_professional_status", "bookings", ["professional_id", "status"])
    op.create_index("ix_bookings_customer_status", "bookings", ["customer_id", "status"])

    op.create_table(
        "booking_addons",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("booking_id", sa.String(26), nullable=False),
        sa.Column("addon_id", sa.String(26), nullable=False),
        sa.Column("addon_name", sa.String(255), nullable=False),
        sa.Column("addon_price", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["booking_id"], ["bookings.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["addon_id"], ["service_addons.id"]),
        sa.CheckConstraint("addon_price >= 0", name="check_booking_addon_price_non_negative"),
    )
    op.create_index("ix_booking_addons_booking_id", "booking_addons", ["booking_id"])

    op.create_table(
        "booking_status_history",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("booking_id", sa.String(26), nullable=False),
        sa.Column("old_status", sa.String(20), nullable=True),
        sa.Column("new_status", sa.String(20), nullable=False),
        sa.Column("changed_by", sa.String(64), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["booking_id"], ["bookings.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "ix_booking_status_history_booking_id", "booking_status_history", ["booking_id"]
    )

    print("Booking core tables created")


def downgrade() -> None:
    """Drop booking and catalog tables."""
    print("Dropping booking core tables...")

    op.drop_index("ix_booking_status_history_booking_id", table_name="booking_status_history")
    op.drop_table("booking_status_history")

    op.drop_index("ix_booking_addons_booking_id", table_name="booking_addons")
    op.drop_table("booking_addons")

    for index_name in (
        "ix_bookings_customer_status",
        "ix_bookings_professional_status",
        "ix_bookings_scheduled_start",
        "ix_bookings_status",
        "ix_bookings_professional_id",
        "ix_bookings_customer_id",
        "ix_bookings_id",
    ):
        op.drop_index(index_name, table_name="bookings")
    op.drop_table("bookings")

    op.drop_index("ix_service_addons_service_id", table_name="service_addons")
    op.drop_table("service_addons")
    op.drop_index("ix_service_pricing_tiers_service_id", table_name="service_pricing_tiers")
    op.drop_table("service_pricing_tiers")
    op.drop_index(
        "ix_professional_services_professional_id", table_name="professional_services"
    )
    op.drop_table("professional_services")

    print("Booking core tables dropped")
