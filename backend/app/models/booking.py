# backend/app/models/booking.py
"""
Booking model for the Casaora home-service marketplace.

A booking ties a customer to a professional for one service visit. The row
carries the server-computed price breakdown, the payment-gateway reference and
amounts, and the timestamps of every lifecycle step. Status only moves through
the transition table in app.services.booking_transitions, and every committed
move leaves a BookingStatusHistory row behind.
"""

from enum import Enum
import logging
import os
from typing import Any

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.config import settings
from ..database import Base

logger = logging.getLogger(__name__)

IS_SQLITE = os.getenv("DB_DIALECT", "").lower().startswith("sqlite") or settings.database_url.startswith(
    "sqlite"
)


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING_PAYMENT = "pending_payment"  # Created, waiting for the card hold
    AUTHORIZED = "authorized"  # Funds held, waiting for the professional
    CONFIRMED = "confirmed"  # Accepted by the professional
    IN_PROGRESS = "in_progress"  # Professional checked in on site
    COMPLETED = "completed"  # Checked out, payment captured
    DECLINED = "declined"  # Rejected by the professional
    CANCELED = "canceled"  # Canceled by the customer

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {BookingStatus.COMPLETED, BookingStatus.DECLINED, BookingStatus.CANCELED}
)


class Booking(Base):
    """
    Booking between a customer and a home-service professional.

    Prices are integer minor units of ``currency`` and are written once at
    creation from the pricing calculator. ``amount_authorized`` grows with
    time extensions, ``amount_captured`` is only written on check-out.
    """

    __tablename__ = "bookings"

    # Primary key
    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    # Ownership
    customer_id = Column(String(64), nullable=False, index=True)
    professional_id = Column(String(64), nullable=False, index=True)
    # Contact snapshots used for notifications
    customer_email = Column(String(255), nullable=True)
    professional_email = Column(String(255), nullable=True)

    # What was booked
    service_id = Column(String(26), ForeignKey("professional_services.id"), nullable=True)
    pricing_tier_id = Column(String(26), ForeignKey("service_pricing_tiers.id"), nullable=True)

    status = Column(
        String(20), nullable=False, default=BookingStatus.PENDING_PAYMENT.value, index=True
    )

    # Schedule
    scheduled_start = Column(DateTime(timezone=True), nullable=True, index=True)
    duration_minutes = Column(Integer, nullable=True)
    time_extension_minutes = Column(Integer, nullable=False, default=0)

    # Price breakdown (minor units)
    base_price = Column(Integer, nullable=False, default=0)
    tier_price = Column(Integer, nullable=False, default=0)
    addons_price = Column(Integer, nullable=False, default=0)
    total_price = Column(Integer, nullable=False, default=0)
    extension_amount = Column(Integer, nullable=False, default=0)

    # Payment state (minor units)
    currency = Column(String(3), nullable=False, default=lambda: settings.platform_currency)
    payment_intent_ref = Column(String(255), nullable=True, comment="Payment gateway reference")
    amount_authorized = Column(Integer, nullable=True)
    amount_captured = Column(Integer, nullable=True)
    amount_refunded = Column(Integer, nullable=True)

    # Service location
    service_address = Column(Text, nullable=True)
    location_lat = Column(Float, nullable=True)
    location_lng = Column(Float, nullable=True)

    # Acceptance / decline
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    declined_at = Column(DateTime(timezone=True), nullable=True)
    decline_reason = Column(Text, nullable=True)

    # Cancellation tracking
    canceled_at = Column(DateTime(timezone=True), nullable=True)
    canceled_by = Column(String(64), nullable=True)
    canceled_reason = Column(Text, nullable=True)
    refund_percentage = Column(Integer, nullable=True)

    # Visit execution
    checked_in_at = Column(DateTime(timezone=True), nullable=True)
    check_in_latitude = Column(Float, nullable=True)
    check_in_longitude = Column(Float, nullable=True)
    checked_out_at = Column(DateTime(timezone=True), nullable=True)
    check_out_latitude = Column(Float, nullable=True)
    check_out_longitude = Column(Float, nullable=True)
    completion_notes = Column(Text, nullable=True)
    actual_duration_minutes = Column(Integer, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    service = relationship("ProfessionalService")
    pricing_tier = relationship("ServicePricingTier")
    addons = relationship("BookingAddon", back_populates="booking", cascade="all, delete-orphan")
    status_history = relationship(
        "BookingStatusHistory",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="BookingStatusHistory.created_at",
    )

    # Data integrity constraints
    _table_constraints = [
        CheckConstraint(
            "status IN ('pending_payment', 'authorized', 'confirmed', 'in_progress', "
            "'completed', 'declined', 'canceled')",
            name="ck_bookings_status",
        ),
        CheckConstraint(
            "duration_minutes IS NULL OR duration_minutes >= 0",
            name="check_duration_non_negative",
        ),
        CheckConstraint("time_extension_minutes >= 0", name="check_extension_non_negative"),
        CheckConstraint("total_price >= 0", name="check_price_non_negative"),
        CheckConstraint(
            "refund_percentage IS NULL OR refund_percentage IN (0, 50, 100)",
            name="check_refund_percentage",
        ),
    ]

    if not IS_SQLITE:
        _table_constraints.append(
            CheckConstraint(
                "amount_captured IS NULL OR status = 'completed'",
                name="check_capture_only_when_completed",
            )
        )

    __table_args__ = tuple(_table_constraints)

    def __init__(self, **kwargs: Any) -> None:
        """Initialize in pending_payment by default."""
        super().__init__(**kwargs)
        if not self.status:
            self.status = BookingStatus.PENDING_PAYMENT.value
        if self.time_extension_minutes is None:
            self.time_extension_minutes = 0
        if self.extension_amount is None:
            self.extension_amount = 0

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<Booking {self.id}: customer={self.customer_id}, "
            f"professional={self.professional_id}, start={self.scheduled_start}, "
            f"status={self.status}>"
        )

    @property
    def total_minutes(self) -> int:
        """Booked duration including time extensions."""
        return int(self.duration_minutes or 0) + int(self.time_extension_minutes or 0)

    def is_owned_by_professional(self, user_id: str) -> bool:
        return bool(user_id) and user_id == self.professional_id

    def is_owned_by_customer(self, user_id: str) -> bool:
        return bool(user_id) and user_id == self.customer_id


class BookingStatusHistory(Base):
    """Audit row written in the same transaction as each status change."""

    __tablename__ = "booking_status_history"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    booking_id = Column(
        String(26), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    old_status = Column(String(20), nullable=True)
    new_status = Column(String(20), nullable=False)
    changed_by = Column(String(64), nullable=True)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    booking = relationship("Booking", back_populates="status_history")

    def __repr__(self) -> str:
        return (
            f"<BookingStatusHistory {self.booking_id}: {self.old_status} -> {self.new_status}>"
        )


class BookingAddon(Base):
    """Snapshot of an add-on priced into a booking at creation time."""

    __tablename__ = "booking_addons"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    booking_id = Column(
        String(26), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    addon_id = Column(String(26), ForeignKey("service_addons.id"), nullable=False)
    addon_name = Column(String(255), nullable=False)
    addon_price = Column(Integer, nullable=False)

    booking = relationship("Booking", back_populates="addons")

    __table_args__ = (
        CheckConstraint("addon_price >= 0", name="check_booking_addon_price_non_negative"),
    )


Index(
    "ix_bookings_professional_status",
    Booking.professional_id,
    Booking.status,
)


Index(
    "ix_bookings_customer_status",
    Booking.customer_id,
    Booking.status,
)
