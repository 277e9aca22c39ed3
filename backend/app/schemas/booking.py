"""
Booking schemas for the booking lifecycle API.

Amounts are integer minor units of the booking currency. Coordinates are
WGS84 decimal degrees.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from ..core.constants import (
    MAX_COMPLETION_NOTES_LENGTH,
    MAX_EXTENSION_MINUTES,
    MAX_REASON_LENGTH,
    MIN_EXTENSION_MINUTES,
)
from ..models.booking import BookingStatus
from ._strict_base import OrmResponseModel, StrictModel, StrictRequestModel

Latitude = Field(..., ge=-90, le=90, description="Latitude in decimal degrees")
Longitude = Field(..., ge=-180, le=180, description="Longitude in decimal degrees")


class BookingCreate(StrictRequestModel):
    """Create a booking. Prices are computed on the server from the catalog."""

    service_id: str = Field(..., min_length=1)
    pricing_tier_id: Optional[str] = None
    addon_ids: List[str] = Field(default_factory=list)
    scheduled_start: datetime
    duration_minutes: int = Field(..., gt=0, le=24 * 60)
    service_address: Optional[str] = Field(None, max_length=500)
    location_lat: Optional[float] = Field(None, ge=-90, le=90)
    location_lng: Optional[float] = Field(None, ge=-180, le=180)
    customer_email: Optional[str] = Field(None, max_length=255)

    @field_validator("scheduled_start")
    @classmethod
    def _require_timezone(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            raise ValueError("scheduled_start must include a timezone offset")
        return value


class DeclineBookingRequest(StrictRequestModel):
    reason: Optional[str] = Field(None, max_length=MAX_REASON_LENGTH)


class CancelBookingRequest(StrictRequestModel):
    reason: Optional[str] = Field(None, max_length=MAX_REASON_LENGTH)


class CheckInRequest(StrictRequestModel):
    latitude: float = Latitude
    longitude: float = Longitude


class CheckOutRequest(StrictRequestModel):
    latitude: float = Latitude
    longitude: float = Longitude
    completion_notes: Optional[str] = Field(None, max_length=MAX_COMPLETION_NOTES_LENGTH)


class ExtendTimeRequest(StrictRequestModel):
    additional_minutes: int = Field(..., ge=MIN_EXTENSION_MINUTES, le=MAX_EXTENSION_MINUTES)


class BookingAddonResponse(OrmResponseModel):
    addon_id: str
    addon_name: str
    addon_price: int


class BookingResponse(OrmResponseModel):
    id: str
    customer_id: str
    professional_id: str
    service_id: Optional[str] = None
    pricing_tier_id: Optional[str] = None
    status: BookingStatus
    scheduled_start: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    time_extension_minutes: int = 0
    base_price: int
    tier_price: int
    addons_price: int
    total_price: int
    extension_amount: int = 0
    currency: str
    payment_intent_ref: Optional[str] = None
    amount_authorized: Optional[int] = None
    amount_captured: Optional[int] = None
    amount_refunded: Optional[int] = None
    service_address: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    declined_at: Optional[datetime] = None
    decline_reason: Optional[str] = None
    canceled_at: Optional[datetime] = None
    canceled_by: Optional[str] = None
    canceled_reason: Optional[str] = None
    refund_percentage: Optional[int] = None
    checked_in_at: Optional[datetime] = None
    checked_out_at: Optional[datetime] = None
    completion_notes: Optional[str] = None
    actual_duration_minutes: Optional[int] = None
    addons: List[BookingAddonResponse] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    # Only set on creation; the client confirms the payment with it
    client_secret: Optional[str] = None


class TransitionResponse(StrictModel):
    booking_id: str
    status: BookingStatus


class DeclineBookingResponse(TransitionResponse):
    warning: Optional[str] = None


class CancelBookingResponse(TransitionResponse):
    refund_percentage: int
    refund_amount: int


class CheckInResponse(TransitionResponse):
    location_warning: Optional[str] = None


class CheckOutResponse(TransitionResponse):
    amount_captured: Optional[int] = None
    location_warning: Optional[str] = None


class ExtendTimeResponse(TransitionResponse):
    time_extension_minutes: int
    extension_fee: int


class CancellationPreviewResponse(StrictModel):
    booking_id: str
    can_cancel: bool
    refund_percentage: int
    refund_amount: int
    currency: str
    reason: str
    hours_until_start: Optional[float] = None
