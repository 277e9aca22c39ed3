# backend/app/schemas/__init__.py
"""
Pydantic schemas for the booking core API.
"""

from .booking import (
    BookingCreate,
    BookingResponse,
    CancelBookingRequest,
    CancelBookingResponse,
    CancellationPreviewResponse,
    CheckInRequest,
    CheckInResponse,
    CheckOutRequest,
    CheckOutResponse,
    DeclineBookingRequest,
    DeclineBookingResponse,
    ExtendTimeRequest,
    ExtendTimeResponse,
    TransitionResponse,
)
from .pricing import PricingQuoteRequest, PricingQuoteResponse
from .system import HealthLiteResponse, HealthResponse, WebhookResponse

__all__ = [
    "BookingCreate",
    "BookingResponse",
    "CancelBookingRequest",
    "CancelBookingResponse",
    "CancellationPreviewResponse",
    "CheckInRequest",
    "CheckInResponse",
    "CheckOutRequest",
    "CheckOutResponse",
    "DeclineBookingRequest",
    "DeclineBookingResponse",
    "ExtendTimeRequest",
    "ExtendTimeResponse",
    "HealthLiteResponse",
    "HealthResponse",
    "PricingQuoteRequest",
    "PricingQuoteResponse",
    "TransitionResponse",
    "WebhookResponse",
]
