"""
Database models for the Casaora booking core.

The models are organized by functionality:
- Bookings, their status history and add-on snapshots
- Service catalog used for server-side pricing
"""

from .booking import (
    TERMINAL_STATUSES,
    Booking,
    BookingAddon,
    BookingStatus,
    BookingStatusHistory,
)
from .service_catalog import ProfessionalService, ServiceAddon, ServicePricingTier

__all__ = [
    "Booking",
    "BookingAddon",
    "BookingStatus",
    "BookingStatusHistory",
    "ProfessionalService",
    "ServiceAddon",
    "ServicePricingTier",
    "TERMINAL_STATUSES",
]
