"""Application-wide constants for the booking core."""

from __future__ import annotations

import os

BRAND_NAME = "Casaora"

API_TITLE = f"{BRAND_NAME} Booking API"
API_VERSION = "1.0.0"
API_DESCRIPTION = (
    "Booking lifecycle and payment orchestration for home-service professionals."
)

# Cancellation policy tiers (hours before scheduled start, inclusive lower bounds)
FULL_REFUND_MIN_HOURS = 24
PARTIAL_REFUND_MIN_HOURS = 12
PARTIAL_REFUND_PERCENTAGE = 50

# Check-in / check-out GPS soft enforcement
DEFAULT_CHECK_IN_MAX_DISTANCE_METERS = 150.0

# Time extension limits
MIN_EXTENSION_MINUTES = 1
MAX_EXTENSION_MINUTES = 480

# Text constraints
MAX_REASON_LENGTH = 500
MAX_COMPLETION_NOTES_LENGTH = 2000

# Header forwarded by the auth gateway with the authenticated subject
ACTOR_HEADER = "X-User-Sub"

# Placeholder used by notification formatting when data is missing
NOT_AVAILABLE_LABEL = "TBD"
ADDRESS_NOT_SPECIFIED_LABEL = "Not specified"

DEFAULT_DEV_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]


def _split_env(name: str) -> list[str]:
    value = os.getenv(name, "")
    return [origin.strip() for origin in value.split(",") if origin.strip()]


ALLOWED_ORIGINS = _split_env("ALLOWED_ORIGINS") or DEFAULT_DEV_ORIGINS
