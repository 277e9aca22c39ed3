"""Shared identifiers and clock for the booking core tests."""

from datetime import datetime, timezone

CUSTOMER_ID = "user_customer_01"
PROFESSIONAL_ID = "user_professional_01"
OTHER_USER_ID = "user_someone_else"

# Frozen once per run; service tests pass it as the clock, route tests use the
# wall clock which is never earlier
NOW = datetime.now(timezone.utc).replace(microsecond=0)

# Service address used for location checks (Bogota, Parque de la 93)
SITE_LAT = 4.6767
SITE_LNG = -74.0483
