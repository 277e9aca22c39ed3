"""Distance helpers for check-in and check-out location checks."""

from __future__ import annotations

import math
from typing import Optional

EARTH_RADIUS_METERS = 6_371_000


def haversine_distance_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two WGS84 points, in meters."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(min(1.0, math.sqrt(a)))


def distance_from_site(
    site_lat: Optional[float],
    site_lng: Optional[float],
    lat: float,
    lng: float,
) -> Optional[float]:
    """Distance to the service location, or None when the booking has no location."""
    if site_lat is None or site_lng is None:
        return None
    return haversine_distance_meters(float(site_lat), float(site_lng), lat, lng)
