from __future__ import annotations

from math import asin, cos, radians, sin, sqrt
from typing import Protocol

"""
Geospatial helpers.

One haversine implementation shared by the distance filter and the distance labels on
map markers, so the number a user reads always matches the number that filtered the spot.
"""

EARTH_RADIUS_KM = 6371.0


class LatLon(Protocol):
    latitude: float
    longitude: float


def distance_km(a: LatLon, b: LatLon) -> float:
    """Compute great-circle distance in kilometers between two coordinates.

    Inputs are not range-checked; out-of-range values may produce NaN.
    """
    lat1 = radians(a.latitude)
    lon1 = radians(a.longitude)
    lat2 = radians(b.latitude)
    lon2 = radians(b.longitude)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    if h > 1.0:
        # Float rounding near antipodal points.
        h = 1.0
    return 2 * EARTH_RADIUS_KM * asin(sqrt(h))
