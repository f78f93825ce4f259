"""Great-circle distance on a spherical Earth."""

from __future__ import annotations

import math
from dataclasses import dataclass

EARTH_RADIUS_MILES = 3958.8


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float


def haversine_miles(origin: Coordinates, target: Coordinates) -> float:
    """Return the haversine distance between two points, in miles."""
    lat1 = math.radians(origin.latitude)
    lat2 = math.radians(target.latitude)
    d_lat = math.radians(target.latitude - origin.latitude)
    d_lon = math.radians(target.longitude - origin.longitude)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_MILES * c
