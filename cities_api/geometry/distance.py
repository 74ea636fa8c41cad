"""Great-circle distance on a spherical Earth."""

from dataclasses import dataclass
from math import atan2, cos, radians, sin, sqrt

EARTH_RADIUS_M = 6_371_000


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lon: float


def distance_between(p1: GeoPoint, p2: GeoPoint) -> float:
    """Return the Haversine distance in meters between two points.

    Assumes a perfect sphere of radius EARTH_RADIUS_M and no surface height
    variation.

        a = sin²(Δφ/2) + cos φ1 · cos φ2 · sin²(Δλ/2)
        c = 2 · atan2(√a, √(1−a))
        d = R · c

    Args:
        p1: First point, anything exposing `lat` and `lon` in degrees.
        p2: Second point.

    Returns:
        Distance in meters. Non-numeric coordinates are not handled.
    """
    lat1 = radians(p1.lat)
    lat2 = radians(p2.lat)
    delta_lat = radians(p2.lat - p1.lat)
    delta_lon = radians(p2.lon - p1.lon)

    a = sin(delta_lat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(delta_lon / 2) ** 2
    c = 2 * atan2(sqrt(a), sqrt(1 - a))
    return EARTH_RADIUS_M * c
