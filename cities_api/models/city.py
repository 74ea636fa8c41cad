"""Coordinate access for raw city records.

Records stay plain dicts so opaque fields pass through untouched; only the
coordinates are ever interpreted.
"""

import math
import re

from cities_api.geometry.distance import GeoPoint

_DECIMAL = re.compile(r"[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?")


def coordinate(value) -> float | None:
    """Return a finite coordinate from a number or numeric string, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str) and _DECIMAL.fullmatch(value.strip()):
        number = float(value)
    else:
        return None
    return number if math.isfinite(number) else None


def point_of(record: dict) -> GeoPoint | None:
    """Return the coordinates of a raw record, or None if they aren't numeric."""
    lat = coordinate(record.get("latitude"))
    lon = coordinate(record.get("longitude"))
    if lat is None or lon is None:
        return None
    return GeoPoint(lat=lat, lon=lon)
