"""Great-circle distance helpers."""
from __future__ import annotations

from math import atan2, cos, radians, sin, sqrt
from typing import Tuple, Union

from smart_budget.schemas import Coordinates

EARTH_RADIUS_KM = 6371.0

Point = Union[Coordinates, Tuple[float, float]]


def _as_pair(point: Point) -> Tuple[float, float]:
    if isinstance(point, Coordinates):
        return point.lat, point.lng
    lat, lng = point
    return float(lat), float(lng)


def distance_km(anchor: Point, point: Point) -> float:
    """Haversine distance in kilometres between two (lat, lng) points."""
    lat1, lng1 = _as_pair(anchor)
    lat2, lng2 = _as_pair(point)
    d_lat = radians(lat2 - lat1)
    d_lng = radians(lng2 - lng1)
    a = sin(d_lat / 2) ** 2 + cos(radians(lat1)) * cos(radians(lat2)) * sin(d_lng / 2) ** 2
    # rounding can push a just past 1 for antipodal points
    a = min(1.0, max(0.0, a))
    return EARTH_RADIUS_KM * 2 * atan2(sqrt(a), sqrt(1 - a))
