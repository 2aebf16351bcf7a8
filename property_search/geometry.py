"""Pure geometry used by search and by other features (distance display,
coordinate validation in forms).

Every predicate here has a store-side twin in ``store_predicates``; the two
must agree row for row, so formulas and operand order are kept identical.
"""
from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence

EARTH_RADIUS_MILES = 3959.0


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float


def as_point(raw: Any) -> Optional[GeoPoint]:
    """Accept a GeoPoint, a ``(lat, lng)`` pair or a ``{"lat", "lng"}`` mapping."""
    if isinstance(raw, GeoPoint):
        return raw
    try:
        if isinstance(raw, dict):
            lat, lng = raw.get("lat", raw.get("latitude")), raw.get("lng", raw.get("longitude"))
        elif isinstance(raw, (list, tuple)) and len(raw) >= 2:
            lat, lng = raw[0], raw[1]
        else:
            return None
        if isinstance(lat, bool) or isinstance(lng, bool):
            return None
        return GeoPoint(float(lat), float(lng))
    except (TypeError, ValueError):
        return None


def as_points(raw: Iterable[Any]) -> Optional[list[GeoPoint]]:
    points = []
    for item in raw:
        p = as_point(item)
        if p is None:
            return None
        points.append(p)
    return points


def coerce_polygon(raw: Any) -> Optional[list[GeoPoint]]:
    """Polygon from a native sequence or from its JSON text."""
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return None
    if not isinstance(raw, (list, tuple)):
        return None
    return as_points(raw)


def distance(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance in miles (Haversine)."""
    lat1, lng1 = math.radians(a.lat), math.radians(a.lng)
    lat2, lng2 = math.radians(b.lat), math.radians(b.lng)
    d_lat = lat2 - lat1
    d_lng = lng2 - lng1
    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    return 2 * EARTH_RADIUS_MILES * math.asin(math.sqrt(h))


def cosine_distance(center: GeoPoint, point: GeoPoint) -> Optional[float]:
    """Spherical law of cosines, evaluated exactly as the radius predicate does.

    Returns None when rounding pushes the cosine outside [-1, 1], which is
    where the store's ACOS yields NULL and the row is not matched.
    """
    c = (
        math.cos(math.radians(center.lat)) * math.cos(math.radians(point.lat))
        * math.cos(math.radians(point.lng) - math.radians(center.lng))
        + math.sin(math.radians(center.lat)) * math.sin(math.radians(point.lat))
    )
    if c < -1.0 or c > 1.0:
        return None
    return 3959 * math.acos(c)


def point_in_polygon(p: GeoPoint, polygon: Sequence[Any]) -> bool:
    """Ray casting: odd number of edge crossings means inside. No tolerance."""
    points = as_points(polygon)
    if points is None or len(points) < 3:
        return False

    inside = False
    j = len(points) - 1
    for i in range(len(points)):
        pi, pj = points[i], points[j]
        if ((pi.lng > p.lng) != (pj.lng > p.lng)) and (
            p.lat < (pj.lat - pi.lat) * (p.lng - pi.lng) / (pj.lng - pi.lng) + pi.lat
        ):
            inside = not inside
        j = i
    return inside


def within_bounds(p: GeoPoint, north: float, south: float, east: float, west: float) -> bool:
    return south <= p.lat <= north and west <= p.lng <= east


def validate_coordinate(lat: Any, lng: Any) -> bool:
    p = as_point((lat, lng))
    if p is None:
        return False
    return -90.0 <= p.lat <= 90.0 and -180.0 <= p.lng <= 180.0


def validate_polygon(polygon: Any) -> bool:
    if not isinstance(polygon, (list, tuple)) or len(polygon) < 3:
        return False
    points = as_points(polygon)
    if points is None:
        return False
    return all(validate_coordinate(p.lat, p.lng) for p in points)


def close_polygon(polygon: Sequence[Any]) -> list[GeoPoint]:
    """Append the first point when it differs from the last. Idempotent.

    Unparseable input yields an empty polygon.
    """
    points = as_points(polygon) or []
    if points and points[0] != points[-1]:
        points.append(points[0])
    return points
