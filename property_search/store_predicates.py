"""Store-evaluable versions of the geometry predicates.

Fragments use ``?`` placeholders for every number; only sanitized column
names are interpolated. Each builder mirrors a function in ``geometry`` and
must select exactly the rows that function accepts.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from .geometry import GeoPoint, close_polygon

_UNSAFE_IDENTIFIER = re.compile(r"[^A-Za-z0-9_.]")


@dataclass(frozen=True)
class Predicate:
    sql: str
    params: tuple[Any, ...] = ()

    @classmethod
    def all_of(cls, predicates: Iterable["Predicate"]) -> "Predicate":
        predicates = list(predicates)
        if not predicates:
            return cls("1 = 1")
        params: list[Any] = []
        for p in predicates:
            params.extend(p.params)
        return cls(" AND ".join(p.sql for p in predicates), tuple(params))


def sanitize_column(name: str) -> str:
    return _UNSAFE_IDENTIFIER.sub("", name or "")


def radius_predicate(
    center: GeoPoint,
    radius_miles: float,
    lat_column: str = "latitude",
    lng_column: str = "longitude",
) -> Predicate:
    # Law of cosines, not Haversine: matches geometry.cosine_distance.
    lat_col = sanitize_column(lat_column)
    lng_col = sanitize_column(lng_column)
    sql = (
        f"(3959 * ACOS(COS(RADIANS(?)) * COS(RADIANS({lat_col})) * COS(RADIANS({lng_col}) - RADIANS(?))"
        f" + SIN(RADIANS(?)) * SIN(RADIANS({lat_col})))) <= ?"
    )
    return Predicate(sql, (center.lat, center.lng, center.lat, float(radius_miles)))


def bounds_predicate(
    north: float,
    south: float,
    east: float,
    west: float,
    lat_column: str = "latitude",
    lng_column: str = "longitude",
) -> Predicate:
    lat_col = sanitize_column(lat_column)
    lng_col = sanitize_column(lng_column)
    return Predicate(
        f"({lat_col} BETWEEN ? AND ? AND {lng_col} BETWEEN ? AND ?)",
        (float(south), float(north), float(west), float(east)),
    )


def polygon_predicate(
    polygon: Sequence[Any],
    lat_column: str = "latitude",
    lng_column: str = "longitude",
) -> Predicate:
    """Ray-casting parity as a sum of 0/1 crossing terms, one per edge.

    Edge k runs from point k+1 (anchor) back to point k, the same pairing
    and arithmetic order ``point_in_polygon`` uses for edge (i, i-1).
    """
    lat_col = sanitize_column(lat_column)
    lng_col = sanitize_column(lng_column)
    points = close_polygon(polygon)

    terms: list[str] = []
    params: list[Any] = []
    for k in range(len(points) - 1):
        pj, pi = points[k], points[k + 1]
        terms.append(
            f"CASE WHEN ((? > {lng_col}) != (? > {lng_col}))"
            f" AND ({lat_col} < (? - ?) * ({lng_col} - ?) / (? - ?) + ?) THEN 1 ELSE 0 END"
        )
        params.extend([pi.lng, pj.lng, pj.lat, pi.lat, pi.lng, pj.lng, pi.lng, pi.lat])

    if not terms:
        return Predicate("1 = 0")
    return Predicate(f"(({' + '.join(terms)}) % 2 = 1)", tuple(params))
