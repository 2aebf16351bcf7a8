"""Turns a flat filter mapping into a parameterized predicate set.

Every dynamic value travels as a bound parameter. A value that is falsy or
does not parse drops its own filter; building never raises on user input.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Mapping, Optional

from .db import OPEN_HOUSES_TABLE
from .filters_catalog import (
    DIRECT_LOOKUP_KEYS,
    EXCLUSIVE_ID_CEILING,
    LOT_SQFT_THRESHOLD,
    POST_FILTER_OVERFETCH,
    SCHOOL_KEYS,
    SQFT_PER_ACRE,
)
from .geometry import GeoPoint, coerce_polygon, validate_coordinate
from .sorting import OrderBy, SortResolver
from .status import StatusResolver
from .store_predicates import Predicate, bounds_predicate, polygon_predicate, radius_predicate
from .utils import escape_like, is_truthy, split_csv, to_float, to_int

DIRECT_LOOKUP_ORDER = OrderBy("listing_contract_date", "DESC")


@dataclass(frozen=True)
class PredicateSet:
    predicates: tuple[Predicate, ...]
    order_by: OrderBy
    is_direct_lookup: bool = False
    has_post_filter_criteria: bool = False
    post_filter_criteria: dict[str, Any] = field(default_factory=dict)
    overfetch_multiplier: int = 1

    @property
    def where(self) -> Predicate:
        return Predicate.all_of(self.predicates)


def _present(filters: Mapping[str, Any], key: str) -> bool:
    value = filters.get(key)
    if value is None or value is False:
        return False
    if isinstance(value, str):
        return value.strip() not in ("", "0")
    if isinstance(value, (list, tuple, dict)):
        return len(value) > 0
    return bool(value)


def _positive_int(filters: Mapping[str, Any], key: str) -> Optional[int]:
    """Integer value of a filter, or None when absent, non-numeric or zero."""
    if not _present(filters, key):
        return None
    number = to_int(filters[key])
    return number if number else None


def _lot_acres(value: Any) -> Optional[float]:
    number = to_float(value)
    if not number:
        return None
    if number > LOT_SQFT_THRESHOLD:
        return number / SQFT_PER_ACRE
    return number


def _in_list(column: str, values: list[str]) -> Predicate:
    placeholders = ", ".join("?" for _ in values)
    return Predicate(f"{column} IN ({placeholders})", tuple(values))


class ConditionBuilder:
    def __init__(
        self,
        status_resolver: Optional[StatusResolver] = None,
        sort_resolver: Optional[SortResolver] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.status_resolver = status_resolver or StatusResolver()
        self.sort_resolver = sort_resolver or SortResolver()
        self.clock = clock or datetime.now

    def build(self, filters: Mapping[str, Any]) -> PredicateSet:
        filters = filters or {}
        if any(_present(filters, k) for k in DIRECT_LOOKUP_KEYS):
            return self._direct_lookup(filters)

        predicates: list[Predicate] = [self.status_resolver.resolve(filters.get("status") or "Active")]
        for family in (
            self._location,
            self._type,
            self._price,
            self._rooms,
            self._size,
            self._time,
            self._parking,
            self._amenities,
            self._special,
            self._geo,
        ):
            predicates.extend(family(filters))

        criteria = {k: filters[k] for k in SCHOOL_KEYS if _present(filters, k)}
        return PredicateSet(
            predicates=tuple(predicates),
            order_by=self.sort_resolver.resolve(filters.get("sort")),
            has_post_filter_criteria=bool(criteria),
            post_filter_criteria=criteria,
            overfetch_multiplier=POST_FILTER_OVERFETCH if criteria else 1,
        )

    def _direct_lookup(self, filters: Mapping[str, Any]) -> PredicateSet:
        # No status predicate: archived and active rows both match.
        predicates = []
        if _present(filters, "mls_number"):
            predicates.append(Predicate("listing_id = ?", (str(filters["mls_number"]).strip(),)))
        if _present(filters, "address"):
            term = "%" + escape_like(str(filters["address"]).strip()) + "%"
            predicates.append(Predicate("unparsed_address LIKE ? ESCAPE '\\'", (term,)))
        return PredicateSet(tuple(predicates), DIRECT_LOOKUP_ORDER, is_direct_lookup=True)

    def _location(self, filters):
        out = []
        cities = split_csv(filters.get("city"))
        if cities:
            out.append(_in_list("city", cities))
        zips = split_csv(filters.get("zip"))
        if zips:
            out.append(_in_list("postal_code", zips))
        if _present(filters, "neighborhood"):
            term = str(filters["neighborhood"]).strip()
            out.append(Predicate(
                "(subdivision_name = ? OR mls_area_major = ? OR mls_area_minor = ?)", (term, term, term)
            ))
        if _present(filters, "street_name"):
            term = "%" + escape_like(str(filters["street_name"]).strip()) + "%"
            out.append(Predicate("street_name LIKE ? ESCAPE '\\'", (term,)))
        return out

    def _type(self, filters):
        out = []
        if _present(filters, "property_type"):
            out.append(Predicate("property_type = ?", (str(filters["property_type"]).strip(),)))
        sub_types = split_csv(filters.get("property_sub_type"))
        if len(sub_types) == 1:
            out.append(Predicate("property_sub_type = ?", (sub_types[0],)))
        elif sub_types:
            out.append(_in_list("property_sub_type", sub_types))
        return out

    def _price(self, filters):
        out = []
        min_price = _positive_int(filters, "min_price")
        if min_price is not None:
            out.append(Predicate("list_price >= ?", (min_price,)))
        max_price = _positive_int(filters, "max_price")
        if max_price is not None:
            out.append(Predicate("list_price <= ?", (max_price,)))
        if is_truthy(filters.get("price_reduced")):
            out.append(Predicate("original_list_price > list_price"))
        return out

    def _rooms(self, filters):
        out = []
        beds = _positive_int(filters, "beds")
        if beds is not None:
            out.append(Predicate("bedrooms_total >= ?", (beds,)))
        baths = _positive_int(filters, "baths")
        if baths is not None:
            out.append(Predicate("bathrooms_total >= ?", (baths,)))
        return out

    def _size(self, filters):
        out = []
        sqft_min = _positive_int(filters, "sqft_min")
        if sqft_min is not None:
            out.append(Predicate("living_area >= ?", (sqft_min,)))
        sqft_max = _positive_int(filters, "sqft_max")
        if sqft_max is not None:
            out.append(Predicate("living_area <= ?", (sqft_max,)))
        lot_min = _lot_acres(filters.get("lot_size_min"))
        if lot_min is not None:
            out.append(Predicate("lot_size_acres >= ?", (lot_min,)))
        lot_max = _lot_acres(filters.get("lot_size_max"))
        if lot_max is not None:
            out.append(Predicate("lot_size_acres <= ?", (lot_max,)))
        return out

    def _time(self, filters):
        out = []
        year_min = _positive_int(filters, "year_built_min")
        if year_min is not None:
            out.append(Predicate("year_built >= ?", (year_min,)))
        year_max = _positive_int(filters, "year_built_max")
        if year_max is not None:
            out.append(Predicate("year_built <= ?", (year_max,)))
        max_dom = _positive_int(filters, "max_dom")
        if max_dom is not None:
            out.append(Predicate("days_on_market <= ?", (max_dom,)))
        min_dom = _positive_int(filters, "min_dom")
        if min_dom is not None:
            out.append(Predicate("days_on_market >= ?", (min_dom,)))
        days = _positive_int(filters, "new_listing_days")
        if days is not None:
            cutoff = self.clock() - timedelta(days=days)
            out.append(Predicate("listing_contract_date >= ?", (cutoff.strftime("%Y-%m-%d %H:%M:%S"),)))
        return out

    def _parking(self, filters):
        out = []
        garage = _positive_int(filters, "garage_spaces_min")
        if garage is not None:
            out.append(Predicate("garage_spaces >= ?", (garage,)))
        parking = _positive_int(filters, "parking_total_min")
        if parking is not None:
            out.append(Predicate("parking_total >= ?", (parking,)))
        return out

    def _amenities(self, filters):
        out = []
        if is_truthy(filters.get("has_virtual_tour")):
            out.append(Predicate("virtual_tour_url_unbranded IS NOT NULL"))
        if is_truthy(filters.get("has_garage")):
            out.append(Predicate("garage_spaces > 0"))
        if is_truthy(filters.get("has_fireplace")):
            out.append(Predicate("fireplaces_total > 0"))
        return out

    def _special(self, filters):
        out = []
        if is_truthy(filters.get("open_house_only")):
            today = self.clock().strftime("%Y-%m-%d")
            out.append(Predicate(
                f"listing_key IN (SELECT listing_key FROM {OPEN_HOUSES_TABLE} WHERE open_house_date >= ?)",
                (today,),
            ))
        if is_truthy(filters.get("exclusive_only")):
            out.append(Predicate("CAST(listing_id AS INTEGER) < ?", (EXCLUSIVE_ID_CEILING,)))
        return out

    def _geo(self, filters):
        out = []
        if _present(filters, "bounds"):
            parts = [to_float(p) for p in split_csv(filters["bounds"])]
            if len(parts) == 4 and None not in parts:
                south, west, north, east = parts
                out.append(bounds_predicate(north, south, east, west))
        if _present(filters, "polygon"):
            polygon = coerce_polygon(filters["polygon"])
            if polygon is not None and len(polygon) >= 3:
                out.append(polygon_predicate(polygon))
        if _present(filters, "radius"):
            radius = to_float(filters["radius"])
            lat, lng = to_float(filters.get("lat")), to_float(filters.get("lng"))
            if radius and radius > 0 and validate_coordinate(lat, lng):
                out.append(radius_predicate(GeoPoint(lat, lng), radius))
        return out


_default_builder = ConditionBuilder()


def build_predicate(filters: Mapping[str, Any]) -> Predicate:
    """WHERE predicate for a filter mapping, without executing anything."""
    return _default_builder.build(filters).where
