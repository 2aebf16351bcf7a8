"""Paginated, cached property search.

A search runs as a pipeline over one predicate set:

    fetch_window -> fetch_candidates -> reconcile -> enrich

``reconcile`` is where post-filter criteria (schools) are applied in process.
When such criteria are present the store is read from offset 0 with a window
of ``page * per_page * overfetch_multiplier`` rows, and the requested page is
cut from what survives the filter. ``total`` is then the filtered count, so
pages past the fetched window come back empty rather than being papered over.
When the hook declines to filter (returns None) the whole overfetched window
and the store total are returned as they are.
"""
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

from .cache import CacheService
from .conditions import ConditionBuilder, PredicateSet
from .filters_catalog import DEFAULT_PER_PAGE, MAX_PER_PAGE, MAX_PHOTOS_PER_LISTING, POST_FILTER_OVERFETCH
from .hooks import NullPostFilter, PostFilterHook
from .repository import LIST_COLUMNS, PropertyRepository, Row
from .schemas import FilterRequest, ListItem, ResultPage, normalize_filters
from .utils import SQLITE_INT_MAX, digest, to_int

logger = logging.getLogger(__name__)

CACHE_NAMESPACE = "property_search"
CACHE_TTL = 120


@dataclass(frozen=True)
class FetchWindow:
    limit: int
    offset: int


def clamp_pagination(page: Any, per_page: Any, max_per_page: int = MAX_PER_PAGE) -> tuple[int, int]:
    page_n = to_int(page)
    per_page_n = to_int(per_page)
    if per_page_n is None:
        per_page_n = DEFAULT_PER_PAGE
    # keeps page * per_page * overfetch bindable as a LIMIT
    max_page = SQLITE_INT_MAX // (max_per_page * POST_FILTER_OVERFETCH)
    return max(1, min(max_page, page_n or 1)), max(1, min(max_per_page, per_page_n))


def fetch_window(predicates: PredicateSet, page: int, per_page: int) -> FetchWindow:
    if not predicates.has_post_filter_criteria:
        return FetchWindow(limit=per_page, offset=(page - 1) * per_page)
    m = predicates.overfetch_multiplier
    return FetchWindow(limit=max(per_page * m, page * per_page * m), offset=0)


def build_cache_key(filters: Mapping[str, Any], page: int, per_page: int) -> str:
    # digest() sorts keys, so parameter order never splits the cache
    return "search_" + digest({"filters": dict(filters), "page": page, "per_page": per_page})


class PropertySearchService:
    def __init__(
        self,
        repository: PropertyRepository,
        cache: CacheService,
        builder: Optional[ConditionBuilder] = None,
        post_filter: Optional[PostFilterHook] = None,
        clock: Optional[Callable[[], datetime]] = None,
        max_per_page: int = MAX_PER_PAGE,
    ):
        self.repository = repository
        self.cache = cache
        self.clock = clock or datetime.now
        self.builder = builder or ConditionBuilder(clock=self.clock)
        self.post_filter = post_filter or NullPostFilter()
        self.max_per_page = max_per_page

    def search(self, filters: "FilterRequest | Mapping[str, Any] | None",
               page: Any = 1, per_page: Any = DEFAULT_PER_PAGE) -> ResultPage:
        page, per_page = clamp_pagination(page, per_page, self.max_per_page)
        normalized = normalize_filters(filters)
        key = build_cache_key(normalized, page, per_page)
        result = self.cache.get_or_compute(
            key, CACHE_TTL, CACHE_NAMESPACE, lambda: self._execute(normalized, page, per_page)
        )
        # callers get their own copy; the cached page stays as computed
        return result.model_copy(deep=True)

    def _execute(self, filters: dict[str, Any], page: int, per_page: int) -> ResultPage:
        started = time.perf_counter()
        predicates = self.builder.build(filters)
        window = fetch_window(predicates, page, per_page)

        rows, total = self.fetch_candidates(predicates, window)
        rows, total = self.reconcile(predicates, rows, total, page, per_page)
        items = self.enrich(rows)

        logger.info(
            "search page=%d per_page=%d direct=%s post_filter=%s limit=%d offset=%d total=%d (%d ms)",
            page, per_page, predicates.is_direct_lookup, predicates.has_post_filter_criteria,
            window.limit, window.offset, total, int((time.perf_counter() - started) * 1000),
        )
        return ResultPage(items=items, total=total, page=page, per_page=per_page)

    def fetch_candidates(self, predicates: PredicateSet, window: FetchWindow) -> tuple[list[Row], int]:
        where = predicates.where
        rows = self.repository.search(LIST_COLUMNS, where, predicates.order_by, window.limit, window.offset)
        total = self.repository.count(where)
        return rows, total

    def reconcile(self, predicates: PredicateSet, rows: list[Row], total: int,
                  page: int, per_page: int) -> tuple[list[Row], int]:
        if not predicates.has_post_filter_criteria or not rows:
            return rows, total

        filtered = self.post_filter.apply(rows, predicates.post_filter_criteria)
        if filtered is None:
            # No filter available: the overfetched window and store total stand.
            return rows, total

        offset = (page - 1) * per_page
        filtered = list(filtered)
        logger.info("post-filter kept %d of %d candidates", len(filtered), len(rows))
        return filtered[offset:offset + per_page], len(filtered)

    def enrich(self, rows: list[Row]) -> list[ListItem]:
        if not rows:
            return []
        keys = list(dict.fromkeys(row["listing_key"] for row in rows))
        media = self.repository.batch_fetch_media(keys, MAX_PHOTOS_PER_LISTING)
        open_houses = self.repository.batch_fetch_next_open_houses(keys, self.clock().strftime("%Y-%m-%d"))
        return [
            ListItem.from_row(row, media.get(row["listing_key"], []), open_houses.get(row["listing_key"]))
            for row in rows
        ]
