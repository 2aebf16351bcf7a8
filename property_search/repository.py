import logging
import sqlite3
from pathlib import Path
from typing import Any, Optional, Protocol, Sequence

from .db import (
    AGENTS_TABLE,
    HISTORY_TABLE,
    MEDIA_TABLE,
    OFFICES_TABLE,
    OPEN_HOUSES_TABLE,
    PROPERTIES_TABLE,
    open_conn,
)
from .errors import QueryExecutionError
from .filters_catalog import MAX_PHOTOS_PER_LISTING
from .sorting import OrderBy
from .store_predicates import Predicate
from .utils import escape_like

logger = logging.getLogger(__name__)

# Reduced projection for list queries; detail fetches read the full row.
LIST_COLUMNS = (
    "listing_key", "listing_id", "unparsed_address", "street_number", "street_name", "unit_number",
    "city", "state_or_province", "postal_code", "list_price", "original_list_price", "close_price",
    "bedrooms_total", "bathrooms_total", "bathrooms_full", "bathrooms_half", "living_area",
    "lot_size_acres", "year_built", "garage_spaces", "property_type", "property_sub_type",
    "standard_status", "latitude", "longitude", "listing_contract_date", "days_on_market",
    "main_photo_url", "is_archived",
)

AUTOCOMPLETE_LIMIT = 5
_ACTIVE = "is_archived = 0 AND standard_status = 'Active'"

Row = dict[str, Any]


class PropertyRepository(Protocol):
    def search(self, columns: Sequence[str], where: Predicate, order_by: OrderBy,
               limit: int, offset: int) -> list[Row]: ...
    def count(self, where: Predicate) -> int: ...
    def find_by_listing_id(self, listing_id: str) -> Optional[Row]: ...
    def find_by_listing_keys(self, listing_keys: Sequence[str]) -> list[Row]: ...
    def batch_fetch_media(self, listing_keys: Sequence[str],
                          max_per_listing: int = MAX_PHOTOS_PER_LISTING) -> dict[str, list[Row]]: ...
    def batch_fetch_next_open_houses(self, listing_keys: Sequence[str], today: str) -> dict[str, Row]: ...
    def fetch_all_media(self, listing_key: str) -> list[Row]: ...
    def fetch_upcoming_open_houses(self, listing_key: str, today: str) -> list[Row]: ...
    def fetch_history(self, listing_key: str) -> list[Row]: ...
    def find_agent(self, agent_mls_id: str) -> Optional[Row]: ...
    def find_office(self, office_mls_id: str) -> Optional[Row]: ...
    def autocomplete_mls_numbers(self, term: str) -> list[Row]: ...
    def autocomplete_cities(self, term: str) -> list[Row]: ...
    def autocomplete_zips(self, term: str) -> list[Row]: ...
    def autocomplete_neighborhoods(self, term: str) -> list[Row]: ...
    def autocomplete_street_names(self, term: str) -> list[Row]: ...
    def autocomplete_addresses(self, term: str) -> list[Row]: ...


def _placeholders(values: Sequence[Any]) -> str:
    return ", ".join("?" for _ in values)


class SQLitePropertyRepository:
    """PropertyRepository over a SQLite file. One connection per call."""

    def __init__(self, db_path: str | Path):
        self.db_path = db_path

    def _fetch(self, sql: str, params: Sequence[Any] = ()) -> list[Row]:
        try:
            with open_conn(self.db_path) as conn:
                return [dict(r) for r in conn.execute(sql, tuple(params)).fetchall()]
        except sqlite3.Error as exc:
            logger.exception("Listing query failed: %s", sql)
            raise QueryExecutionError("Listing query failed.") from exc

    def _fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[Row]:
        rows = self._fetch(sql, params)
        return rows[0] if rows else None

    # --- search --------------------------------------------------------

    def search(self, columns, where, order_by, limit, offset):
        select = ", ".join(columns) if columns else "*"
        sql = (
            f"SELECT {select} FROM {PROPERTIES_TABLE} WHERE {where.sql} "
            f"ORDER BY {order_by.sql} LIMIT ? OFFSET ?"
        )
        return self._fetch(sql, (*where.params, int(limit), int(offset)))

    def count(self, where):
        row = self._fetch_one(f"SELECT COUNT(*) AS n FROM {PROPERTIES_TABLE} WHERE {where.sql}", where.params)
        return int(row["n"]) if row else 0

    # --- single listing ------------------------------------------------

    def find_by_listing_id(self, listing_id):
        row = self._fetch_one(
            f"SELECT * FROM {PROPERTIES_TABLE} WHERE listing_id = ? AND is_archived = 0 LIMIT 1", (listing_id,)
        )
        if row is not None:
            return row
        return self._fetch_one(f"SELECT * FROM {PROPERTIES_TABLE} WHERE listing_id = ? LIMIT 1", (listing_id,))

    def find_by_listing_keys(self, listing_keys):
        keys = list(dict.fromkeys(listing_keys))
        if not keys:
            return []
        return self._fetch(
            f"SELECT * FROM {PROPERTIES_TABLE} WHERE listing_key IN ({_placeholders(keys)})", keys
        )

    def find_agent(self, agent_mls_id):
        return self._fetch_one(f"SELECT * FROM {AGENTS_TABLE} WHERE agent_mls_id = ? LIMIT 1", (agent_mls_id,))

    def find_office(self, office_mls_id):
        return self._fetch_one(f"SELECT * FROM {OFFICES_TABLE} WHERE office_mls_id = ? LIMIT 1", (office_mls_id,))

    # --- media / open houses / history ---------------------------------

    def batch_fetch_media(self, listing_keys, max_per_listing=MAX_PHOTOS_PER_LISTING):
        keys = list(dict.fromkeys(listing_keys))
        if not keys:
            return {}
        rows = self._fetch(
            f"SELECT listing_key, media_url, media_category, order_index FROM {MEDIA_TABLE} "
            f"WHERE listing_key IN ({_placeholders(keys)}) ORDER BY listing_key, order_index ASC",
            keys,
        )
        grouped: dict[str, list[Row]] = {}
        for row in rows:
            photos = grouped.setdefault(row["listing_key"], [])
            if len(photos) < max_per_listing:
                photos.append(row)
        return grouped

    def batch_fetch_next_open_houses(self, listing_keys, today):
        keys = list(dict.fromkeys(listing_keys))
        if not keys:
            return {}
        rows = self._fetch(
            f"SELECT listing_key, open_house_date, open_house_start_time, open_house_end_time "
            f"FROM {OPEN_HOUSES_TABLE} WHERE listing_key IN ({_placeholders(keys)}) AND open_house_date >= ? "
            f"ORDER BY open_house_date ASC, open_house_start_time ASC",
            (*keys, today),
        )
        soonest: dict[str, Row] = {}
        for row in rows:
            soonest.setdefault(row["listing_key"], row)
        return soonest

    def fetch_all_media(self, listing_key):
        return self._fetch(
            f"SELECT media_url, media_category, order_index FROM {MEDIA_TABLE} "
            f"WHERE listing_key = ? ORDER BY order_index ASC",
            (listing_key,),
        )

    def fetch_upcoming_open_houses(self, listing_key, today):
        return self._fetch(
            f"SELECT open_house_date, open_house_start_time, open_house_end_time, open_house_type, "
            f"open_house_remarks FROM {OPEN_HOUSES_TABLE} WHERE listing_key = ? AND open_house_date >= ? "
            f"ORDER BY open_house_date ASC, open_house_start_time ASC",
            (listing_key, today),
        )

    def fetch_history(self, listing_key):
        return self._fetch(
            f"SELECT change_type, field_name, old_value, new_value, changed_at FROM {HISTORY_TABLE} "
            f"WHERE listing_key = ? ORDER BY changed_at DESC",
            (listing_key,),
        )

    # --- autocomplete --------------------------------------------------

    def _grouped_active(self, column: str, like: str) -> list[Row]:
        return self._fetch(
            f"SELECT {column} AS value, COUNT(*) AS count FROM {PROPERTIES_TABLE} "
            f"WHERE {_ACTIVE} AND {column} LIKE ? ESCAPE '\\' "
            f"GROUP BY {column} ORDER BY count DESC LIMIT ?",
            (like, AUTOCOMPLETE_LIMIT),
        )

    def autocomplete_mls_numbers(self, term):
        return self._fetch(
            f"SELECT listing_id AS value FROM {PROPERTIES_TABLE} WHERE listing_id LIKE ? ESCAPE '\\' "
            f"ORDER BY is_archived ASC, listing_contract_date DESC LIMIT ?",
            (escape_like(term) + "%", AUTOCOMPLETE_LIMIT),
        )

    def autocomplete_cities(self, term):
        return self._grouped_active("city", "%" + escape_like(term) + "%")

    def autocomplete_zips(self, term):
        return self._grouped_active("postal_code", escape_like(term) + "%")

    def autocomplete_neighborhoods(self, term):
        like = "%" + escape_like(term) + "%"
        parts = [
            f"SELECT {col} AS value, COUNT(*) AS count FROM {PROPERTIES_TABLE} "
            f"WHERE {_ACTIVE} AND {col} LIKE ? ESCAPE '\\' GROUP BY {col}"
            for col in ("subdivision_name", "mls_area_major", "mls_area_minor")
        ]
        return self._fetch(
            f"SELECT value, SUM(count) AS count FROM ({' UNION ALL '.join(parts)}) "
            f"GROUP BY value ORDER BY count DESC LIMIT ?",
            (like, like, like, AUTOCOMPLETE_LIMIT),
        )

    def autocomplete_street_names(self, term):
        return self._grouped_active("street_name", "%" + escape_like(term) + "%")

    def autocomplete_addresses(self, term):
        return self._fetch(
            f"SELECT unparsed_address AS value, listing_id FROM {PROPERTIES_TABLE} "
            f"WHERE unparsed_address LIKE ? ESCAPE '\\' "
            f"ORDER BY is_archived ASC, listing_contract_date DESC LIMIT ?",
            ("%" + escape_like(term) + "%", AUTOCOMPLETE_LIMIT),
        )
