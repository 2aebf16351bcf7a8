from __future__ import annotations

import math
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

PROPERTIES_TABLE = "properties"
MEDIA_TABLE = "media"
OPEN_HOUSES_TABLE = "open_houses"
AGENTS_TABLE = "agents"
OFFICES_TABLE = "offices"
HISTORY_TABLE = "property_history"

SCHEMA = f"""
CREATE TABLE IF NOT EXISTS {PROPERTIES_TABLE} (
    listing_key TEXT PRIMARY KEY,
    listing_id TEXT,
    is_archived INTEGER NOT NULL DEFAULT 0,
    standard_status TEXT,
    unparsed_address TEXT,
    street_number TEXT,
    street_name TEXT,
    unit_number TEXT,
    city TEXT,
    state_or_province TEXT,
    postal_code TEXT,
    county_or_parish TEXT,
    subdivision_name TEXT,
    mls_area_major TEXT,
    mls_area_minor TEXT,
    list_price REAL,
    original_list_price REAL,
    close_price REAL,
    close_date TEXT,
    price_per_sqft REAL,
    bedrooms_total INTEGER,
    bathrooms_total INTEGER,
    bathrooms_full INTEGER,
    bathrooms_half INTEGER,
    living_area INTEGER,
    lot_size_acres REAL,
    year_built INTEGER,
    rooms_total INTEGER,
    property_type TEXT,
    property_sub_type TEXT,
    latitude REAL,
    longitude REAL,
    listing_contract_date TEXT,
    days_on_market INTEGER,
    garage_spaces INTEGER,
    parking_total INTEGER,
    fireplaces_total INTEGER,
    virtual_tour_url_unbranded TEXT,
    main_photo_url TEXT,
    photo_count INTEGER,
    public_remarks TEXT,
    showing_instructions TEXT,
    tax_annual_amount REAL,
    tax_year INTEGER,
    association_fee REAL,
    association_yn INTEGER,
    elementary_school TEXT,
    middle_or_junior_school TEXT,
    high_school TEXT,
    school_district TEXT,
    list_agent_mls_id TEXT,
    list_office_mls_id TEXT
);
CREATE INDEX IF NOT EXISTS idx_{PROPERTIES_TABLE}_listing_id ON {PROPERTIES_TABLE} (listing_id);
CREATE INDEX IF NOT EXISTS idx_{PROPERTIES_TABLE}_status ON {PROPERTIES_TABLE} (is_archived, standard_status);

CREATE TABLE IF NOT EXISTS {MEDIA_TABLE} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    listing_key TEXT NOT NULL,
    media_url TEXT NOT NULL,
    media_category TEXT,
    order_index INTEGER NOT NULL DEFAULT 0
);
CREATE INDEX IF NOT EXISTS idx_{MEDIA_TABLE}_listing ON {MEDIA_TABLE} (listing_key, order_index);

CREATE TABLE IF NOT EXISTS {OPEN_HOUSES_TABLE} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    listing_key TEXT NOT NULL,
    open_house_date TEXT NOT NULL,
    open_house_start_time TEXT,
    open_house_end_time TEXT,
    open_house_type TEXT,
    open_house_remarks TEXT
);
CREATE INDEX IF NOT EXISTS idx_{OPEN_HOUSES_TABLE}_listing ON {OPEN_HOUSES_TABLE} (listing_key, open_house_date);

CREATE TABLE IF NOT EXISTS {AGENTS_TABLE} (
    agent_mls_id TEXT PRIMARY KEY,
    full_name TEXT,
    email TEXT,
    phone TEXT
);

CREATE TABLE IF NOT EXISTS {OFFICES_TABLE} (
    office_mls_id TEXT PRIMARY KEY,
    office_name TEXT,
    phone TEXT,
    address TEXT,
    city TEXT,
    state_or_province TEXT,
    postal_code TEXT
);

CREATE TABLE IF NOT EXISTS {HISTORY_TABLE} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    listing_key TEXT NOT NULL,
    change_type TEXT,
    field_name TEXT,
    old_value TEXT,
    new_value TEXT,
    changed_at TEXT
);
"""


def _null_safe(fn):
    def wrapper(value):
        if value is None:
            return None
        try:
            return fn(float(value))
        except (TypeError, ValueError):
            # ACOS outside [-1, 1] or a non-numeric cell: NULL, row not matched
            return None
    return wrapper


def register_functions(conn: sqlite3.Connection) -> None:
    """Math functions the generated predicates rely on.

    Recent SQLite builds ship some of them natively; registering keeps the
    behaviour identical (NULL in, NULL out) on every build.
    """
    conn.create_function("RADIANS", 1, _null_safe(math.radians), deterministic=True)
    conn.create_function("COS", 1, _null_safe(math.cos), deterministic=True)
    conn.create_function("SIN", 1, _null_safe(math.sin), deterministic=True)
    conn.create_function("ACOS", 1, _null_safe(math.acos), deterministic=True)


def connect(path: str | Path) -> sqlite3.Connection:
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    register_functions(conn)
    return conn


@contextmanager
def open_conn(path: str | Path) -> Iterator[sqlite3.Connection]:
    conn = connect(path)
    try:
        yield conn
    finally:
        conn.close()


def init_db(path: str | Path) -> None:
    db_path = Path(path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with open_conn(db_path) as conn:
        conn.executescript(SCHEMA)
        conn.commit()
