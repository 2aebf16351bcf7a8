# Known filter keys, label tables and the constants the condition builder uses.

DIRECT_LOOKUP_KEYS = ("mls_number", "address")

SCHOOL_KEYS = ("school_grade", "school_district", "elementary_school", "middle_school", "high_school")

# Overfetch factor when school criteria must be evaluated after the query.
POST_FILTER_OVERFETCH = 10

STATUS_CANON = {
    "active": ["active"],
    "pending": ["pending", "under agreement"],
    "sold": ["sold"],
}

STATUS_CONDITIONS = {
    "active": "is_archived = 0 AND standard_status = 'Active'",
    "pending": "standard_status IN ('Pending', 'Active Under Contract')",
    "sold": "is_archived = 1 AND standard_status = 'Closed'",
}

ARCHIVED_STATUSES = {"sold"}

SORT_COLUMNS = {
    "price_asc": ("list_price", "ASC"),
    "price_desc": ("list_price", "DESC"),
    "list_date_asc": ("listing_contract_date", "ASC"),
    "list_date_desc": ("listing_contract_date", "DESC"),
    "beds_desc": ("bedrooms_total", "DESC"),
    "sqft_desc": ("living_area", "DESC"),
    "dom_asc": ("days_on_market", "ASC"),
    "dom_desc": ("days_on_market", "DESC"),
}
DEFAULT_SORT = "list_date_desc"

# Lot sizes above this are taken to be square feet, not acres.
LOT_SQFT_THRESHOLD = 100
SQFT_PER_ACRE = 43560.0

# Office-entered exclusives get MLS-style ids below this number.
EXCLUSIVE_ID_CEILING = 1_000_000

MAX_PHOTOS_PER_LISTING = 5

DEFAULT_PER_PAGE = 25
MAX_PER_PAGE = 250

def canonize(value: str | None, table: dict[str, list[str]]) -> str | None:
    if not value:
        return None
    v = value.strip().lower()
    for canon, syns in table.items():
        if v == canon or v in syns:
            return canon
    return None

def canonize_list(values: list[str] | None, table: dict[str, list[str]]) -> list[str]:
    out: list[str] = []
    for v in values or []:
        c = canonize(v, table)
        if c and c not in out:
            out.append(c)
    return out
