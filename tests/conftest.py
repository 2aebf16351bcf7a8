from datetime import datetime

import pytest

from property_search.cache import InMemoryCache
from property_search.db import open_conn, init_db
from property_search.repository import SQLitePropertyRepository
from property_search.search import PropertySearchService

FIXED_NOW = datetime(2026, 10, 19, 12, 0, 0)

BASE_LISTING = {
    "is_archived": 0,
    "standard_status": "Active",
    "state_or_province": "MA",
    "property_type": "Residential",
    "garage_spaces": 0,
    "parking_total": 0,
    "fireplaces_total": 0,
}

LISTINGS = [
    dict(listing_key="K1", listing_id="73100001", unparsed_address="10 Beacon St Unit 1, Boston, MA 02108",
         street_number="10", street_name="Beacon St", unit_number="1", city="Boston", postal_code="02108",
         subdivision_name="Beacon Hill", mls_area_major="Downtown",
         list_price=900000, original_list_price=950000, bedrooms_total=3, bathrooms_total=2, living_area=1500,
         lot_size_acres=0.05, year_built=1900, property_sub_type="Condominium",
         latitude=42.3570, longitude=-71.0700, listing_contract_date="2026-10-15 09:00:00", days_on_market=4,
         garage_spaces=1, parking_total=1, fireplaces_total=1,
         virtual_tour_url_unbranded="https://tours.example.com/k1", main_photo_url="https://img.example.com/k1/0.jpg",
         list_agent_mls_id="A1", list_office_mls_id="O1", elementary_school="Eliot", school_district="Boston",
         public_remarks="Sunny corner unit."),
    dict(listing_key="K2", listing_id="73100002", unparsed_address="10 Beacon St Unit 2, Boston, MA 02108",
         street_number="10", street_name="Beacon St", unit_number="2", city="Boston", postal_code="02108",
         subdivision_name="Beacon Hill", list_price=650000, original_list_price=650000,
         bedrooms_total=2, bathrooms_total=1, living_area=900, year_built=1900, property_sub_type="Condominium",
         latitude=42.3571, longitude=-71.0701, listing_contract_date="2026-09-01 10:00:00", days_on_market=48),
    dict(listing_key="K3", listing_id="73100003", unparsed_address="25 Elm St, Cambridge, MA 02139",
         street_number="25", street_name="Elm St", city="Cambridge", postal_code="02139",
         mls_area_minor="Cambridgeport", list_price=1500000, original_list_price=1500000,
         bedrooms_total=4, bathrooms_total=3, living_area=2500, lot_size_acres=0.25, year_built=1925,
         property_sub_type="Single Family Residence", latitude=42.3736, longitude=-71.1097,
         listing_contract_date="2026-10-01 08:00:00", days_on_market=18,
         garage_spaces=2, parking_total=3, fireplaces_total=2),
    dict(listing_key="K4", listing_id="123456", unparsed_address="5 Main St, Somerville, MA 02143",
         street_number="5", street_name="Main St", city="Somerville", postal_code="02143",
         list_price=700000, original_list_price=720000, bedrooms_total=2, bathrooms_total=2, living_area=1100,
         lot_size_acres=0.1, year_built=2010, property_sub_type="Townhouse",
         latitude=42.3876, longitude=-71.0995, listing_contract_date="2026-10-10 12:00:00", days_on_market=9),
    dict(listing_key="K5", listing_id="73100005", standard_status="Pending",
         unparsed_address="40 Broadway, New York, NY 10006", street_number="40", street_name="Broadway",
         city="New York", state_or_province="NY", postal_code="10006",
         list_price=2000000, original_list_price=2000000, bedrooms_total=3, bathrooms_total=2, living_area=1800,
         property_sub_type="Condominium", latitude=40.7081, longitude=-74.0120,
         listing_contract_date="2026-08-20 09:00:00", days_on_market=60),
    dict(listing_key="K6", listing_id="73100006", is_archived=1, standard_status="Closed",
         unparsed_address="10 Beacon St Unit 3, Boston, MA 02108", street_number="10", street_name="Beacon St",
         unit_number="3", city="Boston", postal_code="02108", list_price=610000, original_list_price=640000,
         close_price=600000, close_date="2025-07-01", bedrooms_total=2, bathrooms_total=1, living_area=850,
         property_sub_type="Condominium", latitude=42.3572, longitude=-71.0702,
         listing_contract_date="2025-05-01 09:00:00", days_on_market=30),
    # Earlier sale of the same MLS number as K1.
    dict(listing_key="K1-OLD", listing_id="73100001", is_archived=1, standard_status="Closed",
         unparsed_address="10 Beacon St Unit 1, Boston, MA 02108", street_number="10", street_name="Beacon St",
         unit_number="1", city="Boston", postal_code="02108", list_price=800000, original_list_price=800000,
         close_price=790000, bedrooms_total=3, bathrooms_total=2, living_area=1500, property_sub_type="Condominium",
         latitude=42.3570, longitude=-71.0700, listing_contract_date="2020-04-01 09:00:00", days_on_market=21),
]

MEDIA = [("K1", f"https://img.example.com/k1/{i}.jpg", "Photo", i) for i in range(7)] + [
    ("K3", "https://img.example.com/k3/1.jpg", "Photo", 1),
    ("K3", "https://img.example.com/k3/0.jpg", "Photo", 0),
]

OPEN_HOUSES = [
    ("K1", "2026-10-10", "10:00", "12:00", "Public", None),
    ("K1", "2026-10-25", "13:00", "15:00", "Public", None),
    ("K1", "2026-10-22", "11:00", "13:00", "Public", "Bring ID"),
    ("K3", "2026-10-19", "09:00", "10:00", "Broker", None),
    ("K2", "2026-09-30", "10:00", "11:00", "Public", None),
]


def seed(path):
    with open_conn(path) as conn:
        for listing in LISTINGS:
            row = {**BASE_LISTING, **listing}
            cols = ", ".join(row)
            marks = ", ".join("?" for _ in row)
            conn.execute(f"INSERT INTO properties ({cols}) VALUES ({marks})", tuple(row.values()))
        conn.executemany(
            "INSERT INTO media (listing_key, media_url, media_category, order_index) VALUES (?, ?, ?, ?)", MEDIA
        )
        conn.executemany(
            "INSERT INTO open_houses (listing_key, open_house_date, open_house_start_time, open_house_end_time,"
            " open_house_type, open_house_remarks) VALUES (?, ?, ?, ?, ?, ?)",
            OPEN_HOUSES,
        )
        conn.execute(
            "INSERT INTO agents (agent_mls_id, full_name, email, phone) VALUES (?, ?, ?, ?)",
            ("A1", "Dana Reyes", "dana@example.com", "617-555-0100"),
        )
        conn.execute(
            "INSERT INTO offices (office_mls_id, office_name, phone, city) VALUES (?, ?, ?, ?)",
            ("O1", "Beacon Realty", "617-555-0199", "Boston"),
        )
        conn.executemany(
            "INSERT INTO property_history (listing_key, change_type, field_name, old_value, new_value, changed_at)"
            " VALUES (?, ?, ?, ?, ?, ?)",
            [
                ("K1", "price_change", "list_price", "950000", "925000", "2026-10-16 08:00:00"),
                ("K1", "price_change", "list_price", "925000", "900000", "2026-10-18 08:00:00"),
            ],
        )
        conn.commit()


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def fixed_now():
    return FIXED_NOW


@pytest.fixture()
def db_path(tmp_path):
    path = tmp_path / "listings.sqlite"
    init_db(path)
    seed(path)
    return path


@pytest.fixture()
def repo(db_path):
    return SQLitePropertyRepository(db_path)


@pytest.fixture()
def fake_clock():
    return FakeClock()


@pytest.fixture()
def cache(fake_clock):
    return InMemoryCache(max_entries=100, clock=fake_clock)


@pytest.fixture()
def search_service(repo, cache):
    return PropertySearchService(repo, cache, clock=lambda: FIXED_NOW)
