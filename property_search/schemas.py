from typing import Any, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from .filters_catalog import EXCLUSIVE_ID_CEILING
from .utils import to_float, to_int

class FilterRequest(BaseModel):
    """Raw search parameters as they arrive.

    Values stay loosely typed: a malformed value must drop its own filter in
    the condition builder, not fail the whole request.
    """
    model_config = ConfigDict(extra="ignore")

    # Direct lookup
    mls_number: Any = None
    address: Any = None
    # Status / location
    status: Any = None
    city: Any = None                # comma list
    zip: Any = None                 # comma list
    neighborhood: Any = None
    street_name: Any = None
    # Geo
    bounds: Any = None              # "south,west,north,east"
    polygon: Any = None             # [[lat, lng], ...] or its JSON text
    lat: Any = None
    lng: Any = None
    radius: Any = None              # miles, with lat/lng
    # Type / price / rooms / size
    property_type: Any = None
    property_sub_type: Any = None
    min_price: Any = None
    max_price: Any = None
    price_reduced: Any = None
    beds: Any = None
    baths: Any = None
    sqft_min: Any = None
    sqft_max: Any = None
    lot_size_min: Any = None        # acres, or sqft when > 100
    lot_size_max: Any = None
    # Time / parking / amenities / special
    year_built_min: Any = None
    year_built_max: Any = None
    min_dom: Any = None
    max_dom: Any = None
    new_listing_days: Any = None
    garage_spaces_min: Any = None
    parking_total_min: Any = None
    has_virtual_tour: Any = None
    has_garage: Any = None
    has_fireplace: Any = None
    open_house_only: Any = None
    exclusive_only: Any = None
    # Post-filter (school)
    school_grade: Any = None
    school_district: Any = None
    elementary_school: Any = None
    middle_school: Any = None
    high_school: Any = None

    sort: Any = None

    @classmethod
    def from_query_params(cls, params: Any) -> "FilterRequest":
        data: dict[str, Any] = {}
        for name in cls.model_fields:
            values = params.getlist(name)
            if values:
                data[name] = values[0] if len(values) == 1 else values
        return cls.model_validate(data)

    def to_filters(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for k, v in self.model_dump(exclude_none=True).items():
            if isinstance(v, str):
                v = v.strip()
            if v == "" or v == [] or v == {}:
                continue
            out[k] = v
        return out

def normalize_filters(filters: "FilterRequest | Mapping[str, Any] | None") -> dict[str, Any]:
    if filters is None:
        return {}
    if not isinstance(filters, FilterRequest):
        filters = FilterRequest.model_validate(dict(filters))
    return filters.to_filters()

class OpenHouse(BaseModel):
    date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    type: Optional[str] = None
    remarks: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "OpenHouse":
        return cls(
            date=row.get("open_house_date"),
            start_time=row.get("open_house_start_time"),
            end_time=row.get("open_house_end_time"),
            type=row.get("open_house_type"),
            remarks=row.get("open_house_remarks"),
        )

class ListItem(BaseModel):
    listing_id: Optional[str] = None
    listing_key: str
    address: Optional[str] = None
    street_number: Optional[str] = None
    street_name: Optional[str] = None
    unit_number: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    price: Optional[float] = None
    original_price: Optional[float] = None
    beds: Optional[int] = None
    baths: Optional[int] = None
    baths_full: Optional[int] = None
    baths_half: Optional[int] = None
    sqft: Optional[int] = None
    property_type: Optional[str] = None
    property_sub_type: Optional[str] = None
    status: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    list_date: Optional[str] = None
    dom: Optional[int] = None
    main_photo_url: Optional[str] = None
    photos: list[str] = Field(default_factory=list)
    year_built: Optional[int] = None
    lot_size: Optional[float] = None
    garage_spaces: Optional[int] = None
    has_open_house: bool = False
    next_open_house: Optional[OpenHouse] = None
    is_exclusive: bool = False
    grouping_address: Optional[str] = None

    @classmethod
    def from_row(
        cls,
        row: Mapping[str, Any],
        photos: list[Mapping[str, Any]] | None = None,
        next_open_house: Mapping[str, Any] | None = None,
    ) -> "ListItem":
        listing_id = row.get("listing_id")
        listing_number = to_int(listing_id)
        # street number + name without the unit, so units of one building group together
        grouping = " ".join(str(p) for p in (row.get("street_number"), row.get("street_name")) if p)
        return cls(
            listing_id=str(listing_id) if listing_id is not None else None,
            listing_key=str(row["listing_key"]),
            address=row.get("unparsed_address"),
            street_number=row.get("street_number"),
            street_name=row.get("street_name"),
            unit_number=row.get("unit_number"),
            city=row.get("city"),
            state=row.get("state_or_province"),
            zip=row.get("postal_code"),
            price=to_float(row.get("list_price")),
            original_price=to_float(row.get("original_list_price")),
            beds=to_int(row.get("bedrooms_total")),
            baths=to_int(row.get("bathrooms_total")),
            baths_full=to_int(row.get("bathrooms_full")),
            baths_half=to_int(row.get("bathrooms_half")),
            sqft=to_int(row.get("living_area")),
            property_type=row.get("property_type"),
            property_sub_type=row.get("property_sub_type"),
            status=row.get("standard_status"),
            latitude=to_float(row.get("latitude")),
            longitude=to_float(row.get("longitude")),
            list_date=row.get("listing_contract_date"),
            dom=to_int(row.get("days_on_market")),
            main_photo_url=row.get("main_photo_url"),
            photos=[p["media_url"] for p in photos or []],
            year_built=to_int(row.get("year_built")),
            lot_size=to_float(row.get("lot_size_acres")),
            garage_spaces=to_int(row.get("garage_spaces")),
            has_open_house=next_open_house is not None,
            next_open_house=OpenHouse.from_row(next_open_house) if next_open_house is not None else None,
            is_exclusive=listing_number is not None and str(listing_id).strip().isdigit()
            and listing_number < EXCLUSIVE_ID_CEILING,
            grouping_address=grouping or None,
        )

class ResultPage(BaseModel):
    items: list[ListItem] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    per_page: int = 25

class Photo(BaseModel):
    url: str
    category: Optional[str] = None
    order: int = 0

class AgentInfo(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    mls_id: Optional[str] = None

class OfficeInfo(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None

class HistoryEvent(BaseModel):
    change_type: Optional[str] = None
    field: Optional[str] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    changed_at: Optional[str] = None

class PropertyDetail(ListItem):
    """Full record for a single listing page."""
    county: Optional[str] = None
    subdivision: Optional[str] = None
    close_price: Optional[float] = None
    close_date: Optional[str] = None
    price_per_sqft: Optional[float] = None
    rooms_total: Optional[int] = None
    parking_total: Optional[int] = None
    fireplaces_total: Optional[int] = None
    is_archived: bool = False
    public_remarks: Optional[str] = None
    showing_instructions: Optional[str] = None
    virtual_tour_url: Optional[str] = None
    photo_details: list[Photo] = Field(default_factory=list)
    photo_count: int = 0
    tax_annual_amount: Optional[float] = None
    tax_year: Optional[int] = None
    association_fee: Optional[float] = None
    association_yn: Optional[bool] = None
    elementary_school: Optional[str] = None
    middle_school: Optional[str] = None
    high_school: Optional[str] = None
    school_district: Optional[str] = None
    agent: Optional[AgentInfo] = None
    office: Optional[OfficeInfo] = None
    open_houses: list[OpenHouse] = Field(default_factory=list)
    price_history: list[HistoryEvent] = Field(default_factory=list)

    @classmethod
    def from_data(
        cls,
        row: Mapping[str, Any],
        photos: list[Mapping[str, Any]] | None = None,
        agent: Mapping[str, Any] | None = None,
        office: Mapping[str, Any] | None = None,
        open_houses: list[Mapping[str, Any]] | None = None,
        history: list[Mapping[str, Any]] | None = None,
    ) -> "PropertyDetail":
        photos = photos or []
        open_houses = open_houses or []
        base = ListItem.from_row(row, photos, open_houses[0] if open_houses else None)
        association = row.get("association_yn")
        photo_count = to_int(row.get("photo_count"))
        return cls(
            **base.model_dump(),
            county=row.get("county_or_parish"),
            subdivision=row.get("subdivision_name"),
            close_price=to_float(row.get("close_price")),
            close_date=row.get("close_date"),
            price_per_sqft=to_float(row.get("price_per_sqft")),
            rooms_total=to_int(row.get("rooms_total")),
            parking_total=to_int(row.get("parking_total")),
            fireplaces_total=to_int(row.get("fireplaces_total")),
            is_archived=bool(row.get("is_archived")),
            public_remarks=row.get("public_remarks"),
            showing_instructions=row.get("showing_instructions"),
            virtual_tour_url=row.get("virtual_tour_url_unbranded"),
            photo_details=[
                Photo(url=p["media_url"], category=p.get("media_category"), order=to_int(p.get("order_index")) or 0)
                for p in photos
            ],
            photo_count=photo_count if photo_count is not None else len(photos),
            tax_annual_amount=to_float(row.get("tax_annual_amount")),
            tax_year=to_int(row.get("tax_year")),
            association_fee=to_float(row.get("association_fee")),
            association_yn=bool(association) if association is not None else None,
            elementary_school=row.get("elementary_school"),
            middle_school=row.get("middle_or_junior_school"),
            high_school=row.get("high_school"),
            school_district=row.get("school_district"),
            agent=AgentInfo(
                name=agent.get("full_name"), email=agent.get("email"),
                phone=agent.get("phone"), mls_id=agent.get("agent_mls_id"),
            ) if agent else None,
            office=OfficeInfo(
                name=office.get("office_name"), phone=office.get("phone"), address=office.get("address"),
                city=office.get("city"), state=office.get("state_or_province"), zip=office.get("postal_code"),
            ) if office else None,
            open_houses=[OpenHouse.from_row(oh) for oh in open_houses],
            price_history=[
                HistoryEvent(
                    change_type=h.get("change_type"), field=h.get("field_name"),
                    old_value=h.get("old_value"), new_value=h.get("new_value"), changed_at=h.get("changed_at"),
                )
                for h in history or []
            ],
        )

SuggestionType = Literal["mls", "city", "zip", "neighborhood", "street", "address"]

class Suggestion(BaseModel):
    value: str
    type: SuggestionType
    count: Optional[int] = None

class GeocodeResult(BaseModel):
    lat: float
    lng: float
    formatted_address: str
