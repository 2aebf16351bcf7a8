import pytest

from property_search.conditions import ConditionBuilder, build_predicate
from property_search.filters_catalog import STATUS_CONDITIONS


@pytest.fixture()
def builder(fixed_now):
    return ConditionBuilder(clock=lambda: fixed_now)


def _sqls(result):
    return [p.sql for p in result.predicates]


def _find(result, prefix):
    matches = [p for p in result.predicates if p.sql.startswith(prefix)]
    assert matches, f"no predicate starting with {prefix!r} in {_sqls(result)}"
    return matches[0]


def test_empty_filters_mean_active_listings_newest_first(builder):
    result = builder.build({})
    assert _sqls(result) == [STATUS_CONDITIONS["active"]]
    assert result.order_by.sql == "listing_contract_date DESC"
    assert result.is_direct_lookup is False
    assert result.overfetch_multiplier == 1
    assert result.where.sql == STATUS_CONDITIONS["active"]


def test_mls_number_short_circuits_everything(builder):
    result = builder.build({"mls_number": "73100001", "city": "Boston", "status": "Sold", "sort": "price_asc",
                            "school_grade": "A"})
    assert result.is_direct_lookup is True
    assert _sqls(result) == ["listing_id = ?"]
    assert result.where.params == ("73100001",)
    assert result.order_by.sql == "listing_contract_date DESC"
    assert result.overfetch_multiplier == 1
    assert result.has_post_filter_criteria is False


def test_address_lookup_escapes_like_wildcards(builder):
    result = builder.build({"address": "100% Main_St"})
    assert result.is_direct_lookup is True
    p = _find(result, "unparsed_address LIKE ?")
    assert p.params == ("%100\\% Main\\_St%",)


def test_families_follow_fixed_order(builder):
    result = builder.build({
        "polygon": [[42.1, -71.2], [42.2, -71.2], [42.2, -71.1]],
        "exclusive_only": "1",
        "has_garage": "1",
        "garage_spaces_min": "1",
        "max_dom": "30",
        "sqft_min": "900",
        "beds": "2",
        "min_price": "500000",
        "property_type": "Residential",
        "city": "Boston",
        "status": "Active",
    })
    prefixes = ["is_archived = 0", "city IN", "property_type =", "list_price >=", "bedrooms_total >=",
                "living_area >=", "days_on_market <=", "garage_spaces >=", "garage_spaces > 0",
                "CAST(listing_id", "((CASE WHEN"]
    sqls = _sqls(result)
    assert len(sqls) == len(prefixes)
    for sql, prefix in zip(sqls, prefixes):
        assert sql.startswith(prefix), (sql, prefix)


def test_location_lists_and_neighborhood(builder):
    result = builder.build({"city": "Boston, Cambridge", "zip": ["02108", "02139"], "neighborhood": "Back Bay",
                            "street_name": "Beacon"})
    assert _find(result, "city IN").sql == "city IN (?, ?)"
    assert _find(result, "city IN").params == ("Boston", "Cambridge")
    assert _find(result, "postal_code IN").params == ("02108", "02139")
    hood = _find(result, "(subdivision_name = ?")
    assert hood.params == ("Back Bay",) * 3
    assert _find(result, "street_name LIKE").params == ("%Beacon%",)


def test_sub_type_single_vs_list(builder):
    assert _find(builder.build({"property_sub_type": "Condominium"}), "property_sub_type").sql == \
        "property_sub_type = ?"
    many = _find(builder.build({"property_sub_type": "Condominium,Townhouse"}), "property_sub_type")
    assert many.sql == "property_sub_type IN (?, ?)"
    assert many.params == ("Condominium", "Townhouse")


def test_numeric_values_are_truncated_to_integers(builder):
    result = builder.build({"min_price": "499999.99", "beds": "2.5", "baths": 1})
    assert _find(result, "list_price >=").params == (499999,)
    assert _find(result, "bedrooms_total >=").params == (2,)
    assert _find(result, "bathrooms_total >=").params == (1,)


def test_falsy_and_malformed_values_drop_their_filter(builder):
    result = builder.build({"min_price": "abc", "max_price": "0", "beds": "", "baths": None, "sqft_min": [],
                            "has_garage": "0", "has_fireplace": "false", "bounds": "1,2,3",
                            "polygon": "[[1, 2], [3, 4]]", "radius": "5"})
    assert _sqls(result) == [STATUS_CONDITIONS["active"]]


def test_price_reduced_and_amenities(builder):
    result = builder.build({"price_reduced": "1", "has_virtual_tour": "yes", "has_garage": True,
                            "has_fireplace": 1})
    sqls = _sqls(result)
    assert "original_list_price > list_price" in sqls
    assert "virtual_tour_url_unbranded IS NOT NULL" in sqls
    assert "garage_spaces > 0" in sqls
    assert "fireplaces_total > 0" in sqls


def test_lot_size_above_100_is_square_feet(builder):
    result = builder.build({"lot_size_min": "0.5", "lot_size_max": "43560"})
    assert _find(result, "lot_size_acres >=").params == (0.5,)
    assert _find(result, "lot_size_acres <=").params == (pytest.approx(1.0),)


def test_lot_size_in_square_feet_converts_to_acres(builder):
    p = _find(builder.build({"lot_size_min": "5000"}), "lot_size_acres >=")
    assert p.params == (pytest.approx(5000 / 43560),)
    assert round(p.params[0], 4) == 0.1148


def test_time_filters_use_the_clock(builder):
    result = builder.build({"new_listing_days": "7", "year_built_min": "1900", "year_built_max": "1950",
                            "min_dom": "3"})
    assert _find(result, "listing_contract_date >=").params == ("2026-10-12 12:00:00",)
    assert _find(result, "year_built >=").params == (1900,)
    assert _find(result, "year_built <=").params == (1950,)
    assert _find(result, "days_on_market >=").params == (3,)


def test_open_house_only_binds_today(builder):
    p = _find(builder.build({"open_house_only": "1"}), "listing_key IN (SELECT")
    assert "open_houses" in p.sql
    assert p.params == ("2026-10-19",)


def test_exclusive_only(builder):
    p = _find(builder.build({"exclusive_only": True}), "CAST(listing_id")
    assert p.sql == "CAST(listing_id AS INTEGER) < ?"
    assert p.params == (1_000_000,)


def test_bounds_are_south_west_north_east(builder):
    p = _find(builder.build({"bounds": "42.2,-71.2,42.4,-71.0"}), "(latitude BETWEEN")
    assert p.params == (42.2, 42.4, -71.2, -71.0)


def test_polygon_accepts_json_text_or_native(builder):
    native = builder.build({"polygon": [[42.1, -71.2], [42.2, -71.2], [42.2, -71.1]]})
    text = builder.build({"polygon": "[[42.1, -71.2], [42.2, -71.2], [42.2, -71.1]]"})
    assert native.where == text.where
    assert "CASE WHEN" in native.where.sql


def test_radius_requires_valid_center(builder):
    ok = builder.build({"lat": "42.36", "lng": "-71.06", "radius": "2"})
    assert _find(ok, "(3959 * ACOS").params == (42.36, -71.06, 42.36, 2.0)
    for bad in ({"lat": "95", "lng": "-71.06", "radius": "2"},
                {"lat": "42.36", "radius": "2"},
                {"lat": "42.36", "lng": "-71.06", "radius": "-1"}):
        assert not any("ACOS" in s for s in _sqls(builder.build(bad)))


def test_school_criteria_trigger_overfetch(builder):
    result = builder.build({"school_grade": "A", "high_school": "Latin", "middle_school": ""})
    assert result.has_post_filter_criteria is True
    assert result.post_filter_criteria == {"school_grade": "A", "high_school": "Latin"}
    assert result.overfetch_multiplier == 10
    assert _sqls(result) == [STATUS_CONDITIONS["active"]]


def test_dynamic_values_are_never_inlined(builder):
    result = builder.build({"city": "Boston'; DROP TABLE properties; --", "street_name": "O'Brien",
                            "neighborhood": "x' OR '1'='1"})
    assert "DROP" not in result.where.sql
    assert "O'Brien" not in result.where.sql
    assert "OR '1'" not in result.where.sql


def test_build_predicate_returns_where():
    p = build_predicate({"beds": "3", "status": "Sold"})
    assert p.sql == f"{STATUS_CONDITIONS['sold']} AND bedrooms_total >= ?"
    assert p.params == (3,)
