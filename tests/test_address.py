from __future__ import annotations

import itertools

from src.schemas.address import AddressComponent
from src.utils.address import ParsedAddress, parse_address_components, split_full_address, validate_address


def _component(long_name, types, short_name=None):
    return {"longName": long_name, "shortName": short_name or long_name, "types": types}


def test_parse_address_components_from_geocoder_result():
    components = [
        _component("1600", ["street_number"]),
        _component("Pennsylvania Avenue Northwest", ["route"]),
        _component("Washington", ["locality", "political"]),
        _component("District of Columbia", ["administrative_area_level_1", "political"], "DC"),
        _component("20500", ["postal_code"]),
    ]

    parsed = parse_address_components(components)

    assert parsed.address_line1 == "1600 Pennsylvania Avenue Northwest"
    assert parsed.city == "Washington"
    assert parsed.state == "DC"
    assert parsed.postal_code == "20500"


def test_city_prefers_locality_even_when_listed_after_fallbacks():
    components = [
        AddressComponent(long_name="Kings County", short_name="Kings County", types=["administrative_area_level_2"]),
        AddressComponent(long_name="Brooklyn", short_name="Brooklyn", types=["sublocality"]),
        AddressComponent(long_name="New York", short_name="New York", types=["locality"]),
    ]

    assert parse_address_components(components).city == "New York"


def test_city_falls_back_to_county():
    components = [
        _component("Route 9", ["route"]),
        _component("Orange County", ["administrative_area_level_2"]),
        _component("New York", ["administrative_area_level_1"], "NY"),
    ]

    parsed = parse_address_components(components)

    assert parsed.city == "Orange County"
    assert parsed.address_line1 == "Route 9"
    assert parsed.postal_code == ""


def test_first_matching_component_wins():
    components = [
        _component("1600", ["street_number"]),
        _component("Pennsylvania Avenue Northwest", ["route"]),
        _component("District of Columbia", ["administrative_area_level_1"], "DC"),
        _component("20500", ["postal_code"]),
        _component("1700", ["street_number"]),
        _component("Constitution Avenue", ["route"]),
        _component("Maryland", ["administrative_area_level_1"], "MD"),
        _component("20740", ["postal_code"]),
    ]

    parsed = parse_address_components(components)

    assert parsed.address_line1 == "1600 Pennsylvania Avenue Northwest"
    assert parsed.state == "DC"
    assert parsed.postal_code == "20500"


def test_parse_address_accepts_snake_case_keys():
    parsed = parse_address_components(
        [{"long_name": "42", "short_name": "42", "types": ["street_number"]}]
    )
    assert parsed.address_line1 == "42"


def test_validate_address_counts_every_missing_required_field():
    for has_street, has_city, has_state in itertools.product([True, False], repeat=3):
        for postal_code in ("", "20500"):
            address = ParsedAddress(
                address_line1="1 Main St" if has_street else "",
                city="Springfield" if has_city else " ",
                state="IL" if has_state else "",
                postal_code=postal_code,
            )
            result = validate_address(address)
            missing = [has_street, has_city, has_state].count(False)
            assert len(result.errors) == missing
            assert result.is_valid is (missing == 0)


def test_validate_address_messages():
    result = validate_address(ParsedAddress())
    assert result.errors == ["Street address is required", "City is required", "State is required"]


def test_split_full_address_heuristic():
    parsed = split_full_address("1600 Pennsylvania Ave NW, Washington, DC 20500")
    assert parsed.address_line1 == "1600 Pennsylvania Ave NW"
    assert parsed.city == "Washington"
    assert parsed.state == "DC"
    assert parsed.postal_code == "20500"


def test_split_full_address_needs_three_segments():
    assert split_full_address("Incomplete Address") == ParsedAddress()
    assert split_full_address(None) == ParsedAddress()
