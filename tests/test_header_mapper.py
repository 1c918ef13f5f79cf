import pytest

from voter_analytics.errors import InvalidMappingError
from voter_analytics.services.header_mapper import apply_overrides, canonical_field, map_headers


@pytest.mark.parametrize("header", ["first_name", "First Name", "FNAME", " given_name ", "Name"])
def test_first_name_variations(header):
    assert canonical_field(header) == "first_name"


@pytest.mark.parametrize(
    "header, expected",
    [
        ("Not Home", "not_home"),
        ("NH", "not_home"),
        ("wrong number", "bad_data"),
        ("Contact Date", "date"),
        ("channel", "tactic"),
        ("Team Name", "team"),
        ("maybe", "undecided"),
    ],
)
def test_header_variations(header, expected):
    assert canonical_field(header) == expected


def test_first_listed_field_wins_for_shared_variation():
    # "negative" is listed under refusal and oppose; refusal comes first
    assert canonical_field("negative") == "refusal"


def test_map_headers_tracks_unmapped_columns():
    mapping = map_headers(["First", "Surname", "Notes", "Date", "Method", "Attempts"])
    assert mapping.columns == {0: "first_name", 1: "last_name", 3: "date", 4: "tactic", 5: "attempts"}
    assert mapping.unmapped == ["Notes"]
    assert mapping.missing_required() == []


def test_missing_required_fields():
    mapping = map_headers(["first_name", "attempts"])
    assert mapping.missing_required() == ["last_name", "date", "tactic"]


def test_overrides_map_unrecognized_headers():
    headers = ["Volunteer First", "Last Name", "When", "Tactic"]
    mapping = apply_overrides(headers, map_headers(headers), {"Volunteer First": "first_name", "When": "date"})
    assert mapping.columns == {0: "first_name", 1: "last_name", 2: "date", 3: "tactic"}
    assert mapping.unmapped == []
    assert mapping.missing_required() == []


def test_override_none_ignores_a_column():
    headers = ["First Name", "Last Name", "Team"]
    mapping = apply_overrides(headers, map_headers(headers), {"Team": None})
    assert 2 not in mapping.columns
    assert mapping.unmapped == ["Team"]


def test_override_takes_field_from_suggested_column():
    # "Name" suggests first_name; the reviewed choice wins
    headers = ["Name", "Nickname"]
    mapping = apply_overrides(headers, map_headers(headers), {"Nickname": "first_name"})
    assert mapping.columns == {1: "first_name"}
    assert mapping.unmapped == ["Name"]


def test_empty_overrides_keep_suggestion():
    headers = ["First Name", "Notes"]
    suggested = map_headers(headers)
    assert apply_overrides(headers, suggested, {}) is suggested
    assert apply_overrides(headers, suggested, None) is suggested


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"Missing": "first_name"}, "Column not found in file: Missing"),
        ({"Notes": "favorite_color"}, "Unknown field for column Notes: favorite_color"),
    ],
)
def test_invalid_overrides_raise(overrides, message):
    headers = ["First Name", "Notes"]
    with pytest.raises(InvalidMappingError) as exc:
        apply_overrides(headers, map_headers(headers), overrides)
    assert str(exc.value) == message
