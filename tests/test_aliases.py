from __future__ import annotations

import pytest

from citygeo.app import aliases
from citygeo.app.aliases import (
    InvalidAliasError,
    get_lat_lng_from_state_code,
    is_normalizable,
    resolve_validated_variable,
    resolve_variable,
)


def test_every_known_alias_resolves_to_its_variable():
    assert aliases.ALIASES
    for name, entry in aliases.ALIASES.items():
        assert resolve_variable(name) == entry.variable


@pytest.mark.parametrize("name", ["B01003_001E", "not_an_alias", ""])
def test_unknown_names_pass_through(name):
    assert resolve_variable(name) == name


def test_validated_alias_for_declared_api_and_year():
    assert resolve_validated_variable("population", "acs5", 2014) == "B01003_001E"


def test_validated_alias_accepts_year_as_string():
    assert resolve_validated_variable("population", "acs1", "2015") == "B01003_001E"


@pytest.mark.parametrize("year", ["2015 ", " 2015", "\t2015\n"])
def test_validated_alias_tolerates_whitespace_around_year(year):
    assert resolve_validated_variable("population", "acs5", year) == "B01003_001E"


def test_validated_alias_rejects_undeclared_year():
    with pytest.raises(InvalidAliasError, match="Invalid alias for selected API and year combination."):
        resolve_validated_variable("population", "acs5", 1999)


def test_validated_alias_rejects_undeclared_api():
    with pytest.raises(InvalidAliasError):
        resolve_validated_variable("commute_time", "acs1", 2014)


def test_validated_alias_rejects_garbage_year():
    with pytest.raises(InvalidAliasError):
        resolve_validated_variable("population", "acs5", "latest")


def test_validated_unknown_name_passes_through_without_checks():
    assert resolve_validated_variable("B19013_001E", "nope", 1800) == "B19013_001E"


def test_is_normalizable_only_for_flagged_aliases():
    flagged = {name for name, entry in aliases.ALIASES.items() if entry.normalizable}
    assert "poverty" in flagged
    for name in aliases.ALIASES:
        assert is_normalizable(name) is (name in flagged)
    assert is_normalizable("population") is False
    assert is_normalizable("B17001_002E") is False


def test_state_code_lookup_is_case_insensitive():
    upper = get_lat_lng_from_state_code("CA")
    lower = get_lat_lng_from_state_code("ca")
    assert upper is not None
    assert upper == lower


def test_state_capital_table_is_lat_lng_ordered():
    coordinates = get_lat_lng_from_state_code("WI")
    assert coordinates is not None
    assert coordinates.lat == pytest.approx(43.074722)
    assert coordinates.lng == pytest.approx(-89.384444)


@pytest.mark.parametrize("code", ["ZZ", "", None])
def test_unknown_state_code_returns_none(code):
    assert get_lat_lng_from_state_code(code) is None
