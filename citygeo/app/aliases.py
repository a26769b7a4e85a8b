"""Alias dictionary and state-capital lookups.

Both tables ship as JSON next to this module and are loaded once at import.
They are read-only afterwards.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .schemas import AliasEntry, Coordinates

_RESOURCES = Path(__file__).resolve().parent / "resources"


class InvalidAliasError(ValueError):
    pass


def _load_json(name: str) -> dict[str, Any]:
    with (_RESOURCES / name).open(encoding="utf-8") as f:
        return json.load(f)


def _load_aliases() -> dict[str, AliasEntry]:
    return {name: AliasEntry.model_validate(raw) for name, raw in _load_json("aliases.json").items()}


def _load_state_capitals() -> dict[str, Coordinates]:
    # Stored as [lat, lng].
    return {
        code: Coordinates(lat=pair[0], lng=pair[1])
        for code, pair in _load_json("us-states-latlng.json").items()
    }


ALIASES: dict[str, AliasEntry] = _load_aliases()
STATE_CAPITALS: dict[str, Coordinates] = _load_state_capitals()


def resolve_variable(alias_or_variable: str) -> str:
    """Return the variable behind a known alias, otherwise the input unchanged."""
    entry = ALIASES.get(alias_or_variable)
    if entry is None:
        return alias_or_variable
    return entry.variable


def resolve_validated_variable(alias_or_variable: str, api: str, year: int | str) -> str:
    entry = ALIASES.get(alias_or_variable)
    if entry is None:
        return alias_or_variable

    try:
        year_value = int(year)
    except (TypeError, ValueError):
        year_value = None

    if year_value is None or not entry.is_valid_for(api, year_value):
        raise InvalidAliasError("Invalid alias for selected API and year combination.")
    return entry.variable


def is_normalizable(alias: str) -> bool:
    entry = ALIASES.get(alias)
    return entry is not None and entry.normalizable


def get_lat_lng_from_state_code(state_code: str | None) -> Coordinates | None:
    if not state_code:
        return None
    return STATE_CAPITALS.get(state_code.upper())
