from __future__ import annotations

import asyncio

import pytest

import citygeo.app.request_utils as ru
from citygeo.app.schemas import GeoRequest

_GEOGRAPHY_PAYLOAD = {
    "fips": [
        {"name": "us", "geoLevelId": "010"},
        {"name": "state", "geoLevelId": "040"},
        {"name": "county", "geoLevelId": "050", "requires": ["state"]},
    ]
}


def test_geography_variables_returns_payload_unmodified(monkeypatch):
    calls: list[str] = []

    async def _request_json(client, url, *, jsonp=False, stage, config=None):
        calls.append(url)
        return _GEOGRAPHY_PAYLOAD

    monkeypatch.setattr(ru, "request_json", _request_json)

    result = asyncio.run(ru.get_geography_variables(None, GeoRequest(api="acs5", year=2015)))

    assert result is _GEOGRAPHY_PAYLOAD
    assert calls == ["https://api.census.gov/data/2015/acs5/geography.json"]


@pytest.mark.parametrize(
    "request_obj",
    [GeoRequest(api="acs5"), GeoRequest(year=2015), GeoRequest()],
)
def test_geography_variables_require_api_and_year(monkeypatch, request_obj):
    async def _request_json(client, url, *, jsonp=False, stage, config=None):
        raise AssertionError("network must not be called")

    monkeypatch.setattr(ru, "request_json", _request_json)

    with pytest.raises(ru.InvalidRequestError, match='"year" and "api" fields must be provided'):
        asyncio.run(ru.get_geography_variables(None, request_obj))
