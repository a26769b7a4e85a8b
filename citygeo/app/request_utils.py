from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable
from urllib.parse import quote

import httpx

from . import config as settings
from .aliases import (
    InvalidAliasError,
    get_lat_lng_from_state_code,
    is_normalizable,
    resolve_validated_variable,
    resolve_variable,
)
from .geometry import geo_to_esri as _geo_to_esri
from .geometry import esri_to_geo as _esri_to_geo
from .http_client import ApiConfig, UnexpectedResponseError, UpstreamAPIError, request_json
from .schemas import Address, Coordinates, FipsCodes, GeocoderSelection, GeoRequest

logger = logging.getLogger(__name__)

# Benchmark id 4 = Public_AR_Current, vintage id 4 = Current_Current.
CENSUS_BENCHMARK = "4"
CENSUS_VINTAGE = "4"
CENSUS_FIPS_LAYERS = "8,12,28,84,86"
CENSUS_BLOCKS_LAYER = "2010 Census Blocks"
INCORPORATED_PLACES_LAYER = "Incorporated Places"

__all__ = [
    "InvalidAliasError",
    "InvalidRequestError",
    "LocationNotFoundError",
    "UnexpectedResponseError",
    "UpstreamAPIError",
    "apply_fips",
    "build_census_address_url",
    "build_census_coordinates_url",
    "build_fcc_url",
    "build_mapzen_url",
    "build_nominatim_url",
    "esri_to_geo",
    "geo_to_esri",
    "get_fips_from_lat_lng",
    "get_fips_from_lat_lng_using_fcc",
    "get_geography_variables",
    "get_lat_lng",
    "get_lat_lng_from_address",
    "get_lat_lng_from_state_code",
    "get_lat_lng_from_zipcode",
    "is_normalizable",
    "resolve_validated_variable",
    "resolve_variable",
    "validate_address_fields",
]


class InvalidRequestError(ValueError):
    pass


class LocationNotFoundError(LookupError):
    pass


def _q(value: Any) -> str:
    return quote(str(value), safe=",")


# ---------------------------------------------------------------------------
# Geometry (delegated)
# ---------------------------------------------------------------------------


def esri_to_geo(esri_json: dict[str, Any]) -> dict[str, Any]:
    return _esri_to_geo(esri_json)


def geo_to_esri(geo_json: dict[str, Any]) -> dict[str, Any]:
    return _geo_to_esri(geo_json)


# ---------------------------------------------------------------------------
# URL builders
# ---------------------------------------------------------------------------


def validate_address_fields(address: Address) -> None:
    if not address.street:
        raise InvalidRequestError('Invalid address! The required field "street" is missing.')
    if not address.zip and not (address.city and address.state):
        raise InvalidRequestError('Invalid address! "city" and "state" or "zip" must be provided.')


def build_census_address_url(address: Address) -> str:
    url = (
        f"{settings.GEOCODER_URL}locations/address"
        f"?benchmark={CENSUS_BENCHMARK}&format=jsonp&street={_q(address.street)}"
    )
    if address.zip:
        return url + f"&zip={_q(address.zip)}"
    return url + f"&city={_q(address.city)}&state={_q(address.state)}"


def build_nominatim_url(address: Address) -> str:
    url = (
        f"{settings.NOMINATIM_URL}?format=jsonv2&limit=1&countrycodes=us,pr"
        f"&street={_q(address.street)}"
    )
    if address.zip:
        return url + f"&postalcode={_q(address.zip)}"
    return url + f"&city={_q(address.city)}&county={_q(address.state)}"


def build_mapzen_url(address: Address, api_key: str) -> str:
    if address.zip:
        text = f"{address.street} {address.zip}"
    else:
        text = f"{address.street} {address.city},{address.state}"
    return (
        f"{settings.MAPZEN_URL}?size=1&boundary.country=USA"
        f"&text={_q(text)}&api_key={_q(api_key)}"
    )


def build_census_coordinates_url(lat: float, lng: float) -> str:
    return (
        f"{settings.GEOCODER_URL}geographies/coordinates?x={lng}&y={lat}"
        f"&benchmark={CENSUS_BENCHMARK}&vintage={CENSUS_VINTAGE}"
        f"&layers={CENSUS_FIPS_LAYERS}&format=jsonp"
    )


def build_fcc_url(lat: float, lng: float) -> str:
    return f"{settings.FCC_BLOCK_URL}?format=json&longitude={lng}&latitude={lat}"


# ---------------------------------------------------------------------------
# Forward geocoding: response normalizers, one per backend
# ---------------------------------------------------------------------------


def _normalize_census_address(payload: Any) -> Coordinates:
    try:
        coordinates = payload["result"]["addressMatches"][0]["coordinates"]
        return Coordinates(lat=float(coordinates["y"]), lng=float(coordinates["x"]))
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        raise UnexpectedResponseError(
            "census_address", f"Unexpected census response: {payload!r}"[:300]
        ) from exc


def _normalize_nominatim(payload: Any) -> Coordinates:
    if not isinstance(payload, list) or not payload:
        raise UnexpectedResponseError("nominatim", f"Unexpected nominatim response: {payload!r}"[:300])
    first = payload[0]
    try:
        return Coordinates(lat=float(first["lat"]), lng=float(first["lon"]))
    except (KeyError, TypeError, ValueError) as exc:
        raise UnexpectedResponseError(
            "nominatim", f"Unexpected nominatim response: {payload!r}"[:300]
        ) from exc


def _normalize_mapzen(payload: Any) -> Coordinates:
    try:
        geometry = payload["features"][0]["geometry"]
        if geometry["type"] != "Point":
            raise ValueError(f"geometry type {geometry['type']!r}")
        lng, lat = geometry["coordinates"][:2]
        return Coordinates(lat=float(lat), lng=float(lng))
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        raise UnexpectedResponseError(
            "mapzen", f"Unexpected mapzen response: {payload!r}"[:300]
        ) from exc


_ADDRESS_BACKENDS: dict[GeocoderSelection, tuple[str, bool, Callable[[Any], Coordinates]]] = {
    GeocoderSelection.CENSUS: ("census_address", True, _normalize_census_address),
    GeocoderSelection.NOMINATIM: ("nominatim", False, _normalize_nominatim),
    GeocoderSelection.MAPZEN: ("mapzen", False, _normalize_mapzen),
}


async def get_lat_lng_from_address(
    client: httpx.AsyncClient,
    address: Address,
    *,
    selection: GeocoderSelection = GeocoderSelection.CENSUS,
    api_key: str | None = None,
    config: ApiConfig | None = None,
) -> Coordinates:
    selection = GeocoderSelection(selection)
    if selection is GeocoderSelection.MAPZEN and not api_key:
        raise InvalidRequestError("Mapzen API Key was not provided")

    validate_address_fields(address)

    if selection is GeocoderSelection.MAPZEN:
        url = build_mapzen_url(address, api_key or "")
    elif selection is GeocoderSelection.NOMINATIM:
        url = build_nominatim_url(address)
    else:
        url = build_census_address_url(address)

    stage, jsonp, normalize = _ADDRESS_BACKENDS[selection]
    logger.debug("Geocoding address with %s", selection.value)
    payload = await request_json(client, url, jsonp=jsonp, stage=stage, config=config)
    return normalize(payload)


async def get_lat_lng_from_zipcode(
    client: httpx.AsyncClient,
    zip_code: str,
    *,
    config: ApiConfig | None = None,
) -> Coordinates | None:
    table = await request_json(
        client, settings.ZCTA_JSON_URL, jsonp=False, stage="zcta", config=config
    )
    if not isinstance(table, dict):
        raise UnexpectedResponseError("zcta", "ZCTA coordinate table is not a JSON object.")

    # Stored as [lng, lat].
    pair = table.get(str(zip_code))
    if pair is None:
        return None
    return Coordinates(lat=float(pair[1]), lng=float(pair[0]))


async def _lat_lng_from_state(state_code: str) -> Coordinates | None:
    return get_lat_lng_from_state_code(state_code)


async def get_lat_lng(
    client: httpx.AsyncClient,
    request: GeoRequest,
    *,
    config: ApiConfig | None = None,
) -> GeoRequest:
    """Resolve the request's address, zip or state code into coordinates.

    The first of ``address``, ``zip`` and ``state`` that is set decides the
    lookup. Returns a copy of ``request`` with ``lat``/``lng`` filled in.
    """
    lookup: Awaitable[Coordinates | None]
    if request.address:
        lookup = get_lat_lng_from_address(
            client,
            request.address,
            selection=request.geocoder_selection,
            api_key=request.geocoder_api_key,
            config=config,
        )
        missing = None
    elif request.zip:
        lookup = get_lat_lng_from_zipcode(client, request.zip, config=config)
        missing = f"No coordinates found for zip code {request.zip!r}."
    elif request.state:
        lookup = _lat_lng_from_state(request.state)
        missing = f"Unknown state code {request.state!r}."
    else:
        raise InvalidRequestError("One of 'address', 'state' or 'zip' must be provided.")

    coordinates = await lookup
    if coordinates is None:
        raise LocationNotFoundError(missing)
    return request.with_coordinates(coordinates)


# ---------------------------------------------------------------------------
# Reverse geocoding
# ---------------------------------------------------------------------------


def _require_coordinates(request: GeoRequest) -> tuple[float, float]:
    if request.lat is None or request.lng is None:
        raise InvalidRequestError('Invalid request! "lat" and "lng" fields must be provided.')
    return request.lat, request.lng


def _extract_census_fips(payload: Any) -> FipsCodes:
    try:
        geographies = payload["result"]["geographies"]
        block = geographies[CENSUS_BLOCKS_LAYER][0]
    except (KeyError, IndexError, TypeError) as exc:
        raise UnexpectedResponseError(
            "census_fips", f"No {CENSUS_BLOCKS_LAYER!r} match in census response."
        ) from exc

    places = geographies.get(INCORPORATED_PLACES_LAYER)
    place_record = places[0] if isinstance(places, list) and places else {}
    if not isinstance(block, dict) or not isinstance(place_record, dict):
        raise UnexpectedResponseError("census_fips", "Census geography entries are not JSON objects.")

    try:
        return FipsCodes(
            state=block.get("STATE"),
            county=block.get("COUNTY"),
            tract=block.get("TRACT"),
            block_group=block.get("BLKGRP"),
            place=place_record.get("PLACE"),
            place_name=place_record.get("NAME"),
        )
    except ValueError as exc:
        raise UnexpectedResponseError("census_fips", f"Invalid census FIPS values: {exc!s}") from exc


def _extract_fcc_fips(payload: Any) -> FipsCodes:
    if not isinstance(payload, dict) or payload.get("status") != "OK":
        status = payload.get("status") if isinstance(payload, dict) else None
        raise UpstreamAPIError("fcc", f"FCC FIPS service response status: {status!r}")

    try:
        state_fips = payload["State"]["FIPS"]
        county_fips = payload["County"]["FIPS"]
        block_fips = payload["Block"]["FIPS"]
    except (KeyError, TypeError) as exc:
        raise UnexpectedResponseError("fcc", "FCC response is missing FIPS fields.") from exc

    # Points outside any census block come back "OK" with null FIPS values.
    if not all(isinstance(value, str) for value in (state_fips, county_fips, block_fips)):
        raise UnexpectedResponseError("fcc", "FCC response has no FIPS codes for this location.")

    # Block FIPS: SS CCC TTTTTT G BBB
    return FipsCodes(
        state=state_fips,
        county=county_fips[2:],
        tract=block_fips[5:11],
        block_group=block_fips[11:12],
    )


def apply_fips(request: GeoRequest, fips: FipsCodes) -> GeoRequest:
    return request.with_fips(fips)


async def get_fips_from_lat_lng(
    client: httpx.AsyncClient,
    request: GeoRequest,
    *,
    config: ApiConfig | None = None,
) -> GeoRequest:
    lat, lng = _require_coordinates(request)
    payload = await request_json(
        client,
        build_census_coordinates_url(lat, lng),
        jsonp=True,
        stage="census_fips",
        config=config,
    )
    return apply_fips(request, _extract_census_fips(payload))


async def get_fips_from_lat_lng_using_fcc(
    client: httpx.AsyncClient,
    request: GeoRequest,
    *,
    config: ApiConfig | None = None,
) -> GeoRequest:
    lat, lng = _require_coordinates(request)
    payload = await request_json(
        client, build_fcc_url(lat, lng), jsonp=False, stage="fcc", config=config
    )
    return apply_fips(request, _extract_fcc_fips(payload))


# ---------------------------------------------------------------------------
# Geography variables
# ---------------------------------------------------------------------------


async def get_geography_variables(
    client: httpx.AsyncClient,
    request: GeoRequest,
    *,
    config: ApiConfig | None = None,
) -> Any:
    if not request.api or not request.year:
        raise InvalidRequestError('Invalid request! "year" and "api" fields must be provided.')

    url = f"{settings.CENSUS_URL}{request.year}/{request.api}/geography.json"
    return await request_json(client, url, jsonp=False, stage="geography", config=config)
