from __future__ import annotations

from typing import Any

import httpx
from fastapi import Body, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from . import config as settings
from . import request_utils
from .geometry import GeometryConversionError
from .request_utils import (
    InvalidAliasError,
    InvalidRequestError,
    LocationNotFoundError,
    UpstreamAPIError,
)
from .schemas import Address, FipsProvider, GeocoderSelection, GeoRequest, VariableResolution

app = FastAPI(title="CityGeo Geocoding API", version="0.1.0")

allow_origins = [origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()]
if not allow_origins:
    allow_origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _as_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, (InvalidRequestError, InvalidAliasError, GeometryConversionError)):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, LocationNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    return HTTPException(status_code=502, detail=str(exc))


@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/api/geocode")
async def geocode(
    street: str | None = Query(None),
    city: str | None = Query(None),
    state: str | None = Query(None),
    zip: str | None = Query(None),
    state_code: str | None = Query(None, min_length=2, max_length=2),
    geocoder: GeocoderSelection = Query(GeocoderSelection.CENSUS),
    api_key: str | None = Query(None),
) -> dict[str, Any]:
    """Resolve an address, zip code or state code into coordinates.

    Passing ``street`` selects address geocoding; otherwise ``zip`` and then
    ``state_code`` are tried.
    """
    if street is not None:
        request = GeoRequest(
            address=Address(street=street, city=city, state=state, zip=zip),
            geocoder_selection=geocoder,
            geocoder_api_key=api_key or settings.MAPZEN_API_KEY or None,
        )
    else:
        request = GeoRequest(zip=zip, state=state_code)

    try:
        async with httpx.AsyncClient(follow_redirects=True) as client:
            result = await request_utils.get_lat_lng(client, request)
    except (InvalidRequestError, LocationNotFoundError, UpstreamAPIError) as exc:
        raise _as_http_error(exc) from exc
    return result.model_dump(mode="json", exclude={"geocoder_api_key"})


@app.get("/api/fips")
async def fips_by_point(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    provider: FipsProvider = Query(FipsProvider.CENSUS),
) -> dict[str, Any]:
    request = GeoRequest(lat=lat, lng=lng)
    lookup = (
        request_utils.get_fips_from_lat_lng_using_fcc
        if provider is FipsProvider.FCC
        else request_utils.get_fips_from_lat_lng
    )
    try:
        async with httpx.AsyncClient(follow_redirects=True) as client:
            result = await lookup(client, request)
    except (InvalidRequestError, UpstreamAPIError) as exc:
        raise _as_http_error(exc) from exc
    return result.model_dump(
        mode="json",
        include={"lat", "lng", "state", "county", "tract", "block_group", "place", "place_name", "geocoded"},
    )


@app.get("/api/variables/{name}", response_model=VariableResolution)
def resolve_variable(
    name: str,
    api: str | None = Query(None),
    year: int | None = Query(None),
) -> VariableResolution:
    try:
        if api is not None and year is not None:
            variable = request_utils.resolve_validated_variable(name, api, year)
        else:
            variable = request_utils.resolve_variable(name)
    except InvalidAliasError as exc:
        raise _as_http_error(exc) from exc
    return VariableResolution(
        name=name,
        variable=variable,
        normalizable=request_utils.is_normalizable(name),
    )


@app.get("/api/geography-variables")
async def geography_variables(
    api: str = Query(..., min_length=1),
    year: int = Query(..., ge=1990, le=2100),
) -> Any:
    try:
        async with httpx.AsyncClient(follow_redirects=True) as client:
            return await request_utils.get_geography_variables(
                client, GeoRequest(api=api, year=year)
            )
    except (InvalidRequestError, UpstreamAPIError) as exc:
        raise _as_http_error(exc) from exc


@app.post("/api/geometry/esri-to-geojson")
def esri_to_geojson(payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    try:
        return request_utils.esri_to_geo(payload)
    except GeometryConversionError as exc:
        raise _as_http_error(exc) from exc


@app.post("/api/geometry/geojson-to-esri")
def geojson_to_esri(payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    try:
        return request_utils.geo_to_esri(payload)
    except GeometryConversionError as exc:
        raise _as_http_error(exc) from exc
