from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class GeocoderSelection(str, Enum):
    CENSUS = "census"
    NOMINATIM = "nominatim"
    MAPZEN = "mapzen"


class FipsProvider(str, Enum):
    CENSUS = "census"
    FCC = "fcc"


class AliasEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    variable: str = Field(..., min_length=1)
    api: dict[str, tuple[int, ...]] = Field(default_factory=dict)
    normalizable: bool = False

    def is_valid_for(self, api: str, year: int) -> bool:
        return year in self.api.get(api, ())


class Address(BaseModel):
    """Street address to geocode.

    Completeness (street plus zip, or street plus city and state) is checked by
    the geocoding calls so that they can name the missing field.
    """

    model_config = ConfigDict(frozen=True)

    street: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None


class Coordinates(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float


class FipsCodes(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: str | None = None
    county: str | None = None
    tract: str | None = None
    block_group: str | None = None
    place: str | None = None
    place_name: str | None = None


class GeoRequest(BaseModel):
    """A location lookup and the results gathered for it so far.

    Instances are frozen. Every resolution step returns a new request.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    address: Address | None = None
    zip: str | None = None
    state: str | None = None
    lat: float | None = None
    lng: float | None = None
    county: str | None = None
    tract: str | None = None
    block_group: str | None = Field(default=None, alias="blockGroup")
    place: str | None = None
    place_name: str | None = None
    geocoded: bool = False
    geocoder_selection: GeocoderSelection = Field(
        default=GeocoderSelection.CENSUS, alias="geocoderSelection"
    )
    geocoder_api_key: str | None = Field(default=None, alias="geocoderApiKey")
    api: str | None = None
    year: int | str | None = None

    def with_coordinates(self, coordinates: Coordinates) -> GeoRequest:
        return self.model_copy(update={"lat": coordinates.lat, "lng": coordinates.lng})

    def with_fips(self, fips: FipsCodes) -> GeoRequest:
        update: dict[str, Any] = {
            "state": fips.state,
            "county": fips.county,
            "tract": fips.tract,
            "block_group": fips.block_group,
            "geocoded": True,
        }
        if fips.place is not None:
            update["place"] = fips.place
            update["place_name"] = fips.place_name
        return self.model_copy(update=update)


class ErrorResponse(BaseModel):
    detail: str


class VariableResolution(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    variable: str
    normalizable: bool
