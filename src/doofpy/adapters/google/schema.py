"""Google Maps geocoding and places response schemas."""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

log = logging.getLogger(__name__)


class GoogleStatus(StrEnum):
    OK = "OK"
    ZERO_RESULTS = "ZERO_RESULTS"
    NOT_FOUND = "NOT_FOUND"
    OVER_QUERY_LIMIT = "OVER_QUERY_LIMIT"
    OVER_DAILY_LIMIT = "OVER_DAILY_LIMIT"
    REQUEST_DENIED = "REQUEST_DENIED"
    INVALID_REQUEST = "INVALID_REQUEST"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


EMPTY_STATUSES = frozenset({GoogleStatus.ZERO_RESULTS, GoogleStatus.NOT_FOUND})


class GoogleBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow")
    _logged_extra_keys: ClassVar[set[str]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        new_keys = set(extras).difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.debug(
            "Google Maps %s: unmodeled keys: %s",
            type(self).__name__,
            ", ".join(sorted(new_keys)),
        )


class AddressComponent(GoogleBaseModel):
    long_name: str
    short_name: str
    types: list[str] = Field(default_factory=list)


class GeocodeResult(GoogleBaseModel):
    address_components: list[AddressComponent] = Field(default_factory=list)
    formatted_address: str | None = None
    place_id: str | None = None
    types: list[str] = Field(default_factory=list)


class GeocodeResponse(GoogleBaseModel):
    status: GoogleStatus
    results: list[GeocodeResult] = Field(default_factory=list)
    error_message: str | None = None


class PlaceSearchResult(GoogleBaseModel):
    name: str
    place_id: str
    formatted_address: str | None = None


class PlaceSearchResponse(GoogleBaseModel):
    status: GoogleStatus
    results: list[PlaceSearchResult] = Field(default_factory=list)
    error_message: str | None = None


class PlaceDetails(GoogleBaseModel):
    name: str | None = None
    place_id: str | None = None
    formatted_address: str | None = None
    address_components: list[AddressComponent] = Field(default_factory=list)


class PlaceDetailsResponse(GoogleBaseModel):
    status: GoogleStatus
    result: PlaceDetails | None = None
    error_message: str | None = None
