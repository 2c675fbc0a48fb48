"""Google Maps API client (geocoding, place text search, place details)."""

from __future__ import annotations

import json
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import BaseModel, ValidationError

from doofpy.adapters.http_resilience import ResilientClient
from doofpy.domain.errors import ExternalLookupError

from .schema import (
    EMPTY_STATUSES,
    GeocodeResponse,
    GoogleStatus,
    PlaceDetailsResponse,
    PlaceSearchResponse,
)

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from doofpy.config.google import GoogleMapsConfig
    from doofpy.config.http_resilience import ResilienceConfig

log = getLogger(__name__)

GEOCODE_PATH = "geocode/json"
TEXT_SEARCH_PATH = "place/textsearch/json"
DETAILS_PATH = "place/details/json"
DETAIL_FIELDS = "address_component,formatted_address,name,place_id"


class GoogleMapsAPIError(ExternalLookupError):
    """Raised when Google Maps is unreachable or answers with an error status."""


class GoogleMapsResponseError(GoogleMapsAPIError):
    """Raised when a response does not match the expected payload shape."""


class GoogleMapsClient:
    """Async client holding one resilient HTTP client for its lifetime.

    Use as an async context manager; every lookup made inside one ``async with``
    block shares the same rate limiter and cache.
    """

    def __init__(
        self,
        *,
        config: GoogleMapsConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._resilience = config.resilience
        self._client_factory = client_factory or ResilientClient
        self._client: ResilientClient | None = None

    async def __aenter__(self) -> GoogleMapsClient:
        if self._client is None:
            self._client = self._client_factory(self._resilience)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def geocode_postal_code(self, postal_code: str) -> GeocodeResponse:
        params = {
            "components": f"postal_code:{postal_code}|country:{self._config.region.upper()}",
        }
        return await self._get(GEOCODE_PATH, params, GeocodeResponse)

    async def text_search(self, query: str) -> PlaceSearchResponse:
        params = {"query": query, "region": self._config.region}
        return await self._get(TEXT_SEARCH_PATH, params, PlaceSearchResponse)

    async def place_details(self, place_id: str) -> PlaceDetailsResponse:
        params = {"place_id": place_id, "fields": DETAIL_FIELDS}
        return await self._get(DETAILS_PATH, params, PlaceDetailsResponse)

    async def _get[TResponse: BaseModel](
        self,
        path: str,
        params: dict[str, str],
        model: type[TResponse],
    ) -> TResponse:
        if self._client is None:
            raise GoogleMapsAPIError("GoogleMapsClient used outside of 'async with'")
        if self._resilience.base_url is None:
            raise GoogleMapsAPIError("Missing Google Maps base_url in resilience configuration")

        try:
            response = await self._client.get(path, params={**params, "key": self._config.api_key})
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise GoogleMapsAPIError(f"Google Maps request to {path} failed: {exc}") from exc

        try:
            payload = response.json()
        except json.JSONDecodeError as exc:
            raise GoogleMapsResponseError(f"Google Maps returned non-JSON for {path}") from exc
        if not isinstance(payload, dict):
            raise GoogleMapsResponseError(f"Unexpected Google Maps payload for {path}")

        try:
            parsed = model.model_validate(payload)
        except ValidationError as exc:
            raise GoogleMapsResponseError(f"Malformed Google Maps payload for {path}") from exc

        status = getattr(parsed, "status", GoogleStatus.OK)
        if status is not GoogleStatus.OK and status not in EMPTY_STATUSES:
            detail = getattr(parsed, "error_message", None) or status
            raise GoogleMapsAPIError(f"Google Maps {path} answered {status}: {detail}")
        return parsed
