"""Domain lookup ports backed by the Google Maps client."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from .translator import area_names_from_components, translate_place

if TYPE_CHECKING:
    from collections.abc import Callable

    from doofpy.domain.model import AdministrativeArea, PlaceCandidate

    from .client import GoogleMapsClient

log = getLogger(__name__)

type AreaByName = Callable[[str], AdministrativeArea | None]


class GoogleAreaLookup:
    """Geocode a postal code and map the reported neighborhood onto a known area.

    Areas are only ever returned from the local directory; a neighborhood Google
    knows but the catalog does not is a miss.
    """

    def __init__(self, client: GoogleMapsClient, area_by_name: AreaByName) -> None:
        self._client = client
        self._area_by_name = area_by_name

    async def lookup(self, postal_code: str) -> AdministrativeArea | None:
        response = await self._client.geocode_postal_code(postal_code)
        for result in response.results:
            for name in area_names_from_components(result.address_components):
                area = self._area_by_name(name)
                if area is not None:
                    log.info("Geocoded %s to area %s (id=%s)", postal_code, area.name, area.id)
                    return area
        log.info("Geocoding %s produced no known area", postal_code)
        return None


class GooglePlaceLookup:
    """Text search followed by a details call for the single best place."""

    def __init__(self, client: GoogleMapsClient) -> None:
        self._client = client

    async def find_place(self, query: str) -> PlaceCandidate | None:
        search = await self._client.text_search(query)
        if not search.results:
            return None
        best = search.results[0]
        details = await self._client.place_details(best.place_id)
        return translate_place(best, details.result)
