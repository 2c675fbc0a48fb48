"""Translate Google Maps payloads into domain values."""

from __future__ import annotations

from typing import TYPE_CHECKING

from doofpy.domain.model import PlaceCandidate

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .schema import AddressComponent, PlaceDetails, PlaceSearchResult

# most specific first; a neighborhood beats the borough it sits in
AREA_COMPONENT_TYPES: tuple[str, ...] = (
    "neighborhood",
    "sublocality_level_2",
    "sublocality_level_1",
    "sublocality",
    "locality",
)


def postal_code_from_components(components: Sequence[AddressComponent]) -> str | None:
    for component in components:
        if "postal_code" in component.types:
            return component.long_name
    return None


def area_names_from_components(components: Sequence[AddressComponent]) -> list[str]:
    names: list[str] = []
    for component_type in AREA_COMPONENT_TYPES:
        for component in components:
            if component_type in component.types and component.long_name not in names:
                names.append(component.long_name)
    return names


def translate_place(result: PlaceSearchResult, details: PlaceDetails | None) -> PlaceCandidate:
    components = details.address_components if details is not None else []
    formatted = (details.formatted_address if details is not None else None) or (
        result.formatted_address
    )
    return PlaceCandidate(
        name=(details.name if details is not None else None) or result.name,
        postal_code=postal_code_from_components(components),
        formatted_address=formatted,
        place_id=result.place_id,
    )
