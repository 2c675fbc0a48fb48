"""Ports for the external geocoding and place search service."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from doofpy.domain.model import AdministrativeArea, PlaceCandidate


@runtime_checkable
class RemoteAreaLookup(Protocol):
    """Resolve a postal code the local index does not know."""

    async def lookup(self, postal_code: str) -> AdministrativeArea | None: ...


@runtime_checkable
class PlaceLookup(Protocol):
    """Free-text place search returning the single best candidate."""

    async def find_place(self, query: str) -> PlaceCandidate | None: ...


__all__ = ["PlaceLookup", "RemoteAreaLookup"]
