"""Postal code to administrative area resolution.

The static index built from stored areas always wins; the remote lookup is only
consulted on a miss, bounded by a timeout, and never feeds back into the index.
"""

from __future__ import annotations

import asyncio
import re
from logging import getLogger
from typing import TYPE_CHECKING

from doofpy.config.errors import ConfigurationError
from doofpy.domain.errors import AreaNotFoundError, ExternalLookupError, InvalidPostalCodeError
from doofpy.domain.matching import normalize_name
from doofpy.domain.model import (
    UNRESOLVED_AREA,
    AdministrativeArea,
    LocationResolution,
    ResolutionSource,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

    from doofpy.domain.ports import RemoteAreaLookup

log = getLogger(__name__)

_ZIP_PLUS_FOUR = re.compile(r"^(\d{5})-\d{4}$")
POSTAL_CODE_IN_TEXT = re.compile(r"(?<!\d)(\d{5})(?:-\d{4})?(?!\d)")


def normalize_postal_code(postal_code: str) -> str:
    """Trim and reduce ZIP+4 codes to their five digit prefix."""

    code = postal_code.strip() if isinstance(postal_code, str) else ""
    if not code:
        raise InvalidPostalCodeError(postal_code)
    plus_four = _ZIP_PLUS_FOUR.match(code)
    if plus_four:
        return plus_four.group(1)
    return code


def extract_postal_code(text: str) -> str | None:
    """Return the first US-style postal code embedded in free text."""

    found = POSTAL_CODE_IN_TEXT.search(text or "")
    return found.group(1) if found else None


class PostalCodeIndex:
    """Immutable postal code -> area map, safe for concurrent reads."""

    def __init__(self, areas: Iterable[AdministrativeArea]) -> None:
        by_code: dict[str, AdministrativeArea] = {}
        by_name: dict[str, AdministrativeArea] = {}
        for area in sorted(areas, key=lambda item: item.id):
            if area.is_unresolved:
                continue
            by_name.setdefault(normalize_name(area.name), area)
            for raw_code in area.postal_codes:
                code = normalize_postal_code(raw_code)
                owner = by_code.get(code)
                if owner is not None:
                    log.warning(
                        "Postal code %s claimed by area_id=%s and area_id=%s; keeping %s",
                        code,
                        owner.id,
                        area.id,
                        owner.id,
                    )
                    continue
                by_code[code] = area
        self._by_code: Mapping[str, AdministrativeArea] = by_code
        self._by_name: Mapping[str, AdministrativeArea] = by_name

    def __len__(self) -> int:
        return len(self._by_code)

    def __contains__(self, postal_code: object) -> bool:
        return postal_code in self._by_code

    def __iter__(self) -> Iterator[str]:
        return iter(self._by_code)

    def get(self, postal_code: str) -> AdministrativeArea | None:
        return self._by_code.get(postal_code)

    def find_by_name(self, name: str) -> AdministrativeArea | None:
        return self._by_name.get(normalize_name(name))


class LocationResolver:
    def __init__(
        self,
        index: PostalCodeIndex,
        remote: RemoteAreaLookup | None = None,
        *,
        timeout_seconds: float = 5.0,
    ) -> None:
        if len(index) == 0:
            raise ConfigurationError("Postal code index is empty; import administrative areas")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        self._index = index
        self._remote = remote
        self._timeout = timeout_seconds

    @property
    def index(self) -> PostalCodeIndex:
        return self._index

    async def resolve(self, postal_code: str) -> LocationResolution:
        code = normalize_postal_code(postal_code)
        area = self._index.get(code)
        if area is not None:
            return LocationResolution(area=area, source=ResolutionSource.LOCAL)

        remote_area = await self._lookup_remote(code)
        if remote_area is not None:
            return LocationResolution(area=remote_area, source=ResolutionSource.REMOTE)
        return LocationResolution(area=UNRESOLVED_AREA, source=ResolutionSource.UNRESOLVED)

    async def require(self, postal_code: str) -> AdministrativeArea:
        resolution = await self.resolve(postal_code)
        if not resolution.resolved:
            raise AreaNotFoundError(postal_code)
        return resolution.area

    async def _lookup_remote(self, code: str) -> AdministrativeArea | None:
        if self._remote is None:
            return None
        try:
            async with asyncio.timeout(self._timeout):
                return await self._remote.lookup(code)
        except TimeoutError:
            log.warning("Remote area lookup for %s timed out after %.1fs", code, self._timeout)
        except ExternalLookupError as exc:
            log.warning("Remote area lookup for %s failed: %s", code, exc)
        return None
