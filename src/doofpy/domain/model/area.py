"""Administrative areas (neighborhoods, cities) used to classify catalog entities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final


@dataclass(frozen=True, slots=True, kw_only=True)
class AdministrativeArea:
    id: int
    name: str
    parent_id: int | None = None
    postal_codes: tuple[str, ...] = ()

    @property
    def is_unresolved(self) -> bool:
        return self.id == UNRESOLVED_AREA_ID


UNRESOLVED_AREA_ID: Final[int] = 0
UNRESOLVED_AREA: Final[AdministrativeArea] = AdministrativeArea(
    id=UNRESOLVED_AREA_ID,
    name="Unresolved",
)
