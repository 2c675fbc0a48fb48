"""Pending bulk-ingestion records and their resolution details.

Records live only for the duration of a batch. Status transitions are one-way:
an ``unprocessed`` record ends up ``resolved``, ``duplicate`` or ``error`` and
never moves again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from doofpy.domain.errors import InvalidStatusTransitionError

from .enums import EntityCategory, MatchConfidence, RecordStatus, ResolutionSource

if TYPE_CHECKING:
    from .area import AdministrativeArea
    from .entity import CatalogEntity


@dataclass(frozen=True, slots=True)
class LocationResolution:
    area: AdministrativeArea
    source: ResolutionSource

    @property
    def resolved(self) -> bool:
        return self.source is not ResolutionSource.UNRESOLVED


@dataclass(frozen=True, slots=True)
class MatchCandidate:
    name: str
    category: EntityCategory
    area_id: int | None = None


@dataclass(frozen=True, slots=True)
class MatchResult:
    candidate: MatchCandidate
    confidence: MatchConfidence
    match: CatalogEntity | None = None
    similarity: float = 0.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.similarity <= 1.0:
            raise ValueError(f"similarity out of range: {self.similarity}")
        if self.confidence is MatchConfidence.NONE and self.match is not None:
            raise ValueError("a 'none' match cannot reference an entity")

    @property
    def is_duplicate(self) -> bool:
        return self.confidence is not MatchConfidence.NONE


@dataclass(frozen=True, slots=True)
class PlaceCandidate:
    """Best place returned by an external text search."""

    name: str
    postal_code: str | None = None
    formatted_address: str | None = None
    place_id: str | None = None


_TERMINAL = frozenset({RecordStatus.RESOLVED, RecordStatus.DUPLICATE, RecordStatus.ERROR})


@dataclass(eq=False, kw_only=True)
class PendingRecord:
    line_number: int
    name: str
    category_text: str = ""
    location: str = ""
    tags: tuple[str, ...] = ()
    category: EntityCategory | None = None
    parse_error: str | None = None
    duplicate_of_line: int | None = None

    status: RecordStatus = field(default=RecordStatus.UNPROCESSED, init=False)
    postal_code: str | None = field(default=None, init=False)
    resolution: LocationResolution | None = field(default=None, init=False)
    match: MatchResult | None = field(default=None, init=False)
    error: str | None = field(default=None, init=False)

    def mark_resolved(self) -> None:
        self._transition(RecordStatus.RESOLVED)

    def mark_duplicate(self) -> None:
        self._transition(RecordStatus.DUPLICATE)

    def mark_error(self, reason: str) -> None:
        self._transition(RecordStatus.ERROR)
        self.error = reason

    def _transition(self, target: RecordStatus) -> None:
        if self.status is not RecordStatus.UNPROCESSED or target not in _TERMINAL:
            raise InvalidStatusTransitionError(
                f"Line {self.line_number}: cannot move from {self.status} to {target}"
            )
        self.status = target

    @property
    def area_id(self) -> int | None:
        if self.resolution is None or not self.resolution.resolved:
            return None
        return self.resolution.area.id
