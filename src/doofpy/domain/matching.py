"""Existing-item detection for candidate catalog entries."""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from doofpy.domain.model import (
    CatalogEntity,
    MatchCandidate,
    MatchConfidence,
    MatchResult,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from doofpy.domain.model import EntityCategory

log = getLogger(__name__)

AREA_FIELD = "area_id"
NAME_FIELD = "name"


def normalize_name(value: str | None) -> str:
    """NFKC, case-fold, drop punctuation and collapse whitespace."""

    if value is None:
        return ""
    text = unicodedata.normalize("NFKC", value)
    text = text.casefold()
    text = "".join(ch for ch in text if not unicodedata.category(ch).startswith("P"))
    return " ".join(text.split())


def token_similarity(left: str, right: str) -> float:
    """Jaccard similarity over whitespace tokens of two normalized names."""

    left_tokens = set(left.split())
    right_tokens = set(right.split())
    if not left_tokens or not right_tokens:
        return 0.0
    return len(left_tokens & right_tokens) / len(left_tokens | right_tokens)


@dataclass(frozen=True, slots=True)
class _Scored:
    entity: CatalogEntity
    similarity: float
    exact: bool

    def sort_key(self) -> tuple[int, float, float, int]:
        # exact first, then similarity, then most recent, then lowest id
        return (
            0 if self.exact else 1,
            -self.similarity,
            -self.entity.last_modified.timestamp(),
            self.entity.id if self.entity.id is not None else 0,
        )


class ExistingItemMatcher:
    """Match candidates against a fixed catalog snapshot.

    The snapshot is captured at construction; later catalog writes are not seen.
    """

    def __init__(self, snapshot: Iterable[CatalogEntity], *, threshold: float = 0.6) -> None:
        if not 0.0 < threshold <= 1.0:
            raise ValueError("threshold must be within (0, 1]")
        self._threshold = threshold
        self._by_category: dict[EntityCategory, list[tuple[CatalogEntity, str]]] = {}
        for entity in snapshot:
            normalized = normalize_name(_entity_name(entity))
            if not normalized:
                continue
            self._by_category.setdefault(entity.category, []).append((entity, normalized))

    @property
    def threshold(self) -> float:
        return self._threshold

    def find_match(self, candidate: MatchCandidate) -> MatchResult:
        target = normalize_name(candidate.name)
        if not target:
            return MatchResult(candidate=candidate, confidence=MatchConfidence.NONE)

        best: _Scored | None = None
        for entity, normalized in self._candidates(candidate):
            exact = normalized == target
            similarity = 1.0 if exact else token_similarity(target, normalized)
            if not exact and similarity < self._threshold:
                continue
            scored = _Scored(entity=entity, similarity=similarity, exact=exact)
            if best is None or scored.sort_key() < best.sort_key():
                best = scored

        if best is None:
            return MatchResult(candidate=candidate, confidence=MatchConfidence.NONE)

        confidence = MatchConfidence.EXACT if best.exact else MatchConfidence.FUZZY
        log.debug(
            "Matched %r to entity_id=%s (%s, %.2f)",
            candidate.name,
            best.entity.id,
            confidence,
            best.similarity,
        )
        return MatchResult(
            candidate=candidate,
            confidence=confidence,
            match=best.entity,
            similarity=best.similarity,
        )

    def _candidates(self, candidate: MatchCandidate) -> Iterable[tuple[CatalogEntity, str]]:
        entries = self._by_category.get(candidate.category, [])
        if candidate.area_id is None:
            return entries
        return [
            (entity, normalized)
            for entity, normalized in entries
            if _entity_area(entity) == candidate.area_id
        ]


def _entity_name(entity: CatalogEntity) -> str | None:
    value = entity.value(NAME_FIELD)
    return value if isinstance(value, str) else None


def _entity_area(entity: CatalogEntity) -> int | None:
    value = entity.value(AREA_FIELD)
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None
