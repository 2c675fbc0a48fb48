"""Proposed data-quality changes and their identifiers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Final

from doofpy.domain.errors import InvalidChangeIdError

from .enums import ChangeKind, EntityCategory

_SEPARATOR: Final[str] = ":"


@dataclass(frozen=True, slots=True, order=True)
class ChangeId:
    """Deterministic identifier of one (entity, field) proposal.

    Rendered as ``kind:category:entity_id:field``. The field is everything after the
    third separator so field names may themselves contain ``:``.
    """

    kind: ChangeKind
    category: EntityCategory
    entity_id: int
    field: str

    def __str__(self) -> str:
        return self.token

    @property
    def token(self) -> str:
        parts = (self.kind.value, self.category.value, str(self.entity_id), self.field)
        return _SEPARATOR.join(parts)

    @classmethod
    def parse(cls, token: str) -> ChangeId:
        if not isinstance(token, str):
            raise InvalidChangeIdError(repr(token), "change ids are strings")
        parts = token.split(_SEPARATOR, 3)
        if len(parts) != 4:  # noqa: PLR2004
            raise InvalidChangeIdError(token, "expected kind:category:entity_id:field")
        kind_text, category_text, entity_text, field_name = parts
        try:
            kind = ChangeKind(kind_text)
        except ValueError:
            raise InvalidChangeIdError(token, f"unknown change kind {kind_text!r}") from None
        try:
            category = EntityCategory(category_text)
        except ValueError:
            raise InvalidChangeIdError(token, f"unknown category {category_text!r}") from None
        if not entity_text.isdigit():
            raise InvalidChangeIdError(token, "entity id must be a non-negative integer")
        if not field_name:
            raise InvalidChangeIdError(token, "field name is empty")
        return cls(kind=kind, category=category, entity_id=int(entity_text), field=field_name)


@dataclass(frozen=True, slots=True, kw_only=True)
class ProposedChange:
    change_id: ChangeId
    current_value: Any
    proposed_value: Any
    rationale: str
    confidence: float

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence out of range: {self.confidence}")

    @property
    def category(self) -> EntityCategory:
        return self.change_id.category

    @property
    def entity_id(self) -> int:
        return self.change_id.entity_id

    @property
    def field(self) -> str:
        return self.change_id.field

    def snapshot(self) -> dict[str, Any]:
        """JSON-friendly view stored alongside ledger entries."""

        return {
            "id": self.change_id.token,
            "kind": self.change_id.kind.value,
            "category": self.category.value,
            "entity_id": self.entity_id,
            "field": self.field,
            "current_value": self.current_value,
            "proposed_value": self.proposed_value,
            "rationale": self.rationale,
            "confidence": self.confidence,
        }


@dataclass(frozen=True, slots=True)
class Diagnostic:
    entity_id: int
    detector: str
    message: str


@dataclass(frozen=True, slots=True)
class AnalysisReport:
    category: EntityCategory
    changes: tuple[ProposedChange, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = field(default_factory=tuple)

    def by_token(self) -> dict[str, ProposedChange]:
        return {change.change_id.token: change for change in self.changes}
