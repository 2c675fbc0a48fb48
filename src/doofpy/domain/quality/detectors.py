"""Data-quality detectors.

Each detector looks at one entity at a time and returns proposals in the field order
declared by the category profile. Detectors never write; the ledger applies accepted
proposals later.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any, ClassVar, Final, Protocol

from doofpy.domain.errors import InvalidPostalCodeError
from doofpy.domain.location import normalize_postal_code
from doofpy.domain.model import CatalogEntity, ChangeId, ChangeKind, ProposedChange

from .formatting import (
    format_email,
    format_money,
    format_phone,
    format_url,
    needs_title_case,
    title_case,
    truncate,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping, Sequence

    from doofpy.domain.location import PostalCodeIndex

    from .profiles import CategoryProfile, TextRule

MISSING_DERIVED_CONFIDENCE: Final[float] = 0.9
ZIP_LOOKUP_CONFIDENCE: Final[float] = 0.95
FORMAT_CONFIDENCE: Final[float] = 1.0
STALENESS_CONFIDENCE: Final[float] = 0.8
TRIM_CONFIDENCE: Final[float] = 1.0
TITLE_CASE_CONFIDENCE: Final[float] = 0.6
TRUNCATE_CONFIDENCE: Final[float] = 0.7

FORMATTERS: Final[Mapping[ChangeKind, Callable[[object], str | None]]] = {
    ChangeKind.PHONE_FORMAT: format_phone,
    ChangeKind.URL_FORMAT: format_url,
    ChangeKind.MONEY_FORMAT: format_money,
    ChangeKind.EMAIL_FORMAT: format_email,
}


@dataclass(frozen=True, slots=True)
class DetectionContext:
    profile: CategoryProfile
    by_postal_code: Mapping[str, Sequence[CatalogEntity]]
    now: datetime
    staleness: timedelta
    postal_codes: PostalCodeIndex | None = None


class Detector(Protocol):
    name: ClassVar[str]

    def detect(self, entity: CatalogEntity, context: DetectionContext) -> list[ProposedChange]: ...


def entity_postal_code(entity: CatalogEntity, field: str | None) -> str | None:
    if field is None:
        return None
    value = entity.value(field)
    if value is None or isinstance(value, bool):
        return None
    try:
        return normalize_postal_code(str(value))
    except InvalidPostalCodeError:
        return None


def _proposal(
    kind: ChangeKind,
    entity: CatalogEntity,
    field: str,
    proposed: Any,
    *,
    rationale: str,
    confidence: float,
) -> ProposedChange:
    return ProposedChange(
        change_id=ChangeId(
            kind=kind,
            category=entity.category,
            entity_id=entity.require_id,
            field=field,
        ),
        current_value=entity.value(field),
        proposed_value=proposed,
        rationale=rationale,
        confidence=confidence,
    )


class MissingDerivedFieldDetector:
    """Fill empty geographic fields from siblings sharing a postal code."""

    name: ClassVar[str] = "missing_derived"

    def detect(self, entity: CatalogEntity, context: DetectionContext) -> list[ProposedChange]:
        profile = context.profile
        postal_code = entity_postal_code(entity, profile.postal_code_field)
        if postal_code is None:
            return []
        siblings = [
            sibling
            for sibling in context.by_postal_code.get(postal_code, ())
            if sibling.id != entity.id
        ]
        changes: list[ProposedChange] = []
        for field in profile.derived_fields:
            if entity.has_value(field):
                continue
            majority = _majority_value(
                sibling.value(field) for sibling in siblings if sibling.has_value(field)
            )
            if majority is None:
                continue
            value, votes, total = majority
            changes.append(
                _proposal(
                    ChangeKind.MISSING_DERIVED,
                    entity,
                    field,
                    value,
                    rationale=(
                        f"{votes} of {total} entities sharing postal code {postal_code} "
                        f"have {field}={value!r}"
                    ),
                    confidence=MISSING_DERIVED_CONFIDENCE,
                )
            )
        return changes


class ZipLookupDetector:
    """Propose an area id from the area that owns the entity's postal code.

    Stays silent when a sibling with the same postal code already carries the field;
    the majority vote of :class:`MissingDerivedFieldDetector` covers that case.
    """

    name: ClassVar[str] = "zip_lookup"

    def detect(self, entity: CatalogEntity, context: DetectionContext) -> list[ProposedChange]:
        profile = context.profile
        field = profile.area_id_field
        if field is None or context.postal_codes is None or entity.has_value(field):
            return []
        postal_code = entity_postal_code(entity, profile.postal_code_field)
        if postal_code is None:
            return []
        siblings = context.by_postal_code.get(postal_code, ())
        if field in profile.derived_fields and any(
            sibling.has_value(field) for sibling in siblings
        ):
            return []
        area = context.postal_codes.get(postal_code)
        if area is None:
            return []
        return [
            _proposal(
                ChangeKind.ZIP_LOOKUP,
                entity,
                field,
                area.id,
                rationale=f"Area {area.name} (id {area.id}) owns postal code {postal_code}",
                confidence=ZIP_LOOKUP_CONFIDENCE,
            )
        ]


def _majority_value(values: Iterable[Any]) -> tuple[Any, int, int] | None:
    # values arrive in entity-id order; the first value seen wins a tie
    tally: list[list[Any]] = []
    total = 0
    for value in values:
        total += 1
        for entry in tally:
            if entry[0] == value:
                entry[1] += 1
                break
        else:
            tally.append([value, 1])
    if not tally:
        return None
    best = tally[0]
    for entry in tally[1:]:
        if entry[1] > best[1]:
            best = entry
    return best[0], best[1], total


class CanonicalFormatDetector:
    name: ClassVar[str] = "canonical_format"

    def detect(self, entity: CatalogEntity, context: DetectionContext) -> list[ProposedChange]:
        changes: list[ProposedChange] = []
        for field, kind in context.profile.formatted_fields:
            current = entity.value(field)
            if current is None:
                continue
            proposed = FORMATTERS[kind](current)
            if proposed is None or proposed == current:
                continue
            changes.append(
                _proposal(
                    kind,
                    entity,
                    field,
                    proposed,
                    rationale=f"Canonical {kind.value.removesuffix('_format')} format",
                    confidence=FORMAT_CONFIDENCE,
                )
            )
        return changes


class StalenessDetector:
    """Archive pending entities nobody has looked at for too long."""

    name: ClassVar[str] = "staleness"

    def detect(self, entity: CatalogEntity, context: DetectionContext) -> list[ProposedChange]:
        profile = context.profile
        if profile.status_field is None:
            return []
        status = entity.value(profile.status_field)
        if not isinstance(status, str) or status not in profile.pending_states:
            return []
        age = context.now - _as_utc(entity.created_at)
        if age <= context.staleness:
            return []
        return [
            _proposal(
                ChangeKind.STALE_ARCHIVE,
                entity,
                profile.status_field,
                profile.archived_state,
                rationale=f"{status} for {age.days} days (limit {context.staleness.days})",
                confidence=STALENESS_CONFIDENCE,
            )
        ]


class TextHygieneDetector:
    """Trim, title-case and truncate free text.

    Rules for one field are composed into a single proposal so that applying it
    never leaves a sibling proposal for the same field stale.
    """

    name: ClassVar[str] = "text_hygiene"

    def detect(self, entity: CatalogEntity, context: DetectionContext) -> list[ProposedChange]:
        changes: list[ProposedChange] = []
        for rule in context.profile.text_rules:
            current = entity.value(rule.field)
            if not isinstance(current, str) or not current:
                continue
            change = self._clean(entity, rule, current)
            if change is not None:
                changes.append(change)
        return changes

    def _clean(
        self, entity: CatalogEntity, rule: TextRule, current: str
    ) -> ProposedChange | None:
        value = current
        applied: list[tuple[ChangeKind, float, str]] = []
        if rule.trim and value != value.strip():
            value = value.strip()
            applied.append((ChangeKind.TRIM, TRIM_CONFIDENCE, "surrounding whitespace removed"))
        if rule.title_case and needs_title_case(value):
            cased = title_case(value)
            if cased != value:
                value = cased
                applied.append((ChangeKind.TITLE_CASE, TITLE_CASE_CONFIDENCE, "title-cased"))
        if rule.max_length is not None and len(value) > rule.max_length:
            value = truncate(value, rule.max_length)
            reason = f"truncated to {rule.max_length} characters"
            applied.append((ChangeKind.TRUNCATE, TRUNCATE_CONFIDENCE, reason))
        if not applied or value == current:
            return None
        kind = applied[-1][0]
        return _proposal(
            kind,
            entity,
            rule.field,
            value,
            rationale="; ".join(reason for _, _, reason in applied).capitalize(),
            confidence=min(confidence for _, confidence, _ in applied),
        )


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment


DEFAULT_DETECTORS: Final[tuple[Detector, ...]] = (
    MissingDerivedFieldDetector(),
    ZipLookupDetector(),
    CanonicalFormatDetector(),
    StalenessDetector(),
    TextHygieneDetector(),
)
