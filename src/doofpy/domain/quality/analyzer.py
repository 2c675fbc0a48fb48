"""Data Quality Analyzer: scan one category and propose fixes."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from logging import getLogger
from typing import TYPE_CHECKING

from doofpy.domain.errors import UnsupportedCategoryError
from doofpy.domain.location import PostalCodeIndex
from doofpy.domain.model import AnalysisReport, Diagnostic, EntityCategory

from .detectors import DEFAULT_DETECTORS, DetectionContext, entity_postal_code
from .profiles import DEFAULT_PROFILES

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from doofpy.domain.model import CatalogEntity, ProposedChange
    from doofpy.domain.ports import AreaRepository, CatalogRepository

    from .detectors import Detector
    from .profiles import CategoryProfile

log = getLogger(__name__)

type Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def coerce_category(category: EntityCategory | str) -> EntityCategory:
    if isinstance(category, EntityCategory):
        return category
    try:
        return EntityCategory(category)
    except ValueError:
        raise UnsupportedCategoryError(category) from None


class DataQualityAnalyzer:
    """Read-only scan of a category producing an ordered list of proposals.

    Output is ordered by entity id, then detector, then profile field order, so two
    runs over the same data yield identical change ids in identical order.
    """

    def __init__(
        self,
        profiles: Mapping[EntityCategory, CategoryProfile] | None = None,
        *,
        staleness_days: int = 30,
        detectors: Sequence[Detector] = DEFAULT_DETECTORS,
        clock: Clock = _utcnow,
    ) -> None:
        self._profiles = dict(profiles) if profiles is not None else dict(DEFAULT_PROFILES)
        self._staleness = timedelta(days=staleness_days)
        self._detectors = tuple(detectors)
        self._clock = clock

    def profile_for(self, category: EntityCategory | str) -> CategoryProfile:
        resolved = coerce_category(category)
        profile = self._profiles.get(resolved)
        if profile is None:
            raise UnsupportedCategoryError(category)
        return profile

    def analyze(
        self,
        category: EntityCategory | str,
        catalog: CatalogRepository,
        areas: AreaRepository | None = None,
    ) -> AnalysisReport:
        """Scan ``category``; with ``areas`` the zip lookup can fill area ids too."""

        profile = self.profile_for(category)
        entities = self._in_scope(profile, catalog.list_by_category(profile.category))
        context = DetectionContext(
            profile=profile,
            by_postal_code=_group_by_postal_code(entities, profile),
            now=self._clock(),
            staleness=self._staleness,
            postal_codes=_postal_code_index(profile, areas),
        )

        changes: list[ProposedChange] = []
        diagnostics: list[Diagnostic] = []
        for entity in entities:
            # one failing detector drops every proposal for this entity
            proposed: list[ProposedChange] = []
            for detector in self._detectors:
                try:
                    proposed.extend(detector.detect(entity, context))
                except Exception as exc:  # noqa: BLE001
                    log.warning(
                        "Detector %s failed, skipping %s entity_id=%s: %s",
                        detector.name,
                        profile.category,
                        entity.id,
                        exc,
                    )
                    diagnostics.append(
                        Diagnostic(
                            entity_id=entity.require_id,
                            detector=detector.name,
                            message=f"{type(exc).__name__}: {exc}",
                        )
                    )
                    proposed = []
                    break
            changes.extend(proposed)

        log.info(
            "Analyzed %d %s entities: %d proposals, %d diagnostics",
            len(entities),
            profile.category,
            len(changes),
            len(diagnostics),
        )
        return AnalysisReport(
            category=profile.category,
            changes=tuple(changes),
            diagnostics=tuple(diagnostics),
        )

    @staticmethod
    def _in_scope(
        profile: CategoryProfile, entities: Sequence[CatalogEntity]
    ) -> list[CatalogEntity]:
        selected: list[CatalogEntity] = []
        for entity in entities:
            if entity.id is None:
                log.warning("Skipping %s entity without id", profile.category)
                continue
            if profile.status_field is not None and not profile.in_scope(
                entity.value(profile.status_field)
            ):
                continue
            selected.append(entity)
        selected.sort(key=lambda item: item.require_id)
        return selected


def _postal_code_index(
    profile: CategoryProfile, areas: AreaRepository | None
) -> PostalCodeIndex | None:
    if areas is None or profile.area_id_field is None:
        return None
    return PostalCodeIndex(areas.list_all())


def _group_by_postal_code(
    entities: Sequence[CatalogEntity], profile: CategoryProfile
) -> dict[str, list[CatalogEntity]]:
    groups: dict[str, list[CatalogEntity]] = {}
    if profile.postal_code_field is None:
        return groups
    for entity in entities:
        postal_code = entity_postal_code(entity, profile.postal_code_field)
        if postal_code is not None:
            groups.setdefault(postal_code, []).append(entity)
    return groups
