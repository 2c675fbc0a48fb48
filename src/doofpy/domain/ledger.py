"""Change Ledger: approve, reject and apply proposed data-quality changes.

Every decision is appended to the ledger; nothing is ever updated in place. Applying
re-derives the current proposals instead of trusting caller-supplied values, so an
id only succeeds if the analyzer would still propose exactly that change.
"""

from __future__ import annotations

import threading
from logging import getLogger
from typing import TYPE_CHECKING

from doofpy.domain.errors import PersistenceError
from doofpy.domain.model import (
    ChangeId,
    ChangeOutcome,
    ChangeResult,
    EntityCategory,
    LedgerAction,
    LedgerEntry,
    LedgerResult,
    ProposedChange,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from doofpy.domain.ports import CatalogUnitOfWork
    from doofpy.domain.quality import DataQualityAnalyzer

log = getLogger(__name__)

type UnitOfWorkFactory = Callable[[], CatalogUnitOfWork]


class EntityLocks:
    """One lock per (category, entity id); unrelated entities never contend."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[tuple[EntityCategory, int], threading.Lock] = {}

    def for_entity(self, category: EntityCategory, entity_id: int) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault((category, entity_id), threading.Lock())


class ChangeLedger:
    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        analyzer: DataQualityAnalyzer,
        *,
        locks: EntityLocks | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._analyzer = analyzer
        self._locks = locks or EntityLocks()

    def apply(self, category: EntityCategory | str, change_ids: Iterable[str]) -> LedgerResult:
        resolved = self._analyzer.profile_for(category).category
        tokens = _parse_tokens(change_ids)
        proposals = self._current_proposals(resolved)

        results: list[ChangeResult] = []
        for token, change_id in tokens:
            change = proposals.get(token) if change_id.category is resolved else None
            results.append(self._apply_one(token, change_id, change))

        result = LedgerResult(category=resolved, results=tuple(results))
        log.info(
            "Applied %d of %d %s changes (%d failed)",
            result.applied_count,
            len(results),
            resolved,
            result.failed_count,
        )
        return result

    def reject(self, category: EntityCategory | str, change_ids: Iterable[str]) -> LedgerResult:
        resolved = self._analyzer.profile_for(category).category
        tokens = _parse_tokens(change_ids)
        proposals = self._current_proposals(resolved)

        results: list[ChangeResult] = []
        for token, change_id in tokens:
            change = proposals.get(token) if change_id.category is resolved else None
            results.append(self._reject_one(token, change_id, change))

        result = LedgerResult(category=resolved, results=tuple(results))
        log.info("Rejected %d of %d %s changes", result.rejected_count, len(results), resolved)
        return result

    def _current_proposals(self, category: EntityCategory) -> dict[str, ProposedChange]:
        with self._uow_factory() as uow:
            report = self._analyzer.analyze(
                category, uow.repositories.catalog, uow.repositories.areas
            )
        return report.by_token()

    def _apply_one(
        self, token: str, change_id: ChangeId, change: ProposedChange | None
    ) -> ChangeResult:
        lock = self._locks.for_entity(change_id.category, change_id.entity_id)
        if change is None:
            # a concurrent apply holds this lock until its ledger entry is committed
            with lock:
                if self._latest_action(token) is LedgerAction.APPLIED:
                    return ChangeResult(token, ChangeOutcome.ALREADY_APPLIED)
            return ChangeResult(token, ChangeOutcome.UNKNOWN)

        try:
            with lock, self._uow_factory() as uow:
                repositories = uow.repositories
                if repositories.ledger.latest_action(token) is LedgerAction.APPLIED:
                    return ChangeResult(token, ChangeOutcome.ALREADY_APPLIED)
                entity = repositories.catalog.get(change.category, change.entity_id)
                if entity is None or entity.value(change.field) != change.current_value:
                    log.info("Change %s is stale; entity changed since analysis", token)
                    return ChangeResult(token, ChangeOutcome.STALE)
                repositories.catalog.write(entity, {change.field: change.proposed_value})
                repositories.ledger.append(_entry(change, LedgerAction.APPLIED))
                uow.commit()
        except PersistenceError as exc:
            log.warning("Applying %s failed: %s", token, exc)
            self._record_failure(change, exc)
            return ChangeResult(token, ChangeOutcome.FAILED, error=str(exc))
        return ChangeResult(token, ChangeOutcome.APPLIED)

    def _reject_one(
        self, token: str, change_id: ChangeId, change: ProposedChange | None
    ) -> ChangeResult:
        lock = self._locks.for_entity(change_id.category, change_id.entity_id)
        with lock, self._uow_factory() as uow:
            ledger = uow.repositories.ledger
            if ledger.latest_action(token) is LedgerAction.REJECTED:
                return ChangeResult(token, ChangeOutcome.ALREADY_REJECTED)
            if change is None:
                return ChangeResult(token, ChangeOutcome.UNKNOWN)
            ledger.append(_entry(change, LedgerAction.REJECTED))
            uow.commit()
        return ChangeResult(token, ChangeOutcome.REJECTED)

    def _latest_action(self, token: str) -> LedgerAction | None:
        with self._uow_factory() as uow:
            return uow.repositories.ledger.latest_action(token)

    def _record_failure(self, change: ProposedChange, exc: PersistenceError) -> None:
        try:
            with self._uow_factory() as uow:
                uow.repositories.ledger.append(
                    _entry(change, LedgerAction.FAILED, error=str(exc))
                )
                uow.commit()
        except PersistenceError:
            log.exception("Could not record failure of %s", change.change_id.token)


def _entry(
    change: ProposedChange, action: LedgerAction, *, error: str | None = None
) -> LedgerEntry:
    return LedgerEntry(
        change_id=change.change_id.token,
        category=change.category,
        entity_id=change.entity_id,
        field=change.field,
        action=action,
        snapshot=change.snapshot(),
        error=error,
    )


def _parse_tokens(change_ids: Iterable[str]) -> list[tuple[str, ChangeId]]:
    """Parse every id up front so a bad token rejects the whole call before any write."""

    parsed: dict[str, ChangeId] = {}
    for token in change_ids:
        if token not in parsed:
            parsed[token] = ChangeId.parse(token)
    return list(parsed.items())
