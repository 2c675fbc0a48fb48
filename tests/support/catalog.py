"""In-memory fakes for the catalog ports."""

from __future__ import annotations

import asyncio
import threading
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Literal

from doofpy.domain.errors import ExternalLookupError, PersistenceError
from doofpy.domain.model import (
    AdministrativeArea,
    CatalogEntity,
    EntityCategory,
    LedgerAction,
    LedgerEntry,
    PlaceCandidate,
)
from doofpy.domain.ports import CatalogRepositories

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping, Sequence
    from types import TracebackType

NYC_AREAS: tuple[AdministrativeArea, ...] = (
    AdministrativeArea(id=139, name="Manhattan"),
    AdministrativeArea(id=145, name="East Village", parent_id=139, postal_codes=("10003", "10009")),
    AdministrativeArea(id=146, name="West Village", parent_id=139, postal_codes=("10014",)),
    AdministrativeArea(id=147, name="Lower East Side", parent_id=139, postal_codes=("10002",)),
)


def make_entity(
    entity_id: int,
    category: EntityCategory = EntityCategory.VENUE,
    *,
    created_at: datetime | None = None,
    updated_at: datetime | None = None,
    **fields: Any,
) -> CatalogEntity:
    return CatalogEntity(
        id=entity_id,
        category=category,
        fields=dict(fields),
        created_at=created_at or datetime(2024, 1, 1, tzinfo=UTC),
        updated_at=updated_at,
    )


class InMemoryCatalogRepository:
    def __init__(self, entities: Iterable[CatalogEntity] = ()) -> None:
        self.entities: dict[int, CatalogEntity] = {}
        self.fail_writes_for: set[int] = set()
        self.before_get: Callable[[CatalogEntity], None] | None = None
        self.writes: list[tuple[int, dict[str, Any]]] = []
        for entity in entities:
            self.entities[entity.require_id] = entity

    def list_by_category(self, category: EntityCategory) -> list[CatalogEntity]:
        return [
            entity
            for _, entity in sorted(self.entities.items())
            if entity.category is category
        ]

    def get(self, category: EntityCategory, entity_id: int) -> CatalogEntity | None:
        entity = self.entities.get(entity_id)
        if entity is None or entity.category is not category:
            return None
        if self.before_get is not None:
            self.before_get(entity)
        return entity

    def write(self, entity: CatalogEntity, updates: Mapping[str, Any]) -> None:
        if entity.require_id in self.fail_writes_for:
            raise PersistenceError(f"disk full while writing entity {entity.id}")
        entity.with_updates(updates)
        self.writes.append((entity.require_id, dict(updates)))


class InMemoryAreaRepository:
    def __init__(self, areas: Iterable[AdministrativeArea] = ()) -> None:
        self.areas: dict[int, AdministrativeArea] = {area.id: area for area in areas}

    def list_all(self) -> list[AdministrativeArea]:
        return [area for _, area in sorted(self.areas.items())]

    def add(self, area: AdministrativeArea) -> None:
        self.areas[area.id] = area


class InMemoryLedgerRepository:
    """Entries become visible to other units of work only once committed."""

    def __init__(self) -> None:
        self.entries: list[LedgerEntry] = []
        self._lock = threading.Lock()

    def append(self, entry: LedgerEntry) -> None:
        with self._lock:
            entry.id = len(self.entries) + 1
            self.entries.append(entry)

    def latest_action(self, change_id: str) -> LedgerAction | None:
        with self._lock:
            for entry in reversed(self.entries):
                if entry.change_id == change_id:
                    return entry.action
        return None

    def entries_for(self, change_id: str) -> list[LedgerEntry]:
        with self._lock:
            return [entry for entry in self.entries if entry.change_id == change_id]


class _StagedLedger:
    def __init__(self, committed: InMemoryLedgerRepository) -> None:
        self._committed = committed
        self.pending: list[LedgerEntry] = []

    def append(self, entry: LedgerEntry) -> None:
        self.pending.append(entry)

    def latest_action(self, change_id: str) -> LedgerAction | None:
        return self._committed.latest_action(change_id)

    def entries_for(self, change_id: str) -> Sequence[LedgerEntry]:
        return self._committed.entries_for(change_id)


class FakeCatalogStore:
    """Shared state behind any number of fake units of work."""

    def __init__(
        self,
        entities: Iterable[CatalogEntity] = (),
        areas: Iterable[AdministrativeArea] = NYC_AREAS,
    ) -> None:
        self.catalog = InMemoryCatalogRepository(entities)
        self.areas = InMemoryAreaRepository(areas)
        self.ledger = InMemoryLedgerRepository()
        self.commits = 0

    def unit_of_work(self) -> FakeUnitOfWork:
        return FakeUnitOfWork(self)


class FakeUnitOfWork:
    def __init__(self, store: FakeCatalogStore) -> None:
        self._store = store
        self._ledger = _StagedLedger(store.ledger)
        self._repositories = CatalogRepositories(
            catalog=store.catalog,
            areas=store.areas,
            ledger=self._ledger,
        )

    @property
    def repositories(self) -> CatalogRepositories:
        return self._repositories

    def __enter__(self) -> FakeUnitOfWork:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        self.rollback()
        return False

    def commit(self) -> None:
        for entry in self._ledger.pending:
            self._store.ledger.append(entry)
        self._ledger.pending.clear()
        self._store.commits += 1

    def rollback(self) -> None:
        self._ledger.pending.clear()


class FakeRemoteAreaLookup:
    """Remote lookup answering from a fixed mapping after an optional delay."""

    def __init__(
        self,
        areas: Mapping[str, AdministrativeArea] | None = None,
        *,
        delays: Mapping[str, float] | None = None,
        failures: Mapping[str, Exception] | None = None,
    ) -> None:
        self._areas = dict(areas or {})
        self._delays = dict(delays or {})
        self._failures = dict(failures or {})
        self.calls: list[str] = []
        self.completed: list[str] = []

    async def lookup(self, postal_code: str) -> AdministrativeArea | None:
        self.calls.append(postal_code)
        await asyncio.sleep(self._delays.get(postal_code, 0))
        failure = self._failures.get(postal_code)
        if failure is not None:
            raise failure
        self.completed.append(postal_code)
        return self._areas.get(postal_code)


class FakePlaceLookup:
    def __init__(self, places: Mapping[str, PlaceCandidate] | None = None) -> None:
        self._places = dict(places or {})
        self.queries: list[str] = []

    async def find_place(self, query: str) -> PlaceCandidate | None:
        self.queries.append(query)
        if query not in self._places:
            raise ExternalLookupError(f"no place for {query!r}")
        return self._places[query]
