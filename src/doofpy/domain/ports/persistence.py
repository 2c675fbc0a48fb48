"""Ports for reading and writing catalog data."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from doofpy.domain.model import (
        AdministrativeArea,
        CatalogEntity,
        EntityCategory,
        LedgerAction,
        LedgerEntry,
    )


@runtime_checkable
class CatalogRepository(Protocol):
    """Persistence contract for catalog entities.

    The core never creates or deletes entities; it lists, reads and updates fields.
    """

    def list_by_category(self, category: EntityCategory) -> Sequence[CatalogEntity]: ...

    def get(self, category: EntityCategory, entity_id: int) -> CatalogEntity | None: ...

    def write(self, entity: CatalogEntity, updates: Mapping[str, Any]) -> None: ...


@runtime_checkable
class AreaRepository(Protocol):
    """Read access to administrative areas."""

    def list_all(self) -> Sequence[AdministrativeArea]: ...

    def add(self, area: AdministrativeArea) -> None: ...


@runtime_checkable
class ChangeLedgerRepository(Protocol):
    """Append-only ledger of change decisions."""

    def append(self, entry: LedgerEntry) -> None: ...

    def latest_action(self, change_id: str) -> LedgerAction | None: ...

    def entries_for(self, change_id: str) -> Sequence[LedgerEntry]: ...
