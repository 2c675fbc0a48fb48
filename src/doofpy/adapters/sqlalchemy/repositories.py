"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import insert, select, update
from sqlalchemy.exc import SQLAlchemyError

from doofpy.adapters.sqlalchemy.mappings import (
    administrative_area_table,
    catalog_entity_table,
    change_ledger_table,
)
from doofpy.domain.errors import PersistenceError
from doofpy.domain.model import (
    AdministrativeArea,
    CatalogEntity,
    EntityCategory,
    LedgerAction,
    LedgerEntry,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.orm import Session


class SqlAlchemyCatalogRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: CatalogEntity) -> None:
        try:
            self.session.add(entity)
            self.session.flush()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not add {entity.category} entity: {exc}") from exc

    def list_by_category(self, category: EntityCategory) -> list[CatalogEntity]:
        stmt = (
            select(CatalogEntity)
            .where(catalog_entity_table.c.category == category)
            .order_by(catalog_entity_table.c.id)
        )
        try:
            return list(self.session.scalars(stmt).all())
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not list {category} entities: {exc}") from exc

    def get(self, category: EntityCategory, entity_id: int) -> CatalogEntity | None:
        try:
            entity = self.session.get(CatalogEntity, entity_id)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not load {category} {entity_id}: {exc}") from exc
        if entity is None or entity.category is not category:
            return None
        return entity

    def write(self, entity: CatalogEntity, updates: Mapping[str, Any]) -> None:
        entity.with_updates(updates)
        try:
            self.session.flush()
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"Could not update {entity.category} {entity.id}: {exc}"
            ) from exc


class SqlAlchemyAreaRepository:
    """Areas are read and written through Core; they are never ORM-mapped."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def list_all(self) -> list[AdministrativeArea]:
        stmt = select(administrative_area_table).order_by(administrative_area_table.c.id)
        try:
            rows = self.session.execute(stmt).all()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not list administrative areas: {exc}") from exc
        return [
            AdministrativeArea(
                id=row.id,
                name=row.name,
                parent_id=row.parent_id,
                postal_codes=tuple(str(code) for code in row.postal_codes or ()),
            )
            for row in rows
        ]

    def add(self, area: AdministrativeArea) -> None:
        """Insert the area, or replace the stored one with the same id."""

        values = {
            "name": area.name,
            "parent_id": area.parent_id,
            "postal_codes": list(area.postal_codes),
        }
        table = administrative_area_table
        try:
            exists = self.session.execute(
                select(table.c.id).where(table.c.id == area.id)
            ).scalar_one_or_none()
            if exists is None:
                self.session.execute(insert(table).values(id=area.id, **values))
            else:
                self.session.execute(update(table).where(table.c.id == area.id).values(**values))
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not store area {area.id}: {exc}") from exc


class SqlAlchemyChangeLedgerRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def append(self, entry: LedgerEntry) -> None:
        try:
            self.session.add(entry)
            self.session.flush()
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"Could not append ledger entry {entry.change_id}: {exc}"
            ) from exc

    def latest_action(self, change_id: str) -> LedgerAction | None:
        stmt = (
            select(change_ledger_table.c.action)
            .where(change_ledger_table.c.change_id == change_id)
            .order_by(change_ledger_table.c.id.desc())
            .limit(1)
        )
        try:
            return self.session.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not read ledger for {change_id}: {exc}") from exc

    def entries_for(self, change_id: str) -> list[LedgerEntry]:
        stmt = (
            select(LedgerEntry)
            .where(change_ledger_table.c.change_id == change_id)
            .order_by(change_ledger_table.c.id)
        )
        try:
            return list(self.session.scalars(stmt).all())
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not read ledger for {change_id}: {exc}") from exc
