"""SQLAlchemy mapping metadata for the catalog domain model."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from functools import cache

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Dialect,
    Enum,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    orm,
)
from sqlalchemy.orm import configure_mappers

from doofpy.domain.model import CatalogEntity, EntityCategory, LedgerAction, LedgerEntry

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Core tables -----------------------------------------------------------------

catalog_entity_table = Table(
    "catalog_entity",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("category", Enum(EntityCategory, native_enum=False, length=32), nullable=False),
    Column("fields", JSON, nullable=False, default=dict),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=True),
    Index("ix_catalog_entity_category", "category"),
)

administrative_area_table = Table(
    "administrative_area",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=False),
    Column("name", String(200), nullable=False),
    Column("parent_id", Integer, nullable=True),
    Column("postal_codes", JSON, nullable=False, default=list),
)

change_ledger_table = Table(
    "change_ledger",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("change_id", String(255), nullable=False),
    Column("category", Enum(EntityCategory, native_enum=False, length=32), nullable=False),
    Column("entity_id", Integer, nullable=False),
    Column("field", String(100), nullable=False),
    Column("action", Enum(LedgerAction, native_enum=False, length=16), nullable=False),
    Column("snapshot", JSON, nullable=False, default=dict),
    Column("error", Text, nullable=True),
    Column("recorded_at", UTCDateTime(), nullable=False),
    Index("ix_change_ledger_change_id", "change_id"),
    Index("ix_change_ledger_entity", "category", "entity_id"),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model.

    Areas are immutable value objects and stay unmapped; repositories read them
    through Core selects.
    """

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(CatalogEntity, catalog_entity_table)
    mapper_registry.map_imperatively(LedgerEntry, change_ledger_table)

    configure_mappers()
    return mapper_registry
