"""SQLAlchemy adapter package for doofpy."""

from __future__ import annotations

from .mappings import mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyAreaRepository,
    SqlAlchemyCatalogRepository,
    SqlAlchemyChangeLedgerRepository,
)
from .unit_of_work import SqlAlchemyCatalogUnitOfWork, StartupError, shutdown, startup

__all__ = [
    "SqlAlchemyAreaRepository",
    "SqlAlchemyCatalogRepository",
    "SqlAlchemyCatalogUnitOfWork",
    "SqlAlchemyChangeLedgerRepository",
    "StartupError",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
