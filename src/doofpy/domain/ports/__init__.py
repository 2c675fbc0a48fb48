"""Domain port definitions for adapters."""

from __future__ import annotations

from .lookup import PlaceLookup, RemoteAreaLookup
from .persistence import AreaRepository, CatalogRepository, ChangeLedgerRepository
from .unit_of_work import (
    CatalogRepositories,
    CatalogUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "AreaRepository",
    "CatalogRepositories",
    "CatalogRepository",
    "CatalogUnitOfWork",
    "ChangeLedgerRepository",
    "PlaceLookup",
    "RemoteAreaLookup",
    "RepositoryCollection",
    "UnitOfWork",
]
