from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.pool import StaticPool

from doofpy.adapters.sqlalchemy import start_mappers
from doofpy.adapters.sqlalchemy.migrations import upgrade_head
from doofpy.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyCatalogUnitOfWork,
    shutdown,
    startup,
)
from tests.support.catalog import NYC_AREAS, FakeCatalogStore

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    # one shared connection so every session sees the same in-memory database
    engine = create_engine(
        "sqlite+pysqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        future=True,
    )
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyCatalogUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyCatalogUnitOfWork:
        return SqlAlchemyCatalogUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def seeded_unit_of_work(
    sqlite_unit_of_work: Callable[[], SqlAlchemyCatalogUnitOfWork],
) -> Callable[[], SqlAlchemyCatalogUnitOfWork]:
    with sqlite_unit_of_work() as uow:
        for area in NYC_AREAS:
            uow.repositories.areas.add(area)
        uow.commit()
    return sqlite_unit_of_work


@pytest.fixture
def fake_store() -> FakeCatalogStore:
    return FakeCatalogStore()
