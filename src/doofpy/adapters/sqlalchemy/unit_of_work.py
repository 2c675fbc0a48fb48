"""Engine lifecycle and the SQLAlchemy catalog unit of work."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any, Literal

from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from doofpy.adapters.sqlalchemy.mappings import start_mappers
from doofpy.adapters.sqlalchemy.migrations import upgrade_head
from doofpy.adapters.sqlalchemy.repositories import (
    SqlAlchemyAreaRepository,
    SqlAlchemyCatalogRepository,
    SqlAlchemyChangeLedgerRepository,
)
from doofpy.config.storage import get_database_config
from doofpy.domain.errors import PersistenceError
from doofpy.domain.ports.unit_of_work import CatalogRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = getLogger(__name__)

SQLITE_BUSY_TIMEOUT_MS = 5000

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


class StartupError(RuntimeError):
    """Raised when the SQLAlchemy adapter is used before ``startup()`` or reconfigured."""


def create_catalog_engine(database_uri: str | None = None) -> Engine:
    """Build an engine for ``database_uri`` (default: ``DATABASE_URI`` or the data dir).

    SQLite connections wait up to ``SQLITE_BUSY_TIMEOUT_MS`` for a write lock.
    """

    database = get_database_config()
    uri = database_uri or database.uri
    connect_args: dict[str, Any] = {}
    if uri.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(uri, echo=database.echo, connect_args=connect_args)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _tune_sqlite_connection)
    return engine


def _tune_sqlite_connection(dbapi_connection: Any, _connection_record: object) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute(f"PRAGMA busy_timeout = {SQLITE_BUSY_TIMEOUT_MS}")
    finally:
        cursor.close()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Map the domain classes, migrate the schema and remember the engine."""

    global _engine, _session_factory  # noqa: PLW0603

    if _engine is not None and not force:
        raise StartupError("SQLAlchemy adapter already started; pass force=True to reconfigure")
    if _engine is not None and _engine is not engine:
        _engine.dispose()

    resolved = engine or create_catalog_engine(database_uri)
    start_mappers()
    upgrade_head(engine=resolved)
    _engine = resolved
    _session_factory = sessionmaker(bind=resolved, expire_on_commit=False)
    log.info("Catalog database ready at %s", resolved.url.render_as_string(hide_password=True))


def is_started() -> bool:
    return _engine is not None


def shutdown() -> None:
    """Dispose the engine and forget it; later units of work fail until the next startup."""

    global _engine, _session_factory  # noqa: PLW0603

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


class SqlAlchemyCatalogUnitOfWork:
    """One session, and therefore one transaction, over catalog, areas and ledger.

    Leaving the block without ``commit()`` rolls everything back.
    """

    def __init__(self) -> None:
        if _session_factory is None:
            raise StartupError(
                "SQLAlchemy adapter not started; call "
                "doofpy.adapters.sqlalchemy.unit_of_work.startup() first"
            )
        self._session_factory = _session_factory
        self._session: Session | None = None
        self._repositories: CatalogRepositories | None = None

    def __enter__(self) -> SqlAlchemyCatalogUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work is already in use")
        self._session = self._session_factory()
        self._repositories = CatalogRepositories(
            catalog=SqlAlchemyCatalogRepository(self._session),
            areas=SqlAlchemyAreaRepository(self._session),
            ledger=SqlAlchemyChangeLedgerRepository(self._session),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        try:
            session.rollback()
        finally:
            session.close()
            self._session = None
            self._repositories = None
        return False

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work used outside of its 'with' block")
        return self._session

    @property
    def repositories(self) -> CatalogRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work used outside of its 'with' block")
        return self._repositories

    def commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise PersistenceError(f"Commit failed: {exc}") from exc

    def rollback(self) -> None:
        self.session.rollback()


if TYPE_CHECKING:
    from doofpy.domain.ports.unit_of_work import CatalogUnitOfWork

    _uow_check: CatalogUnitOfWork = SqlAlchemyCatalogUnitOfWork()
