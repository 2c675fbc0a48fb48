"""Alembic environment for the catalog schema.

``upgrade_head(engine=...)`` hands its connection over through
``config.attributes["connection"]``; otherwise a throwaway engine is built from
``sqlalchemy.url`` or ``DATABASE_URI``.
"""

from __future__ import annotations

from logging.config import fileConfig
from typing import TYPE_CHECKING, Any

from alembic import context
from sqlalchemy import create_engine, pool

from doofpy.adapters.sqlalchemy.mappings import mapper_registry, start_mappers
from doofpy.config import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

start_mappers()

# batch mode: SQLite cannot ALTER most column properties in place
CONFIGURE_OPTIONS: dict[str, Any] = {
    "target_metadata": mapper_registry.metadata,
    "render_as_batch": True,
    "compare_type": True,
}


def _database_url() -> str:
    return config.get_main_option("sqlalchemy.url") or get_database_config().uri


def _migrate(connection: Connection) -> None:
    context.configure(connection=connection, **CONFIGURE_OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_offline() -> None:
    context.configure(url=_database_url(), literal_binds=True, **CONFIGURE_OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    handed_over = config.attributes.get("connection")
    if handed_over is not None:
        _migrate(handed_over)
        return

    engine = create_engine(_database_url(), poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            _migrate(connection)
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
