"""Programmatic access to the catalog schema migrations.

The ``alembic`` command line reads ``[tool.alembic]`` from ``pyproject.toml``;
``upgrade_head`` always uses the scripts shipped beside this module so it also works
from an installed wheel.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Final

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory

from doofpy.config.storage import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

MIGRATIONS_PATH: Final[Path] = Path(__file__).resolve().parent


def alembic_config(database_uri: str | None = None) -> Config:
    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_PATH))
    config.set_main_option("sqlalchemy.url", database_uri or get_database_config().uri)
    return config


def head_revision() -> str | None:
    return ScriptDirectory.from_config(alembic_config()).get_current_head()


def current_revision(engine: Engine) -> str | None:
    with engine.connect() as connection:
        return MigrationContext.configure(connection).get_current_revision()


def upgrade_head(*, engine: Engine | None = None, database_uri: str | None = None) -> None:
    """Bring the schema to the latest revision, on ``engine`` when one is given."""

    config = alembic_config(database_uri)
    if engine is None:
        command.upgrade(config, "head")
        return
    with engine.begin() as connection:
        config.attributes["connection"] = connection
        command.upgrade(config, "head")
