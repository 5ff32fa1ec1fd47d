"""Programmatic alembic migrations for VoxArena.

Runs the bundled migration scripts without the alembic CLI, against the
admin engine (VOXARENA_DATABASE_ADMIN_URL) unless an engine is supplied.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory

from voxarena.persistence.db import get_admin_engine

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = os.path.join(os.path.dirname(__file__), "migrations")


def get_alembic_config() -> Config:
    """Create an alembic Config pointing at the bundled migrations."""
    config = Config()
    config.set_main_option("script_location", MIGRATIONS_DIR)
    return config


def get_current_revision(engine: Engine) -> str | None:
    """Return the revision recorded in the database, or None."""
    with engine.connect() as conn:
        ctx = MigrationContext.configure(conn)
        return ctx.get_current_revision()


def get_head_revision() -> str | None:
    """Return the newest revision among the migration scripts."""
    script = ScriptDirectory.from_config(get_alembic_config())
    return script.get_current_head()


def run_upgrade(engine: Engine | None = None, revision: str = "head") -> None:
    """Upgrade the schema to ``revision``.

    Args:
        engine: Engine to migrate. Defaults to the admin engine.
        revision: Target revision (default: "head").
    """
    if engine is None:
        engine = get_admin_engine()

    config = get_alembic_config()
    with engine.begin() as conn:
        config.attributes["connection"] = conn
        command.upgrade(config, revision)

    logger.info("Migrations upgraded to %s", revision)


def run_downgrade(engine: Engine | None = None, revision: str = "base") -> None:
    """Downgrade the schema to ``revision``.

    Args:
        engine: Engine to migrate. Defaults to the admin engine.
        revision: Target revision (default: "base").
    """
    if engine is None:
        engine = get_admin_engine()

    config = get_alembic_config()
    with engine.begin() as conn:
        config.attributes["connection"] = conn
        command.downgrade(config, revision)

    logger.info("Migrations downgraded to %s", revision)
