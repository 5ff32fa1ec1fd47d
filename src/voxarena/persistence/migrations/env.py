"""Alembic environment for VoxArena migrations.

Loaded by alembic only. Programmatic entry points live in
``voxarena.persistence.migrate``; they pass an open connection through
``config.attributes["connection"]``. Without one, the admin engine
(VOXARENA_DATABASE_ADMIN_URL) is used.
"""

from __future__ import annotations

from alembic import context

from voxarena.persistence.db import get_admin_engine, get_database_url

target_metadata = None


def run_migrations_offline() -> None:
    """Emit migration SQL to stdout without connecting."""
    context.configure(
        url=get_database_url(admin=True),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations on the supplied connection or the admin engine."""
    connection = context.config.attributes.get("connection")
    if connection is not None:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()
        return

    with get_admin_engine().connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
