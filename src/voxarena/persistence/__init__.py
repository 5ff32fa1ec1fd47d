"""VoxArena Persistence Module.

Provides PostgreSQL connectivity, connection helpers, repositories with
in-memory fallbacks, and migration support.
"""

from voxarena.persistence.db import (
    DatabaseConfigError,
    begin_admin_conn,
    begin_app_conn,
    get_admin_engine,
    get_app_engine,
    get_database_url,
    is_postgres_configured,
)

__all__ = [
    "DatabaseConfigError",
    "begin_admin_conn",
    "begin_app_conn",
    "get_admin_engine",
    "get_app_engine",
    "get_database_url",
    "is_postgres_configured",
]
