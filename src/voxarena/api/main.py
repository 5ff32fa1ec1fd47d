"""VoxArena FastAPI application factory.

This module provides the create_app() factory for bootstrapping the API.
"""

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

from voxarena import __version__
from voxarena.api.errors import (
    VoxArenaHttpError,
    generic_exception_handler,
    http_exception_handler,
    request_validation_error_handler,
    voxarena_http_error_handler,
)
from voxarena.api.middleware.db_tx import DBTransactionMiddleware
from voxarena.api.middleware.request_id import RequestIdMiddleware
from voxarena.api.routes.debates import router as debates_router
from voxarena.api.routes.formats import router as formats_router
from voxarena.api.routes.health import router as health_router
from voxarena.api.routes.personas import router as personas_router
from voxarena.api.routes.taxonomy import router as taxonomy_router
from voxarena.api.routes.taxonomy_categories import router as taxonomy_categories_router
from voxarena.avatar.enricher import AvatarEnricher
from voxarena.observability.tracing import configure_tracing, instrument_fastapi, instrument_httpx


def create_app(avatar_enricher: AvatarEnricher | None = None) -> FastAPI:
    """Create and configure the VoxArena FastAPI application.

    Middleware ordering (outermost to innermost):
    1. RequestIdMiddleware - ensures request_id is available everywhere
    2. DBTransactionMiddleware - request-scoped connection when Postgres is
       configured

    Starlette adds middleware in reverse order (last added = outermost).

    Args:
        avatar_enricher: Enricher run after persona writes. If None, a
            default AvatarEnricher is used.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title="VoxArena API",
        description="Debates, personas, and taxonomy for staged multi-persona sessions",
        version=__version__,
    )

    app.state.avatar_enricher = avatar_enricher or AvatarEnricher()

    configure_tracing()
    instrument_httpx()

    app.add_middleware(DBTransactionMiddleware)
    app.add_middleware(RequestIdMiddleware)

    instrument_fastapi(app)

    app.add_exception_handler(VoxArenaHttpError, voxarena_http_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(health_router)
    app.include_router(debates_router)
    app.include_router(personas_router)
    app.include_router(taxonomy_router)
    app.include_router(taxonomy_categories_router)
    app.include_router(formats_router)

    return app
