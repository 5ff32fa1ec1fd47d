"""Database transaction middleware for the VoxArena API.

Provides request-scoped database connections with automatic transaction
management. Applies only to /v1 requests when PostgreSQL is configured.

Implemented as a pure ASGI middleware (not BaseHTTPMiddleware) so sync
psycopg2 calls can run via asyncio.to_thread() without blocking the loop.

Behavior:
    - Opens an app connection and begins a transaction at request start
    - Stores the connection on request.state.db_conn
    - Finishes the transaction when the response starts: commit on status
      < 500, rollback otherwise. Background tasks therefore see committed
      data.
    - A failed commit replaces the app's response with a 503
      DATABASE_UNAVAILABLE envelope
    - Rolls back if the app raises before a response starts
    - Always closes the connection
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any

from starlette.requests import Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from voxarena.api.error_model import make_error_response_no_request

logger = logging.getLogger(__name__)


def _open_connection() -> tuple[Any, Any]:
    """Open a DB connection and begin a transaction (sync, runs in thread)."""
    from voxarena.persistence.db import get_app_engine

    engine = get_app_engine()
    conn = engine.connect()
    trans = conn.begin()
    return conn, trans


def _commit(trans: Any) -> None:
    trans.commit()


def _rollback(trans: Any) -> None:
    trans.rollback()


def _close(conn: Any) -> None:
    conn.close()


class DBTransactionMiddleware:
    """Pure ASGI middleware for request-scoped database transactions.

    Ordering: must run inside RequestIdMiddleware so request_id is available
    for logs and the 503 envelope.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI entry point."""
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        if not request.url.path.startswith("/v1"):
            await self.app(scope, receive, send)
            return

        from voxarena.persistence.db import is_postgres_configured

        if not is_postgres_configured():
            await self.app(scope, receive, send)
            return

        request_id: str | None = getattr(request.state, "request_id", None)
        conn = None
        trans = None

        try:
            conn, trans = await asyncio.to_thread(_open_connection)
            request.state.db_conn = conn
            logger.debug("Opened DB connection for request %s", request_id)
        except Exception as e:
            logger.error("Failed to open DB connection: %s", e, extra={"request_id": request_id})
            if conn is not None:
                with contextlib.suppress(Exception):
                    await asyncio.to_thread(_close, conn)
            error_response = make_error_response_no_request(
                code="DATABASE_UNAVAILABLE",
                message="Database connection failed",
                http_status=503,
                request_id=request_id,
            )
            await error_response(scope, receive, send)
            return

        finished = False
        replaced = False

        async def finish(status: int | None) -> bool:
            """Commit or roll back once. Returns False only when a commit failed."""
            nonlocal finished
            if finished:
                return True
            finished = True
            if status is not None and status < 500:
                try:
                    await asyncio.to_thread(_commit, trans)
                    logger.debug("Committed DB transaction for request %s", request_id)
                    return True
                except Exception as e:
                    logger.error(
                        "Failed to commit transaction: %s",
                        e,
                        extra={"request_id": request_id},
                    )
                    with contextlib.suppress(Exception):
                        await asyncio.to_thread(_rollback, trans)
                    return False
            try:
                await asyncio.to_thread(_rollback, trans)
                logger.debug(
                    "Rolled back DB transaction for request %s (status=%s)",
                    request_id,
                    status,
                )
            except Exception as e:
                logger.warning(
                    "Failed to rollback transaction: %s",
                    e,
                    extra={"request_id": request_id},
                )
            return True

        async def send_wrapper(message: Message) -> None:
            nonlocal replaced
            if replaced:
                return
            if message["type"] == "http.response.start":
                committed = await finish(message.get("status", 500))
                if not committed:
                    # The app's response describes writes that never landed.
                    replaced = True
                    error_response = make_error_response_no_request(
                        code="DATABASE_UNAVAILABLE",
                        message="Database commit failed",
                        http_status=503,
                        request_id=request_id,
                    )
                    await error_response(scope, receive, send)
                    return
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
            await finish(None)
        except Exception as e:
            logger.error(
                "Unexpected error in DB transaction middleware: %s",
                e,
                extra={"request_id": request_id},
            )
            await finish(None)
            raise
        finally:
            try:
                await asyncio.to_thread(_close, conn)
                logger.debug("Closed DB connection for request %s", request_id)
            except Exception as e:
                logger.warning(
                    "Failed to close DB connection: %s",
                    e,
                    extra={"request_id": request_id},
                )
            request.state.db_conn = None
