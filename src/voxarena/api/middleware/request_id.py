"""Request ID middleware for the VoxArena API.

Ensures every request has a request ID for log correlation and error
envelopes.
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from voxarena.api.error_model import REQUEST_ID_HEADER


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Attach a request ID to every request.

    Behavior:
    - If the request has a non-blank X-Request-Id header, use it.
    - Else generate a uuid4.
    - Store it on request.state.request_id and echo it in the response.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Process the request and attach request ID."""
        incoming_request_id = request.headers.get(REQUEST_ID_HEADER)

        if incoming_request_id and incoming_request_id.strip():
            request_id = incoming_request_id.strip()
        else:
            request_id = str(uuid.uuid4())

        request.state.request_id = request_id

        response: Response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id

        return response
