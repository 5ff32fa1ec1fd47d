"""Debate routes for the VoxArena API.

Provides CRUD on /v1/debates. Request bodies are taken as raw JSON and
parsed by DebateService, so malformed bodies surface as INVALID_REQUEST
with the service's own message.

Supports both Postgres persistence (when configured) and in-memory fallback.
"""

from typing import Any

from fastapi import APIRouter, Body, Request
from pydantic import BaseModel

from voxarena.api.errors import to_http_error
from voxarena.debate.errors import DebateError
from voxarena.models.debate import Debate
from voxarena.services.debates import DebateService

router = APIRouter(prefix="/v1", tags=["Debates"])


class OkResponse(BaseModel):
    """Acknowledgement body for deletes."""

    ok: bool = True


def _get_service(request: Request) -> DebateService:
    """DebateService bound to the request connection, if any."""
    return DebateService(db_conn=getattr(request.state, "db_conn", None))


@router.get("/debates", response_model=list[Debate], response_model_by_alias=True)
def list_debates(request: Request) -> list[Debate]:
    """List debates, newest first, each with its ordered roster."""
    return _get_service(request).list()


@router.post("/debates", response_model=Debate, status_code=201, response_model_by_alias=True)
def create_debate(request: Request, payload: Any = Body(None)) -> Debate:
    """Create a debate.

    Raises:
        VoxArenaHttpError: INVALID_REQUEST for a malformed body,
            COMPOSITION_VIOLATION when a supplied roster fails its format.
    """
    try:
        return _get_service(request).create(payload)
    except DebateError as e:
        raise to_http_error(e) from e


@router.get("/debates/{debate_id}", response_model=Debate, response_model_by_alias=True)
def get_debate(debate_id: str, request: Request) -> Debate:
    """Get a debate by id."""
    try:
        return _get_service(request).get(debate_id)
    except DebateError as e:
        raise to_http_error(e) from e


@router.patch("/debates/{debate_id}", response_model=Debate, response_model_by_alias=True)
def update_debate(debate_id: str, request: Request, payload: Any = Body(None)) -> Debate:
    """Partially update a debate; the roster, when supplied, is replaced whole.

    Raises:
        VoxArenaHttpError: NOT_FOUND, INVALID_REQUEST, COMPOSITION_VIOLATION,
            or ILLEGAL_TRANSITION. Nothing is written when any is raised.
    """
    try:
        return _get_service(request).update(debate_id, payload)
    except DebateError as e:
        raise to_http_error(e) from e


@router.delete("/debates/{debate_id}", response_model=OkResponse)
def delete_debate(debate_id: str, request: Request) -> OkResponse:
    """Delete a debate and its roster."""
    try:
        _get_service(request).delete(debate_id)
    except DebateError as e:
        raise to_http_error(e) from e
    return OkResponse()
