"""Persona routes for the VoxArena API.

Provides CRUD on /v1/personas. After a successful create or update, a
persona without an avatar is handed to the avatar enricher as a background
task; enrichment never affects the response.
"""

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Body, Request

from voxarena.api.errors import to_http_error
from voxarena.api.routes.debates import OkResponse
from voxarena.models.persona import Persona
from voxarena.services.personas import PersonaService, PersonaServiceError

router = APIRouter(prefix="/v1", tags=["Personas"])


def _get_service(request: Request) -> PersonaService:
    """PersonaService bound to the request connection, if any."""
    return PersonaService(db_conn=getattr(request.state, "db_conn", None))


def _schedule_avatar(request: Request, background_tasks: BackgroundTasks, persona: Persona) -> None:
    enricher = getattr(request.app.state, "avatar_enricher", None)
    if enricher is not None and PersonaService.needs_avatar(persona):
        background_tasks.add_task(enricher.enrich, persona.id)


@router.get("/personas", response_model=list[Persona], response_model_by_alias=True)
def list_personas(request: Request) -> list[Persona]:
    """List personas, newest first, with their taxonomy links."""
    return _get_service(request).list()


@router.post("/personas", response_model=Persona, status_code=201, response_model_by_alias=True)
def create_persona(
    request: Request,
    background_tasks: BackgroundTasks,
    payload: Any = Body(None),
) -> Persona:
    """Create a persona and link its taxonomy terms."""
    try:
        persona = _get_service(request).create(payload)
    except PersonaServiceError as e:
        raise to_http_error(e) from e
    _schedule_avatar(request, background_tasks, persona)
    return persona


@router.get("/personas/{persona_id}", response_model=Persona, response_model_by_alias=True)
def get_persona(persona_id: str, request: Request) -> Persona:
    """Get a persona by id."""
    try:
        return _get_service(request).get(persona_id)
    except PersonaServiceError as e:
        raise to_http_error(e) from e


@router.put("/personas/{persona_id}", response_model=Persona, response_model_by_alias=True)
def update_persona(
    persona_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    payload: Any = Body(None),
) -> Persona:
    """Update persona scalars and, when helper keys are sent, its taxonomy links."""
    try:
        persona = _get_service(request).update(persona_id, payload)
    except PersonaServiceError as e:
        raise to_http_error(e) from e
    _schedule_avatar(request, background_tasks, persona)
    return persona


@router.delete("/personas/{persona_id}", response_model=OkResponse)
def delete_persona(persona_id: str, request: Request) -> OkResponse:
    """Delete a persona that no debate roster references."""
    try:
        _get_service(request).delete(persona_id)
    except PersonaServiceError as e:
        raise to_http_error(e) from e
    return OkResponse()
