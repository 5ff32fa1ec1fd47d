"""Taxonomy term routes for the VoxArena API.

Terms are filed under a category given by key or full name. ``/v1/taxonomy``
is the flat listing used by persona builders; ``/v1/taxonomy/terms`` is
the paginated, per-category management surface.
"""

from typing import Any

from fastapi import APIRouter, Body, Query, Request

from voxarena.api.errors import to_http_error
from voxarena.api.routes.debates import OkResponse
from voxarena.models.taxonomy import TaxonomyTerm, TermPage
from voxarena.services.taxonomy import TaxonomyService, TaxonomyServiceError

router = APIRouter(prefix="/v1", tags=["Taxonomy"])


def _get_service(request: Request) -> TaxonomyService:
    """TaxonomyService bound to the request connection, if any."""
    return TaxonomyService(db_conn=getattr(request.state, "db_conn", None))


@router.get("/taxonomy", response_model=list[TaxonomyTerm], response_model_by_alias=True)
def list_taxonomy(request: Request, category: str | None = None) -> list[TaxonomyTerm]:
    """All terms sorted by category then term, optionally for one category value."""
    return _get_service(request).list_terms(category)


@router.get("/taxonomy/categories", response_model=list[str])
def list_term_categories(request: Request) -> list[str]:
    """Distinct category values used by terms."""
    return _get_service(request).distinct_categories()


@router.get("/taxonomy/terms", response_model=TermPage, response_model_by_alias=True)
def page_terms(
    request: Request,
    category: str | None = None,
    page: str | None = None,
    page_size: str | None = Query(None, alias="pageSize"),
) -> TermPage:
    """Page the terms of one category.

    ``page`` and ``pageSize`` are clamped rather than rejected.
    """
    try:
        return _get_service(request).page_terms(category, page, page_size)
    except TaxonomyServiceError as e:
        raise to_http_error(e) from e


@router.post(
    "/taxonomy/terms", response_model=TaxonomyTerm, status_code=201, response_model_by_alias=True
)
def create_term(request: Request, payload: Any = Body(None)) -> TaxonomyTerm:
    """Create a term; the category is stored as its resolved key."""
    try:
        return _get_service(request).create_term(payload)
    except TaxonomyServiceError as e:
        raise to_http_error(e) from e


@router.get("/taxonomy/terms/{term_id}", response_model=TaxonomyTerm, response_model_by_alias=True)
def get_term(term_id: str, request: Request) -> TaxonomyTerm:
    """Get a term by id."""
    try:
        return _get_service(request).get_term(term_id)
    except TaxonomyServiceError as e:
        raise to_http_error(e) from e


@router.put("/taxonomy/terms/{term_id}", response_model=TaxonomyTerm, response_model_by_alias=True)
def update_term(term_id: str, request: Request, payload: Any = Body(None)) -> TaxonomyTerm:
    """Update a term; renaming re-slugs it."""
    try:
        return _get_service(request).update_term(term_id, payload)
    except TaxonomyServiceError as e:
        raise to_http_error(e) from e


@router.delete("/taxonomy/terms/{term_id}", response_model=OkResponse)
def delete_term(term_id: str, request: Request) -> OkResponse:
    """Delete a term; persona links to it cascade."""
    try:
        _get_service(request).delete_term(term_id)
    except TaxonomyServiceError as e:
        raise to_http_error(e) from e
    return OkResponse()
