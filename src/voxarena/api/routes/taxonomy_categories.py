"""Taxonomy category routes for the VoxArena API."""

from typing import Any

from fastapi import APIRouter, Body, Query, Request

from voxarena.api.errors import to_http_error
from voxarena.api.routes.debates import OkResponse
from voxarena.models.taxonomy import CategoryPage, TaxonomyCategory
from voxarena.services.taxonomy import TaxonomyService, TaxonomyServiceError

router = APIRouter(prefix="/v1", tags=["Taxonomy Categories"])


def _get_service(request: Request) -> TaxonomyService:
    return TaxonomyService(db_conn=getattr(request.state, "db_conn", None))


@router.get("/taxonomycategories", response_model=CategoryPage, response_model_by_alias=True)
def page_categories(
    request: Request,
    page: str | None = None,
    page_size: str | None = Query(None, alias="pageSize"),
) -> CategoryPage:
    """Page categories sorted by full name, each with its term usage count."""
    return _get_service(request).page_categories(page, page_size)


@router.post(
    "/taxonomycategories",
    response_model=TaxonomyCategory,
    status_code=201,
    response_model_by_alias=True,
)
def create_category(request: Request, payload: Any = Body(None)) -> TaxonomyCategory:
    """Create a category."""
    try:
        return _get_service(request).create_category(payload)
    except TaxonomyServiceError as e:
        raise to_http_error(e) from e


@router.get(
    "/taxonomycategories/{category_id}",
    response_model=TaxonomyCategory,
    response_model_by_alias=True,
)
def get_category(category_id: str, request: Request) -> TaxonomyCategory:
    """Get a category by id."""
    try:
        return _get_service(request).get_category(category_id)
    except TaxonomyServiceError as e:
        raise to_http_error(e) from e


@router.put(
    "/taxonomycategories/{category_id}",
    response_model=TaxonomyCategory,
    response_model_by_alias=True,
)
def update_category(
    category_id: str, request: Request, payload: Any = Body(None)
) -> TaxonomyCategory:
    """Update a category's full name, description and, optionally, key."""
    try:
        return _get_service(request).update_category(category_id, payload)
    except TaxonomyServiceError as e:
        raise to_http_error(e) from e


@router.delete("/taxonomycategories/{category_id}", response_model=OkResponse)
def delete_category(category_id: str, request: Request) -> OkResponse:
    """Delete a category together with its terms."""
    try:
        _get_service(request).delete_category(category_id)
    except TaxonomyServiceError as e:
        raise to_http_error(e) from e
    return OkResponse()
