"""VoxArena Taxonomy Models.

Categories group terms. A term's ``category`` holds the category key
(canonical) or, for legacy rows, the category's full name.
"""

from __future__ import annotations

from voxarena.models.debate import CamelModel


class TaxonomyTerm(CamelModel):
    """A single taxonomy term."""

    id: str
    term: str
    slug: str
    description: str = ""
    is_active: bool = True
    category: str
    category_id: str | None = None
    created_at: str


class TaxonomyCategory(CamelModel):
    """A taxonomy category with optional usage count."""

    id: str
    key: str
    full_name: str
    description: str | None = None
    created_at: str
    term_usage: int | None = None


class TermPage(CamelModel):
    """Paginated taxonomy terms."""

    items: list[TaxonomyTerm]
    total: int
    page: int
    page_size: int


class CategoryPage(CamelModel):
    """Paginated taxonomy categories."""

    items: list[TaxonomyCategory]
    total: int
    page: int
    page_size: int
