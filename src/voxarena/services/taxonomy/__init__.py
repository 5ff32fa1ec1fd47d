"""Taxonomy service module for VoxArena."""

from voxarena.services.taxonomy.service import (
    TaxonomyConflictError,
    TaxonomyNotFoundError,
    TaxonomyService,
    TaxonomyServiceError,
    TaxonomyValidationError,
    category_key_from_name,
    slugify,
)

__all__ = [
    "TaxonomyConflictError",
    "TaxonomyNotFoundError",
    "TaxonomyService",
    "TaxonomyServiceError",
    "TaxonomyValidationError",
    "category_key_from_name",
    "slugify",
]
