"""TaxonomyService - categories and terms.

A category is addressed by its ``key`` or, for older clients, its full
name; resolution is case-insensitive and prefers the key. Terms store the
resolved category key (canonical) and the category id.
"""

from __future__ import annotations

import logging
import re
import unicodedata
import uuid
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from voxarena.models.taxonomy import CategoryPage, TaxonomyCategory, TaxonomyTerm, TermPage
from voxarena.persistence.repositories.taxonomy import (
    InMemoryTaxonomyRepository,
    TaxonomyRepository,
)

if TYPE_CHECKING:
    from sqlalchemy import Connection

logger = logging.getLogger(__name__)

DEFAULT_TERM_PAGE_SIZE = 20
DEFAULT_CATEGORY_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

_WHITESPACE = re.compile(r"\s+")
_NON_SLUG = re.compile(r"[^a-z0-9-]")
_NON_ALNUM_RUN = re.compile(r"[^a-z0-9]+")


class TaxonomyServiceError(Exception):
    """Base exception for TaxonomyService errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class TaxonomyNotFoundError(TaxonomyServiceError):
    """Raised when a term or category is not found."""

    def __init__(self, resource_id: str) -> None:
        self.resource_id = resource_id
        super().__init__("Not found")


class TaxonomyValidationError(TaxonomyServiceError):
    """Raised when a required field is missing or blank."""

    pass


class TaxonomyConflictError(TaxonomyServiceError):
    """Raised when a term or category would duplicate an existing one."""

    pass


def slugify(term: str) -> str:
    """Lower-case, hyphenate whitespace, and drop anything outside ``[a-z0-9-]``."""
    return _NON_SLUG.sub("", _WHITESPACE.sub("-", str(term).lower().strip()))


def category_key_from_name(full_name: str) -> str:
    """Derive a category key from its full name (accents stripped)."""
    decomposed = unicodedata.normalize("NFKD", full_name.lower())
    ascii_only = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _NON_ALNUM_RUN.sub("-", ascii_only).strip("-")


def clamp_page(page: Any, page_size: Any, default_size: int) -> tuple[int, int]:
    """Coerce paging parameters: page >= 1 and 1 <= page_size <= 100."""
    try:
        page_num = int(page) if page is not None else 1
    except (TypeError, ValueError):
        page_num = 1
    try:
        size = int(page_size) if page_size is not None else default_size
    except (TypeError, ValueError):
        size = default_size
    return max(1, page_num), max(1, min(MAX_PAGE_SIZE, size))


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _optional_text(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


class TaxonomyService:
    """Service layer for taxonomy categories and terms.

    Usage:
        service = TaxonomyService(db_conn=conn)
        term = service.create_term({"term": "Stoicism", "category": "philosophy"})
    """

    def __init__(self, db_conn: Connection | None = None) -> None:
        """Initialize TaxonomyService.

        Args:
            db_conn: SQLAlchemy connection for Postgres. If None, uses in-memory.
        """
        if db_conn is not None:
            self._repo: TaxonomyRepository | InMemoryTaxonomyRepository = TaxonomyRepository(
                db_conn
            )
        else:
            self._repo = InMemoryTaxonomyRepository()

    def resolve_category(self, value: Any) -> dict[str, Any] | None:
        """Resolve a category by key, then by full name, case-insensitively."""
        text_value = _text(value)
        if not text_value:
            return None
        return self._repo.find_category(key=text_value) or self._repo.find_category(
            full_name=text_value
        )

    # Terms

    def list_terms(self, category: str | None = None) -> list[TaxonomyTerm]:
        """All terms, optionally for one stored category value."""
        return [TaxonomyTerm.model_validate(t) for t in self._repo.list_terms(category or None)]

    def distinct_categories(self) -> list[str]:
        """Distinct category values used by terms."""
        return self._repo.distinct_categories()

    def page_terms(self, category: Any, page: Any = None, page_size: Any = None) -> TermPage:
        """Page the terms of a category given by key or full name.

        Unresolvable categories fall back to an exact match on the stored
        category value.

        Raises:
            TaxonomyValidationError: If ``category`` is blank.
        """
        category_param = _text(category)
        if not category_param:
            raise TaxonomyValidationError("Missing category")

        page_num, size = clamp_page(page, page_size, DEFAULT_TERM_PAGE_SIZE)
        resolved = self.resolve_category(category_param)
        if resolved is not None:
            items, total = self._repo.page_terms(
                category_id=resolved["id"],
                category_values=[resolved["key"], resolved["full_name"]],
                offset=(page_num - 1) * size,
                limit=size,
            )
        else:
            items, total = self._repo.page_terms(
                category_id=None,
                category_values=[category_param],
                offset=(page_num - 1) * size,
                limit=size,
            )
        return TermPage(
            items=[TaxonomyTerm.model_validate(t) for t in items],
            total=total,
            page=page_num,
            page_size=size,
        )

    def get_term(self, term_id: str) -> TaxonomyTerm:
        """Get a term by id.

        Raises:
            TaxonomyNotFoundError: If the term does not exist.
        """
        term = self._repo.get_term(term_id)
        if term is None:
            raise TaxonomyNotFoundError(term_id)
        return TaxonomyTerm.model_validate(term)

    def create_term(self, payload: Any) -> TaxonomyTerm:
        """Create a term in a category given by key or full name.

        Raises:
            TaxonomyValidationError: Missing term or category.
            TaxonomyConflictError: The term already exists in the category.
        """
        if not isinstance(payload, Mapping):
            raise TaxonomyValidationError("Invalid JSON body")

        term = _text(payload.get("term"))
        category_input = _text(payload.get("category"))
        if not term:
            raise TaxonomyValidationError("Term is required")
        if not category_input:
            raise TaxonomyValidationError("Category is required")

        resolved = self.resolve_category(category_input)
        category = resolved["key"] if resolved else category_input
        if self._repo.term_exists(category=category, term=term):
            raise TaxonomyConflictError("This term already exists in the selected category.")

        description = payload.get("description")
        is_active = payload.get("isActive")
        created = self._repo.create_term(
            term_id=str(uuid.uuid4()),
            term=term,
            slug=slugify(term),
            description=description if isinstance(description, str) else "",
            is_active=is_active if isinstance(is_active, bool) else True,
            category=category,
            category_id=resolved["id"] if resolved else None,
        )
        logger.info("Created taxonomy term %s in %s", created["id"], category)
        return TaxonomyTerm.model_validate(created)

    def update_term(self, term_id: str, payload: Any) -> TaxonomyTerm:
        """Update a term. A new term text re-slugs; a category is stored as its key.

        Raises:
            TaxonomyValidationError: Non-object body or blank term.
            TaxonomyNotFoundError: If the term does not exist.
            TaxonomyConflictError: The change would duplicate another term.
        """
        if not isinstance(payload, Mapping):
            raise TaxonomyValidationError("Invalid JSON body")
        existing = self._repo.get_term(term_id)
        if existing is None:
            raise TaxonomyNotFoundError(term_id)

        fields: dict[str, Any] = {}
        if isinstance(payload.get("term"), str):
            term = payload["term"].strip()
            if not term:
                raise TaxonomyValidationError("Term cannot be empty")
            fields["term"] = term
            fields["slug"] = slugify(term)
        if isinstance(payload.get("description"), str):
            fields["description"] = payload["description"]
        if isinstance(payload.get("isActive"), bool):
            fields["is_active"] = payload["isActive"]
        category_input = _text(payload.get("category"))
        if category_input:
            resolved = self.resolve_category(category_input)
            fields["category"] = resolved["key"] if resolved else category_input
            fields["category_id"] = resolved["id"] if resolved else None

        if self._repo.term_exists(
            category=fields.get("category", existing["category"]),
            term=fields.get("term", existing["term"]),
            exclude_id=term_id,
        ):
            raise TaxonomyConflictError(
                "A term with this name already exists in the selected category."
            )

        updated = self._repo.update_term(term_id, fields)
        if updated is None:
            raise TaxonomyNotFoundError(term_id)
        logger.info("Updated taxonomy term %s (fields=%s)", term_id, sorted(fields))
        return TaxonomyTerm.model_validate(updated)

    def delete_term(self, term_id: str) -> None:
        """Delete a term.

        Raises:
            TaxonomyNotFoundError: If the term does not exist.
        """
        if not self._repo.delete_term(term_id):
            raise TaxonomyNotFoundError(term_id)
        logger.info("Deleted taxonomy term %s", term_id)

    # Categories

    def page_categories(self, page: Any = None, page_size: Any = None) -> CategoryPage:
        """Page categories by full name, each with its term usage."""
        page_num, size = clamp_page(page, page_size, DEFAULT_CATEGORY_PAGE_SIZE)
        items, total = self._repo.page_categories((page_num - 1) * size, size)
        return CategoryPage(
            items=[TaxonomyCategory.model_validate(c) for c in items],
            total=total,
            page=page_num,
            page_size=size,
        )

    def get_category(self, category_id: str) -> TaxonomyCategory:
        """Get a category by id.

        Raises:
            TaxonomyNotFoundError: If the category does not exist.
        """
        category = self._repo.get_category(category_id)
        if category is None:
            raise TaxonomyNotFoundError(category_id)
        return TaxonomyCategory.model_validate(category)

    def create_category(self, payload: Any) -> TaxonomyCategory:
        """Create a category; the key defaults to one derived from the full name.

        Raises:
            TaxonomyValidationError: Missing full name.
            TaxonomyConflictError: Key or full name already used.
        """
        if not isinstance(payload, Mapping):
            raise TaxonomyValidationError("Invalid JSON body")
        full_name = payload.get("fullName")
        if not isinstance(full_name, str) or not full_name.strip():
            raise TaxonomyValidationError("Full name is required")

        key = _text(payload.get("key")) or category_key_from_name(full_name)
        if not key:
            raise TaxonomyValidationError("Key could not be derived from the full name")
        if self._repo.category_conflicts(key=key, full_name=full_name):
            raise TaxonomyConflictError("A category with this key or full name already exists")

        created = self._repo.create_category(
            category_id=str(uuid.uuid4()),
            key=key,
            full_name=full_name,
            description=_optional_text(payload.get("description")),
        )
        logger.info("Created taxonomy category %s (key=%s)", created["id"], key)
        return TaxonomyCategory.model_validate(created)

    def update_category(self, category_id: str, payload: Any) -> TaxonomyCategory:
        """Replace a category's full name and description; optionally its key.

        Raises:
            TaxonomyValidationError: Missing full name.
            TaxonomyNotFoundError: If the category does not exist.
            TaxonomyConflictError: Key or full name already used.
        """
        if not isinstance(payload, Mapping):
            raise TaxonomyValidationError("Invalid JSON body")
        full_name = payload.get("fullName")
        if not isinstance(full_name, str) or not full_name.strip():
            raise TaxonomyValidationError("Full name is required")
        existing = self._repo.get_category(category_id)
        if existing is None:
            raise TaxonomyNotFoundError(category_id)

        fields: dict[str, Any] = {
            "full_name": full_name,
            "description": _optional_text(payload.get("description")),
        }
        key = _text(payload.get("key"))
        if key:
            fields["key"] = key

        if self._repo.category_conflicts(
            key=fields.get("key", existing["key"]),
            full_name=full_name,
            exclude_id=category_id,
        ):
            raise TaxonomyConflictError("A category with this key or full name already exists")

        updated = self._repo.update_category(category_id, fields)
        if updated is None:
            raise TaxonomyNotFoundError(category_id)
        logger.info("Updated taxonomy category %s", category_id)
        return TaxonomyCategory.model_validate(updated)

    def delete_category(self, category_id: str) -> None:
        """Delete a category and every term filed under it.

        Raises:
            TaxonomyNotFoundError: If the category does not exist.
        """
        if not self._repo.delete_category(category_id):
            raise TaxonomyNotFoundError(category_id)
        logger.info("Deleted taxonomy category %s and its terms", category_id)
