"""Taxonomy repository for Postgres persistence.

Categories group terms. A term stores its category as the category key
(canonical) plus ``category_id``; older rows may hold the category's full
name instead, so lookups by category match id, key, or full name.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import text

if TYPE_CHECKING:
    from sqlalchemy import Connection

logger = logging.getLogger(__name__)

TERM_COLUMNS = ("term", "slug", "description", "is_active", "category", "category_id")
CATEGORY_COLUMNS = ("key", "full_name", "description")

_TERM_SELECT = """
    SELECT id, term, slug, description, is_active, category, category_id, created_at
    FROM taxonomy_terms
"""

_CATEGORY_SELECT = """
    SELECT id, key, full_name, description, created_at
    FROM taxonomy_categories
"""


def _iso(value: Any) -> Any:
    if value is not None and hasattr(value, "isoformat"):
        return value.isoformat().replace("+00:00", "Z")
    return value


class TaxonomyRepository:
    """Repository for taxonomy categories and terms."""

    def __init__(self, conn: Connection) -> None:
        """Initialize repository with a transactional connection."""
        self._conn = conn

    # Categories

    def find_category(self, *, key: str | None = None, full_name: str | None = None) -> dict | None:
        """Find a category by key or full name, case-insensitively."""
        if key is not None:
            where, value = "lower(key) = lower(:value)", key
        elif full_name is not None:
            where, value = "lower(full_name) = lower(:value)", full_name
        else:
            return None
        row = self._conn.execute(
            text(f"{_CATEGORY_SELECT} WHERE {where} LIMIT 1"), {"value": value}
        ).fetchone()
        return self._category_to_dict(row) if row is not None else None

    def category_conflicts(
        self, *, key: str | None, full_name: str | None, exclude_id: str | None = None
    ) -> bool:
        """Return True if another category already uses ``key`` or ``full_name``."""
        row = self._conn.execute(
            text(
                """
                SELECT 1 FROM taxonomy_categories
                WHERE (key = :key OR full_name = :full_name)
                  AND (CAST(:exclude_id AS TEXT) IS NULL OR id <> :exclude_id)
                LIMIT 1
                """
            ),
            {"key": key, "full_name": full_name, "exclude_id": exclude_id},
        ).fetchone()
        return row is not None

    def get_category(self, category_id: str) -> dict[str, Any] | None:
        """Get a category by id."""
        row = self._conn.execute(
            text(f"{_CATEGORY_SELECT} WHERE id = :id"), {"id": category_id}
        ).fetchone()
        return self._category_to_dict(row) if row is not None else None

    def page_categories(self, offset: int, limit: int) -> tuple[list[dict[str, Any]], int]:
        """Page categories by full name, each with its term usage count."""
        total = self._conn.execute(text("SELECT COUNT(*) FROM taxonomy_categories")).scalar_one()
        rows = self._conn.execute(
            text(
                """
                SELECT c.id, c.key, c.full_name, c.description, c.created_at,
                       (SELECT COUNT(*) FROM taxonomy_terms t
                        WHERE t.category_id = c.id OR t.category = c.key) AS term_usage
                FROM taxonomy_categories c
                ORDER BY c.full_name ASC
                OFFSET :offset LIMIT :limit
                """
            ),
            {"offset": offset, "limit": limit},
        ).fetchall()
        items = []
        for row in rows:
            item = self._category_to_dict(row)
            item["term_usage"] = int(row.term_usage)
            items.append(item)
        return items, int(total)

    def create_category(
        self, *, category_id: str, key: str, full_name: str, description: str | None
    ) -> dict[str, Any]:
        """Insert a category."""
        now = datetime.now(UTC)
        self._conn.execute(
            text(
                """
                INSERT INTO taxonomy_categories (id, key, full_name, description, created_at)
                VALUES (:id, :key, :full_name, :description, :created_at)
                """
            ),
            {
                "id": category_id,
                "key": key,
                "full_name": full_name,
                "description": description,
                "created_at": now,
            },
        )
        return {
            "id": category_id,
            "key": key,
            "full_name": full_name,
            "description": description,
            "created_at": _iso(now),
        }

    def update_category(self, category_id: str, fields: dict[str, Any]) -> dict[str, Any] | None:
        """Update the supplied category columns."""
        columns = [c for c in CATEGORY_COLUMNS if c in fields]
        if columns:
            self._conn.execute(
                text(
                    f"UPDATE taxonomy_categories SET "
                    f"{', '.join(f'{c} = :{c}' for c in columns)} WHERE id = :id"
                ),
                {"id": category_id, **{c: fields[c] for c in columns}},
            )
        return self.get_category(category_id)

    def delete_category(self, category_id: str) -> bool:
        """Delete a category's terms, then the category."""
        category = self.get_category(category_id)
        if category is None:
            return False
        self._conn.execute(
            text("DELETE FROM taxonomy_terms WHERE category_id = :id OR category = :key"),
            {"id": category_id, "key": category["key"]},
        )
        self._conn.execute(text("DELETE FROM taxonomy_categories WHERE id = :id"), {"id": category_id})
        return True

    # Terms

    def list_terms(self, category: str | None = None) -> list[dict[str, Any]]:
        """List terms ordered by category then term, optionally for one category."""
        if category:
            rows = self._conn.execute(
                text(f"{_TERM_SELECT} WHERE category = :category ORDER BY category, term"),
                {"category": category},
            ).fetchall()
        else:
            rows = self._conn.execute(text(f"{_TERM_SELECT} ORDER BY category, term")).fetchall()
        return [self._term_to_dict(row) for row in rows]

    def distinct_categories(self) -> list[str]:
        """Distinct category values stored on terms, sorted."""
        rows = self._conn.execute(
            text("SELECT DISTINCT category FROM taxonomy_terms ORDER BY category ASC")
        ).fetchall()
        return [row.category for row in rows]

    def page_terms(
        self,
        *,
        category_id: str | None,
        category_values: Iterable[str],
        offset: int,
        limit: int,
    ) -> tuple[list[dict[str, Any]], int]:
        """Page terms matching a category id or any stored category value."""
        params = {
            "category_id": category_id,
            "values": list(category_values),
            "offset": offset,
            "limit": limit,
        }
        where = """
            WHERE (CAST(:category_id AS TEXT) IS NOT NULL AND category_id = :category_id)
               OR category = ANY(:values)
        """
        total = self._conn.execute(
            text(f"SELECT COUNT(*) FROM taxonomy_terms {where}"), params
        ).scalar_one()
        rows = self._conn.execute(
            text(f"{_TERM_SELECT} {where} ORDER BY term ASC OFFSET :offset LIMIT :limit"),
            params,
        ).fetchall()
        return [self._term_to_dict(row) for row in rows], int(total)

    def get_term(self, term_id: str) -> dict[str, Any] | None:
        """Get a term by id."""
        row = self._conn.execute(text(f"{_TERM_SELECT} WHERE id = :id"), {"id": term_id}).fetchone()
        return self._term_to_dict(row) if row is not None else None

    def get_terms(self, term_ids: Iterable[str]) -> list[dict[str, Any]]:
        """Get the existing terms among ``term_ids``, in the given order."""
        ids = list(term_ids)
        if not ids:
            return []
        rows = self._conn.execute(
            text(f"{_TERM_SELECT} WHERE id = ANY(:ids)"), {"ids": ids}
        ).fetchall()
        by_id = {str(row.id): self._term_to_dict(row) for row in rows}
        return [by_id[i] for i in ids if i in by_id]

    def term_exists(self, *, category: str, term: str, exclude_id: str | None = None) -> bool:
        """Return True if ``term`` already exists in ``category``."""
        row = self._conn.execute(
            text(
                """
                SELECT 1 FROM taxonomy_terms
                WHERE category = :category AND term = :term
                  AND (CAST(:exclude_id AS TEXT) IS NULL OR id <> :exclude_id)
                LIMIT 1
                """
            ),
            {"category": category, "term": term, "exclude_id": exclude_id},
        ).fetchone()
        return row is not None

    def find_term(self, *, category: str, term: str) -> dict[str, Any] | None:
        """Get a term by its (category, term) pair."""
        row = self._conn.execute(
            text(f"{_TERM_SELECT} WHERE category = :category AND term = :term"),
            {"category": category, "term": term},
        ).fetchone()
        return self._term_to_dict(row) if row is not None else None

    def reclassify_terms(
        self, *, from_category: str, to_category: str, terms: Iterable[str]
    ) -> int:
        """Move named terms to another category.

        Terms the target category already holds are left where they are.

        Returns:
            Number of rows moved.
        """
        result = self._conn.execute(
            text(
                """
                UPDATE taxonomy_terms SET category = :to_category
                WHERE category = :from_category
                  AND term = ANY(:terms)
                  AND term NOT IN (
                      SELECT term FROM taxonomy_terms WHERE category = :to_category
                  )
                """
            ),
            {"from_category": from_category, "to_category": to_category, "terms": list(terms)},
        )
        return result.rowcount

    def create_term(
        self,
        *,
        term_id: str,
        term: str,
        slug: str,
        description: str,
        is_active: bool,
        category: str,
        category_id: str | None,
    ) -> dict[str, Any]:
        """Insert a term."""
        now = datetime.now(UTC)
        self._conn.execute(
            text(
                """
                INSERT INTO taxonomy_terms (
                    id, term, slug, description, is_active, category, category_id, created_at
                ) VALUES (
                    :id, :term, :slug, :description, :is_active, :category, :category_id,
                    :created_at
                )
                """
            ),
            {
                "id": term_id,
                "term": term,
                "slug": slug,
                "description": description,
                "is_active": is_active,
                "category": category,
                "category_id": category_id,
                "created_at": now,
            },
        )
        return {
            "id": term_id,
            "term": term,
            "slug": slug,
            "description": description,
            "is_active": is_active,
            "category": category,
            "category_id": category_id,
            "created_at": _iso(now),
        }

    def update_term(self, term_id: str, fields: dict[str, Any]) -> dict[str, Any] | None:
        """Update the supplied term columns."""
        columns = [c for c in TERM_COLUMNS if c in fields]
        if columns:
            self._conn.execute(
                text(
                    f"UPDATE taxonomy_terms SET "
                    f"{', '.join(f'{c} = :{c}' for c in columns)} WHERE id = :id"
                ),
                {"id": term_id, **{c: fields[c] for c in columns}},
            )
        return self.get_term(term_id)

    def delete_term(self, term_id: str) -> bool:
        """Delete a term by id."""
        result = self._conn.execute(text("DELETE FROM taxonomy_terms WHERE id = :id"), {"id": term_id})
        return result.rowcount > 0

    def _term_to_dict(self, row: Any) -> dict[str, Any]:
        return {
            "id": str(row.id),
            "term": row.term,
            "slug": row.slug,
            "description": row.description or "",
            "is_active": bool(row.is_active),
            "category": row.category,
            "category_id": str(row.category_id) if row.category_id is not None else None,
            "created_at": _iso(row.created_at),
        }

    def _category_to_dict(self, row: Any) -> dict[str, Any]:
        return {
            "id": str(row.id),
            "key": row.key,
            "full_name": row.full_name,
            "description": row.description,
            "created_at": _iso(row.created_at),
        }


_categories_store: dict[str, dict[str, Any]] = {}
_terms_store: dict[str, dict[str, Any]] = {}


def _now() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def _public(record: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in record.items() if not k.startswith("_")}


class InMemoryTaxonomyRepository:
    """In-memory fallback repository for when Postgres is not configured."""

    def find_category(self, *, key: str | None = None, full_name: str | None = None) -> dict | None:
        """Find a category by key or full name, case-insensitively."""
        field, value = ("key", key) if key is not None else ("full_name", full_name)
        if value is None:
            return None
        for category in _categories_store.values():
            if category[field].lower() == value.lower():
                return _public(category)
        return None

    def category_conflicts(
        self, *, key: str | None, full_name: str | None, exclude_id: str | None = None
    ) -> bool:
        """Return True if another category already uses ``key`` or ``full_name``."""
        return any(
            c["id"] != exclude_id and (c["key"] == key or c["full_name"] == full_name)
            for c in _categories_store.values()
        )

    def get_category(self, category_id: str) -> dict[str, Any] | None:
        """Get a category by id from memory."""
        category = _categories_store.get(category_id)
        return _public(category) if category is not None else None

    def page_categories(self, offset: int, limit: int) -> tuple[list[dict[str, Any]], int]:
        """Page categories by full name, each with its term usage count."""
        ordered = sorted(_categories_store.values(), key=lambda c: c["full_name"])
        items = []
        for category in ordered[offset : offset + limit]:
            item = _public(category)
            item["term_usage"] = sum(
                1
                for t in _terms_store.values()
                if t["category_id"] == category["id"] or t["category"] == category["key"]
            )
            items.append(item)
        return items, len(ordered)

    def create_category(
        self, *, category_id: str, key: str, full_name: str, description: str | None
    ) -> dict[str, Any]:
        """Create a category in memory."""
        _categories_store[category_id] = {
            "id": category_id,
            "key": key,
            "full_name": full_name,
            "description": description,
            "created_at": _now(),
        }
        return _public(_categories_store[category_id])

    def update_category(self, category_id: str, fields: dict[str, Any]) -> dict[str, Any] | None:
        """Update a category in memory."""
        category = _categories_store.get(category_id)
        if category is None:
            return None
        category.update({c: fields[c] for c in CATEGORY_COLUMNS if c in fields})
        return _public(category)

    def delete_category(self, category_id: str) -> bool:
        """Delete a category's terms, then the category, from memory."""
        category = _categories_store.get(category_id)
        if category is None:
            return False
        for term_id in [
            t["id"]
            for t in _terms_store.values()
            if t["category_id"] == category_id or t["category"] == category["key"]
        ]:
            del _terms_store[term_id]
        del _categories_store[category_id]
        return True

    def list_terms(self, category: str | None = None) -> list[dict[str, Any]]:
        """List terms ordered by category then term."""
        terms = [t for t in _terms_store.values() if not category or t["category"] == category]
        terms.sort(key=lambda t: (t["category"], t["term"]))
        return [_public(t) for t in terms]

    def distinct_categories(self) -> list[str]:
        """Distinct category values stored on terms, sorted."""
        return sorted({t["category"] for t in _terms_store.values()})

    def page_terms(
        self,
        *,
        category_id: str | None,
        category_values: Iterable[str],
        offset: int,
        limit: int,
    ) -> tuple[list[dict[str, Any]], int]:
        """Page terms matching a category id or any stored category value."""
        values = set(category_values)
        matched = [
            t
            for t in _terms_store.values()
            if (category_id is not None and t["category_id"] == category_id)
            or t["category"] in values
        ]
        matched.sort(key=lambda t: t["term"])
        return [_public(t) for t in matched[offset : offset + limit]], len(matched)

    def get_term(self, term_id: str) -> dict[str, Any] | None:
        """Get a term by id from memory."""
        term = _terms_store.get(term_id)
        return _public(term) if term is not None else None

    def get_terms(self, term_ids: Iterable[str]) -> list[dict[str, Any]]:
        """Get the existing terms among ``term_ids``, in the given order."""
        return [_public(_terms_store[i]) for i in term_ids if i in _terms_store]

    def term_exists(self, *, category: str, term: str, exclude_id: str | None = None) -> bool:
        """Return True if ``term`` already exists in ``category``."""
        return any(
            t["id"] != exclude_id and t["category"] == category and t["term"] == term
            for t in _terms_store.values()
        )

    def find_term(self, *, category: str, term: str) -> dict[str, Any] | None:
        """Get a term by its (category, term) pair from memory."""
        for t in _terms_store.values():
            if t["category"] == category and t["term"] == term:
                return _public(t)
        return None

    def reclassify_terms(
        self, *, from_category: str, to_category: str, terms: Iterable[str]
    ) -> int:
        """Move named terms to another category in memory."""
        names = set(terms)
        taken = {t["term"] for t in _terms_store.values() if t["category"] == to_category}
        moved = 0
        for t in _terms_store.values():
            if t["category"] == from_category and t["term"] in names and t["term"] not in taken:
                t["category"] = to_category
                moved += 1
        return moved

    def create_term(
        self,
        *,
        term_id: str,
        term: str,
        slug: str,
        description: str,
        is_active: bool,
        category: str,
        category_id: str | None,
    ) -> dict[str, Any]:
        """Create a term in memory."""
        _terms_store[term_id] = {
            "id": term_id,
            "term": term,
            "slug": slug,
            "description": description,
            "is_active": is_active,
            "category": category,
            "category_id": category_id,
            "created_at": _now(),
        }
        return _public(_terms_store[term_id])

    def update_term(self, term_id: str, fields: dict[str, Any]) -> dict[str, Any] | None:
        """Update a term in memory."""
        term = _terms_store.get(term_id)
        if term is None:
            return None
        term.update({c: fields[c] for c in TERM_COLUMNS if c in fields})
        return _public(term)

    def delete_term(self, term_id: str) -> bool:
        """Delete a term from memory."""
        return _terms_store.pop(term_id, None) is not None


def clear_taxonomy_store() -> None:
    """Clear the in-memory taxonomy store. For testing only."""
    _categories_store.clear()
    _terms_store.clear()
