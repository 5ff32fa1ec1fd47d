"""Personas repository for Postgres persistence.

Personas hold scalar attribute columns plus a many-to-many link to taxonomy
terms through ``persona_taxonomies``. Links to unknown term ids are skipped.
"""

from __future__ import annotations

import itertools
import json
import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import text

from voxarena.models.persona import PERSONA_LIST_COLUMNS, PERSONA_SCALAR_FIELDS
from voxarena.persistence.repositories.taxonomy import InMemoryTaxonomyRepository

if TYPE_CHECKING:
    from sqlalchemy import Connection

logger = logging.getLogger(__name__)

PERSONA_COLUMNS: tuple[str, ...] = tuple(PERSONA_SCALAR_FIELDS.values())

_SELECT = f"""
    SELECT id, {", ".join(PERSONA_COLUMNS)}, created_at, updated_at
    FROM personas
"""


def _iso(value: Any) -> Any:
    if value is not None and hasattr(value, "isoformat"):
        return value.isoformat().replace("+00:00", "Z")
    return value


def _bind(column: str) -> str:
    if column in PERSONA_LIST_COLUMNS:
        return f"CAST(:{column} AS JSONB)"
    return f":{column}"


def _param(column: str, value: Any) -> Any:
    if column in PERSONA_LIST_COLUMNS:
        return json.dumps(list(value or []))
    return value


class PersonasRepository:
    """Repository for persona persistence operations."""

    def __init__(self, conn: Connection) -> None:
        """Initialize repository with a transactional connection."""
        self._conn = conn

    def create(self, *, persona_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        """Insert a persona.

        Args:
            persona_id: Id for the new persona.
            fields: Column -> value for any of PERSONA_COLUMNS; ``name`` required.

        Returns:
            Created persona as dict (without taxonomy links).
        """
        columns = [c for c in PERSONA_COLUMNS if c in fields]
        params: dict[str, Any] = {"id": persona_id, "created_at": datetime.now(UTC)}
        params.update({c: _param(c, fields[c]) for c in columns})

        self._conn.execute(
            text(
                f"""
                INSERT INTO personas (id, {", ".join(columns)}, created_at, updated_at)
                VALUES (:id, {", ".join(_bind(c) for c in columns)}, :created_at, NULL)
                """
            ),
            params,
        )
        created = self.get(persona_id)
        return created if created is not None else {}

    def get(self, persona_id: str) -> dict[str, Any] | None:
        """Get a persona with its taxonomy links."""
        row = self._conn.execute(text(f"{_SELECT} WHERE id = :id"), {"id": persona_id}).fetchone()
        if row is None:
            return None
        persona = self._row_to_dict(row)
        persona["taxonomies"] = self._links_for([persona_id]).get(persona_id, [])
        return persona

    def list(self) -> list[dict[str, Any]]:
        """List personas newest first, each with its taxonomy links."""
        rows = self._conn.execute(text(f"{_SELECT} ORDER BY created_at DESC")).fetchall()
        personas = [self._row_to_dict(row) for row in rows]
        links = self._links_for([p["id"] for p in personas])
        for persona in personas:
            persona["taxonomies"] = links.get(persona["id"], [])
        return personas

    def get_summaries(self, persona_ids: Iterable[str]) -> dict[str, dict[str, Any]]:
        """Return ``{id: {id, name, nickname, avatar_url}}`` for existing ids."""
        ids = list(dict.fromkeys(persona_ids))
        if not ids:
            return {}
        rows = self._conn.execute(
            text("SELECT id, name, nickname, avatar_url FROM personas WHERE id = ANY(:ids)"),
            {"ids": ids},
        ).fetchall()
        return {
            str(row.id): {
                "id": str(row.id),
                "name": row.name,
                "nickname": row.nickname,
                "avatar_url": row.avatar_url,
            }
            for row in rows
        }

    def update(self, persona_id: str, fields: dict[str, Any]) -> bool:
        """Update the supplied columns and stamp ``updated_at``.

        Returns:
            True if the persona exists.
        """
        columns = [c for c in PERSONA_COLUMNS if c in fields]
        assignments = [f"{c} = {_bind(c)}" for c in columns] + ["updated_at = :updated_at"]
        params: dict[str, Any] = {"id": persona_id, "updated_at": datetime.now(UTC)}
        params.update({c: _param(c, fields[c]) for c in columns})

        result = self._conn.execute(
            text(f"UPDATE personas SET {', '.join(assignments)} WHERE id = :id"),
            params,
        )
        return result.rowcount > 0

    def replace_taxonomies(self, persona_id: str, taxonomy_ids: Iterable[str]) -> None:
        """Replace every taxonomy link of a persona."""
        self._conn.execute(
            text("DELETE FROM persona_taxonomies WHERE persona_id = :persona_id"),
            {"persona_id": persona_id},
        )
        ids = list(taxonomy_ids)
        if not ids:
            return
        self._conn.execute(
            text(
                """
                INSERT INTO persona_taxonomies (persona_id, taxonomy_id)
                SELECT :persona_id, id FROM taxonomy_terms WHERE id = ANY(:ids)
                ON CONFLICT DO NOTHING
                """
            ),
            {"persona_id": persona_id, "ids": ids},
        )

    def delete(self, persona_id: str) -> bool:
        """Delete a persona; its taxonomy links cascade."""
        result = self._conn.execute(text("DELETE FROM personas WHERE id = :id"), {"id": persona_id})
        return result.rowcount > 0

    def _links_for(self, persona_ids: list[str]) -> dict[str, list[dict[str, Any]]]:
        if not persona_ids:
            return {}
        rows = self._conn.execute(
            text(
                """
                SELECT pt.persona_id, t.id, t.term, t.slug, t.description, t.is_active,
                       t.category, t.category_id, t.created_at
                FROM persona_taxonomies pt
                JOIN taxonomy_terms t ON t.id = pt.taxonomy_id
                WHERE pt.persona_id = ANY(:ids)
                ORDER BY t.category, t.term
                """
            ),
            {"ids": persona_ids},
        ).fetchall()
        links: dict[str, list[dict[str, Any]]] = {}
        for row in rows:
            links.setdefault(str(row.persona_id), []).append(
                {
                    "taxonomy_id": str(row.id),
                    "taxonomy": {
                        "id": str(row.id),
                        "term": row.term,
                        "slug": row.slug,
                        "description": row.description or "",
                        "is_active": bool(row.is_active),
                        "category": row.category,
                        "category_id": (
                            str(row.category_id) if row.category_id is not None else None
                        ),
                        "created_at": _iso(row.created_at),
                    },
                }
            )
        return links

    def _row_to_dict(self, row: Any) -> dict[str, Any]:
        """Convert a personas row to dict."""
        persona: dict[str, Any] = {"id": str(row.id)}
        for column in PERSONA_COLUMNS:
            value = getattr(row, column)
            if column in PERSONA_LIST_COLUMNS:
                value = value or []
            persona[column] = value
        persona["created_at"] = _iso(row.created_at)
        persona["updated_at"] = _iso(row.updated_at)
        return persona


_personas_store: dict[str, dict[str, Any]] = {}
_links_store: dict[str, list[str]] = {}
_insert_sequence = itertools.count()


class InMemoryPersonasRepository:
    """In-memory fallback repository for when Postgres is not configured."""

    def create(self, *, persona_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        """Create a persona in memory."""
        persona: dict[str, Any] = {"id": persona_id}
        for column in PERSONA_COLUMNS:
            default: Any = [] if column in PERSONA_LIST_COLUMNS else None
            persona[column] = fields.get(column, default)
        persona["created_at"] = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        persona["updated_at"] = None
        persona["_seq"] = next(_insert_sequence)
        _personas_store[persona_id] = persona
        return self.get(persona_id) or {}

    def get(self, persona_id: str) -> dict[str, Any] | None:
        """Get a persona with its taxonomy links from memory."""
        persona = _personas_store.get(persona_id)
        if persona is None:
            return None
        result = {k: v for k, v in persona.items() if not k.startswith("_")}
        for column in PERSONA_LIST_COLUMNS:
            result[column] = list(result[column] or [])
        terms = InMemoryTaxonomyRepository().get_terms(_links_store.get(persona_id, []))
        terms.sort(key=lambda t: (t["category"], t["term"]))
        result["taxonomies"] = [{"taxonomy_id": t["id"], "taxonomy": t} for t in terms]
        return result

    def list(self) -> list[dict[str, Any]]:
        """List personas newest first."""
        ordered = sorted(
            _personas_store.values(),
            key=lambda p: (p["created_at"], p["_seq"]),
            reverse=True,
        )
        return [self.get(p["id"]) or {} for p in ordered]

    def get_summaries(self, persona_ids: Iterable[str]) -> dict[str, dict[str, Any]]:
        """Return summaries for the ids that exist in memory."""
        return {
            pid: {
                "id": pid,
                "name": _personas_store[pid]["name"],
                "nickname": _personas_store[pid]["nickname"],
                "avatar_url": _personas_store[pid]["avatar_url"],
            }
            for pid in persona_ids
            if pid in _personas_store
        }

    def update(self, persona_id: str, fields: dict[str, Any]) -> bool:
        """Update a persona in memory."""
        persona = _personas_store.get(persona_id)
        if persona is None:
            return False
        persona.update({c: fields[c] for c in PERSONA_COLUMNS if c in fields})
        persona["updated_at"] = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return True

    def replace_taxonomies(self, persona_id: str, taxonomy_ids: Iterable[str]) -> None:
        """Replace every taxonomy link of a persona in memory."""
        known = InMemoryTaxonomyRepository().get_terms(taxonomy_ids)
        _links_store[persona_id] = list(dict.fromkeys(t["id"] for t in known))

    def delete(self, persona_id: str) -> bool:
        """Delete a persona and its links from memory."""
        _links_store.pop(persona_id, None)
        return _personas_store.pop(persona_id, None) is not None


def clear_personas_store() -> None:
    """Clear the in-memory personas store. For testing only."""
    _personas_store.clear()
    _links_store.clear()
