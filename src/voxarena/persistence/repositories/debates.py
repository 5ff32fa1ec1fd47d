"""Debates repository for Postgres persistence.

Stores debate scalars and their participant rosters. A roster is only ever
replaced as a unit (delete-all then insert-all); there is no row-level
participant update.
"""

from __future__ import annotations

import itertools
import json
import logging
import uuid
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import text

from voxarena.debate.participants import NormalizedParticipant

if TYPE_CHECKING:
    from sqlalchemy import Connection

logger = logging.getLogger(__name__)

# Scalar columns a caller may change through update_scalars.
DEBATE_SCALAR_COLUMNS = ("title", "topic", "description", "format", "status", "config")


def _iso(value: Any) -> Any:
    if value is not None and hasattr(value, "isoformat"):
        return value.isoformat().replace("+00:00", "Z")
    return value


def _participant_rows(debate_id: str, participants: Iterable[NormalizedParticipant]) -> list[dict]:
    return [
        {
            "id": str(uuid.uuid4()),
            "debate_id": debate_id,
            "persona_id": p.persona_id,
            "role": p.role.value,
            "order_index": p.order if isinstance(p.order, int) else 0,
            "display_name": p.display_name,
            "voice_id": p.voice_id,
            "meta": p.meta,
        }
        for p in participants
    ]


class DebatesRepository:
    """Repository for debate persistence operations.

    The connection must already be inside a transaction; the request
    transaction is the atomic unit for a debate mutation.
    """

    def __init__(self, conn: Connection) -> None:
        """Initialize repository with a transactional connection."""
        self._conn = conn

    def create(
        self,
        *,
        debate_id: str,
        title: str,
        topic: str,
        description: str | None,
        format: str,
        status: str,
        config: Any = None,
        participants: Iterable[NormalizedParticipant] = (),
    ) -> dict[str, Any]:
        """Insert a debate and, optionally, its initial roster.

        Returns:
            Created debate as dict, including participants.
        """
        now = datetime.now(UTC)

        self._conn.execute(
            text(
                """
                INSERT INTO debates (
                    id, title, topic, description, format, status,
                    config, created_at, updated_at
                ) VALUES (
                    :id, :title, :topic, :description, :format, :status,
                    CAST(:config AS JSONB), :created_at, NULL
                )
                """
            ),
            {
                "id": debate_id,
                "title": title,
                "topic": topic,
                "description": description,
                "format": format,
                "status": status,
                "config": json.dumps(config) if config is not None else None,
                "created_at": now,
            },
        )
        rows = _participant_rows(debate_id, participants)
        self._insert_participants(rows)

        return {
            "id": debate_id,
            "title": title,
            "topic": topic,
            "description": description,
            "format": format,
            "status": status,
            "config": config,
            "participants": sorted(rows, key=lambda r: r["order_index"]),
            "created_at": _iso(now),
            "updated_at": None,
        }

    def get(self, debate_id: str) -> dict[str, Any] | None:
        """Get a debate with its roster ordered by order index.

        Returns:
            Debate as dict, or None if not found.
        """
        row = self._conn.execute(
            text(
                """
                SELECT id, title, topic, description, format, status,
                       config, created_at, updated_at
                FROM debates
                WHERE id = :id
                """
            ),
            {"id": debate_id},
        ).fetchone()

        if row is None:
            return None

        debate = self._row_to_dict(row)
        debate["participants"] = self.list_participants(debate_id)
        return debate

    def get_for_update(self, debate_id: str) -> dict[str, Any] | None:
        """Like get, but locks the debate row until the transaction ends.

        Concurrent updates of the same debate run one after the other, so
        each sees the roster and status the previous one committed.
        """
        row = self._conn.execute(
            text(
                """
                SELECT id, title, topic, description, format, status,
                       config, created_at, updated_at
                FROM debates
                WHERE id = :id
                FOR UPDATE
                """
            ),
            {"id": debate_id},
        ).fetchone()

        if row is None:
            return None

        debate = self._row_to_dict(row)
        debate["participants"] = self.list_participants(debate_id)
        return debate

    def list(self) -> list[dict[str, Any]]:
        """List all debates, newest first, each with its roster."""
        rows = self._conn.execute(
            text(
                """
                SELECT id, title, topic, description, format, status,
                       config, created_at, updated_at
                FROM debates
                ORDER BY created_at DESC
                """
            )
        ).fetchall()

        debates = [self._row_to_dict(row) for row in rows]
        if not debates:
            return debates

        by_debate: dict[str, list[dict[str, Any]]] = {d["id"]: [] for d in debates}
        participant_rows = self._conn.execute(
            text(
                """
                SELECT id, debate_id, persona_id, role, order_index,
                       display_name, voice_id, meta
                FROM debate_participants
                WHERE debate_id = ANY(:ids)
                ORDER BY order_index ASC
                """
            ),
            {"ids": list(by_debate)},
        ).fetchall()
        for prow in participant_rows:
            by_debate[str(prow.debate_id)].append(self._participant_to_dict(prow))

        for debate in debates:
            debate["participants"] = by_debate[debate["id"]]
        return debates

    def list_participants(self, debate_id: str) -> list[dict[str, Any]]:
        """Return the persisted roster of a debate, ordered by order index."""
        rows = self._conn.execute(
            text(
                """
                SELECT id, debate_id, persona_id, role, order_index,
                       display_name, voice_id, meta
                FROM debate_participants
                WHERE debate_id = :debate_id
                ORDER BY order_index ASC
                """
            ),
            {"debate_id": debate_id},
        ).fetchall()
        return [self._participant_to_dict(row) for row in rows]

    def replace_participants(
        self, debate_id: str, participants: Iterable[NormalizedParticipant]
    ) -> list[dict[str, Any]]:
        """Replace the whole roster: delete every row, then insert the new set."""
        self._conn.execute(
            text("DELETE FROM debate_participants WHERE debate_id = :debate_id"),
            {"debate_id": debate_id},
        )
        rows = _participant_rows(debate_id, participants)
        self._insert_participants(rows)
        return rows

    def update_scalars(self, debate_id: str, fields: dict[str, Any]) -> None:
        """Update the supplied scalar columns and stamp ``updated_at``.

        Args:
            debate_id: Debate to update.
            fields: Column -> value, limited to DEBATE_SCALAR_COLUMNS.
        """
        assignments = ["updated_at = :updated_at"]
        params: dict[str, Any] = {"id": debate_id, "updated_at": datetime.now(UTC)}
        for column in DEBATE_SCALAR_COLUMNS:
            if column not in fields:
                continue
            if column == "config":
                assignments.append("config = CAST(:config AS JSONB)")
                value = fields[column]
                params[column] = json.dumps(value) if value is not None else None
            else:
                assignments.append(f"{column} = :{column}")
                params[column] = fields[column]

        self._conn.execute(
            text(f"UPDATE debates SET {', '.join(assignments)} WHERE id = :id"),
            params,
        )

    def delete(self, debate_id: str) -> bool:
        """Delete a debate's participants, then the debate row.

        Returns:
            True if the debate existed and was deleted.
        """
        self._conn.execute(
            text("DELETE FROM debate_participants WHERE debate_id = :debate_id"),
            {"debate_id": debate_id},
        )
        result = self._conn.execute(
            text("DELETE FROM debates WHERE id = :id"),
            {"id": debate_id},
        )
        return result.rowcount > 0

    def persona_in_use(self, persona_id: str) -> bool:
        """Return True if any debate roster references the persona."""
        row = self._conn.execute(
            text("SELECT 1 FROM debate_participants WHERE persona_id = :persona_id LIMIT 1"),
            {"persona_id": persona_id},
        ).fetchone()
        return row is not None

    def _insert_participants(self, rows: list[dict[str, Any]]) -> None:
        if not rows:
            return
        self._conn.execute(
            text(
                """
                INSERT INTO debate_participants (
                    id, debate_id, persona_id, role, order_index,
                    display_name, voice_id, meta
                ) VALUES (
                    :id, :debate_id, :persona_id, :role, :order_index,
                    :display_name, :voice_id, CAST(:meta AS JSONB)
                )
                """
            ),
            [
                {**row, "meta": json.dumps(row["meta"]) if row["meta"] is not None else None}
                for row in rows
            ],
        )

    def _row_to_dict(self, row: Any) -> dict[str, Any]:
        """Convert a debates row to dict."""
        return {
            "id": str(row.id),
            "title": row.title,
            "topic": row.topic,
            "description": row.description,
            "format": row.format,
            "status": row.status,
            "config": row.config,
            "participants": [],
            "created_at": _iso(row.created_at),
            "updated_at": _iso(row.updated_at),
        }

    def _participant_to_dict(self, row: Any) -> dict[str, Any]:
        """Convert a debate_participants row to dict."""
        return {
            "id": str(row.id),
            "debate_id": str(row.debate_id),
            "persona_id": str(row.persona_id),
            "role": row.role,
            "order_index": row.order_index,
            "display_name": row.display_name,
            "voice_id": row.voice_id,
            "meta": row.meta,
        }


_debates_store: dict[str, dict[str, Any]] = {}
_participants_store: dict[str, list[dict[str, Any]]] = {}
_insert_sequence = itertools.count()


class InMemoryDebatesRepository:
    """In-memory fallback repository for when Postgres is not configured.

    Used for development/testing without database dependency.
    """

    def create(
        self,
        *,
        debate_id: str,
        title: str,
        topic: str,
        description: str | None,
        format: str,
        status: str,
        config: Any = None,
        participants: Iterable[NormalizedParticipant] = (),
    ) -> dict[str, Any]:
        """Create a debate and its initial roster in memory."""
        now = datetime.now(UTC).isoformat().replace("+00:00", "Z")

        _debates_store[debate_id] = {
            "id": debate_id,
            "title": title,
            "topic": topic,
            "description": description,
            "format": format,
            "status": status,
            "config": config,
            "created_at": now,
            "updated_at": None,
            "_seq": next(_insert_sequence),
        }
        _participants_store[debate_id] = _participant_rows(debate_id, participants)
        return self.get(debate_id) or {}

    def get(self, debate_id: str) -> dict[str, Any] | None:
        """Get a debate with its roster from memory."""
        debate = _debates_store.get(debate_id)
        if debate is None:
            return None
        result = {k: v for k, v in debate.items() if not k.startswith("_")}
        result["participants"] = self.list_participants(debate_id)
        return result

    def get_for_update(self, debate_id: str) -> dict[str, Any] | None:
        """Same as get; the in-memory store has no row locks."""
        return self.get(debate_id)

    def list(self) -> list[dict[str, Any]]:
        """List debates from memory, newest first."""
        ordered = sorted(
            _debates_store.values(),
            key=lambda d: (d["created_at"], d["_seq"]),
            reverse=True,
        )
        return [self.get(d["id"]) or {} for d in ordered]

    def list_participants(self, debate_id: str) -> list[dict[str, Any]]:
        """Return a copy of the roster ordered by order index."""
        rows = _participants_store.get(debate_id, [])
        return [dict(row) for row in sorted(rows, key=lambda r: r["order_index"])]

    def replace_participants(
        self, debate_id: str, participants: Iterable[NormalizedParticipant]
    ) -> list[dict[str, Any]]:
        """Replace the whole roster in memory."""
        rows = _participant_rows(debate_id, participants)
        _participants_store[debate_id] = rows
        return rows

    def update_scalars(self, debate_id: str, fields: dict[str, Any]) -> None:
        """Update supplied scalar fields in memory."""
        debate = _debates_store.get(debate_id)
        if debate is None:
            return
        for column in DEBATE_SCALAR_COLUMNS:
            if column in fields:
                debate[column] = fields[column]
        debate["updated_at"] = datetime.now(UTC).isoformat().replace("+00:00", "Z")

    def delete(self, debate_id: str) -> bool:
        """Delete a debate's participants, then the debate, from memory."""
        _participants_store.pop(debate_id, None)
        return _debates_store.pop(debate_id, None) is not None

    def persona_in_use(self, persona_id: str) -> bool:
        """Return True if any in-memory roster references the persona."""
        return any(
            row["persona_id"] == persona_id
            for rows in _participants_store.values()
            for row in rows
        )


def clear_debates_store() -> None:
    """Clear the in-memory debates store. For testing only."""
    _debates_store.clear()
    _participants_store.clear()
