"""Tests for the debates repository against a mocked SQLAlchemy connection."""

from __future__ import annotations

from datetime import UTC, datetime
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from voxarena.persistence.repositories.debates import (
    DebatesRepository,
    InMemoryDebatesRepository,
)
from voxarena.services.debates.service import DebateService


def _debate_row(**overrides: Any) -> SimpleNamespace:
    values: dict[str, Any] = {
        "id": "d-1",
        "title": "T",
        "topic": "Topic",
        "description": None,
        "format": "structured",
        "status": "DRAFT",
        "config": None,
        "created_at": datetime(2026, 1, 1, tzinfo=UTC),
        "updated_at": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def _participant_row(**overrides: Any) -> SimpleNamespace:
    values: dict[str, Any] = {
        "id": "dp-1",
        "debate_id": "d-1",
        "persona_id": "p-1",
        "role": "MODERATOR",
        "order_index": 0,
        "display_name": None,
        "voice_id": None,
        "meta": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def _mock_conn(row: SimpleNamespace | None, participants: list[SimpleNamespace]) -> MagicMock:
    conn = MagicMock()
    conn.execute.return_value.fetchone.return_value = row
    conn.execute.return_value.fetchall.return_value = participants
    return conn


class TestJsonbColumns:
    """JSONB values arrive decoded from the driver and are returned as-is."""

    @pytest.mark.parametrize("config", ["123", "[1, 2]", '{"a": 1}', {"rounds": 3}, [1], 7])
    def test_config_round_trips_unchanged(self, config: Any) -> None:
        repo = DebatesRepository(_mock_conn(_debate_row(config=config), []))

        debate = repo.get("d-1")

        assert debate is not None
        assert debate["config"] == config

    def test_participant_meta_string_is_not_decoded(self) -> None:
        conn = _mock_conn(_debate_row(), [_participant_row(meta="true")])

        debate = DebatesRepository(conn).get("d-1")

        assert debate is not None
        assert debate["participants"][0]["meta"] == "true"

    def test_created_at_is_iso_z(self) -> None:
        debate = DebatesRepository(_mock_conn(_debate_row(), [])).get("d-1")

        assert debate is not None
        assert debate["created_at"] == "2026-01-01T00:00:00Z"


class TestRowLock:
    """Updates read the debate row under FOR UPDATE."""

    def test_get_for_update_locks_the_row(self) -> None:
        conn = _mock_conn(_debate_row(), [_participant_row()])

        debate = DebatesRepository(conn).get_for_update("d-1")

        assert debate is not None
        assert debate["participants"][0]["persona_id"] == "p-1"
        first_sql = str(conn.execute.call_args_list[0].args[0])
        assert "FOR UPDATE" in first_sql
        assert "FROM debates" in first_sql

    def test_get_for_update_missing(self) -> None:
        assert DebatesRepository(_mock_conn(None, [])).get_for_update("nope") is None

    def test_plain_get_does_not_lock(self) -> None:
        conn = _mock_conn(_debate_row(), [])

        DebatesRepository(conn).get("d-1")

        assert "FOR UPDATE" not in str(conn.execute.call_args_list[0].args[0])

    def test_service_update_reads_through_the_lock(self) -> None:
        service = DebateService()
        created = service.create({"title": "T", "topic": "Topic", "format": "structured"})

        with patch.object(
            InMemoryDebatesRepository,
            "get_for_update",
            autospec=True,
            side_effect=InMemoryDebatesRepository.get_for_update,
        ) as get_for_update:
            service.update(created.id, {"title": "Renamed"})

        get_for_update.assert_called_once()
        assert get_for_update.call_args.args[1] == created.id
