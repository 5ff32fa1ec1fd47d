"""Tests for the request-scoped DB transaction middleware.

The database is replaced by a fake connection/transaction pair so commit and
rollback outcomes can be forced without Postgres.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest
from fastapi.testclient import TestClient

from voxarena.api.main import create_app
from voxarena.services.debates.service import DebateService


class FakeTransaction:
    """Records commit/rollback; commit can be made to fail."""

    def __init__(self, fail_commit: bool = False) -> None:
        self.fail_commit = fail_commit
        self.committed = False
        self.rolled_back = False

    def commit(self) -> None:
        if self.fail_commit:
            raise RuntimeError("commit failed: serialization failure")
        self.committed = True

    def rollback(self) -> None:
        self.rolled_back = True


class FakeConnection:
    def __init__(self) -> None:
        self.closed = False

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_db(
    monkeypatch: pytest.MonkeyPatch,
) -> Callable[..., tuple[FakeConnection, FakeTransaction]]:
    """Pretend Postgres is configured and hand out fake connections."""

    def install(fail_commit: bool = False) -> tuple[FakeConnection, FakeTransaction]:
        conn = FakeConnection()
        trans = FakeTransaction(fail_commit=fail_commit)
        monkeypatch.setattr("voxarena.persistence.db.is_postgres_configured", lambda: True)
        monkeypatch.setattr(
            "voxarena.api.middleware.db_tx._open_connection", lambda: (conn, trans)
        )
        return conn, trans

    return install


class TestCommitOutcome:
    """Commit at response start, and what the client sees."""

    def test_success_commits_and_closes(self, fake_db: Callable) -> None:
        conn, trans = fake_db()
        client = TestClient(create_app())

        response = client.get("/v1/formats")

        assert response.status_code == 200
        assert trans.committed
        assert not trans.rolled_back
        assert conn.closed

    def test_failed_commit_is_reported_as_503(self, fake_db: Callable) -> None:
        conn, trans = fake_db(fail_commit=True)
        client = TestClient(create_app())

        response = client.get("/v1/formats", headers={"X-Request-Id": "req-commit"})

        assert response.status_code == 503
        body = response.json()
        assert set(body) == {"code", "message", "details", "request_id"}
        assert body["code"] == "DATABASE_UNAVAILABLE"
        assert body["request_id"] == "req-commit"
        assert response.headers["X-Request-Id"] == "req-commit"
        assert trans.rolled_back
        assert conn.closed

    def test_unhandled_error_rolls_back(
        self, fake_db: Callable, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        conn, trans = fake_db()

        def boom(self: DebateService) -> list:
            raise RuntimeError("boom")

        monkeypatch.setattr(DebateService, "list", boom)
        client = TestClient(create_app(), raise_server_exceptions=False)

        response = client.get("/v1/debates")

        assert response.status_code == 500
        assert trans.rolled_back
        assert not trans.committed
        assert conn.closed


class TestScope:
    def test_non_v1_paths_skip_the_database(self, monkeypatch: pytest.MonkeyPatch) -> None:
        opened: list[bool] = []

        def open_connection() -> tuple[FakeConnection, FakeTransaction]:
            opened.append(True)
            return FakeConnection(), FakeTransaction()

        monkeypatch.setattr("voxarena.persistence.db.is_postgres_configured", lambda: True)
        monkeypatch.setattr("voxarena.api.middleware.db_tx._open_connection", open_connection)
        client = TestClient(create_app())

        assert client.get("/health").status_code == 200
        assert opened == []

    def test_open_failure_returns_503(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def open_connection() -> tuple[FakeConnection, FakeTransaction]:
            raise RuntimeError("connection refused")

        monkeypatch.setattr("voxarena.persistence.db.is_postgres_configured", lambda: True)
        monkeypatch.setattr("voxarena.api.middleware.db_tx._open_connection", open_connection)
        client = TestClient(create_app())

        response = client.get("/v1/formats")

        assert response.status_code == 503
        assert response.json()["code"] == "DATABASE_UNAVAILABLE"
