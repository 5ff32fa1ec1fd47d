"""Pytest configuration and fixtures for VoxArena tests.

In-memory stores are cleared around every test, and environment flags that
would reach real services (avatar generation, tracing) are unset.
"""

from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from voxarena.persistence.repositories import clear_all_stores

DATABASE_ENV_VARS = ("VOXARENA_DATABASE_URL", "VOXARENA_DATABASE_ADMIN_URL")


@pytest.fixture(autouse=True)
def clean_stores() -> Generator[None, None, None]:
    """Clear every in-memory repository before and after each test."""
    clear_all_stores()
    yield
    clear_all_stores()


@pytest.fixture(autouse=True)
def disable_external_services(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep avatar generation and tracing off unless a test opts in."""
    monkeypatch.delenv("VOXARENA_AVATAR_AI_ENABLED", raising=False)
    monkeypatch.delenv("VOXARENA_OTEL_ENABLED", raising=False)


@pytest.fixture
def in_memory_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Force the in-memory repositories even when a database is configured."""
    for name in DATABASE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def client(in_memory_env: None) -> TestClient:
    """Test client backed by the in-memory repositories."""
    from voxarena.api.main import create_app

    return TestClient(create_app())
