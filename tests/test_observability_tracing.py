"""Tests for OpenTelemetry tracing.

- Tracing OFF by default, ON via VOXARENA_OTEL_ENABLED=1
- Fail-closed only when VOXARENA_REQUIRE_OTEL=1 and init fails
- Debate service operations open voxarena.* spans
- Tests use the in-memory exporter (no external collector required)
"""

from __future__ import annotations

from collections.abc import Generator
from unittest.mock import patch

import pytest

TRACING_ENV_VARS = (
    "VOXARENA_OTEL_ENABLED",
    "VOXARENA_REQUIRE_OTEL",
    "VOXARENA_OTEL_SERVICE_NAME",
    "VOXARENA_OTEL_EXPORTER",
    "VOXARENA_OTEL_TEST_CAPTURE",
    "VOXARENA_OTEL_EXPORTER_OTLP_ENDPOINT",
    "VOXARENA_OTEL_EXPORTER_OTLP_PROTOCOL",
)


@pytest.fixture(autouse=True)
def reset_tracing_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Reset tracing environment and state around each test."""
    for name in TRACING_ENV_VARS:
        monkeypatch.delenv(name, raising=False)

    from voxarena.observability.tracing import reset_tracing

    reset_tracing()
    yield
    reset_tracing()


@pytest.fixture
def capture(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("VOXARENA_OTEL_ENABLED", "1")
    monkeypatch.setenv("VOXARENA_OTEL_TEST_CAPTURE", "1")

    from voxarena.observability.tracing import configure_tracing

    assert configure_tracing() is True


class TestTracingConfiguration:
    """Enabling and failure behavior."""

    def test_disabled_by_default(self) -> None:
        from voxarena.observability.tracing import configure_tracing, is_tracing_enabled

        assert is_tracing_enabled() is False
        assert configure_tracing() is False

    def test_require_otel_fails_closed(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VOXARENA_OTEL_ENABLED", "1")
        monkeypatch.setenv("VOXARENA_REQUIRE_OTEL", "1")

        from voxarena.observability.tracing import TracingConfigError, configure_tracing

        with patch("opentelemetry.sdk.trace.TracerProvider", side_effect=RuntimeError("boom")):
            with pytest.raises(TracingConfigError):
                configure_tracing()

    def test_failure_without_require_is_tolerated(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VOXARENA_OTEL_ENABLED", "1")

        from voxarena.observability.tracing import configure_tracing

        with patch("opentelemetry.sdk.trace.TracerProvider", side_effect=RuntimeError("boom")):
            assert configure_tracing() is False


class TestServiceSpans:
    """Debate operations emit spans without request payloads."""

    def test_create_span(self, capture: None, in_memory_env: None) -> None:
        from voxarena.observability.tracing import get_test_spans
        from voxarena.services.debates import DebateService

        debate = DebateService().create(
            {"title": "Secret title", "topic": "Topic", "format": "podcast"}
        )

        spans = [s for s in get_test_spans() if s.name == "voxarena.debate.create"]
        assert len(spans) == 1
        attributes = dict(spans[0].attributes or {})
        assert attributes["voxarena.debate_id"] == debate.id
        assert attributes["voxarena.status"] == "DRAFT"
        assert "Secret title" not in str(attributes)

    def test_failed_update_marks_error(self, capture: None, in_memory_env: None) -> None:
        from voxarena.debate.errors import IllegalTransitionError
        from voxarena.observability.tracing import get_test_spans
        from voxarena.services.debates import DebateService

        service = DebateService()
        debate = service.create(
            {"title": "T", "topic": "Topic", "format": "podcast", "status": "ARCHIVED"}
        )

        with pytest.raises(IllegalTransitionError):
            service.update(debate.id, {"status": "DRAFT"})

        spans = [s for s in get_test_spans() if s.name == "voxarena.debate.update"]
        assert len(spans) == 1
        attributes = dict(spans[0].attributes or {})
        assert attributes["voxarena.resource_id"] == debate.id
        assert attributes["error.type"] == "IllegalTransitionError"
