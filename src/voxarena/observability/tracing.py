"""OpenTelemetry tracing configuration for VoxArena.

Tracing is off by default. When enabled, FastAPI requests, SQLAlchemy
statements, and outbound httpx calls (image generation, avatar download)
are instrumented, and debate lifecycle operations open their own spans.

Environment Variables:
    VOXARENA_OTEL_ENABLED: Set to "1" to enable tracing (default: disabled)
    VOXARENA_REQUIRE_OTEL: Set to "1" to fail startup if tracing cannot initialize
    VOXARENA_OTEL_SERVICE_NAME: Service name for spans (default: "voxarena")
    VOXARENA_OTEL_EXPORTER: Exporter type - "otlp" or "console" (default: "otlp")
    VOXARENA_OTEL_EXPORTER_OTLP_ENDPOINT: OTLP endpoint URL (optional)
    VOXARENA_OTEL_EXPORTER_OTLP_PROTOCOL: "grpc" or "http" (default: "grpc")
    VOXARENA_OTEL_TEST_CAPTURE: Set to "1" to use in-memory exporter for tests

Never export API keys, request bodies, or persona free text in spans.
"""

from __future__ import annotations

import functools
import logging
import os
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar, cast

if TYPE_CHECKING:
    from opentelemetry.sdk.trace import ReadableSpan, TracerProvider

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

_tracer_provider: TracerProvider | None = None
_is_configured: bool = False
_test_exporter: Any = None


class TracingConfigError(Exception):
    """Raised when tracing configuration fails and VOXARENA_REQUIRE_OTEL=1."""

    pass


def _get_env_bool(key: str, default: bool = False) -> bool:
    val = os.environ.get(key, "").strip().lower()
    if val in ("1", "true", "yes"):
        return True
    return default


def _get_env_str(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def is_tracing_enabled() -> bool:
    """Return True when VOXARENA_OTEL_ENABLED is truthy."""
    return _get_env_bool("VOXARENA_OTEL_ENABLED", False)


def _create_otlp_exporter(protocol: str, endpoint: str | None) -> Any:
    """Create OTLP exporter based on protocol."""
    kwargs: dict[str, Any] = {}
    if endpoint:
        kwargs["endpoint"] = endpoint

    if protocol == "http":
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
            OTLPSpanExporter as HTTPExporter,
        )

        return HTTPExporter(**kwargs)

    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
        OTLPSpanExporter as GRPCExporter,
    )

    return GRPCExporter(**kwargs)


def configure_tracing() -> bool:
    """Configure OpenTelemetry tracing. Idempotent.

    Returns:
        True if tracing is enabled and configured, False otherwise.

    Raises:
        TracingConfigError: If VOXARENA_REQUIRE_OTEL=1 and configuration fails.
    """
    global _tracer_provider, _is_configured, _test_exporter

    if not is_tracing_enabled():
        _is_configured = True
        logger.debug("OpenTelemetry tracing disabled (VOXARENA_OTEL_ENABLED not set)")
        return False

    require_otel = _get_env_bool("VOXARENA_REQUIRE_OTEL", False)
    test_capture = _get_env_bool("VOXARENA_OTEL_TEST_CAPTURE", False)

    if _test_exporter is not None and test_capture:
        return True

    if _is_configured and _tracer_provider is not None:
        return True

    _is_configured = True

    try:
        from opentelemetry import trace
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor, SimpleSpanProcessor

        service_name = _get_env_str("VOXARENA_OTEL_SERVICE_NAME", "voxarena")
        exporter_type = _get_env_str("VOXARENA_OTEL_EXPORTER", "otlp")
        endpoint = _get_env_str("VOXARENA_OTEL_EXPORTER_OTLP_ENDPOINT", "")
        protocol = _get_env_str("VOXARENA_OTEL_EXPORTER_OTLP_PROTOCOL", "grpc")

        provider = TracerProvider(resource=Resource.create({"service.name": service_name}))

        if test_capture:
            from opentelemetry.sdk.trace.export.in_memory_span_exporter import (
                InMemorySpanExporter,
            )

            _test_exporter = InMemorySpanExporter()
            provider.add_span_processor(SimpleSpanProcessor(_test_exporter))
        elif exporter_type == "console":
            from opentelemetry.sdk.trace.export import ConsoleSpanExporter

            provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
        else:
            exporter = _create_otlp_exporter(protocol, endpoint or None)
            provider.add_span_processor(BatchSpanProcessor(exporter))

        trace.set_tracer_provider(provider)
        _tracer_provider = provider

        logger.info(
            "OpenTelemetry tracing configured: service=%s, exporter=%s",
            service_name,
            exporter_type if not test_capture else "in-memory",
        )
        return True

    except Exception as e:
        logger.error("Failed to configure OpenTelemetry tracing: %s", e)
        if require_otel:
            raise TracingConfigError(
                f"OpenTelemetry tracing required but configuration failed: {e}"
            ) from e
        return False


def instrument_fastapi(app: Any) -> None:
    """Instrument a FastAPI application with OpenTelemetry."""
    if not is_tracing_enabled():
        return

    try:
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

        FastAPIInstrumentor.instrument_app(app, excluded_urls="health")
        logger.debug("FastAPI instrumented with OpenTelemetry")
    except Exception as e:
        logger.warning("Failed to instrument FastAPI: %s", e)


def instrument_sqlalchemy(engine: Any) -> None:
    """Instrument a SQLAlchemy engine with OpenTelemetry."""
    if not is_tracing_enabled():
        return

    try:
        from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor

        SQLAlchemyInstrumentor().instrument(engine=engine, enable_commenter=False)
        logger.debug("SQLAlchemy engine instrumented with OpenTelemetry")
    except Exception as e:
        logger.warning("Failed to instrument SQLAlchemy: %s", e)


def instrument_httpx() -> None:
    """Instrument httpx clients with OpenTelemetry."""
    if not is_tracing_enabled():
        return

    try:
        from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

        HTTPXClientInstrumentor().instrument()
        logger.debug("httpx instrumented with OpenTelemetry")
    except Exception as e:
        logger.warning("Failed to instrument httpx: %s", e)


def traced_operation(name: str) -> Callable[[F], F]:
    """Decorator opening a ``voxarena.<name>`` span around a service call.

    The first positional argument after ``self`` is recorded as
    ``voxarena.resource_id`` when it is a string. Exceptions mark the span
    with ``error.type`` and propagate.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
            if not is_tracing_enabled():
                return func(self, *args, **kwargs)

            from opentelemetry import trace

            tracer = trace.get_tracer("voxarena.services")
            with tracer.start_as_current_span(f"voxarena.{name}") as span:
                if args and isinstance(args[0], str):
                    span.set_attribute("voxarena.resource_id", args[0])
                try:
                    return func(self, *args, **kwargs)
                except Exception as e:
                    span.set_attribute("error", True)
                    span.set_attribute("error.type", type(e).__name__)
                    raise

        return cast(F, wrapper)

    return decorator


def set_span_attributes(attributes: dict[str, Any]) -> None:
    """Set non-None attributes on the current span, if recording."""
    try:
        from opentelemetry import trace

        span = trace.get_current_span()
        if span is not None and span.is_recording():
            for key, value in attributes.items():
                if value is not None:
                    span.set_attribute(key, str(value))
    except Exception as e:
        logger.debug("Failed to set span attributes: %s", e)


def get_test_spans() -> list[ReadableSpan]:
    """Get captured spans from the in-memory exporter (tests only)."""
    if _test_exporter is not None and hasattr(_test_exporter, "get_finished_spans"):
        return list(_test_exporter.get_finished_spans())
    return []


def reset_tracing() -> None:
    """Reset tracing configuration (tests only).

    The global TracerProvider cannot be replaced once set, so the test
    exporter is kept and only its captured spans are cleared.
    """
    global _is_configured

    if _test_exporter is not None and hasattr(_test_exporter, "clear"):
        _test_exporter.clear()
    _is_configured = False
