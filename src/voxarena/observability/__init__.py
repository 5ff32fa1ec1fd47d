"""VoxArena observability: OpenTelemetry tracing."""

from voxarena.observability.tracing import (
    TracingConfigError,
    configure_tracing,
    instrument_fastapi,
    instrument_httpx,
    set_span_attributes,
    traced_operation,
)

__all__ = [
    "TracingConfigError",
    "configure_tracing",
    "instrument_fastapi",
    "instrument_httpx",
    "set_span_attributes",
    "traced_operation",
]
