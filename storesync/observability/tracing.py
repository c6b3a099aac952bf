"""
OpenTelemetry tracing for job runs and dispatch chunks.

Tracing is opt-in (``OTEL_ENABLED``). Until ``setup_tracing`` runs, spans come
from the default no-op provider, so instrumented code never checks whether
tracing is on.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Span, Tracer

from storesync import __version__
from storesync.config import Settings, get_settings

INSTRUMENTATION_NAME = "storesync"


def setup_tracing(settings: Settings | None = None, console: bool = False) -> Tracer:
    """
    Install a tracer provider exporting to the configured OTLP endpoint.

    Args:
        settings: Supplies the service name and exporter endpoint.
        console: Also print finished spans, for local debugging.
    """
    settings = settings or get_settings()

    provider = TracerProvider(
        resource=Resource.create(
            {
                SERVICE_NAME: settings.otel_service_name,
                SERVICE_VERSION: __version__,
            }
        )
    )
    provider.add_span_processor(
        BatchSpanProcessor(
            OTLPSpanExporter(endpoint=settings.otel_exporter_otlp_endpoint, insecure=True)
        )
    )
    if console:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    return get_tracer()


def get_tracer() -> Tracer:
    return trace.get_tracer(INSTRUMENTATION_NAME, __version__)


@contextmanager
def traced(name: str, **attributes: str | int) -> Iterator[Span]:
    """Run the block inside a span carrying the given attributes."""
    with get_tracer().start_as_current_span(name, attributes=attributes) as span:
        yield span
