"""OpenTelemetry tracing for webhook and marketplace API traffic."""

import logging

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SpanExporter,
)
from opentelemetry.sdk.trace.sampling import (
    ALWAYS_OFF,
    ALWAYS_ON,
    ParentBased,
    Sampler,
    TraceIdRatioBased,
)

from saas_lifecycle import __version__
from saas_lifecycle.config import Settings, get_settings

logger = logging.getLogger(__name__)

_tracer_provider: TracerProvider | None = None


def _get_sampler(sampler_type: str, ratio: float) -> Sampler:
    """Sample root spans as configured; child spans follow their parent."""
    roots = {
        "always_on": ALWAYS_ON,
        "always_off": ALWAYS_OFF,
        "traceidratio": TraceIdRatioBased(ratio),
    }
    return ParentBased(roots[sampler_type])


def _create_exporter(settings: Settings) -> SpanExporter:
    if settings.otel_exporter_type == "otlp":
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
            OTLPSpanExporter,
        )

        return OTLPSpanExporter(endpoint=settings.otel_exporter_otlp_endpoint)

    if settings.otel_exporter_type == "otlp-http":
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
            OTLPSpanExporter as OTLPHttpSpanExporter,
        )

        return OTLPHttpSpanExporter(
            endpoint=f"{settings.otel_exporter_otlp_http_endpoint}/v1/traces"
        )

    return ConsoleSpanExporter()


def _instrument_clients() -> None:
    """Trace incoming requests and outgoing marketplace/Event Grid calls."""
    from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
    from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

    for instrumentor in (FastAPIInstrumentor(), HTTPXClientInstrumentor()):
        if not instrumentor.is_instrumented_by_opentelemetry:
            instrumentor.instrument()


def setup_telemetry() -> None:
    """Install the tracer provider when tracing is enabled.

    Call before the FastAPI application is created so its routes are
    instrumented.
    """
    global _tracer_provider

    settings = get_settings()
    if not settings.otel_enabled:
        logger.debug("OpenTelemetry tracing is disabled")
        return

    logger.info(
        "Initializing OpenTelemetry tracing (service=%s, exporter=%s, sampler=%s)",
        settings.otel_service_name,
        settings.otel_exporter_type,
        settings.otel_traces_sampler,
    )

    resource = Resource.create(
        {
            "service.name": settings.otel_service_name,
            "service.version": __version__,
            "deployment.environment": "development" if settings.debug else "production",
        }
    )
    _tracer_provider = TracerProvider(
        resource=resource,
        sampler=_get_sampler(settings.otel_traces_sampler, settings.otel_traces_sampler_arg),
    )
    _tracer_provider.add_span_processor(BatchSpanProcessor(_create_exporter(settings)))
    trace.set_tracer_provider(_tracer_provider)

    _instrument_clients()


def shutdown_telemetry() -> None:
    """Flush pending spans and drop the tracer provider."""
    global _tracer_provider

    if _tracer_provider is not None:
        logger.info("Shutting down OpenTelemetry tracing")
        _tracer_provider.shutdown()
        _tracer_provider = None


def get_tracer(name: str) -> trace.Tracer:
    """Get a tracer for the given module name, typically __name__."""
    return trace.get_tracer(name)
