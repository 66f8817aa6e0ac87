from contextlib import contextmanager
import logging
import os

logger = logging.getLogger(__name__)

OTLP_ENDPOINT_ENV = "OTEL_EXPORTER_OTLP_ENDPOINT"


def setup_telemetry(app, service_name: str = "castmatch") -> bool:
    """Export spans over OTLP and instrument ``app`` when an endpoint is configured."""
    endpoint = os.getenv(OTLP_ENDPOINT_ENV)
    if not endpoint:
        return False

    try:
        from opentelemetry import trace
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError as exc:
        logger.warning("telemetry_disabled reason=%s", exc)
        return False

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
    trace.set_tracer_provider(provider)
    FastAPIInstrumentor.instrument_app(app)
    logger.info("telemetry_enabled", extra={"otlp_endpoint": endpoint})
    return True


@contextmanager
def trace_span(name: str, **attributes):
    """Open a span when OpenTelemetry is installed, otherwise yield None."""
    try:
        from opentelemetry import trace
    except ImportError:
        yield None
        return

    with trace.get_tracer("castmatch").start_as_current_span(name) as span:
        for key, value in attributes.items():
            if value is not None:
                span.set_attribute(key, value)
        yield span
