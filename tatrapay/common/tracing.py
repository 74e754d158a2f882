"""OpenTelemetry setup helpers for the payment API and gateway client."""

from contextlib import contextmanager
from typing import Iterator

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

GATEWAY_TRACER_NAME = "tatrapay.gateway_client"


def setup_tracing(service_name: str, endpoint: str, gateway_environment: str) -> None:
    """Register a tracer provider exporting to OTLP HTTP, tagged with the gateway environment."""

    resource = Resource.create(
        {"service.name": service_name, "tatrapay.environment": gateway_environment}
    )
    provider = TracerProvider(resource=resource)
    exporter = OTLPSpanExporter(endpoint=endpoint)
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)


def instrument_app(app: FastAPI) -> None:
    """Attach FastAPI auto-instrumentation for request spans."""

    FastAPIInstrumentor.instrument_app(app)


@contextmanager
def gateway_span(
    operation: str, method: str, path: str, tracer: trace.Tracer | None = None
) -> Iterator[trace.Span]:
    """Client span around one TatraPay+ API call.

    Without a configured provider the global tracer is a no-op.
    """

    tracer = tracer or trace.get_tracer(GATEWAY_TRACER_NAME)
    with tracer.start_as_current_span(f"tatrapay.{operation}", kind=trace.SpanKind.CLIENT) as span:
        span.set_attribute("http.request.method", method)
        span.set_attribute("tatrapay.operation", operation)
        span.set_attribute("tatrapay.path", path)
        yield span
