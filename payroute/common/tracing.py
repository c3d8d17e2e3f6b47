"""OpenTelemetry setup for the routing API and rail submissions."""

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from payroute.common.config import settings

# Resolves against whichever provider `setup_tracing` installs.
tracer = trace.get_tracer("payroute.router")


def setup_tracing(service_name: str) -> TracerProvider:
    """Register a tracer provider; spans are exported only when tracing is enabled."""

    provider = TracerProvider(resource=Resource.create({"service.name": service_name, "service.namespace": "payroute"}))
    if settings.tracing_enabled:
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otel_exporter_otlp_endpoint)))
    trace.set_tracer_provider(provider)
    return provider


def instrument_app(app: FastAPI) -> None:
    """Request spans for API routes; probe and scrape endpoints are skipped."""

    FastAPIInstrumentor.instrument_app(app, excluded_urls="health,metrics")
