"""
OpenTelemetry Tracing
=====================

Distributed tracing for request flow visualization. Pipeline stages open
their own spans through the global tracer provider configured here.
"""

import os
from typing import Optional

import structlog
from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

logger = structlog.get_logger(__name__)


def setup_tracing(
    app: FastAPI,
    service_name: str = "tender-sql-api",
    version: str = "0.1.0",
    environment: str = "development",
    otlp_endpoint: Optional[str] = None,
) -> None:
    """
    Set up OpenTelemetry tracing for the application.

    Args:
        app: FastAPI application instance
        service_name: Name of the service for traces
        version: Service version resource attribute
        environment: Deployment environment resource attribute
        otlp_endpoint: OTLP collector endpoint (default: from env or
            localhost:4317); "disabled" keeps spans in-process only
    """
    endpoint = otlp_endpoint or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "localhost:4317")

    resource = Resource.create({
        SERVICE_NAME: service_name,
        "service.version": version,
        "deployment.environment": environment,
    })

    provider = TracerProvider(resource=resource)

    if endpoint and endpoint != "disabled":
        otlp_exporter = OTLPSpanExporter(endpoint=endpoint, insecure=True)
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
        logger.info("OTLP span export enabled", endpoint=endpoint)

    trace.set_tracer_provider(provider)

    FastAPIInstrumentor.instrument_app(app)
