"""
OpenTelemetry Tracing
=====================

Distributed tracing for request flow visualization.

Pipeline stages open their own spans (``sql_guard.validate``,
``sql_guard.sanitize``, ``sql_guard.execute``) through the global tracer;
this module installs the provider and instruments the FastAPI app.
"""

import os
import threading
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

_provider_lock = threading.Lock()
_provider_installed = False


def setup_tracing(
    app: FastAPI,
    service_name: str = "sql-guard-api",
    version: str = "0.1.0",
    otlp_endpoint: Optional[str] = None,
) -> None:
    """
    Set up OpenTelemetry tracing for the application.

    The global tracer provider is installed once per process; every app
    passed in is instrumented.

    Args:
        app: FastAPI application instance
        service_name: Name of the service for traces
        version: Service version attached to the resource
        otlp_endpoint: OTLP collector endpoint (default: from env or
            localhost:4317; ``disabled`` turns export off)
    """
    global _provider_installed

    endpoint = otlp_endpoint or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "localhost:4317")

    with _provider_lock:
        if not _provider_installed:
            resource = Resource.create({
                SERVICE_NAME: service_name,
                "service.version": version,
                "deployment.environment": os.getenv("ENVIRONMENT", "development"),
            })
            provider = TracerProvider(resource=resource)

            if endpoint and endpoint != "disabled":
                try:
                    otlp_exporter = OTLPSpanExporter(endpoint=endpoint, insecure=True)
                    provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
                except Exception as e:
                    logger.warning("otlp_exporter_unavailable", endpoint=endpoint, error=str(e))

            trace.set_tracer_provider(provider)
            _provider_installed = True

    FastAPIInstrumentor.instrument_app(app)
