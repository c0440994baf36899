"""
Prometheus Metrics
==================

Pipeline and HTTP metrics for monitoring and alerting.
"""

import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    Info,
    generate_latest,
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    multiprocess,
)

# Create a custom registry for this application
REGISTRY = CollectorRegistry()

APP_INFO = Info(
    "sql_guard",
    "SQL Guard application information",
    registry=REGISTRY,
)

# Pipeline metrics
PIPELINE_RUNS_TOTAL = Counter(
    "sql_guard_pipeline_runs_total",
    "Total statements processed by the safety pipeline",
    ["status"],  # allowed, blocked, error
    registry=REGISTRY,
)

PIPELINE_DURATION = Histogram(
    "sql_guard_pipeline_duration_seconds",
    "End-to-end pipeline duration in seconds",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
    registry=REGISTRY,
)

PIPELINE_ERRORS_TOTAL = Counter(
    "sql_guard_pipeline_errors_total",
    "Pipeline failures by error kind",
    ["kind"],
    registry=REGISTRY,
)

BLOCKED_COLUMNS_TOTAL = Counter(
    "sql_guard_blocked_columns_total",
    "Sensitive columns removed from projections",
    ["category"],
    registry=REGISTRY,
)

AUDIT_READS_TOTAL = Counter(
    "sql_guard_audit_reads_total",
    "Audit trail queries served",
    ["kind"],  # history, violations
    registry=REGISTRY,
)

# HTTP metrics
HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
    registry=REGISTRY,
)

HTTP_REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
    registry=REGISTRY,
)

ACTIVE_QUERIES = Gauge(
    "sql_guard_active_queries",
    "Number of queries currently being processed",
    registry=REGISTRY,
)


def setup_metrics(app: FastAPI, version: str, environment: str) -> None:
    """
    Set up Prometheus metrics for the FastAPI application.

    Args:
        app: FastAPI application instance
        version: Service version reported in ``sql_guard_info``
        environment: Deployment environment reported in ``sql_guard_info``
    """
    APP_INFO.info({
        "version": version,
        "environment": environment,
    })

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next: Callable) -> Response:
        """Middleware to track HTTP metrics."""
        start_time = time.perf_counter()

        is_query_endpoint = request.url.path == "/api/v1/query"
        if is_query_endpoint:
            ACTIVE_QUERIES.inc()

        try:
            response = await call_next(request)
            duration = time.perf_counter() - start_time

            HTTP_REQUESTS_TOTAL.labels(
                method=request.method,
                endpoint=request.url.path,
                status=response.status_code,
            ).inc()

            HTTP_REQUEST_DURATION.labels(
                method=request.method,
                endpoint=request.url.path,
            ).observe(duration)

            return response
        finally:
            if is_query_endpoint:
                ACTIVE_QUERIES.dec()


def track_pipeline_metrics(
    status: str,
    duration_seconds: float,
    error_kind: str | None = None,
    blocked_categories: list[str] | None = None,
) -> None:
    """
    Track metrics for a completed pipeline run.

    Args:
        status: Audit status of the run (allowed, blocked, error)
        duration_seconds: Total processing time
        error_kind: Error code when the run failed
        blocked_categories: Catalog category of every blocked column
    """
    PIPELINE_RUNS_TOTAL.labels(status=status).inc()
    PIPELINE_DURATION.observe(duration_seconds)

    if error_kind:
        PIPELINE_ERRORS_TOTAL.labels(kind=error_kind).inc()

    for category in blocked_categories or []:
        BLOCKED_COLUMNS_TOTAL.labels(category=category).inc()


async def metrics_endpoint(request: Request) -> Response:
    """
    Prometheus metrics endpoint.

    Returns metrics in Prometheus text format.
    """
    # Handle multiprocess mode if using gunicorn
    try:
        registry = CollectorRegistry()
        multiprocess.MultiProcessCollector(registry)
        metrics = generate_latest(registry)
    except ValueError:
        # Not in multiprocess mode
        metrics = generate_latest(REGISTRY)

    return Response(
        content=metrics,
        media_type=CONTENT_TYPE_LATEST,
    )
