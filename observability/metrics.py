"""
Prometheus Metrics
==================

Question outcomes, fallback reasons and HTTP traffic, exported from a
dedicated registry at ``/metrics``.
"""

import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)

from tender_sql.models import ExecutionRecord

ASK_PATH = "/api/ai/ask"

# Custom registry so tests and multiple apps do not collide with the default one
REGISTRY = CollectorRegistry()

APP_INFO = Info(
    "tender_sql",
    "Tender SQL assistant information",
    registry=REGISTRY,
)

# Query metrics
QUERIES_TOTAL = Counter(
    "tender_sql_queries_total",
    "Total number of questions processed",
    ["outcome"],  # success, fallback, failure
    registry=REGISTRY,
)

FALLBACKS_TOTAL = Counter(
    "tender_sql_fallbacks_total",
    "Fallback queries used, by reason",
    ["reason"],
    registry=REGISTRY,
)

QUERY_DURATION = Histogram(
    "tender_sql_query_duration_seconds",
    "End-to-end question processing duration in seconds",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
    registry=REGISTRY,
)

RESULT_ROWS = Histogram(
    "tender_sql_result_rows",
    "Rows returned per answered question",
    buckets=[0, 1, 5, 10, 50, 100, 500, 1000],
    registry=REGISTRY,
)

ACTIVE_QUERIES = Gauge(
    "tender_sql_active_queries",
    "Number of questions currently being processed",
    registry=REGISTRY,
)

# HTTP metrics, labelled by route template to keep cardinality bounded
HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "HTTP requests served, by route and status code",
    ["method", "endpoint", "status"],
    registry=REGISTRY,
)

HTTP_REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds, by route",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
    registry=REGISTRY,
)


def _endpoint_label(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


def setup_metrics(app: FastAPI, version: str, environment: str) -> None:
    """
    Publish the info metric and install the HTTP metrics middleware.

    Args:
        app: FastAPI application instance
        version: Application version reported in the info metric
        environment: Deployment environment name
    """
    APP_INFO.info({"version": version, "environment": environment})

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next: Callable) -> Response:
        """Count and time every request; track in-flight questions."""
        asking = request.url.path == ASK_PATH
        if asking:
            ACTIVE_QUERIES.inc()

        started = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            if asking:
                ACTIVE_QUERIES.dec()

        endpoint = _endpoint_label(request)
        HTTP_REQUESTS_TOTAL.labels(request.method, endpoint, str(response.status_code)).inc()
        HTTP_REQUEST_DURATION.labels(request.method, endpoint).observe(
            time.perf_counter() - started
        )
        return response


def query_outcome(record: ExecutionRecord) -> str:
    """Classify a finished record as success, fallback or failure."""
    if not record.success:
        return "failure"
    return "fallback" if record.fallback_used else "success"


def track_query_metrics(record: ExecutionRecord) -> None:
    """
    Track metrics for a completed question.

    Args:
        record: The persisted execution record
    """
    QUERIES_TOTAL.labels(outcome=query_outcome(record)).inc()
    QUERY_DURATION.observe(record.execution_time_ms / 1000)

    if record.fallback_reason is not None:
        FALLBACKS_TOTAL.labels(reason=record.fallback_reason.value).inc()

    if record.success:
        RESULT_ROWS.observe(record.result_count)


async def metrics_endpoint(request: Request) -> Response:
    """Prometheus metrics in text exposition format."""
    return Response(
        content=generate_latest(REGISTRY),
        media_type=CONTENT_TYPE_LATEST,
    )
