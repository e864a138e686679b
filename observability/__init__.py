"""
Observability Module
====================

Metrics, tracing, and structured logging for the API.
"""

from observability.logging_config import bind_context, clear_context, get_logger, setup_logging
from observability.metrics import metrics_endpoint, setup_metrics, track_query_metrics
from observability.tracing import setup_tracing

__all__ = [
    "setup_metrics",
    "track_query_metrics",
    "metrics_endpoint",
    "setup_tracing",
    "setup_logging",
    "get_logger",
    "bind_context",
    "clear_context",
]
