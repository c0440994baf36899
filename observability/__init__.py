"""
Observability Module
====================

Metrics, tracing and structured logging for the SQL Guard service.
"""

from observability.metrics import setup_metrics, track_pipeline_metrics
from observability.tracing import setup_tracing
from observability.logging_config import setup_logging, get_logger

__all__ = [
    "setup_metrics",
    "track_pipeline_metrics",
    "setup_tracing",
    "setup_logging",
    "get_logger",
]
