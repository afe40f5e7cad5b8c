"""Observability: structured logging and Prometheus metrics."""

from .logging import get_logger, setup_logging
from .metrics import PrometheusMiddleware, get_metrics, metrics_endpoint

__all__ = [
    "setup_logging",
    "get_logger",
    "get_metrics",
    "metrics_endpoint",
    "PrometheusMiddleware",
]
