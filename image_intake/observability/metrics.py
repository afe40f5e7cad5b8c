"""Prometheus metrics for the API."""

import time
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware


class Metrics:
    """Container for Prometheus metrics."""

    def __init__(self, namespace: str = "image_intake"):
        self.namespace = namespace

        self.requests_total = Counter(
            f"{namespace}_requests_total",
            "Upload requests by endpoint and HTTP status",
            ["endpoint", "status"],
        )

        self.request_duration_seconds = Histogram(
            f"{namespace}_request_duration_seconds",
            "Upload request duration in seconds",
            ["endpoint"],
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
        )

        self.validations_total = Counter(
            f"{namespace}_validations_total",
            "Upload validations by outcome",
            ["outcome", "reason"],
        )

        self.transforms_applied = Counter(
            f"{namespace}_transforms_applied_total",
            "Orientation transforms applied to accepted uploads",
            ["transform"],
        )

        self.upload_size_bytes = Histogram(
            f"{namespace}_upload_size_bytes",
            "Declared size of validated uploads",
            buckets=(512, 4096, 65536, 262144, 1048576, 4194304, 16777216),
        )

    def record_outcome(self, outcome: str, reason: str = "", transform: str | None = None) -> None:
        """Count a single validation outcome."""
        self.validations_total.labels(outcome=outcome, reason=reason).inc()
        if transform and transform != "identity":
            self.transforms_applied.labels(transform=transform).inc()


_metrics: Metrics | None = None


def get_metrics() -> Metrics:
    """Return the global metrics instance."""
    global _metrics
    if _metrics is None:
        _metrics = Metrics()
    return _metrics


def metrics_endpoint() -> Response:
    """/metrics endpoint for Prometheus scraping."""
    return PlainTextResponse(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Times the upload endpoints; every other path passes straight through."""

    TRACKED_ENDPOINTS = frozenset({"/validate", "/normalize"})

    def __init__(self, app):
        super().__init__(app)
        self.metrics = get_metrics()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        endpoint = request.url.path.rstrip("/")
        if endpoint not in self.TRACKED_ENDPOINTS:
            return await call_next(request)

        start_time = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            self.metrics.requests_total.labels(endpoint=endpoint, status=str(status_code)).inc()
            self.metrics.request_duration_seconds.labels(endpoint=endpoint).observe(
                time.perf_counter() - start_time
            )
