"""Prometheus metrics for the voting API."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable

from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_LATENCY_SECONDS = Histogram(
    "http_request_latency_seconds",
    "Latency of HTTP requests in seconds.",
    labelnames=("method", "path"),
)
REQUEST_COUNTER = Counter(
    "http_requests_total",
    "Total number of HTTP requests processed.",
    labelnames=("method", "path", "status"),
)
REQUEST_ERROR_COUNTER = Counter(
    "http_request_errors_total",
    "Total number of HTTP requests that resulted in server errors.",
    labelnames=("method", "path", "status"),
)
VOTES_CAST_COUNTER = Counter(
    "votes_cast_total",
    "Vote attempts by transaction outcome.",
    labelnames=("outcome",),
)
VOTE_TRANSACTION_RETRIES = Counter(
    "vote_transaction_retries_total",
    "Vote transaction attempts that hit a write conflict.",
)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Middleware that records request metrics for Prometheus scraping."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:  # type: ignore[override]
        method = request.method
        start_time = time.perf_counter()
        status = "500"

        try:
            response = await call_next(request)
            status = str(response.status_code)
            return response
        finally:
            # templated route path once routing has matched
            route = request.scope.get("route")
            path = getattr(route, "path", None) or request.url.path
            if status.startswith("5"):
                REQUEST_ERROR_COUNTER.labels(method=method, path=path, status=status).inc()
            latency = time.perf_counter() - start_time
            REQUEST_LATENCY_SECONDS.labels(method=method, path=path).observe(latency)
            REQUEST_COUNTER.labels(method=method, path=path, status=status).inc()


metrics_router = APIRouter(tags=["observability"])


@metrics_router.get("/metrics", include_in_schema=False)
def metrics_endpoint() -> Response:
    """Expose Prometheus metrics for scraping."""
    payload = generate_latest()
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "PrometheusMiddleware",
    "REQUEST_COUNTER",
    "REQUEST_ERROR_COUNTER",
    "REQUEST_LATENCY_SECONDS",
    "VOTES_CAST_COUNTER",
    "VOTE_TRANSACTION_RETRIES",
    "metrics_endpoint",
    "metrics_router",
]
