"""Observability utilities."""

from .access_log import AccessLogMiddleware, AccessLogRecord
from .metrics import (
    REQUEST_COUNTER,
    REQUEST_ERROR_COUNTER,
    REQUEST_LATENCY_SECONDS,
    VOTE_TRANSACTION_RETRIES,
    VOTES_CAST_COUNTER,
    PrometheusMiddleware,
    metrics_router,
)
from .tracing import (
    initialise_tracing,
    instrument_fastapi_app,
    instrument_sqlalchemy_engine,
    traced,
)

__all__ = [
    "AccessLogMiddleware",
    "AccessLogRecord",
    "PrometheusMiddleware",
    "REQUEST_COUNTER",
    "REQUEST_ERROR_COUNTER",
    "REQUEST_LATENCY_SECONDS",
    "VOTES_CAST_COUNTER",
    "VOTE_TRANSACTION_RETRIES",
    "metrics_router",
    "initialise_tracing",
    "instrument_fastapi_app",
    "instrument_sqlalchemy_engine",
    "traced",
]
