"""Fixed-window, per-client rate limiting for every route."""
from __future__ import annotations

from fastapi import FastAPI
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from votebox.core.config import Settings


def build_limiter(settings: Settings) -> Limiter:
    return Limiter(
        key_func=get_remote_address,
        default_limits=[settings.rate_limit],
        strategy="fixed-window",
        storage_uri=settings.rate_limit_storage_uri,
        headers_enabled=True,
        enabled=settings.rate_limit_enabled,
    )


def install_rate_limiting(application: FastAPI, settings: Settings) -> Limiter:
    """Attach a limiter to ``application``; exceeding it answers 429 with ``Retry-After``."""

    limiter = build_limiter(settings)
    application.state.limiter = limiter
    application.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]
    application.add_middleware(SlowAPIMiddleware)
    return limiter


__all__ = ["build_limiter", "install_rate_limiting"]
