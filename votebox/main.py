"""FastAPI application entrypoint."""
from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from votebox.api.errors import register_exception_handlers
from votebox.api.middleware import BodySizeLimitMiddleware, SecurityHeadersMiddleware
from votebox.api.ratelimit import install_rate_limiting
from votebox.api.routes import register_routes
from votebox.core.config import Settings, get_settings
from votebox.core.logging import configure_logging
from votebox.identity import IdentityVerifier, build_identity_verifier
from votebox.obs import (
    AccessLogMiddleware,
    PrometheusMiddleware,
    initialise_tracing,
    instrument_fastapi_app,
    metrics_router,
)
from votebox.services.linkedin import LinkedInClient
from votebox.store import VoteStore, build_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    state = application.state
    settings: Settings = state.settings
    owned: list[VoteStore | LinkedInClient] = []

    if state.store is None:
        state.store = build_store(settings)
        owned.append(state.store)
    if state.identity is None:
        state.identity = build_identity_verifier(settings)
    if state.linkedin is None:
        state.linkedin = LinkedInClient.from_settings(settings)
        owned.append(state.linkedin)
        if not state.linkedin.configured:
            logger.warning("LinkedIn credentials are not configured; /auth/linkedin will answer 503")

    logger.info(
        "%s started with store=%s identity=%s",
        settings.app_name,
        type(state.store).__name__,
        type(state.identity).__name__,
    )
    try:
        yield
    finally:
        for resource in owned:
            resource.close()


def create_application(
    settings: Settings | None = None,
    *,
    store: VoteStore | None = None,
    identity: IdentityVerifier | None = None,
    linkedin: LinkedInClient | None = None,
) -> FastAPI:
    """Application factory used by ASGI servers and tests.

    Collaborators not passed in are built from ``settings`` when the
    application starts, and closed when it stops.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_config_path, level=settings.log_level)

    if settings.enable_tracing:
        initialise_tracing(service_name=settings.app_name, endpoint=settings.otel_exporter_endpoint)

    application = FastAPI(
        title=settings.app_name,
        version=settings.version,
        docs_url=settings.docs_url,
        redoc_url=settings.redoc_url,
        openapi_url=settings.openapi_url,
        lifespan=_lifespan,
    )
    application.state.settings = settings
    application.state.store = store
    application.state.identity = identity
    application.state.linkedin = linkedin

    # added innermost first
    install_rate_limiting(application, settings)
    if settings.enable_metrics:
        application.add_middleware(PrometheusMiddleware)
        application.include_router(metrics_router)
    application.add_middleware(AccessLogMiddleware)
    application.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.max_body_bytes)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_middleware(SecurityHeadersMiddleware)

    register_exception_handlers(application)
    register_routes(application)

    if settings.enable_tracing:
        instrument_fastapi_app(application)

    return application


app = create_application()


def run() -> None:
    """Console entry point serving ``app`` with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run("votebox.main:app", host=settings.host, port=settings.port, log_config=None)


__all__ = ["app", "create_application", "run"]
