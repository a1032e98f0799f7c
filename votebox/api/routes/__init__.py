"""Top level API router registration."""
from fastapi import FastAPI

from votebox.api.routes import admin, auth, health, votes


def register_routes(application: FastAPI) -> None:
    """Register all API routers with the FastAPI application."""
    application.include_router(health.router, tags=["health"])
    application.include_router(auth.router, tags=["auth"])
    application.include_router(votes.router, tags=["votes"])
    application.include_router(admin.router, tags=["admin"])


__all__ = ["register_routes"]
