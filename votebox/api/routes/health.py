"""Health and readiness endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from votebox.api.deps import get_app_settings
from votebox.core.config import Settings

router = APIRouter()

LIVENESS_MESSAGE = "Voting Backend Running ✅"


@router.get("/", response_class=PlainTextResponse, summary="Liveness probe")
def root() -> str:
    return LIVENESS_MESSAGE


@router.get("/healthz", summary="Liveness check")
def health_check(settings: Settings = Depends(get_app_settings)) -> dict[str, str]:
    return {"status": "ok", "service": settings.app_name}


@router.get("/readyz", summary="Readiness check")
def readiness_check(settings: Settings = Depends(get_app_settings)) -> dict[str, str]:
    return {"status": "ready", "service": settings.app_name, "store": settings.store_backend}
