"""Structured access logging middleware."""
from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable
from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

_SENSITIVE_KEYS = {
    "code",
    "email",
    "token",
    "access_token",
    "firebasetoken",
    "client_secret",
}


def _mask_value(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _mask_value(value[key]) for key in value}
    if isinstance(value, list):
        return [_mask_value(item) for item in value]
    if isinstance(value, str) and "@" in value:
        name, _, domain = value.partition("@")
        hidden = name[0] + "***" if name else "***"
        return f"{hidden}@{domain}" if domain else "***@***"
    return value


def _mask_mapping(mapping: dict[str, Any]) -> dict[str, Any]:
    sanitized: dict[str, Any] = {}
    for key, value in mapping.items():
        if key.lower() in _SENSITIVE_KEYS:
            sanitized[key] = "***"
        else:
            sanitized[key] = _mask_value(value)
    return sanitized


@dataclass(slots=True)
class AccessLogRecord:
    """Structured log entry emitted by the middleware."""

    timestamp: str
    request_id: str
    method: str
    path: str
    status: int
    duration_ms: float
    actor: str | None
    ip_address: str | None
    query: dict[str, Any]
    body: Any

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "request_id": self.request_id,
            "method": self.method,
            "path": self.path,
            "status": self.status,
            "duration_ms": round(self.duration_ms, 2),
            "actor": self.actor,
            "ip_address": self.ip_address,
            "query": self.query,
            "body": self.body,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Log one JSON record per request and tag the response with ``X-Request-ID``."""

    def __init__(self, app: ASGIApp, *, logger: logging.Logger | None = None) -> None:
        super().__init__(app)
        self._logger = logger or logging.getLogger("access")

    async def dispatch(self, request: Request, call_next: Callable[[Request], Any]) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid4().hex
        request.state.request_id = request_id
        start = time.perf_counter()

        body_bytes = await request.body()

        masked_body = None
        if body_bytes:
            try:
                parsed = json.loads(body_bytes)
                masked_body = _mask_value(parsed)
                if isinstance(parsed, dict):
                    masked_body = _mask_mapping(masked_body)
            except (json.JSONDecodeError, UnicodeDecodeError):
                masked_body = "<binary>"

        response = await call_next(request)

        record = AccessLogRecord(
            timestamp=datetime.now(timezone.utc).isoformat(),
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=(time.perf_counter() - start) * 1000,
            actor=getattr(request.state, "actor_uid", None),
            ip_address=request.client.host if request.client else None,
            query=_mask_mapping(dict(request.query_params.multi_items())),
            body=masked_body,
        )
        self._logger.info(record.to_json())

        response.headers["X-Request-ID"] = request_id
        return response


__all__ = ["AccessLogMiddleware", "AccessLogRecord"]
