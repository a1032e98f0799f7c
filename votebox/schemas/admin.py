"""Schemas for administrative endpoints."""
from __future__ import annotations

from pydantic import BaseModel, Field


class MakeAdminRequest(BaseModel):
    uid: str | None = Field(default=None, max_length=128)


__all__ = ["MakeAdminRequest"]
