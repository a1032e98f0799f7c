"""Voter ORM model."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from votebox.models.base import Base


class Voter(Base):
    """One row per subject; the primary key is what enforces a single vote."""

    __tablename__ = "voters"
    __table_args__ = (Index("ix_voters_candidate_id", "candidate_id"),)

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    candidate_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("candidates.id", ondelete="RESTRICT"), nullable=False
    )
    linkedin_profile: Mapped[str | None] = mapped_column(String(512))
    voted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


__all__ = ["Voter"]
