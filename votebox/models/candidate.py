"""Candidate ORM model."""
from __future__ import annotations

from sqlalchemy import CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from votebox.models.base import Base


class Candidate(Base):
    """A candidate seeded out-of-band; only ``votes`` changes afterwards."""

    __tablename__ = "candidates"
    __table_args__ = (CheckConstraint("votes >= 0", name="ck_candidates_votes_non_negative"),)

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    votes: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")


__all__ = ["Candidate"]
