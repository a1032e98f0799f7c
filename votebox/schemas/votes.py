"""Schemas for the voting endpoints."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from votebox.store import CandidateRecord, VoterRecord


class VoteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    candidate_id: str | None = Field(default=None, alias="candidateId")
    linkedin_profile: str | None = Field(default=None, alias="linkedInProfile", max_length=512)


class MessageResponse(BaseModel):
    message: str


class CandidateRead(BaseModel):
    id: str
    name: str
    votes: int = Field(ge=0)

    @classmethod
    def from_record(cls, record: CandidateRecord) -> CandidateRead:
        return cls(id=record.id, name=record.name, votes=record.votes)


class VoterRead(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")
    name: str
    candidate_id: str = Field(alias="candidateId")
    linkedin_profile: str | None = Field(default=None, alias="linkedInProfile")
    voted_at: datetime | None = Field(default=None, alias="votedAt")

    @classmethod
    def from_record(cls, record: VoterRecord) -> VoterRead:
        return cls(
            user_id=record.user_id,
            name=record.name,
            candidate_id=record.candidate_id,
            linkedin_profile=record.linkedin_profile,
            voted_at=record.voted_at,
        )


__all__ = ["CandidateRead", "MessageResponse", "VoteRequest", "VoterRead"]
