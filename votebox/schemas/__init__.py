"""Pydantic schemas package."""

from .admin import MakeAdminRequest
from .votes import CandidateRead, MessageResponse, VoteRequest, VoterRead

__all__ = [
    "CandidateRead",
    "MakeAdminRequest",
    "MessageResponse",
    "VoteRequest",
    "VoterRead",
]
