"""Records, errors and the store protocol shared by every backend."""
from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol


class StoreError(RuntimeError):
    """Base class for vote store failures."""


class TransactionConflictError(StoreError):
    """Raised when a transaction attempt lost a write conflict and may be retried."""


@dataclass(slots=True, frozen=True)
class CandidateRecord:
    id: str
    name: str
    votes: int = 0

    def to_json(self) -> dict[str, str | int]:
        return {"id": self.id, "name": self.name, "votes": self.votes}


@dataclass(slots=True, frozen=True)
class VoterRecord:
    """A cast vote, keyed by the voter's subject identifier."""

    user_id: str
    name: str
    candidate_id: str
    linkedin_profile: str | None = None
    voted_at: datetime | None = None

    def to_json(self) -> dict[str, str | None]:
        return {
            "userId": self.user_id,
            "name": self.name,
            "candidateId": self.candidate_id,
            "linkedInProfile": self.linkedin_profile,
            "votedAt": self.voted_at.isoformat() if self.voted_at is not None else None,
        }


class VoteOutcome(str, Enum):
    """Result returned by a transaction body; only ``OK`` commits."""

    OK = "ok"
    ALREADY_VOTED = "already_voted"
    CANDIDATE_NOT_FOUND = "candidate_not_found"

    @property
    def committed(self) -> bool:
        return self is VoteOutcome.OK


class TransactionHandle(Protocol):
    """Snapshot reads and staged writes available to a transaction body.

    Writes are buffered; the store applies them only when the body returns
    ``VoteOutcome.OK``.
    """

    def get_voter(self, user_id: str) -> VoterRecord | None: ...

    def get_candidate(self, candidate_id: str) -> CandidateRecord | None: ...

    def create_voter(
        self,
        user_id: str,
        *,
        name: str,
        candidate_id: str,
        linkedin_profile: str | None,
    ) -> None: ...

    def increment_votes(self, candidate_id: str, amount: int = 1) -> None: ...


TransactionBody = Callable[[TransactionHandle], VoteOutcome]


class VoteStore(Protocol):
    """Document-store contract consumed by the voting service and routes."""

    def run_transaction(self, body: TransactionBody, *, timeout: float | None = None) -> VoteOutcome:
        """Run a single attempt of ``body`` atomically.

        ``timeout`` is the number of seconds the attempt may spend waiting on
        the backend; ``None`` leaves the backend default in place. Raises
        ``TransactionConflictError`` when the attempt must be retried.
        """
        ...

    def list_candidates(self) -> list[CandidateRecord]: ...

    def list_voters(self) -> list[VoterRecord]: ...

    def seed_candidates(self, candidates: Iterable[CandidateRecord]) -> int: ...

    def close(self) -> None: ...


__all__ = [
    "CandidateRecord",
    "StoreError",
    "TransactionBody",
    "TransactionConflictError",
    "TransactionHandle",
    "VoteOutcome",
    "VoteStore",
    "VoterRecord",
]
