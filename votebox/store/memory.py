"""Process-local vote store with optimistic concurrency control."""
from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from threading import Lock

from votebox.store.base import (
    CandidateRecord,
    TransactionBody,
    TransactionConflictError,
    VoteOutcome,
    VoterRecord,
)

_Key = tuple[str, str]
_CANDIDATES = "candidates"
_VOTERS = "voters"


class _MemoryTransaction:
    """Records the version of every document read and buffers writes."""

    def __init__(self, store: InMemoryVoteStore) -> None:
        self._store = store
        self.read_versions: dict[_Key, int] = {}
        self.new_voters: list[VoterRecord] = []
        self.increments: dict[str, int] = {}

    def get_voter(self, user_id: str) -> VoterRecord | None:
        record, version = self._store._read(_VOTERS, user_id)
        self.read_versions.setdefault((_VOTERS, user_id), version)
        return record  # type: ignore[return-value]

    def get_candidate(self, candidate_id: str) -> CandidateRecord | None:
        record, version = self._store._read(_CANDIDATES, candidate_id)
        self.read_versions.setdefault((_CANDIDATES, candidate_id), version)
        return record  # type: ignore[return-value]

    def create_voter(
        self,
        user_id: str,
        *,
        name: str,
        candidate_id: str,
        linkedin_profile: str | None,
    ) -> None:
        self.new_voters.append(
            VoterRecord(
                user_id=user_id,
                name=name,
                candidate_id=candidate_id,
                linkedin_profile=linkedin_profile,
            )
        )

    def increment_votes(self, candidate_id: str, amount: int = 1) -> None:
        self.increments[candidate_id] = self.increments.get(candidate_id, 0) + amount


class InMemoryVoteStore:
    """Thread-safe store used for local runs and tests.

    Each attempt validates, under a single lock, that nothing it read has
    changed since; a stale read raises ``TransactionConflictError`` and the
    staged writes are dropped.
    """

    def __init__(self, *, clock: Callable[[], datetime] | None = None) -> None:
        self._documents: dict[_Key, CandidateRecord | VoterRecord] = {}
        self._versions: dict[_Key, int] = {}
        self._lock = Lock()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _read(self, collection: str, key: str) -> tuple[CandidateRecord | VoterRecord | None, int]:
        with self._lock:
            return self._documents.get((collection, key)), self._versions.get((collection, key), 0)

    def _write(self, key: _Key, record: CandidateRecord | VoterRecord) -> None:
        self._documents[key] = record
        self._versions[key] = self._versions.get(key, 0) + 1

    def run_transaction(self, body: TransactionBody, *, timeout: float | None = None) -> VoteOutcome:
        transaction = _MemoryTransaction(self)
        outcome = body(transaction)
        if not outcome.committed:
            return outcome

        if not self._lock.acquire(timeout=-1 if timeout is None else max(timeout, 0.0)):
            raise TransactionConflictError("Timed out waiting for the store lock")
        try:
            for key, version in transaction.read_versions.items():
                if self._versions.get(key, 0) != version:
                    raise TransactionConflictError(f"{key[0]}/{key[1]} changed during transaction")

            committed_at = self._clock()
            for voter in transaction.new_voters:
                key = (_VOTERS, voter.user_id)
                if key in self._documents:
                    raise TransactionConflictError(f"voters/{voter.user_id} already exists")
                self._write(
                    key,
                    VoterRecord(
                        user_id=voter.user_id,
                        name=voter.name,
                        candidate_id=voter.candidate_id,
                        linkedin_profile=voter.linkedin_profile,
                        voted_at=committed_at,
                    ),
                )
            for candidate_id, amount in transaction.increments.items():
                key = (_CANDIDATES, candidate_id)
                current = self._documents.get(key)
                if not isinstance(current, CandidateRecord):
                    raise TransactionConflictError(f"candidates/{candidate_id} disappeared")
                self._write(
                    key,
                    CandidateRecord(id=current.id, name=current.name, votes=current.votes + amount),
                )
        finally:
            self._lock.release()
        return outcome

    def list_candidates(self) -> list[CandidateRecord]:
        with self._lock:
            return [
                record
                for (collection, _), record in self._documents.items()
                if collection == _CANDIDATES and isinstance(record, CandidateRecord)
            ]

    def list_voters(self) -> list[VoterRecord]:
        with self._lock:
            return [
                record
                for (collection, _), record in self._documents.items()
                if collection == _VOTERS and isinstance(record, VoterRecord)
            ]

    def seed_candidates(self, candidates: Iterable[CandidateRecord]) -> int:
        created = 0
        with self._lock:
            for candidate in candidates:
                key = (_CANDIDATES, candidate.id)
                if key in self._documents:
                    continue
                self._write(key, candidate)
                created += 1
        return created

    def close(self) -> None:
        return None


__all__ = ["InMemoryVoteStore"]
