"""Cloud Firestore backend built on the ``firebase-admin`` SDK."""
from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from firebase_admin import App, firestore
from google.api_core import exceptions as gcp_exceptions

from votebox.store.base import (
    CandidateRecord,
    StoreError,
    TransactionBody,
    TransactionConflictError,
    VoteOutcome,
    VoterRecord,
)

logger = logging.getLogger(__name__)

CANDIDATES_COLLECTION = "candidates"
VOTERS_COLLECTION = "voters"

_CONFLICT_ERRORS = (gcp_exceptions.Aborted, gcp_exceptions.Conflict, gcp_exceptions.AlreadyExists)


def _candidate_from_snapshot(snapshot: Any) -> CandidateRecord:
    data = snapshot.to_dict() or {}
    return CandidateRecord(
        id=snapshot.id,
        name=str(data.get("name", "")),
        votes=max(0, int(data.get("votes", 0) or 0)),
    )


def _voter_from_snapshot(snapshot: Any) -> VoterRecord:
    data = snapshot.to_dict() or {}
    return VoterRecord(
        user_id=snapshot.id,
        name=data.get("name", "Anonymous"),
        candidate_id=data.get("candidateId", ""),
        linkedin_profile=data.get("linkedInProfile"),
        # None until the server timestamp is materialised
        voted_at=data.get("votedAt"),
    )


class _FirestoreTransaction:
    def __init__(self, store: FirestoreVoteStore, transaction: Any, *, timeout: float | None = None) -> None:
        self._store = store
        self._transaction = transaction
        self._timeout = timeout
        self._new_voters: list[tuple[str, dict[str, Any]]] = []
        self._increments: dict[str, int] = {}

    def get_voter(self, user_id: str) -> VoterRecord | None:
        snapshot = self._store.voters.document(user_id).get(
            transaction=self._transaction, timeout=self._timeout
        )
        return _voter_from_snapshot(snapshot) if snapshot.exists else None

    def get_candidate(self, candidate_id: str) -> CandidateRecord | None:
        snapshot = self._store.candidates.document(candidate_id).get(
            transaction=self._transaction, timeout=self._timeout
        )
        return _candidate_from_snapshot(snapshot) if snapshot.exists else None

    def create_voter(
        self,
        user_id: str,
        *,
        name: str,
        candidate_id: str,
        linkedin_profile: str | None,
    ) -> None:
        self._new_voters.append(
            (
                user_id,
                {
                    "name": name,
                    "candidateId": candidate_id,
                    "linkedInProfile": linkedin_profile,
                    "votedAt": firestore.SERVER_TIMESTAMP,
                },
            )
        )

    def increment_votes(self, candidate_id: str, amount: int = 1) -> None:
        self._increments[candidate_id] = self._increments.get(candidate_id, 0) + amount

    def apply(self) -> None:
        for user_id, payload in self._new_voters:
            self._transaction.create(self._store.voters.document(user_id), payload)
        for candidate_id, amount in self._increments.items():
            self._transaction.update(
                self._store.candidates.document(candidate_id),
                {"votes": firestore.Increment(amount)},
            )


class FirestoreVoteStore:
    """Vote store backed by the ``candidates`` and ``voters`` collections."""

    def __init__(self, client: Any) -> None:
        self._client = client
        self.candidates = client.collection(CANDIDATES_COLLECTION)
        self.voters = client.collection(VOTERS_COLLECTION)

    @classmethod
    def from_app(cls, app: App) -> FirestoreVoteStore:
        return cls(firestore.client(app=app))

    def run_transaction(self, body: TransactionBody, *, timeout: float | None = None) -> VoteOutcome:
        # Retries belong to the caller; a single attempt per call.
        transaction = self._client.transaction(max_attempts=1)
        reached_commit = False

        @firestore.transactional
        def attempt(txn: Any) -> VoteOutcome:
            nonlocal reached_commit
            handle = _FirestoreTransaction(self, txn, timeout=timeout)
            outcome = body(handle)
            if outcome.committed:
                handle.apply()
            reached_commit = True
            return outcome

        try:
            return attempt(transaction)
        except _CONFLICT_ERRORS as exc:
            raise TransactionConflictError(str(exc)) from exc
        except ValueError as exc:
            # the transactional wrapper reports a spent attempt budget as a
            # ValueError chained to the Aborted commit
            if isinstance(exc.__cause__, _CONFLICT_ERRORS) or reached_commit:
                raise TransactionConflictError(str(exc.__cause__ or exc)) from exc
            raise
        except gcp_exceptions.GoogleAPICallError as exc:
            raise StoreError("Firestore transaction failed") from exc

    def list_candidates(self) -> list[CandidateRecord]:
        try:
            return [_candidate_from_snapshot(doc) for doc in self.candidates.stream()]
        except gcp_exceptions.GoogleAPICallError as exc:
            raise StoreError("Unable to read candidates") from exc

    def list_voters(self) -> list[VoterRecord]:
        try:
            return [_voter_from_snapshot(doc) for doc in self.voters.stream()]
        except gcp_exceptions.GoogleAPICallError as exc:
            raise StoreError("Unable to read voters") from exc

    def seed_candidates(self, candidates: Iterable[CandidateRecord]) -> int:
        created = 0
        for candidate in candidates:
            try:
                self.candidates.document(candidate.id).create(
                    {"name": candidate.name, "votes": candidate.votes}
                )
            except gcp_exceptions.AlreadyExists:
                logger.info("Candidate %s already exists", candidate.id)
                continue
            created += 1
        return created

    def close(self) -> None:
        self._client.close()


__all__ = ["CANDIDATES_COLLECTION", "FirestoreVoteStore", "VOTERS_COLLECTION"]
