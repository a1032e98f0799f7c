from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from firebase_admin import firestore
from google.api_core import exceptions as gcp_exceptions

from votebox.services.voting import vote_transaction
from votebox.store import CandidateRecord, StoreError, TransactionConflictError, VoteOutcome
from votebox.store.firestore import FirestoreVoteStore, _FirestoreTransaction


def _snapshot(doc_id: str, data: dict[str, object] | None) -> SimpleNamespace:
    return SimpleNamespace(id=doc_id, exists=data is not None, to_dict=lambda: data)


def _store() -> tuple[FirestoreVoteStore, dict[str, MagicMock]]:
    collections = {"candidates": MagicMock(name="candidates"), "voters": MagicMock(name="voters")}
    client = MagicMock()
    client.collection.side_effect = lambda name: collections[name]
    return FirestoreVoteStore(client), collections


def test_transaction_reads_through_the_transaction() -> None:
    store, collections = _store()
    collections["voters"].document.return_value.get.return_value = _snapshot("u1", None)
    candidate_doc = collections["candidates"].document.return_value
    candidate_doc.get.return_value = _snapshot("A", {"name": "Alice", "votes": 3})
    txn = MagicMock()

    handle = _FirestoreTransaction(store, txn)

    assert handle.get_voter("u1") is None
    assert handle.get_candidate("A") == CandidateRecord(id="A", name="Alice", votes=3)
    collections["voters"].document.return_value.get.assert_called_once_with(transaction=txn, timeout=None)


def test_apply_creates_voter_and_increments_candidate() -> None:
    store, collections = _store()
    txn = MagicMock()
    handle = _FirestoreTransaction(store, txn)

    handle.create_voter("u1", name="Ada", candidate_id="A", linkedin_profile=None)
    handle.increment_votes("A")
    handle.apply()

    collections["voters"].document.assert_called_with("u1")
    created_payload = txn.create.call_args.args[1]
    assert created_payload["candidateId"] == "A"
    assert created_payload["votedAt"] is firestore.SERVER_TIMESTAMP
    update_payload = txn.update.call_args.args[1]
    assert isinstance(update_payload["votes"], firestore.Increment)


def test_lists_map_documents_to_records() -> None:
    store, collections = _store()
    collections["candidates"].stream.return_value = [_snapshot("A", {"name": "Alice", "votes": 2})]
    collections["voters"].stream.return_value = [
        _snapshot("u1", {"name": "Ada", "candidateId": "A", "linkedInProfile": None, "votedAt": None})
    ]

    assert store.list_candidates() == [CandidateRecord(id="A", name="Alice", votes=2)]
    [voter] = store.list_voters()
    assert voter.user_id == "u1"
    assert voter.voted_at is None


def test_seed_skips_existing_candidates() -> None:
    store, collections = _store()
    existing = MagicMock()
    existing.create.side_effect = gcp_exceptions.AlreadyExists("exists")
    fresh = MagicMock()
    collections["candidates"].document.side_effect = lambda doc_id: existing if doc_id == "A" else fresh

    created = store.seed_candidates(
        [CandidateRecord(id="A", name="Alice"), CandidateRecord(id="B", name="Bob")]
    )

    assert created == 1
    fresh.create.assert_called_once_with({"name": "Bob", "votes": 0})


def _transactional_store(
    voter: dict[str, object] | None = None,
    candidate: dict[str, object] | None = None,
) -> tuple[FirestoreVoteStore, dict[str, MagicMock], MagicMock, MagicMock]:
    store, collections = _store()
    collections["voters"].document.return_value.get.return_value = _snapshot("u1", voter)
    collections["candidates"].document.return_value.get.return_value = _snapshot("A", candidate)
    txn = MagicMock(name="transaction")
    txn._max_attempts = 1
    txn._read_only = False
    txn._id = b"txn-1"
    store._client.transaction.return_value = txn
    return store, collections, store._client, txn


def _ada_votes_for_a():
    return vote_transaction("u1", "A", name="Ada", profile_ref=None)


def test_run_transaction_commits_one_attempt() -> None:
    store, collections, client, txn = _transactional_store(candidate={"name": "Alice", "votes": 0})

    outcome = store.run_transaction(_ada_votes_for_a(), timeout=2.5)

    assert outcome is VoteOutcome.OK
    client.transaction.assert_called_once_with(max_attempts=1)
    txn._commit.assert_called_once_with()
    txn.create.assert_called_once()
    txn.update.assert_called_once()
    collections["voters"].document.return_value.get.assert_called_once_with(transaction=txn, timeout=2.5)
    collections["candidates"].document.return_value.get.assert_called_once_with(transaction=txn, timeout=2.5)


@pytest.mark.parametrize(
    "voter, candidate, expected",
    [
        ({"name": "Ada", "candidateId": "B"}, {"name": "Alice", "votes": 0}, VoteOutcome.ALREADY_VOTED),
        (None, None, VoteOutcome.CANDIDATE_NOT_FOUND),
    ],
)
def test_rejections_stage_no_writes(voter, candidate, expected: VoteOutcome) -> None:
    store, _, _, txn = _transactional_store(voter=voter, candidate=candidate)

    assert store.run_transaction(_ada_votes_for_a()) is expected

    txn.create.assert_not_called()
    txn.update.assert_not_called()


@pytest.mark.parametrize(
    "error",
    [
        gcp_exceptions.Aborted("too much contention"),
        gcp_exceptions.Conflict("conflict"),
        gcp_exceptions.AlreadyExists("voters/u1 exists"),
    ],
)
def test_commit_contention_is_reported_as_conflict(error: Exception) -> None:
    store, _, _, txn = _transactional_store(candidate={"name": "Alice", "votes": 0})
    txn._commit.side_effect = error

    with pytest.raises(TransactionConflictError):
        store.run_transaction(_ada_votes_for_a())

    txn._commit.assert_called_once_with()


def test_spent_attempt_budget_is_reported_as_conflict() -> None:
    store, _, _, txn = _transactional_store(candidate={"name": "Alice", "votes": 0})
    exhausted = ValueError("Failed to commit transaction in 1 attempts.")
    exhausted.__cause__ = gcp_exceptions.Aborted("too much contention")
    txn._commit.side_effect = exhausted

    with pytest.raises(TransactionConflictError) as excinfo:
        store.run_transaction(_ada_votes_for_a())

    assert excinfo.value.__cause__ is exhausted


def test_value_errors_before_commit_propagate() -> None:
    store, collections, _, txn = _transactional_store()
    collections["voters"].document.return_value.get.side_effect = ValueError("bad document path")

    with pytest.raises(ValueError, match="bad document path"):
        store.run_transaction(_ada_votes_for_a())

    txn._commit.assert_not_called()


@pytest.mark.parametrize("failing_call", ["read", "commit"])
def test_backend_failures_are_store_errors(failing_call: str) -> None:
    store, collections, _, txn = _transactional_store(candidate={"name": "Alice", "votes": 0})
    outage = gcp_exceptions.ServiceUnavailable("firestore is down")
    if failing_call == "read":
        collections["voters"].document.return_value.get.side_effect = outage
    else:
        txn._commit.side_effect = outage

    with pytest.raises(StoreError):
        store.run_transaction(_ada_votes_for_a())
