from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from votebox.services.voting import (
    InvalidCandidateIdError,
    MAX_NAME_LENGTH,
    RetryPolicy,
    VoteUnavailableError,
    cast_vote,
    run_transaction,
    vote_transaction,
)
from votebox.store import (
    CandidateRecord,
    InMemoryVoteStore,
    TransactionBody,
    TransactionConflictError,
    TransactionHandle,
    VoteOutcome,
)

FAST_RETRIES = RetryPolicy(
    max_attempts=100,
    timeout_seconds=30.0,
    base_delay_seconds=0.001,
    max_delay_seconds=0.01,
)


def _tallies(store: InMemoryVoteStore) -> dict[str, int]:
    return {candidate.id: candidate.votes for candidate in store.list_candidates()}


def test_first_vote_is_recorded(store: InMemoryVoteStore) -> None:
    outcome = cast_vote(store, "u1", "A", name="Ada", profile_ref="https://linkedin.com/in/ada")

    assert outcome is VoteOutcome.OK
    assert _tallies(store) == {"A": 1, "B": 0}
    [voter] = store.list_voters()
    assert voter.user_id == "u1"
    assert voter.name == "Ada"
    assert voter.candidate_id == "A"
    assert voter.linkedin_profile == "https://linkedin.com/in/ada"
    assert voter.voted_at is not None


def test_second_vote_by_same_subject_is_rejected(store: InMemoryVoteStore) -> None:
    assert cast_vote(store, "u1", "A") is VoteOutcome.OK

    outcome = cast_vote(store, "u1", "B")

    assert outcome is VoteOutcome.ALREADY_VOTED
    assert _tallies(store) == {"A": 1, "B": 0}
    assert [voter.candidate_id for voter in store.list_voters()] == ["A"]


def test_unknown_candidate_leaves_store_unchanged(store: InMemoryVoteStore) -> None:
    outcome = cast_vote(store, "u1", "Z")

    assert outcome is VoteOutcome.CANDIDATE_NOT_FOUND
    assert _tallies(store) == {"A": 0, "B": 0}
    assert store.list_voters() == []

    # a rejected attempt does not count as having voted
    assert cast_vote(store, "u1", "B") is VoteOutcome.OK


def test_missing_name_is_recorded_as_anonymous(store: InMemoryVoteStore) -> None:
    cast_vote(store, "u1", "A", name=None, profile_ref="")

    [voter] = store.list_voters()
    assert voter.name == "Anonymous"
    assert voter.linkedin_profile is None


def test_long_names_are_cut_to_column_width(store: InMemoryVoteStore) -> None:
    assert cast_vote(store, "u1", "A", name="x" * 1000) is VoteOutcome.OK

    [voter] = store.list_voters()
    assert voter.name == "x" * MAX_NAME_LENGTH


@pytest.mark.parametrize("candidate_id", ["", "   ", "a/b", "x" * 129])
def test_invalid_candidate_ids_are_refused(store: InMemoryVoteStore, candidate_id: str) -> None:
    with pytest.raises(InvalidCandidateIdError):
        cast_vote(store, "u1", candidate_id)
    assert store.list_voters() == []


def test_concurrent_votes_by_one_subject_commit_once(store: InMemoryVoteStore) -> None:
    candidates = ["A", "B"] * 8

    with ThreadPoolExecutor(max_workers=8) as executor:
        outcomes = list(
            executor.map(lambda candidate: cast_vote(store, "u1", candidate, policy=FAST_RETRIES), candidates)
        )

    assert outcomes.count(VoteOutcome.OK) == 1
    assert outcomes.count(VoteOutcome.ALREADY_VOTED) == len(candidates) - 1
    assert sum(_tallies(store).values()) == 1
    assert len(store.list_voters()) == 1


def test_concurrent_votes_by_distinct_subjects_all_count(store: InMemoryVoteStore) -> None:
    subjects = [f"user-{index}" for index in range(20)]

    with ThreadPoolExecutor(max_workers=8) as executor:
        outcomes = list(executor.map(lambda uid: cast_vote(store, uid, "A", policy=FAST_RETRIES), subjects))

    assert outcomes == [VoteOutcome.OK] * len(subjects)
    assert _tallies(store) == {"A": len(subjects), "B": 0}
    assert sorted(voter.user_id for voter in store.list_voters()) == sorted(subjects)


def test_conflicting_write_forces_a_retry(store: InMemoryVoteStore) -> None:
    inner = vote_transaction("u1", "A", name="Ada", profile_ref=None)
    attempts: list[int] = []

    def body(transaction: TransactionHandle) -> VoteOutcome:
        outcome = inner(transaction)
        attempts.append(len(attempts) + 1)
        if len(attempts) == 1:
            # another voter commits against the same candidate mid-transaction
            store.run_transaction(vote_transaction("u2", "A", name="Bob", profile_ref=None))
        return outcome

    sleeps: list[float] = []
    outcome = run_transaction(store, body, policy=FAST_RETRIES, sleep=sleeps.append)

    assert outcome is VoteOutcome.OK
    assert attempts == [1, 2]
    assert len(sleeps) == 1
    assert _tallies(store) == {"A": 2, "B": 0}


class AlwaysConflictingStore:
    def __init__(self) -> None:
        self.attempts = 0

    def run_transaction(self, body: TransactionBody, *, timeout: float | None = None) -> VoteOutcome:
        self.attempts += 1
        raise TransactionConflictError("contention")


def test_retries_stop_at_max_attempts() -> None:
    store = AlwaysConflictingStore()
    sleeps: list[float] = []
    policy = RetryPolicy(max_attempts=3, timeout_seconds=60.0)

    with pytest.raises(VoteUnavailableError):
        run_transaction(store, lambda _: VoteOutcome.OK, policy=policy, sleep=sleeps.append)  # type: ignore[arg-type]

    assert store.attempts == 3
    assert len(sleeps) == 2
    assert all(0 < delay <= policy.max_delay_seconds for delay in sleeps)


def test_retries_stop_at_deadline() -> None:
    store = AlwaysConflictingStore()
    ticks = iter([0.0, 0.0, 5.0])
    policy = RetryPolicy(max_attempts=10, timeout_seconds=1.0)

    with pytest.raises(VoteUnavailableError):
        run_transaction(
            store,  # type: ignore[arg-type]
            lambda _: VoteOutcome.OK,
            policy=policy,
            sleep=lambda _: None,
            clock=lambda: next(ticks),
        )

    assert store.attempts == 1


def test_backoff_grows_and_is_capped() -> None:
    policy = RetryPolicy(base_delay_seconds=0.1, max_delay_seconds=0.5)

    assert 0.05 <= policy.backoff(1) <= 0.1
    assert 0.1 <= policy.backoff(2) <= 0.2
    assert 0.25 <= policy.backoff(10) <= 0.5


def test_seed_candidates_skips_existing(store: InMemoryVoteStore) -> None:
    cast_vote(store, "u1", "A")

    created = store.seed_candidates([CandidateRecord(id="A", name="Other"), CandidateRecord(id="C", name="Cy")])

    assert created == 1
    assert _tallies(store) == {"A": 1, "B": 0, "C": 0}


class StallingStore:
    """Blocks every attempt until released, ignoring the timeout it is given."""

    def __init__(self, stall_seconds: float) -> None:
        self.stall_seconds = stall_seconds
        self.released = threading.Event()
        self.timeouts: list[float | None] = []

    def run_transaction(self, body: TransactionBody, *, timeout: float | None = None) -> VoteOutcome:
        self.timeouts.append(timeout)
        self.released.wait(self.stall_seconds)
        return VoteOutcome.OK


def test_slow_attempt_is_bounded_by_the_deadline() -> None:
    store = StallingStore(stall_seconds=2.0)
    policy = RetryPolicy(max_attempts=3, timeout_seconds=0.3)

    started = time.monotonic()
    try:
        with pytest.raises(VoteUnavailableError):
            run_transaction(store, lambda _: VoteOutcome.OK, policy=policy)  # type: ignore[arg-type]
        elapsed = time.monotonic() - started
    finally:
        store.released.set()

    assert elapsed < 1.0
    assert len(store.timeouts) == 1


class RecordingStore:
    """Conflicts on the first attempt, then commits."""

    def __init__(self) -> None:
        self.timeouts: list[float | None] = []

    def run_transaction(self, body: TransactionBody, *, timeout: float | None = None) -> VoteOutcome:
        self.timeouts.append(timeout)
        if len(self.timeouts) == 1:
            raise TransactionConflictError("contention")
        return VoteOutcome.OK


def test_each_attempt_receives_the_remaining_deadline() -> None:
    store = RecordingStore()
    ticks = iter([100.0, 100.0, 101.0, 104.0])
    policy = RetryPolicy(max_attempts=5, timeout_seconds=10.0, base_delay_seconds=0.001, max_delay_seconds=0.001)

    outcome = run_transaction(
        store,  # type: ignore[arg-type]
        lambda _: VoteOutcome.OK,
        policy=policy,
        sleep=lambda _: None,
        clock=lambda: next(ticks),
    )

    assert outcome is VoteOutcome.OK
    assert store.timeouts == [pytest.approx(10.0), pytest.approx(6.0)]


def test_memory_store_gives_up_waiting_for_its_lock(store: InMemoryVoteStore) -> None:
    def body(transaction: TransactionHandle) -> VoteOutcome:
        transaction.increment_votes("A", 1)
        return VoteOutcome.OK

    with store._lock:
        with pytest.raises(TransactionConflictError):
            store.run_transaction(body, timeout=0.05)

    assert _tallies(store) == {"A": 0, "B": 0}
