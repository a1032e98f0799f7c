"""The vote transaction: one vote per subject, atomic tally increment."""
from __future__ import annotations

import contextvars
import logging
import random
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass

from votebox.core.config import Settings
from votebox.obs import VOTE_TRANSACTION_RETRIES, VOTES_CAST_COUNTER, traced
from votebox.store import (
    TransactionBody,
    TransactionConflictError,
    TransactionHandle,
    VoteOutcome,
    VoteStore,
)

logger = logging.getLogger(__name__)

ANONYMOUS_NAME = "Anonymous"
MAX_CANDIDATE_ID_LENGTH = 128
# matches the width of the voters.name column
MAX_NAME_LENGTH = 255

REJECTION_MESSAGES: dict[VoteOutcome, str] = {
    VoteOutcome.ALREADY_VOTED: "You have already voted",
    VoteOutcome.CANDIDATE_NOT_FOUND: "Candidate not found",
}

_ATTEMPT_EXECUTOR = ThreadPoolExecutor(max_workers=32, thread_name_prefix="vote-transaction")


class VoteError(RuntimeError):
    """Base exception for voting service errors."""


class InvalidCandidateIdError(VoteError):
    """Raised when a candidate identifier cannot name a stored document."""


class VoteUnavailableError(VoteError):
    """Raised when write conflicts persist past the retry budget."""


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Bounds on how long a conflicting transaction keeps being retried."""

    max_attempts: int = 5
    timeout_seconds: float = 10.0
    base_delay_seconds: float = 0.05
    max_delay_seconds: float = 1.0

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryPolicy:
        return cls(
            max_attempts=settings.transaction_max_attempts,
            timeout_seconds=settings.transaction_timeout_seconds,
        )

    def backoff(self, attempt: int) -> float:
        delay = min(self.max_delay_seconds, self.base_delay_seconds * (2 ** (attempt - 1)))
        return delay * random.uniform(0.5, 1.0)


def _attempt(store: VoteStore, body: TransactionBody, timeout: float) -> VoteOutcome:
    # The store is asked to honour ``timeout`` itself; waiting on a worker
    # bounds the caller even when a backend call ignores it.
    context = contextvars.copy_context()
    future = _ATTEMPT_EXECUTOR.submit(context.run, store.run_transaction, body, timeout=timeout)
    return future.result(timeout=timeout)


def run_transaction(
    store: VoteStore,
    body: TransactionBody,
    *,
    policy: RetryPolicy | None = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> VoteOutcome:
    """Execute ``body`` against ``store``, retrying write conflicts.

    The body's outcome decides commit versus abort. Rejections are returned
    as-is and never retried; only ``TransactionConflictError`` triggers
    another attempt, with jittered exponential backoff, until either the
    attempt budget or the deadline is spent. Each attempt is given what is
    left of the deadline, and an attempt still running when it passes is
    abandoned.
    """

    policy = policy or RetryPolicy()
    deadline = clock() + policy.timeout_seconds
    last_error: BaseException | None = None

    for attempt in range(1, policy.max_attempts + 1):
        remaining = deadline - clock()
        if remaining <= 0:
            break
        try:
            return _attempt(store, body, remaining)
        except FutureTimeoutError as exc:
            logger.warning(
                "Vote transaction attempt %d exceeded the %.1fs deadline", attempt, policy.timeout_seconds
            )
            last_error = exc
            break
        except TransactionConflictError as exc:
            last_error = exc
            VOTE_TRANSACTION_RETRIES.inc()
            if attempt == policy.max_attempts:
                break
            delay = policy.backoff(attempt)
            if clock() + delay >= deadline:
                break
            logger.info("Vote transaction conflict on attempt %d, retrying in %.3fs: %s", attempt, delay, exc)
            sleep(delay)

    raise VoteUnavailableError("Vote could not be recorded, please retry") from last_error


def vote_transaction(
    subject_id: str,
    candidate_id: str,
    *,
    name: str,
    profile_ref: str | None,
) -> TransactionBody:
    """Build the transaction body recording ``subject_id``'s vote for ``candidate_id``."""

    def body(transaction: TransactionHandle) -> VoteOutcome:
        # the voter document key is the subject, so existence means "has voted"
        if transaction.get_voter(subject_id) is not None:
            return VoteOutcome.ALREADY_VOTED
        if transaction.get_candidate(candidate_id) is None:
            return VoteOutcome.CANDIDATE_NOT_FOUND

        transaction.create_voter(
            subject_id,
            name=name,
            candidate_id=candidate_id,
            linkedin_profile=profile_ref,
        )
        transaction.increment_votes(candidate_id, 1)
        return VoteOutcome.OK

    return body


def validate_candidate_id(candidate_id: str) -> str:
    if not candidate_id or not candidate_id.strip():
        raise InvalidCandidateIdError("Candidate ID required")
    if len(candidate_id) > MAX_CANDIDATE_ID_LENGTH or "/" in candidate_id:
        raise InvalidCandidateIdError("Invalid candidate ID")
    return candidate_id


def cast_vote(
    store: VoteStore,
    subject_id: str,
    candidate_id: str,
    *,
    name: str | None = None,
    profile_ref: str | None = None,
    policy: RetryPolicy | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> VoteOutcome:
    """Record a single vote for ``subject_id``.

    ``subject_id`` must come from a verified credential. ``name`` is cut to
    ``MAX_NAME_LENGTH`` characters. Returns the transaction outcome; raises
    ``VoteUnavailableError`` when conflicts could not be resolved within the
    retry policy.
    """

    validate_candidate_id(candidate_id)
    body = vote_transaction(
        subject_id,
        candidate_id,
        name=(name or ANONYMOUS_NAME)[:MAX_NAME_LENGTH],
        profile_ref=profile_ref or None,
    )

    with traced("votes.cast", candidate_id=candidate_id) as span:
        outcome = run_transaction(store, body, policy=policy, sleep=sleep)
        span.set_attribute("votes.outcome", outcome.value)

    VOTES_CAST_COUNTER.labels(outcome=outcome.value).inc()
    if outcome.committed:
        logger.info("Recorded vote by %s for candidate %s", subject_id, candidate_id)
    else:
        logger.info("Rejected vote by %s for candidate %s: %s", subject_id, candidate_id, outcome.value)
    return outcome


__all__ = [
    "ANONYMOUS_NAME",
    "InvalidCandidateIdError",
    "MAX_NAME_LENGTH",
    "REJECTION_MESSAGES",
    "RetryPolicy",
    "VoteError",
    "VoteUnavailableError",
    "cast_vote",
    "run_transaction",
    "validate_candidate_id",
    "vote_transaction",
]
