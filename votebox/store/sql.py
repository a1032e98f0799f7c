"""SQLAlchemy backend for deployments without Firestore."""
from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from sqlalchemy import Engine, create_engine, select, text, update
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from votebox.models import Base, Candidate, Voter
from votebox.store.base import (
    CandidateRecord,
    StoreError,
    TransactionBody,
    TransactionConflictError,
    VoteOutcome,
    VoterRecord,
)

logger = logging.getLogger(__name__)

# serialization failure, deadlock, statement timeout, lock timeout
_RETRYABLE_SQLSTATES = {"40001", "40P01", "57014", "55P03"}


def _is_retryable(exc: DBAPIError) -> bool:
    original = exc.orig
    code = getattr(original, "sqlstate", None) or getattr(original, "pgcode", None)
    if code in _RETRYABLE_SQLSTATES:
        return True
    return "database is locked" in str(original)


def _milliseconds(seconds: float) -> int:
    return max(1, int(seconds * 1000))


@contextmanager
def _serializable_transaction(session: Session, timeout: float | None = None) -> Iterator[None]:
    """Context manager enforcing SERIALIZABLE isolation for the transaction.

    ``timeout`` caps how long SQLite waits for the write lock and how long any
    PostgreSQL statement in the transaction may run.
    """

    dialect = session.get_bind().dialect.name
    if dialect == "sqlite":
        if timeout is not None:
            session.execute(text(f"PRAGMA busy_timeout = {_milliseconds(timeout)}"))
        session.execute(text("BEGIN IMMEDIATE"))
    else:
        session.execute(text("SET TRANSACTION ISOLATION LEVEL SERIALIZABLE"))
        if timeout is not None and dialect == "postgresql":
            session.execute(text(f"SET LOCAL statement_timeout = {_milliseconds(timeout)}"))

    try:
        yield
        session.commit()
    except Exception:
        session.rollback()
        raise


def _to_candidate(row: Candidate) -> CandidateRecord:
    return CandidateRecord(id=row.id, name=row.name, votes=row.votes)


def _to_voter(row: Voter) -> VoterRecord:
    return VoterRecord(
        user_id=row.user_id,
        name=row.name,
        candidate_id=row.candidate_id,
        linkedin_profile=row.linkedin_profile,
        voted_at=row.voted_at,
    )


class _SqlTransaction:
    def __init__(self, session: Session) -> None:
        self._session = session
        self._new_voters: list[Voter] = []
        self._increments: dict[str, int] = {}

    def get_voter(self, user_id: str) -> VoterRecord | None:
        row = self._session.get(Voter, user_id)
        return _to_voter(row) if row is not None else None

    def get_candidate(self, candidate_id: str) -> CandidateRecord | None:
        row = self._session.get(Candidate, candidate_id)
        return _to_candidate(row) if row is not None else None

    def create_voter(
        self,
        user_id: str,
        *,
        name: str,
        candidate_id: str,
        linkedin_profile: str | None,
    ) -> None:
        self._new_voters.append(
            Voter(
                user_id=user_id,
                name=name,
                candidate_id=candidate_id,
                linkedin_profile=linkedin_profile,
            )
        )

    def increment_votes(self, candidate_id: str, amount: int = 1) -> None:
        self._increments[candidate_id] = self._increments.get(candidate_id, 0) + amount

    def apply(self) -> None:
        self._session.add_all(self._new_voters)
        self._session.flush()
        for candidate_id, amount in self._increments.items():
            result = self._session.execute(
                update(Candidate)
                .where(Candidate.id == candidate_id)
                .values(votes=Candidate.votes + amount)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise TransactionConflictError(f"Candidate '{candidate_id}' disappeared during transaction")


class SqlVoteStore:
    """Vote store on a relational database; the voter primary key enforces one vote."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._session_factory = sessionmaker(
            bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
        )

    @classmethod
    def from_url(cls, database_url: str) -> SqlVoteStore:
        connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
        engine = create_engine(database_url, pool_pre_ping=True, connect_args=connect_args)
        return cls(engine)

    @property
    def engine(self) -> Engine:
        return self._engine

    def create_schema(self) -> None:
        Base.metadata.create_all(bind=self._engine)

    def run_transaction(self, body: TransactionBody, *, timeout: float | None = None) -> VoteOutcome:
        session: Session = self._session_factory()
        try:
            with _serializable_transaction(session, timeout):
                handle = _SqlTransaction(session)
                outcome = body(handle)
                if outcome.committed:
                    handle.apply()
                else:
                    session.rollback()
            return outcome
        except IntegrityError as exc:
            raise TransactionConflictError("Voter record was created concurrently") from exc
        except DBAPIError as exc:
            if _is_retryable(exc):
                raise TransactionConflictError(str(exc.orig)) from exc
            raise StoreError("Vote transaction failed") from exc
        except SQLAlchemyError as exc:
            raise StoreError("Vote transaction failed") from exc
        finally:
            session.close()

    def list_candidates(self) -> list[CandidateRecord]:
        try:
            with self._session_factory() as session:
                return [_to_candidate(row) for row in session.scalars(select(Candidate))]
        except SQLAlchemyError as exc:
            raise StoreError("Unable to read candidates") from exc

    def list_voters(self) -> list[VoterRecord]:
        try:
            with self._session_factory() as session:
                return [_to_voter(row) for row in session.scalars(select(Voter))]
        except SQLAlchemyError as exc:
            raise StoreError("Unable to read voters") from exc

    def seed_candidates(self, candidates: Iterable[CandidateRecord]) -> int:
        created = 0
        with self._session_factory() as session:
            existing = set(session.scalars(select(Candidate.id)))
            for candidate in candidates:
                if candidate.id in existing:
                    logger.info("Candidate %s already exists", candidate.id)
                    continue
                session.add(Candidate(id=candidate.id, name=candidate.name, votes=candidate.votes))
                existing.add(candidate.id)
                created += 1
            session.commit()
        return created

    def close(self) -> None:
        self._engine.dispose()


__all__ = ["SqlVoteStore"]
