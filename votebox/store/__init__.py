"""Candidate and voter persistence backends."""
from __future__ import annotations

from votebox.core.config import Settings
from votebox.store.base import (
    CandidateRecord,
    StoreError,
    TransactionBody,
    TransactionConflictError,
    TransactionHandle,
    VoteOutcome,
    VoterRecord,
    VoteStore,
)
from votebox.store.memory import InMemoryVoteStore


def build_store(settings: Settings) -> VoteStore:
    """Construct the store selected by ``STORE_BACKEND``."""

    if settings.store_backend == "memory":
        return InMemoryVoteStore()
    if settings.store_backend == "sql":
        from votebox.obs import instrument_sqlalchemy_engine
        from votebox.store.sql import SqlVoteStore

        store = SqlVoteStore.from_url(settings.database_url)
        store.create_schema()
        if settings.enable_tracing:
            instrument_sqlalchemy_engine(store.engine)
        return store

    from votebox.core.firebase import get_firebase_app
    from votebox.store.firestore import FirestoreVoteStore

    return FirestoreVoteStore.from_app(get_firebase_app(settings))


__all__ = [
    "CandidateRecord",
    "InMemoryVoteStore",
    "StoreError",
    "TransactionBody",
    "TransactionConflictError",
    "TransactionHandle",
    "VoteOutcome",
    "VoteStore",
    "VoterRecord",
    "build_store",
]
