"""Voting endpoints."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from votebox.api.deps import get_retry_policy, get_store
from votebox.api.routes.auth import get_current_user
from votebox.identity import Principal
from votebox.schemas import CandidateRead, MessageResponse, VoteRequest, VoterRead
from votebox.services.voting import (
    REJECTION_MESSAGES,
    InvalidCandidateIdError,
    RetryPolicy,
    VoteUnavailableError,
    cast_vote,
)
from votebox.store import StoreError, VoteStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


@router.post("/vote", response_model=MessageResponse, summary="Cast the caller's single vote")
def submit_vote(
    payload: VoteRequest,
    store: VoteStore = Depends(get_store),
    policy: RetryPolicy = Depends(get_retry_policy),
    user: Principal = Depends(get_current_user),
) -> MessageResponse:
    if not payload.candidate_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Candidate ID required")

    try:
        outcome = cast_vote(
            store,
            user.uid,
            payload.candidate_id,
            name=user.name,
            profile_ref=payload.linkedin_profile,
            policy=policy,
        )
    except InvalidCandidateIdError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except VoteUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except StoreError as exc:
        logger.exception("Vote transaction failed for %s", user.uid)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Voting failed"
        ) from exc

    if not outcome.committed:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=REJECTION_MESSAGES[outcome])
    return MessageResponse(message="Vote successful!")


@router.get("/candidates", response_model=list[CandidateRead], summary="List candidates with tallies")
def list_candidates(store: VoteStore = Depends(get_store)) -> list[CandidateRead]:
    try:
        records = store.list_candidates()
    except StoreError as exc:
        logger.exception("Unable to list candidates")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error fetching candidates"
        ) from exc
    return [CandidateRead.from_record(record) for record in records]


@router.get("/voters", response_model=list[VoterRead], summary="List recorded votes")
def list_voters(
    store: VoteStore = Depends(get_store),
    user: Principal = Depends(get_current_user),
) -> list[VoterRead]:
    try:
        records = store.list_voters()
    except StoreError as exc:
        logger.exception("Unable to list voters")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error fetching voters"
        ) from exc
    return [VoterRead.from_record(record) for record in records]


__all__ = ["list_candidates", "list_voters", "router", "submit_vote"]
