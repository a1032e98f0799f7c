"""Administrative endpoints."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from votebox.api.deps import get_identity_verifier
from votebox.api.routes.auth import require_admin
from votebox.identity import IdentityError, IdentityVerifier, Principal, UnknownSubjectError
from votebox.schemas import MakeAdminRequest, MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/make-admin", response_model=MessageResponse, summary="Grant the admin claim to a user")
def make_admin(
    payload: MakeAdminRequest,
    identity: IdentityVerifier = Depends(get_identity_verifier),
    admin: Principal = Depends(require_admin),
) -> MessageResponse:
    if not payload.uid:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="UID required")

    try:
        identity.grant_admin(payload.uid)
    except UnknownSubjectError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found") from exc
    except IdentityError as exc:
        logger.exception("Unable to grant admin to %s", payload.uid)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error setting admin"
        ) from exc

    logger.info("%s granted admin to %s", admin.uid, payload.uid)
    return MessageResponse(message="User is now admin!")


__all__ = ["make_admin", "router"]
