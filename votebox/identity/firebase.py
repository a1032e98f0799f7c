"""Identity verification through Firebase Authentication."""
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from firebase_admin import App, auth, exceptions

from votebox.identity.base import (
    ADMIN_CLAIM,
    IdentityError,
    InvalidCredentialError,
    Principal,
    UnknownSubjectError,
)

logger = logging.getLogger(__name__)


class FirebaseIdentityVerifier:
    """Verifies Firebase ID tokens and manages custom claims."""

    def __init__(self, app: App | None = None, *, check_revoked: bool = False) -> None:
        self._app = app
        self._check_revoked = check_revoked

    def verify(self, token: str) -> Principal:
        try:
            decoded = auth.verify_id_token(token, app=self._app, check_revoked=self._check_revoked)
        except auth.CertificateFetchError as exc:
            raise IdentityError("Unable to fetch token signing certificates") from exc
        except (auth.InvalidIdTokenError, auth.UserDisabledError, ValueError) as exc:
            raise InvalidCredentialError("Invalid or expired token") from exc
        return Principal.from_claims(decoded["uid"], decoded)

    def mint_token(self, uid: str, claims: Mapping[str, Any]) -> str:
        try:
            token = auth.create_custom_token(uid, dict(claims), app=self._app)
        except (auth.TokenSignError, ValueError) as exc:
            raise IdentityError("Unable to mint custom token") from exc
        return token.decode("utf-8") if isinstance(token, bytes) else token

    def grant_admin(self, uid: str) -> None:
        """Add ``admin: true`` to ``uid``'s custom claims, keeping the others.

        The Admin SDK offers no conditional update for custom claims, so the
        read and the write are separate calls: a claim written by another
        process in between is overwritten. Nothing else in this service writes
        custom claims. Tokens already issued pick the claim up on refresh.
        """
        try:
            user = auth.get_user(uid, app=self._app)
            merged = dict(user.custom_claims or {})
            merged[ADMIN_CLAIM] = True
            auth.set_custom_user_claims(uid, merged, app=self._app)
        except auth.UserNotFoundError as exc:
            raise UnknownSubjectError(f"User '{uid}' not found") from exc
        except (exceptions.FirebaseError, ValueError) as exc:
            raise IdentityError("Unable to update custom claims") from exc
        logger.info("Granted admin claim to %s", uid)


__all__ = ["FirebaseIdentityVerifier"]
